"""
Platform API MCP Test Suite

The tests run against a fake platform served through httpx.MockTransport,
covering schema fetching, contract compilation, tool registration and
proxied calls without touching the network.
"""
