# MCP server exposing platform API endpoints as tools
# Main module initialization

__version__ = "1.0.0"
