# Process entry point
# Loads configuration, registers endpoint tools and serves MCP over stdio

import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .config import DEFAULT_HOST, USAGE, Settings, load_settings, write_sample_env
from .server import ToolServer
from .services.context import GatewayContext
from .services.error_handler import ConfigurationError
from .services.tool_registry import ToolRegistry

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Conventional 128 + signal number
EXIT_CODES = {
    signal.SIGINT: 130,
    signal.SIGTERM: 143,
}

logger = logging.getLogger(__name__)


def configure_logging(debug: bool = False) -> None:
    """Log to stderr; stdout is reserved for the MCP protocol"""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _log_uncaught(exc_type, exc, tb) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logger.error("Uncaught exception", exc_info=(exc_type, exc, tb))


def _handle_loop_exception(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    logger.error(
        f"Unhandled error in event loop: {context.get('message', 'unknown error')}",
        exc_info=context.get("exception"),
    )


def desktop_config(settings: Settings) -> Dict[str, Any]:
    """Claude Desktop configuration entry for this server (token left as a placeholder)"""
    args = [f"--endpoints={','.join(settings.endpoint_ids)}", "--token=<your_bearer_token>"]
    if settings.host != DEFAULT_HOST:
        args.append(f"--host={settings.host}")
    return {"mcpServers": {"platform-api": {"command": "platform-api-mcp", "args": args}}}


def log_startup_summary(settings: Settings, registered: List[str], registry: ToolRegistry) -> None:
    logger.info(f"Debug mode: {'ENABLED' if settings.debug else 'DISABLED'}")
    logger.info("MCP Server started and ready for connections")
    logger.info(f"Endpoints available: {', '.join(registered) or '(none)'}")

    failures = registry.failures
    if failures:
        skipped = ", ".join(f"{f.endpoint_id} ({f.stage})" for f in failures)
        per_stage = ", ".join(f"{stage}: {count}" for stage, count in registry.error_handler.summary().items())
        logger.warning(f"Endpoints skipped: {skipped} [{per_stage}]")

    logger.info(
        "To use this server in Claude Desktop, add the following to claude_desktop_config.json "
        "and restart Claude Desktop:\n" + json.dumps(desktop_config(settings), indent=2)
    )


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, received: Dict[str, int]) -> None:
    main_task = asyncio.current_task()

    def on_signal(signum: int) -> None:
        logger.info(f"Received {signal.Signals(signum).name} signal")
        received["exit_code"] = EXIT_CODES[signum]
        if main_task is not None:
            main_task.cancel()

    def exit_on_signal(signum, frame) -> None:
        logger.info(f"Received {signal.Signals(signum).name} signal")
        raise SystemExit(EXIT_CODES[signum])

    for signum in EXIT_CODES:
        try:
            loop.add_signal_handler(signum, on_signal, signum)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no add_signal_handler
            signal.signal(signum, exit_on_signal)


async def serve(settings: Settings) -> int:
    """Register the configured endpoints and serve until disconnect or signal

    Returns:
        Process exit code
    """
    loop = asyncio.get_running_loop()
    loop.set_exception_handler(_handle_loop_exception)
    received: Dict[str, int] = {}
    _install_signal_handlers(loop, received)

    try:
        async with GatewayContext(settings) as context:
            server = ToolServer()
            registry = ToolRegistry(context, server)

            try:
                registered = await registry.setup_tools()
            except Exception:
                logger.exception("Failed to set up tools")
                registered = server.tool_names

            log_startup_summary(settings, registered, registry)

            try:
                await server.run_stdio()
            except Exception:
                logger.exception("Server encountered an error and stopped serving")
    except asyncio.CancelledError:
        if "exit_code" in received:
            return received["exit_code"]
        raise

    return received.get("exit_code", 0)


def main(argv: Optional[Sequence[str]] = None) -> None:
    try:
        settings = load_settings(argv)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        env_path = Path.cwd() / ".env"
        try:
            if write_sample_env(env_path):
                print(f"Created sample .env file at {env_path}", file=sys.stderr)
        except OSError as err:
            print(f"Failed to create sample .env file: {err}", file=sys.stderr)
        sys.exit(1)

    configure_logging(settings.debug)
    sys.excepthook = _log_uncaught

    exit_code = asyncio.run(serve(settings))
    logger.info(f"Process is about to exit with code: {exit_code}")
    sys.exit(exit_code)
