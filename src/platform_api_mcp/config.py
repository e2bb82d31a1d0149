"""Configuration management for the Platform API MCP Gateway"""

import argparse
from pathlib import Path
from typing import Any, Optional, Sequence

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .services.error_handler import ConfigurationError

DEFAULT_HOST = "stage.adenin.com"

USAGE = (
    "Usage: platform-api-mcp --endpoints=endpoint1,endpoint2 --token=your_bearer_token [--host=hostname]\n"
    "Or create a .env file with MCP_ENDPOINTS, MCP_TOKEN, and optionally MCP_HOST"
)

SAMPLE_ENV = f"""# MCP Server Configuration
# Host for the API gateway
MCP_HOST={DEFAULT_HOST}

# Comma-separated list of endpoint IDs
MCP_ENDPOINTS=endpoint1,endpoint2

# Bearer token for authentication
MCP_TOKEN=your_bearer_token
"""

_FALSY = {"", "0", "false", "no", "off"}


class Settings(BaseSettings):
    """Gateway settings with environment variable and .env support"""

    # Remote platform
    host: str = DEFAULT_HOST
    endpoints: str = ""
    token: str = ""

    # Verbose response/schema logging
    debug: bool = Field(default=False, validation_alias=AliasChoices("MCP_DEBUG", "DEBUG", "debug"))

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("debug", mode="before")
    @classmethod
    def parse_debug(cls, v: Any) -> bool:
        """Any non-empty value other than an explicit 'off' enables debug mode"""
        if isinstance(v, str):
            return v.strip().lower() not in _FALSY
        return bool(v)

    @property
    def endpoint_ids(self) -> list[str]:
        """Configured endpoint identifiers, in configured order"""
        return [e.strip() for e in self.endpoints.split(",") if e.strip()]

    def validate_required(self) -> None:
        """Raise ConfigurationError when endpoints or token are missing"""
        missing = []
        if not self.endpoint_ids:
            missing.append("endpoints")
        if not self.token:
            missing.append("token")
        if missing:
            raise ConfigurationError(
                f"Missing required parameters ({' or '.join(missing)})",
                details={"missing": missing},
            )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="platform-api-mcp",
        description="Expose platform API endpoints as MCP tools over stdio",
    )
    parser.add_argument("--endpoints", help="Comma-separated list of endpoint IDs")
    parser.add_argument("--token", help="Bearer token for the platform API")
    parser.add_argument("--host", help=f"API host (default: {DEFAULT_HOST})")
    parser.add_argument("--debug", action="store_true", default=None, help="Log responses and schemas")
    return parser


def load_settings(argv: Optional[Sequence[str]] = None, env_file: Optional[str] = ".env") -> Settings:
    """Merge command line flags over environment/.env settings.

    Raises:
        ConfigurationError: if no endpoints or no token are configured
    """
    # Unknown flags are ignored so MCP hosts can pass extra arguments
    args, _ = build_parser().parse_known_args(argv)
    overrides = {
        key: value
        for key, value in vars(args).items()
        if value is not None
    }

    settings = Settings(_env_file=env_file, **overrides)
    settings.validate_required()
    return settings


def write_sample_env(path: Path) -> bool:
    """Create a sample .env next to the working directory if none exists"""
    if path.exists():
        return False
    path.write_text(SAMPLE_ENV, encoding="utf-8")
    return True
