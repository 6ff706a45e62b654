"""Docs Agent settings, read once at import time.

Plain settings come from the process environment (a local ``.env`` file is
loaded first).  The Anthropic key is required: when it is not in the
environment and the process runs on AWS (``AWS_EXECUTION_ENV`` set), it is
read from the SSM SecureString ``/docs-agent/ANTHROPIC_API_KEY``.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_SSM_PREFIX = "/docs-agent"
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


def _get_ssm_parameter(name: str) -> str | None:
    """Decrypted value of ``{_SSM_PREFIX}/{name}``, or ``None`` if unreadable."""
    try:
        import boto3  # noqa: PLC0415 - only installed with the aws extra

        response = boto3.client("ssm").get_parameter(
            Name=f"{_SSM_PREFIX}/{name}", WithDecryption=True,
        )
        return response["Parameter"]["Value"]
    except Exception:
        logger.debug("No SSM value for %s", name)
        return None


def _require_env(name: str) -> str:
    """Resolve a mandatory setting.

    Placeholder values such as ``your_api_key`` count as unset.

    Raises:
        OSError: If neither the environment nor SSM provides a value.
    """
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value
    if _ON_AWS and (value := _get_ssm_parameter(name)):
        return value
    raise OSError(
        f"{name} is not configured: add it to .env, "
        f"or to SSM at {_SSM_PREFIX}/{name} when running on AWS."
    )


def _env_list(name: str, default: str) -> list[str]:
    """Comma-separated setting as a list, blanks dropped."""
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


# Model
ANTHROPIC_API_KEY: str = _require_env("ANTHROPIC_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "claude-sonnet-4-5")

# Context7
CONTEXT7_BASE_URL: str = os.getenv("CONTEXT7_BASE_URL", "https://context7.com/api/v1")
CONTEXT7_SOURCE: str = os.getenv("CONTEXT7_SOURCE", "docs-agent")
CONTEXT7_TIMEOUT_SECONDS: float = float(os.getenv("CONTEXT7_TIMEOUT_SECONDS", "30"))

# HTTP server
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = _env_list("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
