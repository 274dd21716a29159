"""
Matrix credentials and HTTP settings loader.

Credentials are resolved from the runtime environment (optionally seeded by a
local .env file). Nothing here is persisted and the access token is never
logged.

Environment:
- MATRIX_HOMESERVER_URL   (default: https://matrix-client.matrix.org)
- MATRIX_ACCESS_TOKEN     (required for any API call)
- MATRIX_HTTP_TIMEOUT     (seconds, default: 15.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from services.matrix.api.errors import MatrixCredentialsError
from shared.logging.logger import get_logger

log = get_logger("shared.config.matrix")

DEFAULT_HOMESERVER_URL = "https://matrix-client.matrix.org"
DEFAULT_HTTP_TIMEOUT = 15.0


@dataclass
class MatrixCredentials:
    """Homeserver location plus the bearer token used for every request."""

    access_token: str
    homeserver_url: str = DEFAULT_HOMESERVER_URL

    def __post_init__(self) -> None:
        self.homeserver_url = (self.homeserver_url or "").rstrip("/")

    def validate(self) -> None:
        missing = []
        if not self.homeserver_url:
            missing.append("MATRIX_HOMESERVER_URL")
        if not self.access_token:
            missing.append("MATRIX_ACCESS_TOKEN")

        if missing:
            raise MatrixCredentialsError(
                "Matrix credentials missing required values: " + ", ".join(missing)
            )


@dataclass
class MatrixHttpSettings:
    timeout: float = DEFAULT_HTTP_TIMEOUT


def load_env_credentials(*, use_dotenv: bool = True) -> Optional[MatrixCredentials]:
    """
    Load Matrix credentials from the environment.

    Returns None when no access token is configured so callers can surface
    the "no credentials" condition at request time.
    """
    if use_dotenv:
        load_dotenv()

    token = os.getenv("MATRIX_ACCESS_TOKEN", "")
    if not token:
        log.debug("MATRIX_ACCESS_TOKEN not set; no Matrix credentials available")
        return None

    homeserver = os.getenv("MATRIX_HOMESERVER_URL") or DEFAULT_HOMESERVER_URL
    creds = MatrixCredentials(access_token=token, homeserver_url=homeserver)
    creds.validate()

    log.info(f"Matrix credentials loaded (homeserver={creds.homeserver_url})")
    return creds


def load_http_settings() -> MatrixHttpSettings:
    raw = os.getenv("MATRIX_HTTP_TIMEOUT")
    if not raw:
        return MatrixHttpSettings()

    try:
        timeout = float(raw)
    except ValueError:
        log.warning(
            f"Invalid MATRIX_HTTP_TIMEOUT={raw!r}; using {DEFAULT_HTTP_TIMEOUT}s"
        )
        return MatrixHttpSettings()

    if timeout <= 0:
        log.warning(
            f"MATRIX_HTTP_TIMEOUT must be positive; using {DEFAULT_HTTP_TIMEOUT}s"
        )
        return MatrixHttpSettings()

    return MatrixHttpSettings(timeout=timeout)
