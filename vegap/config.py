"""
Client configuration.

Explicit construction is the primary path; from_env() reads a .env
file and the process environment for scripts and services.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import find_dotenv, load_dotenv

from .errors import VegapConfigError


DEFAULT_BASE_URL = "https://api.vegap.de"
DEFAULT_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class VegapConfig:
    """Connection settings for a Vegap client."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    company_id: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_S

    def __post_init__(self):
        # Routes are appended as "/api/...", keep a single separator
        object.__setattr__(self, "base_url", (self.base_url or DEFAULT_BASE_URL).rstrip("/"))

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "VegapConfig":
        """
        Load configuration from environment variables.

        Variables:
            VEGAP_API_KEY     credential sent as X-API-Key
            VEGAP_BASE_URL    service address (default https://api.vegap.de)
            VEGAP_COMPANY_ID  tenant identifier for slug routes
            VEGAP_TIMEOUT     request timeout in seconds (default 30)

        Values already present in the environment win over the .env file.
        A missing API key is not an error here; the client rejects it.
        """
        # Without an explicit file, search upward from the working directory
        load_dotenv(env_file if env_file is not None else find_dotenv(usecwd=True))

        raw_timeout = os.getenv("VEGAP_TIMEOUT", str(DEFAULT_TIMEOUT_S))
        try:
            timeout = float(raw_timeout)
        except ValueError as e:
            raise VegapConfigError(f"VEGAP_TIMEOUT must be a number of seconds, got {raw_timeout!r}") from e

        return cls(
            api_key=os.getenv("VEGAP_API_KEY", ""),
            base_url=os.getenv("VEGAP_BASE_URL", DEFAULT_BASE_URL),
            company_id=os.getenv("VEGAP_COMPANY_ID") or None,
            timeout=timeout,
        )
