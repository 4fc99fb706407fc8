"""Environment-based credentials for the sync endpoint.

The endpoint holds the GitHub bearer token and the optional shared secret;
both come from environment variables, optionally seeded from a ``.env``
file. Neither value is ever echoed back to clients.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

TOKEN_ALTERNATIVES = ("GH_TOKEN", "GITHUB_ACCESS_TOKEN", "GH_ACCESS_TOKEN", "GITHUB_PAT")
DOTENV_LOCATIONS = (".env", ".env.local")


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    github_token_var: str = "GITHUB_TOKEN"
    shared_secret_var: str = "QA_SYNC_SECRET"


class EnvironmentAuthManager:
    """Reads the endpoint's credentials from the process environment."""

    def __init__(self, config: EnvAuthConfig):
        self.config = config
        self.logger = get_logger()
        self._dotenv_loaded = False
        if config.load_dotenv:
            self._load_dotenv()

    def _load_dotenv(self) -> None:
        candidates = [self.config.dotenv_path] if self.config.dotenv_path else list(DOTENV_LOCATIONS)
        for location in candidates:
            env_path = Path(location)
            if env_path.exists():
                # existing environment variables win over the file
                load_dotenv(str(env_path), override=False)
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                return

    @property
    def dotenv_loaded(self) -> bool:
        return self._dotenv_loaded

    def get_github_token(self) -> str | None:
        token = os.getenv(self.config.github_token_var)
        if token:
            return token
        for alt_var in TOKEN_ALTERNATIVES:
            token = os.getenv(alt_var)
            if token:
                self.logger.debug(f"Found GitHub token in {alt_var}")
                return token
        return None

    def get_shared_secret(self) -> str | None:
        secret = os.getenv(self.config.shared_secret_var)
        return secret or None


def create_env_auth_manager(
    load_dotenv: bool = True, dotenv_path: str | None = None
) -> EnvironmentAuthManager:
    return EnvironmentAuthManager(EnvAuthConfig(load_dotenv=load_dotenv, dotenv_path=dotenv_path))


__all__ = ["EnvAuthConfig", "EnvironmentAuthManager", "create_env_auth_manager"]
