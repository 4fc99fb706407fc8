from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .env_auth import EnvAuthConfig, EnvironmentAuthManager
from .errors import ConfigurationError
from .github_rest import DEFAULT_API_URL, DEFAULT_GRAPHQL_URL
from .models import ProjectReference, Scope
from .projects import parse_project_number

CONFIG_DEFAULT = "annosync.config.yaml"
DEFAULT_LABEL = "QA"
DEFAULT_CATEGORY = "QA"
DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_STATE_FILE = ".annosync/state.json"


class ConfigError(ConfigurationError):
    pass


@dataclass
class SyncSettings:
    endpoint: str = ""
    owner: str = ""
    repo: str = ""
    label: str = DEFAULT_LABEL
    secret: str = ""
    file_key: str = ""
    category: str = DEFAULT_CATEGORY
    scan_all_pages: bool = False
    skip_synced: bool = True
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    project_name: str | None = None
    project_owner: str | None = None
    project_number: int | None = None
    # CLI-only: where the design snapshot and the sync records live
    source_file: Path | None = None
    state_file: Path | None = None
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "INFO"

    @property
    def scope(self) -> Scope:
        return Scope.ALL if self.scan_all_pages else Scope.CURRENT

    @property
    def project(self) -> ProjectReference:
        return ProjectReference(
            name=self.project_name, owner=self.project_owner, number=self.project_number
        )


@dataclass
class ServiceConfig:
    """Settings of the sync endpoint itself (server side)."""

    token: str | None
    secret: str | None = None
    api_url: str = DEFAULT_API_URL
    graphql_url: str = DEFAULT_GRAPHQL_URL


def _resolve_env_var(value: Any) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:], '')
    return value


def _text(value: Any, default: str = '') -> str:
    if value is None:
        return default
    return str(_resolve_env_var(value)).strip()


def _optional_text(value: Any) -> str | None:
    text = _text(value)
    return text or None


def normalize_settings(raw: dict[str, Any]) -> SyncSettings:
    """Trim strings and fill defaults; ``skip_synced`` is on unless explicitly false."""
    label = _text(raw.get('label'), DEFAULT_LABEL)
    category = _text(raw.get('category'), DEFAULT_CATEGORY)
    try:
        timeout = float(raw.get('timeout_seconds', DEFAULT_TIMEOUT_SECONDS))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"timeout_seconds must be a number, got {raw.get('timeout_seconds')!r}") from exc
    if timeout <= 0:
        raise ConfigError('timeout_seconds must be positive')
    return SyncSettings(
        endpoint=_text(raw.get('endpoint')),
        owner=_text(raw.get('owner')),
        repo=_text(raw.get('repo')),
        label=label or DEFAULT_LABEL,
        secret=_text(raw.get('secret')),
        file_key=_text(raw.get('file_key')),
        category=category or DEFAULT_CATEGORY,
        scan_all_pages=bool(raw.get('scan_all_pages', False)),
        skip_synced=raw.get('skip_synced') is not False,
        timeout_seconds=timeout,
        project_name=_optional_text(raw.get('project_name')),
        project_owner=_optional_text(raw.get('project_owner')),
        project_number=parse_project_number(_resolve_env_var(raw.get('project_number'))),
    )


def load_config(path: str | Path) -> SyncSettings:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f'Configuration file not found: {p}')
    try:
        raw = cast(dict[str, Any], yaml.safe_load(p.read_text()) or {})
    except yaml.YAMLError as exc:
        raise ConfigError(f'Configuration file is not valid YAML: {p}: {exc}') from exc
    if not isinstance(raw, dict):
        raise ConfigError(f'Configuration root must be a mapping: {p}')
    gh = cast(dict[str, Any], raw.get('github', {}) or {})
    project = cast(dict[str, Any], raw.get('project', {}) or {})
    sync = cast(dict[str, Any], raw.get('sync', {}) or {})
    source = cast(dict[str, Any], raw.get('source', {}) or {})
    logging_config = cast(dict[str, Any], raw.get('logging', {}) or {})

    settings = normalize_settings(
        {
            'endpoint': raw.get('endpoint'),
            'secret': raw.get('secret'),
            'owner': gh.get('owner'),
            'repo': gh.get('repo'),
            'label': gh.get('label'),
            'project_name': project.get('name'),
            'project_owner': project.get('owner'),
            'project_number': project.get('number'),
            **sync,
        }
    )
    settings.source_file = p.parent / source.get('file', 'design_snapshot.json')
    settings.state_file = p.parent / source.get('state_file', DEFAULT_STATE_FILE)
    settings.logging_json_enabled = bool(logging_config.get('json_enabled', False))
    settings.logging_level = str(logging_config.get('level', 'INFO'))
    return settings


def load_service_config(auth: EnvironmentAuthManager | None = None) -> ServiceConfig:
    manager = auth or EnvironmentAuthManager(EnvAuthConfig())
    return ServiceConfig(
        token=manager.get_github_token(),
        secret=manager.get_shared_secret(),
        api_url=os.getenv('ANNOSYNC_GITHUB_API_URL', DEFAULT_API_URL),
        graphql_url=os.getenv('ANNOSYNC_GITHUB_GRAPHQL_URL', DEFAULT_GRAPHQL_URL),
    )


__all__ = [
    'CONFIG_DEFAULT',
    'ConfigError',
    'ServiceConfig',
    'SyncSettings',
    'load_config',
    'load_service_config',
    'normalize_settings',
]
