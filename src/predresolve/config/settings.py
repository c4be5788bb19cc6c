"""TOML config loading, profiles, validation and logging setup."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from predresolve.errors import ConfigurationError
from predresolve.models import Category, FetchKind, SourceDescriptor

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"

DISCOVERY_MODES = ("static", "dynamic")


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir(config_dir: Path | None = None) -> Path:
    if config_dir is not None:
        return config_dir
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay."""
    directory = _find_config_dir(config_dir)
    default_path = directory / "default.toml"
    if not default_path.exists():
        return {}
    base = _load_toml(default_path)
    if profile:
        profile_path = directory / f"{profile}.toml"
        if not profile_path.exists():
            raise ConfigurationError(f"profile not found: {profile_path}")
        base = _deep_merge(base, _load_toml(profile_path))
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        resolution: dict[str, Any] | None = None,
        schedule: dict[str, Any] | None = None,
        chain: dict[str, Any] | None = None,
        sources: dict[str, Any] | None = None,
        storage: dict[str, Any] | None = None,
        interpreter: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.resolution = resolution or {}
        self.schedule = schedule or {}
        self.chain = chain or {}
        self.sources = sources or {}
        self.storage = storage or {}
        self.interpreter = interpreter or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            resolution=raw.get("resolution"),
            schedule=raw.get("schedule"),
            chain=raw.get("chain"),
            sources=raw.get("sources"),
            storage=raw.get("storage"),
            interpreter=raw.get("interpreter"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def acceptance_threshold(self) -> float:
        """Threshold as a percentage (0-100]. Accepts 0.8 or 80 in config."""
        value = float(self.resolution.get("acceptance_threshold", 0.8))
        return round(value * 100, 6) if value <= 1 else value

    @property
    def min_successful_sources(self) -> int:
        return int(self.resolution.get("min_successful_sources", 3))

    @property
    def target_sources(self) -> int:
        return int(self.resolution.get("target_sources", 5))

    @property
    def fetch_timeout_sec(self) -> float:
        return float(self.resolution.get("fetch_timeout_sec", 5.0))

    @property
    def cycle_deadline_sec(self) -> float:
        return float(self.resolution.get("cycle_deadline_sec", 120.0))

    @property
    def default_price_threshold(self) -> float:
        return float(self.resolution.get("default_price_threshold", 60000))

    @property
    def discovery_mode(self) -> str:
        return str(self.resolution.get("discovery", "static")).lower()

    @property
    def cron_schedule(self) -> str:
        return self.schedule.get("cron", "*/5 * * * *")

    @property
    def oracle_address(self) -> str | None:
        return self.chain.get("oracle_address") or None

    @property
    def chain_selector_name(self) -> str:
        return self.chain.get("chain_selector_name", "ethereum-testnet-sepolia")

    @property
    def gas_limit(self) -> int:
        return int(self.chain.get("gas_limit", 500000))

    @property
    def relay_url(self) -> str | None:
        return self.chain.get("relay_url") or None

    @property
    def db_path(self) -> str:
        return self.storage.get("db_path", "data/predresolve.duckdb")

    @property
    def interpreter_url(self) -> str | None:
        return self.interpreter.get("url") or None

    @property
    def interpreter_model(self) -> str:
        return self.interpreter.get("model", "gpt-4o-mini")

    @property
    def interpreter_api_key(self) -> str | None:
        env = self.interpreter.get("api_key_env", "PREDRESOLVE_INTERPRETER_KEY")
        return os.environ.get(env)

    @property
    def interpreter_min_confidence(self) -> float:
        return float(self.interpreter.get("min_confidence", 60))

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)

    def source_overrides(self) -> dict[Category, list[SourceDescriptor]]:
        """Per-category source lists from [sources.<category>] tables."""
        overrides: dict[Category, list[SourceDescriptor]] = {}
        for name, entries in self.sources.items():
            try:
                category = Category(name.lower())
            except ValueError:
                raise ConfigurationError(f"unknown category in [sources]: {name!r}") from None
            if isinstance(entries, dict):
                entries = entries.get("list", [])
            descriptors = []
            for entry in entries:
                kind = str(entry.get("kind", "rest")).lower()
                if kind not in {k.value for k in FetchKind}:
                    raise ConfigurationError(f"unknown fetch kind {kind!r} for source {entry.get('name')!r}")
                try:
                    descriptors.append(SourceDescriptor.model_validate({**entry, "kind": kind}))
                except ValueError as e:
                    raise ConfigurationError(f"invalid source in [sources.{name}]: {e}") from e
            overrides[category] = descriptors
        return overrides

    def validate(self, require_chain: bool = False) -> Settings:
        """Raise ConfigurationError on any invalid option. Call once at startup."""
        threshold = self.acceptance_threshold
        if not 0 < threshold <= 100:
            raise ConfigurationError(f"acceptance_threshold out of range: {threshold}")
        if self.target_sources < 1:
            raise ConfigurationError("target_sources must be >= 1")
        if not 1 <= self.min_successful_sources <= self.target_sources:
            raise ConfigurationError(
                f"min_successful_sources must be in [1, {self.target_sources}], "
                f"got {self.min_successful_sources}"
            )
        if self.fetch_timeout_sec <= 0 or self.cycle_deadline_sec <= 0:
            raise ConfigurationError("timeouts must be positive")
        if self.discovery_mode not in DISCOVERY_MODES:
            raise ConfigurationError(f"unknown discovery mode: {self.discovery_mode!r}")
        if self.discovery_mode == "dynamic" and not self.interpreter_url:
            raise ConfigurationError("dynamic discovery requires [interpreter] url")
        if require_chain and not (self.oracle_address and self.relay_url):
            raise ConfigurationError("[chain] oracle_address and relay_url are required for chain writes")
        self.source_overrides()
        return self


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
