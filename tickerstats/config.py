"""
Engine configuration.

Defaults describe the simulated feed: five tickers, one tick every ten
seconds and one hour (360 ticks) of retained history. Values can be
overridden from a YAML file and then from TICKERSTATS_* environment
variables.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional, Tuple, Union

import yaml

from tickerstats.analytics.window import MAX_LOOKBACK_MINUTES
from tickerstats.errors import ConfigError

DEFAULT_SYMBOLS = ("AAPL", "GOOGL", "TSLA", "MSFT", "AMZN")

ENV_PREFIX = "TICKERSTATS_"
ENV_OVERRIDES = {
    "SYMBOLS": "symbols",
    "CAPACITY": "capacity",
    "TICK_INTERVAL": "tick_interval_seconds",
    "MAX_LOOKBACK": "max_lookback_minutes",
    "FETCH_TIMEOUT": "fetch_timeout_seconds",
    "SEED": "seed",
    "LOG_LEVEL": "log_level",
}


def _normalize_symbols(symbols) -> Tuple[str, ...]:
    if isinstance(symbols, str):
        symbols = symbols.split(",")
    normalized = []
    for symbol in symbols:
        symbol = str(symbol).strip().upper()
        if symbol and symbol not in normalized:
            normalized.append(symbol)
    return tuple(normalized)


@dataclass
class EngineConfig:
    """
    Settings shared by the store, the ingestion driver and the API.

    Representation Invariants:
        - symbols is a non-empty tuple of unique upper-case strings
        - capacity > 0
        - tick_interval_seconds > 0
        - 0 < max_lookback_minutes <= MAX_LOOKBACK_MINUTES
        - capacity * tick_interval_seconds covers max_lookback_minutes
        - fetch_timeout_seconds > 0
    """
    symbols: Tuple[str, ...] = DEFAULT_SYMBOLS
    capacity: int = 360
    tick_interval_seconds: float = 10.0
    max_lookback_minutes: float = 60.0
    fetch_timeout_seconds: float = 0.5
    seed: Optional[int] = None
    log_level: str = "INFO"

    def __post_init__(self):
        """Coerce and validate field values."""
        self.symbols = _normalize_symbols(self.symbols)
        if not self.symbols:
            raise ConfigError("at least one symbol must be configured")
        try:
            self.capacity = int(self.capacity)
            self.tick_interval_seconds = float(self.tick_interval_seconds)
            self.max_lookback_minutes = float(self.max_lookback_minutes)
            self.fetch_timeout_seconds = float(self.fetch_timeout_seconds)
            if self.seed is not None:
                self.seed = int(self.seed)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid configuration value: {e}") from e
        if self.capacity <= 0:
            raise ConfigError("capacity must be positive")
        if self.tick_interval_seconds <= 0:
            raise ConfigError("tick_interval_seconds must be positive")
        if self.max_lookback_minutes <= 0:
            raise ConfigError("max_lookback_minutes must be positive")
        if self.max_lookback_minutes > MAX_LOOKBACK_MINUTES:
            raise ConfigError(
                f"max_lookback_minutes must be at most {MAX_LOOKBACK_MINUTES}, "
                f"got {self.max_lookback_minutes:g}"
            )
        if self.fetch_timeout_seconds <= 0:
            raise ConfigError("fetch_timeout_seconds must be positive")
        retained_minutes = self.capacity * self.tick_interval_seconds / 60
        if retained_minutes < self.max_lookback_minutes:
            raise ConfigError(
                f"capacity {self.capacity} at {self.tick_interval_seconds:g}s ticks retains "
                f"{retained_minutes:g} min, less than max_lookback_minutes "
                f"{self.max_lookback_minutes:g}"
            )
        self.log_level = str(self.log_level).upper()


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None
) -> EngineConfig:
    """
    Build an EngineConfig from an optional YAML file and the environment.

    Precedence (highest first): environment variables, YAML file, defaults.

    Args:
        path: Optional YAML file with top-level keys matching EngineConfig fields
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated EngineConfig

    Raises:
        ConfigError: If the file is unreadable, malformed or has unknown keys,
            or if any resulting value is invalid
    """
    environ = os.environ if environ is None else environ
    values = {}

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"config file not found: {config_path}")
        try:
            with open(config_path) as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"failed to parse {config_path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_path} must contain a mapping")

        known = {f.name for f in fields(EngineConfig)}
        unknown = sorted(set(loaded) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
        values.update(loaded)

    for suffix, name in ENV_OVERRIDES.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is not None and raw != "":
            values[name] = raw

    return EngineConfig(**values)
