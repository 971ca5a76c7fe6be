"""
Configuration module

YAML settings with per-environment overrides
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from rankfolio.core.exceptions import ConfigurationError, ConfigNotFoundError


class Config:
    """
    Settings manager

    Usage:
        config = Config()  # development by default
        config = Config(env="production")

        tie_method = config.get("ranking.tie_method")
        size = config.get("backtest.portfolio_size", default=10)
    """

    _instance: "Config | None" = None
    _initialized: bool = False

    def __new__(cls, *args, **kwargs) -> "Config":
        """Singleton"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, env: str | None = None, config_dir: Path | None = None):
        if Config._initialized:
            return

        load_dotenv()

        # argument > environment variable > default
        self.env = env or os.getenv("APP_ENV", "development")

        if config_dir:
            self.config_dir = config_dir
        else:
            # <project root>/config
            self.config_dir = Path(__file__).parent.parent.parent / "config"

        self._config: dict[str, Any] = {}
        self._load_config()

        Config._initialized = True

    def _load_config(self) -> None:
        """Load base settings, then environment overrides"""
        base_config_path = self.config_dir / "settings.yaml"
        if base_config_path.exists():
            self._config = self._load_yaml(base_config_path)
        else:
            raise ConfigNotFoundError(
                f"Base settings file not found: {base_config_path}"
            )

        env_config_path = self.config_dir / f"settings.{self.env}.yaml"
        if env_config_path.exists():
            env_config = self._load_yaml(env_config_path)
            self._deep_merge(self._config, env_config)

        self._apply_env_overrides()

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load one YAML file"""
        try:
            with open(path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"YAML parse error: {path}", {"error": str(e)})

    def _deep_merge(self, base: dict, override: dict) -> None:
        """Deep merge (override wins)"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _apply_env_overrides(self) -> None:
        """Environment overrides with the RANKFOLIO_ prefix"""
        for key, value in os.environ.items():
            if key.startswith("RANKFOLIO_"):
                # RANKFOLIO_DATABASE_URL -> database.url
                config_key = key[10:].lower().replace("_", ".")
                self._set_nested(config_key, value)

    def _set_nested(self, key: str, value: Any) -> None:
        """Set a nested value using dot notation"""
        keys = key.split(".")
        current = self._config

        for k in keys[:-1]:
            if k not in current or not isinstance(current[k], dict):
                current[k] = {}
            current = current[k]

        current[keys[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a value (dot notation)

        Args:
            key: settings key (e.g. "backtest.initial_value")
            default: returned when the key is missing

        Returns:
            the value or the default
        """
        keys = key.split(".")
        current = self._config

        for k in keys:
            if isinstance(current, dict) and k in current:
                current = current[k]
            else:
                return default

        return current

    def get_required(self, key: str) -> Any:
        """
        Look up a required value

        Raises:
            ConfigurationError: when the key is missing
        """
        value = self.get(key)
        if value is None:
            raise ConfigurationError(f"Required setting missing: {key}")
        return value

    def get_section(self, section: str) -> dict[str, Any]:
        """Return a whole section"""
        return self.get(section, {})

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for tests)"""
        cls._instance = None
        cls._initialized = False


def get_config() -> Config:
    """Return the Config instance"""
    return Config()


@dataclass
class BacktestSettings:
    """
    Plain settings object injected into the core

    Core classes never read the Config singleton themselves; the service
    layer builds one of these and passes it down.
    """
    initial_value: float = 10_000.0
    portfolio_size: int = 10
    keep_threshold: int = 20
    horizons: tuple[int, ...] = (1, 2, 3, 4, 5)
    price_max_staleness_days: int = 10
    rebalance_months: int = 3
    tie_method: str = "dense"
    duplicate_symbols: dict[str, str] = field(default_factory=lambda: {"GOOGL": "GOOG"})

    def __post_init__(self) -> None:
        if self.initial_value <= 0:
            raise ConfigurationError(
                "initial_value must be positive", {"initial_value": self.initial_value}
            )
        if self.portfolio_size < 1:
            raise ConfigurationError(
                "portfolio_size must be at least 1", {"portfolio_size": self.portfolio_size}
            )
        if self.keep_threshold < 1:
            raise ConfigurationError(
                "keep_threshold must be at least 1", {"keep_threshold": self.keep_threshold}
            )
        if not self.horizons or any(h < 1 for h in self.horizons):
            raise ConfigurationError("horizons must be positive years", {"horizons": self.horizons})
        if self.rebalance_months < 1 or 12 % self.rebalance_months:
            raise ConfigurationError(
                "rebalance_months must divide 12", {"rebalance_months": self.rebalance_months}
            )
        if self.tie_method not in ("dense", "min"):
            raise ConfigurationError(
                f"Unknown tie method: {self.tie_method}", {"allowed": ["dense", "min"]}
            )

    @classmethod
    def from_config(cls, config: Config | None = None) -> "BacktestSettings":
        """Build from the `backtest` and `ranking` settings sections"""
        config = config or get_config()
        backtest = config.get_section("backtest")
        ranking = config.get_section("ranking")
        defaults = cls()

        return cls(
            initial_value=float(backtest.get("initial_value", defaults.initial_value)),
            portfolio_size=int(backtest.get("portfolio_size", defaults.portfolio_size)),
            keep_threshold=int(backtest.get("keep_threshold", defaults.keep_threshold)),
            horizons=tuple(int(h) for h in backtest.get("horizons", defaults.horizons)),
            price_max_staleness_days=int(
                backtest.get("price_max_staleness_days", defaults.price_max_staleness_days)
            ),
            rebalance_months=int(backtest.get("rebalance_months", defaults.rebalance_months)),
            tie_method=str(ranking.get("tie_method", defaults.tie_method)),
            duplicate_symbols=dict(ranking.get("duplicate_symbols", defaults.duplicate_symbols) or {}),
        )
