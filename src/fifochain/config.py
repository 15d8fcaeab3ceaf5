"""Configuration system — loads TOML config into typed dataclasses."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

from fifochain.types import Stage, ZeroCostPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "config" / "default.toml"


@dataclass
class CurrencyConfig:
    """Currency codes for the four points of the chain A -> B -> C -> D."""

    origin: str = "USD"
    intermediate: str = "COP"
    final: str = "USDT"
    settlement: str = "USD"

    def pair(self, stage: Stage) -> tuple[str, str]:
        """(spent, received) currency codes for a stage."""
        if stage == Stage.ACQUIRE:
            return self.origin, self.intermediate
        if stage == Stage.CONVERT:
            return self.intermediate, self.final
        return self.final, self.settlement

    def stage_label(self, stage: Stage) -> str:
        spent, received = self.pair(stage)
        return f"{spent}-{received}".lower()


@dataclass
class EngineConfig:
    epsilon: Decimal = Decimal("0.0001")  # lot exhaustion / shortfall threshold
    zero_cost_policy: str = ZeroCostPolicy.DROP.value  # "drop" or "create"

    @property
    def policy(self) -> ZeroCostPolicy:
        return ZeroCostPolicy(self.zero_cost_policy)


@dataclass
class DisplayConfig:
    """Number formatting for reports (es-CO grouping by default)."""

    decimal_places: int = 2
    thousands_sep: str = "."
    decimal_sep: str = ","


@dataclass
class Config:
    log_level: str = "INFO"
    currencies: CurrencyConfig = field(default_factory=CurrencyConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)


class ConfigError(ValueError):
    """Raised when configuration validation fails."""


def _apply_toml_section(obj: object, data: dict) -> None:  # type: ignore[type-arg]
    """Recursively apply TOML dict values onto a dataclass instance."""
    for key, value in data.items():
        if not hasattr(obj, key):
            logger.warning("Unknown config key: %s", key)
            continue
        current = getattr(obj, key)
        if isinstance(value, dict) and hasattr(current, "__dataclass_fields__"):
            _apply_toml_section(current, value)
        elif isinstance(current, Decimal):
            try:
                setattr(obj, key, Decimal(str(value)))
            except InvalidOperation as e:
                raise ConfigError(f"Invalid configuration: {key} must be a number, got {value!r}") from e
        else:
            setattr(obj, key, value)


def validate_config(cfg: Config) -> list[str]:
    """Validate config values and return list of errors (empty = valid)."""
    errors: list[str] = []

    # Engine
    if not cfg.engine.epsilon.is_finite() or cfg.engine.epsilon <= 0:
        errors.append("engine.epsilon must be a finite number > 0")
    elif cfg.engine.epsilon >= 1:
        errors.append("engine.epsilon must be < 1")
    if cfg.engine.zero_cost_policy not in ("drop", "create"):
        errors.append("engine.zero_cost_policy must be 'drop' or 'create'")

    # Currencies
    for name in ("origin", "intermediate", "final", "settlement"):
        if not getattr(cfg.currencies, name).strip():
            errors.append(f"currencies.{name} must not be empty")

    # Display
    if not (0 <= cfg.display.decimal_places <= 12):
        errors.append("display.decimal_places must be in [0, 12]")
    if cfg.display.thousands_sep == cfg.display.decimal_sep:
        errors.append("display.thousands_sep must differ from display.decimal_sep")
    if not cfg.display.decimal_sep:
        errors.append("display.decimal_sep must not be empty")

    if cfg.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        errors.append("log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")

    return errors


def load_config(path: Path | None = None) -> Config:
    """Load config from TOML file, falling back to defaults."""
    cfg = Config()
    config_path = path or DEFAULT_CONFIG_PATH
    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid configuration file {config_path}: {e}") from e
        _apply_toml_section(cfg, data)
        logger.info("Loaded config from %s", config_path)
    else:
        logger.info("No config file at %s, using defaults", config_path)

    errors = validate_config(cfg)
    if errors:
        for err in errors:
            logger.error("Config validation error: %s", err)
        raise ConfigError(f"Invalid configuration: {'; '.join(errors)}")

    return cfg
