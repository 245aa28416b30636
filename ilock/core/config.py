"""
ilock engine configuration loader.

Layered, with clear precedence:
    1) Explicit overrides passed to `load_config()` (highest)
    2) Environment variables (ILOCK_*)
    3) Config file (TOML or JSON)
    4) Built-in defaults (lowest)

Only deployment knobs live here: token metadata, multisig quorum and
staleness window, the period clock, and log settings. The pool table and the
supply cap are constants of the token and are deliberately not configurable.

Durations accept a small language: "600000" (milliseconds), "250ms", "10s",
"10m", "3h", "30d".
"""

from __future__ import annotations

import json
import os
import re
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ilock.core.errors import ConfigError
from ilock.governance.multisig import THRESHOLD_MIN, TIME_LIMIT_MIN
from ilock.runtime.env import ManualClock, TimestampClock

# ------------------------------
# Defaults & helpers
# ------------------------------

DEFAULT_TOKEN_NAME = "Interlock Network"
DEFAULT_TOKEN_SYMBOL = "ILOCK"
DEFAULT_PERIOD_MS = 2_592_000_000  # 30 days
DEFAULT_TIMELIMIT_MS = TIME_LIMIT_MIN

_DURATION_RE = re.compile(r"^\s*(\d+)\s*(ms|[smhd]?)\s*$", re.IGNORECASE)


def _parse_duration_ms(value: Any) -> int:
    """
    Parse a duration into integer milliseconds.
      600000 / "600000" -> 600000
      "250ms" -> 250, "2s" -> 2000, "5m", "3h", "30d"
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    m = _DURATION_RE.match(str(value))
    if not m:
        raise ConfigError(f"invalid duration: {value!r}", value=str(value))
    num = int(m.group(1))
    unit = m.group(2).lower()
    mult = {"": 1, "ms": 1, "s": 1_000, "m": 60_000, "h": 3_600_000, "d": 86_400_000}[unit]
    return num * mult


def _env_int(name: str, default: int) -> int:
    v = os.environ.get(name)
    if v is None or v == "":
        return default
    try:
        return int(v, 0)
    except ValueError as e:
        raise ConfigError(f"{name} must be int, got {v!r}", variable=name) from e


def _expand(p: str | Path) -> Path:
    return Path(p).expanduser().resolve()


# ------------------------------
# Typed configuration model
# ------------------------------


@dataclass(frozen=True)
class TokenConfig:
    name: str = DEFAULT_TOKEN_NAME
    symbol: str = DEFAULT_TOKEN_SYMBOL


@dataclass(frozen=True)
class MultisigConfig:
    threshold: int = THRESHOLD_MIN
    timelimit_ms: int = DEFAULT_TIMELIMIT_MS


@dataclass(frozen=True)
class ClockConfig:
    period_ms: int = DEFAULT_PERIOD_MS
    genesis_ms: int = 0


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    format: Optional[str] = None  # "json" | "text" | None (auto)
    file: Optional[str] = None


@dataclass(frozen=True)
class EngineConfig:
    token: TokenConfig = field(default_factory=TokenConfig)
    multisig: MultisigConfig = field(default_factory=MultisigConfig)
    clock: ClockConfig = field(default_factory=ClockConfig)
    log: LogConfig = field(default_factory=LogConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_SECTIONS = {"token": TokenConfig, "multisig": MultisigConfig, "clock": ClockConfig, "log": LogConfig}


# ------------------------------
# File loader (TOML / JSON)
# ------------------------------


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}", path=str(path))
    suffix = path.suffix.lower()
    with path.open("rb") as f:
        try:
            if suffix in {".toml", ".tml"}:
                return tomllib.load(f)
            if suffix == ".json":
                return json.load(f)
        except (tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
            raise ConfigError(f"malformed config file: {e}", path=str(path)) from e
    raise ConfigError(f"unsupported config format: {suffix}", path=str(path))


def _merge_dict(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """Nested dict merge: values in b override a."""
    out = dict(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge_dict(out[k], v)
        else:
            out[k] = v
    return out


def _env_layer() -> Dict[str, Any]:
    env: Dict[str, Dict[str, Any]] = {"token": {}, "multisig": {}, "clock": {}, "log": {}}
    if "ILOCK_TOKEN_NAME" in os.environ:
        env["token"]["name"] = os.environ["ILOCK_TOKEN_NAME"].strip()
    if "ILOCK_TOKEN_SYMBOL" in os.environ:
        env["token"]["symbol"] = os.environ["ILOCK_TOKEN_SYMBOL"].strip()
    if "ILOCK_THRESHOLD" in os.environ:
        env["multisig"]["threshold"] = _env_int("ILOCK_THRESHOLD", THRESHOLD_MIN)
    if "ILOCK_TIMELIMIT" in os.environ:
        env["multisig"]["timelimit_ms"] = os.environ["ILOCK_TIMELIMIT"]
    if "ILOCK_PERIOD" in os.environ:
        env["clock"]["period_ms"] = os.environ["ILOCK_PERIOD"]
    if "ILOCK_GENESIS_MS" in os.environ:
        env["clock"]["genesis_ms"] = _env_int("ILOCK_GENESIS_MS", 0)
    if "ILOCK_LOG_LEVEL" in os.environ:
        env["log"]["level"] = os.environ["ILOCK_LOG_LEVEL"].strip().upper()
    if "ILOCK_LOG_FORMAT" in os.environ:
        env["log"]["format"] = os.environ["ILOCK_LOG_FORMAT"].strip().lower()
    return {k: v for k, v in env.items() if v}


# ------------------------------
# Main loader
# ------------------------------


def load_config(
    config_file: Optional[str | Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> EngineConfig:
    """
    Load the engine configuration.

    Precedence: overrides > env > file > defaults.

    Parameters
    ----------
    config_file : str | Path | None
        Optional TOML or JSON file with sections:
          token:    { name, symbol }
          multisig: { threshold, timelimit_ms }
          clock:    { period_ms, genesis_ms }
          log:      { level, format, file }
    overrides : dict | None
        Nested overrides, e.g. {"multisig": {"threshold": 3}}.
    """
    base: Dict[str, Any] = EngineConfig().to_dict()

    if config_file:
        base = _merge_dict(base, _load_file(_expand(config_file)))
    base = _merge_dict(base, _env_layer())
    if overrides:
        base = _merge_dict(base, overrides)

    unknown = set(base) - set(_SECTIONS)
    if unknown:
        raise ConfigError("unknown config sections", sections=sorted(unknown))
    for name, section in _SECTIONS.items():
        if not isinstance(base[name], dict):
            raise ConfigError(f"config section [{name}] must be a table", section=name)
        extra = set(base[name]) - {f.name for f in fields(section)}
        if extra:
            raise ConfigError(f"unknown keys in [{name}]", section=name, keys=sorted(extra))

    try:
        cfg = EngineConfig(
            token=TokenConfig(**base["token"]),
            multisig=MultisigConfig(
                threshold=int(base["multisig"]["threshold"]),
                timelimit_ms=_parse_duration_ms(base["multisig"]["timelimit_ms"]),
            ),
            clock=ClockConfig(
                period_ms=_parse_duration_ms(base["clock"]["period_ms"]),
                genesis_ms=int(base["clock"]["genesis_ms"]),
            ),
            log=LogConfig(**base["log"]),
        )
    except (TypeError, ValueError, KeyError) as e:
        raise ConfigError(f"invalid configuration: {e}") from e

    _validate_config(cfg)
    return cfg


def _validate_config(cfg: EngineConfig) -> None:
    if not cfg.token.name or not cfg.token.symbol:
        raise ConfigError("token name and symbol must be non-empty")
    if cfg.multisig.threshold < THRESHOLD_MIN:
        raise ConfigError(
            "threshold below minimum", threshold=cfg.multisig.threshold, minimum=THRESHOLD_MIN
        )
    if cfg.multisig.timelimit_ms < TIME_LIMIT_MIN:
        raise ConfigError(
            "time limit below minimum", timelimit_ms=cfg.multisig.timelimit_ms, minimum=TIME_LIMIT_MIN
        )
    if cfg.clock.period_ms <= 0:
        raise ConfigError("period must be positive", period_ms=cfg.clock.period_ms)
    if cfg.clock.genesis_ms < 0:
        raise ConfigError("genesis timestamp must be non-negative", genesis_ms=cfg.clock.genesis_ms)
    if cfg.log.format not in (None, "json", "text"):
        raise ConfigError("log format must be json or text", format=cfg.log.format)


# ------------------------------
# Clock construction
# ------------------------------


def build_clock(cfg: ClockConfig, *, manual: bool = False) -> Union[ManualClock, TimestampClock]:
    """
    Host clock for `cfg`: wall-clock periods counted from `genesis_ms`, or a
    `ManualClock` starting at genesis for simulations.
    """
    if manual:
        return ManualClock(period_ms=cfg.period_ms, genesis_ms=cfg.genesis_ms)
    return TimestampClock(genesis_ms=cfg.genesis_ms, period_ms=cfg.period_ms)


__all__ = [
    "DEFAULT_TOKEN_NAME",
    "DEFAULT_TOKEN_SYMBOL",
    "DEFAULT_PERIOD_MS",
    "TokenConfig",
    "MultisigConfig",
    "ClockConfig",
    "LogConfig",
    "EngineConfig",
    "load_config",
    "build_clock",
]
