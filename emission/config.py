from __future__ import annotations
"""
emission.config — configuration for linear emission streams

Covers:
- The emission schedule (window, per-entity allocation, entity count)
- Role holders (owner, depositor, optional operator)
- The payout token as shown by tooling (symbol, decimals)
- The contract's own address (delegation scope and deposit target)
- Log level for the CLI

Environment overrides (all optional; sensible defaults provided):

  # Schedule (UNIX seconds; raw token units)
  EMISSION_START_TIME=1700000000
  EMISSION_END_TIME=1731536000
  EMISSION_ALLOCATION_PER_ENTITY=1000000000000000000000
  EMISSION_ENTITY_COUNT=10000

  # Roles (0x-prefixed 20-byte hex addresses)
  EMISSION_OWNER=0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa
  EMISSION_DEPOSITOR=0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb
  EMISSION_OPERATOR=0x0000000000000000000000000000000000000000

  # Token / deployment
  EMISSION_TOKEN_SYMBOL=ANM
  EMISSION_TOKEN_DECIMALS=18
  EMISSION_CONTRACT_ADDRESS=0xcccccccccccccccccccccccccccccccccccccccc

  EMISSION_LOG_LEVEL=INFO

You can also load from a JSON or YAML file via `EMISSION_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file.
"""


from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional
import json
import logging
import os
from pathlib import Path

import yaml

from emission.errors import ConfigError, InputError
from emission.types import (ZERO_ADDRESS, StreamConfig, normalize_address,
                            require_nonzero_address)


# -------------------------- Data classes --------------------------


@dataclass
class ScheduleParams:
    """Emission window and per-entity allocation (raw token units)."""
    start_time: int = 1_700_000_000
    end_time: int = 1_731_536_000                          # start + 365 days
    allocation_per_entity: int = 1_000 * 10**18
    entity_count: int = 10_000

    def validate(self) -> StreamConfig:
        # StreamConfig.create raises the specific ConfigError subclasses.
        return StreamConfig.create(
            start_time=self.start_time,
            end_time=self.end_time,
            allocation_per_entity=self.allocation_per_entity,
            entity_count=self.entity_count,
        )


@dataclass
class RoleParams:
    owner: str = "0x" + "aa" * 20
    depositor: str = "0x" + "bb" * 20
    operator: str = ZERO_ADDRESS     # zero means "no operator"

    def validate(self) -> None:
        try:
            require_nonzero_address(self.owner, "owner")
            require_nonzero_address(self.depositor, "depositor")
            normalize_address(self.operator)
        except InputError as e:
            raise ConfigError(f"invalid role address: {e.message}", details=e.details) from e


@dataclass
class TokenParams:
    """Informational; the engine itself never scales amounts."""
    symbol: str = "ANM"
    decimals: int = 18

    def validate(self) -> None:
        if not self.symbol:
            raise ConfigError("token symbol must not be empty")
        if not (0 <= self.decimals <= 36):
            raise ConfigError("token decimals must be in [0, 36]", details={"decimals": self.decimals})


@dataclass
class EmissionConfig:
    """Top-level configuration container."""
    schedule: ScheduleParams = field(default_factory=ScheduleParams)
    roles: RoleParams = field(default_factory=RoleParams)
    token: TokenParams = field(default_factory=TokenParams)

    contract_address: str = "0x" + "cc" * 20
    log_level: str = "INFO"

    def validate(self) -> None:
        self.schedule.validate()
        self.roles.validate()
        self.token.validate()
        try:
            require_nonzero_address(self.contract_address, "contract_address")
        except InputError as e:
            raise ConfigError(f"invalid contract address: {e.message}", details=e.details) from e
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError("unknown log level", details={"log_level": self.log_level})

    def stream_config(self) -> StreamConfig:
        return self.schedule.validate()

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        return d


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except ValueError as e:
        raise ConfigError(f"Invalid int for {name}: {v!r}") from e


def _getenv_str(name: str, default: str) -> str:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip()


def from_env(base: Optional[EmissionConfig] = None, prefix: str = "EMISSION_") -> EmissionConfig:
    """
    Build an EmissionConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or EmissionConfig()

    # Schedule
    start = _getenv_int(f"{prefix}START_TIME", cfg.schedule.start_time)
    end = _getenv_int(f"{prefix}END_TIME", cfg.schedule.end_time)
    alloc = _getenv_int(f"{prefix}ALLOCATION_PER_ENTITY", cfg.schedule.allocation_per_entity)
    count = _getenv_int(f"{prefix}ENTITY_COUNT", cfg.schedule.entity_count)

    # Roles
    owner = _getenv_str(f"{prefix}OWNER", cfg.roles.owner)
    depositor = _getenv_str(f"{prefix}DEPOSITOR", cfg.roles.depositor)
    operator = _getenv_str(f"{prefix}OPERATOR", cfg.roles.operator)

    new_cfg = EmissionConfig(
        schedule=ScheduleParams(start_time=start, end_time=end, allocation_per_entity=alloc, entity_count=count),
        roles=RoleParams(owner=owner, depositor=depositor, operator=operator),
        token=TokenParams(
            symbol=_getenv_str(f"{prefix}TOKEN_SYMBOL", cfg.token.symbol),
            decimals=_getenv_int(f"{prefix}TOKEN_DECIMALS", cfg.token.decimals),
        ),
        contract_address=_getenv_str(f"{prefix}CONTRACT_ADDRESS", cfg.contract_address),
        log_level=_getenv_str(f"{prefix}LOG_LEVEL", cfg.log_level).upper(),
    )
    new_cfg.validate()
    return new_cfg


def from_file(path: str | os.PathLike[str]) -> EmissionConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    try:
        if p.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text or "{}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"unparseable config file {p}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {p} must contain a mapping")

    def pick(dct: Dict[str, Any], key: str, default: Any) -> Any:
        return dct.get(key, default)

    schedule = data.get("schedule", {})
    roles = data.get("roles", {})
    token = data.get("token", {})

    cfg = EmissionConfig(
        schedule=ScheduleParams(
            start_time=int(pick(schedule, "start_time", ScheduleParams().start_time)),
            end_time=int(pick(schedule, "end_time", ScheduleParams().end_time)),
            allocation_per_entity=int(pick(schedule, "allocation_per_entity", ScheduleParams().allocation_per_entity)),
            entity_count=int(pick(schedule, "entity_count", ScheduleParams().entity_count)),
        ),
        roles=RoleParams(
            owner=str(pick(roles, "owner", RoleParams().owner)),
            depositor=str(pick(roles, "depositor", RoleParams().depositor)),
            operator=str(pick(roles, "operator", RoleParams().operator)),
        ),
        token=TokenParams(
            symbol=str(pick(token, "symbol", TokenParams().symbol)),
            decimals=int(pick(token, "decimals", TokenParams().decimals)),
        ),
        contract_address=str(pick(data, "contract_address", EmissionConfig().contract_address)),
        log_level=str(pick(data, "log_level", EmissionConfig().log_level)).upper(),
    )
    cfg.validate()
    return cfg


def load() -> EmissionConfig:
    """
    Load configuration using the following precedence:
      1) File at $EMISSION_CONFIG_FILE (JSON/YAML)
      2) Environment variables (EMISSION_*), applied on top of defaults or file values
    """
    file_path = os.getenv("EMISSION_CONFIG_FILE")
    base = from_file(file_path) if file_path else EmissionConfig()
    return from_env(base=base)


# -------------------------- Utilities --------------------------


def pretty(cfg: Optional[EmissionConfig] = None) -> str:
    """Return a human-readable JSON string of the current config."""
    c = cfg or load()
    obj = c.to_dict()
    sc = c.stream_config()
    obj["derived"] = {
        "emission_rate_per_second": sc.emission_rate_per_second,
        "total_allocation": sc.total_allocation,
    }
    return json.dumps(obj, indent=2, sort_keys=True)


__all__ = [
    "ScheduleParams",
    "RoleParams",
    "TokenParams",
    "EmissionConfig",
    "from_env",
    "from_file",
    "load",
    "pretty",
]
