"""
Factory configuration snapshot and YAML loader.

The configuration is an immutable value. Operations read the snapshot current
at their start; privileged setters on the factory replace it wholesale, so
already-settled fees are never affected retroactively.

YAML layout (all keys optional)::

    fee_tiers:
      40: 8                      # swap_fee_units: tick_distance
      300: {tick_distance: 60, max_tick_liquidity: 10000000000}
    fee_to: "0xfee..."
    government_fee_units: 500
    vesting_period: 100
    whitelist_enabled: false
    nft_managers: ["0xabc..."]
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..errors import ConfigError, ErrorKind
from ..kernels.constants import FEE_UNITS, MAX_GOVERNMENT_FEE_UNITS, UINT128_MAX
from ..kernels.tick_math import get_max_number_ticks


MAX_TICK_DISTANCE_SETTING = 16384

DEFAULT_FEE_TIERS = {8: 1, 10: 1, 40: 8, 300: 60, 1000: 200}
DEFAULT_VESTING_PERIOD = 100


def _require_int(name: str, value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigError(ErrorKind.INVALID_CONFIG, f"{name} must be an int, got {value!r}")
    return value


def default_max_tick_liquidity(tick_distance: int) -> int:
    """Per-tick gross liquidity cap: uint128 spread evenly over every usable tick."""
    return UINT128_MAX // get_max_number_ticks(tick_distance)


@dataclass(frozen=True)
class FeeTier:
    swap_fee_units: int
    tick_distance: int
    max_tick_liquidity: Optional[int] = None

    def __post_init__(self) -> None:
        if not (0 < self.swap_fee_units < FEE_UNITS):
            raise ConfigError(ErrorKind.INVALID_FEE, f"swap_fee_units {self.swap_fee_units}")
        if not (0 < self.tick_distance <= MAX_TICK_DISTANCE_SETTING):
            raise ConfigError(ErrorKind.INVALID_TICK_DISTANCE, f"tick_distance {self.tick_distance}")
        if self.max_tick_liquidity is not None and not (0 < self.max_tick_liquidity <= UINT128_MAX):
            raise ConfigError(ErrorKind.INVALID_CONFIG, f"max_tick_liquidity {self.max_tick_liquidity}")

    @property
    def max_liquidity_per_tick(self) -> int:
        if self.max_tick_liquidity is not None:
            return self.max_tick_liquidity
        return default_max_tick_liquidity(self.tick_distance)


def _default_tiers() -> Mapping[int, FeeTier]:
    return {fee: FeeTier(fee, distance) for fee, distance in DEFAULT_FEE_TIERS.items()}


@dataclass(frozen=True)
class FactoryConfig:
    """
    Attributes:
        fee_tiers: swap_fee_units -> FeeTier
        fee_to: Protocol fee recipient, None when disabled
        government_fee_units: Share of reinvested fees skimmed to fee_to, in fee units
        vesting_period: Anti-snipe vesting period in seconds (0 disables vesting)
        whitelist_enabled: Restrict minting to whitelisted position managers
        nft_managers: Whitelisted position managers
    """
    fee_tiers: Mapping[int, FeeTier] = field(default_factory=_default_tiers)
    fee_to: Optional[str] = None
    government_fee_units: int = 0
    vesting_period: int = DEFAULT_VESTING_PERIOD
    whitelist_enabled: bool = False
    nft_managers: frozenset = frozenset()

    def __post_init__(self) -> None:
        for fee, tier in self.fee_tiers.items():
            if fee != tier.swap_fee_units:
                raise ConfigError(ErrorKind.INVALID_CONFIG, f"fee tier key {fee} != {tier.swap_fee_units}")
        validate_fee_configuration(self.fee_to, self.government_fee_units)
        if self.vesting_period < 0:
            raise ConfigError(ErrorKind.INVALID_CONFIG, f"vesting_period {self.vesting_period}")

    def tier(self, swap_fee_units: int) -> Optional[FeeTier]:
        return self.fee_tiers.get(swap_fee_units)

    def with_fee_tier(self, tier: FeeTier) -> "FactoryConfig":
        tiers = dict(self.fee_tiers)
        tiers[tier.swap_fee_units] = tier
        return replace(self, fee_tiers=tiers)

    def is_whitelisted(self, manager: str) -> bool:
        return not self.whitelist_enabled or manager in self.nft_managers


def validate_fee_configuration(fee_to: Optional[str], government_fee_units: int) -> None:
    """A recipient and a non-zero rate go together; neither is allowed alone."""
    _require_int("government_fee_units", government_fee_units)
    if not (0 <= government_fee_units <= MAX_GOVERNMENT_FEE_UNITS):
        raise ConfigError(ErrorKind.INVALID_FEE, f"government_fee_units {government_fee_units}")
    if (fee_to is None) != (government_fee_units == 0):
        raise ConfigError(ErrorKind.BAD_CONFIG, f"fee_to={fee_to!r} government_fee_units={government_fee_units}")


def _parse_tier(fee: Any, value: Any) -> FeeTier:
    fee = _require_int("fee tier key", fee)
    if isinstance(value, Mapping):
        unknown = set(value) - {"tick_distance", "max_tick_liquidity"}
        if unknown:
            raise ConfigError(ErrorKind.INVALID_CONFIG, f"unknown fee tier keys {sorted(unknown)}")
        distance = _require_int("tick_distance", value.get("tick_distance"))
        cap = value.get("max_tick_liquidity")
        return FeeTier(fee, distance, None if cap is None else _require_int("max_tick_liquidity", cap))
    return FeeTier(fee, _require_int("tick_distance", value))


_KNOWN_KEYS = {
    "fee_tiers",
    "fee_to",
    "government_fee_units",
    "vesting_period",
    "whitelist_enabled",
    "nft_managers",
}


def config_from_mapping(obj: Optional[Mapping[str, Any]]) -> FactoryConfig:
    if obj is None:
        return FactoryConfig()
    if not isinstance(obj, Mapping):
        raise ConfigError(ErrorKind.INVALID_CONFIG, "configuration must be a mapping")
    unknown = set(obj) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(ErrorKind.INVALID_CONFIG, f"unknown keys {sorted(unknown)}")

    kwargs: dict[str, Any] = {}
    if "fee_tiers" in obj:
        tiers_obj = obj["fee_tiers"]
        if not isinstance(tiers_obj, Mapping):
            raise ConfigError(ErrorKind.INVALID_CONFIG, "fee_tiers must be a mapping")
        kwargs["fee_tiers"] = {tier.swap_fee_units: tier for tier in (_parse_tier(k, v) for k, v in tiers_obj.items())}
    if obj.get("fee_to") is not None:
        if not isinstance(obj["fee_to"], str):
            raise ConfigError(ErrorKind.INVALID_CONFIG, "fee_to must be a string")
        kwargs["fee_to"] = obj["fee_to"]
    if "government_fee_units" in obj:
        kwargs["government_fee_units"] = _require_int("government_fee_units", obj["government_fee_units"])
    if "vesting_period" in obj:
        kwargs["vesting_period"] = _require_int("vesting_period", obj["vesting_period"])
    if "whitelist_enabled" in obj:
        if not isinstance(obj["whitelist_enabled"], bool):
            raise ConfigError(ErrorKind.INVALID_CONFIG, "whitelist_enabled must be a bool")
        kwargs["whitelist_enabled"] = obj["whitelist_enabled"]
    if "nft_managers" in obj:
        managers = obj["nft_managers"] or []
        if not isinstance(managers, list) or not all(isinstance(m, str) for m in managers):
            raise ConfigError(ErrorKind.INVALID_CONFIG, "nft_managers must be a list of strings")
        kwargs["nft_managers"] = frozenset(managers)
    return FactoryConfig(**kwargs)


def load_config(path: str | Path) -> FactoryConfig:
    """Load a FactoryConfig from a YAML file."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        obj = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(ErrorKind.INVALID_CONFIG, f"{path}: {exc}") from exc
    return config_from_mapping(obj)
