import logging
import os
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional, Union

import attrs
import numpy as np
import yaml

from solarfit.sizing_interface import HOURS_PER_DAY, UsageProfile

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = 'site_defaults.yaml'
CONFIG_ENV_VAR = 'SOLARFIT_SITE_CONFIG'


def _read_only(values) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    arr.setflags(write=False)
    return arr


def _read_only_mapping(values) -> Mapping:
    return MappingProxyType(dict(values))


@attrs.frozen
class UsageProfileSpec:
    factor: float
    hourly_pattern: np.ndarray = attrs.field(eq=False)

    @classmethod
    def from_config(cls, name: str, raw: dict) -> 'UsageProfileSpec':
        pattern = np.asarray(raw['hourly_pattern'], dtype=float)
        if pattern.shape != (HOURS_PER_DAY,):
            raise ValueError(f"Usage profile '{name}' must have {HOURS_PER_DAY} hourly fractions, got {pattern.size}")
        if (pattern < 0).any() or pattern.sum() <= 0:
            raise ValueError(f"Usage profile '{name}' must have non-negative fractions with a positive total")
        # Tables are normalised so the hourly buckets always add up to the daily total
        return cls(factor=float(raw['factor']), hourly_pattern=_read_only(pattern / pattern.sum()))


@attrs.frozen
class SiteConfig:
    """
    Fixed sizing assumptions, loaded once from YAML.

    - system_loss_factor: fractional losses added on top of raw consumption (0.2 = 20%)
    - days_per_month: divisor for turning monthly kWh into daily kWh
    - default_sun_hours: sun-hours for locations missing from the table
    - cost_per_watt_kes: installed cost per watt of PV
    - bill_offset_fraction: share of the current bill the system is assumed to offset
    - autonomy_days, depth_of_discharge: battery defaults
    - inverter_safety_factor: headroom over peak load or array size
    - system_voltage, charge_controller_safety_factor: charge-controller sizing
    - locations: location name -> peak sun-hours per day
    - usage_profiles: UsageProfile -> UsageProfileSpec
    """
    system_loss_factor: float
    days_per_month: float
    default_sun_hours: float
    cost_per_watt_kes: float
    bill_offset_fraction: float
    autonomy_days: float
    depth_of_discharge: float
    inverter_safety_factor: float
    system_voltage: float
    charge_controller_safety_factor: float
    locations: Mapping[str, float] = attrs.field(converter=_read_only_mapping)
    usage_profiles: Mapping[UsageProfile, UsageProfileSpec] = attrs.field(converter=_read_only_mapping)

    def __attrs_post_init__(self):
        if self.default_sun_hours <= 0 or any(h <= 0 for h in self.locations.values()):
            raise ValueError("Sun-hours must be positive for every location")
        missing = set(UsageProfile) - set(self.usage_profiles)
        if missing:
            raise ValueError(f"Missing usage profiles in config: {sorted(p.value for p in missing)}")

    @classmethod
    def from_dict(cls, raw: dict) -> 'SiteConfig':
        return cls(
            system_loss_factor=float(raw['system_loss_factor']),
            days_per_month=float(raw['days_per_month']),
            default_sun_hours=float(raw['default_sun_hours']),
            cost_per_watt_kes=float(raw['cost_per_watt_kes']),
            bill_offset_fraction=float(raw['bill_offset_fraction']),
            autonomy_days=float(raw['battery']['autonomy_days']),
            depth_of_discharge=float(raw['battery']['depth_of_discharge']),
            inverter_safety_factor=float(raw['inverter']['safety_factor']),
            system_voltage=float(raw['charge_controller']['system_voltage']),
            charge_controller_safety_factor=float(raw['charge_controller']['safety_factor']),
            locations={name: float(hours) for name, hours in raw['locations'].items()},
            usage_profiles={UsageProfile(name): UsageProfileSpec.from_config(name, spec)
                            for name, spec in raw['usage_profiles'].items()},
        )

    def sun_hours_for(self, location: Optional[str]) -> float:
        """Look up sun-hours for a location, falling back to the default for unknown names."""
        if location:
            key = location.strip().lower()
            for name, hours in self.locations.items():
                if name.lower() == key:
                    return hours
        logger.debug("No sun-hours entry for location %r; using default %.2f", location, self.default_sun_hours)
        return self.default_sun_hours

    def profile(self, usage_profile: Union[UsageProfile, str]) -> UsageProfileSpec:
        return self.usage_profiles[UsageProfile.parse(usage_profile)]


def _resolve_config_path(config_file: Optional[str]) -> str:
    config_file = config_file or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE
    if os.path.isabs(config_file):
        return config_file
    return os.path.join(os.path.dirname(__file__), config_file)


@lru_cache(maxsize=None)
def _load_from_path(yaml_path: str) -> SiteConfig:
    with open(yaml_path, 'r') as f:
        raw = yaml.safe_load(f)
    return SiteConfig.from_dict(raw)


def load_site_config(config_file: Optional[str] = None) -> SiteConfig:
    """
    Load the site configuration YAML. Relative names resolve next to this module.
    The SOLARFIT_SITE_CONFIG environment variable overrides the default file.
    """
    return _load_from_path(_resolve_config_path(config_file))


DEFAULT_SITE_CONFIG = load_site_config()
