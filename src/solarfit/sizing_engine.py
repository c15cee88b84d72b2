import logging
import math
from typing import Optional, Iterable

from solarfit.config.site_config import DEFAULT_SITE_CONFIG, SiteConfig
from solarfit.sizing_interface import Appliance, NoEnergyUsageError, SizingInputError, SystemSizing

logger = logging.getLogger(__name__)


def peak_load_kw(appliances: Iterable[Appliance]) -> float:
    """Load if every listed appliance ran at once."""
    return sum(a.connected_load_kw for a in appliances)


def required_system_size_kw(adjusted_consumption_kwh: float, sun_hours: float) -> float:
    if not sun_hours > 0:
        raise SizingInputError(f"Sun-hours must be positive, got {sun_hours}")
    return adjusted_consumption_kwh / sun_hours


def battery_capacity_kwh(adjusted_consumption_kwh: float, autonomy_days: float, depth_of_discharge: float) -> float:
    return adjusted_consumption_kwh * autonomy_days / depth_of_discharge


def _resolve_battery_assumptions(autonomy_days: Optional[float],
                                 depth_of_discharge: Optional[float],
                                 config: SiteConfig) -> tuple[float, float]:
    autonomy_days = config.autonomy_days if autonomy_days is None else float(autonomy_days)
    depth_of_discharge = config.depth_of_discharge if depth_of_discharge is None else float(depth_of_discharge)
    if not autonomy_days >= 0:
        raise SizingInputError(f"autonomy_days must be >= 0, got {autonomy_days}")
    if not 0 < depth_of_discharge <= 1:
        raise SizingInputError(f"depth_of_discharge must be in (0, 1], got {depth_of_discharge}")
    return autonomy_days, depth_of_discharge


def array_ratings(system_size_kw: float,
                  peak_load: float,
                  panel_wattage: Optional[float],
                  config: SiteConfig = DEFAULT_SITE_CONFIG) -> dict:
    """Inverter, charge-controller and panel-count figures that follow from the PV array size."""
    if panel_wattage is not None and not panel_wattage > 0:
        raise SizingInputError(f"panel_wattage must be > 0, got {panel_wattage}")
    return {
        'inverter_rating_kw': max(peak_load, system_size_kw) * config.inverter_safety_factor,
        'charge_controller_amps': system_size_kw * 1000.0 / config.system_voltage * config.charge_controller_safety_factor,
        'panel_count': math.ceil(system_size_kw * 1000.0 / panel_wattage) if panel_wattage else None,
    }


def size_system(adjusted_consumption_kwh: float,
                sun_hours: float,
                appliances: Iterable[Appliance] = (),
                panel_wattage: Optional[float] = None,
                autonomy_days: Optional[float] = None,
                depth_of_discharge: Optional[float] = None,
                config: SiteConfig = DEFAULT_SITE_CONFIG) -> SystemSizing:
    """
    Size the PV array, battery bank, inverter and charge controller for a daily load.

    Args:
        adjusted_consumption_kwh: daily consumption after losses and the usage-profile factor
        sun_hours: peak sun-hours per day at the site
        appliances: appliances used to estimate peak load for the inverter
        panel_wattage: module rating (W); when given, the number of modules is reported
        autonomy_days: days the battery must carry the load without sun (off-grid override)
        depth_of_discharge: usable fraction of nominal battery capacity (off-grid override)

    Raises:
        NoEnergyUsageError: if there is no consumption to size for
    """
    if not adjusted_consumption_kwh > 0:
        raise NoEnergyUsageError("No energy usage provided; add appliances or a monthly consumption figure")
    autonomy_days, depth_of_discharge = _resolve_battery_assumptions(autonomy_days, depth_of_discharge, config)

    system_size_kw = required_system_size_kw(adjusted_consumption_kwh, sun_hours)
    peak_load = peak_load_kw(appliances)
    return SystemSizing(
        required_system_size_kw=system_size_kw,
        battery_capacity_kwh=battery_capacity_kwh(adjusted_consumption_kwh, autonomy_days, depth_of_discharge),
        peak_load_kw=peak_load,
        autonomy_days=autonomy_days,
        depth_of_discharge=depth_of_discharge,
        panel_wattage=panel_wattage,
        **array_ratings(system_size_kw, peak_load, panel_wattage, config),
    )
