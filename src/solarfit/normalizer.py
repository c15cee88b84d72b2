import attrs

from solarfit.config.site_config import DEFAULT_SITE_CONFIG, SiteConfig
from solarfit.sizing_interface import (EnergyInput, ApplianceListInput, MonthlyConsumptionInput, MonthlyBillInput,
                                       UsageProfile)


@attrs.frozen
class NormalizedConsumption:
    daily_consumption_kwh: float
    total_daily_consumption_kwh: float
    adjusted_consumption_kwh: float
    profile_factor: float


def raw_daily_consumption(energy_input: EnergyInput, config: SiteConfig = DEFAULT_SITE_CONFIG) -> float:
    """
    Reduce an energy input to kWh/day before losses.
    A bill on its own carries no consumption figure and resolves to zero.
    """
    if isinstance(energy_input, ApplianceListInput):
        return sum(a.daily_energy_kwh for a in energy_input.appliances)
    elif isinstance(energy_input, MonthlyConsumptionInput):
        return energy_input.monthly_consumption_kwh / config.days_per_month
    elif isinstance(energy_input, MonthlyBillInput):
        return 0.0
    raise TypeError(f"Unsupported energy input: {type(energy_input).__name__}")


def normalize_consumption(energy_input: EnergyInput,
                          usage_profile: UsageProfile,
                          config: SiteConfig = DEFAULT_SITE_CONFIG) -> NormalizedConsumption:
    daily = raw_daily_consumption(energy_input, config)
    total = daily * (1.0 + config.system_loss_factor)
    profile_factor = config.profile(usage_profile).factor
    return NormalizedConsumption(
        daily_consumption_kwh=daily,
        total_daily_consumption_kwh=total,
        adjusted_consumption_kwh=total * profile_factor,
        profile_factor=profile_factor,
    )


def energy_input_mode(energy_input: EnergyInput) -> str:
    if isinstance(energy_input, ApplianceListInput):
        return 'appliances'
    elif isinstance(energy_input, MonthlyConsumptionInput):
        return 'consumption'
    return 'bill'
