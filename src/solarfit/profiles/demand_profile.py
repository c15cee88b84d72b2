import numpy as np
import pandas as pd

from solarfit.config.site_config import DEFAULT_SITE_CONFIG, SiteConfig
from solarfit.sizing_interface import DemandProfileSummary, UsageProfile, HOURS_PER_DAY

DAYTIME_HOURS = range(6, 18)


def synthesize_hourly_usage(adjusted_consumption_kwh: float,
                            usage_profile: UsageProfile,
                            config: SiteConfig = DEFAULT_SITE_CONFIG) -> tuple[float, ...]:
    """Spread a daily total over 24 hourly buckets using the profile's fixed pattern, rounded to 0.01 kWh."""
    pattern = config.profile(usage_profile).hourly_pattern
    hourly = np.round(pattern * adjusted_consumption_kwh, 2)
    return tuple(float(u) for u in hourly)


def hourly_usage_series(hourly_usage) -> pd.Series:
    """Index hourly buckets by hour of day (0-23)."""
    if hasattr(hourly_usage, 'hourly_usage'):
        hourly_usage = hourly_usage.hourly_usage
    if len(hourly_usage) != HOURS_PER_DAY:
        raise ValueError(f"Expected {HOURS_PER_DAY} hourly values, got {len(hourly_usage)}")
    return pd.Series(hourly_usage, index=pd.RangeIndex(HOURS_PER_DAY, name='hour'), name='usage_kwh', dtype=float)


def summarize_demand_profile(hourly_usage) -> DemandProfileSummary:
    """Peak hour and the split between daytime (06:00-18:00) and nighttime usage."""
    usage = hourly_usage_series(hourly_usage)
    daytime_mask = usage.index.isin(DAYTIME_HOURS)
    # idxmax returns the first hour on ties
    peak_hour = int(usage.idxmax())
    return DemandProfileSummary(
        peak_hour=peak_hour,
        peak_usage_kwh=float(usage.loc[peak_hour]),
        daytime_usage_kwh=round(float(usage[daytime_mask].sum()), 2),
        nighttime_usage_kwh=round(float(usage[~daytime_mask].sum()), 2),
    )
