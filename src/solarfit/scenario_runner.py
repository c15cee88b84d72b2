import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

import attrs
import pandas as pd

from solarfit.calculator import compute
from solarfit.config.site_config import DEFAULT_SITE_CONFIG, SiteConfig
from solarfit.sizing_interface import CalculationInputs, SizingInputError, SizingResult, UsageProfile

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = ('location', 'usage_profile', 'sun_hours', 'daily_consumption_kwh', 'adjusted_consumption_kwh',
                   'required_system_size_kw', 'battery_capacity_kwh', 'inverter_rating_kw', 'estimated_cost_kes',
                   'monthly_savings_kes', 'roi_months', 'budget_kes', 'budget_constraint_applied',
                   'unconstrained_cost_kes', 'peak_hour')


def summarize_result(result: SizingResult) -> dict:
    """Flatten a SizingResult into one summary row."""
    return {
        'location': result.location,
        'usage_profile': result.usage_profile.value,
        'sun_hours': result.sun_hours,
        'daily_consumption_kwh': result.daily_consumption_kwh,
        'adjusted_consumption_kwh': result.adjusted_consumption_kwh,
        'required_system_size_kw': result.required_system_size_kw,
        'battery_capacity_kwh': result.battery_capacity_kwh,
        'inverter_rating_kw': result.system.inverter_rating_kw,
        'estimated_cost_kes': result.estimated_cost_kes,
        'monthly_savings_kes': result.monthly_savings_kes,
        'roi_months': result.roi_months,
        'budget_kes': result.budget.budget_kes,
        'budget_constraint_applied': result.budget.constraint_applied,
        'unconstrained_cost_kes': result.budget.unconstrained_cost_kes,
        'peak_hour': result.demand_summary.peak_hour,
    }


class ScenarioRunner(ABC):
    """Base class for running the same calculation under several variations of its inputs."""

    def __init__(self, base_inputs: CalculationInputs, config: SiteConfig = DEFAULT_SITE_CONFIG):
        self.base_inputs = base_inputs
        self.config = config
        self.results: List[SizingResult] = []

    @abstractmethod
    def _build_inputs_list(self) -> List[CalculationInputs]:
        """
        Build the list of calculation inputs for all scenarios.
        Must be implemented by subclasses.
        """
        pass

    def run_scenarios(self) -> List[SizingResult]:
        self.results = []
        for scenario_inputs in self._build_inputs_list():
            try:
                self.results.append(compute(scenario_inputs, self.config))
            except SizingInputError as e:
                logger.warning("Skipping scenario %s/%s: %s",
                               scenario_inputs.location, scenario_inputs.usage_profile.value, e)
        if len(self.results) == 0:
            logger.warning("No scenarios could be sized")
        return self.results

    def get_summary_frame(self) -> pd.DataFrame:
        """One row per successfully sized scenario."""
        return pd.DataFrame([summarize_result(r) for r in self.results], columns=list(SUMMARY_COLUMNS))


class UsageProfileSweepRunner(ScenarioRunner):
    """Size the same load under every usage profile."""

    def __init__(self, *args, profiles: Optional[Iterable[UsageProfile]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.profiles = list(profiles) if profiles is not None else list(UsageProfile)

    def _build_inputs_list(self) -> List[CalculationInputs]:
        return [attrs.evolve(self.base_inputs, usage_profile=p) for p in self.profiles]


class LocationSweepRunner(ScenarioRunner):
    """Size the same load at each location (every configured location by default)."""

    def __init__(self, *args, locations: Optional[Iterable[str]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.locations = list(locations) if locations is not None else list(self.config.locations)

    def _build_inputs_list(self) -> List[CalculationInputs]:
        return [attrs.evolve(self.base_inputs, location=loc) for loc in self.locations]


class BudgetSweepRunner(ScenarioRunner):
    """Size the same load under a series of budget caps."""

    def __init__(self, *args, budgets_kes: Iterable[float] = (), **kwargs):
        super().__init__(*args, **kwargs)
        self.budgets_kes = list(budgets_kes)

    def _build_inputs_list(self) -> List[CalculationInputs]:
        return [attrs.evolve(self.base_inputs, budget_kes=b) for b in self.budgets_kes]
