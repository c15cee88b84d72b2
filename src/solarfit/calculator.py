import logging
import math
from typing import Any, Optional

from solarfit.config.site_config import DEFAULT_SITE_CONFIG, SiteConfig
from solarfit.financial import apply_budget_constraint, estimate_financials
from solarfit.normalizer import energy_input_mode, normalize_consumption
from solarfit.profiles.demand_profile import summarize_demand_profile, synthesize_hourly_usage
from solarfit.sizing_engine import size_system
from solarfit.sizing_interface import Appliance, CalculationInputs, SizingResult, select_energy_input

logger = logging.getLogger(__name__)


class SizingCalculator:
    """
    Take the CalculationInputs
    Reduce the energy input to a daily consumption figure
    Spread it over an hourly demand curve and size the system from it
    Price the system, then fit it to the budget (if any)
    Return the SizingResult
    """

    def __init__(self, inputs: CalculationInputs, config: SiteConfig = DEFAULT_SITE_CONFIG):
        self.inputs = inputs
        self.config = config

    def run(self) -> SizingResult:
        inputs = self.inputs
        consumption = normalize_consumption(inputs.energy_input, inputs.usage_profile, self.config)
        adjusted = consumption.adjusted_consumption_kwh

        sun_hours = self.config.sun_hours_for(inputs.location)
        system = size_system(adjusted, sun_hours,
                             appliances=inputs.load_appliances,
                             panel_wattage=inputs.panel_wattage,
                             autonomy_days=inputs.autonomy_days,
                             depth_of_discharge=inputs.depth_of_discharge,
                             config=self.config)
        hourly_usage = synthesize_hourly_usage(adjusted, inputs.usage_profile, self.config)

        unconstrained_financials = estimate_financials(system, inputs.effective_monthly_bill_kes, self.config)
        constrained_system, financials, budget = apply_budget_constraint(system, unconstrained_financials,
                                                                         inputs.budget_kes, self.config)
        logger.debug("Sized %.2f kWh/day at %s (%.1f sun-hours): %.3f kW array, %.2f kWh battery",
                     adjusted, inputs.location, sun_hours,
                     constrained_system.required_system_size_kw, constrained_system.battery_capacity_kwh)

        return SizingResult(
            daily_consumption_kwh=consumption.daily_consumption_kwh,
            total_daily_consumption_kwh=consumption.total_daily_consumption_kwh,
            adjusted_consumption_kwh=adjusted,
            profile_factor=consumption.profile_factor,
            usage_profile=inputs.usage_profile,
            location=inputs.location,
            sun_hours=sun_hours,
            system=constrained_system,
            unconstrained_system=system,
            financials=financials,
            budget=budget,
            hourly_usage=hourly_usage,
            demand_summary=summarize_demand_profile(hourly_usage),
            energy_input_mode=energy_input_mode(inputs.energy_input),
        )


def compute(inputs: CalculationInputs, config: SiteConfig = DEFAULT_SITE_CONFIG) -> SizingResult:
    """Run one sizing calculation. Raises a SizingInputError subclass if the inputs cannot be sized."""
    return SizingCalculator(inputs, config).run()


def parse_number(value: Any) -> Optional[float]:
    """Form fields arrive as strings; blanks and non-numbers count as missing."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip().replace(',', ''))
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _appliance_from_form(entry: dict) -> Appliance:
    watts = parse_number(entry.get('watts'))
    hours = parse_number(entry.get('hours', entry.get('hoursPerDay')))
    quantity = parse_number(entry.get('quantity'))
    return Appliance(
        name=str(entry.get('name') or ''),
        watts=watts if watts is not None else 0.0,
        hours_per_day=hours if hours is not None else 0.0,
        quantity=quantity if quantity is not None else 1,
    )


def calculation_inputs_from_form(form: dict) -> CalculationInputs:
    """
    Build CalculationInputs from the calculator form payload (camelCase keys).

    calculationMethod selects the energy input: 'appliances' uses only the appliance list,
    'consumption' uses the monthly kWh (or the bill, if that is all there is). Without it the
    first non-empty of appliances, monthly kWh and monthly bill wins.
    """
    appliances = [_appliance_from_form(entry) for entry in form.get('appliances') or []]
    monthly_kwh = parse_number(form.get('monthlyConsumption'))
    monthly_bill = parse_number(form.get('monthlyBill'))

    method = form.get('calculationMethod')
    if method == 'appliances':
        energy_input = select_energy_input(appliances=appliances)
    elif method == 'consumption':
        energy_input = select_energy_input(monthly_consumption_kwh=monthly_kwh, monthly_bill_kes=monthly_bill)
    else:
        energy_input = select_energy_input(appliances, monthly_kwh, monthly_bill)

    return CalculationInputs(
        energy_input=energy_input,
        location=form.get('location') or 'Nairobi',
        usage_profile=form.get('usageProfile'),
        appliances=appliances,
        current_monthly_bill_kes=monthly_bill,
        budget_kes=parse_number(form.get('budget')),
        panel_wattage=parse_number(form.get('panelWattage')),
        autonomy_days=parse_number(form.get('autonomyDays')),
        depth_of_discharge=parse_number(form.get('depthOfDischarge')),
    )
