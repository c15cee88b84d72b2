import logging
from typing import Optional

import attrs

from solarfit.config.site_config import DEFAULT_SITE_CONFIG, SiteConfig
from solarfit.sizing_engine import array_ratings
from solarfit.sizing_interface import (BudgetConstraint, FinancialEstimate, NonPositiveSavingsError,
                                       SizingInputError, SystemSizing)

logger = logging.getLogger(__name__)


def estimate_cost_kes(system_size_kw: float, config: SiteConfig = DEFAULT_SITE_CONFIG) -> float:
    return system_size_kw * 1000.0 * config.cost_per_watt_kes


def payback_months(cost_kes: float, monthly_savings_kes: float) -> float:
    if not monthly_savings_kes > 0:
        raise NonPositiveSavingsError(f"Monthly savings must be positive to compute payback, got {monthly_savings_kes}")
    return cost_kes / monthly_savings_kes


def estimate_financials(system: SystemSizing,
                        current_monthly_bill_kes: Optional[float],
                        config: SiteConfig = DEFAULT_SITE_CONFIG) -> FinancialEstimate:
    """
    Cost, savings and payback for a sized system.

    Savings are a flat share of the current bill regardless of how much the system produces.
    Without a positive bill the payback period is reported as unavailable (None).
    """
    current_bill = float(current_monthly_bill_kes or 0.0)
    cost = estimate_cost_kes(system.required_system_size_kw, config)
    monthly_savings = current_bill * config.bill_offset_fraction
    try:
        roi_months = payback_months(cost, monthly_savings)
    except NonPositiveSavingsError:
        logger.warning("No current bill supplied; payback period is unavailable")
        roi_months = None
    return FinancialEstimate(
        estimated_cost_kes=cost,
        monthly_savings_kes=monthly_savings,
        annual_savings_kes=monthly_savings * 12.0,
        current_monthly_bill_kes=current_bill,
        roi_months=roi_months,
    )


def apply_budget_constraint(system: SystemSizing,
                            financials: FinancialEstimate,
                            budget_kes: Optional[float],
                            config: SiteConfig = DEFAULT_SITE_CONFIG
                            ) -> tuple[SystemSizing, FinancialEstimate, BudgetConstraint]:
    """
    Scale the PV array down so its cost fits within budget_kes.

    The inputs are left untouched; the scaled system and financials are returned along with a
    BudgetConstraint recording the unconstrained cost and size.
    """
    unconstrained_cost = financials.estimated_cost_kes
    constraint = BudgetConstraint(unconstrained_cost_kes=unconstrained_cost,
                                  unconstrained_system_size_kw=system.required_system_size_kw,
                                  budget_kes=budget_kes)
    if budget_kes is None:
        return system, financials, constraint
    if not budget_kes > 0:
        raise SizingInputError(f"budget_kes must be > 0, got {budget_kes}")
    if unconstrained_cost <= budget_kes:
        return system, financials, constraint

    scale_factor = budget_kes / unconstrained_cost
    scaled_size_kw = system.required_system_size_kw * scale_factor
    logger.debug("Budget %.0f KES below cost %.0f KES; scaling array from %.3f kW to %.3f kW",
                 budget_kes, unconstrained_cost, system.required_system_size_kw, scaled_size_kw)

    scaled_system = attrs.evolve(system,
                                 required_system_size_kw=scaled_size_kw,
                                 **array_ratings(scaled_size_kw, system.peak_load_kw, system.panel_wattage, config))
    scaled_financials = estimate_financials(scaled_system, financials.current_monthly_bill_kes, config)
    constraint = attrs.evolve(constraint, constraint_applied=True, scale_factor=scale_factor)
    return scaled_system, scaled_financials, constraint
