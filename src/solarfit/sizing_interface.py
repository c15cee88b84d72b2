import enum
import logging
import math
from typing import Optional, Union

import attrs

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24


class SizingInputError(ValueError):
    """Base class for inputs the sizing engine cannot work with."""


class InsufficientEnergyDataError(SizingInputError):
    """No appliance list, monthly consumption or monthly bill was supplied."""


class NoEnergyUsageError(InsufficientEnergyDataError):
    """The energy inputs resolve to zero daily consumption."""


class InvalidApplianceError(SizingInputError):
    pass


class NonPositiveSavingsError(ValueError):
    """Monthly savings are zero or negative, so payback cannot be computed."""


def _number(error: type = SizingInputError, whole: bool = False):
    """Converter to a finite float (or a whole-number int) that raises `error` instead of a bare ValueError."""
    def convert(value):
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise error(f"Expected a number, got {value!r}") from e
        if not math.isfinite(number):
            raise error(f"Expected a finite number, got {value!r}")
        if whole:
            if not number.is_integer():
                raise error(f"Expected a whole number, got {value!r}")
            return int(number)
        return number
    return convert


def _bounded(lower: float, upper: Optional[float] = None, error: type = SizingInputError):
    def check(instance, attribute, value):
        if value is None or not math.isfinite(value) or value < lower or (upper is not None and value > upper):
            bounds = f"[{lower}, {upper}]" if upper is not None else f">= {lower}"
            raise error(f"{type(instance).__name__}.{attribute.name} must be {bounds}, got {value!r}")
    return check


class UsageProfile(enum.Enum):
    """Named demand-shape archetypes. Each maps to a daily multiplier and an hourly curve."""
    LOW = "low"
    STANDARD = "standard"
    HIGH = "high"
    COMMERCIAL = "commercial"

    @classmethod
    def parse(cls, value: Union['UsageProfile', str, None]) -> 'UsageProfile':
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.STANDARD
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning("Unknown usage profile %r; using 'standard'", value)
            return cls.STANDARD


@attrs.frozen
class Appliance:
    name: str = ''
    watts: float = attrs.field(default=0.0, converter=_number(InvalidApplianceError),
                               validator=_bounded(0.0, error=InvalidApplianceError))
    hours_per_day: float = attrs.field(default=0.0, converter=_number(InvalidApplianceError),
                                       validator=_bounded(0.0, HOURS_PER_DAY, error=InvalidApplianceError))
    quantity: int = attrs.field(default=1, converter=_number(InvalidApplianceError, whole=True),
                                validator=_bounded(0, error=InvalidApplianceError))

    @property
    def daily_energy_kwh(self) -> float:
        return self.watts * self.hours_per_day * self.quantity / 1000.0

    @property
    def connected_load_kw(self) -> float:
        return self.watts * self.quantity / 1000.0


# Energy inputs: exactly one of the three variants below describes a calculation.

@attrs.frozen
class ApplianceListInput:
    appliances: tuple[Appliance, ...] = attrs.field(converter=tuple)


@attrs.frozen
class MonthlyConsumptionInput:
    monthly_consumption_kwh: float = attrs.field(converter=_number(), validator=_bounded(0.0))


@attrs.frozen
class MonthlyBillInput:
    monthly_bill_kes: float = attrs.field(converter=_number(), validator=_bounded(0.0))


EnergyInput = Union[ApplianceListInput, MonthlyConsumptionInput, MonthlyBillInput]


def select_energy_input(appliances: Optional[list[Appliance]] = None,
                        monthly_consumption_kwh: Optional[float] = None,
                        monthly_bill_kes: Optional[float] = None) -> EnergyInput:
    """
    Build the energy input from the three optional fields a user can fill in.
    The first non-empty field wins, in the order appliances, monthly kWh, monthly bill.
    """
    if appliances:
        return ApplianceListInput(appliances)
    if monthly_consumption_kwh is not None:
        return MonthlyConsumptionInput(monthly_consumption_kwh)
    if monthly_bill_kes is not None:
        return MonthlyBillInput(monthly_bill_kes)
    raise InsufficientEnergyDataError("Provide an appliance list, a monthly consumption (kWh) or a monthly bill (KES)")


@attrs.define
class CalculationInputs:
    """
    Everything a single sizing calculation needs.

    - energy_input: the selected energy input variant
    - location: named location used for the sun-hours lookup
    - usage_profile: demand-shape archetype
    - appliances: optional appliance list used for inverter peak-load sizing when
      the energy input is not itself an appliance list
    - current_monthly_bill_kes: bill used for the savings estimate
    - budget_kes: optional cap on the estimated cost
    - panel_wattage: optional module rating (W) used to count panels
    - autonomy_days, depth_of_discharge: off-grid battery overrides
    """
    energy_input: EnergyInput
    location: str = 'Nairobi'
    usage_profile: UsageProfile = attrs.field(default=UsageProfile.STANDARD, converter=UsageProfile.parse)
    appliances: tuple[Appliance, ...] = attrs.field(factory=tuple, converter=tuple)
    current_monthly_bill_kes: Optional[float] = attrs.field(default=None, converter=attrs.converters.optional(_number()),
                                                            validator=attrs.validators.optional(_bounded(0.0)))
    budget_kes: Optional[float] = attrs.field(default=None, converter=attrs.converters.optional(_number()))
    panel_wattage: Optional[float] = attrs.field(default=None, converter=attrs.converters.optional(_number()))
    autonomy_days: Optional[float] = attrs.field(default=None, converter=attrs.converters.optional(_number()))
    depth_of_discharge: Optional[float] = attrs.field(default=None, converter=attrs.converters.optional(_number()))

    @property
    def load_appliances(self) -> tuple[Appliance, ...]:
        if isinstance(self.energy_input, ApplianceListInput) and self.energy_input.appliances:
            return self.energy_input.appliances
        return self.appliances

    @property
    def effective_monthly_bill_kes(self) -> Optional[float]:
        if self.current_monthly_bill_kes is not None:
            return self.current_monthly_bill_kes
        if isinstance(self.energy_input, MonthlyBillInput):
            return self.energy_input.monthly_bill_kes
        return None


@attrs.frozen
class SystemSizing:
    required_system_size_kw: float
    battery_capacity_kwh: float
    inverter_rating_kw: float
    charge_controller_amps: float
    peak_load_kw: float
    autonomy_days: float
    depth_of_discharge: float
    panel_wattage: Optional[float] = None
    panel_count: Optional[int] = None


@attrs.frozen
class FinancialEstimate:
    estimated_cost_kes: float
    monthly_savings_kes: float
    annual_savings_kes: float
    current_monthly_bill_kes: float = 0.0
    roi_months: Optional[float] = None

    @property
    def roi_available(self) -> bool:
        return self.roi_months is not None

    @property
    def roi_years(self) -> Optional[float]:
        return self.roi_months / 12.0 if self.roi_months is not None else None


@attrs.frozen
class BudgetConstraint:
    """Records whether a budget cap reshaped the system, and what it looked like before."""
    unconstrained_cost_kes: float
    unconstrained_system_size_kw: float
    budget_kes: Optional[float] = None
    constraint_applied: bool = False
    scale_factor: float = 1.0


@attrs.frozen
class DemandProfileSummary:
    peak_hour: int
    peak_usage_kwh: float
    daytime_usage_kwh: float
    nighttime_usage_kwh: float


@attrs.frozen
class SizingResult:
    daily_consumption_kwh: float  # before losses
    total_daily_consumption_kwh: float  # after losses
    adjusted_consumption_kwh: float  # after the usage-profile factor
    profile_factor: float
    usage_profile: UsageProfile
    location: str
    sun_hours: float
    system: SystemSizing
    unconstrained_system: SystemSizing
    financials: FinancialEstimate
    budget: BudgetConstraint
    hourly_usage: tuple[float, ...]
    demand_summary: DemandProfileSummary
    energy_input_mode: str

    @property
    def required_system_size_kw(self) -> float:
        return self.system.required_system_size_kw

    @property
    def battery_capacity_kwh(self) -> float:
        return self.system.battery_capacity_kwh

    @property
    def estimated_cost_kes(self) -> float:
        return self.financials.estimated_cost_kes

    @property
    def monthly_savings_kes(self) -> float:
        return self.financials.monthly_savings_kes

    @property
    def roi_months(self) -> Optional[float]:
        return self.financials.roi_months

    def to_display_dict(self) -> dict:
        """
        Render the result with the number formatting the calculator page shows.

        Cost and savings always carry two decimals with thousands separators, where the
        browser's locale formatting would print up to three fraction digits.
        """
        roi = self.financials.roi_months
        return {
            'dailyConsumption': f"{self.adjusted_consumption_kwh:.2f}",
            'unadjustedConsumption': f"{self.total_daily_consumption_kwh:.2f}",
            'requiredSystemSize': f"{self.system.required_system_size_kw:.2f}",
            'batteryCapacity': f"{self.system.battery_capacity_kwh:.2f}",
            'inverterRating': f"{self.system.inverter_rating_kw:.2f}",
            'chargeControllerAmps': f"{self.system.charge_controller_amps:.1f}",
            'panelCount': self.system.panel_count,
            'estimatedCost': f"{self.financials.estimated_cost_kes:,.2f}",
            'monthlySavings': f"{self.financials.monthly_savings_kes:,.2f}",
            'roiMonths': f"{roi:.1f}" if roi is not None else "N/A",
            'profileFactor': self.profile_factor,
            'budgetConstraintApplied': self.budget.constraint_applied,
            'unconstrainedCost': f"{self.budget.unconstrained_cost_kes:,.2f}",
            'hourlyUsage': [{'hour': h, 'usage': f"{u:.2f}"} for h, u in enumerate(self.hourly_usage)],
            'calculationMethod': self.energy_input_mode,
        }
