import attrs
import pytest

from solarfit.calculator import compute
from solarfit.sizing_interface import (Appliance, ApplianceListInput, CalculationInputs, InsufficientEnergyDataError,
                                       InvalidApplianceError, MonthlyBillInput, MonthlyConsumptionInput,
                                       SizingInputError, UsageProfile, select_energy_input)
from tests.test_utils import sample_appliances, sample_calculation_inputs


class TestAppliance:

    def test_daily_energy(self):
        fridge = Appliance(name='Refrigerator', watts=150, hours_per_day=24, quantity=1)
        assert fridge.daily_energy_kwh == pytest.approx(3.6)
        lights = Appliance(name='Lights', watts=10, hours_per_day=6, quantity=5)
        assert lights.daily_energy_kwh == pytest.approx(0.3)
        assert lights.connected_load_kw == pytest.approx(0.05)

    def test_converts_string_fields(self):
        appliance = Appliance(name='Kettle', watts='1500', hours_per_day='0.5', quantity='2')
        assert appliance.watts == 1500.0
        assert appliance.quantity == 2
        assert appliance.daily_energy_kwh == pytest.approx(1.5)

    @pytest.mark.parametrize("fields", [
        dict(watts=-1, hours_per_day=1, quantity=1),
        dict(watts=100, hours_per_day=25, quantity=1),
        dict(watts=100, hours_per_day=-0.5, quantity=1),
        dict(watts=100, hours_per_day=1, quantity=-2),
        dict(watts=float('nan'), hours_per_day=1, quantity=1),
    ])
    def test_out_of_bounds_rejected(self, fields):
        with pytest.raises(InvalidApplianceError):
            Appliance(name='Bad', **fields)

    def test_bounds_are_inclusive(self):
        Appliance(name='Always on', watts=0, hours_per_day=24, quantity=0)

    def test_invalid_appliance_is_a_sizing_input_error(self):
        assert issubclass(InvalidApplianceError, SizingInputError)
        assert issubclass(SizingInputError, ValueError)

    def test_frozen(self):
        appliance = Appliance(name='TV', watts=100, hours_per_day=4)
        with pytest.raises(attrs.exceptions.FrozenInstanceError):
            appliance.watts = 200

    @pytest.mark.parametrize("quantity", [2.7, 0.5, '0.5', '1.25'])
    def test_fractional_quantity_rejected(self, quantity):
        with pytest.raises(InvalidApplianceError, match="whole number"):
            Appliance(name='Fan', watts=100, hours_per_day=10, quantity=quantity)

    def test_whole_float_quantity_accepted(self):
        appliance = Appliance(name='Fan', watts=100, hours_per_day=10, quantity=3.0)
        assert appliance.quantity == 3
        assert isinstance(appliance.quantity, int)

    @pytest.mark.parametrize("field", ['watts', 'hours_per_day', 'quantity'])
    @pytest.mark.parametrize("value", [float('nan'), float('inf'), float('-inf'), 'abc', None, [1]])
    def test_unconvertible_fields_raise_invalid_appliance(self, field, value):
        fields = dict(watts=100, hours_per_day=2, quantity=1)
        fields[field] = value
        with pytest.raises(InvalidApplianceError):
            Appliance(name='Bad', **fields)


class TestSelectEnergyInput:

    def test_appliances_win(self):
        energy_input = select_energy_input(sample_appliances(), 300, 5000)
        assert isinstance(energy_input, ApplianceListInput)
        assert len(energy_input.appliances) == 4

    def test_empty_appliance_list_falls_through_to_consumption(self):
        energy_input = select_energy_input([], 300, 5000)
        assert energy_input == MonthlyConsumptionInput(300)

    def test_bill_used_last(self):
        assert select_energy_input(None, None, 5000) == MonthlyBillInput(5000)

    def test_zero_consumption_still_counts_as_supplied(self):
        assert select_energy_input(None, 0, 5000) == MonthlyConsumptionInput(0)

    def test_nothing_supplied(self):
        with pytest.raises(InsufficientEnergyDataError):
            select_energy_input()

    def test_negative_consumption_rejected(self):
        with pytest.raises(SizingInputError):
            MonthlyConsumptionInput(-10)


class TestUsageProfile:

    @pytest.mark.parametrize("value, expected", [
        ('low', UsageProfile.LOW),
        (' HIGH ', UsageProfile.HIGH),
        (UsageProfile.COMMERCIAL, UsageProfile.COMMERCIAL),
        (None, UsageProfile.STANDARD),
        ('industrial', UsageProfile.STANDARD),
    ])
    def test_parse(self, value, expected):
        assert UsageProfile.parse(value) is expected

    def test_calculation_inputs_convert_profile(self):
        inputs = sample_calculation_inputs(usage_profile='commercial')
        assert inputs.usage_profile is UsageProfile.COMMERCIAL


class TestCalculationInputs:

    def test_load_appliances_prefer_energy_input(self):
        extra = [Appliance(name='Iron', watts=1200, hours_per_day=1)]
        inputs = sample_calculation_inputs(appliances=extra)
        assert len(inputs.load_appliances) == 4

    def test_load_appliances_from_side_list(self):
        extra = [Appliance(name='Iron', watts=1200, hours_per_day=1)]
        inputs = CalculationInputs(energy_input=MonthlyConsumptionInput(300), appliances=extra)
        assert inputs.load_appliances == tuple(extra)

    def test_bill_input_doubles_as_current_bill(self):
        inputs = CalculationInputs(energy_input=MonthlyBillInput(4500))
        assert inputs.effective_monthly_bill_kes == 4500
        inputs = attrs.evolve(inputs, current_monthly_bill_kes=3000)
        assert inputs.effective_monthly_bill_kes == 3000

    def test_no_bill(self):
        assert sample_calculation_inputs().effective_monthly_bill_kes is None

    @pytest.mark.parametrize("bill", [-5000, -0.01, float('nan'), 'lots'])
    def test_invalid_current_bill_rejected(self, bill):
        with pytest.raises(SizingInputError):
            sample_calculation_inputs(current_monthly_bill_kes=bill)

    def test_numeric_fields_converted(self):
        inputs = sample_calculation_inputs(current_monthly_bill_kes='5000', budget_kes='90000', panel_wattage='400',
                                           autonomy_days='3', depth_of_discharge='0.5')
        assert inputs.current_monthly_bill_kes == 5000.0
        assert inputs.budget_kes == 90000.0
        assert inputs.panel_wattage == 400.0
        assert inputs.autonomy_days == 3.0
        assert inputs.depth_of_discharge == 0.5

    @pytest.mark.parametrize("field", ['budget_kes', 'panel_wattage', 'autonomy_days', 'depth_of_discharge'])
    def test_non_finite_overrides_rejected(self, field):
        with pytest.raises(SizingInputError):
            sample_calculation_inputs(**{field: float('inf')})


class TestSizingResultDisplay:

    def test_display_dict(self):
        result = compute(sample_calculation_inputs(current_monthly_bill_kes=5000))
        display = result.to_display_dict()
        assert display['dailyConsumption'] == '6.96'
        assert display['unadjustedConsumption'] == '6.96'
        assert display['requiredSystemSize'] == '1.27'
        assert display['batteryCapacity'] == '17.40'
        assert display['estimatedCost'] == '189,818.18'
        assert display['monthlySavings'] == '4,000.00'
        assert display['roiMonths'] == '47.5'
        assert display['chargeControllerAmps'] == '33.0'
        assert display['profileFactor'] == 1.0
        assert display['calculationMethod'] == 'appliances'
        assert display['budgetConstraintApplied'] is False
        assert len(display['hourlyUsage']) == 24
        assert display['hourlyUsage'][18] == {'hour': 18, 'usage': '0.61'}

    def test_display_dict_without_bill(self):
        display = compute(sample_calculation_inputs()).to_display_dict()
        assert display['roiMonths'] == 'N/A'
        assert display['monthlySavings'] == '0.00'
