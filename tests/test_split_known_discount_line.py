import pytest

from vatcompletor.strategies.split_known_discount_line import SplitKnownDiscountLine
from vatcompletor.strategies_core.models import CompletionInput, Line, VatRateSource
from vatcompletor.utils.number import vat_in_amount


def _discounted_lines(source=VatRateSource.EXACT):
    return [
        Line(
            description="Shirt",
            unit_price=100.0,
            vat_rate=21.0,
            vat_rate_source=source,
            discount_amount_inc=-10.0,
        ),
        Line(
            description="Book",
            unit_price=50.0,
            vat_rate=9.0,
            vat_rate_source=source,
            discount_amount_inc=-5.0,
        ),
        Line(description="Shipping", unit_price=5.0, vat_rate=21.0, vat_rate_source=source),
    ]


def _discount_vat():
    return vat_in_amount(21.0, -10.0) + vat_in_amount(9.0, -5.0)


def _apply(lines2complete, other_lines, config, dutch_vat_rates):
    completion_input = CompletionInput(
        lines2complete=lines2complete,
        other_lines=other_lines,
        possible_vat_rates=dutch_vat_rates,
        vat2divide=_discount_vat(),
    )
    return SplitKnownDiscountLine(completion_input, config).apply()


def test_discount_line_is_split_per_vat_rate(config, dutch_vat_rates):
    discount = Line(description="Discount", unit_price_inc=-15.0, strategy_split=True)
    result = _apply([discount], _discounted_lines(), config, dutch_vat_rates)

    assert result.success
    assert result.description == "SplitKnownDiscountLine(-15.00, -2.15)"
    lines = result.completed_lines
    assert [(line.unit_price_inc, line.vat_rate) for line in lines] == [
        (-10.0, 21.0),
        (-5.0, 9.0),
    ]
    assert [line.description for line in lines] == ["Discount (21%)", "Discount (9%)"]
    assert sum(line.vat_amount for line in lines) == pytest.approx(_discount_vat())
    assert lines[0].unit_price == pytest.approx(-10.0 / 1.21)


def test_discount_line_with_price_ex(config, dutch_vat_rates):
    amount_ex = -15.0 - _discount_vat()
    discount = Line(description="Discount", unit_price=amount_ex, strategy_split=True)
    result = _apply([discount], _discounted_lines(), config, dutch_vat_rates)

    assert result.success
    assert len(result.completed_lines) == 2


def test_only_the_split_line_is_completed(config, dutch_vat_rates):
    lines2complete = [
        Line(description="Gift wrap", unit_price=2.0),
        Line(description="Discount", unit_price_inc=-15.0, strategy_split=True),
    ]
    result = _apply(lines2complete, _discounted_lines(), config, dutch_vat_rates)

    assert result.success
    assert list(result.replacing_lines) == [1]


def test_amounts_must_add_up(config, dutch_vat_rates):
    discount = Line(description="Discount", unit_price_inc=-20.0, strategy_split=True)
    result = _apply([discount], _discounted_lines(), config, dutch_vat_rates)
    assert not result.success


def test_unreliable_vat_rates_are_not_used(config, dutch_vat_rates):
    discount = Line(description="Discount", unit_price_inc=-15.0, strategy_split=True)
    result = _apply(
        [discount], _discounted_lines(VatRateSource.CALCULATED), config, dutch_vat_rates
    )
    assert not result.success


def test_exactly_one_split_line_required(config, dutch_vat_rates):
    lines2complete = [
        Line(description="Discount", unit_price_inc=-15.0, strategy_split=True),
        Line(description="Coupon", unit_price_inc=-15.0, strategy_split=True),
    ]
    result = _apply(lines2complete, _discounted_lines(), config, dutch_vat_rates)
    assert not result.success


def test_discount_over_one_rate_keeps_its_description(config, dutch_vat_rates):
    other_lines = _discounted_lines()
    other_lines[1].discount_amount_inc = None
    discount = Line(description="Discount", unit_price_inc=-10.0, strategy_split=True)
    completion_input = CompletionInput(
        lines2complete=[discount],
        other_lines=other_lines,
        possible_vat_rates=dutch_vat_rates,
        vat2divide=vat_in_amount(21.0, -10.0),
    )
    result = SplitKnownDiscountLine(completion_input, config).apply()

    assert result.success
    assert [line.description for line in result.completed_lines] == ["Discount"]
    assert result.completed_lines[0].vat_rate == 21.0
