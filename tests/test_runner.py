import pytest

from vatcompletor.strategies.apply_same_vat_rate import ApplySameVatRate
from vatcompletor.strategies_core.models import CompletionInput, Line, VatRateSource
from vatcompletor.strategies_core.runner import (
    MANUAL_REVIEW_WARNING,
    UNRECONCILED_WARNING,
    InvalidLineError,
    StrategyRunner,
    complete_strategy_lines,
)
from vatcompletor.utils.number import vat_in_amount


def _vat(lines):
    return sum(line.vat_contribution() for line in lines)


def _non_matching_discount():
    return Line(
        description="Discount",
        unit_price=100.0,
        unit_price_inc=115.0,
        strategy_split=True,
        vat_rate_mismatch=True,
    )


def test_same_vat_rate(dutch_vat_rates, config):
    lines = [Line(description="A", unit_price=10.0), Line(description="B", unit_price=20.0)]
    completion_input = CompletionInput(
        lines2complete=lines, possible_vat_rates=dutch_vat_rates, vat2divide=6.30
    )
    result = StrategyRunner(config).run(completion_input)

    assert result.description == "ApplySameVatRate(21)"
    assert result.strategies_used == ["ApplySameVatRate"]
    assert not result.needs_review
    assert _vat(result.lines) == pytest.approx(6.30)
    assert all(line.vat_rate_source == VatRateSource.STRATEGY_COMPLETED for line in result.lines)
    assert all(line.strategy_used == "ApplySameVatRate" for line in result.lines)


def test_known_discount_line(dutch_vat_rates, config):
    other_lines = [
        Line(unit_price=100.0, vat_rate=21.0, vat_rate_source=VatRateSource.EXACT, discount_amount_inc=-10.0),
        Line(unit_price=50.0, vat_rate=9.0, vat_rate_source=VatRateSource.EXACT, discount_amount_inc=-5.0),
    ]
    vat2divide = vat_in_amount(21.0, -10.0) + vat_in_amount(9.0, -5.0)
    completion_input = CompletionInput(
        lines2complete=[Line(description="Discount", unit_price_inc=-15.0, strategy_split=True)],
        other_lines=other_lines,
        possible_vat_rates=dutch_vat_rates,
        vat2divide=vat2divide,
    )
    result = StrategyRunner(config).run(completion_input)

    assert result.strategies_used == ["SplitKnownDiscountLine"]
    assert [(line.unit_price_inc, line.vat_rate) for line in result.lines] == [
        (-10.0, 21.0),
        (-5.0, 9.0),
    ]
    assert _vat(result.lines) == pytest.approx(vat2divide)


def test_non_matching_line(two_rate_lines, dutch_vat_rates, config):
    completion_input = CompletionInput(
        lines2complete=[_non_matching_discount()],
        other_lines=two_rate_lines,
        possible_vat_rates=dutch_vat_rates,
        vat2divide=15.0,
    )
    result = StrategyRunner(config).run(completion_input)

    assert result.description == "SplitNonMatchingLine(9, 21)"
    assert len(result.lines) == 2
    assert all(line.unit_price > 0 for line in result.lines)
    assert _vat(result.lines) == pytest.approx(15.0)


def test_permutations(dutch_vat_rates, config):
    lines = [Line(description=f"Line {i}", unit_price=10.0) for i in range(3)]
    completion_input = CompletionInput(
        lines2complete=lines, possible_vat_rates=dutch_vat_rates, vat2divide=3.90
    )
    result = StrategyRunner(config).run(completion_input)

    assert result.description == "TryAllVatRatePermutations(21, 9, 9)"
    assert _vat(result.lines) == pytest.approx(3.90)


def test_nothing_reconciles_falls_back_to_fail(dutch_vat_rates, config):
    lines = [Line(description="A", unit_price=10.0), Line(description="B", unit_price=20.0)]
    completion_input = CompletionInput(
        lines2complete=lines, possible_vat_rates=dutch_vat_rates, vat2divide=4.00
    )
    result = StrategyRunner(config).run(completion_input)

    assert result.strategies_used == ["Fail"]
    assert result.description == "Fail"
    assert result.needs_review
    assert MANUAL_REVIEW_WARNING in result.warnings
    assert result.lines == lines


def test_partial_solution_is_continued(two_rate_lines, dutch_vat_rates, config):
    completion_input = CompletionInput(
        lines2complete=[Line(description="Shipping", unit_price=10.0), _non_matching_discount()],
        other_lines=two_rate_lines,
        possible_vat_rates=dutch_vat_rates,
        vat2divide=17.10,
    )
    result = StrategyRunner(config).run(completion_input)

    assert result.strategies_used == ["SplitNonMatchingLine", "TryAllVatRatePermutations"]
    assert result.description == "SplitNonMatchingLine(9, 21); TryAllVatRatePermutations(21)"
    assert [line.description for line in result.lines] == [
        "Shipping",
        "Discount (21% VAT)",
        "Discount (9% VAT)",
    ]
    assert not result.needs_review
    assert _vat(result.lines) == pytest.approx(17.10)


def test_same_input_same_result(dutch_vat_rates, config):
    lines = [Line(unit_price=10.0), Line(unit_price=-4.0), Line(unit_price=7.5)]
    completion_input = CompletionInput(
        lines2complete=lines, possible_vat_rates=dutch_vat_rates, vat2divide=3.315
    )
    first = StrategyRunner(config).run(completion_input)
    second = StrategyRunner(config).run(completion_input)
    assert first.model_dump() == second.model_dump()


def test_input_is_not_changed(dutch_vat_rates, config):
    lines = [Line(description="A", unit_price=10.0), Line(description="B", unit_price=20.0)]
    completion_input = CompletionInput(
        lines2complete=lines, possible_vat_rates=dutch_vat_rates, vat2divide=6.30
    )
    StrategyRunner(config).run(completion_input)

    assert all(line.vat_rate is None for line in completion_input.lines2complete)
    assert all(line.vat_rate_source == VatRateSource.STRATEGY for line in lines)


def test_line_without_price_is_rejected(dutch_vat_rates, config):
    completion_input = CompletionInput(
        lines2complete=[Line(description="Vat only", vat_amount=2.1)],
        possible_vat_rates=dutch_vat_rates,
        vat2divide=2.1,
    )
    with pytest.raises(InvalidLineError):
        StrategyRunner(config).run(completion_input)


def test_nothing_to_complete(dutch_vat_rates, config):
    result = complete_strategy_lines(
        CompletionInput(lines2complete=[], possible_vat_rates=dutch_vat_rates, vat2divide=0.0),
        config,
    )
    assert result.lines == []
    assert result.strategies_used == []
    assert not result.needs_review


def test_lines_left_without_fail_strategy_need_review(dutch_vat_rates, config):
    lines = [Line(description="A", unit_price=10.0)]
    completion_input = CompletionInput(
        lines2complete=lines, possible_vat_rates=dutch_vat_rates, vat2divide=5.0
    )
    result = StrategyRunner(config, strategies=[ApplySameVatRate]).run(completion_input)

    assert result.needs_review
    assert result.strategies_used == []
    assert result.lines == lines


def test_unreconciled_vat_needs_review(two_rate_lines, dutch_vat_rates, config):
    completion_input = CompletionInput(
        lines2complete=[_non_matching_discount()],
        other_lines=two_rate_lines,
        possible_vat_rates=dutch_vat_rates,
        vat2divide=40.0,
    )
    result = StrategyRunner(config).run(completion_input)

    assert result.strategies_used == ["SplitNonMatchingLine"]
    assert _vat(result.lines) == pytest.approx(15.0)
    assert result.needs_review
    assert result.warnings == [UNRECONCILED_WARNING.format("15.00", "40.00")]
