import sys
from enum import Enum, IntEnum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vatcompletor.utils.number import (
    is_no_vat,
    rate_key,
    vat_in_amount,
    vat_over_amount,
)


class VatRateSource(str, Enum):
    """How the vat rate of a line was obtained."""

    EXACT = "exact"
    EXACT_0 = "exact-0"
    CALCULATED = "calculated"
    CALCULATED_CORRECTED = "calculated-corrected"
    LOOKED_UP = "completor-looked-up"
    COMPLETOR = "completor"
    COMPLETOR_COMPLETED = "completor-completed"
    STRATEGY = "strategy"
    STRATEGY_COMPLETED = "strategy-completed"
    COPIED = "copied"


# Sources whose vat rate may be relied upon.
CORRECT_VAT_RATE_SOURCES = frozenset(
    {
        VatRateSource.EXACT,
        VatRateSource.EXACT_0,
        VatRateSource.CALCULATED_CORRECTED,
        VatRateSource.LOOKED_UP,
        VatRateSource.COMPLETOR_COMPLETED,
        VatRateSource.STRATEGY_COMPLETED,
        VatRateSource.COPIED,
    }
)


class VatType(IntEnum):
    NATIONAL = 1
    NATIONAL_REVERSED = 2
    EU_REVERSED = 3
    REST_OF_WORLD = 4
    MARGIN_SCHEME = 5
    FOREIGN_VAT = 6


class StrategyOrder(IntEnum):
    """
    The order in which the strategies are tried, lowest first.
    """

    APPLY_SAME_VAT_RATE = 0
    SPLIT_KNOWN_DISCOUNT_LINE = 1
    SPLIT_NON_MATCHING_LINE = 20
    TRY_ALL_VAT_RATE_PERMUTATIONS = 25
    SPLIT_LINE = 40
    FAIL = sys.maxsize


class Line(BaseModel):
    """
    One invoice line. Amounts are per unit unless stated otherwise.
    """

    description: str = Field("", description="Product or line description")
    quantity: int = Field(1, ge=1, description="Number of units")
    unit_price: Optional[float] = Field(
        None, description="Price per unit excluding vat"
    )
    unit_price_inc: Optional[float] = Field(
        None, description="Price per unit including vat"
    )
    vat_amount: Optional[float] = Field(None, description="Vat amount per unit")
    vat_rate: Optional[float] = Field(
        None, description="Vat rate as a percentage, None if still to be determined"
    )
    vat_rate_source: VatRateSource = Field(
        VatRateSource.STRATEGY, description="How the vat rate was obtained"
    )
    strategy_split: bool = Field(
        False, description="The line may be split over multiple vat rates"
    )
    vat_rate_mismatch: bool = Field(
        False,
        description="An earlier correction pass found no allowed vat rate matching this line",
    )
    line_amount: Optional[float] = Field(
        None, description="Total amount of the line excluding vat"
    )
    line_amount_inc: Optional[float] = Field(
        None, description="Total amount of the line including vat"
    )
    discount_amount_inc: Optional[float] = Field(
        None,
        description="Part of an order level discount (inc vat) that applies to this line",
    )
    line_type: Optional[str] = Field(
        None, description="Type of line, e.g. 'product', 'shipping', 'discount'"
    )
    strategy_used: Optional[str] = Field(
        None, description="Name of the strategy that completed this line"
    )

    def has_unit_price(self) -> bool:
        return self.unit_price is not None or self.unit_price_inc is not None

    def amount_ex(self) -> Optional[float]:
        """Total amount excluding vat, if it can be derived."""
        if self.line_amount is not None:
            return self.line_amount
        if self.unit_price is not None:
            return self.unit_price * self.quantity
        if self.unit_price_inc is not None and self.vat_amount is not None:
            return (self.unit_price_inc - self.vat_amount) * self.quantity
        return None

    def amount_inc(self) -> Optional[float]:
        """Total amount including vat, if it can be derived."""
        if self.line_amount_inc is not None:
            return self.line_amount_inc
        if self.unit_price_inc is not None:
            return self.unit_price_inc * self.quantity
        if self.unit_price is not None and self.vat_amount is not None:
            return (self.unit_price + self.vat_amount) * self.quantity
        return None

    def vat_contribution(self) -> float:
        """
        The vat amount for the whole line: the known vat amount if set,
        otherwise computed from the vat rate and the unit price.
        """
        if self.vat_amount is not None:
            return self.vat_amount * self.quantity
        if self.vat_rate is None:
            return 0.0
        if self.unit_price is not None:
            return vat_over_amount(self.vat_rate, self.unit_price) * self.quantity
        if self.unit_price_inc is not None:
            return vat_in_amount(self.vat_rate, self.unit_price_inc) * self.quantity
        return 0.0


class VatRateCandidate(BaseModel):
    """A vat rate that is legally possible for the invoice, with its vat type."""

    model_config = ConfigDict(frozen=True)

    vat_rate: float
    vat_type: int


class VatBreakdownEntry(BaseModel):
    vat_rate: float
    vat_amount: float = 0.0
    amount: float = 0.0
    count: int = 0


def add_to_vat_breakdown(
    vat_breakdown: Dict[str, VatBreakdownEntry], line: Line
) -> None:
    """Adds a line with a vat rate to the breakdown (in place)."""
    if line.vat_rate is None:
        return
    vat_amount = 0.0 if is_no_vat(line.vat_rate) else line.vat_contribution()
    amount = line.amount_ex()
    if amount is None:
        amount_inc = line.amount_inc()
        amount = amount_inc - vat_amount if amount_inc is not None else 0.0
    key = rate_key(line.vat_rate)
    entry = vat_breakdown.get(key)
    if entry is None:
        entry = VatBreakdownEntry(vat_rate=float(key))
        vat_breakdown[key] = entry
    entry.vat_amount += vat_amount
    entry.amount += amount
    entry.count += 1


def build_vat_breakdown(lines: List[Line]) -> Dict[str, VatBreakdownEntry]:
    """
    Returns the vat breakdown of the given lines: per vat rate (keyed by the
    rate formatted with 3 decimals) the vat amount, the amount ex vat and the
    number of lines, most used rate first.
    """
    breakdown: Dict[str, VatBreakdownEntry] = {}
    for line in lines:
        add_to_vat_breakdown(breakdown, line)
    return dict(sorted(breakdown.items(), key=lambda item: -item[1].count))


class CompletionInput(BaseModel):
    """
    Everything a strategy needs to know about the invoice.
    """

    lines2complete: List[Line] = Field(
        ..., description="Lines without (a definitive) vat rate, in invoice order"
    )
    other_lines: List[Line] = Field(
        default_factory=list, description="Lines of the invoice that are not pending"
    )
    possible_vat_rates: List[VatRateCandidate] = Field(
        default_factory=list,
        description="Vat rates legally possible for the invoice date and country",
    )
    vat2divide: float = Field(
        ..., description="Vat amount the pending lines should add up to"
    )
    vat_breakdown: Optional[Dict[str, VatBreakdownEntry]] = Field(
        None,
        description="Vat per rate on the other lines, derived from other_lines if not given",
    )

    @model_validator(mode="after")
    def _derive_vat_breakdown(self):
        if self.vat_breakdown is None:
            self.vat_breakdown = build_vat_breakdown(self.other_lines)
        return self

    @property
    def possible_vat_types(self) -> List[int]:
        """The vat types of the possible vat rates, in order of appearance."""
        vat_types: List[int] = []
        for candidate in self.possible_vat_rates:
            if candidate.vat_type not in vat_types:
                vat_types.append(candidate.vat_type)
        return vat_types

    @classmethod
    def from_invoice_lines(
        cls,
        lines: List[Line],
        vat_amount: float,
        possible_vat_rates: List[VatRateCandidate],
    ) -> "CompletionInput":
        """
        Builds the input for the strategies from all lines of an invoice and
        the total vat amount of that invoice.

        The vat to divide is the invoice vat amount minus the vat of all lines
        that already have a vat rate.
        """
        lines2complete = []
        other_lines = []
        vat2divide = float(vat_amount)
        for line in lines:
            if line.vat_rate_source == VatRateSource.STRATEGY:
                lines2complete.append(line)
            else:
                other_lines.append(line)
                vat2divide -= line.vat_contribution()
        return cls(
            lines2complete=lines2complete,
            other_lines=other_lines,
            possible_vat_rates=possible_vat_rates,
            vat2divide=vat2divide,
        )


class StrategyResult(BaseModel):
    """
    Outcome of applying 1 strategy.
    - replacing_lines: per index in lines2complete, the line(s) replacing it
    """

    strategy_name: str
    description: str
    success: bool
    replacing_lines: Dict[int, List[Line]] = Field(default_factory=dict)
    needs_review: bool = False

    @property
    def completed_lines(self) -> List[Line]:
        return [
            line
            for index in sorted(self.replacing_lines)
            for line in self.replacing_lines[index]
        ]


class CompletionResult(BaseModel):
    """
    Outcome of a complete run of the strategies.
    - lines: the lines replacing lines2complete, in invoice order
    - strategies_used: names of the successful strategies
    - descriptions: the (parameterised) descriptions of those strategies
    - needs_review: True if the vat division could not be verified
    """

    lines: List[Line] = Field(default_factory=list)
    strategies_used: List[str] = Field(default_factory=list)
    descriptions: List[str] = Field(default_factory=list)
    needs_review: bool = False
    vat2divide: float = 0.0
    warnings: List[str] = Field(default_factory=list)

    @property
    def description(self) -> str:
        return "; ".join(self.descriptions)
