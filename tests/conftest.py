import pytest

from vatcompletor.strategies_core.models import (
    Line,
    VatRateCandidate,
    VatRateSource,
    VatType,
)
from vatcompletor.utils.config import CompletorConfig


def pytest_sessionstart(session):
    """
    Called after the Session object has been created and
    before performing test collection and execution.
    """
    from vatcompletor.strategies_core.autodiscover import autodiscover_strategies

    autodiscover_strategies()


@pytest.fixture
def config():
    return CompletorConfig()


@pytest.fixture
def dutch_vat_rates():
    """Dutch national rates plus the 0% rate of reversed vat."""
    return [
        VatRateCandidate(vat_rate=21.0, vat_type=VatType.NATIONAL),
        VatRateCandidate(vat_rate=9.0, vat_type=VatType.NATIONAL),
        VatRateCandidate(vat_rate=0.0, vat_type=VatType.NATIONAL_REVERSED),
    ]


@pytest.fixture
def two_rate_lines():
    """Confirmed lines on an invoice that uses exactly 9% and 21%."""
    return [
        Line(
            description="Book",
            unit_price=100.0,
            vat_rate=9.0,
            vat_rate_source=VatRateSource.EXACT,
        ),
        Line(
            description="Pen",
            unit_price=50.0,
            vat_rate=21.0,
            vat_rate_source=VatRateSource.EXACT,
        ),
    ]
