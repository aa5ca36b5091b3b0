"""Tests for commission split validation and payouts."""

from decimal import Decimal

import pytest

from app.exceptions import InvalidCommissionRange, InvalidCommissionSplit
from app.services.commission_calculator import CommissionCalculator, CommissionInput
from app.services.settings_store import SettingsStore


@pytest.fixture
def calculator(session_factory) -> CommissionCalculator:
    return CommissionCalculator(SettingsStore(session_factory, cache_ttl_seconds=0))


@pytest.mark.parametrize(
    "agent, promoter, company",
    [
        ("50", "30", "20"),
        ("0", "100", "0"),
        ("33.33", "33.33", "33.34"),
        (60, 25.5, 14.5),
    ],
)
def test_valid_split_with_promoter(calculator, agent, promoter, company):
    split = calculator.compute_split(CommissionInput(agent, promoter, company, has_promoter=True))

    assert split.has_promoter is True
    assert split.total == Decimal("100")


@pytest.mark.parametrize(
    "agent, company",
    [
        ("70", "30"),
        ("100", "0"),
        # Within the 0.01 tolerance
        ("33.33", "66.66"),
    ],
)
def test_valid_split_without_promoter(calculator, agent, company):
    split = calculator.compute_split(CommissionInput(agent, "0", company, has_promoter=False))

    assert split.promoter_pct == Decimal("0")
    assert abs(split.total - Decimal("100")) <= Decimal("0.01")


@pytest.mark.parametrize(
    "agent, promoter, company, has_promoter, total",
    [
        ("50", "30", "25", True, Decimal("105")),
        ("40", "30", "20", True, Decimal("90")),
        ("33.3", "0", "66.6", False, Decimal("99.9")),
        ("70", "10", "20", False, Decimal("100")),
    ],
)
def test_invalid_split(calculator, agent, promoter, company, has_promoter, total):
    with pytest.raises(InvalidCommissionSplit) as exc_info:
        calculator.compute_split(CommissionInput(agent, promoter, company, has_promoter))

    assert exc_info.value.total == total
    assert exc_info.value.status_code == 422


@pytest.mark.parametrize(
    "agent, promoter, company, field",
    [
        ("-1", "51", "50", "agent_pct"),
        ("50", "100.01", "0", "promoter_pct"),
        ("50", "0", "150", "company_pct"),
        ("abc", "0", "100", "agent_pct"),
        ("Infinity", "0", "0", "agent_pct"),
    ],
)
def test_out_of_range_percentage(calculator, agent, promoter, company, field):
    with pytest.raises(InvalidCommissionRange) as exc_info:
        calculator.compute_split(CommissionInput(agent, promoter, company, has_promoter=True))

    assert exc_info.value.field == field


def test_range_checked_before_promoter_rule(calculator):
    with pytest.raises(InvalidCommissionRange):
        calculator.compute_split(CommissionInput("105", "-5", "0", has_promoter=False))


def test_payouts_round_to_cents(calculator):
    split = calculator.compute_split(CommissionInput("33.33", "33.33", "33.34", has_promoter=True))
    payouts = split.payouts(Decimal("1000.55"))

    assert payouts.agent == Decimal("333.48")
    assert payouts.promoter == Decimal("333.48")
    assert payouts.company == Decimal("333.58")


def test_payouts_without_promoter(calculator):
    split = calculator.compute_split(CommissionInput("70", "0", "30", has_promoter=False))
    payouts = split.payouts(250000)

    assert payouts.agent == Decimal("175000.00")
    assert payouts.promoter == Decimal("0.00")
    assert payouts.company == Decimal("75000.00")
    assert payouts.total == Decimal("250000.00")


def test_qualifying_statuses_default_and_override(session_factory):
    store = SettingsStore(session_factory, cache_ttl_seconds=0)

    assert CommissionCalculator(store).qualifying_statuses == frozenset({"SOLD", "RENTED"})
    assert CommissionCalculator(store, qualifying_statuses=["SOLD"]).qualifying_statuses == frozenset({"SOLD"})


@pytest.mark.parametrize(
    "agent, promoter, company, total",
    [
        # Each share rounds up to 33.34
        ("33.335", "33.335", "33.335", Decimal("100.02")),
        ("66.675", "0", "33.335", Decimal("100.02")),
    ],
)
def test_sum_is_checked_on_rounded_shares(calculator, agent, promoter, company, total):
    with pytest.raises(InvalidCommissionSplit) as exc_info:
        calculator.compute_split(CommissionInput(agent, promoter, company, has_promoter=True))

    assert exc_info.value.total == total


def test_stored_split_stays_within_tolerance(calculator):
    split = calculator.compute_split(CommissionInput("33.334", "33.334", "33.334", has_promoter=True))

    assert split.agent_pct == Decimal("33.33")
    assert split.total == Decimal("99.99")
    assert abs(split.total - Decimal("100")) <= Decimal("0.01")
