import random
from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from event_ledger.engine import TOTAL, aggregate
from event_ledger.exchange import ExchangeRate
from event_ledger.movements import (
    CASH,
    CURRENCIES,
    FOREIGN,
    INFLOW,
    KINDS,
    LOCAL,
    OTHER,
    OUTFLOW,
    PAYMENT_METHODS,
    WIRE_TRANSFER,
    FinancialMovement,
)


def _mv(id, kind, currency, method, amount, effective=None, expected=None):
    return {
        "id": id,
        "kind": kind,
        "currency": currency,
        "paymentMethod": method,
        "amount": amount,
        "effectiveDate": effective,
        "expectedDate": expected,
    }


def _sample():
    return [
        _mv("a", "inflow", "local", "cash", 1000, "2024-01-05"),
        _mv("b", "outflow", "local", "cash", 400, "2024-01-10"),
        _mv("c", "inflow", "foreign", "wireTransfer", 50, None, "2024-01-20"),
        _mv("d", "inflow", "foreign", "cash", 20, "2024-01-31"),
        _mv("e", "outflow", "local", "wireTransfer", 250.75, "2024-02-02"),
        _mv("f", "outflow", "foreign", "other", 5, None, "2024-03-01"),
        _mv("g", "inflow", "local", "other", 99.99, "2023-12-31"),
    ]


def test_scenario_balance_and_pending() -> None:
    """Reference scenario: cash 1000 in, 400 out, one pending foreign inflow."""
    movements = [
        _mv("1", "inflow", "local", "cash", 1000, "2024-01-05"),
        _mv("2", "outflow", "local", "cash", 400, "2024-01-10"),
        _mv("3", "inflow", "foreign", "wireTransfer", 50, None),
    ]

    summary = aggregate(movements, as_of_date="2024-01-31")

    assert summary.cumulative_balance[CASH][LOCAL] == Decimal("600")
    assert summary.cumulative_balance[TOTAL][LOCAL] == Decimal("600")
    assert summary.pending_totals[INFLOW][FOREIGN] == Decimal("50")
    assert len(summary.pending_records) == 1
    assert summary.pending_records[0].id == "3"


def test_empty_input_returns_all_zero_buckets() -> None:
    summary = aggregate([])

    for method in PAYMENT_METHODS:
        for currency in CURRENCIES:
            totals = summary.period_totals[method][currency]
            assert totals.inflow == 0 and totals.outflow == 0
    for key in (*PAYMENT_METHODS, TOTAL):
        assert all(v == 0 for v in summary.cumulative_balance[key].values())
    for kind in KINDS:
        assert all(v == 0 for v in summary.pending_totals[kind].values())
        assert summary.pending_local_equivalent[kind] == 0
    assert summary.settled_records == []
    assert summary.pending_records == []
    assert summary.diagnostics == []


def test_aggregation_is_order_independent() -> None:
    """Any permutation of the input gives an identical summary."""
    records = _sample()
    reference = aggregate(
        records,
        period_start="2024-01-01",
        period_end="2024-01-31",
        as_of_date="2024-02-15",
        exchange_rate=ExchangeRate(buy=Decimal("1000"), sell=Decimal("1050")),
    )

    rng = random.Random(7)
    for _ in range(10):
        shuffled = records[:]
        rng.shuffle(shuffled)
        result = aggregate(
            shuffled,
            period_start="2024-01-01",
            period_end="2024-01-31",
            as_of_date="2024-02-15",
            exchange_rate=ExchangeRate(buy=Decimal("1000"), sell=Decimal("1050")),
        )
        assert result == reference


@pytest.mark.parametrize(
    "kind, expected",
    [("inflow", Decimal("125.5")), ("outflow", Decimal("-125.5"))],
)
def test_single_movement_sign(kind, expected) -> None:
    summary = aggregate([_mv("x", kind, "foreign", "cash", "125.5", "2024-05-01")])

    assert summary.cumulative_balance[TOTAL][FOREIGN] == expected
    assert summary.cumulative_balance[CASH][FOREIGN] == expected
    assert summary.cumulative_balance[TOTAL][LOCAL] == 0


def test_pending_movement_never_reaches_settled_totals() -> None:
    summary = aggregate(
        [_mv("p", "outflow", "local", "wireTransfer", 300, None, "2024-01-15")]
    )

    assert summary.period_totals[WIRE_TRANSFER][LOCAL].outflow == 0
    assert summary.cumulative_balance[TOTAL][LOCAL] == 0
    assert summary.settled_records == []
    assert summary.pending_totals[OUTFLOW][LOCAL] == Decimal("300")
    assert [m.id for m in summary.pending_records] == ["p"]


def test_boundaries_are_inclusive() -> None:
    """Movements dated exactly on period end / as-of day are included."""
    movements = [
        _mv("start", "inflow", "local", "cash", 10, "2024-01-01"),
        _mv("end", "inflow", "local", "cash", 20, "2024-01-31T23:59:00Z"),
        _mv("after", "inflow", "local", "cash", 40, "2024-02-01"),
    ]

    summary = aggregate(
        movements,
        period_start="2024-01-01",
        period_end="2024-01-31",
        as_of_date=date(2024, 1, 31),
    )

    assert summary.period_totals[CASH][LOCAL].inflow == Decimal("30")
    assert summary.cumulative_balance[TOTAL][LOCAL] == Decimal("30")
    assert [m.id for m in summary.settled_records] == ["start", "end"]


def test_malformed_record_does_not_affect_valid_totals() -> None:
    """One 'eur' record among nine valid ones is excluded and reported."""
    valid = [
        _mv(f"v{i}", "inflow" if i % 2 else "outflow", "local", "cash", i * 10, "2024-01-10")
        for i in range(1, 10)
    ]
    malformed = _mv("bad", "inflow", "eur", "cash", 1_000_000, "2024-01-10")

    with_bad = aggregate(valid[:4] + [malformed] + valid[4:])
    only_valid = aggregate(valid)

    assert with_bad.cumulative_balance == only_valid.cumulative_balance
    assert with_bad.period_totals == only_valid.period_totals
    assert [d.record_id for d in with_bad.rejected] == ["bad"]


def test_cumulative_balance_ignores_period_window() -> None:
    summary = aggregate(
        _sample(),
        period_start="2024-01-01",
        period_end="2024-01-31",
        as_of_date="2024-01-31",
    )

    # g (2023-12-31) counts in the balance but not in the period.
    assert summary.period_totals[OTHER][LOCAL].inflow == 0
    assert summary.cumulative_balance[OTHER][LOCAL] == Decimal("99.99")
    # e (2024-02-02) is after as_of.
    assert summary.cumulative_balance[WIRE_TRANSFER][LOCAL] == 0
    assert summary.cumulative_balance[TOTAL][LOCAL] == Decimal("699.99")
    assert summary.cumulative_balance[TOTAL][FOREIGN] == Decimal("20")


def test_pending_membership_uses_expected_date() -> None:
    summary = aggregate(_sample(), period_start="2024-01-01", period_end="2024-01-31")

    assert [m.id for m in summary.pending_records] == ["c"]
    assert summary.pending_totals[INFLOW][FOREIGN] == Decimal("50")
    assert summary.pending_totals[OUTFLOW][FOREIGN] == 0


def test_local_equivalent_uses_buy_for_inflow_and_sell_for_outflow() -> None:
    rate = ExchangeRate(buy=Decimal("1000"), sell=Decimal("1100"))
    movements = [
        _mv("in", "inflow", "foreign", "cash", 2, "2024-01-10"),
        _mv("out", "outflow", "foreign", "cash", 1, "2024-01-10"),
        _mv("loc", "outflow", "local", "cash", 500, "2024-01-10"),
        _mv("pend", "outflow", "foreign", "cash", 3, None, "2024-01-12"),
    ]

    summary = aggregate(movements, exchange_rate=rate)

    assert summary.exchange_rate_available
    assert summary.period_local_equivalent[INFLOW] == Decimal("2000")
    assert summary.period_local_equivalent[OUTFLOW] == Decimal("1600")
    assert summary.period_local_balance == Decimal("400")
    assert summary.pending_local_equivalent[OUTFLOW] == Decimal("3300")


def test_missing_rate_falls_back_to_one_and_is_flagged() -> None:
    movements = [_mv("in", "inflow", "foreign", "cash", 7, None, "2024-01-12")]

    summary = aggregate(movements)

    assert not summary.exchange_rate_available
    assert summary.pending_local_equivalent[INFLOW] == Decimal("7")
    # Foreign bucket untouched by the fallback.
    assert summary.pending_totals[INFLOW][FOREIGN] == Decimal("7")


def test_zero_rate_counts_as_unavailable() -> None:
    summary = aggregate(
        [_mv("in", "inflow", "foreign", "cash", 7, "2024-01-12")],
        exchange_rate=ExchangeRate(buy=Decimal("0"), sell=Decimal("0")),
    )

    assert not summary.exchange_rate_available
    assert summary.period_local_equivalent[INFLOW] == Decimal("7")


def test_records_are_sorted_by_date_then_id() -> None:
    movements = [
        _mv("b", "inflow", "local", "cash", 1, "2024-01-02"),
        _mv("a", "inflow", "local", "cash", 1, "2024-01-02"),
        _mv("z", "inflow", "local", "cash", 1, "2024-01-01"),
    ]

    summary = aggregate(movements)

    assert [m.id for m in summary.settled_records] == ["z", "a", "b"]


def test_dataframe_input_is_accepted() -> None:
    df = pd.DataFrame(
        [
            {"id": "1", "type": "cobro", "moneda": "ars", "especie": "efectivo",
             "montoEspera": 10.0, "fechaEfectuado": "2024-01-01"},
            {"id": "2", "type": "pago", "moneda": "ars", "especie": "efectivo",
             "montoEspera": 4.0, "fechaEfectuado": None},
        ]
    )

    summary = aggregate(df)

    assert summary.cumulative_balance[TOTAL][LOCAL] == Decimal("10")
    assert len(summary.pending_records) == 1


@pytest.mark.parametrize("bad_input", [None, "records", {"id": "1"}, 42])
def test_non_list_input_raises_type_error(bad_input) -> None:
    with pytest.raises(TypeError):
        aggregate(bad_input)


def test_invalid_parameters_raise_value_error() -> None:
    with pytest.raises(ValueError):
        aggregate([], as_of_date="yesterday-ish")


def test_inverted_period_is_an_empty_window() -> None:
    """End before start selects nothing but leaves the running balance alone."""
    summary = aggregate(
        _sample(), period_start="2024-02-01", period_end="2024-01-01"
    )

    assert summary.settled_records == []
    assert summary.pending_records == []
    assert summary.period_totals[CASH][LOCAL].inflow == 0
    assert summary.cumulative_balance[CASH][LOCAL] == Decimal("600")


def test_built_movements_with_bad_values_do_not_abort_aggregation() -> None:
    def built(id, **overrides):
        fields = dict(
            id=id,
            kind=INFLOW,
            payment_method=CASH,
            currency=LOCAL,
            amount=Decimal("100"),
            expected_date=None,
            effective_date=date(2024, 1, 5),
        )
        fields.update(overrides)
        return FinancialMovement(**fields)

    summary = aggregate(
        [
            built("ok"),
            built("eur", currency="eur"),
            built("neg", amount=Decimal("-50")),
            built("float", amount=2.5),
        ]
    )

    assert summary.cumulative_balance[TOTAL][LOCAL] == Decimal("102.5")
    assert [d.record_id for d in summary.rejected] == ["eur"]
    assert any(
        d.record_id == "neg" and d.reason == "negative amount"
        for d in summary.diagnostics
    )
