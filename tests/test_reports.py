from datetime import date
from decimal import Decimal

import pandas as pd

from event_ledger.engine import TOTAL
from event_ledger.exchange import ExchangeRate
from event_ledger.movements import CASH, FOREIGN, INFLOW, LOCAL, OUTFLOW, WIRE_TRANSFER
from event_ledger.reports import (
    compare_months,
    daily_cash_report,
    event_report,
    monthly_metrics,
    monthly_report,
    movements_overview,
    percentage_change,
    scheduled_totals,
)


def _rec(id, type, moneda, monto, efectuado=None, espera=None, especie="efectivo", **extra):
    record = {
        "id": id,
        "type": type,
        "especie": especie,
        "moneda": moneda,
        "montoEspera": monto,
        "fechaEspera": espera,
        "fechaEfectuado": efectuado,
        "categoria": "evento",
    }
    record.update(extra)
    return record


def _ledger():
    boda = {"evento_id": "ev1", "cliente_id": "cl1",
            "expand": {"evento_id": {"id": "ev1", "nombre": "Boda"}}}
    gala = {"evento_id": "ev2", "cliente_id": "cl2",
            "expand": {"evento_id": {"id": "ev2", "nombre": "Gala"}}}
    return [
        _rec("1", "cobro", "ars", 1000, "2024-01-05", "2024-01-05", **boda),
        _rec("2", "pago", "ars", 300, "2024-01-05", "2024-01-04", especie="trasferencia", **boda),
        _rec("3", "cobro", "usd", 100, None, "2024-01-25", **boda),
        _rec("4", "cobro", "ars", 2000, "2023-12-20", "2023-12-20", **gala),
        _rec("5", "pago", "usd", 10, "2024-01-06", "2024-01-06", **gala),
        _rec("6", "pago", "ars", 50, None, "2024-02-10", categoria="oficina"),
    ]


def test_percentage_change() -> None:
    assert percentage_change(Decimal("150"), Decimal("100")) == Decimal("50")
    assert percentage_change(Decimal("50"), Decimal("0")) == 0


def test_daily_cash_report_nets_each_payment_method() -> None:
    report = daily_cash_report(_ledger(), date(2024, 1, 5))

    assert report.net_by_method[CASH][LOCAL] == Decimal("1000")
    assert report.net_by_method[WIRE_TRANSFER][LOCAL] == Decimal("-300")
    assert report.net_total[LOCAL] == Decimal("700")
    assert report.net_total[FOREIGN] == 0
    assert [m.id for m in report.records] == ["1", "2"]


def test_monthly_report_balance_runs_to_month_end() -> None:
    report = monthly_report(_ledger(), 2024, 1)

    assert report.period.label == "Enero 2024"
    assert report.inflow[LOCAL] == Decimal("1000")
    assert report.outflow[LOCAL] == Decimal("300")
    assert report.outflow[FOREIGN] == Decimal("10")
    assert report.net[LOCAL] == Decimal("700")
    # December's inflow is part of the running balance.
    assert report.cumulative[TOTAL][LOCAL] == Decimal("2700")
    assert report.cumulative[TOTAL][FOREIGN] == Decimal("-10")
    assert report.pending[INFLOW][FOREIGN] == Decimal("100")
    assert report.pending[OUTFLOW][LOCAL] == 0


def test_scheduled_totals_cover_all_pending_movements() -> None:
    totals = scheduled_totals(_ledger())

    assert totals.by_kind[INFLOW][FOREIGN] == Decimal("100")
    assert totals.by_kind[OUTFLOW][LOCAL] == Decimal("50")
    assert totals.by_currency == {LOCAL: Decimal("50"), FOREIGN: Decimal("100")}
    assert [m.id for m in totals.records] == ["3", "6"]


def test_event_report_groups_by_event() -> None:
    report = event_report(_ledger())

    assert list(report.events) == ["ev1", "ev2"]
    boda = report.events["ev1"]
    assert boda.name == "Boda"
    assert boda.client_id == "cl1"
    assert boda.totals[INFLOW][LOCAL] == Decimal("1000")
    assert boda.totals[INFLOW][FOREIGN] == Decimal("100")
    assert boda.settled[INFLOW][FOREIGN] == 0
    assert boda.net(LOCAL) == Decimal("700")
    # Office expense is outside the "evento" category.
    assert report.overall.totals[OUTFLOW][LOCAL] == Decimal("300")


def test_event_report_filters() -> None:
    by_client = event_report(_ledger(), client_id="cl2")
    assert list(by_client.events) == ["ev2"]

    single = event_report(_ledger(), event_id="ev1")
    assert single.overall.name == "Boda"
    assert single.overall.totals[INFLOW][LOCAL] == Decimal("1000")

    every_category = event_report(_ledger(), category=None)
    assert every_category.overall.totals[OUTFLOW][LOCAL] == Decimal("350")


def test_monthly_metrics_and_comparison() -> None:
    metrics = monthly_metrics(_ledger(), 2024, 1)

    assert metrics.total_inflow[LOCAL] == Decimal("1000")
    assert metrics.total_inflow[FOREIGN] == Decimal("100")
    assert metrics.pending_billing[FOREIGN] == Decimal("100")
    assert metrics.active_events == {"ev1"}

    comparison = compare_months(_ledger(), date(2024, 1, 20))
    assert comparison.previous.total_inflow[LOCAL] == Decimal("2000")
    assert comparison.inflow_change[LOCAL] == Decimal("-50")


def test_movements_overview_local_equivalent() -> None:
    rate = ExchangeRate(buy=Decimal("1000"), sell=Decimal("1200"))

    overview = movements_overview(
        _ledger(), days=30, exchange_rate=rate, today=date(2024, 1, 31)
    )

    assert overview.local_inflow == Decimal("1000")
    assert overview.local_outflow == Decimal("300") + Decimal("12000")
    assert overview.local_balance == Decimal("-11300")
    assert not overview.is_estimate
    days = [d.day for d in overview.daily]
    assert days == sorted(days)
    jan_25 = next(d for d in overview.daily if d.day == date(2024, 1, 25))
    assert jan_25.inflow == Decimal("100000")


def test_movements_overview_without_rate_is_estimate() -> None:
    overview = movements_overview(_ledger(), today=date(2024, 1, 31))

    assert overview.is_estimate
    assert overview.local_outflow == Decimal("310")


def test_reports_accept_a_dataframe() -> None:
    """Reports take a DataFrame of records the same way aggregate does."""
    df = pd.DataFrame(
        [
            {"id": "1", "type": "cobro", "especie": "efectivo", "moneda": "ars",
             "montoEspera": 100.0, "fechaEfectuado": "2024-01-10",
             "categoria": "evento", "evento_id": "ev1"},
        ]
    )

    report = event_report(df)
    assert list(report.events) == ["ev1"]
    assert report.events["ev1"].totals[INFLOW][LOCAL] == Decimal("100")
    assert report.diagnostics == []

    comparison = compare_months(df, date(2024, 1, 15))
    assert comparison.current.total_inflow[LOCAL] == Decimal("100")
