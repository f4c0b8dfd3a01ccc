import pytest

from event_ledger.engine import aggregate
from event_ledger.reports import event_report
from event_ledger.views import (
    RECORD_COLUMNS,
    balance_to_dataframe,
    event_report_to_dataframe,
    pending_to_dataframe,
    period_totals_to_dataframe,
    records_to_dataframe,
    rejected_to_dataframe,
)


def _records():
    return [
        {"id": "1", "type": "cobro", "especie": "efectivo", "moneda": "ars",
         "montoEspera": 1000, "fechaEfectuado": "2024-01-05", "categoria": "evento",
         "evento_id": "ev1", "expand": {"evento_id": {"id": "ev1", "nombre": "Boda"}}},
        {"id": "2", "type": "pago", "especie": "transferencia", "moneda": "usd",
         "montoEspera": 12.5, "fechaEfectuado": "2024-01-06", "categoria": "evento",
         "evento_id": "ev1"},
        {"id": "3", "type": "cobro", "moneda": "usd", "montoEspera": 40,
         "fechaEspera": "2024-01-20", "fechaEfectuado": None},
        {"id": "4", "type": "cobro", "moneda": "eur", "montoEspera": 5},
    ]


def test_period_totals_dataframe_has_total_rows() -> None:
    summary = aggregate(_records())

    df = period_totals_to_dataframe(summary)

    assert list(df.columns) == ["payment_method", "currency", "inflow", "outflow", "net"]
    # 3 payment methods x 2 currencies + 2 total rows
    assert len(df) == 8
    total_usd = df[(df["payment_method"] == "total") & (df["currency"] == "USD")].iloc[0]
    assert total_usd["outflow"] == pytest.approx(12.5)
    assert total_usd["net"] == pytest.approx(-12.5)


def test_balance_dataframe_uses_configured_currency_labels() -> None:
    summary = aggregate(_records())

    df = balance_to_dataframe(summary, {"local": "PESOS", "foreign": "DOLARES"})

    assert list(df.columns) == ["payment_method", "PESOS", "DOLARES"]
    assert df["payment_method"].tolist() == ["cash", "wire_transfer", "other", "total"]
    total = df[df["payment_method"] == "total"].iloc[0]
    assert total["PESOS"] == pytest.approx(1000.0)


def test_pending_dataframe() -> None:
    summary = aggregate(_records(), exchange_rate=1000)

    df = pending_to_dataframe(summary)

    inflow = df[df["kind"] == "inflow"].iloc[0]
    assert inflow["USD"] == pytest.approx(40.0)
    assert inflow["local_equivalent"] == pytest.approx(40000.0)


def test_records_dataframe() -> None:
    summary = aggregate(_records())

    df = records_to_dataframe(summary.settled_records)

    assert list(df.columns) == RECORD_COLUMNS
    assert df["id"].tolist() == ["1", "2"]
    assert df.loc[0, "event"] == "Boda"
    assert df.loc[1, "event"] == "ev1"
    assert df.loc[1, "currency"] == "USD"
    assert records_to_dataframe([]).empty


def test_event_report_dataframe_skips_empty_currencies() -> None:
    df = event_report_to_dataframe(event_report(_records()))

    assert df["currency"].tolist() == ["ARS", "USD"]
    assert df["movements"].tolist() == [1, 1]


def test_rejected_dataframe() -> None:
    summary = aggregate(_records())

    df = rejected_to_dataframe(summary.diagnostics)

    assert df["record_id"].tolist() == ["4"]
    assert bool(df.loc[0, "excluded"]) is True
    assert df.loc[0, "value"] == "eur"
