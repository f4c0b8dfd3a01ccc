# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for Event Ledger.

This module turns the structured results of ``engine.aggregate`` and of the
report helpers into pandas DataFrames ready for console display
(``DataFrame.to_string``) or CSV export.

Amounts stay numeric (floats rounded to two decimals) so that exported CSV
files can be processed further; currency codes come from the ``[ledger]``
configuration and are carried in a ``currency`` column. Human-readable
currency strings are produced by ``formatting`` at the CLI level.

The main views are:

- period totals:   one row per payment method and currency,
- balance:         cumulative balance per payment method (and total),
- pending:         pending exposure per kind and currency,
- records:         the movements behind a set of totals,
- event report:    one row per event,
- rejected:        records excluded from aggregation and why.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Optional

import pandas as pd

from .engine import TOTAL, LedgerSummary
from .movements import (
    CURRENCIES,
    FOREIGN,
    INFLOW,
    KINDS,
    LOCAL,
    OUTFLOW,
    PAYMENT_METHODS,
    FinancialMovement,
    RecordDiagnostic,
)
from .reports import EventReport

DEFAULT_CURRENCY_LABELS = {LOCAL: "ARS", FOREIGN: "USD"}

RECORD_COLUMNS = [
    "id",
    "kind",
    "payment_method",
    "currency",
    "amount",
    "expected_date",
    "effective_date",
    "category",
    "subcategory",
    "detail",
    "event",
    "client",
    "comment",
]


def _amount(value: Decimal, decimals: int = 2) -> float:
    return round(float(value), decimals)


def _labels(currency_labels: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return currency_labels or DEFAULT_CURRENCY_LABELS


def period_totals_to_dataframe(
    summary: LedgerSummary, currency_labels: Optional[Mapping[str, str]] = None
) -> pd.DataFrame:
    """
    Period inflows/outflows per payment method and currency.

    Columns: payment_method, currency, inflow, outflow, net. A final
    ``total`` row per currency sums the payment methods.
    """
    labels = _labels(currency_labels)
    rows: list[dict[str, object]] = []

    for method in PAYMENT_METHODS:
        for currency in CURRENCIES:
            t = summary.period_totals[method][currency]
            rows.append(
                {
                    "payment_method": method,
                    "currency": labels[currency],
                    "inflow": _amount(t.inflow),
                    "outflow": _amount(t.outflow),
                    "net": _amount(t.net),
                }
            )

    for currency, t in summary.period_totals_by_currency().items():
        rows.append(
            {
                "payment_method": TOTAL,
                "currency": labels[currency],
                "inflow": _amount(t.inflow),
                "outflow": _amount(t.outflow),
                "net": _amount(t.net),
            }
        )

    return pd.DataFrame(
        rows, columns=["payment_method", "currency", "inflow", "outflow", "net"]
    )


def balance_to_dataframe(
    summary: LedgerSummary, currency_labels: Optional[Mapping[str, str]] = None
) -> pd.DataFrame:
    """Cumulative balance: one row per payment method (plus total), one column per currency."""
    labels = _labels(currency_labels)
    rows = []
    for method in (*PAYMENT_METHODS, TOTAL):
        row: dict[str, object] = {"payment_method": method}
        for currency in CURRENCIES:
            row[labels[currency]] = _amount(summary.cumulative_balance[method][currency])
        rows.append(row)
    return pd.DataFrame(
        rows, columns=["payment_method", *(labels[c] for c in CURRENCIES)]
    )


def pending_to_dataframe(
    summary: LedgerSummary, currency_labels: Optional[Mapping[str, str]] = None
) -> pd.DataFrame:
    """
    Pending exposure per kind.

    Columns: kind, one column per currency, and ``local_equivalent`` (the
    amounts converted to local currency with the summary's rate).
    """
    labels = _labels(currency_labels)
    rows = []
    for kind in KINDS:
        row: dict[str, object] = {"kind": kind}
        for currency in CURRENCIES:
            row[labels[currency]] = _amount(summary.pending_totals[kind][currency])
        row["local_equivalent"] = _amount(summary.pending_local_equivalent[kind])
        rows.append(row)
    return pd.DataFrame(
        rows,
        columns=["kind", *(labels[c] for c in CURRENCIES), "local_equivalent"],
    )


def records_to_dataframe(
    records: list[FinancialMovement],
    currency_labels: Optional[Mapping[str, str]] = None,
) -> pd.DataFrame:
    """One row per movement, in the order given (engine order is date, then id)."""
    if not records:
        return pd.DataFrame(columns=RECORD_COLUMNS)

    labels = _labels(currency_labels)
    rows = []
    for m in records:
        event = m.relations.get("event")
        client = m.relations.get("client")
        rows.append(
            {
                "id": m.id,
                "kind": m.kind,
                "payment_method": m.payment_method,
                "currency": labels[m.currency],
                "amount": _amount(m.amount),
                "expected_date": m.expected_date.isoformat() if m.expected_date else "",
                "effective_date": (
                    m.effective_date.isoformat() if m.effective_date else ""
                ),
                "category": m.category or "",
                "subcategory": m.subcategory or "",
                "detail": m.detail or "",
                "event": (event.name or event.id) if event else "",
                "client": (client.name or client.id) if client else "",
                "comment": m.comment,
            }
        )
    return pd.DataFrame(rows, columns=RECORD_COLUMNS)


def event_report_to_dataframe(
    report: EventReport, currency_labels: Optional[Mapping[str, str]] = None
) -> pd.DataFrame:
    """
    One row per event and currency with non-zero activity.

    Columns: event_id, event, currency, inflow, outflow, net,
    settled_inflow, settled_outflow, movements.
    """
    labels = _labels(currency_labels)
    columns = [
        "event_id",
        "event",
        "currency",
        "inflow",
        "outflow",
        "net",
        "settled_inflow",
        "settled_outflow",
        "movements",
    ]

    rows = []
    for ev in report.events.values():
        for currency in CURRENCIES:
            inflow = ev.totals[INFLOW][currency]
            outflow = ev.totals[OUTFLOW][currency]
            if inflow == 0 and outflow == 0:
                continue
            rows.append(
                {
                    "event_id": ev.event_id,
                    "event": ev.name,
                    "currency": labels[currency],
                    "inflow": _amount(inflow),
                    "outflow": _amount(outflow),
                    "net": _amount(ev.net(currency)),
                    "settled_inflow": _amount(ev.settled[INFLOW][currency]),
                    "settled_outflow": _amount(ev.settled[OUTFLOW][currency]),
                    "movements": sum(1 for m in ev.records if m.currency == currency),
                }
            )

    return pd.DataFrame(rows, columns=columns)


def rejected_to_dataframe(diagnostics: list[RecordDiagnostic]) -> pd.DataFrame:
    """Diagnostics as a table; ``excluded`` tells dropped from defaulted records."""
    columns = ["record_id", "field", "value", "reason", "excluded"]
    rows = [
        {
            "record_id": d.record_id,
            "field": d.field,
            "value": "" if d.value is None else str(d.value),
            "reason": d.reason,
            "excluded": d.excluded,
        }
        for d in diagnostics
    ]
    return pd.DataFrame(rows, columns=columns)
