# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core ledger aggregation engine for Event Ledger.

Every cash-flow view of the dashboard (daily cash, monthly report, summary
cards, financial movements, scheduled records) is a projection of the same
computation over a snapshot of accounting movements. This module implements
that computation once, as a pure function:

    aggregate(movements, period_start=..., period_end=..., as_of_date=...,
              exchange_rate=...) -> LedgerSummary

The engine never mutates its input and never performs I/O.

1. Period totals
   -------------
   Settled movements (with an effective date) whose effective date falls in
   ``[period_start, period_end]`` are summed into
   ``period_totals[payment_method][currency]`` as inflow / outflow.

2. Cumulative balance
   ------------------
   Settled movements whose effective date is on or before ``as_of_date``
   (whatever the period) adjust ``cumulative_balance[payment_method][currency]``
   by ``+amount`` (inflow) or ``-amount`` (outflow). The same adjustment is
   applied to ``cumulative_balance["total"][currency]``, independently of the
   payment method.

3. Pending exposure
   ----------------
   Pending movements (no effective date) are summed into
   ``pending_totals[kind][currency]``, using the expected date to decide
   period membership. A local-currency-equivalent exposure is computed per
   kind with the exchange rate for that kind (buy for inflows, sell for
   outflows), or a multiplier of 1 when the rate is not available.

Boundaries are inclusive at day granularity. A missing period bound leaves
that side of the window open and a missing ``as_of_date`` means "no upper
bound". A period whose end is before its start is an empty window: period
and pending totals are zero while the cumulative balance is unaffected.

Notes
-----
- Amounts are ``Decimal``: sums are exact, so the result does not depend on
  the order of the input records.
- Data-quality problems never abort the computation. Raw records are
  normalized first (see ``movements.normalize_movements``); records with an
  unrecognized currency, kind or payment method are excluded and reported
  in ``LedgerSummary.diagnostics``.
- When no exchange rate is available the local-equivalent figures are
  approximations and ``LedgerSummary.exchange_rate_available`` is False.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union

from .exchange import RateLike, has_rate, to_local
from .movements import (
    CURRENCIES,
    INFLOW,
    KINDS,
    OUTFLOW,
    PAYMENT_METHODS,
    ZERO,
    FinancialMovement,
    RecordDiagnostic,
    coerce_records,
    normalize_movements,
    parse_calendar_date,
)

TOTAL = "total"

DateLike = Union[date, str, None]


# ---------------------------------------------------------------------------
# Result structures
# ---------------------------------------------------------------------------


@dataclass
class FlowTotals:
    """Inflow and outflow sums for one bucket."""

    inflow: Decimal = ZERO
    outflow: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.inflow - self.outflow

    def add(self, kind: str, amount: Decimal) -> None:
        if kind == INFLOW:
            self.inflow += amount
        else:
            self.outflow += amount


@dataclass
class LedgerSummary:
    """
    Structured result of :func:`aggregate`.

    Attributes
    ----------
    period_totals:
        ``{payment_method: {currency: FlowTotals}}`` for settled movements
        inside the period window.
    cumulative_balance:
        ``{payment_method | "total": {currency: Decimal}}``, signed running
        balance of settled movements up to ``as_of_date``.
    pending_totals:
        ``{kind: {currency: Decimal}}`` for pending movements whose expected
        date is inside the period window.
    pending_local_equivalent:
        ``{kind: Decimal}``, pending exposure converted to local currency.
    period_local_equivalent:
        ``{kind: Decimal}``, period totals converted to local currency.
    settled_records / pending_records:
        Movements behind period totals and pending totals, sorted by date
        then id.
    diagnostics:
        Data-quality findings from normalization.
    exchange_rate_available:
        False when local-equivalent figures used the fallback multiplier.
    """

    period_totals: dict[str, dict[str, FlowTotals]]
    cumulative_balance: dict[str, dict[str, Decimal]]
    pending_totals: dict[str, dict[str, Decimal]]
    pending_local_equivalent: dict[str, Decimal]
    period_local_equivalent: dict[str, Decimal]
    settled_records: list[FinancialMovement] = field(default_factory=list)
    pending_records: list[FinancialMovement] = field(default_factory=list)
    diagnostics: list[RecordDiagnostic] = field(default_factory=list)
    exchange_rate_available: bool = False

    @property
    def rejected(self) -> list[RecordDiagnostic]:
        """Diagnostics of records excluded from every total."""
        return [d for d in self.diagnostics if d.excluded]

    def period_totals_by_currency(self) -> dict[str, FlowTotals]:
        """Period totals summed across payment methods."""
        out = {c: FlowTotals() for c in CURRENCIES}
        for by_currency in self.period_totals.values():
            for currency, totals in by_currency.items():
                out[currency].inflow += totals.inflow
                out[currency].outflow += totals.outflow
        return out

    @property
    def period_local_balance(self) -> Decimal:
        return (
            self.period_local_equivalent[INFLOW]
            - self.period_local_equivalent[OUTFLOW]
        )


def _empty_summary() -> LedgerSummary:
    return LedgerSummary(
        period_totals={
            m: {c: FlowTotals() for c in CURRENCIES} for m in PAYMENT_METHODS
        },
        cumulative_balance={
            m: {c: ZERO for c in CURRENCIES} for m in (*PAYMENT_METHODS, TOTAL)
        },
        pending_totals={k: {c: ZERO for c in CURRENCIES} for k in KINDS},
        pending_local_equivalent={k: ZERO for k in KINDS},
        period_local_equivalent={k: ZERO for k in KINDS},
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _coerce_bound(value: DateLike, name: str) -> Optional[date]:
    """Parse an aggregation parameter; unlike record dates, bad values raise."""
    if value is None:
        return None
    parsed = parse_calendar_date(value)
    if parsed is None:
        raise ValueError(f"Invalid {name}: {value!r}, expected a date.")
    return parsed


def _in_window(
    day: Optional[date], start: Optional[date], end: Optional[date]
) -> bool:
    if start is None and end is None:
        return True
    if day is None:
        return False
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def _sort_key(movement: FinancialMovement) -> tuple[date, str]:
    return (movement.reference_date or date.max, movement.id)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def aggregate(
    movements: Iterable[Union[FinancialMovement, Mapping[str, Any]]],
    *,
    period_start: DateLike = None,
    period_end: DateLike = None,
    as_of_date: DateLike = None,
    exchange_rate: RateLike = None,
) -> LedgerSummary:
    """Aggregate financial movements into period, cumulative and pending totals.

    Args:
        movements: FinancialMovement objects and/or raw backend records.
        period_start: First day of the period window (inclusive), or None.
        period_end: Last day of the period window (inclusive), or None.
        as_of_date: Reference day for the cumulative balance (inclusive),
            or None for "all settled movements".
        exchange_rate: ExchangeRate quote or a plain multiplier used for
            local-currency equivalents; None when not available yet.

    Returns:
        A LedgerSummary. All buckets exist even when empty (zero values).

    Raises:
        TypeError: if ``movements`` is not a list-like collection.
        ValueError: if a date parameter cannot be parsed. This is a contract
            on the caller's arguments; record data never raises.
    """
    start = _coerce_bound(period_start, "period_start")
    end = _coerce_bound(period_end, "period_end")
    as_of = _coerce_bound(as_of_date, "as_of_date")

    normalized = normalize_movements(coerce_records(movements))

    summary = _empty_summary()
    summary.diagnostics = list(normalized.diagnostics)
    summary.exchange_rate_available = has_rate(exchange_rate)

    for m in normalized.movements:
        # 1) Pending: expected date decides period membership.
        if m.is_pending:
            if _in_window(m.expected_date, start, end):
                summary.pending_totals[m.kind][m.currency] += m.amount
                summary.pending_local_equivalent[m.kind] += to_local(
                    m.amount, m.currency, m.kind, exchange_rate
                )
                summary.pending_records.append(m)
            continue

        day = m.effective_date

        # 2) Period totals.
        if _in_window(day, start, end):
            summary.period_totals[m.payment_method][m.currency].add(m.kind, m.amount)
            summary.period_local_equivalent[m.kind] += to_local(
                m.amount, m.currency, m.kind, exchange_rate
            )
            summary.settled_records.append(m)

        # 3) Cumulative balance, regardless of the period window.
        if as_of is None or day <= as_of:
            summary.cumulative_balance[m.payment_method][m.currency] += m.signed_amount
            summary.cumulative_balance[TOTAL][m.currency] += m.signed_amount

    summary.settled_records.sort(key=_sort_key)
    summary.pending_records.sort(key=_sort_key)
    return summary
