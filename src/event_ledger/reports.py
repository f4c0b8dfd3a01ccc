# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Report helpers built on top of the aggregation engine.

Each dashboard view used to carry its own copy of the balance arithmetic.
Here every view is a thin projection of ``engine.aggregate`` with the
period / as-of parameters that view needs:

- daily_cash_report:   net cash and wire transfers of a single day,
- monthly_report:      month inflows/outflows, cumulative balance up to the
                       end of the month and pending amounts of the month,
- scheduled_totals:    pending (scheduled) movements and their totals,
- event_report:        inflows/outflows grouped by event,
- monthly_metrics / compare_months:
                       summary cards (current vs previous month),
- movements_overview:  last-N-days totals with local-currency equivalents
                       and a per-day series for charts.

Report functions accept raw backend records or FinancialMovement objects,
exactly like ``aggregate``.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from .engine import LedgerSummary, aggregate
from .exchange import RateLike, to_local
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
)
from .periods import (
    Period,
    period_for_day,
    period_for_month,
    period_last_days,
    previous_month,
)

HUNDRED = Decimal("100")


def percentage_change(current: Decimal, previous: Decimal) -> Decimal:
    """Relative change in percent; 0 when there is no previous value."""
    if previous == 0:
        return ZERO
    return (Decimal(current) - Decimal(previous)) / Decimal(previous) * HUNDRED


def _zero_by_currency() -> dict[str, Decimal]:
    return {c: ZERO for c in CURRENCIES}


def _zero_by_kind() -> dict[str, dict[str, Decimal]]:
    return {k: _zero_by_currency() for k in KINDS}


# ---------------------------------------------------------------------------
# Daily cash
# ---------------------------------------------------------------------------


@dataclass
class DailyCashReport:
    """Net settled amounts of one day, per payment method and currency."""

    period: Period
    net_by_method: dict[str, dict[str, Decimal]]
    net_total: dict[str, Decimal]
    summary: LedgerSummary

    @property
    def records(self) -> list[FinancialMovement]:
        return self.summary.settled_records


def daily_cash_report(
    movements: Iterable[Any], day: Optional[date] = None
) -> DailyCashReport:
    """Build the daily cash summary for ``day`` (today by default)."""
    period = period_for_day(day)
    summary = aggregate(movements, period_start=period.start, period_end=period.end)

    net_by_method = {
        m: {c: summary.period_totals[m][c].net for c in CURRENCIES}
        for m in PAYMENT_METHODS
    }
    net_total = {
        c: sum((net_by_method[m][c] for m in PAYMENT_METHODS), ZERO)
        for c in CURRENCIES
    }
    return DailyCashReport(
        period=period,
        net_by_method=net_by_method,
        net_total=net_total,
        summary=summary,
    )


# ---------------------------------------------------------------------------
# Monthly report
# ---------------------------------------------------------------------------


@dataclass
class MonthlyReport:
    """
    Monthly report.

    ``inflow`` / ``outflow`` are settled amounts of the month per currency,
    ``cumulative`` is the running balance up to the last day of the month
    (per payment method plus ``"total"``), ``pending`` holds the pending
    movements expected during the month.
    """

    period: Period
    inflow: dict[str, Decimal]
    outflow: dict[str, Decimal]
    cumulative: dict[str, dict[str, Decimal]]
    pending: dict[str, dict[str, Decimal]]
    summary: LedgerSummary

    @property
    def net(self) -> dict[str, Decimal]:
        return {c: self.inflow[c] - self.outflow[c] for c in CURRENCIES}


def monthly_report(
    movements: Iterable[Any],
    year: int,
    month: int,
    exchange_rate: RateLike = None,
) -> MonthlyReport:
    period = period_for_month(year, month)
    summary = aggregate(
        movements,
        period_start=period.start,
        period_end=period.end,
        as_of_date=period.end,
        exchange_rate=exchange_rate,
    )
    by_currency = summary.period_totals_by_currency()
    return MonthlyReport(
        period=period,
        inflow={c: by_currency[c].inflow for c in CURRENCIES},
        outflow={c: by_currency[c].outflow for c in CURRENCIES},
        cumulative=summary.cumulative_balance,
        pending=summary.pending_totals,
        summary=summary,
    )


# ---------------------------------------------------------------------------
# Scheduled (pending) records
# ---------------------------------------------------------------------------


@dataclass
class ScheduledTotals:
    """Pending movements, with totals per currency and per kind."""

    by_currency: dict[str, Decimal]
    by_kind: dict[str, dict[str, Decimal]]
    records: list[FinancialMovement]
    diagnostics: list[RecordDiagnostic]


def scheduled_totals(movements: Iterable[Any]) -> ScheduledTotals:
    """Totals of every pending movement, whatever its expected date."""
    summary = aggregate(movements)
    by_currency = {
        c: summary.pending_totals[INFLOW][c] + summary.pending_totals[OUTFLOW][c]
        for c in CURRENCIES
    }
    return ScheduledTotals(
        by_currency=by_currency,
        by_kind=summary.pending_totals,
        records=summary.pending_records,
        diagnostics=summary.diagnostics,
    )


# ---------------------------------------------------------------------------
# Event report
# ---------------------------------------------------------------------------


@dataclass
class EventTotals:
    """Inflows and outflows of one event (settled and pending alike)."""

    event_id: str
    name: str
    totals: dict[str, dict[str, Decimal]]
    settled: dict[str, dict[str, Decimal]]
    records: list[FinancialMovement] = field(default_factory=list)
    client_id: Optional[str] = None

    def net(self, currency: str) -> Decimal:
        return self.totals[INFLOW][currency] - self.totals[OUTFLOW][currency]


def _event_totals(
    event_id: str, name: str, movements: list[FinancialMovement]
) -> EventTotals:
    summary = aggregate(movements)
    by_currency = summary.period_totals_by_currency()

    settled = _zero_by_kind()
    totals = _zero_by_kind()
    for c in CURRENCIES:
        settled[INFLOW][c] = by_currency[c].inflow
        settled[OUTFLOW][c] = by_currency[c].outflow
        for k in KINDS:
            totals[k][c] = settled[k][c] + summary.pending_totals[k][c]

    client_ids = {m.relation_id("client") for m in movements} - {None}
    return EventTotals(
        event_id=event_id,
        name=name,
        totals=totals,
        settled=settled,
        records=summary.settled_records + summary.pending_records,
        client_id=min(client_ids) if client_ids else None,
    )


@dataclass
class EventReport:
    events: dict[str, EventTotals]
    overall: EventTotals
    diagnostics: list[RecordDiagnostic]


def event_report(
    movements: Iterable[Any],
    category: Optional[str] = "evento",
    client_id: Optional[str] = None,
    event_id: Optional[str] = None,
) -> EventReport:
    """
    Group movements of a category by event.

    Movements without an event are left out of ``events`` but still count in
    ``overall``, which is narrowed to ``event_id`` or ``client_id`` when one
    is given.
    """
    normalized = normalize_movements(coerce_records(movements))

    selected = [
        m
        for m in normalized.movements
        if category is None or m.category == category
    ]
    if client_id is not None:
        selected = [m for m in selected if m.relation_id("client") == client_id]

    groups: dict[str, list[FinancialMovement]] = {}
    names: dict[str, str] = {}
    for m in selected:
        rel = m.relations.get("event")
        if rel is None:
            continue
        groups.setdefault(rel.id, []).append(m)
        if rel.name:
            names[rel.id] = rel.name

    events = {
        eid: _event_totals(eid, names.get(eid, "Unnamed event"), group)
        for eid, group in sorted(
            groups.items(), key=lambda item: (names.get(item[0], ""), item[0])
        )
    }

    if event_id is not None:
        scope = groups.get(event_id, [])
        overall = _event_totals(event_id, names.get(event_id, "Unnamed event"), scope)
    else:
        overall = _event_totals("*", "All events", selected)

    return EventReport(
        events=events, overall=overall, diagnostics=normalized.diagnostics
    )


# ---------------------------------------------------------------------------
# Summary cards
# ---------------------------------------------------------------------------


@dataclass
class MonthlyMetrics:
    """Figures displayed on the summary cards for one month."""

    period: Period
    total_inflow: dict[str, Decimal]
    total_outflow: dict[str, Decimal]
    pending_billing: dict[str, Decimal]
    active_events: set[str]


def monthly_metrics(movements: Iterable[Any], year: int, month: int) -> MonthlyMetrics:
    """
    Month totals for the summary cards.

    Settled movements count by effective date, pending ones by expected
    date. Pending inflows are the month's pending billing; events with a
    pending movement in the month are considered active.
    """
    period = period_for_month(year, month)
    summary = aggregate(movements, period_start=period.start, period_end=period.end)
    by_currency = summary.period_totals_by_currency()

    return MonthlyMetrics(
        period=period,
        total_inflow={
            c: by_currency[c].inflow + summary.pending_totals[INFLOW][c]
            for c in CURRENCIES
        },
        total_outflow={
            c: by_currency[c].outflow + summary.pending_totals[OUTFLOW][c]
            for c in CURRENCIES
        },
        pending_billing=dict(summary.pending_totals[INFLOW]),
        active_events={
            m.relation_id("event")
            for m in summary.pending_records
            if m.relation_id("event")
        },
    )


@dataclass
class MonthComparison:
    current: MonthlyMetrics
    previous: MonthlyMetrics
    inflow_change: dict[str, Decimal]
    outflow_change: dict[str, Decimal]


def compare_months(
    movements: Iterable[Any], reference_day: Optional[date] = None
) -> MonthComparison:
    """Current month metrics against the previous month."""
    reference_day = period_for_day(reference_day).start
    records = coerce_records(movements)

    current = monthly_metrics(records, reference_day.year, reference_day.month)
    prev_year, prev_month = previous_month(reference_day.year, reference_day.month)
    previous = monthly_metrics(records, prev_year, prev_month)

    return MonthComparison(
        current=current,
        previous=previous,
        inflow_change={
            c: percentage_change(current.total_inflow[c], previous.total_inflow[c])
            for c in CURRENCIES
        },
        outflow_change={
            c: percentage_change(current.total_outflow[c], previous.total_outflow[c])
            for c in CURRENCIES
        },
    )


# ---------------------------------------------------------------------------
# Financial movements overview
# ---------------------------------------------------------------------------


@dataclass
class DailyFlow:
    day: date
    inflow: Decimal
    outflow: Decimal


@dataclass
class MovementsOverview:
    """
    Settled totals of the last N days, converted to local currency.

    ``daily`` holds one entry per day with movements (settled and pending,
    by reference date), in local-currency equivalent, sorted by day.
    """

    period: Period
    summary: LedgerSummary
    daily: list[DailyFlow]

    @property
    def local_inflow(self) -> Decimal:
        return self.summary.period_local_equivalent[INFLOW]

    @property
    def local_outflow(self) -> Decimal:
        return self.summary.period_local_equivalent[OUTFLOW]

    @property
    def local_balance(self) -> Decimal:
        return self.summary.period_local_balance

    @property
    def is_estimate(self) -> bool:
        return not self.summary.exchange_rate_available


def movements_overview(
    movements: Iterable[Any],
    days: int = 30,
    exchange_rate: RateLike = None,
    today: Optional[date] = None,
) -> MovementsOverview:
    period = period_last_days(days, today=today)
    summary = aggregate(
        movements,
        period_start=period.start,
        period_end=period.end,
        as_of_date=period.end,
        exchange_rate=exchange_rate,
    )

    by_day: dict[date, DailyFlow] = {}
    for m in summary.settled_records + summary.pending_records:
        day = m.reference_date
        if day is None:
            continue
        flow = by_day.setdefault(day, DailyFlow(day=day, inflow=ZERO, outflow=ZERO))
        local = to_local(m.amount, m.currency, m.kind, exchange_rate)
        if m.kind == INFLOW:
            flow.inflow += local
        else:
            flow.outflow += local

    return MovementsOverview(
        period=period,
        summary=summary,
        daily=[by_day[d] for d in sorted(by_day)],
    )

