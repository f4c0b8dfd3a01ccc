# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for Event Ledger.

This module wires together the main building blocks of Event Ledger:

- configuration (backend, exchange rate, display and logging options),
- record loading, from the accounting backend or from an exported file,
- the exchange-rate lookup,
- the aggregation engine and the report helpers,
- view helpers (tabular rendering and CSV export).

The CLI is intentionally thin: it does not implement any balance arithmetic
itself. Every figure it prints comes from ``engine.aggregate`` through the
report helpers.


Data source
-----------

By default records are fetched from the accounting endpoint configured in
the ``[backend]`` section (the API token can be provided through the
``EVENT_LEDGER_API_TOKEN`` environment variable). Use:

    --input PATH

to read a CSV or JSON export instead (offline mode). The exchange rate is
fetched from the ``[exchange_rate]`` URL unless ``--no-rate`` is given;
when it is unavailable, local-currency equivalents are flagged as
estimates.


Commands
--------

- ``summary``:   period totals, cumulative balance and pending amounts,
- ``daily``:     net cash and wire transfers of one day,
- ``monthly``:   monthly report with the comparison to the previous month,
- ``overview``:  last-N-days totals in local currency,
- ``pending``:   pending (scheduled) movements,
- ``events``:    inflows/outflows grouped by event,
- ``rate``:      current buy/sell exchange rate,
- ``settle``:    mark a pending movement as settled (backend only).

Period selection (``summary``)
------------------------------

- ``--day YYYY-MM-DD``:   a single day,
- ``--month YYYY-MM``:    a calendar month,
- ``--period``:           today, mtd, last-month or last-30,
- ``--from-date`` / ``--to-date``: a custom window,
- month to date when nothing is given.

``--as-of`` sets the day of the cumulative balance (period end by default).


Display modes
-------------

- ``table``: print tables to stdout (default),
- ``csv``:   write CSV files only,
- ``both``:  do both.

CSV files are written to ``--output DIR`` (or ``[display].output_dir``)
with a timestamp-based name such as ``period_totals_YYYY-MM-DD-HH-MM-SS.csv``.
"""

import argparse
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from . import __version__
from .api_client import LedgerAPIError, LedgerClient
from .cancellation import CancelToken, FetchCancelled, run_cancellable
from .config import DISPLAY_MODES, LOG_LEVELS, AppConfig, load_app_config
from .engine import TOTAL, aggregate
from .exchange import ExchangeRate, fetch_exchange_rate
from .formatting import (
    format_currency,
    format_date,
    format_local_equivalent,
    format_percentage,
)
from .io import read_movement_records
from .movements import CURRENCIES, FOREIGN, INFLOW, LOCAL, OUTFLOW, PAYMENT_METHODS
from .periods import determine_period_from_args, period_for_day
from .reports import (
    compare_months,
    daily_cash_report,
    event_report,
    monthly_report,
    movements_overview,
    scheduled_totals,
)
from .views import (
    balance_to_dataframe,
    event_report_to_dataframe,
    pending_to_dataframe,
    period_totals_to_dataframe,
    records_to_dataframe,
    rejected_to_dataframe,
)

logger = logging.getLogger(__name__)

EXPAND_RELATIONS = "cliente_id,proveedor_id,evento_id,equipo_id"


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="event-ledger",
        description=(
            "Event Ledger - Cash-flow dashboard for event-planning businesses. "
            "Aggregates accounting movements into period totals, cumulative "
            "balances and pending exposure, per payment method and currency."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of event_ledger and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            "'event_ledger_config.toml' in the current directory is used "
            "when present."
        ),
    )
    ap.add_argument(
        "--input",
        dest="input_path",
        metavar="PATH",
        help="Read records from a CSV/JSON export instead of the backend.",
    )
    ap.add_argument(
        "--no-rate",
        dest="no_rate",
        action="store_true",
        help="Do not fetch the exchange rate (equivalents become estimates).",
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=list(DISPLAY_MODES),
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help="Output directory for CSV files (overrides display.output_dir).",
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        choices=list(LOG_LEVELS),
        help="Override the logging.level setting from the configuration file.",
    )
    ap.add_argument(
        "--show-rejected",
        dest="show_rejected",
        action="store_true",
        help="Also list records excluded from the totals and why.",
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    # summary
    summary = subparsers.add_parser(
        "summary", help="Period totals, cumulative balance and pending amounts."
    )
    summary.add_argument("--day", help="Single day (YYYY-MM-DD).")
    summary.add_argument("--month", help="Calendar month (YYYY-MM).")
    summary.add_argument(
        "--period",
        choices=["today", "mtd", "last-month", "last-30"],
        help="Predefined reporting period.",
    )
    summary.add_argument("--from-date", dest="from_date", help="Start (YYYY-MM-DD).")
    summary.add_argument("--to-date", dest="to_date", help="End (YYYY-MM-DD).")
    summary.add_argument(
        "--as-of",
        dest="as_of",
        help="Day of the cumulative balance (defaults to the period end).",
    )
    summary.add_argument(
        "--records",
        action="store_true",
        help="List the movements behind the totals.",
    )

    # daily
    daily = subparsers.add_parser("daily", help="Net cash of one day.")
    daily.add_argument("--day", help="Day (YYYY-MM-DD), today by default.")

    # monthly
    monthly = subparsers.add_parser("monthly", help="Monthly report.")
    monthly.add_argument("--month", help="Month (YYYY-MM), current month by default.")

    # overview
    overview = subparsers.add_parser(
        "overview", help="Last-N-days totals converted to local currency."
    )
    overview.add_argument("--days", type=int, default=30, help="Window size (30).")

    # pending
    subparsers.add_parser("pending", help="Pending (scheduled) movements.")

    # events
    events = subparsers.add_parser("events", help="Totals grouped by event.")
    events.add_argument(
        "--category",
        default="evento",
        help="Category of event movements ('evento' by default, 'all' for any).",
    )
    events.add_argument("--client", dest="client_id", help="Only this client id.")
    events.add_argument("--event", dest="event_id", help="Only this event id.")

    # rate
    subparsers.add_parser("rate", help="Current buy/sell exchange rate.")

    # settle
    settle = subparsers.add_parser(
        "settle", help="Mark a pending movement as settled (backend only)."
    )
    settle.add_argument("record_id", help="Record id.")
    settle.add_argument(
        "--date",
        dest="settle_date",
        help="Settlement date (YYYY-MM-DD), now by default.",
    )

    return ap


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_optional_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an optional CLI date argument (YYYY-MM-DD).

    Raises
    ------
    SystemExit
        If the date format is invalid.
    """
    if value is None:
        return None

    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        msg = f"Invalid date format: {value!r}. Expected YYYY-MM-DD."
        raise SystemExit(msg) from exc


def _parse_month(value: Optional[str]) -> tuple[int, int]:
    if not value:
        today = period_for_day().start
        return today.year, today.month
    try:
        year_str, month_str = value.split("-")
        year, month = int(year_str), int(month_str)
    except ValueError as exc:
        raise SystemExit(f"Invalid month: {value!r}. Expected YYYY-MM.") from exc
    if not 1 <= month <= 12:
        raise SystemExit(f"Invalid month: {value!r}. Expected YYYY-MM.")
    return year, month


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _currency_labels(config: AppConfig) -> dict[str, str]:
    return {
        LOCAL: config.ledger.local_currency,
        FOREIGN: config.ledger.foreign_currency,
    }


def _load_records(
    args: argparse.Namespace, config: AppConfig, cancel_token: CancelToken
) -> list[dict[str, Any]]:
    """Records from --input when given, from the backend otherwise."""
    if args.input_path:
        return read_movement_records(Path(args.input_path))

    def fetch() -> list[dict[str, Any]]:
        with LedgerClient.from_config(config.backend) as client:
            return client.fetch_all(expand=EXPAND_RELATIONS, cancel_token=cancel_token)

    return run_cancellable(fetch, cancel_token)


def _load_rate(
    args: argparse.Namespace, config: AppConfig, cancel_token: CancelToken
) -> Optional[ExchangeRate]:
    if args.no_rate:
        return None
    return run_cancellable(
        lambda: fetch_exchange_rate(
            url=config.exchange_rate.url,
            timeout=config.exchange_rate.timeout,
            cancel_token=cancel_token,
        ),
        cancel_token,
    )


class _Output:
    """Renders named tables to stdout and/or timestamped CSV files."""

    def __init__(self, mode: str, output_dir: Path):
        self.mode = mode
        self.output_dir = output_dir
        self.timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")

    def text(self, line: str = "") -> None:
        if self.mode in {"table", "both"}:
            print(line)

    def table(self, name: str, title: str, df: pd.DataFrame) -> None:
        if self.mode in {"table", "both"}:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(no rows)")
            else:
                print(df.to_string(index=False))

        if self.mode in {"csv", "both"}:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / f"{name}_{self.timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


def _show_rejected(args: argparse.Namespace, out: _Output, diagnostics) -> None:
    rejected = [d for d in diagnostics if d.excluded]
    if rejected:
        logger.warning("%d record(s) excluded from the totals", len(rejected))
    if args.show_rejected:
        out.table("rejected", "Rejected records", rejected_to_dataframe(diagnostics))


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _handle_summary(args, config, records, rate, out: _Output) -> None:
    period = determine_period_from_args(args)
    as_of = _parse_optional_date(args.as_of) or period.end
    labels = _currency_labels(config)

    summary = aggregate(
        records,
        period_start=period.start,
        period_end=period.end,
        as_of_date=as_of,
        exchange_rate=rate,
    )

    out.text(f"Period: {period.label} ({period.start} -> {period.end})")
    out.text(f"Balance as of: {as_of}")
    out.table(
        "period_totals", "Period totals", period_totals_to_dataframe(summary, labels)
    )
    out.table(
        "balance", "Cumulative balance", balance_to_dataframe(summary, labels)
    )
    out.table("pending", "Pending", pending_to_dataframe(summary, labels))

    available = summary.exchange_rate_available
    out.text()
    out.text(
        "Inflows (local equivalent):  "
        + format_local_equivalent(summary.period_local_equivalent[INFLOW], available)
    )
    out.text(
        "Outflows (local equivalent): "
        + format_local_equivalent(summary.period_local_equivalent[OUTFLOW], available)
    )
    out.text(
        "Balance (local equivalent):  "
        + format_local_equivalent(summary.period_local_balance, available)
    )

    if args.records:
        out.table(
            "settled_records",
            "Settled movements",
            records_to_dataframe(summary.settled_records, labels),
        )
        out.table(
            "pending_records",
            "Pending movements",
            records_to_dataframe(summary.pending_records, labels),
        )

    _show_rejected(args, out, summary.diagnostics)


def _handle_daily(args, config, records, rate, out: _Output) -> None:
    report = daily_cash_report(records, _parse_optional_date(args.day))

    out.text(f"Daily cash: {format_date(report.period.start, with_time=False)}")
    for method in PAYMENT_METHODS:
        out.text(
            f"  {method:<14}"
            + "  ".join(
                format_currency(report.net_by_method[method][c], c) for c in CURRENCIES
            )
        )
    out.text(
        f"  {TOTAL:<14}"
        + "  ".join(format_currency(report.net_total[c], c) for c in CURRENCIES)
    )
    out.table(
        "daily_records",
        "Movements of the day",
        records_to_dataframe(report.records, _currency_labels(config)),
    )
    _show_rejected(args, out, report.summary.diagnostics)


def _handle_monthly(args, config, records, rate, out: _Output) -> None:
    year, month = _parse_month(args.month)
    report = monthly_report(records, year, month, exchange_rate=rate)
    comparison = compare_months(records, date(year, month, 1))
    labels = _currency_labels(config)

    out.text(f"Monthly report: {report.period.label}")
    for c in CURRENCIES:
        out.text(
            f"  {labels[c]}: inflow {format_currency(report.inflow[c], c)}"
            f" ({format_percentage(comparison.inflow_change[c])} vs previous month)"
            f", outflow {format_currency(report.outflow[c], c)}"
            f" ({format_percentage(comparison.outflow_change[c])})"
            f", net {format_currency(report.net[c], c)}"
        )
    out.text(
        "  Pending billing: "
        + ", ".join(
            format_currency(comparison.current.pending_billing[c], c)
            for c in CURRENCIES
        )
    )
    out.text(f"  Active events: {len(comparison.current.active_events)}")

    out.table(
        "monthly_balance",
        f"Cumulative balance at {report.period.end}",
        balance_to_dataframe(report.summary, labels),
    )
    out.table(
        "monthly_pending",
        "Pending during the month",
        pending_to_dataframe(report.summary, labels),
    )
    _show_rejected(args, out, report.summary.diagnostics)


def _handle_overview(args, config, records, rate, out: _Output) -> None:
    overview = movements_overview(records, days=args.days, exchange_rate=rate)
    available = not overview.is_estimate

    out.text(f"{overview.period.label} ({overview.period.start} -> {overview.period.end})")
    out.text("  Inflows:  " + format_local_equivalent(overview.local_inflow, available))
    out.text("  Outflows: " + format_local_equivalent(overview.local_outflow, available))
    out.text("  Balance:  " + format_local_equivalent(overview.local_balance, available))

    daily = pd.DataFrame(
        [
            {
                "day": d.day.isoformat(),
                "inflow": round(float(d.inflow), 2),
                "outflow": round(float(d.outflow), 2),
            }
            for d in overview.daily
        ],
        columns=["day", "inflow", "outflow"],
    )
    out.table("daily_flows", "Daily flows (local equivalent)", daily)
    _show_rejected(args, out, overview.summary.diagnostics)


def _handle_pending(args, config, records, rate, out: _Output) -> None:
    totals = scheduled_totals(records)
    labels = _currency_labels(config)

    for c in CURRENCIES:
        out.text(
            f"Pending {labels[c]}: inflow "
            f"{format_currency(totals.by_kind[INFLOW][c], c)}, outflow "
            f"{format_currency(totals.by_kind[OUTFLOW][c], c)}"
        )
    out.table(
        "pending_records",
        "Pending movements",
        records_to_dataframe(totals.records, labels),
    )
    _show_rejected(args, out, totals.diagnostics)


def _handle_events(args, config, records, rate, out: _Output) -> None:
    category = None if args.category == "all" else args.category
    report = event_report(
        records, category=category, client_id=args.client_id, event_id=args.event_id
    )

    out.table(
        "events",
        "Events",
        event_report_to_dataframe(report, _currency_labels(config)),
    )
    overall = report.overall
    for c in CURRENCIES:
        out.text(
            f"{overall.name} ({c}): net {format_currency(overall.net(c), c)}"
        )
    _show_rejected(args, out, report.diagnostics)


def _handle_rate(args, config, rate: Optional[ExchangeRate]) -> None:
    if rate is None:
        print("Exchange rate unavailable.")
        return
    print(f"Buy:  {format_currency(rate.buy, LOCAL)}")
    print(f"Sell: {format_currency(rate.sell, LOCAL)}")
    if rate.updated_at is not None:
        print(f"Updated: {format_date(rate.updated_at)}")


def _handle_settle(args, config) -> None:
    if args.input_path:
        raise SystemExit("'settle' needs the backend; it cannot be used with --input.")

    settle_day = _parse_optional_date(args.settle_date)
    when = (
        datetime(settle_day.year, settle_day.month, settle_day.day, tzinfo=timezone.utc)
        if settle_day
        else None
    )
    with LedgerClient.from_config(config.backend) as client:
        record = client.mark_settled(args.record_id, when=when)

    print(f"Movement {args.record_id} settled on {record.get('fechaEfectuado')}.")


_REPORT_HANDLERS = {
    "summary": _handle_summary,
    "daily": _handle_daily,
    "monthly": _handle_monthly,
    "overview": _handle_overview,
    "pending": _handle_pending,
    "events": _handle_events,
}


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the Event Ledger CLI.

    This function parses command-line arguments, loads the configuration,
    configures logging, loads records (backend or file) and the exchange
    rate, and finally runs the requested command, rendering its result as
    console tables and/or CSV files.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"event_ledger version {__version__}")
        return

    if not args.command:
        parser.error("a command is required (e.g. 'summary').")

    # 1) Configuration and logging
    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc

    _configure_logging(args.log_level or config.log_level)

    cancel_token = CancelToken()
    try:
        # 2) Commands that do not aggregate records
        if args.command == "rate":
            _handle_rate(args, config, _load_rate(args, config, cancel_token))
            return
        if args.command == "settle":
            _handle_settle(args, config)
            return

        # 3) Records, rate and report
        records = _load_records(args, config, cancel_token)
        rate = _load_rate(args, config, cancel_token)

        display_mode = args.display_mode or config.display.mode
        output_dir = Path(args.output_dir) if args.output_dir else config.display.output_dir
        out = _Output(display_mode, output_dir)

        _REPORT_HANDLERS[args.command](args, config, records, rate, out)

    except KeyboardInterrupt:
        # run_cancellable has already cancelled the token of a running fetch.
        raise SystemExit("Interrupted.")
    except FetchCancelled as exc:
        raise SystemExit(f"Cancelled: {exc}") from exc
    except LedgerAPIError as exc:
        raise SystemExit(f"Backend error: {exc}") from exc
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Error: {exc}") from exc


if __name__ == "__main__":
    main()
