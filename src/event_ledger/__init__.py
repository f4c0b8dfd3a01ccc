# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Event Ledger
------------

Cash-flow and accounting analytics for an event-planning business whose
records (events, clients, providers, accounting movements) live in a hosted
PocketBase backend exposed through a REST proxy (``/api/contabilidad``).

Main capabilities:
- tolerant normalization of raw accounting records (cobros / pagos),
- a single pure aggregation engine computing period totals, cumulative
  balances per payment method and currency, and pending exposure,
- currency conversion using the blue-dollar buy/sell rates,
- report helpers for the daily cash, monthly report, scheduled records,
  event report and summary-card views,
- a thin REST client for the accounting collection (list, create, update,
  mark as settled, delete),
- a command-line interface rendering reports as tables and/or CSV files.

Computation (engine), configuration (TOML) and presentation (CLI, views)
are kept separate so the engine can be reused by any front-end.


Version: 0.2.0

Usage:
    python -m event_ledger.cli --help
"""

__all__ = ["engine", "movements", "reports", "views", "io"]

__version__ = "0.2.0"
