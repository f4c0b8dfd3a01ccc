# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Exchange-rate helpers for Event Ledger.

The business keeps two currencies: the local one (ARS) and a foreign one
(USD). Foreign amounts are converted to a local-currency equivalent using
the "blue" dollar quote, which has a buy side (``compra``) and a sell side
(``venta``):

- inflows (money received in USD) are valued at the buy rate,
- outflows (money paid in USD) are valued at the sell rate.

When no quote is available the conversion multiplier falls back to 1. The
aggregation engine flags such results as estimates instead of failing.

Supported quote providers
-------------------------
- dolarapi.com:   ``{"compra": 1180, "venta": 1200, "fechaActualizacion": ...}``
- bluelytics:     ``{"blue": {"value_buy": 1180, "value_sell": 1200}, ...}``
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Union

import requests

from .cancellation import CancelToken
from .movements import FOREIGN, INFLOW, KINDS, parse_amount

logger = logging.getLogger(__name__)

DEFAULT_RATE_URL = "https://dolarapi.com/v1/dolares/blue"

ONE = Decimal("1")


@dataclass(frozen=True)
class ExchangeRate:
    """Buy/sell quote of the foreign currency, in local currency units."""

    buy: Decimal
    sell: Decimal
    updated_at: Optional[datetime] = None

    def rate_for(self, kind: str) -> Decimal:
        """Return the rate applying to a movement of the given kind."""
        return self.buy if kind == INFLOW else self.sell


RateLike = Union[ExchangeRate, Decimal, float, int, None]


def resolve_rate(exchange_rate: RateLike, kind: str) -> Optional[Decimal]:
    """
    Return the multiplier for ``kind`` from an ExchangeRate or a plain number.

    Returns None when the rate is missing or not strictly positive (a zero
    quote is what the legacy provider returned on failure).
    """
    if exchange_rate is None:
        return None
    if isinstance(exchange_rate, ExchangeRate):
        value: Optional[Decimal] = exchange_rate.rate_for(kind)
    else:
        value = parse_amount(exchange_rate)
    if value is None or value <= 0:
        return None
    return value


def has_rate(exchange_rate: RateLike) -> bool:
    """True when both sides of the quote are usable."""
    return all(resolve_rate(exchange_rate, k) is not None for k in KINDS)


def to_local(
    amount: Decimal, currency: str, kind: str, exchange_rate: RateLike
) -> Decimal:
    """
    Convert an amount to its local-currency equivalent.

    Local amounts are returned unchanged. Foreign amounts are multiplied by
    the rate for ``kind``, or by 1 when no rate is available.
    """
    if currency != FOREIGN:
        return amount
    rate = resolve_rate(exchange_rate, kind)
    return amount * (rate if rate is not None else ONE)


def parse_exchange_rate(payload: Mapping[str, Any]) -> Optional[ExchangeRate]:
    """
    Build an ExchangeRate from a provider payload.

    Returns None when the payload does not contain a positive buy and sell
    quote.
    """
    if not isinstance(payload, Mapping):
        return None

    if "blue" in payload and isinstance(payload["blue"], Mapping):
        blue = payload["blue"]
        buy = parse_amount(blue.get("value_buy"))
        sell = parse_amount(blue.get("value_sell"))
        updated_raw = payload.get("last_update")
    else:
        buy = parse_amount(payload.get("compra"))
        sell = parse_amount(payload.get("venta"))
        updated_raw = payload.get("fechaActualizacion")

    if buy is None or sell is None or buy <= 0 or sell <= 0:
        return None

    updated_at: Optional[datetime] = None
    if isinstance(updated_raw, str) and updated_raw:
        try:
            updated_at = datetime.fromisoformat(updated_raw.replace("Z", "+00:00"))
        except ValueError:
            updated_at = None

    return ExchangeRate(buy=buy, sell=sell, updated_at=updated_at)


def fetch_exchange_rate(
    url: str = DEFAULT_RATE_URL,
    timeout: float = 10.0,
    session: Optional[requests.Session] = None,
    cancel_token: Optional[CancelToken] = None,
) -> Optional[ExchangeRate]:
    """
    Fetch the current blue-dollar quote.

    Network and payload errors are logged and yield None: an unavailable
    quote is an expected state that callers render as "rate unavailable".
    ``FetchCancelled`` is the only exception propagated.
    """
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()

    http = session if session is not None else requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Failed to fetch exchange rate from %s: %s", url, exc)
        return None

    if cancel_token is not None:
        cancel_token.raise_if_cancelled()

    rate = parse_exchange_rate(payload)
    if rate is None:
        logger.warning("Exchange rate payload from %s has no usable quote", url)
    else:
        logger.debug("Exchange rate: buy=%s sell=%s", rate.buy, rate.sell)
    return rate
