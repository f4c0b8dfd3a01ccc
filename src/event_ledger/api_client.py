# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
REST client for the accounting collection.

Accounting movements are stored in a hosted PocketBase instance and reached
through the dashboard's REST proxy. This module is the only place that
talks to it; the engine and reports work on the records it returns.

Endpoints
---------
    GET    /api/contabilidad?filter=&sort=&expand=&page=&perPage=
           -> {"page", "perPage", "totalPages", "totalItems", "items"}
    GET    /api/contabilidad?id=<id>[&expand=]      -> record
    POST   /api/contabilidad                        -> created record
    PATCH  /api/contabilidad?id=<id>                -> updated record
    DELETE /api/contabilidad?id=<id>

Every request carries the session token in the ``Authorization`` header.
Failed requests raise ``LedgerAPIError``; there are no automatic retries.

Input validation
----------------
``create_record`` validates a ``NewMovement`` before sending it: kind,
payment method, currency, category and subcategory are required and the
amount must be strictly positive. Violations raise
``MovementValidationError`` naming the offending field.

Payload conventions
-------------------
- wire transfers are stored with the legacy spelling ``trasferencia``,
- ``detalle`` values are normalized through the alias table,
- empty relation ids are sent as ``null``,
- datetimes are sent as PocketBase UTC strings (``YYYY-MM-DD HH:MM:SS.000Z``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Union

import requests

from .cancellation import CancelToken
from .movements import (
    CASH,
    FOREIGN,
    INFLOW,
    LOCAL,
    OTHER,
    OUTFLOW,
    WIRE_TRANSFER,
    canonical_currency,
    canonical_kind,
    canonical_payment_method,
    normalize_detail,
    parse_amount,
)

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_PATH = "/api/contabilidad"

_BACKEND_KIND = {INFLOW: "cobro", OUTFLOW: "pago"}
_BACKEND_PAYMENT_METHOD = {
    CASH: "efectivo",
    WIRE_TRANSFER: "trasferencia",
    OTHER: "otro",
}
_BACKEND_CURRENCY = {LOCAL: "ars", FOREIGN: "usd"}

_RELATION_FIELDS = {
    "client_id": "cliente_id",
    "provider_id": "proveedor_id",
    "event_id": "evento_id",
    "team_member_id": "equipo_id",
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class LedgerAPIError(Exception):
    """A request to the accounting backend failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MovementValidationError(ValueError):
    """User input rejected before reaching the backend."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NewMovement:
    """
    Input for creating an accounting movement.

    Enumerated fields accept canonical values (``inflow``, ``cash``,
    ``local``) as well as the backend ones (``cobro``, ``efectivo``,
    ``ars``).
    """

    kind: str
    payment_method: str
    currency: str
    category: str
    subcategory: str
    amount: Union[Decimal, float, int, str]
    expected_date: Optional[Union[date, datetime]] = None
    effective_date: Optional[Union[date, datetime]] = None
    detail: Optional[str] = None
    comment: str = ""
    expected_rate: Union[Decimal, float, int] = 0
    client_id: Optional[str] = None
    provider_id: Optional[str] = None
    event_id: Optional[str] = None
    team_member_id: Optional[str] = None


@dataclass(frozen=True)
class MovementUpdate:
    """
    Partial update of an accounting movement.

    Only attributes set to a non-None value are sent. Relation ids set to
    an empty string are sent as ``null`` (relation removed).
    """

    kind: Optional[str] = None
    payment_method: Optional[str] = None
    currency: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    amount: Optional[Union[Decimal, float, int, str]] = None
    expected_date: Optional[Union[date, datetime]] = None
    effective_date: Optional[Union[date, datetime]] = None
    detail: Optional[str] = None
    comment: Optional[str] = None
    expected_rate: Optional[Union[Decimal, float, int]] = None
    client_id: Optional[str] = None
    provider_id: Optional[str] = None
    event_id: Optional[str] = None
    team_member_id: Optional[str] = None


@dataclass
class RecordsPage:
    """One page of a PocketBase list response."""

    page: int
    per_page: int
    total_pages: int
    total_items: int
    items: list[dict[str, Any]]


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def settled_until_filter(day: date) -> str:
    """Settled movements up to the end of ``day``."""
    return f'fechaEfectuado != null && fechaEfectuado <= "{day.isoformat()} 23:59:59"'


def settled_between_filter(start: date, end: date) -> str:
    """Settled movements from the start of ``start`` to the end of ``end``."""
    return (
        f'fechaEfectuado >= "{start.isoformat()} 00:00:00" && '
        f'fechaEfectuado <= "{end.isoformat()} 23:59:59"'
    )


def pending_filter() -> str:
    """Movements not settled yet."""
    return '(fechaEfectuado = null || fechaEfectuado = "")'


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def _to_backend_datetime(value: Union[date, datetime]) -> str:
    """Render a date/datetime as a PocketBase UTC datetime string."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime("%Y-%m-%d %H:%M:%S.000Z")
    return f"{value.isoformat()} 00:00:00.000Z"


def _require(value: Any, field_name: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MovementValidationError(field_name, "field is required")


def _backend_enum(value: Any, canonicalize, mapping: dict[str, str], name: str) -> str:
    canonical = canonicalize(value)
    if canonical is None:
        raise MovementValidationError(name, f"unrecognized value {value!r}")
    return mapping[canonical]


def _validated_amount(value: Any) -> Decimal:
    amount = parse_amount(value)
    if amount is None or amount <= 0:
        raise MovementValidationError("amount", "amount must be greater than 0")
    return amount


def validate_new_movement(new: NewMovement) -> None:
    """
    Check a NewMovement before it is sent.

    Raises:
        MovementValidationError: on the first invalid field.
    """
    for name in ("kind", "payment_method", "currency", "category", "subcategory"):
        _require(getattr(new, name), name)
    _backend_enum(new.kind, canonical_kind, _BACKEND_KIND, "kind")
    _backend_enum(
        new.payment_method,
        canonical_payment_method,
        _BACKEND_PAYMENT_METHOD,
        "payment_method",
    )
    _backend_enum(new.currency, canonical_currency, _BACKEND_CURRENCY, "currency")
    _validated_amount(new.amount)


def new_movement_payload(
    new: NewMovement, now: Optional[datetime] = None
) -> dict[str, Any]:
    """Validate a NewMovement and translate it to backend field names."""
    validate_new_movement(new)
    now = now or datetime.now(timezone.utc)

    payload: dict[str, Any] = {
        "type": _backend_enum(new.kind, canonical_kind, _BACKEND_KIND, "kind"),
        "especie": _backend_enum(
            new.payment_method,
            canonical_payment_method,
            _BACKEND_PAYMENT_METHOD,
            "payment_method",
        ),
        "moneda": _backend_enum(
            new.currency, canonical_currency, _BACKEND_CURRENCY, "currency"
        ),
        "categoria": new.category,
        "subcargo": new.subcategory,
        "detalle": normalize_detail(new.detail),
        "montoEspera": float(_validated_amount(new.amount)),
        "dolarEsperado": float(parse_amount(new.expected_rate) or 0),
        "fechaEspera": _to_backend_datetime(new.expected_date or now),
        "fechaEfectuado": (
            _to_backend_datetime(new.effective_date) if new.effective_date else None
        ),
        "comentario": new.comment or "",
    }
    for attr, backend_field in _RELATION_FIELDS.items():
        payload[backend_field] = getattr(new, attr) or None
    return payload


def update_payload(update: MovementUpdate) -> dict[str, Any]:
    """Translate a MovementUpdate to backend field names (set fields only)."""
    payload: dict[str, Any] = {}

    if update.kind is not None:
        payload["type"] = _backend_enum(
            update.kind, canonical_kind, _BACKEND_KIND, "kind"
        )
    if update.payment_method is not None:
        payload["especie"] = _backend_enum(
            update.payment_method,
            canonical_payment_method,
            _BACKEND_PAYMENT_METHOD,
            "payment_method",
        )
    if update.currency is not None:
        payload["moneda"] = _backend_enum(
            update.currency, canonical_currency, _BACKEND_CURRENCY, "currency"
        )
    if update.category is not None:
        payload["categoria"] = update.category
    if update.subcategory is not None:
        payload["subcargo"] = update.subcategory
    if update.amount is not None:
        payload["montoEspera"] = float(_validated_amount(update.amount))
    if update.expected_rate is not None:
        payload["dolarEsperado"] = float(parse_amount(update.expected_rate) or 0)
    if update.expected_date is not None:
        payload["fechaEspera"] = _to_backend_datetime(update.expected_date)
    if update.effective_date is not None:
        payload["fechaEfectuado"] = _to_backend_datetime(update.effective_date)
    if update.detail is not None:
        payload["detalle"] = normalize_detail(update.detail)
    if update.comment is not None:
        payload["comentario"] = update.comment

    for attr, backend_field in _RELATION_FIELDS.items():
        value = getattr(update, attr)
        if value is not None:
            payload[backend_field] = value or None

    return payload


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class LedgerClient:
    """
    Thin client for the accounting REST endpoint.

    Args:
        base_url: Dashboard base URL (e.g. "http://localhost:3000").
        token: Session token sent in the Authorization header.
        collection_path: Path of the accounting endpoint.
        session: Optional requests.Session (shared connection pool, tests).
        timeout: Per-request timeout in seconds.
        per_page: Page size used by fetch_all.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str],
        collection_path: str = DEFAULT_COLLECTION_PATH,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
        per_page: int = 500,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.collection_path = "/" + collection_path.strip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.per_page = per_page

    @classmethod
    def from_config(cls, backend, session: Optional[requests.Session] = None):
        """Build a client from a ``config.BackendConfig``."""
        return cls(
            base_url=backend.base_url,
            token=backend.token,
            collection_path=backend.collection_path,
            session=session,
            timeout=backend.timeout,
            per_page=backend.per_page,
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "LedgerClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- low level ----------------------------------------------------------

    def _request(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        default_error: str = "Request failed",
    ) -> Any:
        if not self.token:
            raise LedgerAPIError("No active session: API token is not configured.")

        url = f"{self.base_url}{self.collection_path}"
        logger.debug("%s %s params=%s", method, url, params)

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": self.token},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise LedgerAPIError(f"{default_error}: {exc}") from exc

        if not response.ok:
            message = default_error
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("error"):
                    message = str(body["error"])
            except ValueError:
                pass
            logger.error("%s %s -> %s: %s", method, url, response.status_code, message)
            raise LedgerAPIError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise LedgerAPIError(
                f"{default_error}: invalid JSON response",
                status_code=response.status_code,
            ) from exc

    # -- reads --------------------------------------------------------------

    def list_records(
        self,
        filter: Optional[str] = None,
        sort: str = "-created",
        expand: Optional[str] = None,
        page: int = 1,
        per_page: Optional[int] = None,
    ) -> RecordsPage:
        """Fetch one page of accounting records."""
        params: dict[str, Any] = {
            "sort": sort,
            "page": str(page),
            "perPage": str(per_page or self.per_page),
        }
        if filter:
            params["filter"] = filter
        if expand:
            params["expand"] = expand

        data = self._request(
            "GET", params=params, default_error="Error fetching records"
        )
        if isinstance(data, list):
            # Some proxy routes return the bare item list.
            return RecordsPage(
                page=1,
                per_page=len(data),
                total_pages=1,
                total_items=len(data),
                items=data,
            )
        if not isinstance(data, dict):
            raise LedgerAPIError("Error fetching records: unexpected response shape")

        items = data.get("items") or []
        return RecordsPage(
            page=int(data.get("page", page)),
            per_page=int(data.get("perPage", per_page or self.per_page)),
            total_pages=int(data.get("totalPages", 1)),
            total_items=int(data.get("totalItems", len(items))),
            items=items,
        )

    def fetch_all(
        self,
        filter: Optional[str] = None,
        sort: str = "-created",
        expand: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch every record matching ``filter``, page by page.

        The cancel token is checked before each page request; a cancelled
        fetch raises ``FetchCancelled`` and returns nothing.
        """
        records: list[dict[str, Any]] = []
        page = 1
        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            result = self.list_records(
                filter=filter, sort=sort, expand=expand, page=page
            )
            records.extend(result.items)
            if page >= result.total_pages or not result.items:
                break
            page += 1

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        logger.info("Fetched %d accounting records (%d page(s))", len(records), page)
        return records

    def get_record(self, record_id: str, expand: Optional[str] = None) -> dict[str, Any]:
        params = {"id": record_id}
        if expand:
            params["expand"] = expand
        return self._request(
            "GET", params=params, default_error="Error fetching the record"
        )

    # -- writes -------------------------------------------------------------

    def create_record(
        self, new: NewMovement, now: Optional[datetime] = None
    ) -> dict[str, Any]:
        """Validate and create a movement. Returns the created record."""
        payload = new_movement_payload(new, now=now)
        record = self._request(
            "POST", json=payload, default_error="Error creating the record"
        )
        logger.info("Created accounting record %s", (record or {}).get("id"))
        return record

    def update_record(self, record_id: str, update: MovementUpdate) -> dict[str, Any]:
        payload = update_payload(update)
        if not payload:
            raise MovementValidationError("update", "nothing to update")
        record = self._request(
            "PATCH",
            params={"id": record_id},
            json=payload,
            default_error="Error updating the record",
        )
        logger.info("Updated accounting record %s", record_id)
        return record

    def mark_settled(
        self, record_id: str, when: Optional[datetime] = None
    ) -> dict[str, Any]:
        """Set the effective date of a pending movement (now by default)."""
        when = when or datetime.now(timezone.utc)
        return self.update_record(record_id, MovementUpdate(effective_date=when))

    def delete_record(self, record_id: str) -> None:
        self._request(
            "DELETE",
            params={"id": record_id},
            default_error="Error deleting the record",
        )
        logger.info("Deleted accounting record %s", record_id)
