# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Financial movements and record normalization for Event Ledger.

Raw accounting records come from the PocketBase ``contabilidad`` collection
(through the REST proxy or a JSON/CSV export) and use the backend's Spanish
field names. This module turns them into a canonical, typed structure that
the aggregation engine can consume safely.

Backend record shape
--------------------
    type            "cobro" | "pago"
    especie         "efectivo" | "transferencia" (legacy: "trasferencia")
    moneda          "ars" | "usd"
    montoEspera     amount in ``moneda``
    fechaEspera     expected (scheduled) date
    fechaEfectuado  settlement date, empty/null while pending
    categoria, subcargo, detalle, comentario
    cliente_id, proveedor_id, evento_id, equipo_id
                    relation ids, or expanded ``{id, nombre}`` objects

Canonical keys (``kind``, ``payment_method``, ``currency``, ``amount``,
``expected_date``, ``effective_date``, ...) are accepted as well, so
records produced by other tools can be normalized the same way.

Normalization rules
-------------------
- Amounts become ``Decimal``. Missing, NaN, unparsable or negative amounts
  are replaced by 0 and reported; the movement is kept.
- Kind, payment method and currency are lower-cased and mapped through alias
  tables. An unrecognized value excludes the movement and is reported.
  A missing payment method defaults to cash.
- Dates are reduced to calendar days. Invalid date strings count as absent.

Nothing here raises on bad data: every problem is logged as a warning and
returned as a ``RecordDiagnostic`` so callers can surface it.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

INFLOW = "inflow"
OUTFLOW = "outflow"
KINDS = (INFLOW, OUTFLOW)

CASH = "cash"
WIRE_TRANSFER = "wire_transfer"
OTHER = "other"
PAYMENT_METHODS = (CASH, WIRE_TRANSFER, OTHER)

LOCAL = "local"
FOREIGN = "foreign"
CURRENCIES = (LOCAL, FOREIGN)

RELATIONS = ("client", "provider", "event", "team_member")

_KIND_ALIASES = {
    "cobro": INFLOW,
    "ingreso": INFLOW,
    "inflow": INFLOW,
    "pago": OUTFLOW,
    "egreso": OUTFLOW,
    "outflow": OUTFLOW,
}

_PAYMENT_METHOD_ALIASES = {
    "efectivo": CASH,
    "cash": CASH,
    "transferencia": WIRE_TRANSFER,
    "trasferencia": WIRE_TRANSFER,
    "wire_transfer": WIRE_TRANSFER,
    "wiretransfer": WIRE_TRANSFER,
    "otro": OTHER,
    "otros": OTHER,
    "other": OTHER,
}

_CURRENCY_ALIASES = {
    "ars": LOCAL,
    "local": LOCAL,
    "usd": FOREIGN,
    "foreign": FOREIGN,
}

# Backend relation field for each relation name.
_RELATION_FIELDS = {
    "client": "cliente_id",
    "provider": "proveedor_id",
    "event": "evento_id",
    "team_member": "equipo_id",
}

_DETAIL_ALIASES = {
    "ingresos_brutos": "ingresos-brutos",
    "ingresos brutos": "ingresos-brutos",
    "formulario_931": "formulado-931",
    "formulado_931": "formulado-931",
    "formulario 931": "formulado-931",
    "ofceca": "OFCECA",
    "noe": "Noe",
    "loli": "Loli",
}

ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Relation:
    """Reference to a related record (client, provider, event, team member)."""

    id: str
    name: Optional[str] = None


@dataclass(frozen=True)
class FinancialMovement:
    """
    Canonical accounting movement.

    Attributes
    ----------
    id:
        Backend record identifier.
    kind:
        ``"inflow"`` (cobro) or ``"outflow"`` (pago).
    payment_method:
        ``"cash"``, ``"wire_transfer"`` or ``"other"``.
    currency:
        ``"local"`` (ARS) or ``"foreign"`` (USD).
    amount:
        Non-negative amount denominated in ``currency``.
    expected_date:
        Scheduled date of the movement.
    effective_date:
        Settlement date; ``None`` while the movement is pending.
    """

    id: str
    kind: str
    payment_method: str
    currency: str
    amount: Decimal
    expected_date: Optional[date]
    effective_date: Optional[date]
    category: Optional[str] = None
    subcategory: Optional[str] = None
    detail: Optional[str] = None
    comment: str = ""
    expected_rate: Decimal = ZERO
    relations: dict[str, Relation] = field(default_factory=dict, compare=False)

    @property
    def is_pending(self) -> bool:
        return self.effective_date is None

    @property
    def signed_amount(self) -> Decimal:
        """Amount with its balance sign: positive for inflows."""
        return self.amount if self.kind == INFLOW else -self.amount

    @property
    def reference_date(self) -> Optional[date]:
        """Effective date when settled, expected date otherwise."""
        return self.effective_date if self.effective_date else self.expected_date

    def relation_id(self, name: str) -> Optional[str]:
        rel = self.relations.get(name)
        return rel.id if rel else None


@dataclass(frozen=True)
class RecordDiagnostic:
    """
    Data-quality finding produced while normalizing a raw record.

    ``excluded`` tells whether the record was dropped from aggregation
    (unrecognized kind/currency/payment method) or kept with a defaulted
    value (bad amount or date).
    """

    record_id: str
    field: str
    value: Any
    reason: str
    excluded: bool


@dataclass
class NormalizationResult:
    """Movements that passed normalization plus the diagnostics collected."""

    movements: list[FinancialMovement]
    diagnostics: list[RecordDiagnostic]

    @property
    def rejected(self) -> list[RecordDiagnostic]:
        return [d for d in self.diagnostics if d.excluded]


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Convert a raw amount to ``Decimal``.

    Returns None for missing, NaN, infinite or unparsable values. Floats go
    through ``str()`` so that ``0.1`` becomes ``Decimal("0.1")``.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not result.is_finite():
        return None
    return result


def parse_calendar_date(value: Any) -> Optional[date]:
    """
    Reduce a raw date value to a calendar day.

    Accepts ``date``, ``datetime`` / ``pandas.Timestamp`` and strings such as
    ``2024-01-05``, ``2024-01-05 12:30:00.000Z`` (PocketBase) or ISO-8601
    with a ``T`` separator. Anything else, including invalid strings,
    yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if pd.isna(value):
            return None
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    ts = pd.to_datetime(text, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()


def canonical_kind(value: Any) -> Optional[str]:
    """``cobro``/``pago``/``inflow``/``outflow`` (any case) -> kind, else None."""
    if value is None:
        return None
    return _KIND_ALIASES.get(str(value).strip().lower())


def canonical_payment_method(value: Any) -> Optional[str]:
    if value is None:
        return None
    return _PAYMENT_METHOD_ALIASES.get(str(value).strip().lower())


def canonical_currency(value: Any) -> Optional[str]:
    if value is None:
        return None
    return _CURRENCY_ALIASES.get(str(value).strip().lower())


def normalize_detail(detail: Optional[str]) -> Optional[str]:
    """Normalize a ``detalle`` tag to its canonical spelling."""
    if not detail:
        return None
    trimmed = str(detail).strip()
    if not trimmed:
        return None
    return _DETAIL_ALIASES.get(trimmed.lower(), trimmed)


def _lookup(raw: Mapping[str, Any], *keys: str) -> Any:
    """Return the first present, non-empty value among ``keys``."""
    for key in keys:
        if key in raw:
            value = raw[key]
            if value is None or value is pd.NaT:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            if isinstance(value, str) and not value.strip():
                continue
            return value
    return None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_relations(raw: Mapping[str, Any]) -> dict[str, Relation]:
    """
    Extract relation references from a raw record.

    A relation can be a plain id, an expanded ``{id, nombre}`` object, or an
    entry of the PocketBase ``expand`` map. Canonical ``client_id`` style
    keys are accepted too.
    """
    expand = raw.get("expand") if isinstance(raw.get("expand"), Mapping) else {}
    relations: dict[str, Relation] = {}

    for name, backend_field in _RELATION_FIELDS.items():
        value = _lookup(raw, backend_field, f"{name}_id")
        expanded = expand.get(backend_field) if expand else None

        if isinstance(expanded, Mapping) and expanded.get("id"):
            relations[name] = Relation(
                id=str(expanded["id"]),
                name=_optional_text(expanded.get("nombre") or expanded.get("name")),
            )
        elif isinstance(value, Mapping):
            if value.get("id"):
                relations[name] = Relation(
                    id=str(value["id"]),
                    name=_optional_text(value.get("nombre") or value.get("name")),
                )
        elif value is not None:
            relations[name] = Relation(id=str(value))

    return relations


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _diagnostic(
    record_id: str, field_name: str, value: Any, reason: str, excluded: bool
) -> RecordDiagnostic:
    action = "excluded from aggregation" if excluded else "kept with default"
    logger.warning(
        "Record %s: %s (%s=%r), %s", record_id, reason, field_name, value, action
    )
    return RecordDiagnostic(
        record_id=record_id,
        field=field_name,
        value=value,
        reason=reason,
        excluded=excluded,
    )


def _check_movement(
    movement: FinancialMovement,
) -> tuple[Optional[FinancialMovement], list[RecordDiagnostic]]:
    """Apply the enumeration and amount rules to an already-built movement."""
    record_id = movement.id
    diagnostics: list[RecordDiagnostic] = []

    for field_name, value, allowed in (
        ("kind", movement.kind, KINDS),
        ("currency", movement.currency, CURRENCIES),
        ("payment_method", movement.payment_method, PAYMENT_METHODS),
    ):
        if value not in allowed:
            reason = f"unrecognized {field_name.replace('_', ' ')}"
            diagnostics.append(_diagnostic(record_id, field_name, value, reason, True))
    if diagnostics:
        return None, diagnostics

    amount = parse_amount(movement.amount)
    if amount is None:
        diagnostics.append(
            _diagnostic(record_id, "amount", movement.amount, "invalid amount", False)
        )
        amount = ZERO
    elif amount < 0:
        diagnostics.append(
            _diagnostic(record_id, "amount", movement.amount, "negative amount", False)
        )
        amount = ZERO

    if amount is not movement.amount:
        movement = replace(movement, amount=amount)
    return movement, diagnostics


def _normalize_one(
    raw: Any, index: int
) -> tuple[Optional[FinancialMovement], list[RecordDiagnostic]]:
    """Normalize a single raw record. Never raises on data-quality issues."""
    if isinstance(raw, FinancialMovement):
        return _check_movement(raw)

    if not isinstance(raw, Mapping):
        return None, [
            _diagnostic(f"#{index}", "record", raw, "not a mapping", excluded=True)
        ]

    raw_id = _lookup(raw, "id")
    record_id = str(raw_id) if raw_id is not None else f"#{index}"
    diagnostics: list[RecordDiagnostic] = []

    # 1) Enumerated fields: unrecognized values exclude the record.
    raw_kind = _lookup(raw, "kind", "type")
    kind = canonical_kind(raw_kind)
    if kind is None:
        diagnostics.append(
            _diagnostic(record_id, "kind", raw_kind, "unrecognized kind", True)
        )

    raw_currency = _lookup(raw, "currency", "moneda")
    currency = canonical_currency(raw_currency)
    if currency is None:
        diagnostics.append(
            _diagnostic(
                record_id, "currency", raw_currency, "unrecognized currency", True
            )
        )

    raw_method = _lookup(raw, "payment_method", "paymentMethod", "especie")
    if raw_method is None:
        payment_method: Optional[str] = CASH
    else:
        payment_method = canonical_payment_method(raw_method)
        if payment_method is None:
            diagnostics.append(
                _diagnostic(
                    record_id,
                    "payment_method",
                    raw_method,
                    "unrecognized payment method",
                    True,
                )
            )

    if kind is None or currency is None or payment_method is None:
        return None, diagnostics

    # 2) Amount: bad values default to 0 but the record is kept.
    raw_amount = _lookup(raw, "amount", "montoEspera")
    amount = parse_amount(raw_amount)
    if amount is None:
        diagnostics.append(
            _diagnostic(record_id, "amount", raw_amount, "invalid amount", False)
        )
        amount = ZERO
    elif amount < 0:
        diagnostics.append(
            _diagnostic(record_id, "amount", raw_amount, "negative amount", False)
        )
        amount = ZERO

    # 3) Dates: invalid strings count as absent.
    raw_expected = _lookup(raw, "expected_date", "expectedDate", "fechaEspera")
    expected_date = parse_calendar_date(raw_expected)
    if raw_expected is not None and expected_date is None:
        diagnostics.append(
            _diagnostic(
                record_id, "expected_date", raw_expected, "invalid date", False
            )
        )

    raw_effective = _lookup(raw, "effective_date", "effectiveDate", "fechaEfectuado")
    effective_date = parse_calendar_date(raw_effective)
    if raw_effective is not None and effective_date is None:
        diagnostics.append(
            _diagnostic(
                record_id, "effective_date", raw_effective, "invalid date", False
            )
        )

    expected_rate = parse_amount(_lookup(raw, "expected_rate", "dolarEsperado"))

    movement = FinancialMovement(
        id=record_id,
        kind=kind,
        payment_method=payment_method,
        currency=currency,
        amount=amount,
        expected_date=expected_date,
        effective_date=effective_date,
        category=_optional_text(_lookup(raw, "category", "categoria")),
        subcategory=_optional_text(_lookup(raw, "subcategory", "subcargo")),
        detail=normalize_detail(_lookup(raw, "detail", "detalle")),
        comment=_optional_text(_lookup(raw, "comment", "comentario")) or "",
        expected_rate=expected_rate if expected_rate is not None else ZERO,
        relations=_parse_relations(raw),
    )
    return movement, diagnostics


def coerce_records(records: Any) -> list[Any]:
    """
    Materialize a collection of records as a list.

    A DataFrame contributes one mapping per row. Strings, bytes, mappings,
    None and non-iterables are rejected with ``TypeError``.
    """
    if isinstance(records, pd.DataFrame):
        return records.to_dict(orient="records")
    if (
        records is None
        or isinstance(records, (str, bytes, Mapping))
        or not isinstance(records, Iterable)
    ):
        raise TypeError(
            "Expected a list of movement records, "
            f"got {type(records).__name__}."
        )
    return list(records)


def normalize_movements(
    records: Iterable[Union[Mapping[str, Any], FinancialMovement]],
) -> NormalizationResult:
    """
    Normalize a collection of raw records into ``FinancialMovement`` objects.

    Args:
        records: Raw backend records (mappings) and/or already-normalized
            movements, in any order.

    Returns:
        A NormalizationResult with the usable movements (input order kept)
        and every diagnostic collected. Records with an unrecognized kind,
        currency or payment method are absent from ``movements``.
    """
    movements: list[FinancialMovement] = []
    diagnostics: list[RecordDiagnostic] = []

    for index, raw in enumerate(records):
        movement, found = _normalize_one(raw, index)
        diagnostics.extend(found)
        if movement is not None:
            movements.append(movement)

    return NormalizationResult(movements=movements, diagnostics=diagnostics)
