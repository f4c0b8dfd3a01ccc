# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for Event Ledger.

This module reads exported accounting records from disk so that the engine
can be run offline, without a backend session.

Supported input formats
-----------------------

1) CSV export
   ----------
   One row per record, with the backend column names, for example:

       id, type, especie, moneda, montoEspera, fechaEspera,
       fechaEfectuado, categoria, subcargo, detalle, comentario

   Canonical column names (``kind``, ``payment_method``, ``currency``,
   ``amount``, ``expected_date``, ``effective_date``...) are accepted too.
   Empty cells are returned as None.

2) JSON export
   -----------
   Either a list of records or a PocketBase list page (an object with an
   ``items`` list).

Output
------
A list of plain dicts, untouched apart from empty-cell cleanup. Validation
and normalization are the job of ``movements.normalize_movements``, which
reports malformed records as diagnostics instead of failing the import.

Structural problems (unknown extension, JSON that is neither a list nor a
page) raise ValueError.
"""

import json
import logging
import os
from typing import Any, Union

import pandas as pd

logger = logging.getLogger(__name__)


def _records_from_dataframe(df: pd.DataFrame) -> list[dict[str, Any]]:
    # Strip column names, then map NaN to None
    df.columns = [str(c).strip() for c in df.columns]
    cleaned = df.astype(object).where(pd.notna(df), None)
    return cleaned.to_dict("records")


def read_movement_records(path: Union[str, "os.PathLike[str]"]) -> list[dict[str, Any]]:
    """
    Read accounting records from a CSV or JSON export.

    Parameters
    ----------
    path:
        Path to a ``.csv`` or ``.json`` file.

    Returns
    -------
    list of dict
        Raw records ready for ``normalize_movements`` / ``aggregate``.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the extension is not supported or the JSON structure is not a
        list of records.
    """
    path = os.fspath(path)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input file not found: {path}")

    ext = os.path.splitext(path)[1].lower()

    if ext == ".csv":
        # Keep every column as text: amounts and dates are parsed later,
        # record by record, so that one bad cell does not fail the import.
        df = pd.read_csv(path, dtype=str, keep_default_na=True)
        records = _records_from_dataframe(df)

    elif ext == ".json":
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        if isinstance(data, dict) and isinstance(data.get("items"), list):
            data = data["items"]
        if not isinstance(data, list):
            raise ValueError(
                "JSON input must be a list of records or an object with an "
                "'items' list."
            )
        records = [r for r in data if isinstance(r, dict)]
        if len(records) != len(data):
            logger.warning(
                "Ignored %d non-object entries in %s", len(data) - len(records), path
            )

    else:
        raise ValueError(
            f"Unsupported input format {ext!r}: expected a .csv or .json file."
        )

    logger.info("Loaded %d records from %s", len(records), path)
    return records
