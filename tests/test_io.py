import json
from decimal import Decimal

import pytest

from event_ledger.engine import TOTAL, aggregate
from event_ledger.io import read_movement_records
from event_ledger.movements import LOCAL


def test_read_csv_export_keeps_values_as_text(tmp_path) -> None:
    """Empty cells become None; amounts and dates are left for normalization."""
    csv_path = tmp_path / "contabilidad.csv"
    csv_path.write_text(
        "id,type,especie,moneda,montoEspera,fechaEspera,fechaEfectuado\n"
        "a,cobro,efectivo,ars,1000.50,2024-01-05,2024-01-05\n"
        "b,pago,efectivo,ars,400,2024-01-10,\n",
        encoding="utf-8",
    )

    records = read_movement_records(csv_path)

    assert len(records) == 2
    assert records[0]["montoEspera"] == "1000.50"
    assert records[1]["fechaEfectuado"] is None


def test_csv_records_feed_the_engine(tmp_path) -> None:
    csv_path = tmp_path / "contabilidad.csv"
    csv_path.write_text(
        " id , type , moneda , montoEspera , fechaEfectuado \n"
        "a,cobro,ars,0.1,2024-01-05\n"
        "b,cobro,ars,0.2,2024-01-06\n"
        "c,cobro,eur,5,2024-01-06\n",
        encoding="utf-8",
    )

    summary = aggregate(read_movement_records(str(csv_path)))

    assert summary.cumulative_balance[TOTAL][LOCAL] == Decimal("0.3")
    assert [d.record_id for d in summary.rejected] == ["c"]


def test_read_json_list_and_page(tmp_path) -> None:
    list_path = tmp_path / "list.json"
    list_path.write_text(json.dumps([{"id": "a"}, "junk", {"id": "b"}]), encoding="utf-8")
    page_path = tmp_path / "page.json"
    page_path.write_text(
        json.dumps({"page": 1, "totalPages": 1, "items": [{"id": "c"}]}),
        encoding="utf-8",
    )

    assert [r["id"] for r in read_movement_records(list_path)] == ["a", "b"]
    assert read_movement_records(page_path) == [{"id": "c"}]


def test_invalid_inputs_raise(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        read_movement_records(tmp_path / "missing.csv")

    xlsx = tmp_path / "export.xlsx"
    xlsx.write_bytes(b"")
    with pytest.raises(ValueError):
        read_movement_records(xlsx)

    bad_json = tmp_path / "bad.json"
    bad_json.write_text(json.dumps({"message": "nope"}), encoding="utf-8")
    with pytest.raises(ValueError):
        read_movement_records(bad_json)
