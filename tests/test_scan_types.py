import base64
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from sqlconsole.core.console.scan_types import (
    DECODERS,
    PG_TYPE_OIDS,
    ScanType,
    Slot,
    scan_type_for,
)


def test_every_scan_type_has_a_decoder():
    """No variant can be reported without a way to decode it"""
    assert set(DECODERS) == set(ScanType)


def test_catalogue_maps_common_postgres_types():
    assert scan_type_for(16) is ScanType.BOOL
    assert scan_type_for(23) is ScanType.INT
    assert scan_type_for(20) is ScanType.INT
    assert scan_type_for(701) is ScanType.FLOAT
    assert scan_type_for(1700) is ScanType.DECIMAL
    assert scan_type_for(17) is ScanType.BYTES
    assert scan_type_for(1184) is ScanType.TIMESTAMP
    assert scan_type_for(2950) is ScanType.UUID
    assert scan_type_for(3802) is ScanType.JSON
    assert all(isinstance(kind, ScanType) for kind in PG_TYPE_OIDS.values())


def test_unknown_type_codes_read_as_text():
    """Arrays, enums, and drivers without OIDs fall back to text"""
    assert scan_type_for(1007) is ScanType.TEXT  # int4[]
    assert scan_type_for(None) is ScanType.TEXT
    assert scan_type_for("int4") is ScanType.TEXT


@pytest.mark.parametrize("kind", list(ScanType))
def test_null_decodes_in_every_column_type(kind):
    """NULL is accepted regardless of the declared type"""
    value = Slot(kind).scan(None)
    assert value.is_null
    assert value.to_json() is None
    assert value.kind is kind


def test_null_is_distinct_from_falsy_values():
    assert Slot(ScanType.TEXT).scan("").to_json() == ""
    assert Slot(ScanType.BOOL).scan(False).to_json() is False
    assert Slot(ScanType.INT).scan(0).to_json() == 0
    assert not Slot(ScanType.TEXT).scan("").is_null


def test_numeric_values():
    assert Slot(ScanType.INT).scan(42).to_json() == 42
    assert Slot(ScanType.FLOAT).scan(1.5).to_json() == 1.5
    assert Slot(ScanType.DECIMAL).scan(Decimal("12.50")).to_json() == "12.50"


def test_non_finite_floats_become_strings():
    assert Slot(ScanType.FLOAT).scan(float("nan")).to_json() == "NaN"
    assert Slot(ScanType.FLOAT).scan(float("inf")).to_json() == "Infinity"
    assert Slot(ScanType.FLOAT).scan(float("-inf")).to_json() == "-Infinity"


def test_bytes_are_base64():
    encoded = Slot(ScanType.BYTES).scan(b"\x00\x01\xff").to_json()
    assert base64.b64decode(encoded) == b"\x00\x01\xff"


def test_date_and_time_values_are_iso_text():
    assert Slot(ScanType.DATE).scan(date(2024, 1, 2)).to_json() == "2024-01-02"
    assert Slot(ScanType.TIME).scan(time(3, 4, 5)).to_json() == "03:04:05"
    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert Slot(ScanType.TIMESTAMP).scan(stamp).to_json() == "2024-01-02T03:04:05+00:00"


def test_interval_is_total_seconds():
    assert Slot(ScanType.INTERVAL).scan(timedelta(minutes=1, seconds=30)).to_json() == 90.0


def test_uuid_and_json_are_text():
    ident = UUID("12345678-1234-5678-1234-567812345678")
    assert Slot(ScanType.UUID).scan(ident).to_json() == str(ident)
    assert Slot(ScanType.JSON).scan('{"a": 1}').to_json() == '{"a": 1}'


@pytest.mark.parametrize(
    "kind, raw",
    [
        (ScanType.INT, "not a number"),
        (ScanType.INT, 1.5),
        (ScanType.BOOL, "maybe"),
        (ScanType.DECIMAL, "abc"),
        (ScanType.DATE, 12),
        (ScanType.INTERVAL, "1 day"),
        (ScanType.UUID, "nope"),
    ],
)
def test_values_that_do_not_fit_the_column_type_fail(kind, raw):
    with pytest.raises((TypeError, ValueError, ArithmeticError)):
        Slot(kind).scan(raw)
