import base64
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List
from uuid import UUID


# -----------------------------------------------------------------------------
# SCAN TYPES
# Purpose: turn the per-column type the store reports at execution time into
# one fixed variant, and decode raw driver values into that variant.
# Every variant has exactly one decoder and one JSON form.
# -----------------------------------------------------------------------------


class ScanType(str, Enum):
    """Concrete scalar kind a result column yields."""

    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    TEXT = "text"
    BYTES = "bytes"
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"
    INTERVAL = "interval"
    UUID = "uuid"
    JSON = "json"


# PostgreSQL type OIDs (pg_type.oid) mapped to the variant their values decode into.
PG_TYPE_OIDS: Dict[int, ScanType] = {
    16: ScanType.BOOL,  # bool
    17: ScanType.BYTES,  # bytea
    18: ScanType.TEXT,  # "char"
    19: ScanType.TEXT,  # name
    20: ScanType.INT,  # int8
    21: ScanType.INT,  # int2
    23: ScanType.INT,  # int4
    24: ScanType.TEXT,  # regproc
    25: ScanType.TEXT,  # text
    26: ScanType.INT,  # oid
    28: ScanType.INT,  # xid
    29: ScanType.INT,  # cid
    114: ScanType.JSON,  # json
    142: ScanType.TEXT,  # xml
    650: ScanType.TEXT,  # cidr
    700: ScanType.FLOAT,  # float4
    701: ScanType.FLOAT,  # float8
    705: ScanType.TEXT,  # unknown
    790: ScanType.TEXT,  # money
    829: ScanType.TEXT,  # macaddr
    869: ScanType.TEXT,  # inet
    1042: ScanType.TEXT,  # bpchar
    1043: ScanType.TEXT,  # varchar
    1082: ScanType.DATE,  # date
    1083: ScanType.TIME,  # time
    1114: ScanType.TIMESTAMP,  # timestamp
    1184: ScanType.TIMESTAMP,  # timestamptz
    1186: ScanType.INTERVAL,  # interval
    1266: ScanType.TIME,  # timetz
    1560: ScanType.TEXT,  # bit
    1562: ScanType.TEXT,  # varbit
    1700: ScanType.DECIMAL,  # numeric
    2205: ScanType.TEXT,  # regclass
    2206: ScanType.TEXT,  # regtype
    2278: ScanType.TEXT,  # void
    2950: ScanType.UUID,  # uuid
    3220: ScanType.TEXT,  # pg_lsn
    3802: ScanType.JSON,  # jsonb
}


def scan_type_for(type_code: Any) -> ScanType:
    """
    Resolve the variant for a driver-reported type code.
    Codes outside the catalogue (arrays, enums, composite and extension types) read as TEXT.
    """
    if isinstance(type_code, int) and not isinstance(type_code, bool):
        return PG_TYPE_OIDS.get(type_code, ScanType.TEXT)
    return ScanType.TEXT


# =========================
# Decoders
# Each receives a non-NULL raw value and returns its JSON form, or raises
# TypeError/ValueError when the value does not fit the variant.
# =========================
_BOOL_TEXT = {
    "1": True, "t": True, "true": True, "y": True, "yes": True, "on": True,
    "0": False, "f": False, "false": False, "n": False, "no": False, "off": False,
}


def _decode_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (str, bytes)):
        text = value.decode() if isinstance(value, bytes) else value
        parsed = _BOOL_TEXT.get(text.strip().lower())
        if parsed is not None:
            return parsed
    raise ValueError(f"cannot convert {value!r} to bool")


def _decode_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError(f"cannot convert bool {value!r} to int")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"cannot convert {value!r} to int without losing precision")
    if isinstance(value, bytes):
        value = value.decode()
    return int(value)


def _decode_float(value: Any):
    if isinstance(value, bool):
        raise TypeError(f"cannot convert bool {value!r} to float")
    number = float(value)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    return number


def _decode_decimal(value: Any) -> str:
    if isinstance(value, bool):
        raise TypeError(f"cannot convert bool {value!r} to decimal")
    if isinstance(value, float):
        value = repr(value)
    elif isinstance(value, bytes):
        value = value.decode()
    return str(Decimal(value))


def _decode_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return str(value)


def _decode_bytes(value: Any) -> str:
    if isinstance(value, str):
        value = value.encode("utf-8")
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise TypeError(f"cannot convert {type(value).__name__} to bytes")
    return base64.b64encode(bytes(value)).decode("ascii")


def _decode_date(value: Any) -> str:
    # datetime values keep their time part
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return date.fromisoformat(value).isoformat()
    raise TypeError(f"cannot convert {type(value).__name__} to date")


def _decode_time(value: Any) -> str:
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, str):
        return time.fromisoformat(value).isoformat()
    raise TypeError(f"cannot convert {type(value).__name__} to time")


def _decode_timestamp(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).isoformat()
    if isinstance(value, str):
        return datetime.fromisoformat(value).isoformat()
    raise TypeError(f"cannot convert {type(value).__name__} to timestamp")


def _decode_interval(value: Any) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    raise TypeError(f"cannot convert {type(value).__name__} to interval")


def _decode_uuid(value: Any) -> str:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, bytes) and len(value) == 16:
        return str(UUID(bytes=value))
    return str(UUID(str(value)))


def _decode_json(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    if isinstance(value, str):
        return value
    raise TypeError(f"cannot convert {type(value).__name__} to json text")


DECODERS: Dict[ScanType, Callable[[Any], Any]] = {
    ScanType.BOOL: _decode_bool,
    ScanType.INT: _decode_int,
    ScanType.FLOAT: _decode_float,
    ScanType.DECIMAL: _decode_decimal,
    ScanType.TEXT: _decode_text,
    ScanType.BYTES: _decode_bytes,
    ScanType.DATE: _decode_date,
    ScanType.TIME: _decode_time,
    ScanType.TIMESTAMP: _decode_timestamp,
    ScanType.INTERVAL: _decode_interval,
    ScanType.UUID: _decode_uuid,
    ScanType.JSON: _decode_json,
}


@dataclass(frozen=True)
class DynamicValue:
    """One decoded result cell. `value` is None for SQL NULL, else its JSON form."""

    kind: ScanType
    value: Any = None

    @property
    def is_null(self) -> bool:
        return self.value is None

    def to_json(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Slot:
    """Typed destination for one column of a row."""

    kind: ScanType

    def scan(self, raw: Any) -> DynamicValue:
        if raw is None:
            return DynamicValue(self.kind)
        return DynamicValue(self.kind, DECODERS[self.kind](raw))


def slots_for(kinds: Iterable[ScanType]) -> List[Slot]:
    """Allocate one slot per column, in column order."""
    return [Slot(kind) for kind in kinds]
