from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =========================
# REQUEST
# =========================
class QueryRequest(BaseModel):
    """One console request frame: `{"Query": "<free text>"}`."""

    query: str = Field(default="", validation_alias="Query")

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def fold_key_case(cls, data: Any) -> Any:
        # The key matches in any letter case; when several do, the last one wins
        if not isinstance(data, dict):
            return data
        return {
            ("Query" if isinstance(key, str) and key.lower() == "query" else key): value
            for key, value in data.items()
        }


# =========================
# POOL TELEMETRY
# =========================
class PoolStats(BaseModel):
    max_open_connections: int = 0
    open_connections: int = 0
    in_use: int = 0
    idle: int = 0
    overflow: int = 0
    wait_count: int = 0
    wait_duration: str = "0s"


# =========================
# RESPONSE
# =========================
class QueryResponse(BaseModel):
    """
    One console response frame.
    Exactly one of: err, columns + rows, stats. `duration` rides along with a
    successful query only. Unset fields are left out of the wire form.
    """

    columns: Optional[List[str]] = None
    rows: Optional[List[List[Any]]] = None
    duration: Optional[str] = None
    err: Optional[str] = None
    stats: Optional[PoolStats] = None

    @model_validator(mode="after")
    def check_single_payload(self):
        populated = [
            self.err is not None,
            self.columns is not None or self.rows is not None,
            self.stats is not None,
        ]
        if sum(populated) > 1:
            raise ValueError("response carries more than one of err, rows, stats")

        if self.columns is not None:
            width = len(self.columns)
            for index, row in enumerate(self.rows or []):
                if len(row) != width:
                    raise ValueError(
                        f"row {index} has {len(row)} values, expected {width}"
                    )
        if self.duration is not None and (self.err is not None or self.stats is not None):
            raise ValueError("duration is only reported for successful queries")
        return self

    def to_wire(self) -> str:
        return self.model_dump_json(exclude_none=True)


class HealthResponse(BaseModel):
    status: str = "ok"
    stats: PoolStats


# =========================
# DURATIONS
# =========================
_NANOS_PER_SECOND = 1_000_000_000
_NANOS_PER_MINUTE = 60 * _NANOS_PER_SECOND
_NANOS_PER_HOUR = 60 * _NANOS_PER_MINUTE


def _with_fraction(nanos: int, unit: int) -> str:
    whole, remainder = divmod(nanos, unit)
    if not remainder:
        return str(whole)
    digits = len(str(unit)) - 1
    fraction = str(remainder).rjust(digits, "0").rstrip("0")
    return f"{whole}.{fraction}"


def format_duration(seconds: float) -> str:
    """
    Render elapsed wall-clock time the way the console has always shown it:
    "850ns", "12.5µs", "3.25ms", "1.5s", "2m3.5s", "1h0m2s".
    """
    nanos = round(seconds * _NANOS_PER_SECOND)
    if nanos == 0:
        return "0s"

    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)

    if nanos < 1_000:
        return f"{sign}{nanos}ns"
    if nanos < 1_000_000:
        return f"{sign}{_with_fraction(nanos, 1_000)}µs"
    if nanos < _NANOS_PER_SECOND:
        return f"{sign}{_with_fraction(nanos, 1_000_000)}ms"

    hours, rest = divmod(nanos, _NANOS_PER_HOUR)
    minutes, rest = divmod(rest, _NANOS_PER_MINUTE)
    text = f"{_with_fraction(rest, _NANOS_PER_SECOND)}s"
    if hours:
        return f"{sign}{hours}h{minutes}m{text}"
    if minutes:
        return f"{sign}{minutes}m{text}"
    return f"{sign}{text}"
