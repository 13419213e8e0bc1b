from dataclasses import dataclass, field
from typing import Any, List, Sequence

from sqlconsole.core.console.scan_types import DynamicValue, Slot, slots_for
from sqlconsole.core.console.store import ColumnType, Cursor, store_error_text


# -----------------------------------------------------------------------------
# RESULT ENCODER
# Purpose: turn one executed cursor into columns + fully materialized rows,
# typing every cell by the scan type its column reported for this query.
# -----------------------------------------------------------------------------


class QueryFault(Exception):
    """A failure of the query itself. Reported to the client; the session goes on."""

    def __init__(self, message: str, stage: str):
        super().__init__(message)
        self.message = message
        self.stage = stage


@dataclass
class TabularResult:
    columns: List[str] = field(default_factory=list)
    column_types: List[ColumnType] = field(default_factory=list)
    rows: List[List[DynamicValue]] = field(default_factory=list)
    returns_rows: bool = True

    def json_rows(self) -> List[List[Any]]:
        return [[value.to_json() for value in row] for row in self.rows]


def scan_row(columns: Sequence[str], slots: Sequence[Slot], raw: Sequence[Any]) -> List[DynamicValue]:
    """Decode one raw row into its typed slots."""
    if len(raw) != len(slots):
        raise QueryFault(
            f"expected {len(slots)} values in row, got {len(raw)}", stage="scan"
        )

    values = []
    for index, (slot, value) in enumerate(zip(slots, raw)):
        try:
            values.append(slot.scan(value))
        except (TypeError, ValueError, ArithmeticError) as error:
            raise QueryFault(
                f'scan error on column index {index}, name "{columns[index]}": {error}',
                stage="scan",
            ) from error
    return values


def encode_result(cursor: Cursor) -> TabularResult:
    """
    Read column metadata, then every row, from an executing cursor.

    Raises:
        QueryFault: metadata retrieval, a row scan, or the cursor itself failed.
        A failure raised by the cursor after rows were delivered counts the same.
    """
    if not cursor.returns_rows:
        return TabularResult(returns_rows=False)

    try:
        columns = cursor.columns()
        column_types = cursor.column_types()
    except Exception as error:
        raise QueryFault(store_error_text(error), stage="metadata") from error

    if len(column_types) != len(columns):
        raise QueryFault(
            f"store reported {len(columns)} columns but {len(column_types)} column types",
            stage="metadata",
        )

    slots = slots_for(column_type.scan_type for column_type in column_types)
    rows: List[List[DynamicValue]] = []
    try:
        for raw in cursor:
            rows.append(scan_row(columns, slots, raw))
    except QueryFault:
        raise
    except Exception as error:
        raise QueryFault(store_error_text(error), stage="fetch") from error

    return TabularResult(columns=columns, column_types=column_types, rows=rows)
