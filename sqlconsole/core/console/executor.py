import logging
import time

from sqlconsole.core.console.encoder import QueryFault, encode_result
from sqlconsole.core.console.store import Cursor, Store, store_error_text
from sqlconsole.core.schemas import QueryResponse, format_duration

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# QUERY EXECUTOR
# Purpose: answer one request: pool telemetry for the reserved command,
# otherwise run the text and encode its result.
# Query faults become an `err` response; they never escape.
# -----------------------------------------------------------------------------


class QueryExecutor:
    def __init__(self, store: Store, stats_command: str = "stats"):
        self.store = store
        self.stats_command = stats_command

    async def execute(self, query: str) -> QueryResponse:
        """
        Produce the response for one request.

        Args:
            query: Raw request text. Compared to the reserved command exactly.

        Returns:
            A stats-only, err-only, or tabular response.
        """
        if query == self.stats_command:
            logger.debug("Pool stats requested")
            return QueryResponse(stats=self.store.pool_stats())

        started = time.perf_counter()
        try:
            try:
                cursor = await self.store.execute(query)
            except Exception as error:
                raise QueryFault(store_error_text(error), stage="execute") from error

            try:
                result = encode_result(cursor)
                elapsed = time.perf_counter() - started
            finally:
                await self._close(cursor)
        except QueryFault as fault:
            logger.warning(f"Query failed during {fault.stage}: {fault.message}")
            return QueryResponse(err=fault.message)

        duration = format_duration(elapsed)
        if not result.returns_rows:
            return QueryResponse(duration=duration)
        return QueryResponse(
            columns=result.columns, rows=result.json_rows(), duration=duration
        )

    async def _close(self, cursor: Cursor) -> None:
        try:
            await cursor.close()
        except Exception as error:
            logger.error(f"Failed to release cursor: {error}")
