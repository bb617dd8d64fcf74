"""Per-symbol prediction log.

Data structure:
- predictions_{symbol} -> JSON list of PredictionRecord, oldest first,
  capped at the most recent ``max_records`` entries
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

import orjson
from pydantic import ValidationError

from core.models import Direction, PredictionRecord
from core.protocols import KeyValueStore

logger = logging.getLogger(__name__)

KEY_PREFIX_PREDICTIONS = "predictions_"
DEFAULT_MAX_RECORDS = 1000


def predictions_key(symbol: str) -> str:
    """Get the store key for a symbol's prediction log."""
    return f"{KEY_PREFIX_PREDICTIONS}{symbol}"


class PredictionLog:
    """Append-only (plus outcome backfill) log of predictions per symbol."""

    def __init__(self, store: KeyValueStore, max_records: int = DEFAULT_MAX_RECORDS):
        self.store = store
        self.max_records = max_records
        # Serializes read-modify-write per symbol
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def load(self, symbol: str) -> list[PredictionRecord]:
        """Load the log. A malformed record list is treated as empty.

        Raises:
            Store errors propagate.
        """
        raw = await self.store.get(predictions_key(symbol))
        if raw is None:
            return []

        try:
            return [PredictionRecord.model_validate(r) for r in orjson.loads(raw)]
        except (orjson.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning(f"Discarding malformed prediction log for {symbol}: {e}")
            return []

    async def _save(self, symbol: str, records: list[PredictionRecord]) -> None:
        data = [r.model_dump(mode="json") for r in records[-self.max_records :]]
        await self.store.set(predictions_key(symbol), orjson.dumps(data).decode())

    async def append(self, symbol: str, record: PredictionRecord) -> None:
        """Append one record, dropping the oldest beyond ``max_records``."""
        async with self._locks[symbol]:
            records = await self.load(symbol)
            records.append(record)
            await self._save(symbol, records)
        logger.debug(f"Logged {record.prediction.value} prediction for {symbol}")

    async def update_outcome(
        self,
        symbol: str,
        timestamp: int,
        actual: Direction,
    ) -> bool:
        """Backfill the realized direction of the prediction made at ``timestamp``.

        Returns:
            True if a record with that timestamp was found and updated
        """
        async with self._locks[symbol]:
            records = await self.load(symbol)
            for i, record in enumerate(records):
                if record.timestamp == timestamp:
                    records[i] = record.model_copy(update={"actual_outcome": actual})
                    await self._save(symbol, records)
                    logger.info(
                        f"Recorded outcome for {symbol}@{timestamp}: "
                        f"predicted {record.prediction.value}, actual {actual.value}"
                    )
                    return True

        logger.info(f"No prediction for {symbol} at {timestamp}")
        return False

    async def clear(self, symbol: str) -> None:
        await self.store.remove(predictions_key(symbol))
