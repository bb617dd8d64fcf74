"""Cached training samples per symbol.

Data structure:
- training_data_{symbol} -> JSON list of TrainingSample dicts, ascending by
  timestamp, capped at the most recent ``max_samples``

New samples are merged with cached ones by timestamp (newest write wins), so
repeated training runs keep bars that have rolled out of the fetch window.
"""

from __future__ import annotations

import logging
from typing import Sequence

import orjson

from core.models import TrainingSample
from core.protocols import KeyValueStore

logger = logging.getLogger(__name__)

KEY_PREFIX_TRAINING_DATA = "training_data_"
DEFAULT_MAX_SAMPLES = 5000


def training_data_key(symbol: str) -> str:
    return f"{KEY_PREFIX_TRAINING_DATA}{symbol}"


class TrainingDataCache:
    def __init__(self, store: KeyValueStore, max_samples: int = DEFAULT_MAX_SAMPLES):
        self.store = store
        self.max_samples = max_samples

    async def load(self, symbol: str) -> list[TrainingSample]:
        raw = await self.store.get(training_data_key(symbol))
        if raw is None:
            return []

        try:
            return [TrainingSample.from_dict(s) for s in orjson.loads(raw)]
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed training data for {symbol}: {e}")
            return []

    async def merge(
        self,
        symbol: str,
        samples: Sequence[TrainingSample],
    ) -> list[TrainingSample]:
        """Merge ``samples`` into the cache and persist the result.

        Returns:
            The merged samples, ascending by timestamp
        """
        by_timestamp = {s.timestamp: s for s in await self.load(symbol)}
        for sample in samples:
            by_timestamp[sample.timestamp] = sample

        merged = [by_timestamp[ts] for ts in sorted(by_timestamp)][-self.max_samples :]
        data = [s.to_dict() for s in merged]
        await self.store.set(training_data_key(symbol), orjson.dumps(data).decode())

        logger.debug(
            f"Training data for {symbol}: {len(samples)} new, {len(merged)} cached"
        )
        return merged
