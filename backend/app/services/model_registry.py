"""Per-symbol model registry.

Each symbol owns exactly one SymbolModel. Models are created lazily and, on
first access, restored from the store when a saved copy exists.
"""

import asyncio
import logging
from collections import defaultdict

from core.models import ModelArchitecture
from core.neural import SymbolModel
from core.protocols import KeyValueStore

logger = logging.getLogger(__name__)


class ModelRegistry:
    def __init__(
        self,
        store: KeyValueStore,
        architecture: ModelArchitecture | None = None,
        seed: int | None = None,
    ):
        self.store = store
        self.architecture = architecture or ModelArchitecture()
        self.seed = seed
        self._models: dict[str, SymbolModel] = {}
        # One creation per symbol, even with concurrent first access
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def peek(self, symbol: str) -> SymbolModel | None:
        """The model if already created, without touching the store."""
        return self._models.get(symbol)

    async def get(self, symbol: str) -> SymbolModel:
        """Get the model for a symbol, loading it from the store the first time."""
        model = self._models.get(symbol)
        if model is not None:
            return model

        async with self._locks[symbol]:
            model = self._models.get(symbol)
            if model is not None:
                return model

            model = SymbolModel(symbol, self.architecture, seed=self.seed)
            if not await model.load(self.store):
                logger.info(f"No saved model for {symbol}, using freshly initialized weights")
            self._models[symbol] = model
            return model

    async def load_all(self, symbols: list[str]) -> int:
        """Warm the registry. Returns the number of models restored from the store."""
        restored = 0
        for symbol in symbols:
            model = await self.get(symbol)
            if model.is_trained:
                restored += 1
        logger.info(f"Model registry ready: {restored}/{len(symbols)} trained models restored")
        return restored

    async def save(self, symbol: str) -> bool:
        """Persist one model. Store failures are logged, not raised."""
        model = self._models.get(symbol)
        if model is None:
            return False

        try:
            await model.save(self.store)
            return True
        except Exception as e:
            logger.warning(f"Failed to save model for {symbol}: {e}")
            return False
