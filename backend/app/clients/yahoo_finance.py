"""Yahoo Finance chart API client for FX bars."""

import asyncio
import logging
from typing import Any

import httpx

from core.models import Bar

logger = logging.getLogger(__name__)


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_second: float = 5.0):
        self.interval = 1.0 / calls_per_second if calls_per_second > 0 else 0.0
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait_time = self.last_call + self.interval - loop.time()
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = loop.time()


def _value_at(series: list | None, index: int) -> float | None:
    if not series or index >= len(series):
        return None
    return series[index]


class YahooFinanceClient:
    """
    FX bars from the Yahoo chart endpoint.

    FX pairs are requested as ``{symbol}=X`` (e.g. EURUSD=X). Failures never
    raise: historical fetches return an empty list, realtime fetches None.
    """

    BASE_URL = "https://query1.finance.yahoo.com"
    CHART_PATH = "/v8/finance/chart/{ticker}"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        requests_per_second: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.rate_limiter = RateLimiter(requests_per_second)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"User-Agent": "Mozilla/5.0"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _fetch_chart(self, symbol: str, interval: str, range_: str) -> dict[str, Any] | None:
        """Fetch the first chart result, or None if the payload has none."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.get(
            self.CHART_PATH.format(ticker=f"{symbol}=X"),
            params={"interval": interval, "range": range_},
        )
        response.raise_for_status()
        results = (response.json().get("chart") or {}).get("result") or []
        return results[0] if results else None

    def _parse_bars(self, symbol: str, result: dict[str, Any]) -> list[Bar]:
        """Convert a chart result into ascending bars, skipping null closes.

        change/change_percent are relative to the previous emitted close
        (zero for the first bar).
        """
        timestamps = result.get("timestamp") or []
        quotes = ((result.get("indicators") or {}).get("quote") or [{}])[0]
        closes = quotes.get("close") or []

        bars: list[Bar] = []
        previous: float | None = None
        for i, ts in enumerate(timestamps):
            close = _value_at(closes, i)
            if close is None:
                continue

            prev_close = previous if previous is not None else close
            change = close - prev_close
            bars.append(
                Bar(
                    symbol=symbol,
                    open=_value_at(quotes.get("open"), i) or close,
                    high=_value_at(quotes.get("high"), i) or close,
                    low=_value_at(quotes.get("low"), i) or close,
                    price=close,
                    volume=_value_at(quotes.get("volume"), i) or 0.0,
                    timestamp=int(ts) * 1000,
                    change=change,
                    change_percent=change / prev_close * 100 if prev_close else 0.0,
                )
            )
            previous = close

        return bars

    async def fetch_historical_data(self, symbol: str, period: str = "3mo") -> list[Bar]:
        """
        Fetch daily bars for a period.

        Args:
            symbol: FX pair (e.g., "EURUSD")
            period: Yahoo range (e.g., "1mo", "3mo", "1y")

        Returns:
            Bars in ascending timestamp order (empty on failure)
        """
        try:
            result = await self._fetch_chart(symbol, "1d", period)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch historical data for {symbol}: {e}")
            return []

        if result is None:
            logger.warning(f"No historical data returned for {symbol}")
            return []

        bars = self._parse_bars(symbol, result)
        logger.debug(f"Fetched {len(bars)} historical bars for {symbol} ({period})")
        return bars

    async def fetch_real_time_data(self, symbol: str) -> Bar | None:
        """
        Fetch the latest one-minute bar of the day.

        Returns:
            Latest Bar with change relative to the previous minute, or None
        """
        try:
            result = await self._fetch_chart(symbol, "1m", "1d")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch real-time data for {symbol}: {e}")
            return None

        if result is None:
            logger.warning(f"No real-time data returned for {symbol}")
            return None

        bars = self._parse_bars(symbol, result)
        return bars[-1] if bars else None
