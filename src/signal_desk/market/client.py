"""OKX public market data client.

Read-only access to the ticker and candle endpoints of the OKX v5 API.
Every failure surfaces as NetworkError (transport/HTTP) or FormatError
(unexpected payload) so callers can treat both as "no data this tick".
"""
import logging
from typing import List

import requests

from ..errors import FormatError, NetworkError
from ..models import Candle, Ticker

logger = logging.getLogger(__name__)


class OKXMarketClient:
    """Client for OKX public market endpoints."""

    def __init__(self, base_url: str = "https://www.okx.com/api/v5", timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _request(self, endpoint: str, params: dict = None) -> list:
        """GET an endpoint and return the ``data`` field of the OKX envelope.

        Raises:
            NetworkError: On connection errors, timeouts or non-2xx status
            FormatError: If the body is not JSON or ``code`` is not "0"
        """
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.get(url, params=params or {}, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise NetworkError(f"HTTP error from {endpoint}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Request to {endpoint} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise FormatError(f"Non-JSON response from {endpoint}") from e

        if not isinstance(payload, dict) or payload.get("code") != "0":
            msg = payload.get("msg", "") if isinstance(payload, dict) else ""
            raise FormatError(f"API error from {endpoint}: {msg or 'unexpected payload'}")

        data = payload.get("data")
        if not isinstance(data, list):
            raise FormatError(f"Missing data in response from {endpoint}")
        return data

    def check_connection(self) -> bool:
        """Ping the server time endpoint."""
        self._request("/public/time")
        logger.info("✅ API connection OK")
        return True

    def get_ticker(self, symbol: str) -> Ticker:
        """Get last price and 24h range for a symbol."""
        data = self._request("/market/ticker", {"instId": symbol})
        if not data or not isinstance(data[0], dict):
            raise FormatError(f"Empty ticker for {symbol}")

        row = data[0]
        try:
            return Ticker(
                symbol=symbol,
                last_price=float(row["last"]),
                high_24h=float(row.get("high24h") or 0),
                low_24h=float(row.get("low24h") or 0),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise FormatError(f"Malformed ticker for {symbol}: {e}") from e

    def get_candles(self, symbol: str, interval: str = "15m", limit: int = 30) -> List[Candle]:
        """Get candles, oldest first.

        OKX returns candles newest first; they are reversed here.
        """
        data = self._request(
            "/market/candles", {"instId": symbol, "bar": interval, "limit": limit}
        )
        try:
            candles = [Candle.from_list(row) for row in data]
        except (IndexError, TypeError, ValueError) as e:
            raise FormatError(f"Malformed candle row for {symbol}: {e}") from e

        candles.reverse()
        return candles

    def close(self) -> None:
        self.session.close()
