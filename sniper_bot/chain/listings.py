"""New listings from DexScreener's latest token profiles."""

import logging

import httpx

from sniper_bot.analysis.models import Token
from sniper_bot.config import settings
from sniper_bot.errors import TransientNetworkError
from sniper_bot.utils.throttle import RequestThrottle

logger = logging.getLogger(__name__)

PROFILES_URL = "https://api.dexscreener.com/token-profiles/latest/v1"
TOKENS_URL = "https://api.dexscreener.com/latest/dex/tokens/{address}"

_TIMEOUT = 15


class ListingSource:
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        chain: str | None = None,
        throttle: RequestThrottle | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=_TIMEOUT)
        self.chain = chain or settings.listing_chain
        self._throttle = throttle or RequestThrottle(0.3)  # DexScreener rate limit

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, url: str):
        await self._throttle.await_window()
        try:
            resp = await self._client.get(url)
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"DexScreener: {exc}") from exc
        if resp.status_code == 429 or resp.status_code >= 500:
            raise TransientNetworkError(f"DexScreener returned HTTP {resp.status_code}")
        resp.raise_for_status()
        return resp.json()

    async def _enrich(self, address: str) -> tuple[str, str]:
        """(name, symbol) from the highest-liquidity pair, blank if unknown."""
        try:
            data = await self._get(TOKENS_URL.format(address=address))
        except (TransientNetworkError, httpx.HTTPError) as exc:
            logger.debug("DexScreener enrich failed for %s: %s", address[:12], exc)
            return "", ""

        pairs = [p for p in (data.get("pairs") or []) if p.get("chainId") == self.chain]
        if not pairs:
            return "", ""
        best = max(pairs, key=lambda p: (p.get("liquidity") or {}).get("usd") or 0)
        base = best.get("baseToken") or {}
        if base.get("address") != address:
            base = best.get("quoteToken") or {}
        return base.get("name", ""), (base.get("symbol") or "").upper()

    async def fetch_new_listings(self) -> list[Token]:
        items = await self._get(PROFILES_URL)

        tokens: list[Token] = []
        seen: set[str] = set()
        if isinstance(items, list):
            for item in items:
                if item.get("chainId") != self.chain:
                    continue
                address = item.get("tokenAddress", "")
                if not address or address in seen:
                    continue
                seen.add(address)
                name, symbol = await self._enrich(address)
                tokens.append(Token(
                    address=address,
                    name=name or (item.get("description") or "")[:256],
                    symbol=symbol,
                ))

        logger.info("DexScreener listings: %d %s tokens", len(tokens), self.chain)
        return tokens
