"""Swap gateways: quote, build and submit.

``JupiterSwapGateway`` talks to the Jupiter v6 API and the Solana RPC.
``DryRunSwapGateway`` is deterministic and never touches the network; it
backs ``dry_run`` mode and tests.
"""

import base64
import logging
from abc import ABC, abstractmethod

import httpx
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from sniper_bot.chain.solana_rpc import SolanaRpcClient
from sniper_bot.config import settings
from sniper_bot.errors import SniperError, TransientNetworkError
from sniper_bot.trading.models import Quote, Route

logger = logging.getLogger(__name__)

_NO_ROUTE_CODES = {"COULD_NOT_FIND_ANY_ROUTE", "NO_ROUTES_FOUND", "TOKEN_NOT_TRADABLE"}

MEMO_PROGRAM_ID = Pubkey.from_string("MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr")


class SwapGateway(ABC):
    async def prepare(self) -> None:
        """Session setup, run once per executor session."""
        return None

    @abstractmethod
    async def fetch_quote(
        self, input_mint: str, output_mint: str, amount: int, slippage_bps: int,
    ) -> Quote:
        """Ranked routes for the swap; an empty list means no route."""
        ...

    @abstractmethod
    async def build_swap(self, route: Route, public_key: str) -> bytes:
        """Serialized unsigned versioned transaction for ``route``."""
        ...

    @abstractmethod
    async def submit_transaction(self, signed: bytes) -> str:
        """Send signed bytes; returns the transaction signature."""
        ...

    @abstractmethod
    async def confirm_transaction(self, signature: str, commitment: str) -> None:
        ...

    @abstractmethod
    async def signature_status(self, signature: str) -> dict | None:
        ...


def _raise_for_transient(resp: httpx.Response, what: str) -> None:
    if resp.status_code == 429 or resp.status_code >= 500:
        raise TransientNetworkError(f"Jupiter {what} returned HTTP {resp.status_code}")


def _route_from_quote(data: dict) -> Route:
    plan = data.get("routePlan") or data.get("marketInfos") or []
    labels = [
        (step.get("swapInfo") or {}).get("label") or step.get("label") or ""
        for step in plan
    ]
    return Route(
        in_amount=int(data.get("inAmount", 0)),
        out_amount=int(data.get("outAmount", 0)),
        price_impact_pct=float(data.get("priceImpactPct") or 0),
        label=" > ".join(label for label in labels if label),
        raw=data,
    )


class JupiterSwapGateway(SwapGateway):
    def __init__(
        self,
        rpc: SolanaRpcClient,
        client: httpx.AsyncClient | None = None,
        quote_url: str | None = None,
        swap_url: str | None = None,
    ) -> None:
        self._rpc = rpc
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=15)
        self._quote_url = quote_url or settings.jupiter_quote_url
        self._swap_url = swap_url or settings.jupiter_swap_url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def prepare(self) -> None:
        health = await self._rpc.get_health()
        logger.info("Solana RPC %s health: %s", self._rpc.url, health)

    async def fetch_quote(
        self, input_mint: str, output_mint: str, amount: int, slippage_bps: int,
    ) -> Quote:
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": slippage_bps,
        }
        try:
            resp = await self._client.get(self._quote_url, params=params)
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"Jupiter quote: {exc}") from exc
        _raise_for_transient(resp, "quote")

        quote = Quote(
            input_mint=input_mint,
            output_mint=output_mint,
            amount=amount,
            slippage_bps=slippage_bps,
        )

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            code = data.get("errorCode") or data.get("error") or ""
            if code in _NO_ROUTE_CODES:
                return quote
            raise SniperError(f"Jupiter quote error {resp.status_code}: {code or resp.text[:200]}")

        # v6 returns one best route; older responses carry a ranked "data" list
        if "data" in data and isinstance(data["data"], list):
            quote.routes = [_route_from_quote(r) for r in data["data"]]
        elif data.get("routePlan"):
            quote.routes = [_route_from_quote(data)]
        return quote

    async def build_swap(self, route: Route, public_key: str) -> bytes:
        body = {
            "quoteResponse": route.raw,
            "userPublicKey": public_key,
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": True,
        }
        try:
            resp = await self._client.post(self._swap_url, json=body)
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"Jupiter swap: {exc}") from exc
        _raise_for_transient(resp, "swap")
        if resp.status_code >= 400:
            raise SniperError(f"Jupiter swap error {resp.status_code}: {resp.text[:200]}")

        swap_tx = resp.json().get("swapTransaction")
        if not swap_tx:
            raise SniperError("Jupiter swap response missing swapTransaction")
        return base64.b64decode(swap_tx)

    async def submit_transaction(self, signed: bytes) -> str:
        return await self._rpc.send_transaction(signed)

    async def confirm_transaction(self, signature: str, commitment: str) -> None:
        await self._rpc.confirm_transaction(signature, commitment)

    async def signature_status(self, signature: str) -> dict | None:
        return await self._rpc.get_signature_status(signature)


class DryRunSwapGateway(SwapGateway):
    """Offline gateway with a fixed exchange rate.

    Builds a real (memo-only) unsigned transaction so signing is exercised,
    and "submits" by reading the signature back from the signed bytes.
    """

    def __init__(self, rate: float = 1000.0, no_route_mints: set[str] | None = None) -> None:
        self.rate = rate
        self.no_route_mints = no_route_mints or set()
        self.submitted: list[str] = []

    async def fetch_quote(
        self, input_mint: str, output_mint: str, amount: int, slippage_bps: int,
    ) -> Quote:
        quote = Quote(
            input_mint=input_mint,
            output_mint=output_mint,
            amount=amount,
            slippage_bps=slippage_bps,
        )
        if output_mint not in self.no_route_mints:
            quote.routes = [
                Route(
                    in_amount=amount,
                    out_amount=int(amount * self.rate),
                    label="dry-run",
                    raw={"outputMint": output_mint},
                )
            ]
        return quote

    async def build_swap(self, route: Route, public_key: str) -> bytes:
        payer = Pubkey.from_string(public_key)
        memo = Instruction(
            MEMO_PROGRAM_ID,
            f"dry-run swap {route.raw.get('outputMint', '')}".encode(),
            [],
        )
        message = MessageV0.try_compile(payer, [memo], [], Hash.default())
        return bytes(VersionedTransaction.populate(message, [Signature.default()]))

    async def submit_transaction(self, signed: bytes) -> str:
        signature = str(VersionedTransaction.from_bytes(signed).signatures[0])
        self.submitted.append(signature)
        logger.info("DRY RUN: would submit %s", signature[:16])
        return signature

    async def confirm_transaction(self, signature: str, commitment: str) -> None:
        return None

    async def signature_status(self, signature: str) -> dict | None:
        if signature in self.submitted:
            return {"confirmationStatus": "finalized", "err": None}
        return None
