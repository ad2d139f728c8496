"""Solana JSON-RPC client.

Thin async wrapper over the node's HTTP API. Rate limits, 5xx responses and
transport failures surface as ``TransientNetworkError`` so callers can wrap
calls in ``retry``. Pacing is left to the caller's throttle.
"""

import asyncio
import base64
import logging

import base58
import httpx

from sniper_bot.config import settings
from sniper_bot.errors import RpcError, TransactionFailed, TransientNetworkError

logger = logging.getLogger(__name__)

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_ACCOUNT_SIZE = 165

# Node-side errors that are worth retrying
_TRANSIENT_RPC_CODES = {-32005, -32004, -32014}

_COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


class SolanaRpcClient:
    def __init__(
        self,
        url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.url = url or settings.solana_rpc_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.rpc_timeout_seconds
        )
        self._request_id = 0

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: list):
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        try:
            resp = await self._client.post(self.url, json=payload)
        except httpx.TimeoutException as exc:
            raise TransientNetworkError(f"{method} timed out") from exc
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"{method} transport error: {exc}") from exc

        if resp.status_code == 429 or resp.status_code >= 500:
            raise TransientNetworkError(f"{method} returned HTTP {resp.status_code}")
        resp.raise_for_status()

        data = resp.json()
        error = data.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            if code in _TRANSIENT_RPC_CODES:
                raise TransientNetworkError(f"{method}: {error}")
            raise RpcError(method, error)
        return data.get("result")

    # --- reads ---

    async def get_account_info(self, address: str) -> bytes | None:
        """Raw account data, or None if the account doesn't exist."""
        result = await self._call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": settings.rpc_commitment}],
        )
        value = (result or {}).get("value")
        if not value:
            return None
        data = value.get("data") or ["", "base64"]
        return base64.b64decode(data[0])

    async def get_program_accounts(self, program_id: str, filters: list[dict], **opts) -> list[dict]:
        config = {"encoding": "base64", "filters": filters, **opts}
        result = await self._call("getProgramAccounts", [program_id, config])
        return result or []

    async def get_token_holders(self, mint: str) -> list[tuple[str, int]]:
        """All SPL token accounts for ``mint`` as (owner, raw_amount) pairs.

        Token account layout: mint [0:32], owner [32:64], amount u64 LE [64:72].
        Only owner and amount are requested via dataSlice.
        """
        accounts = await self.get_program_accounts(
            TOKEN_PROGRAM_ID,
            [
                {"dataSize": TOKEN_ACCOUNT_SIZE},
                {"memcmp": {"offset": 0, "bytes": mint}},
            ],
            dataSlice={"offset": 32, "length": 40},
        )
        holders = []
        for acc in accounts:
            raw = base64.b64decode(acc["account"]["data"][0])
            if len(raw) < 40:
                continue
            owner = base58.b58encode(raw[:32]).decode()
            amount = int.from_bytes(raw[32:40], "little")
            holders.append((owner, amount))
        return holders

    async def get_signatures_for_address(self, address: str, limit: int = 1000) -> list[dict]:
        result = await self._call(
            "getSignaturesForAddress",
            [address, {"limit": min(limit, 1000), "commitment": settings.rpc_commitment}],
        )
        return result or []

    async def get_transaction(self, signature: str) -> dict | None:
        return await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": settings.rpc_commitment,
                },
            ],
        )

    async def get_balance(self, address: str) -> int:
        """Lamport balance."""
        result = await self._call("getBalance", [address, {"commitment": settings.rpc_commitment}])
        return int((result or {}).get("value", 0))

    async def get_signature_status(self, signature: str) -> dict | None:
        result = await self._call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": True}],
        )
        values = (result or {}).get("value") or [None]
        return values[0]

    async def get_health(self) -> str:
        return await self._call("getHealth", [])

    # --- writes ---

    async def send_transaction(self, signed: bytes) -> str:
        encoded = base64.b64encode(signed).decode("ascii")
        return await self._call(
            "sendTransaction",
            [
                encoded,
                {
                    "encoding": "base64",
                    "skipPreflight": False,
                    "preflightCommitment": settings.rpc_commitment,
                    "maxRetries": 3,
                },
            ],
        )

    async def confirm_transaction(
        self,
        signature: str,
        commitment: str = "confirmed",
        timeout: float | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        """Poll until ``signature`` reaches ``commitment``.

        Raises TransactionFailed if the network reports an error and
        TransientNetworkError if the deadline passes first.
        """
        timeout = timeout if timeout is not None else settings.confirm_timeout_seconds
        wanted = _COMMITMENT_RANK[commitment]
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            try:
                status = await self.get_signature_status(signature)
            except TransientNetworkError as exc:
                logger.debug("Status poll for %s failed: %s", signature[:12], exc)
                status = None

            if status:
                if status.get("err"):
                    raise TransactionFailed(f"{signature}: {status['err']}")
                reached = status.get("confirmationStatus") or "processed"
                if _COMMITMENT_RANK.get(reached, 0) >= wanted:
                    return

            if loop.time() >= deadline:
                raise TransientNetworkError(
                    f"{signature} not {commitment} after {timeout:.0f}s"
                )
            await asyncio.sleep(poll_interval)
