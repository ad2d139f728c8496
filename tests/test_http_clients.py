import base64
import json

import base58
import httpx
import pytest

from sniper_bot.chain.listings import ListingSource
from sniper_bot.chain.solana_rpc import TOKEN_ACCOUNT_SIZE, TOKEN_PROGRAM_ID, SolanaRpcClient
from sniper_bot.errors import (
    ConfigurationMissing,
    RpcError,
    SniperError,
    TransactionFailed,
    TransientNetworkError,
)
from sniper_bot.trading.gateway import JupiterSwapGateway
from sniper_bot.trading.models import Route
from sniper_bot.utils.throttle import RequestThrottle
from sniper_bot.wallet.secret_store import HttpSecretStore
from tests.fakes import new_address

RPC_URL = "https://rpc.test"


def rpc_client(handler) -> SolanaRpcClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SolanaRpcClient(RPC_URL, client=client)


def rpc_result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


# --- Solana RPC ---

async def test_token_holders_decodes_owner_and_amount():
    mint = new_address()
    owner = new_address()
    raw = base58.b58decode(owner) + (1_500).to_bytes(8, "little")
    seen = {}

    def handler(request):
        body = json.loads(request.content)
        seen.update(body)
        account = {"pubkey": new_address(), "account": {"data": [base64.b64encode(raw).decode(), "base64"]}}
        return rpc_result(request, [account])

    holders = await rpc_client(handler).get_token_holders(mint)

    assert holders == [(owner, 1_500)]
    assert seen["method"] == "getProgramAccounts"
    program, config = seen["params"]
    assert program == TOKEN_PROGRAM_ID
    assert {"dataSize": TOKEN_ACCOUNT_SIZE} in config["filters"]
    assert {"memcmp": {"offset": 0, "bytes": mint}} in config["filters"]


async def test_account_info_missing_is_none():
    client = rpc_client(lambda request: rpc_result(request, {"context": {}, "value": None}))
    assert await client.get_account_info(new_address()) is None


async def test_account_info_decodes_base64():
    data = b"\x01\x02mintTo"

    def handler(request):
        return rpc_result(request, {"value": {"data": [base64.b64encode(data).decode(), "base64"]}})

    assert await rpc_client(handler).get_account_info(new_address()) == data


@pytest.mark.parametrize("status", [429, 502, 503])
async def test_rate_limit_and_server_errors_are_transient(status):
    client = rpc_client(lambda request: httpx.Response(status))
    with pytest.raises(TransientNetworkError):
        await client.get_balance(new_address())


async def test_transport_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransientNetworkError):
        await rpc_client(handler).get_health()


async def test_jsonrpc_error_is_not_transient():
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(200, json={
            "jsonrpc": "2.0", "id": body["id"],
            "error": {"code": -32602, "message": "Invalid param"},
        })

    with pytest.raises(RpcError):
        await rpc_client(handler).get_balance(new_address())


async def test_send_transaction_base64_encodes():
    seen = {}

    def handler(request):
        body = json.loads(request.content)
        seen.update(body)
        return rpc_result(request, "5sig")

    assert await rpc_client(handler).send_transaction(b"\x00\x01") == "5sig"
    assert seen["method"] == "sendTransaction"
    assert seen["params"][0] == base64.b64encode(b"\x00\x01").decode()
    assert seen["params"][1]["encoding"] == "base64"


async def test_confirm_transaction_waits_for_commitment():
    statuses = iter([None, {"confirmationStatus": "processed", "err": None},
                     {"confirmationStatus": "confirmed", "err": None}])
    polls = []

    def handler(request):
        polls.append(1)
        return rpc_result(request, {"value": [next(statuses)]})

    await rpc_client(handler).confirm_transaction("5sig", "confirmed", timeout=5, poll_interval=0)
    assert len(polls) == 3


async def test_confirm_transaction_onchain_error():
    def handler(request):
        return rpc_result(request, {"value": [{"confirmationStatus": "confirmed", "err": {"InstructionError": [0, "Custom"]}}]})

    with pytest.raises(TransactionFailed):
        await rpc_client(handler).confirm_transaction("5sig", "confirmed", timeout=5, poll_interval=0)


async def test_confirm_transaction_timeout_is_transient():
    client = rpc_client(lambda request: rpc_result(request, {"value": [None]}))
    with pytest.raises(TransientNetworkError):
        await client.confirm_transaction("5sig", "confirmed", timeout=0, poll_interval=0)


# --- Jupiter ---

QUOTE_V6 = {
    "inputMint": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "inAmount": "100000",
    "outAmount": "123456789",
    "priceImpactPct": "0.0123",
    "routePlan": [{"swapInfo": {"label": "Raydium"}}, {"swapInfo": {"label": "Orca"}}],
}


def jupiter(handler) -> JupiterSwapGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    rpc = SolanaRpcClient(RPC_URL, client=client)
    return JupiterSwapGateway(rpc, client, "https://quote.test/quote", "https://quote.test/swap")


async def test_quote_parses_v6_route():
    seen = {}

    def handler(request):
        seen.update(dict(request.url.params))
        return httpx.Response(200, json=QUOTE_V6)

    quote = await jupiter(handler).fetch_quote("in", "out", 100_000, 100)

    assert seen == {"inputMint": "in", "outputMint": "out", "amount": "100000", "slippageBps": "100"}
    assert len(quote.routes) == 1
    route = quote.routes[0]
    assert route.in_amount == 100_000
    assert route.out_amount == 123_456_789
    assert route.label == "Raydium > Orca"
    assert route.raw == QUOTE_V6


async def test_quote_no_route_is_empty():
    def handler(request):
        return httpx.Response(400, json={"error": "No routes found", "errorCode": "COULD_NOT_FIND_ANY_ROUTE"})

    quote = await jupiter(handler).fetch_quote("in", "out", 100_000, 100)
    assert quote.routes == []


async def test_quote_rate_limited_is_transient():
    with pytest.raises(TransientNetworkError):
        await jupiter(lambda request: httpx.Response(429)).fetch_quote("in", "out", 1, 100)


async def test_quote_bad_request_is_an_error():
    def handler(request):
        return httpx.Response(400, text="amount must be positive")

    with pytest.raises(SniperError):
        await jupiter(handler).fetch_quote("in", "out", 1, 100)


async def test_build_swap_decodes_transaction():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"swapTransaction": base64.b64encode(b"unsigned").decode()})

    route = Route(in_amount=1, out_amount=2, raw=QUOTE_V6)
    unsigned = await jupiter(handler).build_swap(route, "PUBKEY")

    assert unsigned == b"unsigned"
    assert seen["quoteResponse"] == QUOTE_V6
    assert seen["userPublicKey"] == "PUBKEY"


async def test_build_swap_missing_transaction():
    with pytest.raises(SniperError):
        await jupiter(lambda request: httpx.Response(200, json={})).build_swap(
            Route(in_amount=1, out_amount=1), "PUBKEY",
        )


# --- secret store ---

def secret_store(handler) -> HttpSecretStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpSecretStore("https://secrets.test/get-secret", "token", client)


async def test_secret_store_returns_secret():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"secret": "abc"})

    assert await secret_store(handler).get_secret("SOLANA_PRIVATE_KEY") == "abc"
    assert seen == {"body": {"name": "SOLANA_PRIVATE_KEY"}, "auth": "Bearer token"}


async def test_secret_store_missing_secret():
    assert await secret_store(lambda request: httpx.Response(404)).get_secret("X") is None


async def test_secret_store_server_error_is_transient():
    with pytest.raises(TransientNetworkError):
        await secret_store(lambda request: httpx.Response(503)).get_secret("X")


def test_secret_store_requires_url():
    with pytest.raises(ConfigurationMissing):
        HttpSecretStore("", "token")


# --- listings ---

def listing_source(handler) -> ListingSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ListingSource(client, "solana", RequestThrottle(0))


async def test_listings_filter_chain_and_enrich():
    sol = new_address()

    def handler(request):
        if request.url.path.startswith("/token-profiles"):
            return httpx.Response(200, json=[
                {"chainId": "solana", "tokenAddress": sol},
                {"chainId": "base", "tokenAddress": "0xabc"},
                {"chainId": "solana", "tokenAddress": sol},
            ])
        return httpx.Response(200, json={"pairs": [
            {"chainId": "solana", "liquidity": {"usd": 10},
             "baseToken": {"address": sol, "name": "Small", "symbol": "sm"}},
            {"chainId": "solana", "liquidity": {"usd": 5000},
             "baseToken": {"address": sol, "name": "Deep Pool", "symbol": "deep"}},
        ]})

    tokens = await listing_source(handler).fetch_new_listings()

    assert [t.address for t in tokens] == [sol]
    assert tokens[0].name == "Deep Pool"
    assert tokens[0].symbol == "DEEP"


async def test_listings_enrich_failure_keeps_token():
    sol = new_address()

    def handler(request):
        if request.url.path.startswith("/token-profiles"):
            return httpx.Response(200, json=[{"chainId": "solana", "tokenAddress": sol, "description": "desc"}])
        return httpx.Response(500)

    tokens = await listing_source(handler).fetch_new_listings()
    assert tokens[0].address == sol
    assert tokens[0].name == "desc"
    assert tokens[0].symbol == ""


async def test_listings_rate_limited_is_transient():
    with pytest.raises(TransientNetworkError):
        await listing_source(lambda request: httpx.Response(429)).fetch_new_listings()


async def test_listings_null_description():
    sol, other = new_address(), new_address()

    def handler(request):
        if request.url.path.startswith("/token-profiles"):
            return httpx.Response(200, json=[
                {"chainId": "solana", "tokenAddress": sol, "description": None},
                {"chainId": "solana", "tokenAddress": other, "description": "second"},
            ])
        return httpx.Response(200, json={"pairs": None})

    tokens = await listing_source(handler).fetch_new_listings()

    assert [t.address for t in tokens] == [sol, other]
    assert tokens[0].name == ""
    assert tokens[1].name == "second"
