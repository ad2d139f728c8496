"""Exception taxonomy shared by every component."""


class SniperError(Exception):
    """Base class for all sniper bot errors."""


class TransientNetworkError(SniperError):
    """Rate limit, timeout or transport failure. Safe to retry."""


class InvalidKeyFormat(SniperError):
    """Signing key could not be decoded or is not a valid keypair."""


class NotInitialized(SniperError):
    """A component was used before its session or key was ready."""


class NoRouteFound(SniperError):
    """The aggregator returned no viable swap route."""


class TransactionFailed(SniperError):
    """The network accepted the transaction but reported it as failed."""


class PersistenceError(SniperError):
    """The datastore rejected a write. Logged, never propagated."""


class ConfigurationMissing(SniperError):
    """Required configuration or secret material is absent."""


class RpcError(SniperError):
    """Non-retryable JSON-RPC error returned by the node."""

    def __init__(self, method: str, error: dict | str) -> None:
        self.method = method
        self.error = error
        super().__init__(f"{method}: {error}")
