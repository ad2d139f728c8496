"""Where the signing key material comes from."""

import logging
import os
from abc import ABC, abstractmethod

import httpx

from sniper_bot.config import settings
from sniper_bot.errors import ConfigurationMissing, TransientNetworkError

logger = logging.getLogger(__name__)


class SecretStore(ABC):
    @abstractmethod
    async def get_secret(self, name: str) -> str | None:
        """Return the secret value, or None if it doesn't exist."""
        ...


class EnvSecretStore(SecretStore):
    """Reads secrets from the process environment."""

    async def get_secret(self, name: str) -> str | None:
        return os.environ.get(name) or None


class HttpSecretStore(SecretStore):
    """Edge-function secret store: POST {"name": ...} -> {"secret": ...}.

    A 404 means the secret is not configured.
    """

    def __init__(
        self,
        url: str | None = None,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url if url is not None else settings.secret_store_url
        self._token = token if token is not None else settings.secret_store_token
        if not self._url:
            raise ConfigurationMissing("secret_store_url is not set")
        self._client = client

    async def get_secret(self, name: str) -> str | None:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        try:
            if self._client is not None:
                resp = await self._client.post(self._url, json={"name": name}, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=10) as client:
                    resp = await client.post(self._url, json={"name": name}, headers=headers)
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"Secret store unreachable: {exc}") from exc

        if resp.status_code == 404:
            logger.warning("Secret %s not found in secret store", name)
            return None
        if resp.status_code == 429 or resp.status_code >= 500:
            raise TransientNetworkError(f"Secret store returned {resp.status_code}")
        resp.raise_for_status()
        return resp.json().get("secret") or None


def create_secret_store() -> SecretStore:
    """Use the HTTP store when configured, otherwise the environment."""
    if settings.secret_store_url:
        logger.info("Using HTTP secret store")
        return HttpSecretStore()
    logger.info("Using environment secret store")
    return EnvSecretStore()
