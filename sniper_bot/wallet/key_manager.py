"""Holds the single signing keypair for the process.

The key arrives as text (base58, as exported by Phantom/Solflare, or the JSON
byte array written by ``solana-keygen``). It is validated once, kept in an
immutable session object and never logged or handed out.
"""

import json
import logging
import threading

import base58
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from sniper_bot.errors import ConfigurationMissing, InvalidKeyFormat, NotInitialized
from sniper_bot.wallet.secret_store import SecretStore

logger = logging.getLogger(__name__)

KEYPAIR_LENGTH = 64  # 32-byte seed + 32-byte public key


class SigningSession:
    __slots__ = ("public_key", "_keypair")

    def __init__(self, keypair: Keypair) -> None:
        self.public_key = str(keypair.pubkey())
        self._keypair = keypair

    def __repr__(self) -> str:
        return f"SigningSession(public_key={self.public_key!r})"


def _decode(encoded: str) -> bytes:
    text = encoded.strip()
    if not text:
        raise InvalidKeyFormat("Empty key")

    if text.startswith("["):
        try:
            values = json.loads(text)
            return bytes(values)
        except (ValueError, TypeError) as exc:
            raise InvalidKeyFormat(f"Malformed JSON key array: {exc}") from None

    try:
        return base58.b58decode(text)
    except ValueError:
        raise InvalidKeyFormat("Key is not valid base58") from None


class SigningKeyManager:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._session: SigningSession | None = None

    @property
    def has_key(self) -> bool:
        return self._session is not None

    def set_key(self, encoded: str) -> str:
        """Validate ``encoded`` and make it the current key. Returns the public key.

        On any failure the previously set key stays current.
        """
        raw = _decode(encoded)
        if len(raw) != KEYPAIR_LENGTH:
            raise InvalidKeyFormat(
                f"Decoded key is {len(raw)} bytes, expected {KEYPAIR_LENGTH}"
            )
        try:
            keypair = Keypair.from_bytes(raw)
        except Exception as exc:
            raise InvalidKeyFormat(f"Key rejected: {type(exc).__name__}") from None

        session = SigningSession(keypair)
        with self._lock:
            self._session = session
        logger.info("Signing key set for %s", session.public_key)
        return session.public_key

    def get_public_key(self) -> str:
        return self._current().public_key

    def sign_transaction(self, unsigned: bytes) -> tuple[bytes, str]:
        """Sign a serialized versioned transaction.

        Returns the signed wire bytes and the base58 signature (which is the
        transaction id once submitted).
        """
        session = self._current()
        tx = VersionedTransaction.from_bytes(unsigned)
        signed = VersionedTransaction(tx.message, [session._keypair])
        return bytes(signed), str(signed.signatures[0])

    def clear(self) -> None:
        with self._lock:
            self._session = None

    async def load_from_secret_store(self, store: SecretStore, name: str) -> str:
        encoded = await store.get_secret(name)
        if not encoded:
            raise ConfigurationMissing(f"Secret {name!r} not found")
        return self.set_key(encoded)

    def _current(self) -> SigningSession:
        with self._lock:
            session = self._session
        if session is None:
            raise NotInitialized("Signing key not set")
        return session
