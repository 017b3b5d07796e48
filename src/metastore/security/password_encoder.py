"""
Two-Way Password Encoders

The metastore never persists a field marked as a password in clear text. It
passes the value through an injected encoder on save and back through the same
encoder on load. The encoder is a capability with a two-method contract.

Two implementations ship: ``FernetTwoWayPasswordEncoder`` encrypts with a key
(cryptography's Fernet, optionally derived from a passphrase with PBKDF2) and
is what stores use once a ``password_key`` is configured; the base64 encoder
only obfuscates values and is the default for stores without a key.
"""

import abc
import base64
import binascii
import logging
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)


class TwoWayPasswordEncoder(abc.ABC):
    """Encode and decode secrets for storage."""

    @abc.abstractmethod
    def encode(self, plain: Optional[str]) -> Optional[str]:
        """Return the stored form of ``plain``."""

    @abc.abstractmethod
    def decode(self, cipher: Optional[str]) -> Optional[str]:
        """Return the plain form of a stored ``cipher``."""


class Base64TwoWayPasswordEncoder(TwoWayPasswordEncoder):
    """
    Base64 encoder with a recognizable prefix.

    Values without the prefix are returned unchanged by ``decode`` so that
    records written before a field became a password stay readable.
    """

    PREFIX = "Encoded "

    def encode(self, plain: Optional[str]) -> Optional[str]:
        if plain is None:
            return None
        encoded = base64.b64encode(plain.encode("utf-8")).decode("ascii")
        return f"{self.PREFIX}{encoded}"

    def decode(self, cipher: Optional[str]) -> Optional[str]:
        if cipher is None:
            return None
        if not cipher.startswith(self.PREFIX):
            logger.debug("Password value without encoding prefix returned as-is")
            return cipher
        payload = cipher[len(self.PREFIX):]
        try:
            return base64.b64decode(payload.encode("ascii"), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeError) as e:
            raise ValueError(f"Malformed encoded password: {e}") from e


class FernetTwoWayPasswordEncoder(TwoWayPasswordEncoder):
    """
    Encrypts passwords with a Fernet key.

    Stored values carry the ``Fernet `` prefix. Values written by the base64
    encoder are still decoded, so existing records stay readable after a key
    is configured; any other unprefixed value is returned as-is.
    """

    PREFIX = "Fernet "
    DEFAULT_SALT = b"metastore-password-salt"
    KDF_ITERATIONS = 100_000

    def __init__(self, key: Union[str, bytes]):
        """
        Initialize the encoder.

        Args:
            key: URL-safe base64 encoded 32-byte key, as made by ``generate_key``

        Raises:
            ValueError: If the key is not a valid Fernet key
        """
        self._fernet = Fernet(key)
        self._legacy = Base64TwoWayPasswordEncoder()

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("ascii")

    @classmethod
    def from_passphrase(
        cls,
        passphrase: str,
        salt: bytes = DEFAULT_SALT,
        iterations: int = KDF_ITERATIONS,
    ) -> "FernetTwoWayPasswordEncoder":
        """Derive the key from ``passphrase`` with PBKDF2-HMAC-SHA256."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=iterations,
        )
        return cls(base64.urlsafe_b64encode(kdf.derive(passphrase.encode("utf-8"))))

    def encode(self, plain: Optional[str]) -> Optional[str]:
        if plain is None:
            return None
        token = self._fernet.encrypt(plain.encode("utf-8")).decode("ascii")
        return f"{self.PREFIX}{token}"

    def decode(self, cipher: Optional[str]) -> Optional[str]:
        if cipher is None:
            return None
        if cipher.startswith(Base64TwoWayPasswordEncoder.PREFIX):
            return self._legacy.decode(cipher)
        if not cipher.startswith(self.PREFIX):
            logger.debug("Password value without encryption prefix returned as-is")
            return cipher
        token = cipher[len(self.PREFIX):]
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            raise ValueError("Encrypted password cannot be decrypted with the configured key") from e


def encoder_from_config(config: dict) -> TwoWayPasswordEncoder:
    """
    Pick the encoder for a store configuration.

    ``password_key`` selects Fernet encryption with that key and
    ``password_passphrase`` derives the key; without either the base64
    encoder is used.
    """
    if config.get("password_key"):
        return FernetTwoWayPasswordEncoder(config["password_key"])
    if config.get("password_passphrase"):
        return FernetTwoWayPasswordEncoder.from_passphrase(config["password_passphrase"])
    return Base64TwoWayPasswordEncoder()
