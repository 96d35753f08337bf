"""Fernet-based Sealer.

The Fernet key is derived from SEALING_SECRET with PBKDF2 so every process
sharing the secret can open each other's values.
"""

import base64
import hashlib
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from remotedev.app.config import SealingConfig, get_settings
from remotedev.core.domain.sealed import SealedValue
from remotedev.core.interfaces.sealer import Sealer


def derive_key(secret: str, salt: str, iterations: int) -> bytes:
    """Derive a urlsafe-base64 32-byte Fernet key from a secret."""
    key_material = hashlib.pbkdf2_hmac(
        "sha256",
        secret.encode("utf-8"),
        salt.encode("utf-8"),
        iterations=iterations,
        dklen=32,
    )
    return base64.urlsafe_b64encode(key_material)


class FernetSealer(Sealer):
    def __init__(self, config: SealingConfig | None = None) -> None:
        config = config or get_settings().sealing
        self._fernet = Fernet(derive_key(config.secret, config.salt, config.iterations))

    def seal(self, plaintext: str) -> SealedValue:
        if not plaintext:
            raise ValueError("Cannot seal an empty value")
        token = self._fernet.encrypt(plaintext.encode("utf-8"))
        return SealedValue(token.decode("utf-8"))

    def unseal(self, sealed: SealedValue) -> str:
        if sealed.is_empty():
            return ""
        try:
            return self._fernet.decrypt(sealed.token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError("Sealed value cannot be opened with the configured key") from exc


@lru_cache(maxsize=1)
def get_sealer() -> FernetSealer:
    """Process-wide sealer built from settings."""
    return FernetSealer()
