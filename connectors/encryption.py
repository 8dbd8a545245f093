"""
Secret encryption — encrypt / decrypt connection secrets at rest.

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library.
The key comes from ``config.token_encryption_key``
(env var: ``TOKEN_ENCRYPTION_KEY``) via ``build_text_encryptor``.

If no key is configured, encryption is **disabled** and secrets are stored
as plaintext (with a startup warning). Generate a key with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"

Both directions pass ``None`` through untouched. A ciphertext that does not
verify under the configured key raises ``cryptography.fernet.InvalidToken``;
the repository assumes a stable, correct key and does not recover from that.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Union

from cryptography.fernet import Fernet

logger = logging.getLogger(__name__)


class TextEncryptor(Protocol):
    def encrypt(self, text: Optional[str]) -> Optional[str]: ...

    def decrypt(self, encrypted_text: Optional[str]) -> Optional[str]: ...


class FernetTextEncryptor:
    """Reversible text encryption with a Fernet key."""

    def __init__(self, key: Union[str, bytes]):
        self._fernet = Fernet(key.encode() if isinstance(key, str) else key)

    def encrypt(self, text: Optional[str]) -> Optional[str]:
        if text is None:
            return None
        return self._fernet.encrypt(text.encode()).decode()

    def decrypt(self, encrypted_text: Optional[str]) -> Optional[str]:
        if encrypted_text is None:
            return None
        return self._fernet.decrypt(encrypted_text.encode()).decode()


class NoOpTextEncryptor:
    """Stores text unchanged. Development only."""

    def encrypt(self, text: Optional[str]) -> Optional[str]:
        return text

    def decrypt(self, encrypted_text: Optional[str]) -> Optional[str]:
        return encrypted_text


def build_text_encryptor(key: Optional[str]) -> TextEncryptor:
    if not key:
        logger.warning(
            "TOKEN_ENCRYPTION_KEY not set — connection secrets will be stored as plaintext. "
            "Generate a key: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
        )
        return NoOpTextEncryptor()

    try:
        encryptor = FernetTextEncryptor(key)
    except ValueError as exc:
        logger.error("Failed to initialise Fernet with provided key: %s", exc)
        raise
    logger.info("Secret encryption enabled (Fernet/AES-128-CBC)")
    return encryptor
