"""Encryption of stored credentials.

Bookmark passwords are encrypted with AES-GCM under a 128-bit key kept
in a KeyStore. A blob is the URL-safe base64 encoding of the 12-byte
nonce followed by the ciphertext and the 16-byte tag, so any alteration
is detected on decryption.
"""

import base64
import binascii
import logging
import os
import threading

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from termxfer.filetransfer.errors import VaultError
from termxfer.vault.keystore import KeyStore

logger = logging.getLogger(__name__)

KEY_ID = "bookmarks"
KEY_BYTES = 16
NONCE_BYTES = 12
TAG_BYTES = 16


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii")


def _b64decode(text: str) -> bytes:
    try:
        return base64.b64decode(text.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise VaultError("Malformed secret", str(e)) from e


class CredentialVault:
    """Encrypts and decrypts short secrets.

    The key is loaded from the key store on first use, or generated and
    stored if none exists yet.

    Example:
        >>> vault = CredentialVault(select_key_store())
        >>> vault.decrypt(vault.encrypt("hunter2"))
        'hunter2'
    """

    def __init__(self, key_store: KeyStore, key_id: str = KEY_ID) -> None:
        self._key_store = key_store
        self._key_id = key_id
        self._key: bytes | None = None
        self._lock = threading.Lock()

    def _load_key(self) -> bytes:
        with self._lock:
            if self._key is not None:
                return self._key
            stored = self._key_store.get_key(self._key_id)
            if stored is None:
                key = AESGCM.generate_key(bit_length=KEY_BYTES * 8)
                self._key_store.set_key(self._key_id, _b64encode(key))
                logger.info("Generated new vault key in %s store", self._key_store.name)
            else:
                key = _b64decode(stored)
                if len(key) != KEY_BYTES:
                    detail = f"expected {KEY_BYTES} bytes, got {len(key)}"
                    raise VaultError("Invalid vault key", detail)
            self._key = key
            return key

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a secret.

        Returns:
            Printable blob safe to store in TOML.

        Raises:
            VaultError: If the key cannot be loaded or stored.
        """
        nonce = os.urandom(NONCE_BYTES)
        ciphertext = AESGCM(self._load_key()).encrypt(nonce, plaintext.encode("utf-8"), None)
        return _b64encode(nonce + ciphertext)

    def decrypt(self, blob: str) -> str:
        """Decrypt a blob produced by encrypt().

        Raises:
            VaultError: If the blob is malformed, was altered, or was
                encrypted under another key.
        """
        raw = _b64decode(blob)
        if len(raw) < NONCE_BYTES + TAG_BYTES:
            raise VaultError("Malformed secret", "blob too short")
        nonce, ciphertext = raw[:NONCE_BYTES], raw[NONCE_BYTES:]
        try:
            plaintext = AESGCM(self._load_key()).decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise VaultError("Secret failed authentication") from e
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise VaultError("Malformed secret", str(e)) from e
