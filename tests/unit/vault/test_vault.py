"""Unit tests for credential encryption."""

import base64
from pathlib import Path

import pytest
from termxfer.filetransfer.errors import VaultError
from termxfer.vault.keystore import FileKeyStore
from termxfer.vault.vault import KEY_BYTES, NONCE_BYTES, CredentialVault


@pytest.fixture
def key_store(tmp_path: Path) -> FileKeyStore:
    """File-backed key store in a temp directory."""
    return FileKeyStore(tmp_path / ".vault.key")


@pytest.fixture
def vault(key_store: FileKeyStore) -> CredentialVault:
    """Vault using the temp key store."""
    return CredentialVault(key_store)


class TestEncryptDecrypt:
    """Tests for encrypt and decrypt."""

    @pytest.mark.parametrize("secret", ["hunter2", "", "pässwörd ✓ 密码", "x" * 1000])
    def test_round_trip(self, vault: CredentialVault, secret: str) -> None:
        """Any string survives encryption."""
        assert vault.decrypt(vault.encrypt(secret)) == secret

    def test_nonce_varies(self, vault: CredentialVault) -> None:
        """Encrypting twice yields different blobs."""
        assert vault.encrypt("same") != vault.encrypt("same")

    def test_blob_is_printable(self, vault: CredentialVault) -> None:
        """Blobs are URL-safe base64."""
        blob = vault.encrypt("secret")
        assert blob.isascii()
        assert "+" not in blob
        assert "/" not in blob

    def test_key_generated_once(self, key_store: FileKeyStore) -> None:
        """A key is created on first use and reused by later vaults."""
        blob = CredentialVault(key_store).encrypt("secret")
        stored = key_store.get_key("bookmarks")
        assert stored is not None
        assert len(base64.urlsafe_b64decode(stored)) == KEY_BYTES
        assert CredentialVault(key_store).decrypt(blob) == "secret"


class TestCorruption:
    """Tests for tampered or foreign blobs."""

    def test_tampered_blob(self, vault: CredentialVault) -> None:
        """Flipping a ciphertext byte fails authentication."""
        raw = bytearray(base64.urlsafe_b64decode(vault.encrypt("secret")))
        raw[NONCE_BYTES] ^= 0x01
        with pytest.raises(VaultError, match="authentication"):
            vault.decrypt(base64.urlsafe_b64encode(bytes(raw)).decode())

    def test_other_key(self, vault: CredentialVault, tmp_path: Path) -> None:
        """A blob from another key fails authentication."""
        other = CredentialVault(FileKeyStore(tmp_path / "other.key"))
        with pytest.raises(VaultError):
            vault.decrypt(other.encrypt("secret"))

    @pytest.mark.parametrize("blob", ["not base64!", "c2hvcnQ=", "ü"])
    def test_malformed(self, vault: CredentialVault, blob: str) -> None:
        """Garbage and short blobs are malformed."""
        with pytest.raises(VaultError, match="Malformed secret"):
            vault.decrypt(blob)

    def test_invalid_stored_key(self, key_store: FileKeyStore) -> None:
        """A stored key of the wrong length is rejected."""
        key_store.set_key("bookmarks", base64.urlsafe_b64encode(b"short").decode())
        with pytest.raises(VaultError, match="Invalid vault key"):
            CredentialVault(key_store).encrypt("x")
