"""Unit tests for vault key storage backends."""

import os
import stat
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordSetError
from termxfer.filetransfer.errors import VaultError
from termxfer.vault.keystore import (
    SERVICE_NAME,
    FileKeyStore,
    KeyringKeyStore,
    select_key_store,
)


class TestFileKeyStore:
    """Tests for FileKeyStore."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """No file means no key."""
        assert FileKeyStore(tmp_path / "key").get_key("bookmarks") is None

    def test_set_and_get(self, tmp_path: Path) -> None:
        """A stored key reads back and parent directories are created."""
        store = FileKeyStore(tmp_path / "nested" / "key")
        store.set_key("bookmarks", "c2VjcmV0")
        assert store.get_key("bookmarks") == "c2VjcmV0"
        assert store.name == "file"
        assert store.is_available()

    @pytest.mark.skipif(os.name != "posix", reason="requires POSIX permissions")
    def test_owner_only(self, tmp_path: Path) -> None:
        """The key file is readable by the owner only."""
        store = FileKeyStore(tmp_path / "key")
        store.set_key("bookmarks", "abc")
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    def test_unwritable(self, tmp_path: Path) -> None:
        """Write failures raise VaultError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(VaultError):
            FileKeyStore(blocker / "key").set_key("bookmarks", "abc")


class TestKeyringKeyStore:
    """Tests for KeyringKeyStore with a mocked keyring."""

    def test_get_and_set(self) -> None:
        """Calls go to the keyring under the service name."""
        with patch("termxfer.vault.keystore.keyring") as mock_keyring:
            mock_keyring.get_password.return_value = "c2VjcmV0"
            store = KeyringKeyStore()
            store.set_key("bookmarks", "c2VjcmV0")
            assert store.get_key("bookmarks") == "c2VjcmV0"

        mock_keyring.set_password.assert_called_once_with(SERVICE_NAME, "bookmarks", "c2VjcmV0")
        mock_keyring.get_password.assert_called_once_with(SERVICE_NAME, "bookmarks")

    def test_errors_become_vault_errors(self) -> None:
        """Keyring failures raise VaultError."""
        with patch("termxfer.vault.keystore.keyring") as mock_keyring:
            mock_keyring.set_password.side_effect = PasswordSetError("locked")
            with pytest.raises(VaultError, match="Cannot write key"):
                KeyringKeyStore().set_key("bookmarks", "x")

    def test_fail_backend_unavailable(self) -> None:
        """The fail backend means no usable keyring."""
        with patch("termxfer.vault.keystore.keyring.get_keyring", return_value=fail.Keyring()):
            assert not KeyringKeyStore().is_available()

    def test_low_priority_unavailable(self) -> None:
        """Backends with priority below one are not used."""
        backend = MagicMock(priority=0.5)
        with patch("termxfer.vault.keystore.keyring.get_keyring", return_value=backend):
            assert not KeyringKeyStore().is_available()

    def test_probe_error(self) -> None:
        """A failing probe means unavailable."""
        with patch(
            "termxfer.vault.keystore.keyring.get_keyring", side_effect=KeyringError("no dbus")
        ):
            assert not KeyringKeyStore().is_available()


class TestSelectKeyStore:
    """Tests for select_key_store."""

    def test_prefers_keyring(self) -> None:
        """A usable keyring is chosen."""
        with patch.object(KeyringKeyStore, "is_available", return_value=True):
            assert isinstance(select_key_store(), KeyringKeyStore)

    def test_falls_back_to_file(self, tmp_path: Path) -> None:
        """Without a keyring the key file is used."""
        with patch.object(KeyringKeyStore, "is_available", return_value=False):
            store = select_key_store(tmp_path / "key")
        assert isinstance(store, FileKeyStore)
        assert store.path == tmp_path / "key"

    def test_keyring_disabled(self, tmp_path: Path) -> None:
        """The keyring can be skipped explicitly."""
        store = select_key_store(tmp_path / "key", use_keyring=False)
        assert isinstance(store, FileKeyStore)
