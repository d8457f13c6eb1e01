"""Credential vault and its key storage backends."""

from termxfer.vault.keystore import FileKeyStore, KeyringKeyStore, KeyStore, select_key_store
from termxfer.vault.vault import CredentialVault

__all__ = [
    "CredentialVault",
    "FileKeyStore",
    "KeyStore",
    "KeyringKeyStore",
    "select_key_store",
]
