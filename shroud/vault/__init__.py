"""Shroud Vault — Password-protected storage of individually sealed secrets.

Security Note (Threat Model):
    Secrets and the master private key are decrypted in process memory
    for the duration of one ``reveal`` call. A memory dump of the process
    during that call could expose them. This is an accepted limitation;
    mitigation requires HSM/secure enclave integration which is out of
    scope.
"""

from .engine import Shroud
from .config import VaultConfig, default_data_dir
from .naming import UNCATEGORIZED, split_secret_path
from .records import MasterKeyMaterial, SecretRecord
from .store import VaultStore

__all__ = [
    "Shroud",
    "VaultConfig",
    "default_data_dir",
    "UNCATEGORIZED",
    "split_secret_path",
    "MasterKeyMaterial",
    "SecretRecord",
    "VaultStore",
]
