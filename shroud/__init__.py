"""Shroud.

Local, file-backed secret vault. A master password protects a master
keypair, and the master keypair seals each named secret on its own.
"""
from .version import __version__
from .exceptions import (
    ShroudError,
    MissingOption,
    MissingName,
    MissingSecret,
    DuplicateSecret,
    SecretNotFound,
    CategoryNotFound,
    InvalidPassword,
    VaultNotInitialized,
    CorruptMetadata,
    AuthenticationFailed,
    SealFailed,
    OpenFailed,
)
from .metadata import MetadataStore
from .vault import Shroud, VaultConfig, UNCATEGORIZED, split_secret_path

__all__ = [
    "__version__",
    "Shroud",
    "VaultConfig",
    "MetadataStore",
    "UNCATEGORIZED",
    "split_secret_path",
    "ShroudError",
    "MissingOption",
    "MissingName",
    "MissingSecret",
    "DuplicateSecret",
    "SecretNotFound",
    "CategoryNotFound",
    "InvalidPassword",
    "VaultNotInitialized",
    "CorruptMetadata",
    "AuthenticationFailed",
    "SealFailed",
    "OpenFailed",
]
