"""
Shroud exception classes.

Every failure a vault operation can report is a distinct subclass of
``ShroudError``, so callers can catch one specific condition or all
vault errors with a single except clause.

Two families must not be confused:

- ``InvalidPassword`` means the master password is wrong.
- ``CorruptMetadata`` / ``OpenFailed`` mean stored data is unreadable
  regardless of the password supplied.
"""
from typing import Optional


class ShroudError(Exception):
    """Base exception for all Shroud errors."""

    pass


class MissingOption(ShroudError):
    """Raised when a required bootstrap input was not supplied."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"opts.{field} is required")


class MissingName(ShroudError):
    """Raised when a secret name is absent or empty after sanitization."""

    def __init__(self, message: str = "A secret name is required"):
        super().__init__(message)


class MissingSecret(ShroudError):
    """Raised when add/update is called without a secret payload."""

    def __init__(self, message: str = "A secret value is required"):
        super().__init__(message)


class DuplicateSecret(ShroudError):
    """Raised when add targets a secret that already exists."""

    def __init__(self, name: str, category: Optional[str] = None):
        self.name = name
        self.category = category
        super().__init__(f"A secret for {name} already exists")


class SecretNotFound(ShroudError):
    """Raised when get/update/remove/reveal targets a missing secret."""

    def __init__(self, name: str, category: Optional[str] = None):
        self.name = name
        self.category = category
        super().__init__(f"No secret found for {name}.")


class CategoryNotFound(ShroudError):
    """Raised when listing a category that does not exist."""

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"No category found for {category}.")


class InvalidPassword(ShroudError):
    """Raised when the master private key cannot be unsealed."""

    def __init__(self, message: str = "Invalid master password"):
        super().__init__(message)


class VaultNotInitialized(ShroudError):
    """Raised when an operation needs master keys that were never generated."""

    def __init__(self, message: str = "Vault has no master keys, bootstrap it first"):
        super().__init__(message)


class CorruptMetadata(ShroudError):
    """
    Raised when the metadata file cannot be used.

    Covers an unparsable file, a non-mapping document, undecodable
    values and partial master-key material.
    """

    pass


class AuthenticationFailed(ShroudError):
    """Raised when symmetric decryption fails authentication."""

    pass


class SealFailed(ShroudError):
    """Raised when a secret cannot be sealed for the recipient key."""

    pass


class OpenFailed(ShroudError):
    """Raised when a stored secret record cannot be parsed or opened."""

    pass
