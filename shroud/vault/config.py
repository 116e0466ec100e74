"""
Vault Configuration — Pinned KDF cost and validated settings.

All settings are explicit constructor input. Nothing is read from the
environment; the only default that depends on the host is the data
directory, which lives under the user's home.

Security Note:
    The scrypt cost parameters are part of the on-disk format. Changing
    them makes every existing vault unreadable, so they are pinned here
    instead of being calibrated at runtime.
"""
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

# Pinned scrypt cost (~32 MiB, a few hundred ms per derivation).
SCRYPT_N = 2**15
SCRYPT_R = 8
SCRYPT_P = 1

METADATA_FILENAME = "metadata.json"
VAULT_DIRNAME = "vault"


def default_data_dir() -> Path:
    """Return the per-user vault location (``~/.shroud``)."""
    return Path.home() / ".shroud"


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    data_dir: Path = Field(default_factory=default_data_dir)
    scrypt_n: int = Field(default=SCRYPT_N, gt=1)
    scrypt_r: int = Field(default=SCRYPT_R, ge=1)
    scrypt_p: int = Field(default=SCRYPT_P, ge=1)

    @field_validator("scrypt_n")
    @classmethod
    def validate_scrypt_n(cls, v: int) -> int:
        """scrypt requires N to be a power of two."""
        if v & (v - 1):
            raise ValueError(f"scrypt_n must be a power of two, got {v}")
        return v

    @field_validator("data_dir")
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        """Expand ``~`` so relative-to-home paths work as input."""
        return v.expanduser()

    @property
    def metadata_path(self) -> Path:
        return self.data_dir / METADATA_FILENAME

    @property
    def vault_root(self) -> Path:
        return self.data_dir / VAULT_DIRNAME

    @property
    def kdf_params(self) -> dict[str, int]:
        """Keyword arguments for :func:`shroud.vault.crypto.derive_master_key`."""
        return {"n": self.scrypt_n, "r": self.scrypt_r, "p": self.scrypt_p}
