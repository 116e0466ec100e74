"""
Vault records — the two structures Shroud persists.

``MasterKeyMaterial`` lives in the metadata file; ``SecretRecord`` is the
content of one secret file. Both are stored as flat JSON mappings of
camelCase keys to base64 strings.
"""
from typing import Any, ClassVar, Optional

import orjson
from pydantic import BaseModel, ConfigDict

from ..exceptions import CorruptMetadata, OpenFailed
from .crypto import (
    KEY_LENGTH,
    NONCE_SIZE,
    SALT_SIZE,
    TAG_SIZE,
    decode_from_storage,
    encode_for_storage,
)


class MasterKeyMaterial(BaseModel):
    """Master-key fields created once by bootstrap."""

    model_config = ConfigDict(frozen=True)

    master_key_salt: bytes
    master_priv_key_salt: bytes
    sealed_master_priv_key: bytes
    master_pub_key: bytes

    FIELDS: ClassVar[dict[str, str]] = {
        "master_key_salt": "masterKeySalt",
        "master_priv_key_salt": "masterPrivKeySalt",
        "sealed_master_priv_key": "sealedMasterPrivKey",
        "master_pub_key": "masterPubKey",
    }

    # exact byte length per field; None means "at least SALT_SIZE"
    LENGTHS: ClassVar[dict[str, Optional[int]]] = {
        "master_key_salt": None,
        "master_priv_key_salt": NONCE_SIZE,
        "sealed_master_priv_key": KEY_LENGTH + TAG_SIZE,
        "master_pub_key": KEY_LENGTH,
    }

    def to_storage(self) -> dict[str, str]:
        return {
            key: encode_for_storage(getattr(self, attr))
            for attr, key in self.FIELDS.items()
        }

    @classmethod
    def from_storage(cls, data: dict[str, Any]) -> Optional["MasterKeyMaterial"]:
        """Build from a metadata mapping.

        Returns:
            The material, or None if no master-key field is present.

        Raises:
            CorruptMetadata: If only some fields are present, or a value
                does not decode or has the wrong length.
        """
        present = [key for key in cls.FIELDS.values() if data.get(key)]
        if not present:
            return None
        if len(present) != len(cls.FIELDS):
            missing = sorted(set(cls.FIELDS.values()) - set(present))
            raise CorruptMetadata(
                f"Incomplete master key material, missing: {', '.join(missing)}"
            )
        try:
            values = {
                attr: decode_from_storage(data[key])
                for attr, key in cls.FIELDS.items()
            }
        except ValueError as err:
            raise CorruptMetadata(f"Undecodable master key material: {err}") from err
        for attr, expected in cls.LENGTHS.items():
            size = len(values[attr])
            if expected is None:
                valid = size >= SALT_SIZE
            else:
                valid = size == expected
            if not valid:
                raise CorruptMetadata(
                    f"Master key field {cls.FIELDS[attr]} has {size} bytes"
                )
        return cls(**values)


class SecretRecord(BaseModel):
    """One sealed secret: ciphertext, sender public key and nonce."""

    model_config = ConfigDict(frozen=True)

    sealed_secret: bytes
    pubkey: bytes
    salt: bytes

    def to_storage(self) -> dict[str, str]:
        return {
            "sealedSecret": encode_for_storage(self.sealed_secret),
            "pubkey": encode_for_storage(self.pubkey),
            "salt": encode_for_storage(self.salt),
        }

    def dumps(self) -> bytes:
        return orjson.dumps(self.to_storage())

    @classmethod
    def loads(cls, raw: bytes, name: str = "") -> "SecretRecord":
        """Parse a secret file's content.

        Raises:
            OpenFailed: If the content is not a well-formed record.
        """
        try:
            data = orjson.loads(raw)
            return cls(
                sealed_secret=decode_from_storage(data["sealedSecret"]),
                pubkey=decode_from_storage(data["pubkey"]),
                salt=decode_from_storage(data["salt"]),
            )
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as err:
            raise OpenFailed(f"Secret record {name!r} is unreadable: {err}") from err
