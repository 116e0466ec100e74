"""
Vault Crypto Core — Key derivation, sealing/opening, and serialization.

Implements the two sealing layers of a Shroud vault:
- Master layer: scrypt(password, masterKeySalt) → ChaCha20-Poly1305 → sealedMasterPrivKey
- Secret layer: X25519(ephemeral_priv, master_pub) → HKDF → ChaCha20-Poly1305 → sealedSecret

Security Note:
    Never log passwords, keys, plaintext or ciphertext values.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import base64
import binascii
from typing import Any, Optional

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from ..exceptions import AuthenticationFailed, OpenFailed, SealFailed
from .config import SCRYPT_N, SCRYPT_P, SCRYPT_R

NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # ChaCha20-Poly1305 key
SALT_SIZE = 16  # masterKeySalt
TAG_SIZE = 16  # Poly1305 tag
BOX_CONTEXT = "shroud-box-v1"

_TYPE_KEY = "t"
_VALUE_KEY = "v"


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_master_key(
    password: str,
    salt: bytes,
    length: int = KEY_LENGTH,
    *,
    n: int = SCRYPT_N,
    r: int = SCRYPT_R,
    p: int = SCRYPT_P,
) -> bytes:
    """Derive the symmetric master key from the master password.

    Uses scrypt with explicit cost parameters so the same password and
    salt give the same key on every host.

    Args:
        password: Master password.
        salt: Random ``masterKeySalt`` stored in the metadata file.
        length: Output key length in bytes.
        n, r, p: scrypt cost parameters.

    Returns:
        Derived key bytes.
    """
    kdf = Scrypt(salt=salt, length=length, n=n, r=r, p=p)
    return kdf.derive(password.encode("utf-8"))


def derive_key(seed: bytes, context: str) -> bytes:
    """Derive a 32-byte encryption key using HKDF-SHA256.

    Args:
        seed: Input key material (an X25519 shared secret).
        context: Context string for domain separation.

    Returns:
        32-byte derived key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,
        info=context.encode("utf-8"),
    )
    return hkdf.derive(seed)


def random_bytes(size: int) -> bytes:
    """Return ``size`` bytes from the OS CSPRNG."""
    return os.urandom(size)


def generate_salt() -> bytes:
    return random_bytes(SALT_SIZE)


def generate_nonce() -> bytes:
    return random_bytes(NONCE_SIZE)


# ---------------------------------------------------------------------------
# Keypairs
# ---------------------------------------------------------------------------

def generate_keypair() -> tuple[bytes, bytes]:
    """Generate a fresh X25519 keypair.

    Returns:
        Tuple of (public_key, private_key), both raw 32 bytes.
    """
    private = X25519PrivateKey.generate()
    return _public_bytes(private.public_key()), _private_bytes(private)


def _public_bytes(key: X25519PublicKey) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def _private_bytes(key: X25519PrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _box_key(private_key: bytes, public_key: bytes) -> bytes:
    """Session key shared by the two halves of a box."""
    private = X25519PrivateKey.from_private_bytes(private_key)
    public = X25519PublicKey.from_public_bytes(public_key)
    return derive_key(private.exchange(public), BOX_CONTEXT)


# ---------------------------------------------------------------------------
# Symmetric sealing (master private key)
# ---------------------------------------------------------------------------

def seal_symmetric(plaintext: bytes, nonce: bytes, key: bytes) -> bytes:
    """Encrypt ``plaintext`` under ``key`` with an explicit nonce.

    Format: [encrypted_payload + Poly1305 tag 16B]
    """
    return ChaCha20Poly1305(key).encrypt(nonce, plaintext, None)


def open_symmetric(ciphertext: bytes, nonce: bytes, key: bytes) -> bytes:
    """Decrypt a payload produced by :func:`seal_symmetric`.

    Raises:
        AuthenticationFailed: If the key or nonce is wrong, or the
            ciphertext was tampered with.
        ValueError: If the key or nonce has the wrong length.
    """
    try:
        return ChaCha20Poly1305(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as err:
        raise AuthenticationFailed("Symmetric authentication failed") from err


# ---------------------------------------------------------------------------
# Asymmetric sealing (individual secrets)
# ---------------------------------------------------------------------------

def seal_asymmetric(
    plaintext: bytes,
    recipient_public_key: bytes,
    sender_private_key: Optional[bytes] = None,
    nonce: Optional[bytes] = None,
) -> tuple[bytes, bytes, bytes]:
    """Seal ``plaintext`` so only the recipient's private key can open it.

    A fresh ephemeral sender keypair and nonce are generated unless
    given explicitly.

    Args:
        plaintext: Data to seal.
        recipient_public_key: Raw X25519 public key (the master public key).
        sender_private_key: Optional raw X25519 sender private key.
        nonce: Optional 12-byte nonce.

    Returns:
        Tuple of (ciphertext, sender_public_key, nonce).

    Raises:
        SealFailed: If a key or the nonce is malformed.
    """
    try:
        if sender_private_key is None:
            sender = X25519PrivateKey.generate()
        else:
            sender = X25519PrivateKey.from_private_bytes(sender_private_key)
        if nonce is None:
            nonce = generate_nonce()
        key = _box_key(_private_bytes(sender), recipient_public_key)
        ciphertext = ChaCha20Poly1305(key).encrypt(nonce, plaintext, None)
    except ValueError as err:
        raise SealFailed(f"Unable to seal secret: {err}") from err
    return ciphertext, _public_bytes(sender.public_key()), nonce


def open_asymmetric(
    ciphertext: bytes,
    sender_public_key: bytes,
    nonce: bytes,
    recipient_private_key: bytes,
) -> bytes:
    """Open a payload produced by :func:`seal_asymmetric`.

    Raises:
        OpenFailed: If the record is malformed or fails authentication.
    """
    try:
        key = _box_key(recipient_private_key, sender_public_key)
        return ChaCha20Poly1305(key).decrypt(nonce, ciphertext, None)
    except (InvalidTag, ValueError) as err:
        raise OpenFailed("Unable to open sealed secret") from err


# ---------------------------------------------------------------------------
# Storage encoding
# ---------------------------------------------------------------------------

def encode_for_storage(data: bytes) -> str:
    """Encode binary data as base64 text for JSON files."""
    return base64.b64encode(data).decode("ascii")


def decode_from_storage(data: str) -> bytes:
    """Decode base64 text written by :func:`encode_for_storage`.

    Raises:
        ValueError: If ``data`` is not valid base64 text.
    """
    if not isinstance(data, str):
        raise ValueError(f"expected base64 text, got {type(data).__name__}")
    try:
        return base64.b64decode(data.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as err:
        raise ValueError(f"invalid base64 value: {err}") from err


# ---------------------------------------------------------------------------
# Value serialization
# ---------------------------------------------------------------------------

def serialize_value(value: Any) -> bytes:
    """Serialize a secret payload to bytes for sealing.

    Supports: str, int, float, dict, list, bytes, bool.
    Every payload is wrapped as {"t": "json"|"bytes", "v": <value>} so no
    user value can be mistaken for the wrapper; bytes travel as base64.

    Args:
        value: Python value to serialize.

    Returns:
        orjson-encoded bytes.
    """
    if isinstance(value, bytes):
        wrapped = {_TYPE_KEY: "bytes", _VALUE_KEY: encode_for_storage(value)}
    else:
        wrapped = {_TYPE_KEY: "json", _VALUE_KEY: value}
    return orjson.dumps(wrapped)


def deserialize_value(data: bytes) -> Any:
    """Deserialize bytes back to a Python value.

    Args:
        data: orjson-encoded bytes from serialize_value.

    Returns:
        Original Python value.

    Raises:
        OpenFailed: If ``data`` is not a payload written by serialize_value.
    """
    try:
        parsed = orjson.loads(data)
    except orjson.JSONDecodeError as err:
        raise OpenFailed(f"Sealed payload is not JSON: {err}") from err
    if not isinstance(parsed, dict) or set(parsed) != {_TYPE_KEY, _VALUE_KEY}:
        raise OpenFailed("Sealed payload has no type tag")
    kind, value = parsed[_TYPE_KEY], parsed[_VALUE_KEY]
    if kind == "json":
        return value
    if kind == "bytes":
        try:
            return decode_from_storage(value)
        except ValueError as err:
            raise OpenFailed(f"Sealed bytes payload is not base64: {err}") from err
    raise OpenFailed(f"Unknown sealed payload type {kind!r}")
