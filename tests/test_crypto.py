"""
Tests for the vault crypto core.

Tests cover:
- scrypt master-key derivation (determinism, salt and password sensitivity)
- X25519 keypair generation
- Symmetric seal/open and authentication failures
- Asymmetric seal/open, explicit sender key and nonce, failure kinds
- Base64 storage helpers and value serialization
"""
import orjson
import pytest

from shroud.exceptions import AuthenticationFailed, OpenFailed, SealFailed
from shroud.vault.crypto import (
    KEY_LENGTH,
    NONCE_SIZE,
    SALT_SIZE,
    decode_from_storage,
    derive_master_key,
    deserialize_value,
    encode_for_storage,
    generate_keypair,
    generate_nonce,
    generate_salt,
    open_asymmetric,
    open_symmetric,
    seal_asymmetric,
    seal_symmetric,
    serialize_value,
)

FAST = {"n": 2**10, "r": 8, "p": 1}


@pytest.fixture
def keypair():
    return generate_keypair()


@pytest.fixture
def master_key():
    return derive_master_key("password", b"\x00" * SALT_SIZE, **FAST)


class TestKeyDerivation:
    """Tests for derive_master_key."""

    def test_deterministic(self):
        """Same password, salt and cost give the same key."""
        salt = generate_salt()
        assert derive_master_key("pw", salt, **FAST) == derive_master_key("pw", salt, **FAST)

    def test_output_length(self):
        """Key length follows the requested output length."""
        salt = generate_salt()
        assert len(derive_master_key("pw", salt, **FAST)) == KEY_LENGTH
        assert len(derive_master_key("pw", salt, 16, **FAST)) == 16

    def test_salt_changes_key(self):
        """Different salts give different keys."""
        assert derive_master_key("pw", b"a" * 16, **FAST) != derive_master_key("pw", b"b" * 16, **FAST)

    def test_password_changes_key(self):
        """Different passwords give different keys."""
        salt = generate_salt()
        assert derive_master_key("pw1", salt, **FAST) != derive_master_key("pw2", salt, **FAST)

    def test_cost_changes_key(self):
        """Cost parameters are part of the derivation."""
        salt = generate_salt()
        assert derive_master_key("pw", salt, n=2**10) != derive_master_key("pw", salt, n=2**11)

    def test_random_sizes(self):
        """Salt and nonce helpers produce the documented sizes."""
        assert len(generate_salt()) == SALT_SIZE
        assert len(generate_nonce()) == NONCE_SIZE
        assert generate_nonce() != generate_nonce()


class TestKeypair:
    """Tests for generate_keypair."""

    def test_raw_sizes(self, keypair):
        public_key, private_key = keypair
        assert len(public_key) == 32
        assert len(private_key) == 32

    def test_fresh_each_call(self, keypair):
        assert generate_keypair() != keypair


class TestSymmetric:
    """Tests for seal_symmetric/open_symmetric."""

    def test_seal_open(self, master_key):
        """Sealed data opens with the same key and nonce."""
        nonce = generate_nonce()
        ct = seal_symmetric(b"private key", nonce, master_key)
        assert ct != b"private key"
        assert open_symmetric(ct, nonce, master_key) == b"private key"

    def test_wrong_key(self, master_key):
        """A wrong key fails authentication."""
        nonce = generate_nonce()
        ct = seal_symmetric(b"data", nonce, master_key)
        other = derive_master_key("other", b"\x00" * SALT_SIZE, **FAST)
        with pytest.raises(AuthenticationFailed):
            open_symmetric(ct, nonce, other)

    def test_wrong_nonce(self, master_key):
        """A wrong nonce fails authentication."""
        ct = seal_symmetric(b"data", generate_nonce(), master_key)
        with pytest.raises(AuthenticationFailed):
            open_symmetric(ct, generate_nonce(), master_key)

    def test_tampered_ciphertext(self, master_key):
        """A flipped bit fails authentication."""
        nonce = generate_nonce()
        ct = bytearray(seal_symmetric(b"data", nonce, master_key))
        ct[0] ^= 0x01
        with pytest.raises(AuthenticationFailed):
            open_symmetric(bytes(ct), nonce, master_key)

    def test_malformed_nonce(self, master_key):
        """A nonce of the wrong size is a structural error, not a failed tag."""
        ct = seal_symmetric(b"data", generate_nonce(), master_key)
        with pytest.raises(ValueError):
            open_symmetric(ct, b"short", master_key)


class TestAsymmetric:
    """Tests for seal_asymmetric/open_asymmetric."""

    def test_seal_open(self, keypair):
        """Only the recipient private key is needed to open."""
        public_key, private_key = keypair
        ct, sender_pub, nonce = seal_asymmetric(b"sekrit", public_key)
        assert len(nonce) == NONCE_SIZE
        assert len(sender_pub) == 32
        assert open_asymmetric(ct, sender_pub, nonce, private_key) == b"sekrit"

    def test_ephemeral_per_seal(self, keypair):
        """Each seal uses a new sender key and nonce."""
        public_key, _ = keypair
        first = seal_asymmetric(b"sekrit", public_key)
        second = seal_asymmetric(b"sekrit", public_key)
        assert first[1] != second[1]
        assert first[2] != second[2]
        assert first[0] != second[0]

    def test_explicit_sender_and_nonce(self, keypair):
        """A supplied sender key and nonce are used as given."""
        public_key, private_key = keypair
        sender_pub, sender_priv = generate_keypair()
        nonce = generate_nonce()
        ct, used_pub, used_nonce = seal_asymmetric(b"x", public_key, sender_priv, nonce)
        assert used_pub == sender_pub
        assert used_nonce == nonce
        assert open_asymmetric(ct, sender_pub, nonce, private_key) == b"x"

    def test_wrong_recipient(self, keypair):
        """Another private key cannot open the secret."""
        public_key, _ = keypair
        _, other_private = generate_keypair()
        ct, sender_pub, nonce = seal_asymmetric(b"sekrit", public_key)
        with pytest.raises(OpenFailed):
            open_asymmetric(ct, sender_pub, nonce, other_private)

    def test_tampered_record(self, keypair):
        """A tampered ciphertext is an OpenFailed, not an auth failure."""
        public_key, private_key = keypair
        ct, sender_pub, nonce = seal_asymmetric(b"sekrit", public_key)
        with pytest.raises(OpenFailed):
            open_asymmetric(ct[:-1] + bytes([ct[-1] ^ 1]), sender_pub, nonce, private_key)

    def test_malformed_sender_key(self, keypair):
        public_key, private_key = keypair
        ct, _, nonce = seal_asymmetric(b"sekrit", public_key)
        with pytest.raises(OpenFailed):
            open_asymmetric(ct, b"short", nonce, private_key)

    def test_malformed_recipient_key(self):
        """Sealing to a malformed public key raises SealFailed."""
        with pytest.raises(SealFailed):
            seal_asymmetric(b"sekrit", b"not a key")

    def test_malformed_nonce(self, keypair):
        public_key, _ = keypair
        with pytest.raises(SealFailed):
            seal_asymmetric(b"sekrit", public_key, nonce=b"short")


class TestStorageEncoding:
    """Tests for base64 storage helpers."""

    def test_roundtrip(self):
        assert decode_from_storage(encode_for_storage(b"\x00\xffdata")) == b"\x00\xffdata"

    def test_invalid_base64(self):
        with pytest.raises(ValueError):
            decode_from_storage("not base64!!")

    def test_non_string(self):
        with pytest.raises(ValueError):
            decode_from_storage(1234)


class TestValueSerialization:
    """Tests for serialize_value/deserialize_value."""

    @pytest.mark.parametrize("value", ["sekrit", {"user": "me", "pin": 1234}, [1, "two"], 3.5])
    def test_json_values(self, value):
        assert deserialize_value(serialize_value(value)) == value

    def test_bytes_value(self):
        """bytes survive via the base64 wrapper."""
        assert deserialize_value(serialize_value(b"\x00\x01raw")) == b"\x00\x01raw"

    def test_bytes_payload_is_tagged(self):
        assert orjson.loads(serialize_value(b"hi")) == {"t": "bytes", "v": "aGk="}

    @pytest.mark.parametrize("value", [
        {"__shroud_bytes_b64__": "aGk="},
        {"__shroud_bytes_b64__": "not b64!"},
        {"t": "bytes", "v": "aGk="},
    ])
    def test_wrapper_lookalikes_roundtrip(self, value):
        """Dicts shaped like a bytes wrapper come back unchanged."""
        assert deserialize_value(serialize_value(value)) == value

    @pytest.mark.parametrize("raw", [
        b"not json",
        b'"untagged"',
        b'{"t": "pickle", "v": "x"}',
        b'{"t": "bytes", "v": "not b64!"}',
        b'{"t": "bytes", "v": 42}',
        b'{"v": 1}',
    ])
    def test_malformed_payload(self, raw):
        with pytest.raises(OpenFailed):
            deserialize_value(raw)
