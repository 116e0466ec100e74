"""
Shroud — the vault engine.

Provides the public API of a Shroud vault:
- ``bootstrap(password)`` — generate and seal the master keypair (once)
- ``add(name, secret, category)`` — seal a new secret
- ``update(name, secret, category)`` — reseal an existing secret
- ``remove(name, category)`` — delete a secret
- ``reveal(password, name, category)`` — open a secret with the master password
- ``list(category, pattern)`` — enumerate secret names by category

Security Note:
    The master password, the derived master key and the master private
    key only ever live in local variables of one call. They are never
    cached on the instance, written to the metadata file, or logged.
    Log only operation names, secret names and categories.
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Optional, Union

from ..exceptions import (
    AuthenticationFailed,
    CategoryNotFound,
    InvalidPassword,
    MissingOption,
    MissingSecret,
    VaultNotInitialized,
)
from ..metadata import MetadataStore
from .config import VaultConfig
from .crypto import (
    KEY_LENGTH,
    derive_master_key,
    deserialize_value,
    generate_keypair,
    generate_nonce,
    generate_salt,
    open_asymmetric,
    open_symmetric,
    seal_asymmetric,
    seal_symmetric,
    serialize_value,
)
from .naming import sanitize, sanitize_category, sanitize_name, split_secret_path
from .records import MasterKeyMaterial, SecretRecord
from .store import VaultStore

logger = logging.getLogger("shroud.vault")


class Shroud:
    """Password-protected vault of individually sealed secrets.

    Two sealing layers protect every secret:
    - **Master layer**: scrypt(password) seals the master private key
    - **Secret layer**: each secret is sealed to the master public key
      with its own ephemeral keypair and nonce

    Sealing a secret needs only the public key, so ``add``/``update``
    take no password. Opening one needs the password, which is verified
    by successfully unsealing the master private key.
    """

    def __init__(
        self,
        config: Optional[VaultConfig] = None,
        data_dir: Optional[Union[str, Path]] = None,
    ):
        if config is None:
            config = VaultConfig() if data_dir is None else VaultConfig(data_dir=data_dir)
        self.config = config
        self.metadata = MetadataStore(config.metadata_path)
        self.store = VaultStore(config.vault_root)
        self._bootstrap_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"Shroud(data_dir='{self.config.data_dir}')"

    @classmethod
    async def create(
        cls,
        password: Optional[str] = None,
        data_dir: Optional[Union[str, Path]] = None,
        config: Optional[VaultConfig] = None,
    ) -> "Shroud":
        """Open the vault at ``data_dir``, bootstrapping it on first use.

        Args:
            password: Master password; required only for a new vault.
            data_dir: Vault data directory (defaults to ``~/.shroud``).
            config: Full configuration; takes precedence over ``data_dir``.

        Returns:
            A ready Shroud instance.
        """
        vault = cls(config=config, data_dir=data_dir)
        await vault.bootstrap(password)
        return vault

    # ------------------------------------------------------------------
    # Master keys
    # ------------------------------------------------------------------

    def _material(self) -> Optional[MasterKeyMaterial]:
        return MasterKeyMaterial.from_storage(self.metadata.read())

    def _require_material(self) -> MasterKeyMaterial:
        material = self._material()
        if material is None:
            raise VaultNotInitialized()
        return material

    @property
    def is_bootstrapped(self) -> bool:
        return self._material() is not None

    def _generate_material(self, password: str) -> MasterKeyMaterial:
        master_key_salt = generate_salt()
        master_key = derive_master_key(
            password, master_key_salt, KEY_LENGTH, **self.config.kdf_params
        )
        public_key, private_key = generate_keypair()
        master_priv_key_salt = generate_nonce()
        return MasterKeyMaterial(
            master_key_salt=master_key_salt,
            master_priv_key_salt=master_priv_key_salt,
            sealed_master_priv_key=seal_symmetric(
                private_key, master_priv_key_salt, master_key
            ),
            master_pub_key=public_key,
        )

    def _unseal_private_key(self, password: str, material: MasterKeyMaterial) -> bytes:
        """Recover the master private key.

        Raises:
            InvalidPassword: If the sealed key fails authentication.
        """
        master_key = derive_master_key(
            password, material.master_key_salt, KEY_LENGTH, **self.config.kdf_params
        )
        try:
            return open_symmetric(
                material.sealed_master_priv_key,
                material.master_priv_key_salt,
                master_key,
            )
        except AuthenticationFailed as err:
            raise InvalidPassword() from err

    def _bootstrap(self, password: Optional[str]) -> bool:
        if self._material() is not None:
            return False
        if not password:
            raise MissingOption("masterPassword")
        material = self._generate_material(password)
        self.metadata.update(material.to_storage())
        return True

    async def bootstrap(self, password: Optional[str] = None) -> bool:
        """Generate and persist master-key material on first use.

        Existing material is never overwritten.

        Args:
            password: Master password; only required on first use.

        Returns:
            True if material was generated now, False if the vault was
            already initialized.

        Raises:
            MissingOption: If no password was given for a new vault.
            CorruptMetadata: If existing material is partial or unreadable.
        """
        async with self._bootstrap_lock:
            created = await asyncio.to_thread(self._bootstrap, password)
        if created:
            logger.info("Vault bootstrapped: data_dir=%s", self.config.data_dir)
        return created

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve(
        name: str, category: Optional[str]
    ) -> tuple[str, Optional[str]]:
        """Sanitize a secret address.

        Without an explicit ``category``, ``name`` may be the combined
        ``"category/name"`` form; a leading ``"/"`` means uncategorized.
        """
        if category is None and isinstance(name, str):
            name, category = split_secret_path(name)
        return sanitize_name(name), sanitize_category(category)

    def _seal(self, secret: Any) -> SecretRecord:
        if secret is None or (isinstance(secret, (str, bytes)) and not secret):
            raise MissingSecret()
        material = self._require_material()
        sealed, pubkey, nonce = seal_asymmetric(
            serialize_value(secret), material.master_pub_key
        )
        return SecretRecord(sealed_secret=sealed, pubkey=pubkey, salt=nonce)

    def _add(self, name: str, secret: Any, category: Optional[str]) -> SecretRecord:
        record = self._seal(secret)
        self.store.add(name, record, category)
        return record

    def _update(self, name: str, secret: Any, category: Optional[str]) -> SecretRecord:
        record = self._seal(secret)
        self.store.update(name, record, category)
        return record

    def _reveal(self, password: str, name: str, category: Optional[str]) -> Any:
        record = self.store.get(name, category)
        if password is None:
            raise MissingOption("masterPassword")
        material = self._require_material()
        private_key = self._unseal_private_key(password, material)
        plaintext = open_asymmetric(
            record.sealed_secret, record.pubkey, record.salt, private_key
        )
        return deserialize_value(plaintext)

    async def add(
        self, name: str, secret: Any, category: Optional[str] = None
    ) -> SecretRecord:
        """Seal ``secret`` and store it as a new record.

        Args:
            name: Secret name (sanitized for the filesystem), or the
                combined ``"category/name"`` form when ``category`` is
                omitted.
            secret: Payload; str, bytes or any JSON-serializable value.
            category: Optional category (sanitized for the filesystem).

        Returns:
            The stored record.

        Raises:
            MissingName: If name is absent or empty after sanitization.
            MissingSecret: If secret is absent.
            DuplicateSecret: If the record already exists.
        """
        name, category = self._resolve(name, category)
        record = await asyncio.to_thread(self._add, name, secret, category)
        logger.debug("Vault add: name=%s category=%s", name, category)
        return record

    async def update(
        self, name: str, secret: Any, category: Optional[str] = None
    ) -> SecretRecord:
        """Reseal an existing record with a new payload.

        Raises:
            MissingName: If name is absent or empty after sanitization.
            MissingSecret: If secret is absent.
            SecretNotFound: If the record does not exist.
        """
        name, category = self._resolve(name, category)
        record = await asyncio.to_thread(self._update, name, secret, category)
        logger.debug("Vault update: name=%s category=%s", name, category)
        return record

    async def remove(self, name: str, category: Optional[str] = None) -> None:
        """Delete a record.

        Without an explicit ``category``, a combined ``"category/name"``
        form is accepted.

        Raises:
            SecretNotFound: If the record does not exist.
        """
        name, category = self._resolve(name, category)
        await asyncio.to_thread(self.store.remove, name, category)
        logger.debug("Vault remove: name=%s category=%s", name, category)

    async def reveal(
        self, password: str, name: str, category: Optional[str] = None
    ) -> Any:
        """Open a secret with the master password.

        The record is looked up before the password is checked.

        Returns:
            The original payload.

        Raises:
            SecretNotFound: If the record does not exist.
            InvalidPassword: If the master password is wrong.
            OpenFailed: If the record is corrupted.
        """
        name, category = self._resolve(name, category)
        value = await asyncio.to_thread(self._reveal, password, name, category)
        logger.debug("Vault reveal: name=%s category=%s", name, category)
        return value

    async def list(
        self, category: Optional[str] = None, pattern: Optional[str] = None
    ) -> dict[str, list[str]]:
        """List secret names by category.

        Args:
            category: Only list this category; None lists every bucket.
            pattern: Case-insensitive name filter.

        Raises:
            CategoryNotFound: If ``category`` does not exist, or names
                no category at all after sanitization.
        """
        if category is not None:
            cleaned = sanitize(category)
            if not cleaned:
                raise CategoryNotFound(category)
            category = cleaned
        return await asyncio.to_thread(self.store.list, category, pattern)

    async def exists(self, name: str, category: Optional[str] = None) -> bool:
        name, category = self._resolve(name, category)
        return await asyncio.to_thread(self.store.exists, name, category)
