"""
Vault Store — sealed secret records laid out on disk.

Layout under the vault root::

    <root>/<name>              uncategorized secret
    <root>/<category>/<name>   categorized secret

Each file holds one :class:`~shroud.vault.records.SecretRecord` as JSON.
A category directory exists only while it holds at least one secret.

Writes go through a dot-prefixed temp file in the target directory:
``add`` hard-links it to the final name, which fails atomically if the
name is taken, and ``update`` replaces the final name with it. Listing
skips dot-prefixed entries; sanitized names never start with a dot.
"""
import os
import re
import uuid
import logging
from pathlib import Path
from typing import Optional

from ..exceptions import CategoryNotFound, DuplicateSecret, SecretNotFound
from .naming import UNCATEGORIZED, sanitize_category, sanitize_name
from .records import SecretRecord

logger = logging.getLogger("shroud.vault")


def compile_pattern(pattern: Optional[str]) -> Optional[re.Pattern]:
    """Compile a case-insensitive name filter.

    A pattern that is not a valid regular expression matches as a literal
    substring.
    """
    if not pattern:
        return None
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error:
        return re.compile(re.escape(pattern), re.IGNORECASE)


class VaultStore:
    """File-per-secret storage keyed by ``(name, category)``."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"VaultStore(root='{self.root}')"

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _key(self, name: str, category: Optional[str]) -> tuple[str, Optional[str]]:
        return sanitize_name(name), sanitize_category(category)

    def path_for(self, name: str, category: Optional[str] = None) -> Path:
        """Return the file path of ``(name, category)``."""
        name, category = self._key(name, category)
        if category:
            return self.root / category / name
        return self.root / name

    def _tmp_path(self, directory: Path) -> Path:
        # independent of the secret name, which may already use NAME_MAX
        return directory / f".{uuid.uuid4().hex}.tmp"

    @staticmethod
    def _entries(directory: Path) -> list[os.DirEntry]:
        with os.scandir(directory) as it:
            return sorted(
                (entry for entry in it if not entry.name.startswith(".")),
                key=lambda entry: entry.name,
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def exists(self, name: str, category: Optional[str] = None) -> bool:
        return self.path_for(name, category).is_file()

    def get(self, name: str, category: Optional[str] = None) -> SecretRecord:
        """Load the record stored for ``(name, category)``.

        Raises:
            SecretNotFound: If no record exists at that path.
            OpenFailed: If the file is not a well-formed record.
        """
        name, category = self._key(name, category)
        path = self.path_for(name, category)
        if not path.is_file():
            raise SecretNotFound(name, category)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            raise SecretNotFound(name, category) from None
        return SecretRecord.loads(raw, name=name)

    def add(
        self, name: str, record: SecretRecord, category: Optional[str] = None
    ) -> Path:
        """Store a new record.

        The category directory is created on demand. The existence check
        and the creation are one atomic link, so of several concurrent
        adds for the same path exactly one succeeds.

        Raises:
            DuplicateSecret: If a record already exists at that path, or
                the category name is taken by an uncategorized secret.
        """
        name, category = self._key(name, category)
        target = self.path_for(name, category)
        payload = record.dumps()

        # A concurrent remove may drop an empty category directory
        # between mkdir and the temp write; recreate it once.
        for attempt in range(2):
            directory = target.parent
            if category:
                if directory.exists() and not directory.is_dir():
                    raise DuplicateSecret(category)
                directory.mkdir(exist_ok=True)
            tmp = self._tmp_path(directory)
            try:
                tmp.write_bytes(payload)
            except FileNotFoundError:
                if attempt:
                    raise
                continue
            try:
                os.link(tmp, target)
            except FileExistsError:
                raise DuplicateSecret(name, category) from None
            finally:
                tmp.unlink(missing_ok=True)
            break

        logger.debug("Record created: %s", target)
        return target

    def update(
        self, name: str, record: SecretRecord, category: Optional[str] = None
    ) -> Path:
        """Replace an existing record; never creates one.

        Raises:
            SecretNotFound: If no record exists at that path.
        """
        name, category = self._key(name, category)
        target = self.path_for(name, category)
        if not target.is_file():
            raise SecretNotFound(name, category)
        tmp = self._tmp_path(target.parent)
        try:
            tmp.write_bytes(record.dumps())
            os.replace(tmp, target)
        except FileNotFoundError:
            raise SecretNotFound(name, category) from None
        finally:
            tmp.unlink(missing_ok=True)
        logger.debug("Record replaced: %s", target)
        return target

    def remove(self, name: str, category: Optional[str] = None) -> None:
        """Delete a record, and its category directory if now empty.

        Raises:
            SecretNotFound: If no record exists at that path.
        """
        name, category = self._key(name, category)
        target = self.path_for(name, category)
        if not target.is_file():
            raise SecretNotFound(name, category)
        try:
            target.unlink()
        except FileNotFoundError:
            raise SecretNotFound(name, category) from None

        if category:
            try:
                target.parent.rmdir()
            except OSError:
                # not empty: the category still holds other secrets
                pass
            else:
                logger.debug("Vault category removed: category=%s", category)
        logger.debug("Record deleted: %s", target)

    def list(
        self, category: Optional[str] = None, pattern: Optional[str] = None
    ) -> dict[str, list[str]]:
        """List secret names by category.

        Args:
            category: Only list this category. ``uncategorized`` lists
                the top-level secrets; None lists every bucket.
            pattern: Case-insensitive regex (or literal substring) the
                names must match.

        Returns:
            Mapping of category name to sorted secret names. Buckets with
            no (matching) names are left out.

        Raises:
            CategoryNotFound: If ``category`` does not exist.
        """
        if category is not None:
            category = sanitize_category(category) or UNCATEGORIZED

        if category is None:
            buckets: dict[str, list[str]] = {UNCATEGORIZED: []}
            for entry in self._entries(self.root):
                if entry.is_dir():
                    buckets[entry.name] = [
                        sub.name for sub in self._entries(Path(entry.path))
                        if sub.is_file()
                    ]
                elif entry.is_file():
                    buckets[UNCATEGORIZED].append(entry.name)
        elif category == UNCATEGORIZED:
            buckets = {
                UNCATEGORIZED: [
                    entry.name for entry in self._entries(self.root)
                    if entry.is_file()
                ]
            }
        else:
            directory = self.root / category
            if not directory.is_dir():
                raise CategoryNotFound(category)
            buckets = {
                category: [
                    entry.name for entry in self._entries(directory)
                    if entry.is_file()
                ]
            }

        matcher = compile_pattern(pattern)
        result: dict[str, list[str]] = {}
        for bucket, names in buckets.items():
            if matcher is not None:
                names = [n for n in names if matcher.search(n)]
            if names:
                result[bucket] = names
        return result
