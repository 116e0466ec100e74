"""
Metadata Store — one JSON mapping of scalar values persisted to a file.

Holds the vault's master-key material. Updates are read-merge-write:
keys not given to :meth:`MetadataStore.update` are left untouched and
the full mapping is written back with an atomic replace.

Known limitation:
    There is no locking. Two processes updating the same file race and
    the last writer wins; a single writer is assumed.
"""
import os
import uuid
import logging
from pathlib import Path
from typing import Any, Optional
from collections.abc import Iterator, Mapping

import orjson

from .exceptions import CorruptMetadata

logger = logging.getLogger("shroud.metadata")


class MetadataStore(Mapping[str, Any]):
    """Read-only mapping view over a metadata file, plus :meth:`update`.

    Every access reads the file again, so the view always reflects what
    is on disk.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f'<MetadataStore path={str(self.path)!r} keys={sorted(self.read())}>'

    # --- Serialization helpers ---

    def encode(self, data: Mapping[str, Any]) -> bytes:
        """encode

            Encode the metadata mapping as JSON.
        Raises:
            CorruptMetadata: A value is not a JSON scalar.
        """
        try:
            return orjson.dumps(dict(data), option=orjson.OPT_SORT_KEYS)
        except TypeError as err:
            raise CorruptMetadata(f"Unserializable metadata: {err}") from err

    def decode(self, raw: bytes) -> dict[str, Any]:
        """decode

            Decode the metadata file content.
        Raises:
            CorruptMetadata: The content is not a JSON object.
        """
        try:
            data = orjson.loads(raw) if raw.strip() else {}
        except orjson.JSONDecodeError as err:
            raise CorruptMetadata(f"{self.path} is not valid JSON: {err}") from err
        if not isinstance(data, dict):
            raise CorruptMetadata(
                f"{self.path} must hold a JSON object, got {type(data).__name__}"
            )
        return data

    # --- Public API ---

    def read(self) -> dict[str, Any]:
        """Return the whole mapping; an absent file reads as empty."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return {}
        return self.decode(raw)

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        value = self.read().get(key)
        return default if value is None else value

    def update(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Merge ``data`` into the persisted mapping and write it back.

        Returns:
            The full mapping as written.
        """
        updated = {**self.read(), **data}
        payload = self.encode(updated)
        tmp = self.path.with_name(f".{self.path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp.write_bytes(payload)
            os.replace(tmp, self.path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug("Metadata updated: keys=%s", sorted(data))
        return updated

    # --- Magic Methods ---

    def __getitem__(self, key: str) -> Any:
        return self.read()[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.read())

    def __len__(self) -> int:
        return len(self.read())

    def __contains__(self, key: object) -> bool:
        return key in self.read()
