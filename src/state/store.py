from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from cryptography.fernet import Fernet, InvalidToken


logger = logging.getLogger(__name__)

# Environment variable names for convenience configuration
ENV_STATE_PATH = "APPFLOW_STATE_PATH"
ENV_FERNET_KEY = "APPFLOW_FERNET_KEY"

DEFAULT_STATE_PATH = Path(".appflow") / "state.json"


class StoreError(ValueError):
    """Raised when the backing file exists but cannot be decrypted."""


class KeyValueStore(Protocol):
    """Synchronous, last-write-wins storage for primitive values keyed by string."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a user-provided key.

    The key must be a URL-safe base64-encoded 32-byte key (str or bytes),
    as returned by `cryptography.fernet.Fernet.generate_key()`.
    """
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


class MemoryKeyValueStore:
    """In-process store; contents vanish with the process."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._data)


class JsonFileStore:
    """
    Durable key-value store backed by a single JSON object on disk.

    - The whole object is rewritten on every `set()`; there is no batching.
    - When a Fernet key is given, the file holds the Fernet token of the JSON
      bytes instead of plain JSON.
    - A missing file is an empty store. A corrupt plain file, or one whose
      top level is not an object, is also treated as empty.
    - A file that cannot be decrypted raises `StoreError`: that means the key
      is wrong, and silently starting fresh would overwrite the user's data.
    """

    def __init__(
        self,
        path: Optional[os.PathLike[str] | str] = None,
        *,
        fernet_key: Optional[str | bytes] = None,
    ) -> None:
        self._path = Path(path) if path else DEFAULT_STATE_PATH
        self._fernet = _to_fernet(fernet_key) if fernet_key else None
        self._data: Dict[str, Any] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def _decode(self, blob: bytes) -> bytes:
        if self._fernet is None:
            return blob
        try:
            return self._fernet.decrypt(blob)
        except InvalidToken as ex:
            raise StoreError(f"Failed to decrypt {self._path}: invalid Fernet token") from ex

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self._path.exists():
            return
        plaintext = self._decode(self._path.read_bytes())
        try:
            raw = json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Ignoring corrupt store file %s", self._path)
            return
        if not isinstance(raw, dict):
            logger.warning("Ignoring store file %s: top level is not an object", self._path)
            return
        self._data = {str(k): v for k, v in raw.items()}

    def _save(self) -> None:
        # Deterministic JSON: stable key order, no extra whitespace
        payload = json.dumps(self._data, separators=(",", ":"), sort_keys=True).encode("utf-8")
        if self._fernet is not None:
            payload = self._fernet.encrypt(payload)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_bytes(payload)
        os.replace(tmp, self._path)

    def get(self, key: str) -> Optional[Any]:
        self._ensure_loaded()
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._ensure_loaded()
        self._data[key] = value
        self._save()
        logger.debug("Wrote %s=%r to %s", key, value, self._path)


def store_from_env() -> JsonFileStore:
    """Build the file store from `APPFLOW_STATE_PATH` and `APPFLOW_FERNET_KEY`.

    Raises RuntimeError if the Fernet key is present but malformed.
    """
    path = _getenv(ENV_STATE_PATH)
    fkey = _getenv(ENV_FERNET_KEY)
    try:
        return JsonFileStore(path, fernet_key=fkey)
    except ValueError as ex:
        raise RuntimeError(f"Invalid {ENV_FERNET_KEY}: {ex}") from ex
