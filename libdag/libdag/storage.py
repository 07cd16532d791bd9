"""Key-value storage backends for repository state."""

from abc import ABC, abstractmethod
from pathlib import Path


class Storage(ABC):
    """Key-value store operating on bytes only.

    Keys are relative names separated by ``/`` (``objects/ab/abcd...``,
    ``refs/heads/master``). Serialization is handled at higher layers.
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Get bytes value for key, or None if not found."""

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Set bytes value for key."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key if present."""

    @abstractmethod
    def keys(self, prefix: str = '') -> list[str]:
        """Return all keys starting with prefix, sorted."""

    @abstractmethod
    def __contains__(self, key: str) -> bool:
        """Check if key exists in store."""

    @abstractmethod
    def exists(self) -> bool:
        """Check whether the backing medium exists."""


def _check_bytes(value: object) -> None:
    if not isinstance(value, bytes):
        msg = f'Expected bytes, got {type(value).__name__}'
        raise TypeError(msg)


class MemoryStorage(Storage):
    """A memory-backed store, mostly used for tests and scratch repositories."""

    def __init__(self) -> None:
        self.memory: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self.memory.get(key)

    def set(self, key: str, value: bytes) -> None:
        _check_bytes(value)
        self.memory[key] = value

    def remove(self, key: str) -> None:
        self.memory.pop(key, None)

    def keys(self, prefix: str = '') -> list[str]:
        return sorted(key for key in self.memory if key.startswith(prefix))

    def __contains__(self, key: str) -> bool:
        return key in self.memory

    def exists(self) -> bool:
        return True


class DirectoryStorage(Storage):
    """A store keeping one file per key below a root directory."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not key or key.startswith('/') or '..' in key.split('/'):
            msg = f'Invalid storage key: {key!r}'
            raise ValueError(msg)
        return self.root / key

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_bytes()

    def set(self, key: str, value: bytes) -> None:
        _check_bytes(value)
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(value)

    def remove(self, key: str) -> None:
        path = self._path(key)
        if not path.is_file():
            return

        path.unlink()
        # Prune directories emptied by the removal, but never the root itself
        parent = path.parent
        while parent != self.root and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent

    def keys(self, prefix: str = '') -> list[str]:
        if not self.root.is_dir():
            return []
        found = (path.relative_to(self.root).as_posix() for path in self.root.rglob('*') if path.is_file())
        return sorted(key for key in found if key.startswith(prefix))

    def __contains__(self, key: str) -> bool:
        return self._path(key).is_file()

    def exists(self) -> bool:
        return self.root.is_dir()
