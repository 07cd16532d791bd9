"""Working-tree providers: where checked-out file contents live."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from pathlib import Path

from .plumbing import ObjectStore


class WorkingTree(ABC):
    """Files addressed by ``/``-separated paths relative to the tree root."""

    @abstractmethod
    def read(self, path: str) -> bytes | None:
        """Return the content of a file, or None if it does not exist."""

    @abstractmethod
    def write(self, path: str, content: bytes) -> None:
        """Create or overwrite a file, creating parent directories as needed."""

    @abstractmethod
    def remove(self, path: str) -> None:
        """Remove a file if present."""

    @abstractmethod
    def paths(self) -> list[str]:
        """Return every file path, sorted."""

    def exists(self, path: str) -> bool:
        return self.read(path) is not None


class MemoryWorkingTree(WorkingTree):
    """A working tree kept in a dict."""

    def __init__(self, files: Mapping[str, bytes] | None = None) -> None:
        self.files: dict[str, bytes] = dict(files or {})

    def read(self, path: str) -> bytes | None:
        return self.files.get(path)

    def write(self, path: str, content: bytes) -> None:
        self.files[path] = content

    def remove(self, path: str) -> None:
        self.files.pop(path, None)

    def paths(self) -> list[str]:
        return sorted(self.files)


class DirectoryWorkingTree(WorkingTree):
    """A working tree on the filesystem.

    :param root: The directory files are checked out into.
    :param ignore: Top-level names that are never reported or touched,
        typically the repository directory."""

    def __init__(self, root: Path | str, ignore: Iterable[str] = ()) -> None:
        self.root = Path(root)
        self.ignore = frozenset(ignore)

    def _path(self, path: str) -> Path:
        parts = path.split('/')
        if not path or any(part in ('', '.', '..') for part in parts) or parts[0] in self.ignore:
            msg = f'Invalid working tree path: {path!r}'
            raise ValueError(msg)
        return self.root.joinpath(*parts)

    def read(self, path: str) -> bytes | None:
        file = self._path(path)
        if not file.is_file():
            return None
        return file.read_bytes()

    def write(self, path: str, content: bytes) -> None:
        file = self._path(path)
        file.parent.mkdir(parents=True, exist_ok=True)
        file.write_bytes(content)

    def remove(self, path: str) -> None:
        file = self._path(path)
        if not file.is_file():
            return

        file.unlink()
        parent = file.parent
        while parent != self.root and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent

    def paths(self) -> list[str]:
        if not self.root.is_dir():
            return []

        # Ignored directories are never descended into
        stack = [item for item in self.root.iterdir() if item.name not in self.ignore]
        found: list[str] = []
        while stack:
            item = stack.pop()
            if item.is_dir():
                stack.extend(item.iterdir())
            elif item.is_file():
                found.append(item.relative_to(self.root).as_posix())
        return sorted(found)


def materialize(
    worktree: WorkingTree,
    objects: ObjectStore,
    old_files: Mapping[str, str],
    new_files: Mapping[str, str],
) -> None:
    """Move a working tree from one path-to-blob snapshot to another.

    Only files whose blob changed are rewritten; files absent from the new
    snapshot are removed."""
    for path in sorted(old_files.keys() - new_files.keys()):
        worktree.remove(path)
    for path, blob_hash in sorted(new_files.items()):
        if old_files.get(path) != blob_hash or not worktree.exists(path):
            worktree.write(path, objects.load_blob(blob_hash).content)
