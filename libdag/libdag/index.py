"""The staging index: (path, stage) entries describing the next commit."""

from collections.abc import Mapping
from enum import IntEnum
from typing import NamedTuple

from .constants import INDEX_FILE
from .errors import InvalidObjectError, UnresolvedConflictsError
from .plumbing import ObjectStore, build_tree, flatten_tree
from .ref import HashRef, is_hash
from .storage import Storage


class Stage(IntEnum):
    """Index slot of an entry; non-zero stages only exist during a conflicted merge."""

    NORMAL = 0
    BASE = 1
    OURS = 2
    THEIRS = 3


CONFLICT_STAGES = (Stage.BASE, Stage.OURS, Stage.THEIRS)


class IndexKey(NamedTuple):
    path: str
    stage: Stage


class Index:
    """Mapping of (path, stage) to blob hash, persisted in full after every change.

    A path holds either a single stage-0 entry or a subset of the conflict
    stages 1 (base), 2 (ours) and 3 (theirs), never both."""

    def __init__(self, storage: Storage, objects: ObjectStore) -> None:
        self.storage = storage
        self.objects = objects

    def _read(self) -> dict[IndexKey, HashRef]:
        data = self.storage.get(INDEX_FILE)
        entries: dict[IndexKey, HashRef] = {}
        if not data:
            return entries

        for line in data.decode('utf-8').split('\n'):
            if not line:
                continue
            try:
                path, stage, blob_hash = line.rsplit(' ', 2)
                key = IndexKey(path, Stage(int(stage)))
            except ValueError as e:
                msg = f'Corrupted index entry: {line!r}'
                raise InvalidObjectError(msg) from e
            entries[key] = HashRef(blob_hash)
        return entries

    def _write(self, entries: dict[IndexKey, HashRef]) -> None:
        lines = [f'{key.path} {key.stage:d} {entries[key]}\n' for key in sorted(entries)]
        self.storage.set(INDEX_FILE, ''.join(lines).encode('utf-8'))

    def get(self, path: str, stage: Stage = Stage.NORMAL) -> HashRef | None:
        return self._read().get(IndexKey(path, Stage(stage)))

    def set(self, path: str, stage: Stage, blob_hash: str) -> None:
        """Stage a blob for a path.

        Staging at stage 0 resolves any conflict on the path; staging a
        conflict stage drops the path's stage-0 entry.

        :raises ValueError: If the path is empty, absolute or holds a newline or NUL.
        :raises InvalidObjectError: If the blob is not in the object store."""
        stage = Stage(stage)
        if not path or path.startswith('/') or path.endswith('/') or '\n' in path or '\0' in path:
            msg = f'Invalid index path: {path!r}'
            raise ValueError(msg)
        if not is_hash(blob_hash) or not self.objects.exists(blob_hash):
            msg = f'Cannot stage {path}: blob {blob_hash} is not stored'
            raise InvalidObjectError(msg)

        entries = self._read()
        if stage == Stage.NORMAL:
            for conflict_stage in CONFLICT_STAGES:
                entries.pop(IndexKey(path, conflict_stage), None)
        else:
            entries.pop(IndexKey(path, Stage.NORMAL), None)
        entries[IndexKey(path, stage)] = HashRef(blob_hash)
        self._write(entries)

    def remove(self, path: str, stage: Stage = Stage.NORMAL) -> None:
        entries = self._read()
        if entries.pop(IndexKey(path, Stage(stage)), None) is not None:
            self._write(entries)

    def remove_path(self, path: str) -> None:
        """Drop every stage of a path."""
        entries = self._read()
        remaining = {key: value for key, value in entries.items() if key.path != path}
        if len(remaining) != len(entries):
            self._write(remaining)

    def stage_conflict(self, path: str, base: str | None, ours: str | None, theirs: str | None) -> None:
        """Record a conflicted path with whichever sides had content."""
        entries = {key: value for key, value in self._read().items() if key.path != path}
        for stage, blob_hash in zip(CONFLICT_STAGES, (base, ours, theirs)):
            if blob_hash is not None:
                entries[IndexKey(path, stage)] = HashRef(blob_hash)
        self._write(entries)

    def entries(self, stage: Stage | None = None) -> dict[IndexKey, HashRef]:
        entries = self._read()
        if stage is None:
            return entries
        return {key: value for key, value in entries.items() if key.stage == stage}

    def files(self) -> dict[str, HashRef]:
        """Stage-0 entries as a path-to-blob mapping."""
        return {key.path: value for key, value in self.entries(Stage.NORMAL).items()}

    # Quoted: the class body's own set method shadows the builtin here
    def paths(self) -> 'set[str]':
        return {key.path for key in self._read()}

    def conflicted_paths(self) -> 'set[str]':
        """Paths with unresolved merge entries.

        Stage 2 is present for every conflict except ours deleting a file
        theirs modified, which only leaves stages 1 and 3."""
        return {key.path for key in self._read() if key.stage != Stage.NORMAL}

    def has_conflicts(self) -> bool:
        return any(key.stage != Stage.NORMAL for key in self._read())

    def clear(self) -> None:
        self._write({})

    def to_tree(self) -> HashRef:
        """Write nested trees for the stage-0 entries and return the root tree hash.

        :raises UnresolvedConflictsError: If any conflict-stage entry remains."""
        entries = self._read()
        unresolved = {key.path for key in entries if key.stage != Stage.NORMAL}
        if unresolved:
            raise UnresolvedConflictsError(unresolved)

        return build_tree(self.objects, {key.path: value for key, value in entries.items()})

    def replace(self, files: Mapping[str, str]) -> None:
        """Replace the whole index with stage-0 entries for a path-to-blob mapping."""
        self._write({IndexKey(path, Stage.NORMAL): HashRef(blob_hash) for path, blob_hash in files.items()})

    def load_from_tree(self, tree_hash: str) -> None:
        """Replace the whole index with the flattened content of a tree."""
        self.replace(flatten_tree(self.objects, tree_hash))
