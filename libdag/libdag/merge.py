"""Three-way merge of trees and file contents."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum

from merge3 import Merge3

from .constants import CONFLICT_END, CONFLICT_MIDDLE, CONFLICT_START
from .plumbing import ObjectStore, flatten_tree
from .ref import HashRef


class MergeStatus(StrEnum):
    """Outcome of a merge request."""

    UP_TO_DATE = 'up_to_date'
    FAST_FORWARD = 'fast_forward'
    MERGED = 'merged'
    CONFLICTED = 'conflicted'


@dataclass(frozen=True)
class MergeResult:
    """Represents the output of a merge request.

    ``commit`` is the new merge commit for MERGED, the new tip for
    FAST_FORWARD and None otherwise; ``tree_hash`` is the merged tree when
    one was committed."""

    status: MergeStatus
    ours: HashRef
    theirs: HashRef
    base: HashRef | None
    commit: HashRef | None = None
    tree_hash: HashRef | None = None
    conflicts: tuple[str, ...] = ()

    @property
    def clean(self) -> bool:
        return self.status != MergeStatus.CONFLICTED


@dataclass(frozen=True)
class PathConflict:
    """A path changed differently on both sides, with the marked-up merge of its content.

    ``worktree_path`` is set when the merged tree holds a directory at
    ``path``; the content is then written to that file beside it."""

    path: str
    base: HashRef | None
    ours: HashRef | None
    theirs: HashRef | None
    content: bytes
    worktree_path: str | None = None


@dataclass
class TreeMerge:
    """Path-level result of merging three trees."""

    files: dict[str, HashRef] = field(default_factory=dict)
    conflicts: list[PathConflict] = field(default_factory=list)

    @property
    def conflicted_paths(self) -> list[str]:
        return [conflict.path for conflict in self.conflicts]


def _directories(paths: Iterable[str]) -> set[str]:
    directories: set[str] = set()
    for path in paths:
        parts = path.split('/')
        directories.update('/'.join(parts[:end]) for end in range(1, len(parts)))
    return directories


def _close_line(lines: Sequence[bytes]) -> list[bytes]:
    # Markers must start on their own line even if the side lacks a final newline
    lines = list(lines)
    if lines and not lines[-1].endswith(b'\n'):
        lines[-1] += b'\n'
    return lines


def merge_texts(base: bytes, ours: bytes, theirs: bytes) -> tuple[bytes, bool]:
    """Line-based three-way merge of three versions of a file.

    Regions changed differently on both sides are emitted between
    ``<<<<<<< ours``, ``=======`` and ``>>>>>>> theirs`` markers.

    :return: Tuple of (merged_content, has_conflict_markers)"""
    merger = Merge3(base.splitlines(keepends=True),
                    ours.splitlines(keepends=True),
                    theirs.splitlines(keepends=True))

    content_buffer: list[bytes] = []
    conflict = False
    for group in merger.merge_groups():
        match group:
            case ('unchanged' | 'a' | 'b' | 'same', lines):
                content_buffer.extend(lines)
            case ('conflict', _, ours_lines, theirs_lines):
                conflict = True
                if content_buffer:
                    content_buffer = _close_line(content_buffer)
                content_buffer.append(CONFLICT_START)
                content_buffer.extend(_close_line(ours_lines))
                content_buffer.append(CONFLICT_MIDDLE)
                content_buffer.extend(_close_line(theirs_lines))
                content_buffer.append(CONFLICT_END)

    return b''.join(content_buffer), conflict


def merge_blob_text(
    objects: ObjectStore,
    base_hash: str | None,
    ours_hash: str | None,
    theirs_hash: str | None,
) -> tuple[bytes, bool]:
    """Merge three versions of a blob; an absent side counts as empty content.

    :return: Tuple of (merged_content, has_conflict_markers)"""
    def content(blob_hash: str | None) -> bytes:
        return objects.load_blob(blob_hash).content if blob_hash else b''

    return merge_texts(content(base_hash), content(ours_hash), content(theirs_hash))


def merge_trees(
    objects: ObjectStore,
    base_tree: str | None,
    ours_tree: str | None,
    theirs_tree: str | None,
) -> TreeMerge:
    """Merge three trees path by path.

    For every path in any of the trees, a side that kept the base version
    yields to the other side, identical changes are taken once, and
    differing changes (including delete against modify) are conflicts.

    A file left where the other side put a directory is also a conflict:
    the index keeps its stages under the file path while its content goes
    to ``<path>~ours`` or ``<path>~theirs`` in the working tree."""
    def files(tree_hash: str | None) -> dict[str, HashRef]:
        return flatten_tree(objects, tree_hash) if tree_hash else {}

    base_files, ours_files, theirs_files = files(base_tree), files(ours_tree), files(theirs_tree)
    result = TreeMerge()

    for path in sorted(base_files.keys() | ours_files.keys() | theirs_files.keys()):
        base = base_files.get(path)
        ours = ours_files.get(path)
        theirs = theirs_files.get(path)

        if ours == theirs:
            merged = ours
        elif ours == base:
            merged = theirs
        elif theirs == base:
            merged = ours
        else:
            content, _ = merge_blob_text(objects, base, ours, theirs)
            result.conflicts.append(PathConflict(path, base, ours, theirs, content))
            continue

        if merged is not None:
            result.files[path] = merged

    conflicts = {conflict.path: conflict for conflict in result.conflicts}
    occupied = result.files.keys() | conflicts.keys()
    taken = occupied | ours_files.keys() | theirs_files.keys() | _directories(occupied)
    for path in sorted(occupied & _directories(occupied)):
        side = 'ours' if ours_files.get(path) is not None else 'theirs'
        worktree_path = f'{path}~{side}'
        while worktree_path in taken:
            worktree_path += '_'
        taken.add(worktree_path)

        if path in conflicts:
            conflicts[path] = replace(conflicts[path], worktree_path=worktree_path)
        else:
            content = objects.load_blob(result.files.pop(path)).content
            conflicts[path] = PathConflict(path, base_files.get(path), ours_files.get(path), theirs_files.get(path),
                                           content, worktree_path)

    result.conflicts = [conflicts[path] for path in sorted(conflicts)]
    return result
