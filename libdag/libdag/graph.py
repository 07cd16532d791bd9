"""Commit graph algorithms over parent pointers.

Everything here is a pure function of the object store: commits reference
their parents and trees by hash, so reachability is computed by walking
stored objects only."""

from collections import deque
from collections.abc import Generator, Iterable

from .errors import InvalidObjectError, ObjectNotFoundError
from .objects import Commit, TreeRecordType
from .plumbing import ObjectStore
from .ref import HashRef


def _load_commit(objects: ObjectStore, commit_hash: HashRef, tip: str) -> Commit:
    # Past the tip a missing commit is a dangling parent pointer
    try:
        return objects.load_commit(commit_hash)
    except ObjectNotFoundError as e:
        if commit_hash == tip:
            raise
        msg = f'Commit {commit_hash} reachable from {tip} is missing'
        raise InvalidObjectError(msg) from e


def walk(objects: ObjectStore, tip: str) -> Generator[tuple[HashRef, Commit], None, None]:
    """Yield every commit reachable from tip, breadth-first, each exactly once.

    :raises ObjectNotFoundError: If tip itself is missing.
    :raises InvalidObjectError: If a parent reached from tip is missing."""
    seen = {tip}
    queue = deque([HashRef(tip)])
    while queue:
        commit_hash = queue.popleft()
        commit = _load_commit(objects, commit_hash, tip)
        yield commit_hash, commit

        for parent in commit.parents:
            if parent not in seen:
                seen.add(parent)
                queue.append(HashRef(parent))


def ancestors(objects: ObjectStore, commit_hash: str) -> set[HashRef]:
    """Return every commit reachable from commit_hash, including itself."""
    return {found for found, _ in walk(objects, commit_hash)}


def is_ancestor(objects: ObjectStore, ancestor: str, descendant: str) -> bool:
    """Check whether ancestor is reachable from descendant (a commit is its own ancestor)."""
    if ancestor == descendant:
        return True
    return any(found == ancestor for found, _ in walk(objects, descendant))


def merge_base(objects: ObjectStore, ours: str, theirs: str) -> HashRef | None:
    """Find the lowest common ancestor of two commits.

    The common ancestors are closed under taking parents, so a common
    ancestor is strictly below another one exactly when it is the parent
    of some common ancestor. What remains are the maximal common
    ancestors; when there are several (criss-cross history) the one met
    first when walking breadth-first from ours is returned.

    :return: The merge base, or None for unrelated histories."""
    ours_order = [found for found, _ in walk(objects, ours)]
    common = set(ours_order) & ancestors(objects, theirs)
    if not common:
        return None

    dominated = {parent for commit_hash in common for parent in objects.load_commit(commit_hash).parents}
    return next(commit_hash for commit_hash in ours_order if commit_hash in common and commit_hash not in dominated)


def tree_objects(objects: ObjectStore, tree_hash: str, exclude: set[HashRef] | None = None) -> set[HashRef]:
    """Return a tree and every subtree and blob below it, skipping excluded hashes."""
    exclude = exclude or set()
    found: set[HashRef] = set()
    stack = [HashRef(tree_hash)]
    while stack:
        current = stack.pop()
        if current in found or current in exclude:
            continue
        found.add(current)
        for record in objects.load_tree(current).records.values():
            if record.type == TreeRecordType.TREE:
                stack.append(HashRef(record.hash))
            elif record.hash not in exclude:
                found.add(HashRef(record.hash))
    return found


def reachable_objects(objects: ObjectStore, tip: str) -> set[HashRef]:
    """Return every commit, tree and blob reachable from a commit."""
    found: set[HashRef] = set()
    for commit_hash, commit in walk(objects, tip):
        found.add(commit_hash)
        found |= tree_objects(objects, commit.tree_hash, found)
    return found


def missing_objects(objects: ObjectStore, have_tips: Iterable[str], want_tip: str) -> set[HashRef]:
    """Compute the objects reachable from want_tip but not from any of have_tips.

    This is exactly what has to be transferred to a store that already holds
    the history of have_tips. Have-tips unknown to this store add nothing to
    the exclusion set.

    :param objects: The store holding want_tip's history.
    :param have_tips: Commits whose history the receiving side already has.
    :param want_tip: The commit whose history must be complete afterwards."""
    have: set[HashRef] = set()
    for tip in have_tips:
        if tip is not None and objects.exists(tip) and tip not in have:
            have |= reachable_objects(objects, tip)

    missing: set[HashRef] = set()
    seen = {want_tip}
    queue = deque([HashRef(want_tip)])
    while queue:
        commit_hash = queue.popleft()
        if commit_hash in have:
            continue
        commit = _load_commit(objects, commit_hash, want_tip)
        missing.add(commit_hash)
        missing |= tree_objects(objects, commit.tree_hash, have | missing)

        for parent in commit.parents:
            if parent not in seen:
                seen.add(parent)
                queue.append(HashRef(parent))
    return missing


def can_fast_forward(objects: ObjectStore, old_tip: str | None, new_tip: str) -> bool:
    """Check whether moving a ref from old_tip to new_tip loses no commits.

    An absent old tip is an empty history, which every tip fast-forwards."""
    if old_tip is None:
        return True
    if not objects.exists(old_tip):
        return False
    return is_ancestor(objects, old_tip, new_tip)
