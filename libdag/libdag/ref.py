"""References: named pointers to commits."""

from typing import TYPE_CHECKING

from .constants import HASH_CHARSET, HASH_LENGTH, HEAD_FILE, HEADS_DIR, REFS_DIR, REMOTES_DIR
from .errors import BranchExistsError, InvalidObjectError, RefNotFoundError, RepositoryError, UnbornBranchError
from .objects import Commit

if TYPE_CHECKING:
    from .plumbing import ObjectStore
    from .storage import Storage

SYMREF_PREFIX = 'ref: '


class RefError(RepositoryError):
    """Exception raised for malformed or unresolvable references."""


class HashRef(str):
    """A reference holding a commit (or object) hash directly."""

    __slots__ = ()


class SymRef(str):
    """A symbolic reference naming another ref, e.g. ``heads/master``."""

    __slots__ = ()


type Ref = HashRef | SymRef


def is_hash(value: str) -> bool:
    """Check whether a string has the shape of an object hash."""
    return len(value) == HASH_LENGTH and all(c in HASH_CHARSET for c in value)


def parse_ref(data: bytes) -> Ref:
    """Parse the stored form of a reference.

    :param data: The raw ref content.
    :return: A SymRef for ``ref: <target>`` content, a HashRef otherwise.
    :raises RefError: If the content is neither form."""
    text = data.decode('utf-8').strip()
    if text.startswith(SYMREF_PREFIX):
        target = text.removeprefix(SYMREF_PREFIX).strip()
        # Accept both 'heads/x' and git's 'refs/heads/x'
        return SymRef(target.removeprefix(f'{REFS_DIR}/'))
    if is_hash(text):
        return HashRef(text)

    msg = f'Invalid reference content: {text!r}'
    raise RefError(msg)


def format_ref(ref: Ref) -> bytes:
    match ref:
        case SymRef():
            return f'{SYMREF_PREFIX}{REFS_DIR}/{ref}\n'.encode()
        case HashRef():
            return f'{ref}\n'.encode()
        case _:
            msg = f'Invalid reference type: {type(ref)}'
            raise RefError(msg)


def branch_ref(branch: str) -> SymRef:
    """Create a symbolic reference for a branch name.

    :param branch: The name of the branch.
    :return: A SymRef object representing the branch reference."""
    return SymRef(f'{HEADS_DIR}/{branch}')


def remote_ref(remote: str, branch: str) -> SymRef:
    """Create a symbolic reference for a remote-tracking branch."""
    return SymRef(f'{REMOTES_DIR}/{remote}/{branch}')


def validate_ref_name(name: str) -> None:
    if not name:
        msg = 'Reference name is required'
        raise ValueError(msg)
    parts = name.split('/')
    if any(not part or part in ('.', '..') or part.startswith('.') for part in parts) \
            or any(c in name for c in ' \n\0~^:?*[\\'):
        msg = f'Invalid reference name: {name!r}'
        raise ValueError(msg)


class RefStore:
    """Named refs and HEAD, kept in a storage backend.

    Ref names are relative to the refs directory (``heads/master``,
    ``remotes/origin/master``). ``HEAD`` is stored separately and is either
    attached (a SymRef to a branch) or detached (a HashRef)."""

    def __init__(self, storage: 'Storage', objects: 'ObjectStore') -> None:
        self.storage = storage
        self.objects = objects

    @staticmethod
    def _key(name: str) -> str:
        return f'{REFS_DIR}/{name}'

    def _check_commit(self, commit_hash: str) -> None:
        if not is_hash(commit_hash) or not self.objects.exists(commit_hash):
            msg = f'Cannot point a ref at {commit_hash!r}: no such object'
            raise InvalidObjectError(msg)
        if not isinstance(self.objects.read(commit_hash), Commit):
            msg = f'Cannot point a ref at {commit_hash}: not a commit'
            raise InvalidObjectError(msg)

    def exists(self, name: str) -> bool:
        return self._key(name) in self.storage

    def read(self, name: str) -> Ref | None:
        """Read the raw value of a ref without following it."""
        data = self.storage.get(HEAD_FILE if name == HEAD_FILE else self._key(name))
        if data is None:
            return None
        return parse_ref(data)

    def get(self, name: str) -> HashRef | None:
        """Return the commit a ref points to, or None if it does not exist or is unborn."""
        if name == HEAD_FILE:
            return self.resolve(self.head())
        return self.resolve(SymRef(name))

    def set(self, name: str, commit_hash: str) -> None:
        """Point a ref at an existing commit.

        :raises InvalidObjectError: If the hash is not a stored commit."""
        validate_ref_name(name)
        self._check_commit(commit_hash)
        self.storage.set(self._key(name), format_ref(HashRef(commit_hash)))

    def delete(self, name: str) -> None:
        if not self.exists(name):
            msg = f'Reference "{name}" does not exist'
            raise RefNotFoundError(msg)
        self.storage.remove(self._key(name))

    def create_branch(self, branch: str, commit_hash: str) -> None:
        if self.exists(f'{HEADS_DIR}/{branch}'):
            raise BranchExistsError(branch)
        self.set(branch_ref(branch), commit_hash)

    def list_branches(self) -> list[str]:
        """Return branch names in sorted order."""
        prefix = self._key(f'{HEADS_DIR}/')
        return [key.removeprefix(prefix) for key in self.storage.keys(prefix)]

    def list_remote_branches(self, remote: str) -> list[str]:
        prefix = self._key(f'{REMOTES_DIR}/{remote}/')
        return [key.removeprefix(prefix) for key in self.storage.keys(prefix)]

    def head(self) -> Ref:
        """Return the raw value of HEAD.

        :raises RefError: If HEAD is missing."""
        ref = self.read(HEAD_FILE)
        if ref is None:
            msg = 'HEAD ref does not exist'
            raise RefError(msg)
        return ref

    def set_head(self, ref: Ref) -> None:
        """Attach HEAD to a branch (SymRef) or detach it at a commit (HashRef)."""
        if isinstance(ref, HashRef):
            self._check_commit(ref)
        elif isinstance(ref, SymRef):
            validate_ref_name(ref)
        self.storage.set(HEAD_FILE, format_ref(ref))

    def is_detached(self) -> bool:
        return isinstance(self.head(), HashRef)

    def current_branch(self) -> str | None:
        """Return the checked-out branch name, or None when HEAD is detached."""
        head = self.head()
        if isinstance(head, SymRef) and head.startswith(f'{HEADS_DIR}/'):
            return head.removeprefix(f'{HEADS_DIR}/')
        return None

    def resolve(self, ref: Ref | None) -> HashRef | None:
        """Follow a reference down to a commit hash.

        :return: The commit hash, or None for a missing or unborn ref.
        :raises InvalidObjectError: If a ref points at a hash with no stored object.
        :raises RefError: If symbolic refs form a cycle."""
        seen: set[str] = set()
        while isinstance(ref, SymRef):
            if ref in seen:
                msg = f'Symbolic reference cycle at {ref}'
                raise RefError(msg)
            seen.add(ref)
            ref = self.read(ref)

        match ref:
            case None:
                return None
            case HashRef():
                if not self.objects.exists(ref):
                    msg = f'Dangling reference to missing object {ref}'
                    raise InvalidObjectError(msg)
                return ref
            case _:
                msg = f'Invalid reference type: {type(ref)}'
                raise RefError(msg)

    def resolve_head(self) -> HashRef:
        """Return the commit HEAD points to.

        :raises UnbornBranchError: If HEAD is attached to a branch with no commits."""
        head = self.head()
        commit_hash = self.resolve(head)
        if commit_hash is None:
            raise UnbornBranchError(str(head).removeprefix(f'{HEADS_DIR}/'))
        return commit_hash

    def advance_head(self, commit_hash: str) -> None:
        """Move whatever HEAD designates (its branch, or HEAD itself) to a commit."""
        head = self.head()
        if isinstance(head, SymRef):
            self.set(head, commit_hash)
        else:
            self.set_head(HashRef(commit_hash))
