"""Immutable repository objects and their serialized form."""

from dataclasses import dataclass, field
from enum import StrEnum


class TreeRecordType(StrEnum):
    """Kind of object a tree record points to."""

    BLOB = 'blob'
    TREE = 'tree'


class ObjectKind(StrEnum):
    """Kind tag written in front of every serialized object."""

    BLOB = 'blob'
    TREE = 'tree'
    COMMIT = 'commit'


@dataclass(frozen=True)
class Blob:
    """Raw content of one file version."""

    content: bytes


@dataclass(frozen=True)
class TreeRecord:
    """A named entry of a tree, pointing to a blob or a subtree by hash."""

    type: TreeRecordType
    hash: str
    name: str

    def __post_init__(self) -> None:
        if not self.name or self.name in ('.', '..') or any(c in self.name for c in '/\n\0'):
            msg = f'Invalid tree record name: {self.name!r}'
            raise ValueError(msg)


@dataclass(frozen=True)
class Tree:
    """One directory level, mapping names to records."""

    records: dict[str, TreeRecord] = field(default_factory=dict)


@dataclass(frozen=True)
class Commit:
    """A tree snapshot plus its parent commits and metadata.

    Zero parents marks a root commit, two or more a merge commit."""

    tree_hash: str
    author: str
    message: str
    timestamp: str
    parents: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if any(c in value for value in (self.author, self.timestamp) for c in '\n\0'):
            msg = 'Commit author and timestamp must be single-line'
            raise ValueError(msg)

    @property
    def parent(self) -> str | None:
        """The first parent, or None for a root commit."""
        return self.parents[0] if self.parents else None


type DagObject = Blob | Tree | Commit


def object_kind(obj: DagObject) -> ObjectKind:
    match obj:
        case Blob():
            return ObjectKind.BLOB
        case Tree():
            return ObjectKind.TREE
        case Commit():
            return ObjectKind.COMMIT
        case _:
            msg = f'Not a repository object: {type(obj).__name__}'
            raise TypeError(msg)


def _tree_body(tree: Tree) -> bytes:
    lines = [f'{record.type} {record.hash} {name}\n'
             for name, record in sorted(tree.records.items())]
    return ''.join(lines).encode('utf-8')


def _commit_body(commit: Commit) -> bytes:
    header = [f'tree {commit.tree_hash}']
    header.extend(f'parent {parent}' for parent in commit.parents)
    header.append(f'author {commit.author}')
    header.append(f'date {commit.timestamp}')
    return ('\n'.join(header) + '\n\n' + commit.message).encode('utf-8')


def serialize_object(obj: DagObject) -> bytes:
    """Serialize an object to its exact stored byte form.

    The form is ``<kind> <length>\\0<body>``; tree records are written in name
    order and commit fields in a fixed order, so logically equal objects
    always serialize identically."""
    kind = object_kind(obj)
    match obj:
        case Blob(content):
            body = content
        case Tree():
            body = _tree_body(obj)
        case Commit():
            body = _commit_body(obj)

    return f'{kind} {len(body)}\0'.encode('ascii') + body


def _parse_tree(body: bytes) -> Tree:
    records: dict[str, TreeRecord] = {}
    for line in body.decode('utf-8').split('\n'):
        if not line:
            continue
        record_type, record_hash, name = line.split(' ', 2)
        records[name] = TreeRecord(TreeRecordType(record_type), record_hash, name)
    return Tree(records)


def _parse_commit(body: bytes) -> Commit:
    header, _, message = body.decode('utf-8').partition('\n\n')
    tree_hash = author = timestamp = None
    parents: list[str] = []
    for line in header.split('\n'):
        key, _, value = line.partition(' ')
        match key:
            case 'tree':
                tree_hash = value
            case 'parent':
                parents.append(value)
            case 'author':
                author = value
            case 'date':
                timestamp = value
            case _:
                msg = f'Unknown commit header {key!r}'
                raise ValueError(msg)

    if tree_hash is None or author is None or timestamp is None:
        msg = 'Commit is missing a required header'
        raise ValueError(msg)
    return Commit(tree_hash, author, message, timestamp, tuple(parents))


def deserialize_object(data: bytes) -> DagObject:
    """Parse bytes produced by `serialize_object`.

    :raises ValueError: If the data is not a well-formed object."""
    header, sep, body = data.partition(b'\0')
    if not sep:
        msg = 'Missing object header'
        raise ValueError(msg)

    kind_name, _, length = header.decode('ascii').partition(' ')
    kind = ObjectKind(kind_name)
    if int(length) != len(body):
        msg = f'Object length mismatch: header says {length}, body has {len(body)}'
        raise ValueError(msg)

    match kind:
        case ObjectKind.BLOB:
            return Blob(body)
        case ObjectKind.TREE:
            return _parse_tree(body)
        case ObjectKind.COMMIT:
            return _parse_commit(body)
