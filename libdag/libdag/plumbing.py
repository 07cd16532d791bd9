"""Content-addressed object store and tree plumbing."""

import hashlib
from collections.abc import Iterator, Mapping

from .constants import OBJECTS_SUBDIR
from .errors import InvalidObjectError, ObjectNotFoundError, RepositoryError
from .objects import (Blob, Commit, DagObject, Tree, TreeRecord, TreeRecordType, deserialize_object,
                      serialize_object)
from .ref import HashRef, is_hash
from .storage import Storage


def hash_bytes(data: bytes) -> HashRef:
    """Return the object id of already-serialized bytes."""
    return HashRef(hashlib.sha1(data).hexdigest())


def hash_object(obj: DagObject) -> HashRef:
    """Return the object id of an object: the hash of its serialized form."""
    return hash_bytes(serialize_object(obj))


def hash_string(content: str | bytes) -> HashRef:
    """Return the id a blob with the given content would be stored under."""
    if isinstance(content, str):
        content = content.encode('utf-8')
    return hash_object(Blob(content))


def get_content_key(object_hash: str) -> str:
    """Storage key of an object, fanned out by its first two hash characters."""
    return f'{OBJECTS_SUBDIR}/{object_hash[:2]}/{object_hash}'


class ObjectStore:
    """Append-only store of blobs, trees and commits keyed by content hash.

    Objects are written once and never updated; writing identical content
    again is a no-op that returns the same hash."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def exists(self, object_hash: str) -> bool:
        return is_hash(object_hash) and get_content_key(object_hash) in self.storage

    def write(self, obj: DagObject) -> HashRef:
        """Store an object and return its hash.

        :param obj: The blob, tree or commit to store.
        :return: The content hash of the object."""
        data = serialize_object(obj)
        object_hash = hash_bytes(data)
        key = get_content_key(object_hash)
        if key not in self.storage:
            self.storage.set(key, data)
        return object_hash

    def write_raw(self, data: bytes, expected_hash: str | None = None) -> HashRef:
        """Store already-serialized object bytes, e.g. copied from another store.

        :raises InvalidObjectError: If the bytes do not parse, or hash to something other than expected_hash."""
        object_hash = hash_bytes(data)
        if expected_hash is not None and object_hash != expected_hash:
            msg = f'Object content hashes to {object_hash}, expected {expected_hash}'
            raise InvalidObjectError(msg)
        try:
            deserialize_object(data)
        except ValueError as e:
            msg = f'Refusing to store malformed object {object_hash}'
            raise InvalidObjectError(msg) from e

        key = get_content_key(object_hash)
        if key not in self.storage:
            self.storage.set(key, data)
        return object_hash

    def read_raw(self, object_hash: str) -> bytes:
        """Return the exact stored bytes of an object.

        :raises ObjectNotFoundError: If no object has this hash."""
        data = self.storage.get(get_content_key(object_hash)) if is_hash(object_hash) else None
        if data is None:
            raise ObjectNotFoundError(object_hash)
        return data

    def read(self, object_hash: str) -> DagObject:
        """Load an object by hash.

        :raises ObjectNotFoundError: If no object has this hash.
        :raises InvalidObjectError: If the stored bytes do not deserialize."""
        data = self.read_raw(object_hash)
        try:
            return deserialize_object(data)
        except ValueError as e:
            msg = f'Object {object_hash} is corrupted'
            raise InvalidObjectError(msg) from e

    def _read_kind[T](self, object_hash: str, kind: type[T]) -> T:
        obj = self.read(object_hash)
        if not isinstance(obj, kind):
            msg = f'Object {object_hash} is a {type(obj).__name__.lower()}, expected a {kind.__name__.lower()}'
            raise InvalidObjectError(msg)
        return obj

    def load_blob(self, object_hash: str) -> Blob:
        return self._read_kind(object_hash, Blob)

    def load_tree(self, object_hash: str) -> Tree:
        return self._read_kind(object_hash, Tree)

    def load_commit(self, object_hash: str) -> Commit:
        return self._read_kind(object_hash, Commit)

    def hashes(self) -> Iterator[HashRef]:
        """Iterate over the hashes of all stored objects."""
        prefix = f'{OBJECTS_SUBDIR}/'
        for key in self.storage.keys(prefix):
            yield HashRef(key.rsplit('/', 1)[-1])


def flatten_tree(objects: ObjectStore, tree_hash: str, prefix: str = '') -> dict[str, HashRef]:
    """Recursively walk a tree into a flat mapping of path to blob hash.

    :param objects: The store holding the tree.
    :param tree_hash: The root tree to flatten.
    :param prefix: Path prefix prepended to every entry.
    :return: A mapping of ``/``-separated paths to blob hashes."""
    files: dict[str, HashRef] = {}
    for name, record in objects.load_tree(tree_hash).records.items():
        path = f'{prefix}/{name}' if prefix else name
        if record.type == TreeRecordType.TREE:
            files.update(flatten_tree(objects, record.hash, path))
        else:
            files[path] = HashRef(record.hash)
    return files


def build_tree(objects: ObjectStore, files: Mapping[str, str]) -> HashRef:
    """Write nested trees for a flat path-to-blob mapping and return the root hash.

    The result only depends on the mapping's content, never on its order.

    :raises RepositoryError: If a path is used both as a file and as a directory."""
    root: dict = {}
    for path, blob_hash in files.items():
        *dirs, name = path.split('/')
        node = root
        for part in dirs:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                msg = f'Path {path} conflicts with file {part}'
                raise RepositoryError(msg)
            node = child
        if isinstance(node.get(name), dict):
            msg = f'Path {path} conflicts with a directory'
            raise RepositoryError(msg)
        node[name] = blob_hash

    def write_level(node: dict) -> HashRef:
        records: dict[str, TreeRecord] = {}
        for name, value in node.items():
            if isinstance(value, dict):
                records[name] = TreeRecord(TreeRecordType.TREE, write_level(value), name)
            else:
                records[name] = TreeRecord(TreeRecordType.BLOB, value, name)
        return objects.write(Tree(records))

    return write_level(root)
