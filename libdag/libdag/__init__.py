"""libdag: a content-addressed version-control core with three-way merge and push/fetch."""

import logging

from .objects import Blob, Commit, Tree, TreeRecord, TreeRecordType
from .errors import (AlreadyInConflictError, BareRepositoryError, BranchExistsError, InvalidObjectError,
                     LocalChangesError, NoCommonAncestorError, NonFastForwardError, NothingToCommitError,
                     ObjectNotFoundError, RefNotFoundError, RefusedCheckedOutBranchError, RemoteNotFoundError,
                     RepositoryError, RepositoryNotFoundError, UnbornBranchError, UnresolvedConflictsError)
from .ref import HashRef, Ref, RefError, SymRef, branch_ref, remote_ref
from .index import Index, IndexKey, Stage
from .plumbing import ObjectStore, hash_object
from .merge import MergeResult, MergeStatus
from .remote import FetchResult, PushResult
from .storage import DirectoryStorage, MemoryStorage, Storage
from .worktree import DirectoryWorkingTree, MemoryWorkingTree, WorkingTree
from .repository import LogEntry, Repository

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'AlreadyInConflictError', 'BareRepositoryError', 'Blob', 'BranchExistsError', 'Commit', 'DirectoryStorage',
    'DirectoryWorkingTree', 'FetchResult', 'HashRef', 'Index', 'IndexKey', 'InvalidObjectError',
    'LocalChangesError', 'LogEntry', 'MemoryStorage', 'MemoryWorkingTree', 'MergeResult', 'MergeStatus',
    'NoCommonAncestorError', 'NonFastForwardError', 'NothingToCommitError', 'ObjectNotFoundError', 'ObjectStore',
    'PushResult', 'Ref', 'RefError', 'RefNotFoundError', 'RefusedCheckedOutBranchError', 'RemoteNotFoundError',
    'Repository', 'RepositoryError', 'RepositoryNotFoundError', 'Storage', 'SymRef', 'Tree', 'TreeRecord',
    'TreeRecordType', 'UnbornBranchError', 'UnresolvedConflictsError', 'WorkingTree', 'branch_ref',
    'hash_object', 'remote_ref',
]
