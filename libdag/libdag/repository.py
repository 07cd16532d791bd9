"""libdag repository management."""

from collections.abc import Callable, Generator, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Concatenate

from . import graph, remote
from .config import Config
from .constants import (DEFAULT_AUTHOR, DEFAULT_BRANCH, DEFAULT_REMOTE, DEFAULT_REPO_DIR, HEAD_FILE, HEADS_DIR,
                        MERGE_HEAD_FILE, MERGE_MSG_FILE, REMOTES_DIR)
from .errors import (AlreadyInConflictError, BareRepositoryError, InvalidObjectError, LocalChangesError,
                     NoCommonAncestorError, NothingToCommitError, RefNotFoundError, RepositoryError,
                     RepositoryNotFoundError, UnbornBranchError, UnresolvedConflictsError)
from .index import Index, Stage
from .merge import MergeResult, MergeStatus, merge_trees
from .objects import Blob, Commit
from .plumbing import ObjectStore, build_tree, flatten_tree, hash_string
from .ref import HashRef, Ref, RefError, RefStore, SymRef, branch_ref, is_hash, remote_ref
from .storage import DirectoryStorage, MemoryStorage, Storage
from .worktree import DirectoryWorkingTree, MemoryWorkingTree, WorkingTree, materialize


@dataclass
class LogEntry:
    """A class representing a log entry for a branch or commit history."""

    commit_ref: HashRef
    commit: Commit


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='seconds')


class Repository:
    """Represents a libdag repository.

    A repository bundles an object store, an index, refs and config kept in
    one storage backend, plus an optional working tree (bare repositories
    have none). Nothing is shared between handles, so several repositories
    can live side by side in one process."""

    def __init__(
        self,
        storage: Storage,
        working_tree: WorkingTree | None = None,
        connect: Callable[[str], 'Repository'] | None = None,
    ) -> None:
        """Initialize a Repository handle. Nothing is written until `init()` is called.

        :param storage: The backend holding objects, refs, index and config.
        :param working_tree: Where checked-out files live. None for a bare repository.
        :param connect: Opens the repository behind a remote url. Defaults to `Repository.open`."""
        self.storage = storage
        self.working_tree = working_tree
        self.objects = ObjectStore(storage)
        self.refs = RefStore(storage, self.objects)
        self.index = Index(storage, self.objects)
        self.config = Config(storage)
        self.connect = connect or Repository.open

    @classmethod
    def at(cls, working_dir: Path | str, repo_dir: Path | str | None = None, *, bare: bool = False) -> 'Repository':
        """Create a handle for a repository on the filesystem.

        :param working_dir: The working directory, or the repository directory itself when bare.
        :param repo_dir: The name of the repository directory within the working directory. Defaults to '.dag'.
        :param bare: Whether the repository has no working tree."""
        working_dir = Path(working_dir)
        if bare:
            return cls(DirectoryStorage(working_dir))

        repo_dir = Path(repo_dir or DEFAULT_REPO_DIR)
        return cls(DirectoryStorage(working_dir / repo_dir),
                   DirectoryWorkingTree(working_dir, ignore=(repo_dir.parts[0],)))

    @classmethod
    def open(cls, location: Path | str) -> 'Repository':
        """Open an existing repository, telling bare and non-bare layouts apart.

        :raises RepositoryNotFoundError: If no repository exists at the location."""
        path = Path(location)
        if (path / DEFAULT_REPO_DIR / HEAD_FILE).is_file():
            return cls.at(path)
        if (path / HEAD_FILE).is_file():
            return cls.at(path, bare=True)

        msg = f'{location} does not appear to be a repository'
        raise RepositoryNotFoundError(msg)

    @classmethod
    def memory(cls, *, bare: bool = False, connect: Callable[[str], 'Repository'] | None = None) -> 'Repository':
        """Create a handle for a repository kept entirely in memory."""
        return cls(MemoryStorage(), None if bare else MemoryWorkingTree(), connect)

    @classmethod
    def clone(cls, source: Path | str, target: Path | str, *, bare: bool = False,
              remote_name: str = DEFAULT_REMOTE) -> 'Repository':
        """Clone the repository at source into a new repository at target.

        :raises RepositoryNotFoundError: If source is not a repository.
        :raises RepositoryError: If target already holds a repository."""
        source_repo = cls.open(source)
        target_repo = cls.at(target, bare=bare)
        remote.clone(source_repo, target_repo, str(source), remote_name)
        return target_repo

    def init(self, default_branch: str = DEFAULT_BRANCH) -> None:
        """Initialize a new repository.

        HEAD is attached to default_branch, which stays unborn until the first commit.

        :param default_branch: The name of the default branch. Defaults to 'master'.
        :raises RepositoryError: If the repository already exists."""
        if self.exists():
            msg = 'Repository already exists'
            raise RepositoryError(msg)

        self.config.init(bare=self.working_tree is None)
        self.refs.set_head(branch_ref(default_branch))
        self.index.clear()

    def exists(self) -> bool:
        """Check if the repository has been initialized.

        :return: True if the repository exists, False otherwise."""
        return self.storage.exists() and HEAD_FILE in self.storage

    @staticmethod
    def requires_repo[**P, R](func: Callable[Concatenate['Repository', P], R]) -> \
            Callable[Concatenate['Repository', P], R]:
        """Decorate a Repository method to ensure that the repository exists before executing the method.

        :param func: The method to decorate.
        :return: A wrapper function that checks for the repository's existence."""

        @wraps(func)
        def _verify_repo(self: 'Repository', *args: P.args, **kwargs: P.kwargs) -> R:
            if not self.exists():
                msg = 'Repository not initialized'
                raise RepositoryNotFoundError(msg)

            return func(self, *args, **kwargs)

        return _verify_repo

    def _worktree(self) -> WorkingTree:
        if self.working_tree is None:
            msg = 'This operation must be run in a work tree'
            raise BareRepositoryError(msg)
        return self.working_tree

    @requires_repo
    def is_bare(self) -> bool:
        return self.config.is_bare()

    @requires_repo
    def head_ref(self) -> Ref:
        """Get the current HEAD reference of the repository.

        :return: A SymRef to a branch when attached, a HashRef when detached.
        :raises RefError: If HEAD is missing.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        return self.refs.head()

    @requires_repo
    def head_commit(self) -> HashRef | None:
        """Return the commit HEAD resolves to, or None on an unborn branch."""
        return self.refs.resolve(self.refs.head())

    @requires_repo
    def current_branch(self) -> str | None:
        return self.refs.current_branch()

    @requires_repo
    def resolve_ref(self, ref: Ref | str | None) -> HashRef | None:
        """Resolve a reference to a commit hash, following symbolic references if necessary.

        Strings are tried as HEAD, a branch name, a remote-tracking name
        (``origin/master``), a full ref name and finally a full hash.

        :param ref: The reference to resolve. This can be a HashRef, SymRef, or a string.
        :return: The resolved HashRef or None if the reference is unborn.
        :raises RefError: If the reference is invalid or cannot be resolved.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        match ref:
            case HashRef():
                return self.refs.resolve(ref)
            case SymRef():
                if ref.upper() == HEAD_FILE:
                    return self.refs.resolve(self.refs.head())
                return self.refs.resolve(ref)
            case str():
                if ref.upper() == HEAD_FILE:
                    return self.refs.resolve(self.refs.head())
                for candidate in (f'{HEADS_DIR}/{ref}', f'{REMOTES_DIR}/{ref}', ref):
                    if self.refs.exists(candidate):
                        return self.refs.resolve(SymRef(candidate))
                if is_hash(ref):
                    return self.refs.resolve(HashRef(ref))

                msg = f'Invalid reference: {ref}'
                raise RefError(msg)
            case None:
                return None
            case _:
                msg = f'Invalid reference type: {type(ref)}'
                raise RefError(msg)

    def _resolve_commit(self, ref: Ref | str) -> HashRef:
        commit_hash = self.resolve_ref(ref)
        if commit_hash is None:
            msg = f'{ref} is not a valid object name'
            raise RefError(msg)
        return commit_hash

    @requires_repo
    def update_ref(self, ref_name: str, target: Ref | str) -> None:
        """Point a ref at the commit target resolves to.

        ``HEAD`` moves whatever HEAD designates: its branch, or HEAD itself when detached.

        :raises InvalidObjectError: If target does not resolve to a stored commit."""
        commit_hash = self._resolve_commit(target)
        if ref_name.upper() == HEAD_FILE:
            self.refs.advance_head(commit_hash)
        else:
            self.refs.set(ref_name, commit_hash)

    @requires_repo
    def add_branch(self, branch: str, target: Ref | str | None = None) -> None:
        """Add a new branch pointing at target, or at HEAD's commit.

        :param branch: The name of the branch to add.
        :param target: Where the branch starts. Defaults to HEAD.
        :raises ValueError: If the branch name is empty.
        :raises UnbornBranchError: If HEAD has no commit to branch from.
        :raises BranchExistsError: If the branch already exists.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not branch:
            msg = 'Branch name is required'
            raise ValueError(msg)

        commit_hash = self.resolve_ref(target) if target is not None else self.head_commit()
        if commit_hash is None:
            raise UnbornBranchError(self.refs.current_branch() or HEAD_FILE)
        self.refs.create_branch(branch, commit_hash)

    @requires_repo
    def delete_branch(self, branch: str) -> None:
        """Delete a branch from the repository.

        :param branch: The name of the branch to delete.
        :raises ValueError: If the branch name is empty.
        :raises RefNotFoundError: If the branch does not exist.
        :raises RepositoryError: If the branch is checked out.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not branch:
            msg = 'Branch name is required'
            raise ValueError(msg)
        if not self.refs.exists(branch_ref(branch)):
            msg = f'Branch "{branch}" does not exist.'
            raise RefNotFoundError(msg)
        if self.refs.current_branch() == branch:
            msg = f'Cannot delete the checked out branch "{branch}".'
            raise RepositoryError(msg)

        self.refs.delete(branch_ref(branch))

    @requires_repo
    def branches(self) -> list[str]:
        """Get the sorted names of all branches in the repository."""
        return self.refs.list_branches()

    def _stage_file(self, path: str, content: bytes) -> HashRef:
        blob_hash = self.objects.write(Blob(content))
        self.index.set(path, Stage.NORMAL, blob_hash)
        return blob_hash

    @requires_repo
    def add(self, path: str) -> None:
        """Stage a file, or every file below a directory, from the working tree.

        Staging a conflicted path marks it resolved. Staging a tracked path
        that no longer exists stages its removal.

        :raises RepositoryError: If nothing matches the path.
        :raises BareRepositoryError: If the repository has no working tree."""
        worktree = self._worktree()
        path = path.strip('/')

        content = worktree.read(path)
        if content is not None:
            self._stage_file(path, content)
            return

        matched = [item for item in worktree.paths() if item.startswith(f'{path}/')]
        tracked = [item for item in self.index.paths() if item == path or item.startswith(f'{path}/')]
        if not matched and not tracked:
            msg = f'Pathspec {path} did not match any files'
            raise RepositoryError(msg)

        for item in matched:
            self._stage_file(item, worktree.read(item))
        for item in set(tracked) - set(matched):
            self.index.remove_path(item)

    @requires_repo
    def rm(self, path: str) -> None:
        """Remove a tracked file from the index and the working tree.

        :raises RepositoryError: If the path is not tracked."""
        worktree = self._worktree()
        if path not in self.index.paths():
            msg = f'Pathspec {path} did not match any tracked files'
            raise RepositoryError(msg)

        self.index.remove_path(path)
        worktree.remove(path)

    @requires_repo
    def stage_all(self) -> None:
        """Make the index match the working tree exactly."""
        worktree = self._worktree()
        present = worktree.paths()
        for path in present:
            self._stage_file(path, worktree.read(path))
        for path in self.index.paths() - set(present):
            self.index.remove_path(path)

    @requires_repo
    def is_merging(self) -> bool:
        return MERGE_HEAD_FILE in self.storage

    def _merge_head(self) -> HashRef | None:
        data = self.storage.get(MERGE_HEAD_FILE)
        if data is None:
            return None

        merge_head = HashRef(data.decode('utf-8').strip())
        if not self.objects.exists(merge_head):
            msg = f'MERGE_HEAD points to missing commit {merge_head}'
            raise InvalidObjectError(msg)
        return merge_head

    def _clear_merge_state(self) -> None:
        self.storage.remove(MERGE_HEAD_FILE)
        self.storage.remove(MERGE_MSG_FILE)

    @requires_repo
    def commit(self, author: str, message: str, timestamp: str | None = None) -> HashRef:
        """Snapshot the index into a new commit on top of HEAD.

        While concluding a merge, the merged commit becomes the second parent.

        :param author: The name of the commit author.
        :param message: The commit message.
        :param timestamp: Commit time, stored verbatim. Defaults to now, in ISO 8601.
        :return: A HashRef object representing the commit reference.
        :raises ValueError: If the author or message is empty.
        :raises UnresolvedConflictsError: If the index holds conflict entries.
        :raises NothingToCommitError: If the tree equals HEAD's and no merge is being concluded.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not author:
            msg = 'Author is required'
            raise ValueError(msg)
        if not message:
            msg = 'Commit message is required'
            raise ValueError(msg)

        tree_hash = self.index.to_tree()
        parent_commit_ref = self.head_commit()
        merge_head = self._merge_head()

        if (merge_head is None and parent_commit_ref is not None
                and self.objects.load_commit(parent_commit_ref).tree_hash == tree_hash):
            msg = 'Nothing to commit, working tree clean'
            raise NothingToCommitError(msg)

        parents = tuple(parent for parent in (parent_commit_ref, merge_head) if parent is not None)
        commit = Commit(tree_hash, author, message, timestamp or _now(), parents)
        commit_ref = self.objects.write(commit)

        self.refs.advance_head(commit_ref)
        self._clear_merge_state()
        return commit_ref

    @requires_repo
    def commit_working_dir(self, author: str, message: str, timestamp: str | None = None) -> HashRef:
        """Stage the whole working tree, then commit it.

        :raises UnresolvedConflictsError: If a merge left conflicts; resolve them with `add` first."""
        conflicts = self.index.conflicted_paths()
        if conflicts:
            raise UnresolvedConflictsError(conflicts)

        self.stage_all()
        return self.commit(author, message, timestamp)

    @requires_repo
    def log(self, tip: Ref | str | None = None) -> Generator[LogEntry, None, None]:
        """Generate the history reachable from a commit, breadth-first over all parents.

        :param tip: The reference to the commit to start from. If None, defaults to the current HEAD.
        :return: A generator yielding LogEntry objects; nothing for an unborn branch.
        :raises InvalidObjectError: If a commit in the history is missing.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        start = self.resolve_ref(tip if tip is not None else self.refs.head())
        if start is None:
            return

        for commit_hash, commit in graph.walk(self.objects, start):
            yield LogEntry(commit_hash, commit)

    @requires_repo
    def common_ancestor(self, commit_ref1: Ref | str | None = None,
                        commit_ref2: Ref | str | None = None) -> HashRef | None:
        """Find the merge base of two commits, if one exists. Both default to HEAD."""
        commit_hash1 = self._resolve_commit(commit_ref1 if commit_ref1 is not None else self.refs.head())
        commit_hash2 = self._resolve_commit(commit_ref2 if commit_ref2 is not None else self.refs.head())
        return graph.merge_base(self.objects, commit_hash1, commit_hash2)

    @requires_repo
    def is_ancestor(self, ancestor: Ref | str, descendant: Ref | str) -> bool:
        return graph.is_ancestor(self.objects, self._resolve_commit(ancestor), self._resolve_commit(descendant))

    @requires_repo
    def can_fast_forward(self, old: Ref | str | None, new: Ref | str) -> bool:
        old_hash = self._resolve_commit(old) if old is not None else None
        return graph.can_fast_forward(self.objects, old_hash, self._resolve_commit(new))

    def _commit_files(self, commit_hash: str | None) -> dict[str, HashRef]:
        if commit_hash is None:
            return {}
        return flatten_tree(self.objects, self.objects.load_commit(commit_hash).tree_hash)

    def _ensure_clean(self, head_files: Mapping[str, str], paths: Iterable[str]) -> None:
        """Refuse to touch paths whose index entry or working file differs from HEAD."""
        worktree = self._worktree()
        index_files = self.index.files()
        dirty: set[str] = set()
        for path in paths:
            expected = head_files.get(path)
            content = worktree.read(path)
            current = hash_string(content) if content is not None else None
            if index_files.get(path) != expected or current != expected:
                dirty.add(path)
        if dirty:
            raise LocalChangesError(dirty)

    def _switch_files(self, head_files: Mapping[str, str], new_files: Mapping[str, str]) -> None:
        """Move the index and working tree from HEAD's files to new ones, keeping unrelated local changes."""
        changed = {path for path in head_files.keys() | new_files.keys()
                   if head_files.get(path) != new_files.get(path)}
        self._ensure_clean(head_files, changed)

        materialize(self._worktree(), self.objects,
                    {path: head_files[path] for path in changed if path in head_files},
                    {path: new_files[path] for path in changed if path in new_files})
        for path in sorted(changed):
            if path in new_files:
                self.index.set(path, Stage.NORMAL, new_files[path])
            else:
                self.index.remove_path(path)

    @requires_repo
    def checkout(self, target: str) -> None:
        """Checkout a branch (attaching HEAD) or a commit (detaching HEAD).

        :param target: A branch name, or anything `resolve_ref` accepts.
        :raises UnresolvedConflictsError: If a merge left conflicts.
        :raises LocalChangesError: If uncommitted changes would be overwritten.
        :raises RefError: If the target cannot be resolved.
        :raises BareRepositoryError: If the repository has no working tree."""
        self._worktree()
        if self.index.has_conflicts():
            raise UnresolvedConflictsError(self.index.conflicted_paths())
        if self.is_merging():
            msg = 'Cannot checkout before concluding the merge in progress'
            raise RepositoryError(msg)

        if self.refs.exists(branch_ref(target)):
            new_head: Ref = branch_ref(target)
            commit_hash = self.refs.resolve(new_head)
        else:
            commit_hash = self._resolve_commit(target)
            new_head = HashRef(commit_hash)

        self._switch_files(self._commit_files(self.head_commit()), self._commit_files(commit_hash))
        self.refs.set_head(new_head)

    @requires_repo
    def reset_hard(self, target: Ref | str | None = None) -> None:
        """Point HEAD at target and overwrite index and working tree to match it.

        Local changes and any merge in progress are discarded."""
        worktree = self._worktree()
        commit_hash = self._resolve_commit(target if target is not None else self.refs.head())
        files = self._commit_files(commit_hash)

        for path in sorted(self.index.paths() - set(files)):
            worktree.remove(path)
        materialize(worktree, self.objects, {}, files)
        self.index.replace(files)
        self.refs.advance_head(commit_hash)
        self._clear_merge_state()

    @requires_repo
    def merge(self, target: Ref | str, author: str = DEFAULT_AUTHOR, message: str | None = None,
              timestamp: str | None = None) -> MergeResult:
        """Merge a commit into the current HEAD.

        Already-merged targets are a no-op, descendants of HEAD are
        fast-forwarded, and anything else gets a three-way merge against the
        merge base. A clean three-way merge is committed with HEAD and target
        as parents; a conflicted one stages base/ours/theirs entries, writes
        marked-up files and waits for `commit` after the conflicts are resolved.

        :param target: The commit to merge in.
        :param author: Author of the merge commit.
        :param message: Message of the merge commit. Defaults to "Merge <target> into <branch>".
        :raises AlreadyInConflictError: If a previous merge is not concluded.
        :raises UnbornBranchError: If HEAD has no commit.
        :raises NoCommonAncestorError: If the histories are unrelated.
        :raises LocalChangesError: If uncommitted changes would be overwritten.
        :raises BareRepositoryError: If the repository has no working tree."""
        worktree = self._worktree()
        if self.index.has_conflicts() or self.is_merging():
            msg = 'A merge is already in progress; resolve it and commit first'
            raise AlreadyInConflictError(msg)

        ours = self.refs.resolve_head()
        theirs = self._resolve_commit(target)
        base = graph.merge_base(self.objects, ours, theirs)
        if base is None:
            msg = f'Refusing to merge unrelated histories {ours} and {theirs}'
            raise NoCommonAncestorError(msg)

        if base == theirs:
            return MergeResult(MergeStatus.UP_TO_DATE, ours, theirs, base)

        ours_files = self._commit_files(ours)
        if base == ours:
            self._switch_files(ours_files, self._commit_files(theirs))
            self.refs.advance_head(theirs)
            return MergeResult(MergeStatus.FAST_FORWARD, ours, theirs, base, theirs,
                               self.objects.load_commit(theirs).tree_hash)

        tree_merge = merge_trees(self.objects,
                                 self.objects.load_commit(base).tree_hash,
                                 self.objects.load_commit(ours).tree_hash,
                                 self.objects.load_commit(theirs).tree_hash)
        merged_files = tree_merge.files
        affected = {path for path in ours_files.keys() | merged_files.keys()
                    if ours_files.get(path) != merged_files.get(path)}
        set_aside = {conflict.worktree_path for conflict in tree_merge.conflicts if conflict.worktree_path}
        self._ensure_clean(ours_files, affected | set(tree_merge.conflicted_paths) | set_aside)

        message = message or f'Merge {target} into {self.refs.current_branch() or HEAD_FILE}'
        if not tree_merge.conflicts:
            tree_hash = build_tree(self.objects, merged_files)
            commit_ref = self.objects.write(Commit(tree_hash, author, message, timestamp or _now(), (ours, theirs)))
            self._switch_files(ours_files, merged_files)
            self.refs.advance_head(commit_ref)
            return MergeResult(MergeStatus.MERGED, ours, theirs, base, commit_ref, tree_hash)

        # Recorded first so abort_merge can always restore HEAD
        self.storage.set(MERGE_HEAD_FILE, f'{theirs}\n'.encode())
        self.storage.set(MERGE_MSG_FILE, message.encode('utf-8'))
        self._switch_files(ours_files, merged_files)
        for conflict in tree_merge.conflicts:
            self.index.stage_conflict(conflict.path, conflict.base, conflict.ours, conflict.theirs)
            worktree.write(conflict.worktree_path or conflict.path, conflict.content)
        return MergeResult(MergeStatus.CONFLICTED, ours, theirs, base,
                           conflicts=tuple(tree_merge.conflicted_paths))

    @requires_repo
    def abort_merge(self) -> None:
        """Abandon a merge in progress, restoring HEAD's index and files.

        :raises RepositoryError: If no merge is in progress."""
        if not self.is_merging():
            msg = 'There is no merge to abort'
            raise RepositoryError(msg)
        self.reset_hard()

    @requires_repo
    def merge_message(self) -> str | None:
        """The message prepared for the commit concluding a conflicted merge."""
        data = self.storage.get(MERGE_MSG_FILE)
        return data.decode('utf-8') if data is not None else None

    @requires_repo
    def add_remote(self, name: str, url: str) -> None:
        self.config.add_remote(name, url)

    @requires_repo
    def remote_repository(self, name: str) -> 'Repository':
        """Open the repository a configured remote points to.

        :raises RemoteNotFoundError: If the remote is not configured.
        :raises RepositoryNotFoundError: If nothing is found at the remote's url."""
        return self.connect(self.config.remote_url(name))

    def _require_branch(self, action: str) -> str:
        branch = self.refs.current_branch()
        if branch is None:
            msg = f'Cannot {action}: you are not currently on a branch'
            raise RepositoryError(msg)
        return branch

    @requires_repo
    def set_upstream(self, upstream: str, branch: str | None = None) -> None:
        """Make a local branch track a remote-tracking branch given as ``<remote>/<branch>``.

        :raises RepositoryError: If no branch is given and HEAD is detached.
        :raises UnbornBranchError: If the local branch has no commits.
        :raises RefNotFoundError: If the remote-tracking branch does not exist."""
        branch = branch or self._require_branch(f'set upstream to {upstream}')
        if self.refs.get(branch_ref(branch)) is None:
            raise UnbornBranchError(branch)

        remote_name, _, remote_branch = upstream.partition('/')
        if not remote_branch or self.refs.get(remote_ref(remote_name, remote_branch)) is None:
            msg = f'The requested upstream branch {upstream} does not exist'
            raise RefNotFoundError(msg)
        self.config.set_upstream(branch, remote_name, remote_branch)

    @requires_repo
    def fetch(self, remote_name: str = DEFAULT_REMOTE, branch: str | None = None) -> remote.FetchResult:
        """Fetch branches of a configured remote into ``<remote>/<branch>`` refs."""
        return remote.fetch(self, self.remote_repository(remote_name), remote_name, branch)

    @requires_repo
    def push(self, remote_name: str = DEFAULT_REMOTE, branch: str | None = None,
             force: bool = False) -> remote.PushResult:
        """Push a local branch (the current one by default) to a configured remote.

        The remote branch updated is the branch's upstream on that remote when
        one is configured, otherwise the branch of the same name.

        :raises RepositoryError: If no branch is given and HEAD is detached.
        :raises NonFastForwardError: If the remote has commits the local branch lacks and force is not set.
        :raises RefusedCheckedOutBranchError: If the target is checked out in a non-bare remote."""
        branch = branch or self._require_branch('push')
        upstream = self.config.upstream(branch)
        remote_branch = upstream[1] if upstream and upstream[0] == remote_name else branch
        return remote.push(self, self.remote_repository(remote_name), branch,
                           remote_branch=remote_branch, remote_name=remote_name, force=force)

    @requires_repo
    def pull(self, remote_name: str = DEFAULT_REMOTE, branch: str | None = None,
             author: str = DEFAULT_AUTHOR) -> MergeResult:
        """Fetch a remote branch and merge it into HEAD.

        :param branch: The remote branch. Defaults to the upstream of the current branch, else its name."""
        if branch is None:
            local_branch = self._require_branch('pull')
            upstream = self.config.upstream(local_branch)
            branch = upstream[1] if upstream and upstream[0] == remote_name else local_branch

        self.fetch(remote_name, branch)
        return self.merge(remote_ref(remote_name, branch), author=author,
                          message=f'Merge {remote_name}/{branch}')
