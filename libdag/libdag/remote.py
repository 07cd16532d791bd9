"""Synchronizing two repositories by transferring only missing history."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .constants import DEFAULT_BRANCH, DEFAULT_REMOTE
from .errors import NonFastForwardError, RefNotFoundError, RefusedCheckedOutBranchError, UnbornBranchError
from .graph import can_fast_forward, missing_objects
from .plumbing import ObjectStore
from .ref import HashRef, branch_ref, remote_ref

if TYPE_CHECKING:
    from .repository import Repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushResult:
    """What a push did to one remote branch."""

    branch: str
    remote_branch: str
    old: HashRef | None
    new: HashRef
    transferred: int = 0
    forced: bool = False

    @property
    def up_to_date(self) -> bool:
        return self.old == self.new


@dataclass(frozen=True)
class FetchResult:
    """Remote branch tips observed by a fetch and how many objects it copied."""

    remote: str
    updated: dict[str, HashRef] = field(default_factory=dict)
    transferred: int = 0


def transfer_objects(source: ObjectStore, destination: ObjectStore, hashes: Iterable[str]) -> int:
    """Copy objects byte for byte, skipping those the destination already holds.

    Each copy is verified against its hash on arrival. A failure propagates
    immediately; objects copied so far stay, which is harmless since the
    store is content-addressed.

    :return: The number of objects actually written."""
    count = 0
    for object_hash in sorted(hashes):
        if destination.exists(object_hash):
            continue
        destination.write_raw(source.read_raw(object_hash), object_hash)
        count += 1
    return count


def _local_tips(repo: 'Repository') -> list[HashRef]:
    tips = [repo.refs.get(branch_ref(branch)) for branch in repo.refs.list_branches()]
    for remote in repo.config.remotes():
        tips.extend(repo.refs.get(remote_ref(remote, branch)) for branch in repo.refs.list_remote_branches(remote))
    return [tip for tip in tips if tip is not None]


def push(
    local: 'Repository',
    remote: 'Repository',
    branch: str,
    *,
    remote_branch: str | None = None,
    remote_name: str | None = None,
    force: bool = False,
) -> PushResult:
    """Send a local branch to a remote repository.

    :param local: The repository pushing.
    :param remote: The repository receiving.
    :param branch: The local branch whose tip is pushed.
    :param remote_branch: The branch to update on the remote. Defaults to branch.
    :param remote_name: When given, the local remote-tracking ref for this remote is updated too.
    :param force: Overwrite the remote branch even if it is not an ancestor of the pushed tip.
    :raises UnbornBranchError: If the local branch has no commits.
    :raises RefusedCheckedOutBranchError: If the remote is not bare and has the branch checked out.
    :raises NonFastForwardError: If the update would drop remote commits and force is not set."""
    remote_branch = remote_branch or branch
    local_tip = local.refs.get(branch_ref(branch))
    if local_tip is None:
        raise UnbornBranchError(branch)

    # Checked regardless of force
    if not remote.is_bare() and remote.refs.current_branch() == remote_branch:
        raise RefusedCheckedOutBranchError(remote_branch)

    remote_tip = remote.refs.get(branch_ref(remote_branch))
    if remote_tip == local_tip:
        return PushResult(branch, remote_branch, remote_tip, local_tip)

    fast_forward = can_fast_forward(local.objects, remote_tip, local_tip)
    if not fast_forward and not force:
        msg = f'Failed to push {branch}: remote {remote_branch} at {remote_tip} is not an ancestor of {local_tip}'
        raise NonFastForwardError(msg)

    have = [remote_tip] if remote_tip is not None else []
    transferred = transfer_objects(local.objects, remote.objects, missing_objects(local.objects, have, local_tip))

    remote.refs.set(branch_ref(remote_branch), local_tip)
    if remote_name is not None:
        local.refs.set(remote_ref(remote_name, remote_branch), local_tip)

    logger.debug('Pushed %s -> %s (%s..%s, %d objects, forced=%s)',
                 branch, remote_branch, remote_tip, local_tip, transferred, not fast_forward)
    return PushResult(branch, remote_branch, remote_tip, local_tip, transferred, not fast_forward)


def fetch(local: 'Repository', remote: 'Repository', remote_name: str, branch: str | None = None) -> FetchResult:
    """Copy the history of remote branches and record their tips as remote-tracking refs.

    :param local: The repository receiving objects.
    :param remote: The repository fetched from.
    :param remote_name: The name the remote is known by locally.
    :param branch: Fetch only this branch. Defaults to every branch.
    :raises RefNotFoundError: If the requested branch does not exist on the remote."""
    if branch is not None:
        if remote.refs.get(branch_ref(branch)) is None:
            msg = f"Couldn't find remote ref {branch} in {remote_name}"
            raise RefNotFoundError(msg)
        branches = [branch]
    else:
        branches = remote.refs.list_branches()

    have = _local_tips(local)
    updated: dict[str, HashRef] = {}
    transferred = 0
    for name in branches:
        tip = remote.refs.get(branch_ref(name))
        if tip is None:
            continue

        transferred += transfer_objects(remote.objects, local.objects, missing_objects(remote.objects, have, tip))
        local.refs.set(remote_ref(remote_name, name), tip)
        updated[name] = tip
        have.append(tip)

    logger.debug('Fetched %d branches from %s (%d objects)', len(updated), remote_name, transferred)
    return FetchResult(remote_name, updated, transferred)


def clone(source: 'Repository', target: 'Repository', url: str, remote_name: str = DEFAULT_REMOTE) -> FetchResult:
    """Initialize target as a copy of source.

    The target records source as a remote, fetches all of its branches, and
    creates the branch source has checked out (or the default branch), set
    to track its remote counterpart and checked out unless target is bare."""
    branch = source.refs.current_branch() or DEFAULT_BRANCH
    target.init(default_branch=branch)
    target.config.add_remote(remote_name, url)

    result = fetch(target, source, remote_name)
    tip = result.updated.get(branch)
    if tip is None:
        logger.debug('Cloned %s without commits on %s', url, branch)
        return result

    target.refs.set(branch_ref(branch), tip)
    target.config.set_upstream(branch, remote_name, branch)
    if not target.is_bare():
        target.reset_hard(tip)
    return result
