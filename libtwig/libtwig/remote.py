"""Remotes and replication of history between two repositories on the local filesystem."""

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from .exceptions import BranchNameConflictError, InvariantViolation, ObjectNotFoundError, UserError
from .graph import CommitGraph
from .layout import RepoLayout
from .objects import Commit
from .plumbing import initial_commit
from .ref import HashRef, RefStore
from .store import ObjectStore

R = TypeVar('R')

logger = logging.getLogger(__name__)


class RemoteRegistry:
    """Names of remote repositories and their locations, persisted as a JSON object."""

    def __init__(self, remotes_file: Path) -> None:
        self.remotes_file = remotes_file

    def _load(self) -> dict[str, str]:
        if not self.remotes_file.exists():
            return {}
        try:
            return dict(json.loads(self.remotes_file.read_text()))
        except ValueError as e:
            msg = f'Remotes file {self.remotes_file} is corrupted'
            raise InvariantViolation(msg) from e

    def _save(self, remotes: dict[str, str]) -> None:
        self.remotes_file.write_text(json.dumps(remotes, sort_keys=True, indent=2))

    def names(self) -> list[str]:
        return sorted(self._load())

    def add(self, name: str, location: str) -> None:
        """Register a remote.

        :raises UserError: If a remote with that name is already registered."""
        remotes = self._load()
        if name in remotes:
            msg = 'A remote with that name already exists.'
            raise UserError(msg)
        remotes[name] = location
        self._save(remotes)

    def remove(self, name: str) -> None:
        """Forget a remote. Branches fetched from it are kept.

        :raises UserError: If no remote with that name is registered."""
        remotes = self._load()
        if name not in remotes:
            msg = 'A remote with that name does not exist.'
            raise UserError(msg)
        del remotes[name]
        self._save(remotes)

    def location(self, name: str) -> str:
        """Get the location a remote was registered with.

        :raises UserError: If no remote with that name is registered."""
        remotes = self._load()
        if name not in remotes:
            msg = 'A remote with that name does not exist.'
            raise UserError(msg)
        return remotes[name]


def copy_history(source: ObjectStore, destination: ObjectStore, head: str) -> int:
    """Copy head and its ancestors that the destination lacks, along with their blobs.

    The walk stops at commits the destination already has, since their history is there too. Commits are
    written oldest first and each one after its blobs, so the destination never holds a commit whose
    parents or blobs are missing.

    :param source: The store to copy from.
    :param destination: The store to copy into.
    :param head: Digest of the newest commit to copy.
    :return: The number of commits copied."""
    pending: list[Commit] = []
    visited: set[str] = set()
    stack = [head]
    while stack:
        digest = stack.pop()
        if digest in visited or destination.has_commit(digest):
            continue
        visited.add(digest)
        try:
            commit = source.get_commit(digest)
        except ObjectNotFoundError as e:
            msg = f'Commit {digest} is referenced but not stored'
            raise InvariantViolation(msg) from e
        pending.append(commit)
        stack.extend(commit.parents())

    pending.sort(key=lambda c: c.timestamp)
    for commit in pending:
        for blob_hash in commit.snapshot.values():
            if destination.has_blob(blob_hash):
                continue
            try:
                blob = source.get_blob(blob_hash)
            except ObjectNotFoundError as e:
                msg = f'Blob {blob_hash} of commit {commit.hash} is referenced but not stored'
                raise InvariantViolation(msg) from e
            destination.put(blob)
        destination.put(commit)

    logger.debug('Copied %d commits up to %s', len(pending), head)
    return len(pending)


class Replicator:
    """Pushes and fetches branches between the local repository and registered remotes."""

    def __init__(self, objects: ObjectStore, refs: RefStore, graph: CommitGraph, remotes: RemoteRegistry,
                 working_dir: Path) -> None:
        self.objects = objects
        self.refs = refs
        self.graph = graph
        self.remotes = remotes
        self.working_dir = working_dir

    def open_remote(self, name: str) -> tuple[ObjectStore, RefStore]:
        """Open the object and ref stores of a registered remote.

        :raises UserError: If the remote is unknown or its directory does not exist."""
        location = Path(self.remotes.location(name))
        if not location.is_absolute():
            location = self.working_dir / location

        layout = RepoLayout(location)
        if not layout.exists():
            msg = 'Remote directory not found.'
            raise UserError(msg)

        return (ObjectStore(layout.objects_dir(), layout.commits_dir(), self.objects.hasher),
                RefStore(layout.heads_dir(), layout.head_file()))

    def push(self, remote: str, branch: str) -> HashRef:
        """Append the current branch's new commits to a branch of a remote.

        A branch missing from the remote starts at the root commit. The remote branch must be a main-parent
        ancestor of the local head; otherwise the remote has history the local repository lacks.

        :return: The digest the remote branch now points at.
        :raises UserError: If the remote cannot be opened or has diverged.
        :raises BranchNameConflictError: If the branch name clashes with an existing remote branch."""
        remote_objects, remote_refs = self.open_remote(remote)
        head = self.graph.load(self.refs.resolve(self.refs.current_branch_name()))

        if remote_refs.branch_exists(branch):
            remote_head = remote_refs.resolve(branch)
        else:
            remote_head = initial_commit(self.objects.hasher).hash

        if not (self.objects.has_commit(remote_head)
                and self.graph.is_ancestor(self.graph.load(remote_head), head, include_merge_parents=False)):
            msg = 'Please pull down remote changes before pushing.'
            raise UserError(msg)
        if not remote_refs.branch_exists(branch) and remote_refs.name_conflicts(branch):
            raise BranchNameConflictError

        copied = copy_history(self.objects, remote_objects, head.hash)
        if remote_refs.branch_exists(branch):
            remote_refs.move_branch(branch, head.hash)
        else:
            remote_refs.create_branch(branch, head.hash)

        logger.info('Pushed %d commits to %s/%s', copied, remote, branch)
        return head.hash

    def fetch(self, remote: str, branch: str) -> str:
        """Copy a remote branch's history and point the local '<remote>/<branch>' branch at its head.

        :return: The name of the local branch tracking the fetched head.
        :raises UserError: If the remote cannot be opened or lacks the branch.
        :raises BranchNameConflictError: If '<remote>/<branch>' clashes with an existing local branch."""
        remote_objects, remote_refs = self.open_remote(remote)
        if not remote_refs.branch_exists(branch):
            msg = 'That remote does not have that branch.'
            raise UserError(msg)

        local_branch = f'{remote}/{branch}'
        if not self.refs.branch_exists(local_branch) and self.refs.name_conflicts(local_branch):
            raise BranchNameConflictError

        remote_head = remote_refs.resolve(branch)
        copied = copy_history(remote_objects, self.objects, remote_head)

        if self.refs.branch_exists(local_branch):
            self.refs.move_branch(local_branch, remote_head)
        else:
            self.refs.create_branch(local_branch, remote_head)

        logger.info('Fetched %d commits from %s/%s', copied, remote, branch)
        return local_branch

    def pull(self, remote: str, branch: str, merge: Callable[[str], R]) -> R:
        """Fetch a remote branch and merge the fetched head into the current branch.

        :param merge: Merges a local branch by name into the current branch.
        :return: Whatever merge returns."""
        return merge(self.fetch(remote, branch))
