"""libtwig repository management."""

import logging
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import wraps
from pathlib import Path
from typing import Concatenate, ParamSpec, TypeVar

from .constants import DEFAULT_BRANCH, DEFAULT_REPO_DIR
from .exceptions import (NoSuchBranchError, NoSuchCommitError, ObjectNotFoundError, RepositoryNotFoundError,
                         UntrackedFileError, UserError)
from .graph import CommitGraph
from .layout import RepoLayout
from .merge import MergeEngine, untracked_in_the_way
from .objects import Commit
from .plumbing import Hasher, hash_parts, initial_commit, make_blob, make_commit
from .ref import HashRef, RefStore
from .remote import RemoteRegistry, Replicator
from .staging import RemovalOutcome, StagingArea
from .store import ObjectStore
from .workdir import WorkingTree

P = ParamSpec('P')
R = TypeVar('R')

logger = logging.getLogger(__name__)


@dataclass
class LogEntry:
    """A class representing a log entry for a branch or commit history."""

    commit_ref: HashRef
    commit: Commit

    def __str__(self) -> str:
        commit = self.commit
        date = datetime.fromtimestamp(commit.timestamp).astimezone()
        lines = ['===', f'commit {self.commit_ref}']
        if commit.parent and commit.second_parent:
            lines.append(f'Merge: {commit.parent[:7]} {commit.second_parent[:7]}')
        lines.append(f'Date: {date:%a %b} {date.day} {date:%H:%M:%S %Y %z}')
        lines.append(commit.message)
        return '\n'.join(lines) + '\n'


@dataclass
class Status:
    """Branches, staged changes and unstaged working-tree changes of a repository."""

    branches: list[str]
    current_branch: str
    staged: list[str]
    removed: list[str]
    modified: dict[str, str] = field(default_factory=dict)
    untracked: list[str] = field(default_factory=list)


class MergeKind(Enum):
    NO_OP = 'no-op'
    FAST_FORWARD = 'fast-forward'
    MERGED = 'merged'


@dataclass
class MergeReport:
    """What a merge of a branch into the current branch did."""

    kind: MergeKind
    commit_ref: HashRef
    conflicts: list[str] = field(default_factory=list)

    @property
    def message(self) -> str | None:
        """The line to show the user, if any."""
        match self.kind:
            case MergeKind.NO_OP:
                return 'Given branch is an ancestor of the current branch.'
            case MergeKind.FAST_FORWARD:
                return 'Current branch fast-forwarded.'
            case _:
                return 'Encountered a merge conflict.' if self.conflicts else None


class Repository:
    """Represents a libtwig repository.

    This class provides the verb-level operations of the repository: staging and committing files, managing
    branches, checking out, merging, and exchanging history with remotes. Each operation validates its
    input before changing anything and raises a UserError carrying the message to show otherwise."""

    def __init__(self, working_dir: Path | str, repo_dir: Path | str | None = None,
                 hasher: Hasher | None = None) -> None:
        """Initialize a Repository instance. The repository is not created on disk until `init()` is called.

        :param working_dir: The working directory where the repository will be located.
        :param repo_dir: The name of the repository directory within the working directory. Defaults to '.twig'.
        :param hasher: The hash function identifying objects. Defaults to SHA-1."""
        self.working_dir = Path(working_dir)

        if repo_dir is None:
            self.repo_dir = Path(DEFAULT_REPO_DIR)
        else:
            self.repo_dir = Path(repo_dir)

        self.hasher = hasher or hash_parts
        self.layout = RepoLayout(self.repo_path())

        self.objects = ObjectStore(self.objects_dir(), self.commits_dir(), self.hasher)
        self.refs = RefStore(self.heads_dir(), self.head_file())
        self.working_tree = WorkingTree(self.working_dir, self.repo_path())
        self.staging = StagingArea(self.layout.index_file(), self.layout.removed_file(), self.objects,
                                   self.working_tree, lambda: self.head_commit().snapshot)
        self.graph = CommitGraph(self.objects)
        self.merger = MergeEngine(self.objects, self.working_tree)
        self.remotes = RemoteRegistry(self.layout.remotes_file())
        self.replicator = Replicator(self.objects, self.refs, self.graph, self.remotes, self.working_dir)

    def init(self, default_branch: str = DEFAULT_BRANCH) -> None:
        """Initialize a new repository in the working directory.

        The repository starts with the root commit, shared by every repository, and one branch pointing at it.

        :param default_branch: The name of the default branch to create. Defaults to 'master'.
        :raises UserError: If the repository already exists."""
        if self.exists():
            msg = 'A version-control system already exists in the current directory.'
            raise UserError(msg)

        self.layout.create()
        root = initial_commit(self.hasher)
        self.objects.put(root)
        self.refs.create_branch(default_branch, root.hash)
        self.refs.set_current_branch(default_branch)
        self.staging.reset()
        logger.info('Initialized repository at %s', self.repo_path())

    def exists(self) -> bool:
        """Check if the repository exists in the working directory.

        :return: True if the repository exists, False otherwise."""
        return self.layout.exists()

    def repo_path(self) -> Path:
        """Get the path to the repository directory.

        :return: The path to the repository directory."""
        return self.working_dir / self.repo_dir

    def objects_dir(self) -> Path:
        """Get the path to the blob objects directory within the repository.

        :return: The path to the objects directory."""
        return self.layout.objects_dir()

    def commits_dir(self) -> Path:
        """Get the path to the commits directory within the repository."""
        return self.layout.commits_dir()

    def heads_dir(self) -> Path:
        """Get the path to the heads directory within the repository.

        :return: The path to the heads directory."""
        return self.layout.heads_dir()

    def head_file(self) -> Path:
        """Get the path to the HEAD file within the repository.

        :return: The path to the HEAD file."""
        return self.layout.head_file()

    @staticmethod
    def requires_repo(func: Callable[Concatenate['Repository', P], R]) -> \
            Callable[Concatenate['Repository', P], R]:
        """Decorate a Repository method to ensure that the repository exists before executing the method.

        :param func: The method to decorate.
        :return: A wrapper function that checks for the repository's existence."""

        @wraps(func)
        def _verify_repo(self: 'Repository', *args: P.args, **kwargs: P.kwargs) -> R:
            if not self.exists():
                msg = 'Not in an initialized repository directory.'
                raise RepositoryNotFoundError(msg)

            return func(self, *args, **kwargs)

        return _verify_repo

    @requires_repo
    def current_branch(self) -> str:
        """Get the name of the checked-out branch."""
        return self.refs.current_branch_name()

    @requires_repo
    def head_commit(self) -> Commit:
        """Get the commit the checked-out branch points at.

        :raises InvariantViolation: If HEAD or its branch point at something that is not stored."""
        return self.graph.load(self.refs.resolve(self.refs.current_branch_name()))

    def _find_commit(self, commit_id: str) -> Commit:
        try:
            return self.objects.get_by_prefix(commit_id)
        except ObjectNotFoundError as e:
            raise NoSuchCommitError from e

    def _file_key(self, path: str | Path) -> str:
        try:
            return self.working_tree.normalize(path)
        except ValueError as e:
            msg = 'File is outside the working directory.'
            raise UserError(msg) from e

    def _new_commit(self, message: str, snapshot: dict[str, HashRef], parent: Commit,
                    second_parent: Commit | None = None) -> Commit:
        # Never older than either parent, so timestamps grow along parent edges
        parents = [parent] if second_parent is None else [parent, second_parent]
        timestamp = max(datetime.now().timestamp(), *(p.timestamp for p in parents))
        commit = make_commit(message, timestamp, snapshot, parent.hash,
                             second_parent.hash if second_parent else None, self.hasher)
        self.objects.put(commit)
        return commit

    def _write_snapshot(self, current: Commit, target: Commit) -> None:
        """Make the working tree match target, for files tracked by either commit."""
        for path, blob_hash in target.snapshot.items():
            self.working_tree.write(path, self.objects.get_blob(blob_hash).content)
        for path in current.snapshot:
            if path not in target.snapshot:
                self.working_tree.delete(path)

    def _checkout_commit(self, target: Commit) -> None:
        current = self.head_commit()
        staged = self.staging.staged_for_addition()
        in_the_way = untracked_in_the_way(current, target, self.working_tree, staged)
        if in_the_way:
            raise UntrackedFileError(in_the_way)
        self._write_snapshot(current, target)

    @requires_repo
    def add(self, path: str | Path) -> None:
        """Stage the current content of a working file.

        :param path: The file, relative to the working directory.
        :raises UserError: If the file does not exist or lies outside the working directory."""
        key = self._file_key(path)
        if not self.working_tree.exists(key):
            msg = 'File does not exist.'
            raise UserError(msg)

        self.staging.stage_for_addition(key, self.working_tree.read(key))

    @requires_repo
    def commit(self, message: str) -> HashRef:
        """Record the staged changes on top of the current commit and advance the current branch.

        :param message: The commit message.
        :return: The digest of the new commit.
        :raises UserError: If the message is empty or nothing is staged."""
        if not message:
            msg = 'Please enter a commit message.'
            raise UserError(msg)

        added, removed = self.staging.snapshot_delta()
        if not added and not removed:
            msg = 'No changes added to the commit.'
            raise UserError(msg)

        head = self.head_commit()
        snapshot = {path: blob for path, blob in head.snapshot.items() if path not in removed}
        snapshot.update(added)

        commit = self._new_commit(message, snapshot, head)
        self.refs.move_branch(self.refs.current_branch_name(), commit.hash)
        self.staging.reset()

        logger.info('Committed %s: %s', commit.hash, message)
        return commit.hash

    @requires_repo
    def remove(self, path: str | Path) -> RemovalOutcome:
        """Unstage a file, or stop tracking it and delete it from the working tree.

        :raises NothingToRemoveError: If the file is neither staged nor tracked.
        :raises UserError: If the file lies outside the working directory."""
        return self.staging.stage_for_removal(self._file_key(path))

    @requires_repo
    def log(self) -> Generator[LogEntry, None, None]:
        """Generate the history of the current branch, following main parents back to the root commit.

        :return: A generator yielding LogEntry objects, newest first."""
        for commit in self.graph.walk_main_parents(self.head_commit()):
            yield LogEntry(commit.hash, commit)

    @requires_repo
    def log_all(self) -> Generator[LogEntry, None, None]:
        """Generate every commit ever stored, in no particular order."""
        for commit in self.objects.iter_commits():
            yield LogEntry(commit.hash, commit)

    @requires_repo
    def find(self, message: str) -> list[HashRef]:
        """Get the digests of all commits with exactly the given message."""
        return [commit.hash for commit in self.objects.iter_commits() if commit.message == message]

    @requires_repo
    def status(self) -> Status:
        """Describe branches, staged changes and working-tree changes."""
        head = self.head_commit()
        added, removed = self.staging.snapshot_delta()
        files = self.working_tree.files()

        def changed(path: str, blob_hash: str) -> str | None:
            if path not in files:
                return 'deleted'
            if make_blob(self.working_tree.read(path), self.hasher).hash != blob_hash:
                return 'modified'
            return None

        modified: dict[str, str] = {}
        for path, blob_hash in head.snapshot.items():
            if path in added or path in removed:
                continue
            if change := changed(path, blob_hash):
                modified[path] = change
        for path, blob_hash in added.items():
            if change := changed(path, blob_hash):
                modified[path] = change

        untracked = [path for path in files
                     if path not in added and (path not in head.snapshot or path in removed)]

        return Status(
            branches=sorted(self.refs.list_branches()),
            current_branch=self.refs.current_branch_name(),
            staged=sorted(added),
            removed=sorted(removed),
            modified=dict(sorted(modified.items())),
            untracked=sorted(untracked),
        )

    @requires_repo
    def checkout_file(self, path: str | Path) -> None:
        """Restore a working file to its version in the current commit.

        :raises UserError: If the current commit does not track the file."""
        self._checkout_file(self.head_commit(), self._file_key(path))

    @requires_repo
    def checkout_from_commit(self, commit_id: str, path: str | Path) -> None:
        """Restore a working file to its version in the given commit.

        :param commit_id: A full or abbreviated commit digest.
        :raises NoSuchCommitError: If no commit matches commit_id.
        :raises UserError: If the commit does not track the file."""
        self._checkout_file(self._find_commit(commit_id), self._file_key(path))

    def _checkout_file(self, commit: Commit, path: str) -> None:
        blob_hash = commit.file_hash(path)
        if blob_hash is None:
            msg = 'File does not exist in that commit.'
            raise UserError(msg)
        self.working_tree.write(path, self.objects.get_blob(blob_hash).content)

    @requires_repo
    def checkout_branch(self, name: str) -> None:
        """Switch to another branch, rewriting the working tree to its commit.

        Files tracked by the current commit but not by the branch's are deleted. The staging area is cleared.

        :raises NoSuchBranchError: If the branch does not exist.
        :raises UserError: If the branch is already checked out.
        :raises UntrackedFileError: If an untracked file would be overwritten."""
        if not self.refs.branch_exists(name):
            msg = 'No such branch exists.'
            raise NoSuchBranchError(msg)
        if name == self.refs.current_branch_name():
            msg = 'No need to checkout the current branch.'
            raise UserError(msg)

        self._checkout_commit(self.graph.load(self.refs.resolve(name)))
        self.refs.set_current_branch(name)
        self.staging.reset()
        logger.info('Checked out branch %s', name)

    @requires_repo
    def branch(self, name: str) -> None:
        """Create a branch pointing at the current commit, without checking it out.

        :raises BranchExistsError: If the branch already exists."""
        self.refs.create_branch(name, self.head_commit().hash)

    @requires_repo
    def remove_branch(self, name: str) -> None:
        """Delete a branch pointer.

        :raises NoSuchBranchError: If the branch does not exist.
        :raises CurrentBranchError: If the branch is checked out."""
        self.refs.delete_branch(name)

    @requires_repo
    def branches(self) -> list[str]:
        """Get a sorted list of all branch names in the repository."""
        return sorted(self.refs.list_branches())

    @requires_repo
    def reset(self, commit_id: str) -> None:
        """Check out an arbitrary commit and move the current branch to it.

        :param commit_id: A full or abbreviated commit digest.
        :raises NoSuchCommitError: If no commit matches commit_id.
        :raises UntrackedFileError: If an untracked file would be overwritten."""
        target = self._find_commit(commit_id)
        self._checkout_commit(target)
        self.refs.move_branch(self.refs.current_branch_name(), target.hash)
        self.staging.reset()
        logger.info('Reset to %s', target.hash)

    @requires_repo
    def merge(self, branch: str) -> MergeReport:
        """Merge a branch into the current branch.

        When the branch is already part of the current history nothing happens; when the current commit is
        part of the branch's history the current branch is fast-forwarded. Otherwise every file is reconciled
        against the split point and a merge commit with both heads as parents is created. Conflicting files
        are written with conflict markers and committed as such; conflicts do not fail the merge.

        :param branch: The name of the branch to merge in.
        :return: A MergeReport describing the outcome.
        :raises UserError: If changes are staged, or the branch is the current one.
        :raises NoSuchBranchError: If the branch does not exist.
        :raises UntrackedFileError: If an untracked file would be overwritten."""
        if self.staging.has_pending_changes():
            msg = 'You have uncommitted changes.'
            raise UserError(msg)
        if not self.refs.branch_exists(branch):
            raise NoSuchBranchError
        current_name = self.refs.current_branch_name()
        if branch == current_name:
            msg = 'Cannot merge a branch with itself.'
            raise UserError(msg)

        current = self.head_commit()
        given = self.graph.load(self.refs.resolve(branch))
        split = self.graph.split_point(current, given)

        if split == given:
            return MergeReport(MergeKind.NO_OP, current.hash)

        in_the_way = untracked_in_the_way(current, given, self.working_tree)
        if in_the_way:
            raise UntrackedFileError(in_the_way)

        if split == current:
            self._write_snapshot(current, given)
            self.refs.move_branch(current_name, given.hash)
            self.staging.reset()
            logger.info('Fast-forwarded %s to %s', current_name, given.hash)
            return MergeReport(MergeKind.FAST_FORWARD, given.hash)

        result = self.merger.reconcile(split, current, given)
        commit = self._new_commit(f'Merged {branch} into {current_name}.', result.snapshot, current, given)
        self.merger.apply(result)
        self.refs.move_branch(current_name, commit.hash)
        self.staging.reset()

        if result.had_conflicts:
            logger.info('Merged %s into %s with conflicts in %s', branch, current_name, ', '.join(result.conflicts))
        else:
            logger.info('Merged %s into %s', branch, current_name)
        return MergeReport(MergeKind.MERGED, commit.hash, result.conflicts)

    @requires_repo
    def add_remote(self, name: str, location: str | Path) -> None:
        """Register a remote repository directory under a name.

        :param location: Path of the remote's repository directory, relative to the working directory or
            absolute.
        :raises UserError: If a remote with that name exists."""
        self.remotes.add(name, Path(location).as_posix())

    @requires_repo
    def remove_remote(self, name: str) -> None:
        """Forget a remote.

        :raises UserError: If no remote with that name exists."""
        self.remotes.remove(name)

    @requires_repo
    def push(self, remote: str, branch: str) -> HashRef:
        """Push the current branch's history to a branch of a remote.

        :raises UserError: If the remote is missing or has commits the current branch lacks."""
        return self.replicator.push(remote, branch)

    @requires_repo
    def fetch(self, remote: str, branch: str) -> str:
        """Fetch a remote branch into the local '<remote>/<branch>' branch.

        :return: The name of the local branch.
        :raises UserError: If the remote is missing or lacks the branch."""
        return self.replicator.fetch(remote, branch)

    @requires_repo
    def pull(self, remote: str, branch: str) -> MergeReport:
        """Fetch a remote branch and merge it into the current branch."""
        return self.replicator.pull(remote, branch, self.merge)
