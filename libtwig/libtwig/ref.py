"""References: digests, symbolic refs and the branch store."""

import logging
from pathlib import Path, PurePosixPath
from typing import TypeAlias

from .constants import HASH_CHARSET, HEADS_DIR, SYMREF_PREFIX
from .exceptions import (BranchExistsError, BranchNameConflictError, CurrentBranchError, InvariantViolation,
                         NoSuchBranchError)

logger = logging.getLogger(__name__)


class RefError(Exception):
    """Exception raised for malformed or unreadable references."""


class HashRef(str):
    """A reference to an object by its digest."""


class SymRef(str):
    """A symbolic reference naming another ref, e.g. 'heads/master'."""


Ref: TypeAlias = HashRef | SymRef


def is_hash(value: str) -> bool:
    return bool(value) and all(c in HASH_CHARSET for c in value)


def read_ref(ref_file: Path) -> Ref | None:
    """Read a reference from a file.

    :param ref_file: The file to read.
    :return: A SymRef if the file holds a symbolic reference, a HashRef if it holds a digest, None if empty.
    :raises RefError: If the file cannot be read or holds neither."""
    try:
        content = ref_file.read_text().strip()
    except OSError as e:
        msg = f'Error reading ref file {ref_file}'
        raise RefError(msg) from e

    if not content:
        return None
    if content.startswith(SYMREF_PREFIX):
        return SymRef(content.removeprefix(SYMREF_PREFIX))
    if is_hash(content):
        return HashRef(content)

    msg = f'Invalid reference format in {ref_file}: {content!r}'
    raise RefError(msg)


def write_ref(ref_file: Path, ref: Ref) -> None:
    """Write a reference to a file, replacing its previous value.

    :param ref_file: The file to write.
    :param ref: The reference to write.
    :raises RefError: If the reference type is not supported."""
    match ref:
        case SymRef():
            content = f'{SYMREF_PREFIX}{ref}'
        case HashRef():
            content = str(ref)
        case _:
            msg = f'Invalid reference type: {type(ref)}'
            raise RefError(msg)

    ref_file.parent.mkdir(parents=True, exist_ok=True)
    ref_file.write_text(content)


def branch_ref(branch: str) -> SymRef:
    """Create a symbolic reference for a branch name.

    :param branch: The name of the branch.
    :return: A SymRef object representing the branch reference."""
    return SymRef(f'{HEADS_DIR}/{branch}')


class RefStore:
    """Named branch pointers and the HEAD selector of one repository.

    Each branch is its own file under the heads directory, holding the digest of its commit. HEAD holds a
    symbolic reference to the checked-out branch."""

    def __init__(self, heads_dir: Path, head_file: Path) -> None:
        self.heads_dir = heads_dir
        self.head_file = head_file

    def _branch_path(self, name: str) -> Path:
        if not name:
            msg = 'Branch name is required'
            raise ValueError(msg)
        relative = PurePosixPath(name)
        if relative.is_absolute() or '..' in relative.parts:
            msg = f'Branch name must stay inside the heads directory: {name}'
            raise ValueError(msg)
        return self.heads_dir.joinpath(*relative.parts)

    def branch_exists(self, name: str) -> bool:
        return self._branch_path(name).is_file()

    def name_conflicts(self, name: str) -> bool:
        """Check whether a branch called name would clash with the files of existing branches.

        Branch names map to paths, so 'origin' and 'origin/master' cannot both exist."""
        path = self._branch_path(name)
        if path.is_dir():
            return True
        return any(parent.is_file() for parent in path.parents if self.heads_dir in parent.parents)

    def create_branch(self, name: str, target: str) -> None:
        """Create a new branch pointing at target.

        :raises ValueError: If the branch name is empty or escapes the heads directory.
        :raises BranchExistsError: If the branch already exists.
        :raises BranchNameConflictError: If the name clashes with an existing branch."""
        if self.branch_exists(name):
            raise BranchExistsError
        if self.name_conflicts(name):
            raise BranchNameConflictError
        write_ref(self._branch_path(name), HashRef(target))
        logger.debug('Created branch %s at %s', name, target)

    def move_branch(self, name: str, target: str) -> None:
        """Point an existing branch at another commit.

        :raises NoSuchBranchError: If the branch does not exist."""
        if not self.branch_exists(name):
            raise NoSuchBranchError
        write_ref(self._branch_path(name), HashRef(target))
        logger.debug('Moved branch %s to %s', name, target)

    def resolve(self, name: str) -> HashRef:
        """Get the digest a branch points at.

        :raises NoSuchBranchError: If the branch does not exist.
        :raises InvariantViolation: If the branch file does not hold a digest."""
        if not self.branch_exists(name):
            raise NoSuchBranchError
        try:
            ref = read_ref(self._branch_path(name))
        except RefError as e:
            msg = f'Branch "{name}" is unreadable'
            raise InvariantViolation(msg) from e
        if not isinstance(ref, HashRef):
            msg = f'Branch "{name}" does not point at a commit'
            raise InvariantViolation(msg)
        return ref

    def current_branch_name(self) -> str:
        """Get the name of the checked-out branch.

        :raises InvariantViolation: If HEAD is missing or does not name a branch."""
        try:
            head = read_ref(self.head_file)
        except RefError as e:
            msg = 'HEAD ref file is unreadable'
            raise InvariantViolation(msg) from e
        prefix = f'{HEADS_DIR}/'
        if not isinstance(head, SymRef) or not head.startswith(prefix):
            msg = f'HEAD does not name a branch: {head!r}'
            raise InvariantViolation(msg)
        return head.removeprefix(prefix)

    def set_current_branch(self, name: str) -> None:
        """Check out a branch by pointing HEAD at it.

        :raises NoSuchBranchError: If the branch does not exist."""
        if not self.branch_exists(name):
            raise NoSuchBranchError
        write_ref(self.head_file, branch_ref(name))

    def delete_branch(self, name: str) -> None:
        """Delete a branch pointer. The commits it pointed at are kept.

        :raises CurrentBranchError: If the branch is checked out.
        :raises NoSuchBranchError: If the branch does not exist."""
        if not self.branch_exists(name):
            raise NoSuchBranchError
        if name == self.current_branch_name():
            raise CurrentBranchError

        branch_path = self._branch_path(name)
        branch_path.unlink()
        # Fetched branches live in per-remote subdirectories; drop them once empty
        parent = branch_path.parent
        while parent != self.heads_dir and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent
        logger.debug('Deleted branch %s', name)

    def list_branches(self) -> set[str]:
        """Get the names of all branches, including fetched '<remote>/<branch>' ones."""
        if not self.heads_dir.is_dir():
            return set()
        return {path.relative_to(self.heads_dir).as_posix() for path in self.heads_dir.rglob('*') if path.is_file()}
