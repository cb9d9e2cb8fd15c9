"""Three-way merge helpers for libtwig."""

import logging
import os
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from enum import Enum

from merge3 import Merge3

from .constants import CONFLICT_CURRENT_LABEL, CONFLICT_END_MARKER, CONFLICT_MID_MARKER, CONFLICT_START_MARKER
from .exceptions import ObjectNotFoundError, RepositoryError
from .objects import Commit
from .ref import HashRef
from .store import ObjectStore
from .workdir import WorkingTree

logger = logging.getLogger(__name__)


class MergeError(RepositoryError):
    """Exception raised for merge-related errors."""


class MergeAction(Enum):
    """How a single path is reconciled by a merge."""

    KEEP = 'keep'
    TAKE_GIVEN = 'take given'
    REMOVE = 'remove'
    CONFLICT = 'conflict'


@dataclass
class MergeResult:
    """Represents the output of a 3-way merge, before the working tree is touched."""

    snapshot: dict[str, HashRef]
    conflicts: list[str] = field(default_factory=list)
    writes: dict[str, HashRef] = field(default_factory=dict)
    deletions: list[str] = field(default_factory=list)

    @property
    def had_conflicts(self) -> bool:
        return bool(self.conflicts)


def classify(split: str | None, current: str | None, given: str | None) -> MergeAction:
    """Decide the merge outcome of one path from its blob digest in each snapshot (None when absent).

    :param split: Digest at the split point.
    :param current: Digest in the current branch.
    :param given: Digest in the branch being merged in.
    :return: The action to take for the path."""
    # Same on both sides, including deleted on both sides
    if current == given:
        return MergeAction.KEEP
    # Untouched in current: whatever given did wins, whether a change, an addition or a deletion
    if current == split:
        return MergeAction.REMOVE if given is None else MergeAction.TAKE_GIVEN
    # Untouched in given: current's change, addition or deletion stands
    if given == split:
        return MergeAction.KEEP
    return MergeAction.CONFLICT


def _terminated(lines: Sequence[str], newline: str) -> list[str]:
    text = ''.join(lines)
    if text and not text.endswith(('\n', '\r')):
        text += newline
    return [text] if text else []


def render_conflict(current_text: str | None, given_text: str | None, split_text: str | None = None,
                    newline: str = os.linesep) -> str:
    """Lay out a whole-file conflict between the current and given versions of a file.

    Each file version is a single merge region, so the result is one block: the current version after a
    '<<<<<<< HEAD' line, the given version after a '=======' line, closed by a '>>>>>>>' line. Absent
    versions contribute no lines.

    :param current_text: The current branch's content, None if absent.
    :param given_text: The given branch's content, None if absent.
    :param split_text: The split point's content, None if absent.
    :param newline: The line terminator of marker lines and of unterminated content.
    :return: The materialized conflict file."""
    base = [split_text] if split_text is not None else []
    ours = [current_text] if current_text is not None else []
    theirs = [given_text] if given_text is not None else []

    parts: list[str] = []
    for group in Merge3(base, ours, theirs).merge_groups():
        match group:
            case ('conflict', _, ours_lines, theirs_lines):
                parts.append(f'{CONFLICT_START_MARKER} {CONFLICT_CURRENT_LABEL}{newline}')
                parts.extend(_terminated(ours_lines, newline))
                parts.append(f'{CONFLICT_MID_MARKER}{newline}')
                parts.extend(_terminated(theirs_lines, newline))
                parts.append(f'{CONFLICT_END_MARKER}{newline}')
            case (_, lines):
                parts.extend(lines)
    return ''.join(parts)


def untracked_in_the_way(current: Commit, target: Commit, working_tree: WorkingTree,
                         staged: Collection[str] = ()) -> list[str]:
    """Get the working files a move from current to target would silently overwrite.

    A file is in the way when target tracks it, it exists in the working tree, and neither current tracks it
    nor is it staged for addition."""
    return sorted(path for path in target.snapshot
                  if path not in current.snapshot and path not in staged and working_tree.exists(path))


class MergeEngine:
    """Reconciles the current, given and split snapshots into a merged snapshot."""

    def __init__(self, objects: ObjectStore, working_tree: WorkingTree) -> None:
        self.objects = objects
        self.working_tree = working_tree

    def _read_text(self, blob_hash: str | None) -> str | None:
        if blob_hash is None:
            return None
        try:
            content = self.objects.get_blob(blob_hash).content
        except ObjectNotFoundError as e:
            msg = f'Error reading blob {blob_hash}'
            raise MergeError(msg) from e
        return content.decode('utf-8', errors='surrogateescape')

    def reconcile(self, split: Commit, current: Commit, given: Commit) -> MergeResult:
        """Compute the merged snapshot and the working-tree changes that produce it.

        Conflict files are rendered and stored as blobs here, so the merge commit can be written before the
        working tree changes.

        :param split: The split point of current and given.
        :param current: The commit HEAD points at.
        :param given: The commit being merged in.
        :return: The merge result.
        :raises MergeError: If a conflicting blob cannot be read."""
        result = MergeResult(dict(current.snapshot))
        paths = sorted(set(split.snapshot) | set(current.snapshot) | set(given.snapshot))

        for path in paths:
            split_hash = split.file_hash(path)
            current_hash = current.file_hash(path)
            given_hash = given.file_hash(path)

            match classify(split_hash, current_hash, given_hash):
                case MergeAction.KEEP:
                    pass
                case MergeAction.TAKE_GIVEN:
                    result.snapshot[path] = given_hash
                    result.writes[path] = given_hash
                case MergeAction.REMOVE:
                    result.snapshot.pop(path, None)
                    result.deletions.append(path)
                case MergeAction.CONFLICT:
                    text = render_conflict(self._read_text(current_hash), self._read_text(given_hash),
                                           self._read_text(split_hash))
                    blob = self.objects.put_content(text.encode('utf-8', errors='surrogateescape'))
                    result.snapshot[path] = blob.hash
                    result.writes[path] = blob.hash
                    result.conflicts.append(path)

        logger.debug('Reconciled %d paths: %d written, %d deleted, %d conflicting',
                     len(paths), len(result.writes), len(result.deletions), len(result.conflicts))
        return result

    def apply(self, result: MergeResult) -> None:
        """Write the merged and conflicting files to the working tree and delete the removed ones."""
        for path, blob_hash in result.writes.items():
            self.working_tree.write(path, self.objects.get_blob(blob_hash).content)
        for path in result.deletions:
            self.working_tree.delete(path)
