"""The staging area: pending additions and removals on top of HEAD's snapshot."""

import json
from collections.abc import Callable, Mapping
from enum import Enum
from pathlib import Path

from .exceptions import InvariantViolation, NothingToRemoveError
from .plumbing import make_blob
from .ref import HashRef
from .store import ObjectStore
from .workdir import WorkingTree


class RemovalOutcome(Enum):
    """What stage_for_removal did with a path."""

    UNSTAGED = 'unstaged'
    STAGED_FOR_REMOVAL = 'staged for removal'


class StagingArea:
    """Files staged for addition (path to blob digest) and for removal (set of paths).

    A path is never staged for addition with the digest HEAD already tracks for it, so "are there
    uncommitted changes" is an emptiness check."""

    def __init__(self, index_file: Path, removed_file: Path, objects: ObjectStore, working_tree: WorkingTree,
                 head_snapshot: Callable[[], Mapping[str, HashRef]]) -> None:
        """Create a staging area over its two persisted files.

        :param index_file: JSON file mapping paths staged for addition to blob digests.
        :param removed_file: JSON file listing paths staged for removal.
        :param objects: The store receiving staged blobs.
        :param working_tree: The working tree that removals delete files from.
        :param head_snapshot: Returns the snapshot of the commit HEAD currently points at."""
        self.index_file = index_file
        self.removed_file = removed_file
        self.objects = objects
        self.working_tree = working_tree
        self.head_snapshot = head_snapshot

    def _load_index(self) -> dict[str, HashRef]:
        if not self.index_file.exists():
            return {}
        try:
            data = json.loads(self.index_file.read_text())
        except ValueError as e:
            msg = f'Staging index {self.index_file} is corrupted'
            raise InvariantViolation(msg) from e
        return {path: HashRef(digest) for path, digest in data.items()}

    def _load_removed(self) -> set[str]:
        if not self.removed_file.exists():
            return set()
        try:
            return set(json.loads(self.removed_file.read_text()))
        except ValueError as e:
            msg = f'Removal list {self.removed_file} is corrupted'
            raise InvariantViolation(msg) from e

    def _save_index(self, index: Mapping[str, str]) -> None:
        self.index_file.write_text(json.dumps(dict(index), sort_keys=True))

    def _save_removed(self, removed: set[str]) -> None:
        self.removed_file.write_text(json.dumps(sorted(removed)))

    def staged_for_addition(self) -> dict[str, HashRef]:
        return self._load_index()

    def staged_for_removal(self) -> set[str]:
        return self._load_removed()

    def stage_for_addition(self, path: str, content: bytes) -> None:
        """Stage the given content of a file.

        Staging the version HEAD already tracks drops any pending addition of the path instead. The path is
        no longer staged for removal either way."""
        index = self._load_index()
        removed = self._load_removed()

        blob = make_blob(content, self.objects.hasher)
        if self.head_snapshot().get(path) == blob.hash:
            index.pop(path, None)
        else:
            self.objects.put(blob)
            index[path] = blob.hash
        removed.discard(path)

        self._save_index(index)
        self._save_removed(removed)

    def stage_for_removal(self, path: str) -> RemovalOutcome:
        """Unstage a pending addition, or stage a tracked file for removal and delete it from the working tree.

        :raises NothingToRemoveError: If the path is neither staged nor tracked by HEAD."""
        index = self._load_index()
        if path in index:
            del index[path]
            self._save_index(index)
            return RemovalOutcome.UNSTAGED

        if path not in self.head_snapshot():
            raise NothingToRemoveError

        removed = self._load_removed()
        removed.add(path)
        self._save_removed(removed)
        self.working_tree.delete(path)
        return RemovalOutcome.STAGED_FOR_REMOVAL

    def snapshot_delta(self) -> tuple[dict[str, HashRef], set[str]]:
        """Get the staged additions and removals, as consumed by commit creation."""
        return self._load_index(), self._load_removed()

    def has_pending_changes(self) -> bool:
        added, removed = self.snapshot_delta()
        return bool(added or removed)

    def reset(self) -> None:
        self._save_index({})
        self._save_removed(set())
