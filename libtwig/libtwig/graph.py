"""Read-only traversal of the commit DAG."""

from collections.abc import Generator

from .exceptions import InvariantViolation, ObjectNotFoundError
from .objects import Commit
from .store import ObjectStore


class CommitGraph:
    """Ancestry queries over commits already in an object store."""

    def __init__(self, objects: ObjectStore) -> None:
        self.objects = objects

    def load(self, digest: str) -> Commit:
        """Load a commit the graph references.

        :raises InvariantViolation: If the commit is missing from the store."""
        try:
            return self.objects.get_commit(digest)
        except ObjectNotFoundError as e:
            msg = f'Commit {digest} is referenced but not stored'
            raise InvariantViolation(msg) from e

    def walk_main_parents(self, commit: Commit) -> Generator[Commit, None, None]:
        """Yield commit and its main-parent chain, ending with the root commit."""
        current: Commit | None = commit
        while current is not None:
            yield current
            current = self.load(current.parent) if current.parent else None

    def is_ancestor(self, candidate: Commit, of: Commit, include_merge_parents: bool = True) -> bool:
        """Check whether candidate is the commit `of` or one of its ancestors.

        The root commit is an ancestor of every commit. A commit older than candidate cannot descend from it,
        so the walk does not go past such commits.

        :param candidate: The possible ancestor.
        :param of: The commit whose history is searched.
        :param include_merge_parents: Also follow the second parent of merge commits.
        :return: True if candidate is an ancestor of of."""
        if candidate.is_root or candidate == of:
            return True

        stack = [of]
        visited: set[str] = set()
        while stack:
            current = stack.pop()
            if current.hash in visited:
                continue
            visited.add(current.hash)

            if current == candidate:
                return True
            if current.is_root or current.timestamp < candidate.timestamp:
                continue

            if include_merge_parents and current.second_parent:
                stack.append(self.load(current.second_parent))
            stack.append(self.load(current.parent))

        return False

    def split_point(self, a: Commit, b: Commit) -> Commit:
        """Find the commit a merge of a and b uses as its base.

        The older of the two commits (b on ties) is the start. If it is an ancestor of the other commit it is
        the split point; otherwise the first commit on its main-parent chain that is an ancestor of the other
        one is. Only that chain is searched, so with criss-crossing merges the result is a common ancestor
        but not necessarily the latest one."""
        if a.timestamp < b.timestamp:
            start, other = a, b
        else:
            start, other = b, a

        for commit in self.walk_main_parents(start):
            if self.is_ancestor(commit, other):
                return commit

        msg = f'No common ancestor between {a.hash} and {b.hash}'
        raise InvariantViolation(msg)
