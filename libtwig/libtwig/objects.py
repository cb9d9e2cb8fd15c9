"""Immutable objects stored by libtwig: blobs and commits."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .ref import HashRef


@dataclass(frozen=True)
class Blob:
    """The saved content of a single file version."""

    hash: HashRef
    content: bytes = field(repr=False)


@dataclass(frozen=True, eq=False)
class Commit:
    """A snapshot of tracked files plus its place in the history.

    Commits are compared and hashed by digest only, since the digest covers the timestamp, the message,
    the snapshot and the parents."""

    hash: HashRef
    message: str
    timestamp: float
    snapshot: Mapping[str, HashRef]
    parent: HashRef | None = None
    second_parent: HashRef | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.snapshot, MappingProxyType):
            object.__setattr__(self, 'snapshot', MappingProxyType(dict(self.snapshot)))

    @property
    def is_merge(self) -> bool:
        return self.second_parent is not None

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def parents(self) -> list[HashRef]:
        """Return the main parent followed by the second parent, if any."""
        return [p for p in (self.parent, self.second_parent) if p is not None]

    def file_hash(self, path: str) -> HashRef | None:
        """Return the blob digest tracked for path, or None if the file is not in this commit."""
        return self.snapshot.get(path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Commit):
            return NotImplemented
        return self.hash == other.hash

    def __hash__(self) -> int:
        return hash(self.hash)
