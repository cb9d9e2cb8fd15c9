"""Content-addressed storage of blobs and commits."""

import bisect
import logging
from collections.abc import Generator
from pathlib import Path

from .constants import FANOUT_LENGTH
from .exceptions import ObjectNotFoundError
from .objects import Blob, Commit
from .plumbing import (Hasher, decode_commit, encode_commit, get_content_path, hash_parts, make_blob, read_content,
                       write_content)
from .ref import HashRef, is_hash

logger = logging.getLogger(__name__)


class ObjectStore:
    """Persists immutable blobs and commits, one file per object, keyed by digest.

    Storing an object whose digest is already present is a no-op; stored files are never edited."""

    def __init__(self, objects_dir: Path, commits_dir: Path, hasher: Hasher = hash_parts) -> None:
        self.objects_dir = objects_dir
        self.commits_dir = commits_dir
        self.hasher = hasher

    def put(self, obj: Blob | Commit) -> HashRef:
        """Store a blob or a commit.

        :param obj: The object to store.
        :return: The digest of the object.
        :raises TypeError: If obj is neither a Blob nor a Commit."""
        match obj:
            case Blob(hash=digest, content=content):
                written = write_content(self.objects_dir, digest, content)
            case Commit():
                digest = obj.hash
                written = write_content(self.commits_dir, digest, encode_commit(obj))
            case _:
                msg = f'Cannot store object of type {type(obj)}'
                raise TypeError(msg)

        if written:
            logger.debug('Stored %s %s', type(obj).__name__.lower(), digest)
        return HashRef(digest)

    def put_content(self, content: bytes) -> Blob:
        """Store raw file content as a blob and return it."""
        blob = make_blob(content, self.hasher)
        self.put(blob)
        return blob

    def has_blob(self, digest: str) -> bool:
        return get_content_path(self.objects_dir, digest).is_file()

    def has_commit(self, digest: str) -> bool:
        return get_content_path(self.commits_dir, digest).is_file()

    def get_blob(self, digest: str) -> Blob:
        """Load a blob by its full digest.

        :raises ObjectNotFoundError: If no blob is stored under the digest."""
        try:
            return Blob(HashRef(digest), read_content(self.objects_dir, digest))
        except FileNotFoundError as e:
            msg = f'Blob {digest} does not exist'
            raise ObjectNotFoundError(msg) from e

    def get_commit(self, digest: str) -> Commit:
        """Load a commit by its full digest.

        :raises ObjectNotFoundError: If no commit is stored under the digest."""
        try:
            return decode_commit(digest, read_content(self.commits_dir, digest))
        except FileNotFoundError as e:
            msg = f'Commit {digest} does not exist'
            raise ObjectNotFoundError(msg) from e

    def get(self, digest: str) -> Blob | Commit:
        """Load a commit or a blob by its full digest, commits first."""
        if self.has_commit(digest):
            return self.get_commit(digest)
        return self.get_blob(digest)

    def commit_digests(self, prefix: str = '') -> list[str]:
        """Get the sorted digests of stored commits starting with prefix."""
        if len(prefix) >= FANOUT_LENGTH:
            fanout_dirs = [self.commits_dir / prefix[:FANOUT_LENGTH]]
        elif self.commits_dir.is_dir():
            fanout_dirs = [d for d in self.commits_dir.iterdir() if d.is_dir() and d.name.startswith(prefix)]
        else:
            fanout_dirs = []

        digests = [entry.name for d in fanout_dirs if d.is_dir() for entry in d.iterdir()
                   if entry.is_file() and is_hash(entry.name)]
        digests.sort()
        start = bisect.bisect_left(digests, prefix)
        end = start
        while end < len(digests) and digests[end].startswith(prefix):
            end += 1
        return digests[start:end]

    def get_by_prefix(self, partial: str) -> Commit:
        """Resolve a full or abbreviated commit digest.

        When several commits share the prefix, the first one in digest order is returned.

        :raises ObjectNotFoundError: If the prefix is empty, not hexadecimal or matches no commit."""
        partial = partial.lower()
        if not is_hash(partial):
            msg = f'Invalid commit id {partial!r}'
            raise ObjectNotFoundError(msg)

        matches = self.commit_digests(partial)
        if not matches:
            msg = f'No commit starts with {partial}'
            raise ObjectNotFoundError(msg)
        if len(matches) > 1:
            logger.debug('Commit id %s is ambiguous, picking %s out of %d', partial, matches[0], len(matches))
        return self.get_commit(matches[0])

    def iter_commits(self) -> Generator[Commit, None, None]:
        """Yield every stored commit, in digest order."""
        for digest in self.commit_digests():
            yield self.get_commit(digest)
