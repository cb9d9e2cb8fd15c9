"""Low-level helpers: hashing, object encodings and content files keyed by digest."""

import hashlib
import json
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import IO, TypeAlias

from .constants import FANOUT_LENGTH, INITIAL_COMMIT_MESSAGE, INITIAL_COMMIT_TIMESTAMP
from .objects import Blob, Commit
from .ref import HashRef

Hasher: TypeAlias = Callable[..., str]

_PART_SEPARATOR = b'\x00'


def hash_parts(*parts: str | bytes | None) -> str:
    """Compute the SHA-1 hex digest of a sequence of parts.

    Strings are UTF-8 encoded, None parts are skipped and parts are separated by a NUL byte, so that
    ('ab', 'c') and ('a', 'bc') do not collide."""
    sha = hashlib.sha1()
    first = True
    for part in parts:
        if part is None:
            continue
        if not first:
            sha.update(_PART_SEPARATOR)
        sha.update(part.encode('utf-8') if isinstance(part, str) else part)
        first = False
    return sha.hexdigest()


def hash_string(content: str | bytes) -> str:
    """Compute the digest of a single string or byte sequence."""
    return hash_parts(content)


def snapshot_key(snapshot: Mapping[str, str]) -> str:
    """Serialize a snapshot deterministically, for hashing and storage."""
    return json.dumps(dict(snapshot), sort_keys=True, separators=(',', ':'))


def make_blob(content: bytes, hasher: Hasher = hash_parts) -> Blob:
    return Blob(HashRef(hasher(content)), content)


def make_commit(message: str, timestamp: float, snapshot: Mapping[str, str], parent: str | None,
                second_parent: str | None = None, hasher: Hasher = hash_parts) -> Commit:
    """Build a commit, deriving its digest from every other field.

    :param message: The commit message.
    :param timestamp: Seconds since the epoch.
    :param snapshot: Mapping of tracked file paths to blob digests.
    :param parent: Digest of the main parent, None only for the root commit.
    :param second_parent: Digest of the merged-in parent for merge commits.
    :param hasher: The hash function, defaults to SHA-1.
    :return: The new Commit."""
    digest = hasher(repr(float(timestamp)), message, snapshot_key(snapshot), parent, second_parent)
    return Commit(HashRef(digest), message, float(timestamp),
                  {path: HashRef(blob) for path, blob in snapshot.items()},
                  HashRef(parent) if parent else None,
                  HashRef(second_parent) if second_parent else None)


def initial_commit(hasher: Hasher = hash_parts) -> Commit:
    """Build the root commit, which is identical in every repository."""
    return make_commit(INITIAL_COMMIT_MESSAGE, INITIAL_COMMIT_TIMESTAMP, {}, None, hasher=hasher)


def encode_commit(commit: Commit) -> bytes:
    return json.dumps({
        'message': commit.message,
        'timestamp': commit.timestamp,
        'snapshot': dict(commit.snapshot),
        'parent': commit.parent,
        'second_parent': commit.second_parent,
    }, sort_keys=True).encode('utf-8')


def decode_commit(digest: str, data: bytes) -> Commit:
    """Rebuild a stored commit. The digest is taken from the storage key, not recomputed."""
    fields = json.loads(data.decode('utf-8'))
    parent = fields.get('parent')
    second_parent = fields.get('second_parent')
    return Commit(HashRef(digest), fields['message'], float(fields['timestamp']),
                  {path: HashRef(blob) for path, blob in fields['snapshot'].items()},
                  HashRef(parent) if parent else None,
                  HashRef(second_parent) if second_parent else None)


def get_content_path(base_dir: str | Path, digest: str) -> Path:
    """Get the path of the content file for a digest, fanned out by its first characters."""
    return Path(base_dir) / digest[:FANOUT_LENGTH] / digest


def open_content_for_reading(base_dir: str | Path, digest: str) -> IO[bytes]:
    """Open the content file of a digest for binary reading.

    :raises FileNotFoundError: If no content is stored under the digest."""
    return get_content_path(base_dir, digest).open('rb')


def write_content(base_dir: str | Path, digest: str, data: bytes) -> bool:
    """Write content under a digest unless it is already stored.

    The data is written to a temporary file and renamed into place, so a stored object is never observed
    half-written.

    :return: True if the content was written, False if it already existed."""
    path = get_content_path(base_dir, digest)
    if path.exists():
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f'{path.name}.tmp')
    with tmp_path.open('wb') as handle:
        handle.write(data)
    os.replace(tmp_path, path)
    return True


def read_content(base_dir: str | Path, digest: str) -> bytes:
    with open_content_for_reading(base_dir, digest) as handle:
        return handle.read()
