"""libtwig: a local version-control engine over a content-addressed object store."""

from .exceptions import (BranchExistsError, BranchNameConflictError, CurrentBranchError, InvariantViolation,
                         NoSuchBranchError, NoSuchCommitError, NothingToRemoveError, ObjectNotFoundError,
                         RepositoryError, RepositoryNotFoundError, UntrackedFileError, UserError)
from .graph import CommitGraph
from .merge import MergeAction, MergeEngine, MergeError, MergeResult
from .objects import Blob, Commit
from .ref import HashRef, RefError, RefStore, SymRef
from .remote import RemoteRegistry, Replicator
from .repository import LogEntry, MergeKind, MergeReport, Repository, Status
from .staging import RemovalOutcome, StagingArea
from .store import ObjectStore

__all__ = [
    'Blob',
    'BranchExistsError',
    'BranchNameConflictError',
    'Commit',
    'CommitGraph',
    'CurrentBranchError',
    'HashRef',
    'InvariantViolation',
    'LogEntry',
    'MergeAction',
    'MergeEngine',
    'MergeError',
    'MergeKind',
    'MergeReport',
    'MergeResult',
    'NoSuchBranchError',
    'NoSuchCommitError',
    'NothingToRemoveError',
    'ObjectNotFoundError',
    'ObjectStore',
    'RefError',
    'RefStore',
    'RemoteRegistry',
    'RemovalOutcome',
    'Replicator',
    'Repository',
    'RepositoryError',
    'RepositoryNotFoundError',
    'StagingArea',
    'Status',
    'SymRef',
    'UntrackedFileError',
    'UserError',
]
