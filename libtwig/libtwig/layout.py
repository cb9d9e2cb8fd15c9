"""On-disk layout of a libtwig repository directory."""

from dataclasses import dataclass
from pathlib import Path

from .constants import (COMMITS_SUBDIR, HEAD_FILE, HEADS_DIR, INDEX_FILE, OBJECTS_SUBDIR, REFS_DIR, REMOTES_FILE,
                        REMOVED_FILE)


@dataclass(frozen=True)
class RepoLayout:
    """Paths of every area inside one repository directory.

    A layout is a plain value, so a process can hold layouts for several repositories at once
    (a local one and the remote it pushes to, for instance)."""

    repo_path: Path

    def objects_dir(self) -> Path:
        """Get the directory holding blob contents keyed by digest."""
        return self.repo_path / OBJECTS_SUBDIR

    def commits_dir(self) -> Path:
        """Get the directory holding serialized commits keyed by digest."""
        return self.repo_path / COMMITS_SUBDIR

    def refs_dir(self) -> Path:
        return self.repo_path / REFS_DIR

    def heads_dir(self) -> Path:
        return self.refs_dir() / HEADS_DIR

    def head_file(self) -> Path:
        return self.repo_path / HEAD_FILE

    def index_file(self) -> Path:
        """Get the file mapping paths staged for addition to their blob digests."""
        return self.repo_path / INDEX_FILE

    def removed_file(self) -> Path:
        """Get the file listing paths staged for removal."""
        return self.repo_path / REMOVED_FILE

    def remotes_file(self) -> Path:
        return self.repo_path / REMOTES_FILE

    def exists(self) -> bool:
        return self.repo_path.is_dir()

    def create(self) -> None:
        """Create the directory skeleton of an empty repository.

        :raises FileExistsError: If the repository directory already exists."""
        self.repo_path.mkdir(parents=True)
        self.objects_dir().mkdir()
        self.commits_dir().mkdir()
        self.heads_dir().mkdir(parents=True)
