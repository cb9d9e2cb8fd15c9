"""File primitives over a repository's working directory."""

from pathlib import Path, PurePosixPath


class WorkingTree:
    """Reads, writes and deletes working files by repository-relative path.

    Paths are POSIX-style and relative to the working directory. The repository directory itself is never
    listed or touched."""

    def __init__(self, working_dir: Path, repo_path: Path) -> None:
        self.working_dir = working_dir
        self.repo_path = repo_path

    def path_of(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or '..' in relative.parts:
            msg = f'Path must be relative to the working directory: {path}'
            raise ValueError(msg)
        return self.working_dir.joinpath(*relative.parts)

    def normalize(self, path: str | Path) -> str:
        """Turn a user-supplied path into the repository-relative key used in snapshots.

        :raises ValueError: If the path points outside the working directory."""
        candidate = Path(path)
        if candidate.is_absolute():
            candidate = candidate.relative_to(self.working_dir)
        key = PurePosixPath(*candidate.parts).as_posix()
        self.path_of(key)
        return key

    def exists(self, path: str) -> bool:
        return self.path_of(path).is_file()

    def read(self, path: str) -> bytes:
        return self.path_of(path).read_bytes()

    def write(self, path: str, content: bytes) -> None:
        target = self.path_of(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    def delete(self, path: str) -> bool:
        """Delete a working file and any directories it leaves empty.

        :return: True if a file was deleted, False if there was none."""
        target = self.path_of(path)
        if not target.is_file():
            return False

        target.unlink()
        parent = target.parent
        while parent != self.working_dir and parent.is_dir() and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent
        return True

    def files(self) -> set[str]:
        """Get the relative paths of every file in the working directory."""
        result: set[str] = set()
        for file in self.working_dir.rglob('*'):
            if file == self.repo_path or self.repo_path in file.parents or not file.is_file():
                continue
            result.add(file.relative_to(self.working_dir).as_posix())
        return result
