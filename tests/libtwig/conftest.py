from pathlib import Path

from libtwig.repository import Repository
from pytest import fixture


@fixture
def temp_repo_dir(tmp_path: Path) -> Path:
    repo_dir = tmp_path / 'local'
    repo_dir.mkdir()
    return repo_dir


@fixture
def temp_repo(temp_repo_dir: Path) -> Repository:
    repo = Repository(temp_repo_dir)
    repo.init()
    return repo


@fixture
def remote_repo(tmp_path: Path) -> Repository:
    remote_dir = tmp_path / 'remote'
    remote_dir.mkdir()
    repo = Repository(remote_dir)
    repo.init()
    return repo
