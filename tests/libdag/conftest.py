from pathlib import Path

from libdag.repository import Repository
from pytest import fixture


@fixture
def temp_repo_dir(tmp_path: Path) -> Path:
    return tmp_path


@fixture
def temp_repo(temp_repo_dir: Path) -> Repository:
    repo = Repository.at(temp_repo_dir)
    repo.init()
    return repo


@fixture
def memory_repo() -> Repository:
    repo = Repository.memory()
    repo.init()
    return repo
