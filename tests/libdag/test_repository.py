import logging
from pathlib import Path

from libdag.constants import DEFAULT_BRANCH
from libdag.errors import (AlreadyInConflictError, BareRepositoryError, BranchExistsError, LocalChangesError,
                           NoCommonAncestorError, NothingToCommitError, RefNotFoundError, RepositoryError,
                           RepositoryNotFoundError, UnbornBranchError, UnresolvedConflictsError)
from libdag.index import Stage
from libdag.merge import MergeStatus
from libdag.objects import Commit, Tree
from libdag.plumbing import flatten_tree, get_content_key, hash_string
from libdag.ref import HashRef, RefError, branch_ref
from libdag.repository import Repository
from pytest import LogCaptureFixture, raises


def _commit_files(repo: Repository, files: dict[str, str], message: str = 'Update') -> HashRef:
    for path, content in files.items():
        repo.working_tree.write(path, content.encode())
    return repo.commit_working_dir('John Doe', message)


def _tree_files(repo: Repository, commit_ref: str) -> dict[str, HashRef]:
    return flatten_tree(repo.objects, repo.objects.load_commit(commit_ref).tree_hash)


def test_init(temp_repo: Repository, temp_repo_dir: Path) -> None:
    assert temp_repo.exists()
    assert (temp_repo_dir / '.dag' / 'HEAD').is_file()
    assert temp_repo.head_ref() == branch_ref(DEFAULT_BRANCH)
    assert temp_repo.head_commit() is None
    assert not temp_repo.is_bare()

    with raises(RepositoryError):
        temp_repo.init()


def test_init_with_custom_repo_dir(temp_repo_dir: Path) -> None:
    repo = Repository.at(temp_repo_dir, '.custom_dag')
    repo.init('main')

    assert (temp_repo_dir / '.custom_dag' / 'HEAD').is_file()
    assert repo.current_branch() == 'main'


def test_requires_initialized_repository() -> None:
    repo = Repository.memory()

    assert not repo.exists()
    with raises(RepositoryNotFoundError):
        repo.head_ref()
    with raises(RepositoryNotFoundError):
        repo.commit('John Doe', 'message')


def test_open(temp_repo: Repository, temp_repo_dir: Path, tmp_path: Path) -> None:
    assert not Repository.open(temp_repo_dir).is_bare()

    bare = Repository.at(tmp_path / 'bare.dag', bare=True)
    bare.init()
    assert Repository.open(tmp_path / 'bare.dag').is_bare()

    with raises(RepositoryNotFoundError):
        Repository.open(tmp_path / 'nothing-here')


def test_first_commit(memory_repo: Repository) -> None:
    commit_ref = _commit_files(memory_repo, {'a': '1'}, 'Initial commit')

    commit = memory_repo.objects.load_commit(commit_ref)
    assert memory_repo.refs.get('heads/master') == commit_ref
    assert memory_repo.head_ref() == branch_ref(DEFAULT_BRANCH)
    assert commit.parents == ()
    assert commit.author == 'John Doe'
    assert commit.message == 'Initial commit'
    assert _tree_files(memory_repo, commit_ref) == {'a': hash_string('1')}


def test_commit_with_parent(memory_repo: Repository) -> None:
    first_commit_ref = _commit_files(memory_repo, {'a': '1'}, 'First commit')
    second_commit_ref = _commit_files(memory_repo, {'a': '2'}, 'Second commit')

    assert memory_repo.objects.load_commit(second_commit_ref).parents == (first_commit_ref,)
    assert memory_repo.head_commit() == second_commit_ref


def test_commit_to_directory(temp_repo: Repository, temp_repo_dir: Path) -> None:
    (temp_repo_dir / 'src').mkdir()
    (temp_repo_dir / 'src' / 'main.py').write_text('print(1)\n')
    (temp_repo_dir / 'README').write_text('readme\n')

    commit_ref = temp_repo.commit_working_dir('John Doe', 'Add files', '2024-05-01T12:00:00+00:00')

    assert (temp_repo_dir / '.dag' / get_content_key(commit_ref)).is_file()
    assert sorted(_tree_files(temp_repo, commit_ref)) == ['README', 'src/main.py']
    assert temp_repo.objects.load_commit(commit_ref).timestamp == '2024-05-01T12:00:00+00:00'


def test_commit_file_names_with_line_separators(temp_repo: Repository, temp_repo_dir: Path) -> None:
    (temp_repo_dir / 'a\rb').write_text('x')
    (temp_repo_dir / 'caf\u2028e').write_text('y')

    commit_ref = temp_repo.commit_working_dir('John Doe', 'Odd names')

    assert _tree_files(temp_repo, commit_ref) == {'a\rb': hash_string('x'), 'caf\u2028e': hash_string('y')}
    assert sorted(temp_repo.index.files()) == ['a\rb', 'caf\u2028e']


def test_commit_validation(memory_repo: Repository) -> None:
    memory_repo.working_tree.write('a', b'1')
    memory_repo.add('a')

    with raises(ValueError):
        memory_repo.commit('', 'message')
    with raises(ValueError):
        memory_repo.commit('John Doe', '')


def test_nothing_to_commit(memory_repo: Repository) -> None:
    _commit_files(memory_repo, {'a': '1'})

    with raises(NothingToCommitError):
        memory_repo.commit_working_dir('John Doe', 'Again')


def test_add_directory_and_deleted_files(memory_repo: Repository) -> None:
    memory_repo.working_tree.write('dir/x', b'x')
    memory_repo.working_tree.write('dir/y', b'y')
    memory_repo.add('dir/')

    assert sorted(memory_repo.index.files()) == ['dir/x', 'dir/y']

    memory_repo.working_tree.remove('dir/x')
    memory_repo.add('dir')
    assert sorted(memory_repo.index.files()) == ['dir/y']

    memory_repo.working_tree.remove('dir/y')
    memory_repo.add('dir/y')
    assert memory_repo.index.files() == {}

    with raises(RepositoryError):
        memory_repo.add('nothing')


def test_rm(memory_repo: Repository) -> None:
    _commit_files(memory_repo, {'a': '1', 'b': '2'})

    memory_repo.rm('a')

    assert not memory_repo.working_tree.exists('a')
    assert sorted(memory_repo.index.files()) == ['b']
    with raises(RepositoryError):
        memory_repo.rm('untracked')


def test_bare_repository_refuses_working_tree_operations() -> None:
    repo = Repository.memory(bare=True)
    repo.init()

    assert repo.is_bare()
    with raises(BareRepositoryError):
        repo.add('a')
    with raises(BareRepositoryError):
        repo.checkout(DEFAULT_BRANCH)


def test_branches(memory_repo: Repository) -> None:
    with raises(UnbornBranchError):
        memory_repo.add_branch('feature')

    commit_ref = _commit_files(memory_repo, {'a': '1'})
    memory_repo.add_branch('feature')
    memory_repo.add_branch('hotfix', commit_ref)

    assert memory_repo.branches() == ['feature', 'hotfix', 'master']
    assert memory_repo.resolve_ref('feature') == commit_ref
    with raises(BranchExistsError):
        memory_repo.add_branch('feature')
    with raises(ValueError):
        memory_repo.add_branch('')

    memory_repo.delete_branch('hotfix')
    assert memory_repo.branches() == ['feature', 'master']
    with raises(RefNotFoundError):
        memory_repo.delete_branch('hotfix')
    with raises(RepositoryError):
        memory_repo.delete_branch('master')


def test_resolve_ref(memory_repo: Repository) -> None:
    commit_ref = _commit_files(memory_repo, {'a': '1'})

    assert memory_repo.resolve_ref('HEAD') == commit_ref
    assert memory_repo.resolve_ref('master') == commit_ref
    assert memory_repo.resolve_ref('heads/master') == commit_ref
    assert memory_repo.resolve_ref(branch_ref('master')) == commit_ref
    assert memory_repo.resolve_ref(str(commit_ref)) == commit_ref
    assert memory_repo.resolve_ref(None) is None
    with raises(RefError):
        memory_repo.resolve_ref('no-such-branch')


def test_update_ref(memory_repo: Repository) -> None:
    first = _commit_files(memory_repo, {'a': '1'})
    _commit_files(memory_repo, {'a': '2'})

    memory_repo.update_ref('heads/old', first)
    memory_repo.update_ref('HEAD', 'old')

    assert memory_repo.head_commit() == first
    assert memory_repo.current_branch() == 'master'


def test_log(memory_repo: Repository) -> None:
    assert list(memory_repo.log()) == []

    commits = [_commit_files(memory_repo, {'a': str(number)}, f'Commit {number}') for number in range(3)]

    history = list(memory_repo.log())
    assert [entry.commit_ref for entry in history] == commits[::-1]
    assert [entry.commit.message for entry in history] == ['Commit 2', 'Commit 1', 'Commit 0']
    assert [entry.commit_ref for entry in memory_repo.log(commits[1])] == commits[1::-1]


def test_checkout_branch_and_commit(memory_repo: Repository) -> None:
    first = _commit_files(memory_repo, {'a': '1', 'b': 'b'})
    memory_repo.add_branch('feature')
    memory_repo.checkout('feature')
    second = _commit_files(memory_repo, {'a': '2', 'c': 'c'})

    memory_repo.checkout('master')

    assert memory_repo.current_branch() == 'master'
    assert memory_repo.working_tree.files == {'a': b'1', 'b': b'b'}
    assert memory_repo.index.files() == _tree_files(memory_repo, first)

    memory_repo.checkout(second)

    assert isinstance(memory_repo.head_ref(), HashRef)
    assert memory_repo.current_branch() is None
    assert memory_repo.working_tree.files == {'a': b'2', 'b': b'b', 'c': b'c'}


def test_checkout_on_disk_removes_files(temp_repo: Repository, temp_repo_dir: Path) -> None:
    (temp_repo_dir / 'a').write_text('1')
    temp_repo.commit_working_dir('John Doe', 'First')
    temp_repo.add_branch('feature')
    temp_repo.checkout('feature')
    (temp_repo_dir / 'sub').mkdir()
    (temp_repo_dir / 'sub' / 'b').write_text('2')
    temp_repo.commit_working_dir('John Doe', 'Second')

    temp_repo.checkout('master')

    assert not (temp_repo_dir / 'sub').exists()
    assert (temp_repo_dir / 'a').read_text() == '1'
    assert (temp_repo_dir / '.dag' / 'HEAD').is_file()


def test_checkout_refuses_to_overwrite_local_changes(memory_repo: Repository) -> None:
    _commit_files(memory_repo, {'a': '1'})
    memory_repo.add_branch('feature')
    memory_repo.checkout('feature')
    _commit_files(memory_repo, {'a': '2'})
    memory_repo.checkout('master')

    memory_repo.working_tree.write('a', b'dirty')
    with raises(LocalChangesError) as excinfo:
        memory_repo.checkout('feature')
    assert excinfo.value.paths == ['a']
    assert memory_repo.current_branch() == 'master'

    memory_repo.working_tree.write('a', b'1')
    memory_repo.working_tree.write('notes', b'untracked')
    memory_repo.checkout('feature')

    assert memory_repo.working_tree.read('a') == b'2'
    assert memory_repo.working_tree.read('notes') == b'untracked'


def test_fast_forward_merge(memory_repo: Repository) -> None:
    _commit_files(memory_repo, {'a': '1'})
    memory_repo.add_branch('feature')
    memory_repo.checkout('feature')
    c2 = _commit_files(memory_repo, {'a': '2'})
    memory_repo.checkout('master')

    result = memory_repo.merge('feature')

    assert result.status == MergeStatus.FAST_FORWARD
    assert result.commit == c2
    assert memory_repo.refs.get('heads/master') == c2
    assert memory_repo.working_tree.read('a') == b'2'
    assert len(list(memory_repo.log())) == 2


def test_merge_is_idempotent_for_ancestors(memory_repo: Repository) -> None:
    c1 = _commit_files(memory_repo, {'a': '1'})
    c2 = _commit_files(memory_repo, {'a': '2'})
    objects_before = set(memory_repo.objects.hashes())

    for target in ('master', c1, c2):
        result = memory_repo.merge(target)
        assert result.status == MergeStatus.UP_TO_DATE
        assert result.commit is None
        assert memory_repo.head_commit() == c2

    assert set(memory_repo.objects.hashes()) == objects_before


def test_clean_three_way_merge(memory_repo: Repository) -> None:
    _commit_files(memory_repo, {'a': '1', 'b': '1'})
    memory_repo.add_branch('feature')
    ours = _commit_files(memory_repo, {'a': '2'})
    memory_repo.checkout('feature')
    theirs = _commit_files(memory_repo, {'b': '2', 'c': 'new'})
    memory_repo.checkout('master')

    result = memory_repo.merge('feature', author='Jane Doe', timestamp='2024-01-01T00:00:00+00:00')

    assert result.status == MergeStatus.MERGED
    commit = memory_repo.objects.load_commit(result.commit)
    assert commit.parents == (ours, theirs)
    assert commit.message == 'Merge feature into master'
    assert commit.author == 'Jane Doe'
    assert memory_repo.head_commit() == result.commit
    assert memory_repo.working_tree.files == {'a': b'2', 'b': b'2', 'c': b'new'}
    assert not memory_repo.is_merging()


def test_disjoint_changes_merge_cleanly_from_either_side(memory_repo: Repository) -> None:
    _commit_files(memory_repo, {'a': '1', 'b': '1'})
    memory_repo.add_branch('feature')
    ours = _commit_files(memory_repo, {'a': '2'})
    memory_repo.checkout('feature')
    theirs = _commit_files(memory_repo, {'b': '2'})
    memory_repo.checkout('master')

    forward = memory_repo.merge('feature')
    memory_repo.add_branch('other', theirs)
    memory_repo.checkout('other')
    backward = memory_repo.merge(ours)

    assert forward.status == backward.status == MergeStatus.MERGED
    assert forward.tree_hash == backward.tree_hash


def _conflicted_repo(repo: Repository) -> tuple[HashRef, HashRef, HashRef]:
    c1 = _commit_files(repo, {'a': '1', 'same': 's'})
    repo.add_branch('feature')
    c2 = _commit_files(repo, {'a': '2'})
    repo.checkout('feature')
    c3 = _commit_files(repo, {'a': '3', 'theirs-only': 't'})
    repo.checkout('master')
    return c1, c2, c3


def test_conflicted_merge_stages_all_sides(memory_repo: Repository) -> None:
    _, c2, _ = _conflicted_repo(memory_repo)

    result = memory_repo.merge('feature')

    assert result.status == MergeStatus.CONFLICTED
    assert result.conflicts == ('a',)
    assert memory_repo.index.conflicted_paths() == {'a'}
    assert memory_repo.index.get('a', Stage.BASE) == hash_string('1')
    assert memory_repo.index.get('a', Stage.OURS) == hash_string('2')
    assert memory_repo.index.get('a', Stage.THEIRS) == hash_string('3')
    assert memory_repo.index.get('theirs-only') == hash_string('t')
    assert memory_repo.working_tree.read('a') == b'<<<<<<< ours\n2\n=======\n3\n>>>>>>> theirs\n'
    assert memory_repo.is_merging()
    assert memory_repo.head_commit() == c2

    with raises(UnresolvedConflictsError) as excinfo:
        memory_repo.commit('John Doe', 'Too early')
    assert excinfo.value.paths == ['a']
    with raises(UnresolvedConflictsError):
        memory_repo.commit_working_dir('John Doe', 'Too early')
    with raises(UnresolvedConflictsError):
        memory_repo.checkout('feature')
    with raises(AlreadyInConflictError):
        memory_repo.merge('feature')


def test_resolving_conflicts_concludes_merge(memory_repo: Repository) -> None:
    _, c2, c3 = _conflicted_repo(memory_repo)
    memory_repo.merge('feature')

    memory_repo.working_tree.write('a', b'resolved\n')
    memory_repo.add('a')
    merge_commit = memory_repo.commit('John Doe', memory_repo.merge_message())

    commit = memory_repo.objects.load_commit(merge_commit)
    assert commit.parents == (c2, c3)
    assert commit.message == 'Merge feature into master'
    assert not memory_repo.is_merging()
    assert memory_repo.merge_message() is None
    assert _tree_files(memory_repo, merge_commit) == {
        'a': hash_string('resolved\n'), 'same': hash_string('s'), 'theirs-only': hash_string('t'),
    }


def test_abort_merge(memory_repo: Repository) -> None:
    _, c2, _ = _conflicted_repo(memory_repo)
    memory_repo.merge('feature')

    memory_repo.abort_merge()

    assert not memory_repo.is_merging()
    assert not memory_repo.index.has_conflicts()
    assert memory_repo.head_commit() == c2
    assert memory_repo.working_tree.files == {'a': b'2', 'same': b's'}
    with raises(RepositoryError):
        memory_repo.abort_merge()


def _file_directory_repo(repo: Repository, repo_dir: Path) -> tuple[HashRef, HashRef]:
    _commit_files(repo, {'a': '1\n'})
    repo.add_branch('feature')
    c2 = _commit_files(repo, {'a': '2\n'})
    repo.checkout('feature')
    (repo_dir / 'a').unlink()
    c3 = _commit_files(repo, {'a/b': 'b\n'})
    repo.checkout('master')
    return c2, c3


def test_merge_file_against_directory(temp_repo: Repository, temp_repo_dir: Path) -> None:
    c2, _ = _file_directory_repo(temp_repo, temp_repo_dir)

    result = temp_repo.merge('feature')

    assert result.status == MergeStatus.CONFLICTED
    assert result.conflicts == ('a',)
    assert temp_repo.is_merging()
    assert temp_repo.index.get('a', Stage.OURS) == hash_string('2\n')
    assert temp_repo.index.get('a/b') == hash_string('b\n')
    assert (temp_repo_dir / 'a' / 'b').read_text() == 'b\n'
    assert (temp_repo_dir / 'a~ours').is_file()

    temp_repo.abort_merge()

    assert not temp_repo.is_merging()
    assert temp_repo.head_commit() == c2
    assert (temp_repo_dir / 'a').read_text() == '2\n'


def test_resolving_file_against_directory(temp_repo: Repository, temp_repo_dir: Path) -> None:
    c2, c3 = _file_directory_repo(temp_repo, temp_repo_dir)
    temp_repo.merge('feature')

    temp_repo.rm('a')
    merge_commit = temp_repo.commit('John Doe', temp_repo.merge_message())

    assert temp_repo.objects.load_commit(merge_commit).parents == (c2, c3)
    assert _tree_files(temp_repo, merge_commit) == {'a/b': hash_string('b\n')}


def test_merge_refuses_to_overwrite_local_changes(memory_repo: Repository) -> None:
    _conflicted_repo(memory_repo)
    memory_repo.working_tree.write('theirs-only', b'local')

    with raises(LocalChangesError):
        memory_repo.merge('feature')
    assert not memory_repo.is_merging()


def test_merge_unrelated_histories(memory_repo: Repository) -> None:
    _commit_files(memory_repo, {'a': '1'})
    tree_hash = memory_repo.objects.write(Tree())
    orphan = memory_repo.objects.write(Commit(tree_hash, 'John Doe', 'Orphan', '2024-01-01T00:00:00+00:00'))
    memory_repo.refs.set('heads/orphan', orphan)

    with raises(NoCommonAncestorError):
        memory_repo.merge('orphan')


def test_merge_on_unborn_branch(memory_repo: Repository) -> None:
    with raises(UnbornBranchError):
        memory_repo.merge('master')


def test_graph_wrappers(memory_repo: Repository) -> None:
    c1 = _commit_files(memory_repo, {'a': '1'})
    memory_repo.add_branch('feature')
    c2 = _commit_files(memory_repo, {'a': '2'})
    memory_repo.checkout('feature')
    c3 = _commit_files(memory_repo, {'b': '3'})

    assert memory_repo.common_ancestor('master', 'feature') == c1
    assert memory_repo.common_ancestor(c2) == c1
    assert memory_repo.is_ancestor(c1, 'master')
    assert not memory_repo.is_ancestor(c2, c3)
    assert memory_repo.can_fast_forward(c1, c3)
    assert memory_repo.can_fast_forward(None, c3)
    assert not memory_repo.can_fast_forward('master', 'feature')


def test_repository_operations_do_not_log(memory_repo: Repository, caplog: LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger='libdag')
    _conflicted_repo(memory_repo)

    memory_repo.merge('feature')
    memory_repo.abort_merge()

    assert caplog.records == []
