from libtwig.exceptions import NoSuchBranchError, UntrackedFileError, UserError
from libtwig.merge import MergeAction, classify, render_conflict
from libtwig.plumbing import initial_commit, make_commit
from libtwig.repository import MergeKind, Repository
from pytest import mark, raises

S, C, G = 's' * 40, 'c' * 40, 'g' * 40


def _commit_file(repo: Repository, name: str, content: str, message: str) -> None:
    (repo.working_dir / name).write_text(content)
    repo.add(name)
    repo.commit(message)


@mark.parametrize(('split', 'current', 'given', 'action'), [
    # Only in current
    (None, C, None, MergeAction.KEEP),
    # Same change on both sides
    (S, C, C, MergeAction.KEEP),
    (None, C, C, MergeAction.KEEP),
    # Deleted on both sides
    (S, None, None, MergeAction.KEEP),
    # Unchanged everywhere
    (S, S, S, MergeAction.KEEP),
    # Unmodified locally, changed or deleted in given
    (S, S, G, MergeAction.TAKE_GIVEN),
    (S, S, None, MergeAction.REMOVE),
    # Deleted locally, untouched in given
    (S, None, S, MergeAction.KEEP),
    # Changed locally, untouched in given
    (S, C, S, MergeAction.KEEP),
    # Only in given
    (None, None, G, MergeAction.TAKE_GIVEN),
    # Conflicts
    (S, C, G, MergeAction.CONFLICT),
    (S, None, G, MergeAction.CONFLICT),
    (S, C, None, MergeAction.CONFLICT),
    (None, C, G, MergeAction.CONFLICT),
])
def test_classify(split: str | None, current: str | None, given: str | None, action: MergeAction) -> None:
    assert classify(split, current, given) == action


def test_render_conflict_layout() -> None:
    assert render_conflict('3', '2', '1', newline='\n') == '<<<<<<< HEAD\n3\n=======\n2\n>>>>>>>\n'
    assert render_conflict('3\n', '2\n', None, newline='\n') == '<<<<<<< HEAD\n3\n=======\n2\n>>>>>>>\n'


def test_render_conflict_with_absent_side() -> None:
    assert render_conflict(None, 'new\n', 'old\n', newline='\n') == '<<<<<<< HEAD\n=======\nnew\n>>>>>>>\n'
    assert render_conflict('mine', None, 'old', newline='\n') == '<<<<<<< HEAD\nmine\n=======\n>>>>>>>\n'


def test_render_conflict_keeps_multiline_content_whole() -> None:
    current = 'line 1\nline 2\nmine\n'
    given = 'line 1\nline 2\ntheirs\n'

    rendered = render_conflict(current, given, 'line 1\nline 2\n', newline='\n')

    assert rendered == f'<<<<<<< HEAD\n{current}=======\n{given}>>>>>>>\n'


def test_reconcile(temp_repo: Repository) -> None:
    objects = temp_repo.objects
    root = initial_commit()
    kept = objects.put_content(b'kept').hash
    old = objects.put_content(b'old').hash
    new = objects.put_content(b'new').hash

    split = make_commit('split', 1.0, {'changed.txt': old, 'deleted.txt': old, 'kept.txt': kept}, root.hash)
    current = make_commit('current', 2.0, {'changed.txt': old, 'deleted.txt': old, 'kept.txt': kept,
                                            'mine.txt': kept}, split.hash)
    given = make_commit('given', 3.0, {'changed.txt': new, 'kept.txt': kept, 'theirs.txt': new}, split.hash)

    result = temp_repo.merger.reconcile(split, current, given)

    assert result.snapshot == {'changed.txt': new, 'kept.txt': kept, 'mine.txt': kept, 'theirs.txt': new}
    assert result.writes == {'changed.txt': new, 'theirs.txt': new}
    assert result.deletions == ['deleted.txt']
    assert not result.had_conflicts


def test_merge_conflict_scenario(temp_repo: Repository) -> None:
    file = temp_repo.working_dir / 'a'
    _commit_file(temp_repo, 'a', '1', 'c1')
    temp_repo.branch('feat')
    temp_repo.checkout_branch('feat')
    _commit_file(temp_repo, 'a', '2', 'c2')
    feat_head = temp_repo.head_commit()
    temp_repo.checkout_branch('master')
    _commit_file(temp_repo, 'a', '3', 'c3')
    master_head = temp_repo.head_commit()

    report = temp_repo.merge('feat')

    assert report.kind == MergeKind.MERGED
    assert report.conflicts == ['a']
    assert report.message == 'Encountered a merge conflict.'
    assert file.read_bytes() == b'<<<<<<< HEAD\n3\n=======\n2\n>>>>>>>\n'

    merge = temp_repo.head_commit()
    assert merge.hash == report.commit_ref
    assert merge.parent == master_head.hash
    assert merge.second_parent == feat_head.hash
    assert merge.message == 'Merged feat into master.'
    assert temp_repo.objects.get_blob(merge.snapshot['a']).content == file.read_bytes()
    assert not temp_repo.staging.has_pending_changes()


def test_merge_conflict_on_independently_added_files(temp_repo: Repository) -> None:
    temp_repo.branch('feat')
    _commit_file(temp_repo, 'f', 'ours\n', 'master adds f')
    temp_repo.checkout_branch('feat')
    _commit_file(temp_repo, 'f', 'theirs\n', 'feat adds f')
    temp_repo.checkout_branch('master')

    report = temp_repo.merge('feat')

    text = (temp_repo.working_dir / 'f').read_text()
    assert report.conflicts == ['f']
    assert text.startswith('<<<<<<< HEAD\nours\n=======\n')
    assert text.endswith('theirs\n>>>>>>>\n')


def test_merge_conflict_on_delete_and_modify(temp_repo: Repository) -> None:
    _commit_file(temp_repo, 'f', 'base\n', 'base')
    temp_repo.branch('feat')
    temp_repo.remove('f')
    temp_repo.commit('master deletes f')
    temp_repo.checkout_branch('feat')
    _commit_file(temp_repo, 'f', 'changed\n', 'feat changes f')
    temp_repo.checkout_branch('master')

    report = temp_repo.merge('feat')

    assert report.conflicts == ['f']
    assert (temp_repo.working_dir / 'f').read_text() == '<<<<<<< HEAD\n=======\nchanged\n>>>>>>>\n'


def test_merge_without_conflicts(temp_repo: Repository) -> None:
    _commit_file(temp_repo, 'shared.txt', 'base', 'base')
    _commit_file(temp_repo, 'doomed.txt', 'doomed', 'add doomed')
    temp_repo.branch('feat')
    _commit_file(temp_repo, 'mine.txt', 'mine', 'master adds mine')

    temp_repo.checkout_branch('feat')
    _commit_file(temp_repo, 'shared.txt', 'feat change', 'feat changes shared')
    _commit_file(temp_repo, 'theirs.txt', 'theirs', 'feat adds theirs')
    temp_repo.remove('doomed.txt')
    temp_repo.commit('feat removes doomed')
    temp_repo.checkout_branch('master')

    report = temp_repo.merge('feat')

    assert report.kind == MergeKind.MERGED
    assert report.conflicts == []
    assert report.message is None

    working_dir = temp_repo.working_dir
    assert (working_dir / 'shared.txt').read_text() == 'feat change'
    assert (working_dir / 'theirs.txt').read_text() == 'theirs'
    assert (working_dir / 'mine.txt').read_text() == 'mine'
    assert not (working_dir / 'doomed.txt').exists()
    assert set(temp_repo.head_commit().snapshot) == {'shared.txt', 'theirs.txt', 'mine.txt'}


def test_merge_fast_forward(temp_repo: Repository) -> None:
    _commit_file(temp_repo, 'a.txt', '1', 'c1')
    temp_repo.branch('feat')
    temp_repo.checkout_branch('feat')
    _commit_file(temp_repo, 'b.txt', '2', 'c2')
    feat_head = temp_repo.head_commit()
    temp_repo.checkout_branch('master')
    commit_count = len(list(temp_repo.log_all()))

    report = temp_repo.merge('feat')

    assert report.kind == MergeKind.FAST_FORWARD
    assert report.message == 'Current branch fast-forwarded.'
    assert temp_repo.head_commit() == feat_head
    assert temp_repo.current_branch() == 'master'
    assert len(list(temp_repo.log_all())) == commit_count
    assert (temp_repo.working_dir / 'b.txt').read_text() == '2'


def test_merge_ancestor_is_a_no_op(temp_repo: Repository) -> None:
    temp_repo.branch('feat')
    _commit_file(temp_repo, 'a.txt', '1', 'c1')
    head = temp_repo.head_commit()

    report = temp_repo.merge('feat')

    assert report.kind == MergeKind.NO_OP
    assert report.message == 'Given branch is an ancestor of the current branch.'
    assert temp_repo.head_commit() == head


def test_merge_with_untracked_file_in_the_way(temp_repo: Repository) -> None:
    _commit_file(temp_repo, 'a.txt', '1', 'c1')
    temp_repo.branch('feat')
    _commit_file(temp_repo, 'a.txt', '2', 'master change')
    temp_repo.checkout_branch('feat')
    _commit_file(temp_repo, 'b.txt', 'feat', 'feat adds b')
    temp_repo.checkout_branch('master')
    head = temp_repo.head_commit()
    (temp_repo.working_dir / 'b.txt').write_text('untracked')

    with raises(UntrackedFileError) as exc_info:
        temp_repo.merge('feat')

    assert exc_info.value.paths == ['b.txt']
    assert temp_repo.head_commit() == head
    assert (temp_repo.working_dir / 'b.txt').read_text() == 'untracked'
    assert (temp_repo.working_dir / 'a.txt').read_text() == '2'


def test_merge_preconditions(temp_repo: Repository) -> None:
    _commit_file(temp_repo, 'a.txt', '1', 'c1')
    temp_repo.branch('feat')

    with raises(NoSuchBranchError, match='A branch with that name does not exist.'):
        temp_repo.merge('missing')

    with raises(UserError, match='Cannot merge a branch with itself.'):
        temp_repo.merge('master')

    (temp_repo.working_dir / 'a.txt').write_text('2')
    temp_repo.add('a.txt')
    with raises(UserError, match='You have uncommitted changes.'):
        temp_repo.merge('feat')
