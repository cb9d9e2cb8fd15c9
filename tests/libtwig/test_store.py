from pathlib import Path

from libtwig.exceptions import ObjectNotFoundError
from libtwig.objects import Commit
from libtwig.plumbing import get_content_path, initial_commit, make_blob, make_commit
from libtwig.ref import HashRef
from libtwig.store import ObjectStore
from pytest import fixture, raises


@fixture
def store(tmp_path: Path) -> ObjectStore:
    return ObjectStore(tmp_path / 'objects', tmp_path / 'commits')


def _fake_commit(digest: str, message: str) -> Commit:
    return Commit(HashRef(digest), message, 1.0, {}, initial_commit().hash)


def test_put_same_content_twice_stores_one_blob(store: ObjectStore) -> None:
    first = make_blob(b'same content')
    second = make_blob(b'same content')

    assert store.put(first) == store.put(second)

    stored = [p for p in store.objects_dir.rglob('*') if p.is_file()]
    assert stored == [get_content_path(store.objects_dir, first.hash)]
    assert store.get_blob(first.hash).content == b'same content'


def test_put_and_get_commit(store: ObjectStore) -> None:
    root = initial_commit()
    commit = make_commit('c1', 10.0, {'a.txt': make_blob(b'a').hash}, root.hash)

    store.put(root)
    store.put(commit)

    assert store.has_commit(commit.hash)
    assert not store.has_blob(commit.hash)
    loaded = store.get_commit(commit.hash)
    assert loaded == commit
    assert loaded.parent == root.hash
    assert store.get_commit(commit.hash) == loaded
    assert store.get(commit.hash) == commit


def test_put_rejects_unknown_objects(store: ObjectStore) -> None:
    with raises(TypeError):
        store.put('not an object')  # type: ignore[arg-type]


def test_get_missing_objects_raises_error(store: ObjectStore) -> None:
    with raises(ObjectNotFoundError):
        store.get_blob('a' * 40)

    with raises(ObjectNotFoundError):
        store.get_commit('a' * 40)


def test_get_by_prefix(store: ObjectStore) -> None:
    root = initial_commit()
    store.put(root)

    assert store.get_by_prefix(root.hash) == root
    assert store.get_by_prefix(root.hash[:6]) == root
    assert store.get_by_prefix(root.hash[:1]) == root
    assert store.get_by_prefix(root.hash[:6].upper()) == root


def test_get_by_prefix_ambiguous_picks_first_in_digest_order(store: ObjectStore) -> None:
    store.put(_fake_commit('abc1' + '0' * 36, 'later'))
    store.put(_fake_commit('abc0' + 'f' * 36, 'earlier'))
    store.put(_fake_commit('abd0' + '0' * 36, 'other'))

    assert store.get_by_prefix('abc').message == 'earlier'
    assert store.get_by_prefix('abc1').message == 'later'
    assert store.get_by_prefix('ab').message == 'earlier'


def test_get_by_prefix_not_found(store: ObjectStore) -> None:
    store.put(initial_commit())

    with raises(ObjectNotFoundError):
        store.get_by_prefix('f' * 40 if not initial_commit().hash.startswith('f') else '0' * 40)

    with raises(ObjectNotFoundError):
        store.get_by_prefix('')

    with raises(ObjectNotFoundError):
        store.get_by_prefix('not-hex')


def test_blob_digest_is_not_a_commit_id(store: ObjectStore) -> None:
    blob = make_blob(b'content')
    store.put(blob)

    with raises(ObjectNotFoundError):
        store.get_by_prefix(blob.hash)


def test_iter_commits(store: ObjectStore) -> None:
    root = initial_commit()
    commit = make_commit('c1', 10.0, {}, root.hash)
    store.put(root)
    store.put(commit)

    assert set(store.iter_commits()) == {root, commit}
