import stat

import pytest

from sqlarfs import ROOT, Entry, PermMask, SqlarFileSystem, SqliteArchiveStore
from sqlarfs._exceptions import SqlarInvalidPathError
from sqlarfs._pytest_plugin import Member, add_members
from tests.helpers.asserts import assert_same_metadata
from tests.helpers.stores import CountingStore, FailingStore


def test_stat_file(sfs):
    e = sfs.stat("a.txt")
    assert e.is_file
    assert e.name == "a.txt"
    assert e.size == 4
    assert e.perm == 0o644
    assert e.mtime == 1_696_000_000


def test_stat_nested_file_reports_base_name(sfs):
    assert sfs.stat("sub/b.txt").name == "b.txt"


def test_stat_implied_directory_is_synthesized(sfs):
    e = sfs.stat("sub")
    assert e.is_dir
    assert e.perm == 0o555
    assert e.mode == stat.S_IFDIR | 0o555
    assert e.mtime == 0 and e.size == 0 and e.rowid == 0


def test_stat_root_of_archive_without_root_row(sfs):
    root = sfs.stat(ROOT)
    assert root.is_dir
    assert root.name == "."
    assert root.mode == stat.S_IFDIR | 0o555


def test_empty_archive_root_exists_and_is_empty(make_sfs):
    sfs = make_sfs()
    assert sfs.stat(".").is_dir
    assert sfs.listdir(".") == []
    assert sfs.exists(".")


def test_explicit_root_row_is_used(make_sfs):
    sfs = make_sfs([Member(".", mode=stat.S_IFDIR | 0o750, mtime=99)])
    root = sfs.stat(".")
    assert root.perm == 0o750
    assert root.mtime == 99
    assert root.name == "."


def test_non_directory_root_row_is_ignored(make_sfs):
    sfs = make_sfs([Member(".", b"odd", mode=stat.S_IFREG | 0o644)])
    assert sfs.stat(".").mode == stat.S_IFDIR | 0o555


def test_explicit_directory_row_wins_over_synthesized(make_sfs):
    sfs = make_sfs([
        Member("d", mode=stat.S_IFDIR | 0o751, mtime=1234),
        Member("d/f", b"x"),
    ])
    e = sfs.stat("d")
    assert e.perm == 0o751
    assert e.mtime == 1234
    assert not e.is_synthesized


def test_explicit_empty_directory(make_sfs):
    sfs = make_sfs([Member("empty", mode=stat.S_IFDIR | 0o755)])
    assert sfs.stat("empty").is_dir
    assert sfs.listdir("empty") == []


def test_missing_path(sfs):
    with pytest.raises(FileNotFoundError, match="nope"):
        sfs.stat("nope")


def test_missing_parent(sfs):
    with pytest.raises(FileNotFoundError):
        sfs.stat("nope/a.txt")


def test_file_used_as_directory_is_not_found(sfs):
    with pytest.raises(FileNotFoundError):
        sfs.stat("a.txt/x")


@pytest.mark.parametrize("path", ["", "/a.txt", "sub/", "sub/../a.txt", "./a.txt"])
def test_invalid_path(sfs, path):
    with pytest.raises(SqlarInvalidPathError):
        sfs.stat(path)


def test_broken_rows_are_invisible(make_sfs):
    sfs = make_sfs([
        Member("neither", b"x", mode=0o644),
        Member("both", b"x", mode=stat.S_IFREG | stat.S_IFDIR | 0o644),
        Member("fine", b"x"),
    ])
    for name in ("neither", "both"):
        with pytest.raises(FileNotFoundError):
            sfs.stat(name)
        assert not sfs.exists(name)
    assert [e.name for e in sfs.listdir(".")] == ["fine"]


def test_broken_row_with_children_becomes_synthesized_directory(make_sfs):
    sfs = make_sfs([
        Member("d", mode=stat.S_IFREG | stat.S_IFDIR | 0o777),
        Member("d/f", b"x"),
    ])
    e = sfs.stat("d")
    assert e.is_synthesized
    assert e.mode == stat.S_IFDIR | 0o555


def test_file_row_shadowing_deeper_rows(make_sfs):
    """An explicit file row wins; rows below it are unreachable, never mixed in."""
    sfs = make_sfs([Member("x", b"file"), Member("x/y", b"child")])
    e = sfs.stat("x")
    assert e.is_file
    with pytest.raises(FileNotFoundError):
        sfs.stat("x/y")
    listing = sfs.listdir(".")
    assert [(e.name, e.is_dir) for e in listing] == [("x", False)]
    assert sfs.read_bytes("x") == b"file"


def test_stat_twice_is_consistent(sfs):
    for path in (".", "a.txt", "sub", "sub/b.txt"):
        assert_same_metadata(sfs.stat(path), sfs.stat(path))


def test_directories_are_cached_files_are_not(sqlar_conn):
    add_members(sqlar_conn, {"a/b/c.txt": b"c"})
    store = CountingStore(SqliteArchiveStore(sqlar_conn))
    sfs = SqlarFileSystem(store)

    first = sfs.stat("a/b")
    queries_after_first = store.total
    assert sfs.stat("a/b") is first
    assert store.total == queries_after_first

    before = store.total
    sfs.stat("a/b/c.txt")
    sfs.stat("a/b/c.txt")
    assert store.calls["lookup"] >= 2
    assert store.total - before == 2  # one point lookup per file stat, ancestors cached
    assert sfs.cache_size == 3  # ".", "a", "a/b"


def test_one_round_trip_per_uncached_level(sqlar_conn):
    add_members(sqlar_conn, [
        Member("a", mode=stat.S_IFDIR | 0o755),
        Member("a/b", mode=stat.S_IFDIR | 0o755),
        Member("a/b/c.txt", b"c"),
    ])
    store = CountingStore(SqliteArchiveStore(sqlar_conn))
    sfs = SqlarFileSystem(store)
    sfs.stat("a/b/c.txt")
    # root, a, a/b, a/b/c.txt: explicit rows, so no descendant probes
    assert store.calls == {"lookup": 4}


def test_store_failure_propagates(sqlar_conn):
    import sqlite3

    sfs = SqlarFileSystem(FailingStore(sqlite3.OperationalError("disk I/O error")))
    with pytest.raises(sqlite3.OperationalError, match="disk I/O error"):
        sfs.stat("a")


def test_store_must_implement_protocol():
    with pytest.raises(TypeError, match="ArchiveStore"):
        SqlarFileSystem(object())  # type: ignore[arg-type]


def test_exists_is_dir_is_file(sfs):
    assert sfs.exists("a.txt") and sfs.is_file("a.txt") and not sfs.is_dir("a.txt")
    assert sfs.exists("sub") and sfs.is_dir("sub") and not sfs.is_file("sub")
    assert not sfs.exists("nope")
    assert not sfs.exists("/abs")
    assert not sfs.is_dir("../x")


def test_perm_mask_property(make_sfs):
    assert make_sfs(perm_mask=PermMask.OWNER).perm_mask is PermMask.OWNER


def test_stat_returns_entry(sfs):
    assert isinstance(sfs.stat("a.txt"), Entry)


def test_explicit_directory_reports_zero_size(make_sfs):
    sfs = make_sfs([
        Member("d", mode=stat.S_IFDIR | stat.S_ISUID | 0o755, size=4096),
        Member("d/f.txt", b"f"),
    ])
    entry = sfs.stat("d")
    assert entry.size == 0
    assert entry.perm == 0o755
    assert entry.file_mode == stat.S_IFDIR | 0o755
    assert entry.filemode == "drwxr-xr-x"
    assert [e.size for e in sfs.listdir(".")] == [0]
