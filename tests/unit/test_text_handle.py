"""Tests for SqlarTextHandle."""

import pytest

from sqlarfs import SqlarTextHandle


@pytest.fixture
def text_sfs(make_sfs):
    return make_sfs({
        "utf8.txt": "こんにちは世界\nHello, World!\n".encode("utf-8"),
        "sjis.txt": "日本語テスト\n".encode("shift_jis"),
        "endings.txt": b"one\ntwo\r\nthree\rfour",
        "big.txt": ("line %05d\n" * 2000 % tuple(range(2000))).encode("ascii"),
        "cr_at_chunk_edge.txt": b"x" * 4095 + b"\r\nnext\n",
    })


def test_read_utf8(text_sfs):
    with text_sfs.open("utf8.txt") as fh:
        assert SqlarTextHandle(fh).read() == "こんにちは世界\nHello, World!\n"


def test_read_shiftjis(text_sfs):
    with text_sfs.open("sjis.txt") as fh:
        th = SqlarTextHandle(fh, encoding="shift_jis")
        assert th.encoding == "shift_jis"
        assert th.read() == "日本語テスト\n"


def test_read_counts_characters(text_sfs):
    with text_sfs.open("utf8.txt") as fh:
        th = SqlarTextHandle(fh)
        assert th.read(3) == "こんに"
        assert th.read(4) == "ちは世界"


def test_readline_all_endings(text_sfs):
    with text_sfs.open("endings.txt") as fh:
        th = SqlarTextHandle(fh)
        assert th.readline() == "one\n"
        assert th.readline() == "two\r\n"
        assert th.readline() == "three\r"
        assert th.readline() == "four"
        assert th.readline() == ""


def test_readline_limit(text_sfs):
    with text_sfs.open("endings.txt") as fh:
        th = SqlarTextHandle(fh)
        assert th.readline(2) == "on"
        assert th.readline() == "e\n"


def test_crlf_split_across_chunks(text_sfs):
    with text_sfs.open("cr_at_chunk_edge.txt") as fh:
        lines = list(SqlarTextHandle(fh))
    assert lines == ["x" * 4095 + "\r\n", "next\n"]


def test_iteration_over_compressed_member(text_sfs):
    with text_sfs.open("big.txt") as fh:
        with SqlarTextHandle(fh) as th:
            lines = th.readlines()
    assert len(lines) == 2000
    assert lines[0] == "line 00000\n"
    assert lines[-1] == "line 01999\n"


def test_decode_errors_strict(make_sfs):
    sfs = make_sfs({"bad.txt": b"\xff\xfe\xfa"})
    with sfs.open("bad.txt") as fh:
        with pytest.raises(UnicodeDecodeError):
            SqlarTextHandle(fh).read()


def test_decode_errors_replace(make_sfs):
    sfs = make_sfs({"bad.txt": b"ok\xff"})
    with sfs.open("bad.txt") as fh:
        th = SqlarTextHandle(fh, errors="replace")
        assert th.errors == "replace"
        assert th.read() == "ok�"
