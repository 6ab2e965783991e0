import pytest

from sqlarfs import PermMask

pytest_plugins = ["sqlarfs._pytest_plugin"]


@pytest.fixture
def sample_members():
    """a.txt at the top level, sub/b.txt below an implied directory."""
    from sqlarfs._pytest_plugin import Member

    return [
        Member("a.txt", b"aaaa", mode=0o100644, mtime=1_696_000_000),
        Member("sub/b.txt", b"bbbb", mode=0o100644, mtime=1_696_000_100),
    ]


@pytest.fixture
def sfs(make_sfs, sample_members):
    return make_sfs(sample_members, PermMask.ANY)
