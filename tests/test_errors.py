import errno
import os

import pytest

from tinynet.errors import TaggedError, UnixError, check_system_call, notnull


def test_tagged_error_message_and_code():
    err = TaggedError("lookup", 7, "went wrong")
    assert str(err) == "lookup: went wrong"
    assert err.error_code == 7
    assert err.errno == 7


def test_unix_error_uses_strerror():
    err = UnixError("read", errno.EBADF)
    assert str(err) == "read: " + os.strerror(errno.EBADF)
    assert err.error_code == errno.EBADF
    assert isinstance(err, OSError)


def test_check_system_call_passes_through_non_negative():
    assert check_system_call("poll", 0) == 0
    assert check_system_call("poll", 5) == 5


def test_check_system_call_raises_on_negative():
    with pytest.raises(UnixError) as info:
        check_system_call("close", -errno.EBADF)
    assert info.value.error_code == errno.EBADF
    assert str(info.value).startswith("close: ")


def test_notnull_returns_value():
    assert notnull("ctx", [1, 2]) == [1, 2]
    assert notnull("ctx", 0) == 0


def test_notnull_raises_on_none():
    with pytest.raises(ValueError, match="ctx: returned null pointer"):
        notnull("ctx", None)