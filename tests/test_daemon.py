import os
from unittest import mock

import pytest

from yrpckit.daemon import daemonize, write_pidfile


def test_write_pidfile_round_trip(tmp_path):
    path = tmp_path / "pid.txt"
    write_pidfile(os.getpid(), path)
    assert int(path.read_text()) == os.getpid()


def test_write_pidfile_truncates_old_contents(tmp_path):
    path = tmp_path / "pid.txt"
    write_pidfile(123456, path)
    write_pidfile(7, path)
    assert path.read_text() == "7"


def test_write_pidfile_mode(tmp_path):
    path = tmp_path / "pid.txt"
    old = os.umask(0)
    try:
        write_pidfile(1, path)
    finally:
        os.umask(old)
    assert path.stat().st_mode & 0o777 == 0o640


def test_daemonize_session_failure_is_raised(tmp_path):
    pidfile = tmp_path / "pid.txt"
    with mock.patch("os.getsid", return_value=-1), mock.patch(
        "os.setsid", side_effect=PermissionError(1, "Operation not permitted")
    ):
        with pytest.raises(PermissionError):
            daemonize(str(pidfile))
    assert not pidfile.exists()


def test_daemonize_detaches_and_records_pid(tmp_path):
    pidfile = tmp_path / "pid.txt"
    with mock.patch("os.getsid", return_value=-1), mock.patch(
        "os.setsid"
    ) as setsid, mock.patch("signal.signal") as sig, mock.patch(
        "os.umask"
    ) as umask, mock.patch("os.dup2") as dup2, mock.patch(
        "os.closerange"
    ) as closerange:
        result = daemonize(str(pidfile))
    assert result is True
    assert int(pidfile.read_text()) == os.getpid()
    assert setsid.call_count == 1
    assert sig.call_count == 1
    umask.assert_called_once_with(0)
    assert sorted(call.args[1] for call in dup2.call_args_list) == [0, 1, 2]
    assert closerange.call_args.args[0] == 3