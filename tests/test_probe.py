import sys
import time

import psutil
import pytest

from wslwatch import probe as probe_mod
from wslwatch.probe import run_probe, distro_command

PY = sys.executable


def _live_children():
    alive = []
    for c in psutil.Process().children(recursive=True):
        try:
            if c.is_running() and c.status() != psutil.STATUS_ZOMBIE:
                alive.append(c)
        except psutil.NoSuchProcess:
            continue
    return alive


def test_success_requires_ok_output():
    r = run_probe([PY, "-c", "print('ok')"], timeout_s=10)
    assert r.success is True
    assert r.timed_out is False
    assert r.output == "ok"
    assert r.error == ""
    assert r.duration_ms >= 0


def test_unexpected_output_is_failure():
    r = run_probe([PY, "-c", "print('hello')"], timeout_s=10)
    assert r.success is False
    assert r.timed_out is False
    assert r.output == "hello"
    assert "unexpected output" in r.error


def test_nonzero_exit_reports_stderr():
    r = run_probe([PY, "-c", "import sys; print('ok'); sys.stderr.write('boom'); sys.exit(3)"], timeout_s=10)
    assert r.success is False
    assert r.error == "boom"


def test_nonzero_exit_without_stderr():
    r = run_probe([PY, "-c", "import sys; sys.exit(2)"], timeout_s=10)
    assert r.success is False
    assert r.error == "exit code 2"


def test_missing_executable_is_data():
    r = run_probe(["/nonexistent/wslwatch-no-such-binary"], timeout_s=5)
    assert r.success is False
    assert r.timed_out is False
    assert r.error
    assert r.duration_ms >= 0


def test_hung_command_is_bounded_and_reaped():
    timeout = 0.5
    start = time.monotonic()
    r = run_probe([PY, "-c", "import time; time.sleep(60)"], timeout_s=timeout)
    elapsed = time.monotonic() - start

    assert r.timed_out is True
    assert r.success is False
    assert "timed out" in r.error
    assert r.duration_ms >= int(timeout * 1000) - 50
    assert elapsed < timeout + 5
    assert _live_children() == []


def test_hung_command_with_grandchild_is_reaped():
    script = (
        "import subprocess, sys, time\n"
        "subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(60)'])\n"
        "time.sleep(60)\n"
    )
    start = time.monotonic()
    r = run_probe([PY, "-c", script], timeout_s=2)
    assert r.timed_out is True
    assert time.monotonic() - start < 2 + 5
    assert _live_children() == []


def test_large_output_on_both_streams_does_not_deadlock():
    script = (
        "import sys\n"
        "sys.stderr.write('e' * 2000000)\n"
        "sys.stderr.flush()\n"
        "sys.stdout.write('ok')\n"
    )
    r = run_probe([PY, "-c", script], timeout_s=20)
    assert r.timed_out is False
    assert r.success is True


def test_launch_error_from_popen(monkeypatch):
    def boom(*a, **kw):
        raise OSError("cannot spawn")

    monkeypatch.setattr(probe_mod.subprocess, "Popen", boom)
    r = run_probe(["anything"], timeout_s=1)
    assert r.success is False
    assert r.error == "cannot spawn"


def test_distro_command():
    assert distro_command("Ubuntu") == ["wsl.exe", "-d", "Ubuntu", "--", "echo", "ok"]


@pytest.mark.skipif(sys.platform.startswith("win"), reason="posix creation flags")
def test_no_creationflags_off_windows():
    assert probe_mod._creationflags() == 0
