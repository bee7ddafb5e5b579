from __future__ import annotations
import logging
import subprocess
import sys
import time
from typing import List, Optional, Sequence, Tuple

import psutil

from .models import ProbeResult

logger = logging.getLogger(__name__)

# CREATE_NO_WINDOW constant for Windows
CREATE_NO_WINDOW = 0x08000000

# After a kill, how long to wait for the child to be reaped and its pipes to hit EOF.
_REAP_TIMEOUT_S = 2.0


def _is_windows() -> bool:
    return sys.platform.startswith("win")


def _creationflags() -> int:
    return CREATE_NO_WINDOW if _is_windows() else 0


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.monotonic() - start) * 1000))


def kill_tree(proc: subprocess.Popen) -> None:
    """Force-kill a child and everything it spawned. Best effort."""
    try:
        children = psutil.Process(proc.pid).children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        children = []
    for c in children:
        try:
            c.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    try:
        proc.kill()
    except OSError:
        pass


def _reap(proc: subprocess.Popen) -> None:
    """Collect exit status and close pipes after a kill; never blocks for long."""
    try:
        proc.communicate(timeout=_REAP_TIMEOUT_S)
    except (subprocess.TimeoutExpired, OSError, ValueError) as e:
        logger.debug("Child %s not reaped cleanly: %s", proc.pid, e)
        try:
            proc.wait(timeout=_REAP_TIMEOUT_S)
        except subprocess.TimeoutExpired:
            logger.warning("Child %s still alive after kill", proc.pid)
    for stream in (proc.stdout, proc.stderr):
        if stream is not None:
            try:
                stream.close()
            except OSError:
                pass


def run_bounded(command: Sequence[str], timeout_s: float) -> Tuple[Optional[int], bytes, bytes]:
    """
    Run *command* with both output pipes drained concurrently.
    Returns (returncode, stdout, stderr); returncode is None when the
    process had to be killed at the deadline.
    """
    proc = subprocess.Popen(
        list(command),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        creationflags=_creationflags(),
    )
    try:
        # communicate() reads stdout and stderr in parallel while waiting.
        out, err = proc.communicate(timeout=timeout_s)
        return proc.returncode, out or b"", err or b""
    except subprocess.TimeoutExpired:
        kill_tree(proc)
        _reap(proc)
        return None, b"", b""
    except BaseException:
        kill_tree(proc)
        _reap(proc)
        raise


def run_probe(command: Sequence[str], timeout_s: float, expected: str = "ok") -> ProbeResult:
    """
    Run one connectivity probe with a hard wall-clock bound.

    success = exit code 0 and trimmed stdout == *expected*.
    Failures, timeouts and launch errors come back as data, never raised.
    """
    start = time.monotonic()
    try:
        code, out, err = run_bounded(command, timeout_s)
    except Exception as e:
        return ProbeResult(success=False, duration_ms=_elapsed_ms(start), error=str(e))

    duration_ms = _elapsed_ms(start)
    if code is None:
        return ProbeResult(
            success=False,
            duration_ms=duration_ms,
            error=f"Probe timed out after {timeout_s:g}s",
            timed_out=True,
        )

    output = out.decode("utf-8", errors="replace").strip()
    stderr = err.decode("utf-8", errors="replace").strip()
    success = code == 0 and output == expected
    error = ""
    if not success:
        if code != 0:
            error = stderr or f"exit code {code}"
        else:
            error = stderr or f"unexpected output: {output!r}"
    return ProbeResult(success=success, duration_ms=duration_ms, output=output, error=error)


def distro_command(distro: str) -> List[str]:
    return ["wsl.exe", "-d", distro, "--", "echo", "ok"]


def probe_distro(distro: str, timeout_s: float) -> ProbeResult:
    return run_probe(distro_command(distro), timeout_s)
