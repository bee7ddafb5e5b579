from __future__ import annotations
import fnmatch
import logging
from typing import List, Tuple

import psutil

from .config import MonitorConfig
from .models import (
    ServiceStatus, DistroState, ResourceUsageEntry, NetworkAdapterStatus,
    SERVICE_NOT_FOUND, missing_adapter,
)
from .probe import run_bounded

logger = logging.getLogger(__name__)

LIST_COMMAND = ["wsl.exe", "-l", "-v"]
LIST_TIMEOUT_S = 5

# psutil reports lower_snake names; the service manager shows these.
_SERVICE_STATUS_NAMES = {
    "running": "Running",
    "stopped": "Stopped",
    "start_pending": "StartPending",
    "stop_pending": "StopPending",
    "continue_pending": "ContinuePending",
    "pause_pending": "PausePending",
    "paused": "Paused",
}

_START_TYPE_NAMES = {
    "automatic": "Automatic",
    "manual": "Manual",
    "disabled": "Disabled",
}


def _error(e: Exception) -> str:
    return f"Error: {e}"


# ──────────────────────────────────────────────
# Raw readers – may raise; wrapped by SignalCollector
# ──────────────────────────────────────────────
def _read_service(name: str) -> ServiceStatus:
    try:
        svc = psutil.win_service_get(name)
        status = svc.status()
        start_type = svc.start_type()
    except psutil.NoSuchProcess:
        return ServiceStatus(name=name, status=SERVICE_NOT_FOUND, start_type="")
    return ServiceStatus(
        name=name,
        status=_SERVICE_STATUS_NAMES.get(status, str(status)),
        start_type=_START_TYPE_NAMES.get(start_type, str(start_type)),
    )


def decode_wsl_output(raw: bytes) -> str:
    """wsl.exe writes UTF-16LE regardless of the console code page."""
    text = raw.decode("utf-16-le", errors="replace")
    return text.replace("\ufeff", "").replace("\x00", "")


def parse_distro_list(text: str) -> List[DistroState]:
    """
    Parse `wsl -l -v` output:

          NAME            STATE           VERSION
        * Ubuntu          Running         2
          docker-desktop  Stopped         2

    The header is skipped, `*` marks the default, malformed lines are dropped.
    """
    rows: List[DistroState] = []
    lines = text.splitlines()
    for line in lines[1:]:
        stripped = line.strip()
        if not stripped:
            continue
        is_default = stripped.startswith("*")
        if is_default:
            stripped = stripped[1:].strip()
        parts = stripped.split()
        if len(parts) < 3:
            continue
        try:
            version = int(parts[-1])
        except ValueError:
            continue
        rows.append(DistroState(
            name=" ".join(parts[:-2]),
            state=parts[-2],
            version=version,
            is_default=is_default,
        ))
    return rows


def _read_distros() -> List[DistroState]:
    code, out, _ = run_bounded(LIST_COMMAND, LIST_TIMEOUT_S)
    if code is None:
        raise TimeoutError(f"{' '.join(LIST_COMMAND)} did not exit within {LIST_TIMEOUT_S}s")
    return parse_distro_list(decode_wsl_output(out))


def _working_set_bytes(p: psutil.Process) -> int:
    mi = p.memory_info()
    # wset only exists on Windows
    return int(getattr(mi, "wset", mi.rss))


def _read_vmmem(prefix: str) -> List[ResourceUsageEntry]:
    rows: List[ResourceUsageEntry] = []
    needle = prefix.lower()
    for p in psutil.process_iter(["pid", "name"]):
        try:
            name = p.info.get("name") or ""
            if not name.lower().startswith(needle):
                continue
            rows.append(ResourceUsageEntry(
                name=name,
                pid=int(p.info["pid"]),
                working_set_mb=round(_working_set_bytes(p) / (1024 * 1024), 1),
            ))
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return rows


def format_link_speed(mbps: int) -> str:
    if not mbps:
        return ""
    if mbps >= 1000:
        return f"{mbps / 1000:g} Gbps"
    return f"{mbps} Mbps"


def _read_network(pattern: str) -> NetworkAdapterStatus:
    stats = psutil.net_if_stats()
    for name, st in stats.items():
        if not fnmatch.fnmatchcase(name, pattern):
            continue
        mac = ""
        for addr in psutil.net_if_addrs().get(name, []):
            if addr.family == psutil.AF_LINK:
                mac = addr.address
                break
        return NetworkAdapterStatus(
            name=name,
            status="Up" if st.isup else "Down",
            link_speed=format_link_speed(st.speed),
            mac_address=mac,
        )
    return missing_adapter()


# ──────────────────────────────────────────────
# SignalCollector – one best-effort read per signal
# ──────────────────────────────────────────────
class SignalCollector:
    """
    Each method returns a record even when its source fails: the error text
    lands in the record's status/state field instead of propagating.
    """
    def __init__(self, cfg: MonitorConfig):
        self.cfg = cfg

    def service(self) -> ServiceStatus:
        try:
            return _read_service(self.cfg.service_name)
        except Exception as e:
            logger.warning("Service query failed: %s", e)
            return ServiceStatus(name=self.cfg.service_name, status=_error(e))

    def distros(self) -> Tuple[DistroState, ...]:
        try:
            return tuple(_read_distros())
        except Exception as e:
            logger.warning("Distro listing failed: %s", e)
            return (DistroState(name="", state=_error(e), version=0),)

    def vmmem(self) -> Tuple[ResourceUsageEntry, ...]:
        try:
            return tuple(_read_vmmem(self.cfg.vmmem_prefix))
        except Exception as e:
            logger.warning("Process enumeration failed: %s", e)
            return (ResourceUsageEntry(
                name=self.cfg.vmmem_prefix, pid=0, working_set_mb=0.0, status=_error(e),
            ),)

    def network(self) -> NetworkAdapterStatus:
        try:
            return _read_network(self.cfg.adapter_pattern)
        except Exception as e:
            logger.warning("Adapter query failed: %s", e)
            return NetworkAdapterStatus(name="", status=_error(e))
