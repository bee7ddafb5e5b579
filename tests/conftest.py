"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from wslwatch.config import MonitorConfig
from wslwatch.models import (
    HealthSample, ServiceStatus, ProbeResult, NetworkAdapterStatus,
    DistroState, ResourceUsageEntry,
)
from wslwatch.store import LogStore, now_iso


def _build(state="healthy", service_status="Running", success=True, duration_ms=120,
           timed_out=False, adapter_status="Up", ts=None):
    return HealthSample(
        ts=ts or now_iso(),
        state=state,
        service=ServiceStatus(name="WslService", status=service_status, start_type="Automatic"),
        probe=ProbeResult(
            success=success,
            duration_ms=duration_ms,
            output="ok" if success else "",
            error="" if success else "exit code 1",
            timed_out=timed_out,
        ),
        network=NetworkAdapterStatus(
            name="vEthernet (WSL)", status=adapter_status,
            link_speed="10 Gbps", mac_address="00-15-5D-01-02-03",
        ),
        distros=(DistroState(name="Ubuntu", state="Running", version=2, is_default=True),),
        vmmem=(ResourceUsageEntry(name="vmmemWSL", pid=4242, working_set_mb=2048.5),),
    )


@pytest.fixture
def make_sample():
    """Factory for HealthSample values with healthy defaults."""
    return _build


@pytest.fixture
def cfg(tmp_path) -> MonitorConfig:
    return MonitorConfig(
        sample_interval_s=1,
        probe_timeout_s=1,
        log_dir=str(tmp_path / "logs"),
        retention_days=7,
        events_max_bytes=4096,
        events_keep_lines=10,
    )


@pytest.fixture
def store(cfg) -> LogStore:
    return LogStore(cfg.resolved_log_dir())
