from wslwatch.config import MonitorConfig
from wslwatch.models import (
    ServiceStatus, ProbeResult, NetworkAdapterStatus, DistroState, ResourceUsageEntry,
)
from wslwatch.sampler import HealthSampler


class _FakeCollector:
    def __init__(self, service="Running", adapter="Up", distros=(), vmmem=()):
        self._service = ServiceStatus(name="WslService", status=service, start_type="Manual")
        self._adapter = NetworkAdapterStatus(name="vEthernet (WSL)", status=adapter)
        self._distros = tuple(distros)
        self._vmmem = tuple(vmmem)

    def service(self):
        return self._service

    def distros(self):
        return self._distros

    def vmmem(self):
        return self._vmmem

    def network(self):
        return self._adapter


def _sampler(monkeypatch, probe, **collector_kw):
    cfg = MonitorConfig(distro_name="Debian", probe_timeout_s=4)
    s = HealthSampler(cfg, collector=_FakeCollector(**collector_kw))
    calls = []

    def fake_probe(distro, timeout_s):
        calls.append((distro, timeout_s))
        return probe

    monkeypatch.setattr("wslwatch.sampler.probe_distro", fake_probe)
    return s, calls


def test_sample_fuses_all_signals(monkeypatch):
    distros = [DistroState(name="Debian", state="Running", version=2, is_default=True)]
    vmmem = [ResourceUsageEntry(name="vmmemWSL", pid=9, working_set_mb=100.0)]
    probe = ProbeResult(success=True, duration_ms=42, output="ok")
    s, calls = _sampler(monkeypatch, probe, distros=distros, vmmem=vmmem)

    sample = s.sample()

    assert calls == [("Debian", 4)]
    assert sample.state == "healthy"
    assert sample.probe == probe
    assert sample.distros == tuple(distros)
    assert sample.vmmem == tuple(vmmem)
    assert "T" in sample.ts


def test_diagnostic_signals_do_not_affect_state(monkeypatch):
    broken = [DistroState(name="", state="Error: timed out", version=0)]
    probe = ProbeResult(success=True, duration_ms=42, output="ok")
    s, _ = _sampler(monkeypatch, probe, distros=broken, vmmem=[])
    assert s.sample().state == "healthy"


def test_timed_out_probe_is_zombie(monkeypatch):
    probe = ProbeResult(success=False, duration_ms=4000, error="Probe timed out after 4s", timed_out=True)
    s, _ = _sampler(monkeypatch, probe)
    assert s.sample().state == "zombie"


def test_slow_probe_uses_configured_threshold(monkeypatch):
    probe = ProbeResult(success=True, duration_ms=3500, output="ok")
    s, _ = _sampler(monkeypatch, probe)
    assert s.sample().state == "degraded"
