from __future__ import annotations
import logging
from typing import Optional

from .collectors import SignalCollector
from .config import MonitorConfig
from .detectors import classify
from .models import HealthSample, ProbeResult
from .probe import probe_distro
from .store import now_iso

logger = logging.getLogger(__name__)


class HealthSampler:
    """
    Collects every signal once and fuses them into a HealthSample.
    Distros and vmmem are recorded for context only; they never change the state.
    """
    def __init__(self, cfg: MonitorConfig, collector: Optional[SignalCollector] = None):
        self.cfg = cfg
        self.collector = collector or SignalCollector(cfg)

    def probe(self) -> ProbeResult:
        return probe_distro(self.cfg.distro_name, self.cfg.probe_timeout_s)

    def sample(self) -> HealthSample:
        ts = now_iso()

        service = self.collector.service()
        distros = self.collector.distros()
        probe = self.probe()
        vmmem = self.collector.vmmem()
        network = self.collector.network()

        state = classify(service, probe, network, slow_probe_ms=self.cfg.slow_probe_ms)
        logger.debug(
            "state=%s service=%s probe=%dms%s adapter=%s",
            state, service.status, probe.duration_ms,
            " (timed out)" if probe.timed_out else "", network.status,
        )
        return HealthSample(
            ts=ts,
            state=state,
            service=service,
            probe=probe,
            network=network,
            distros=distros,
            vmmem=vmmem,
        )
