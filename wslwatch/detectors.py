from __future__ import annotations
from typing import Optional, Tuple

from .models import (
    ServiceStatus, ProbeResult, NetworkAdapterStatus, HealthSample, TransitionEvent,
    HEALTHY, DEGRADED, ZOMBIE, UNKNOWN,
)

SLOW_PROBE_MS = 3000


# ──────────────────────────────────────────────
# Classification – first matching rule wins
# ──────────────────────────────────────────────
def classify(
    service: ServiceStatus,
    probe: ProbeResult,
    network: NetworkAdapterStatus,
    slow_probe_ms: int = SLOW_PROBE_MS,
) -> str:
    if probe.timed_out:
        return ZOMBIE
    if service.status != "Running":
        return ZOMBIE
    if not probe.success:
        return DEGRADED
    if probe.duration_ms > slow_probe_ms:
        return DEGRADED
    if network.status != "Up":
        return DEGRADED
    return HEALTHY


def transition_reason(
    service: ServiceStatus,
    probe: ProbeResult,
    network: NetworkAdapterStatus,
) -> str:
    """
    Describe the condition that holds now. Has its own precedence: a slow
    but successful probe is not a reason, so it reads as a return to normal.
    """
    if probe.timed_out:
        return "Probe timed out"
    if service.status != "Running":
        return f"Service not running (status: {service.status})"
    if not probe.success:
        return f"Probe failed: {probe.error or probe.output or 'no output'}"
    if network.status != "Up":
        return f"Network adapter {network.name} is {network.status}"
    return "Metrics returned to normal"


# ──────────────────────────────────────────────
# Transitions – previous state is passed in and handed back
# ──────────────────────────────────────────────
def detect_transition(
    previous: str, sample: HealthSample
) -> Tuple[str, Optional[TransitionEvent]]:
    """
    Returns (new_previous, event). No event on the bootstrap sample
    (previous == "unknown") or when the state is unchanged.
    """
    if sample.state == previous or previous == UNKNOWN:
        return sample.state, None
    event = TransitionEvent(
        timestamp=sample.ts,
        from_state=previous,
        to_state=sample.state,
        reason=transition_reason(sample.service, sample.probe, sample.network),
        probe_ms=sample.probe.duration_ms,
        probe_timed_out=sample.probe.timed_out,
        service_status=sample.service.status,
        adapter_status=sample.network.status,
    )
    return sample.state, event
