from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

HEALTHY = "healthy"
DEGRADED = "degraded"
ZOMBIE = "zombie"
UNKNOWN = "unknown"     # bootstrap pseudo-state, never written as a sample

SERVICE_NOT_FOUND = "NotFound"
ADAPTER_NOT_FOUND = "NOT_FOUND"
ADAPTER_MISSING = "Missing"


@dataclass(frozen=True)
class ServiceStatus:
    name: str
    status: str         # Running|Stopped|...|NotFound|Error: ...
    start_type: str = ""

    def to_record(self) -> Dict[str, Any]:
        return {"name": self.name, "status": self.status, "startType": self.start_type}

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "ServiceStatus":
        return cls(name=rec["name"], status=rec["status"], start_type=rec.get("startType", ""))


@dataclass(frozen=True)
class DistroState:
    name: str
    state: str
    version: int
    is_default: bool = False

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state,
            "version": self.version,
            "isDefault": self.is_default,
        }

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "DistroState":
        return cls(
            name=rec["name"],
            state=rec["state"],
            version=int(rec["version"]),
            is_default=bool(rec.get("isDefault", False)),
        )


@dataclass(frozen=True)
class ProbeResult:
    success: bool
    duration_ms: int
    output: str = ""
    error: str = ""
    timed_out: bool = False

    def to_record(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "durationMs": self.duration_ms,
            "output": self.output,
            "error": self.error,
            "timedOut": self.timed_out,
        }

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "ProbeResult":
        return cls(
            success=bool(rec["success"]),
            duration_ms=int(rec["durationMs"]),
            output=rec.get("output", ""),
            error=rec.get("error", ""),
            timed_out=bool(rec.get("timedOut", False)),
        )


@dataclass(frozen=True)
class ResourceUsageEntry:
    name: str
    pid: int
    working_set_mb: float
    status: str = ""    # "" for a real process, "Error: ..." when enumeration failed

    def to_record(self) -> Dict[str, Any]:
        rec: Dict[str, Any] = {"name": self.name, "pid": self.pid, "workingSetMB": self.working_set_mb}
        if self.status:
            rec["status"] = self.status
        return rec

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "ResourceUsageEntry":
        return cls(
            name=rec["name"],
            pid=int(rec["pid"]),
            working_set_mb=float(rec["workingSetMB"]),
            status=rec.get("status", ""),
        )


@dataclass(frozen=True)
class NetworkAdapterStatus:
    name: str
    status: str         # Up|Down|...|Missing|Error: ...
    link_speed: str = ""
    mac_address: str = ""

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "linkSpeed": self.link_speed,
            "macAddress": self.mac_address,
        }

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "NetworkAdapterStatus":
        return cls(
            name=rec["name"],
            status=rec["status"],
            link_speed=rec.get("linkSpeed", ""),
            mac_address=rec.get("macAddress", ""),
        )


def missing_adapter() -> NetworkAdapterStatus:
    return NetworkAdapterStatus(name=ADAPTER_NOT_FOUND, status=ADAPTER_MISSING)


@dataclass(frozen=True)
class HealthSample:
    ts: str
    state: str          # healthy|degraded|zombie
    service: ServiceStatus
    probe: ProbeResult
    network: NetworkAdapterStatus
    distros: Tuple[DistroState, ...] = ()
    vmmem: Tuple[ResourceUsageEntry, ...] = ()

    def to_record(self) -> Dict[str, Any]:
        return {
            "ts": self.ts,
            "state": self.state,
            "service": self.service.to_record(),
            "distros": [d.to_record() for d in self.distros],
            "probe": self.probe.to_record(),
            "vmmem": [v.to_record() for v in self.vmmem],
            "network": self.network.to_record(),
        }

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "HealthSample":
        return cls(
            ts=rec["ts"],
            state=rec["state"],
            service=ServiceStatus.from_record(rec["service"]),
            probe=ProbeResult.from_record(rec["probe"]),
            network=NetworkAdapterStatus.from_record(rec["network"]),
            distros=tuple(DistroState.from_record(d) for d in rec.get("distros", [])),
            vmmem=tuple(ResourceUsageEntry.from_record(v) for v in rec.get("vmmem", [])),
        )


@dataclass(frozen=True)
class TransitionEvent:
    timestamp: str
    from_state: str
    to_state: str
    reason: str
    probe_ms: int
    probe_timed_out: bool
    service_status: str
    adapter_status: str
    type: str = field(default="state_transition", init=False)

    def to_record(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "type": self.type,
            "from": self.from_state,
            "to": self.to_state,
            "reason": self.reason,
            "probeMs": self.probe_ms,
            "probeTimedOut": self.probe_timed_out,
            "serviceStatus": self.service_status,
            "adapterStatus": self.adapter_status,
        }

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "TransitionEvent":
        return cls(
            timestamp=rec["timestamp"],
            from_state=rec["from"],
            to_state=rec["to"],
            reason=rec["reason"],
            probe_ms=int(rec["probeMs"]),
            probe_timed_out=bool(rec["probeTimedOut"]),
            service_status=rec["serviceStatus"],
            adapter_status=rec["adapterStatus"],
        )


@dataclass(frozen=True)
class LifecycleEvent:
    timestamp: str
    type: str           # monitor_start|monitor_error
    message: str
    stack: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        rec: Dict[str, Any] = {"timestamp": self.timestamp, "type": self.type, "message": self.message}
        if self.stack is not None:
            rec["stack"] = self.stack
        return rec

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "LifecycleEvent":
        return cls(
            timestamp=rec["timestamp"],
            type=rec["type"],
            message=rec["message"],
            stack=rec.get("stack"),
        )


def event_from_record(rec: Dict[str, Any]):
    """Decode one events-file line into its TransitionEvent / LifecycleEvent."""
    if rec.get("type") == "state_transition":
        return TransitionEvent.from_record(rec)
    return LifecycleEvent.from_record(rec)
