from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
import json
import logging
import sys

APP_DIR = Path.home() / ".wslwatch"
CFG_PATH = APP_DIR / "config.json"

# Log files land here unless config.json points elsewhere.
DEFAULT_LOG_DIR = str(APP_DIR / "logs")

logger = logging.getLogger(__name__)

# Zero would turn the loop into a busy spin or make every probe time out.
_POSITIVE = {"sample_interval_s", "probe_timeout_s"}

@dataclass
class MonitorConfig:
    sample_interval_s: int = 30
    probe_timeout_s: int = 10

    # Probe target / signal filters
    distro_name: str = "Ubuntu"
    service_name: str = "WslService"
    vmmem_prefix: str = "vmmem"                   # matches vmmem and vmmemWSL
    adapter_pattern: str = "vEthernet (WSL*)"

    # Classification
    slow_probe_ms: int = 3000

    # Log storage
    log_dir: str = ""                             # "" → uses DEFAULT_LOG_DIR
    retention_days: int = 7
    events_max_bytes: int = 5 * 1024 * 1024
    events_keep_lines: int = 1000

    def resolved_log_dir(self) -> Path:
        return Path(self.log_dir or DEFAULT_LOG_DIR).expanduser()

def _coerce(name: str, value: Any, default: Any) -> Any:
    """Return *value* as the type of *default*, or *default* when it can't be."""
    if isinstance(default, int):
        # bool is an int subclass but never a valid count/interval
        if isinstance(value, bool):
            result = None
        elif isinstance(value, int):
            result = value
        elif isinstance(value, float) and value.is_integer():
            result = int(value)
        elif isinstance(value, str):
            try:
                result = int(value.strip())
            except ValueError:
                result = None
        else:
            result = None
        floor = 1 if name in _POSITIVE else 0
        if result is not None and result >= floor:
            return result
    elif isinstance(value, str):
        return value
    logger.warning("Invalid config value %s=%r; using %r", name, value, default)
    return default

def load_config(path: Optional[Path] = None) -> MonitorConfig:
    path = path or CFG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        cfg = MonitorConfig()
        save_config(cfg, path)
        return cfg
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("top level is not an object")
    except ValueError as e:
        logger.warning("Unreadable config %s (%s); rewriting defaults", path, e)
        cfg = MonitorConfig()
        save_config(cfg, path)
        return cfg

    known = {}
    for name, f in MonitorConfig.__dataclass_fields__.items():
        if name in data:
            known[name] = _coerce(name, data[name], f.default)
    return MonitorConfig(**known)

def save_config(cfg: MonitorConfig, path: Optional[Path] = None) -> None:
    path = path or CFG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(cfg.__dict__, indent=2), encoding="utf-8")

def setup_logging(verbose: bool = False) -> None:
    """Console diagnostics only; the JSONL files are the record."""
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s %(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
