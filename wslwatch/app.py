from __future__ import annotations
import argparse
import logging
import time
import traceback
from pathlib import Path
from typing import Callable, Optional

from .config import MonitorConfig, load_config, setup_logging
from .detectors import detect_transition
from .models import LifecycleEvent, UNKNOWN
from .sampler import HealthSampler
from .store import LogStore, now_iso

logger = logging.getLogger(__name__)

# Used when the configured interval can't be slept on.
FALLBACK_INTERVAL_S = MonitorConfig.sample_interval_s


class Monitor:
    """
    Sampling loop driver:
    sweep → sample (collect + probe + classify) → transition → persist → sleep.

    One failing iteration is recorded as a monitor_error event and the loop
    carries on at the normal interval.
    """
    def __init__(self, cfg: MonitorConfig, store: LogStore,
                 sampler: Optional[HealthSampler] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.cfg = cfg
        self.store = store
        self.sampler = sampler or HealthSampler(cfg)
        self._sleep = sleep

    def run_once(self, previous: str) -> str:
        """One iteration; returns the state to carry into the next one."""
        self.store.sweep(
            self.cfg.retention_days,
            self.cfg.events_max_bytes,
            self.cfg.events_keep_lines,
        )
        sample = self.sampler.sample()
        state, event = detect_transition(previous, sample)
        if event is not None:
            logger.warning("%s -> %s: %s", event.from_state, event.to_state, event.reason)
            self.store.append_event(event)
        self.store.append_sample(sample)
        return state

    def _record_error(self, e: Exception) -> None:
        try:
            self.store.append_event(LifecycleEvent(
                timestamp=now_iso(),
                type="monitor_error",
                message=str(e) or type(e).__name__,
                stack=traceback.format_exc(),
            ))
        except Exception:
            logger.exception("Could not record iteration failure")

    def run(self, max_iterations: Optional[int] = None) -> None:
        try:
            self.store.append_event(LifecycleEvent(
                timestamp=now_iso(),
                type="monitor_start",
                message=(
                    f"Monitoring {self.cfg.distro_name} every {self.cfg.sample_interval_s}s "
                    f"(probe timeout {self.cfg.probe_timeout_s}s)"
                ),
            ))
        except OSError:
            logger.exception("Could not record monitor start")
        logger.info("Started - sampling every %ss, logs in %s",
                    self.cfg.sample_interval_s, self.store.log_dir)

        previous = UNKNOWN
        done = 0
        while max_iterations is None or done < max_iterations:
            try:
                previous = self.run_once(previous)
            except Exception as e:
                logger.exception("Iteration failed")
                self._record_error(e)
            done += 1
            if max_iterations is not None and done >= max_iterations:
                break
            self._pause()

    def _pause(self) -> None:
        try:
            self._sleep(self.cfg.sample_interval_s)
            return
        except Exception as e:
            logger.exception("Sleep of %r failed", self.cfg.sample_interval_s)
            self._record_error(e)
        try:
            self._sleep(FALLBACK_INTERVAL_S)
        except Exception:
            logger.exception("Fallback sleep failed")


def main(argv=None):
    parser = argparse.ArgumentParser(prog="wslwatch", description="WSL health monitor")
    parser.add_argument("--config", type=Path, default=None, help="path to config.json")
    parser.add_argument("--verbose", action="store_true", help="log every sample")
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    cfg = load_config(args.config)
    store = LogStore(cfg.resolved_log_dir())

    try:
        Monitor(cfg, store).run()
    except KeyboardInterrupt:
        logger.info("Stopped")
