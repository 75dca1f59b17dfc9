"""Health verdict from a fixed set of environment checks.

Check order is part of the response contract:
php, opcache, memory, rootless, non_root_user.

A check that raises is recorded as failed; evaluation never propagates
probe errors to the caller.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from src.models.reports import HealthReport
from src.services.memory import has_headroom, parse_memory_limit
from src.services.probe import EnvironmentProbe, RuntimeContext

logger = logging.getLogger(__name__)


def local_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 timestamp with local UTC offset, second precision."""
    now = now or datetime.now()
    return now.astimezone().isoformat(timespec="seconds")


def _safe(name: str, check: Callable[[], bool]) -> bool:
    try:
        return bool(check())
    except Exception as exc:  # noqa: BLE001
        logger.warning("Health check %r failed to evaluate: %s: %s", name, type(exc).__name__, exc)
        return False


def run_checks(probe: EnvironmentProbe, context: RuntimeContext) -> Dict[str, bool]:
    """Evaluate every named check against the probe and context."""
    checks = {
        "php": lambda: True,
        "opcache": probe.cache_accelerator_enabled,
        "memory": lambda: has_headroom(
            context.memory_usage,
            parse_memory_limit(context.memory_limit),
            context.memory_threshold,
        ),
        "rootless": lambda: context.environ.get(context.rootless_env_var) == "true",
        "non_root_user": lambda: probe.current_user_id() != 0,
    }
    return {name: _safe(name, check) for name, check in checks.items()}


# PUBLIC_INTERFACE
def evaluate_health(
    probe: EnvironmentProbe,
    context: RuntimeContext,
    now: Optional[datetime] = None,
) -> HealthReport:
    """Build the health report for the current process."""
    checks = run_checks(probe, context)
    try:
        user_id = probe.current_user_id()
    except OSError as exc:
        logger.warning("Could not read user id: %s", exc)
        user_id = -1
    report = HealthReport.from_checks(checks, user_id=user_id, timestamp=local_timestamp(now))
    if report.healthy:
        logger.debug("Health checks passed")
    else:
        failed = [name for name, ok in checks.items() if not ok]
        logger.info("Unhealthy: failed checks %s", ", ".join(failed))
    return report
