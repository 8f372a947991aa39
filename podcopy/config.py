from __future__ import annotations

import os
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Any, Optional

MAX_WORKERS_CAP = 32


@dataclass(frozen=True)
class CopyConfig:
    # Cluster access (unset: in-cluster config, then ~/.kube/config)
    kubeconfig: Optional[str] = None
    context: Optional[str] = None

    # Per-node exec timeout and run-wide deadline, in seconds (None: unbounded)
    exec_timeout_seconds: Optional[float] = None
    deadline_seconds: Optional[float] = None

    # 1 = sequential
    max_workers: int = 1
    poll_interval_seconds: float = 1.0

    redact: bool = False

    def with_overrides(self, **overrides: Any) -> "CopyConfig":
        """Return a copy with every non-None override applied (CLI flags win over env)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "max_workers" in changes:
            changes["max_workers"] = _clamp_workers(int(changes["max_workers"]))
        return replace(self, **changes)


def _env_str(name: str) -> Optional[str]:
    return (os.getenv(name, "") or "").strip() or None


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "y", "on")


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_seconds(name: str, default: Optional[float]) -> Optional[float]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        v = float(raw)
    except ValueError:
        return default
    return v if v > 0 else default


def _clamp_workers(n: int) -> int:
    return max(1, min(n, MAX_WORKERS_CAP))


@lru_cache(maxsize=1)
def load_copy_config() -> CopyConfig:
    """
    Load collection settings from environment variables.

    Cached for the life of the process; tests call `load_copy_config.cache_clear()`.
    """
    return CopyConfig(
        kubeconfig=_env_str("PODCOPY_KUBECONFIG"),
        context=_env_str("PODCOPY_CONTEXT"),
        exec_timeout_seconds=_env_seconds("PODCOPY_EXEC_TIMEOUT_SECONDS", None),
        deadline_seconds=_env_seconds("PODCOPY_DEADLINE_SECONDS", None),
        max_workers=_clamp_workers(_env_int("PODCOPY_MAX_WORKERS", 1)),
        poll_interval_seconds=_env_seconds("PODCOPY_POLL_INTERVAL_SECONDS", 1.0) or 1.0,
        redact=_env_bool("PODCOPY_REDACT", False),
    )
