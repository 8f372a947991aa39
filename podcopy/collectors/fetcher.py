"""Fetch one file from one pod over the exec channel."""

from __future__ import annotations

import io
import logging
import threading
import time
from typing import List, Optional

from podcopy.core.models import FetchFailure, FetchOutcome, FetchSuccess, Node
from podcopy.errors import ExecConnectionError, StreamError
from podcopy.providers.k8s_provider import K8sProvider

logger = logging.getLogger(__name__)


def effective_container(node: Node, container_name: Optional[str]) -> Optional[str]:
    """The override when non-empty, else the pod's first declared container."""
    if container_name:
        return container_name
    return node.containers[0] if node.containers else None


def read_command(path: str) -> List[str]:
    return ["cat", path]


def fetch(
    provider: K8sProvider,
    node: Node,
    container_name: Optional[str],
    path: str,
    *,
    timeout: Optional[float] = None,
    deadline: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
) -> FetchOutcome:
    """
    Read `path` from `node` and return FetchSuccess or FetchFailure. Never raises for
    per-node faults.

    Connection failures carry only a message. Stream failures also carry whatever
    stdout/stderr arrived before the error.
    """
    if cancel is not None and cancel.is_set():
        return FetchFailure(message="collection cancelled before fetch started")
    if deadline is not None and time.monotonic() >= deadline:
        return FetchFailure(message="collection deadline exceeded before fetch started")

    container = effective_container(node, container_name)
    if not container:
        return FetchFailure(message=f"pod {node.identity} has no containers")

    stdout = io.BytesIO()
    stderr = io.BytesIO()
    try:
        provider.exec_in_pod(
            node.namespace,
            node.name,
            container,
            read_command(path),
            stdout=stdout,
            stderr=stderr,
            timeout=timeout,
            deadline=deadline,
            cancel=cancel,
        )
    except ExecConnectionError as e:
        logger.warning("Exec into %s/%s failed to connect: %s", node.identity, container, e)
        return FetchFailure(message=str(e))
    except StreamError as e:
        logger.warning("Exec into %s/%s failed: %s", node.identity, container, e.message)
        return FetchFailure(
            message=e.message,
            stdout=e.stdout if e.stdout is not None else stdout.getvalue(),
            stderr=e.stderr if e.stderr is not None else stderr.getvalue(),
        )

    data = stdout.getvalue()
    logger.debug("Read %d byte(s) of %s from %s/%s", len(data), path, node.identity, container)
    return FetchSuccess(data=data)


__all__ = ["effective_container", "fetch", "read_command"]
