"""Copy collector: resolve pods, read one file from each, merge into a ResultBundle.

Key scheme:
- files:  "<namespace>/<pod>/<container_path>"
- errors: "<namespace>/<pod>/<container_path>-errors.json" per failed pod, plus
          "<collector_name>.json" (or "errors.json") for selector failures.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import closing
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from podcopy.collectors.fetcher import fetch
from podcopy.collectors.resolver import resolve
from podcopy.config import CopyConfig
from podcopy.core.models import CollectionRequest, FetchFailure, FetchOutcome, Node, ResultBundle
from podcopy.errors import SerializationError
from podcopy.providers.k8s_provider import K8sProvider

logger = logging.getLogger(__name__)

DEFAULT_SELECTOR_ERRORS_NAME = "errors.json"


def selector_errors_key(request: CollectionRequest) -> str:
    # Unnamed collectors share the fixed fallback name.
    if request.collector_name:
        return f"{request.collector_name}.json"
    return DEFAULT_SELECTOR_ERRORS_NAME


def file_key(node: Node, container_path: str) -> str:
    return f"{node.namespace}/{node.name}/{container_path}"


def error_key(node: Node, container_path: str) -> str:
    return f"{file_key(node, container_path)}-errors.json"


def marshal_error_payload(payload: Any) -> bytes:
    """Compact JSON with sorted keys. Raises SerializationError."""
    try:
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to encode error payload: {e}") from e


def failure_payload(failure: FetchFailure) -> Dict[str, str]:
    payload: Dict[str, str] = {"error": failure.message}
    if failure.stdout is not None:
        payload["stdout"] = failure.stdout.decode("utf-8", errors="replace")
    if failure.stderr is not None:
        payload["stderr"] = failure.stderr.decode("utf-8", errors="replace")
    return payload


def _unique_nodes(nodes: Iterable[Node]) -> List[Node]:
    seen = set()
    out: List[Node] = []
    for node in nodes:
        if node.identity in seen:
            continue
        seen.add(node.identity)
        out.append(node)
    return out


def _merge(bundle: ResultBundle, node: Node, outcome: FetchOutcome, container_path: str) -> None:
    if outcome.ok:
        bundle.files[file_key(node, container_path)] = outcome.data
        return
    bundle.errors[error_key(node, container_path)] = marshal_error_payload(failure_payload(outcome))


def collect(
    request: CollectionRequest,
    provider: K8sProvider,
    *,
    cfg: Optional[CopyConfig] = None,
    cancel: Optional[threading.Event] = None,
) -> ResultBundle:
    """
    Run one copy collection and return the merged bundle.

    Selector and per-pod failures are recorded in `bundle.errors`; only
    SerializationError propagates. With `cfg.max_workers > 1` pods are fetched in
    parallel, but every outcome is merged here in the calling thread.

    If the run is aborted (fatal error, KeyboardInterrupt) `cancel` is set, queued
    pods are dropped and in-flight fetches stop at their next cancel check.
    """
    cfg = cfg or CopyConfig()
    cancel = cancel if cancel is not None else threading.Event()
    deadline = time.monotonic() + cfg.deadline_seconds if cfg.deadline_seconds else None

    bundle = ResultBundle()

    nodes, selector_errors = resolve(provider, request.namespace, request.selectors)
    if selector_errors:
        bundle.errors[selector_errors_key(request)] = marshal_error_payload(selector_errors)

    targets = _unique_nodes(nodes)
    if not targets:
        logger.info("No pods matched in namespace %s", request.namespace)
        return bundle

    def _fetch(node: Node) -> FetchOutcome:
        return fetch(
            provider,
            node,
            request.container_name,
            request.container_path,
            timeout=cfg.exec_timeout_seconds,
            deadline=deadline,
            cancel=cancel,
        )

    with closing(_run(targets, _fetch, max_workers=cfg.max_workers, cancel=cancel)) as outcomes:
        for node, outcome in outcomes:
            _merge(bundle, node, outcome, request.container_path)

    logger.info(
        "Copied %s from %d pod(s) in %s: %d file(s), %d error file(s)",
        request.container_path,
        len(targets),
        request.namespace,
        len(bundle.files),
        len(bundle.errors),
    )
    return bundle


def _isolated(fn: Any, node: Node) -> FetchOutcome:
    # A provider bug on one pod must not sink the batch.
    try:
        return fn(node)
    except Exception as e:
        logger.warning("Fetch from %s raised unexpectedly: %s", node.identity, e)
        return FetchFailure(message=str(e) or e.__class__.__name__)


def _run(
    targets: List[Node], fn: Any, *, max_workers: int, cancel: threading.Event
) -> Iterator[Tuple[Node, FetchOutcome]]:
    if max_workers <= 1 or len(targets) == 1:
        for node in targets:
            yield node, _isolated(fn, node)
        return

    executor = ThreadPoolExecutor(max_workers=min(len(targets), max_workers))
    try:
        future_to_node = {executor.submit(_isolated, fn, node): node for node in targets}
        for future in as_completed(future_to_node):
            yield future_to_node[future], future.result()
    except BaseException:
        # Includes GeneratorExit when the consumer aborts mid-merge.
        cancel.set()
        raise
    finally:
        executor.shutdown(wait=True, cancel_futures=True)


__all__ = [
    "DEFAULT_SELECTOR_ERRORS_NAME",
    "collect",
    "error_key",
    "failure_payload",
    "file_key",
    "marshal_error_payload",
    "selector_errors_key",
]
