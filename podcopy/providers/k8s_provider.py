"""Kubernetes API client for pod discovery and remote command execution."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, BinaryIO, Callable, List, Optional, Protocol, Sequence, runtime_checkable

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.stream import stream

from podcopy.config import CopyConfig
from podcopy.core.models import Node
from podcopy.errors import ConfigError, ExecConnectionError, SelectorError, StreamError

logger = logging.getLogger(__name__)


@runtime_checkable
class K8sProvider(Protocol):
    def list_pods(self, namespace: str, label_selector: Optional[str] = None) -> List[Node]: ...

    def exec_in_pod(
        self,
        namespace: str,
        pod: str,
        container: str,
        command: Sequence[str],
        *,
        stdout: BinaryIO,
        stderr: BinaryIO,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> None: ...


def load_core_v1(kubeconfig: Optional[str] = None, context: Optional[str] = None) -> Any:
    """
    Build a CoreV1Api client.

    An explicit kubeconfig/context gets its own ApiClient. Otherwise try in-cluster
    config first and fall back to the default kubeconfig (KUBECONFIG or ~/.kube/config).
    """
    try:
        if kubeconfig or context:
            api_client = config.new_client_from_config(config_file=kubeconfig, context=context)
            return client.CoreV1Api(api_client=api_client)
        try:
            config.load_incluster_config()
        except config.ConfigException:
            config.load_kube_config()
        return client.CoreV1Api()
    except Exception as e:
        raise ConfigError(f"Failed to load Kubernetes config: {e}") from e


def _api_error_message(e: ApiException) -> str:
    if e.body:
        return f"{e.status} {e.reason}: {e.body}"
    return f"{e.status} {e.reason}"


def _pod_to_node(pod: Any) -> Node:
    metadata = getattr(pod, "metadata", None)
    spec = getattr(pod, "spec", None)
    return Node(
        namespace=getattr(metadata, "namespace", None) or "",
        name=getattr(metadata, "name", None) or "",
        containers=[c.name for c in (getattr(spec, "containers", None) or []) if getattr(c, "name", None)],
    )


def _as_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, bytes):
        return chunk
    return str(chunk or "").encode("utf-8")


class _Handshake:
    """One exec connect running on its own daemon thread so the caller can stop waiting."""

    def __init__(self, connect: Callable[[], Any], name: str) -> None:
        self._connect = connect
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._abandoned = False
        self._resp: Any = None
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def _run(self) -> None:
        try:
            resp = self._connect()
        except BaseException as e:
            with self._lock:
                self._error = e
                self._done.set()
            return
        with self._lock:
            late = self._abandoned
            if not late:
                self._resp = resp
            self._done.set()
        if late:
            resp.close()

    def wait(self, *, deadline: Optional[float], cancel: Optional[threading.Event], poll: float) -> Any:
        """Return the open stream, or raise ExecConnectionError on error, deadline or cancel."""
        self._thread.start()
        while True:
            wait_for = poll if deadline is None else max(0.0, min(poll, deadline - time.monotonic()))
            if self._done.wait(wait_for):
                break
            if cancel is not None and cancel.is_set():
                self._abandon("exec cancelled during handshake")
            if deadline is not None and time.monotonic() >= deadline:
                self._abandon("exec handshake timed out")

        if self._error is not None:
            raise self._error
        return self._resp

    def _abandon(self, message: str) -> None:
        with self._lock:
            if self._done.is_set():
                return
            self._abandoned = True
        raise ExecConnectionError(message)


class DefaultK8sProvider:
    """`K8sProvider` backed by one CoreV1Api handle, built once per run."""

    def __init__(
        self,
        core_v1: Any,
        *,
        poll_interval_seconds: float = 1.0,
        exec_api_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._core_v1 = core_v1
        self._poll_interval = poll_interval_seconds
        self._exec_api_factory = exec_api_factory or self._new_exec_api

    def _new_exec_api(self) -> Any:
        # stream() swaps api_client.call_api while it connects, so every exec gets its own ApiClient.
        configuration = self._core_v1.api_client.configuration
        return client.CoreV1Api(api_client=client.ApiClient(configuration))

    def list_pods(self, namespace: str, label_selector: Optional[str] = None) -> List[Node]:
        """
        List pods in a namespace, optionally filtered by a label selector.

        Any API or transport failure is raised as SelectorError for that selector.
        """
        selector = label_selector or ""
        try:
            if label_selector:
                pod_list = self._core_v1.list_namespaced_pod(namespace=namespace, label_selector=label_selector)
            else:
                pod_list = self._core_v1.list_namespaced_pod(namespace=namespace)
        except ApiException as e:
            raise SelectorError(selector, _api_error_message(e)) from e
        except Exception as e:
            raise SelectorError(selector, f"Failed to list pods: {e}") from e

        return [_pod_to_node(pod) for pod in (pod_list.items or [])]

    def exec_in_pod(
        self,
        namespace: str,
        pod: str,
        container: str,
        command: Sequence[str],
        *,
        stdout: BinaryIO,
        stderr: BinaryIO,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        """
        Run `command` in a container, copying its stdout/stderr into the given sinks.

        Raises ExecConnectionError if the channel cannot be opened, including a handshake
        still pending at the deadline or on cancel. Raises StreamError for anything that
        goes wrong afterwards (non-zero exit, broken stream, timeout, deadline,
        cancellation). An opened stream is always closed before returning.
        """
        if timeout is not None:
            call_deadline = time.monotonic() + timeout
            deadline = call_deadline if deadline is None else min(deadline, call_deadline)

        kwargs: dict = {
            "container": container,
            "command": list(command),
            "stdin": False,
            "stdout": True,
            "stderr": True,
            "tty": False,
            "binary": True,
            "_preload_content": False,
        }

        def _connect() -> Any:
            api = self._exec_api_factory()
            return stream(api.connect_get_namespaced_pod_exec, pod, namespace, **kwargs)

        # The websocket handshake has no timeout of its own; bound it by deadline and cancel.
        handshake = _Handshake(_connect, name=f"exec-connect-{namespace}/{pod}")
        try:
            resp = handshake.wait(deadline=deadline, cancel=cancel, poll=self._poll_interval)
        except ExecConnectionError:
            raise
        except ApiException as e:
            raise ExecConnectionError(_api_error_message(e)) from e
        except Exception as e:
            raise ExecConnectionError(str(e) or e.__class__.__name__) from e

        try:
            self._pump(resp, stdout, stderr, deadline=deadline, cancel=cancel)
            try:
                returncode = resp.returncode
            except Exception as e:
                raise StreamError(f"could not read exec status: {e}") from e
            if returncode != 0:
                raise StreamError(f"command terminated with non-zero exit code: {returncode}")
        except StreamError:
            raise
        except Exception as e:
            raise StreamError(str(e) or e.__class__.__name__) from e
        finally:
            resp.close()

    def _pump(
        self,
        resp: Any,
        stdout: BinaryIO,
        stderr: BinaryIO,
        *,
        deadline: Optional[float],
        cancel: Optional[threading.Event],
    ) -> None:
        while resp.is_open():
            wait_for = self._poll_interval
            if deadline is not None:
                wait_for = max(0.0, min(wait_for, deadline - time.monotonic()))
            resp.update(timeout=wait_for)
            self._drain(resp, stdout, stderr)
            if cancel is not None and cancel.is_set():
                raise StreamError("exec cancelled")
            if deadline is not None and time.monotonic() >= deadline:
                raise StreamError("exec timed out")
        self._drain(resp, stdout, stderr)

    @staticmethod
    def _drain(resp: Any, stdout: BinaryIO, stderr: BinaryIO) -> None:
        if resp.peek_stdout():
            stdout.write(_as_bytes(resp.read_stdout()))
        if resp.peek_stderr():
            stderr.write(_as_bytes(resp.read_stderr()))


def build_k8s_provider(cfg: Optional[CopyConfig] = None) -> K8sProvider:
    """Construct the provider once per run. Raises ConfigError when no cluster is reachable by config."""
    cfg = cfg or CopyConfig()
    core_v1 = load_core_v1(kubeconfig=cfg.kubeconfig, context=cfg.context)
    logger.debug("Kubernetes client ready (kubeconfig=%s, context=%s)", cfg.kubeconfig, cfg.context)
    return DefaultK8sProvider(core_v1, poll_interval_seconds=cfg.poll_interval_seconds)


__all__ = ["DefaultK8sProvider", "K8sProvider", "build_k8s_provider", "load_core_v1"]
