"""CLI entry point: stdout carries only the JSON document; fatal errors produce none."""

from __future__ import annotations

import base64
import json
from unittest.mock import patch

import pytest

from podcopy.core.models import Node
from podcopy.errors import ConfigError, SelectorError


class _MockK8sProvider:
    def list_pods(self, namespace, label_selector=None):
        if label_selector == "bad=":
            raise SelectorError(label_selector, "invalid selector")
        return [Node(namespace=namespace, name="web-1", containers=["app"])]

    def exec_in_pod(
        self, namespace, pod, container, command, *, stdout, stderr, timeout=None, deadline=None, cancel=None
    ):
        stdout.write(b"token=abcdefgh12345678\n")


@pytest.fixture
def stdout_bytes(capsysbinary):
    # Pytest reinstalls its capture stream for the call phase, so read stdout through it.
    class _CapturedStdout:
        def getvalue(self) -> bytes:
            return capsysbinary.readouterr().out

    return _CapturedStdout()


def test_main_writes_report(stdout_bytes):
    import main

    with patch("podcopy.providers.k8s_provider.build_k8s_provider", return_value=_MockK8sProvider()) as mock_build:
        rc = main.main(["-n", "shop", "-l", "app=web", "-l", "bad=", "--path", "/etc/app.conf", "--collector-name", "cfg"])

    assert rc == 0
    mock_build.assert_called_once()
    doc = json.loads(stdout_bytes.getvalue())
    assert base64.b64decode(doc["copy/"]["shop/web-1//etc/app.conf"]) == b"token=abcdefgh12345678\n"
    assert json.loads(base64.b64decode(doc["copy-errors/"]["cfg.json"])) == {"bad=": "invalid selector"}


def test_main_redact_flag(stdout_bytes):
    import main

    with patch("podcopy.providers.k8s_provider.build_k8s_provider", return_value=_MockK8sProvider()):
        rc = main.main(["-n", "shop", "--path", "/etc/app.conf", "--redact"])

    assert rc == 0
    doc = json.loads(stdout_bytes.getvalue())
    assert base64.b64decode(doc["copy/"]["shop/web-1//etc/app.conf"]) == b"token=[REDACTED]\n"


def test_main_cli_flags_override_env(monkeypatch, stdout_bytes):
    import main

    monkeypatch.setenv("PODCOPY_MAX_WORKERS", "2")
    monkeypatch.setenv("PODCOPY_CONTEXT", "from-env")

    with patch("podcopy.providers.k8s_provider.build_k8s_provider", return_value=_MockK8sProvider()) as mock_build:
        main.main(["--path", "/x", "--context", "from-cli", "--timeout", "5"])

    cfg = mock_build.call_args.args[0]
    assert cfg.context == "from-cli"
    assert cfg.max_workers == 2
    assert cfg.exec_timeout_seconds == 5.0


def test_main_config_error_exits_nonzero_without_output(stdout_bytes):
    import main

    with patch("podcopy.providers.k8s_provider.build_k8s_provider", side_effect=ConfigError("no kubeconfig")):
        rc = main.main(["--path", "/etc/hosts"])

    assert rc == 1
    assert stdout_bytes.getvalue() == b""


def test_main_rejects_empty_path(stdout_bytes):
    import main

    rc = main.main(["--path", ""])

    assert rc == 2
    assert stdout_bytes.getvalue() == b""


def test_main_interrupt_cancels_collection(stdout_bytes):
    import main

    seen = {}

    def _interrupted(request, provider, *, cfg=None, cancel=None):
        seen["cancel"] = cancel
        raise KeyboardInterrupt

    with patch("podcopy.providers.k8s_provider.build_k8s_provider", return_value=_MockK8sProvider()), patch(
        "podcopy.collectors.copy.collect", side_effect=_interrupted
    ):
        rc = main.main(["--path", "/etc/hosts"])

    assert rc == 130
    assert seen["cancel"].is_set()
    assert stdout_bytes.getvalue() == b""
