from __future__ import annotations

import pytest

from kubectl_assistant import kube
from kubectl_assistant.cancel import CancelToken
from kubectl_assistant.config import KubeOptions
from kubectl_assistant.errors import ApplyError, Cancelled, ContextLookupError
from kubectl_assistant.kube import KubectlApplier, current_context_name, parse_manifest

MANIFEST = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: nginx
---
apiVersion: v1
kind: Service
metadata:
  name: nginx
"""


class FakePopen:
    """Records the kubectl invocation and answers with a scripted result."""

    calls: list[dict] = []
    result = (0, "", "")

    def __init__(self, cmd, stdin=None, stdout=None, stderr=None, text=None):
        self.cmd = cmd
        self.returncode = None
        FakePopen.calls.append({"cmd": cmd})

    def communicate(self, input=None):
        FakePopen.calls[-1]["input"] = input
        code, out, err = FakePopen.result
        self.returncode = code
        return out, err


@pytest.fixture
def popen(monkeypatch: pytest.MonkeyPatch):
    FakePopen.calls = []
    FakePopen.result = (0, "", "")
    monkeypatch.setattr(kube.subprocess, "Popen", FakePopen)
    return FakePopen


def test_parse_manifest_returns_resources() -> None:
    objects = parse_manifest(MANIFEST + "---\n")
    assert [o["kind"] for o in objects] == ["Deployment", "Service"]


@pytest.mark.parametrize(
    "text,message",
    [
        ("kind: [unclosed", "not valid YAML"),
        ("- just\n- a list\n", "not a mapping"),
        ("kind: Deployment\n", "missing apiVersion"),
        ("---\n", "no resources"),
    ],
)
def test_parse_manifest_rejects_bad_input(text: str, message: str) -> None:
    with pytest.raises(ApplyError, match=message):
        parse_manifest(text)


def test_apply_pipes_manifest_to_kubectl(popen, ctx) -> None:
    popen.result = (0, "deployment.apps/nginx created\nservice/nginx created\n", "")
    applier = KubectlApplier(KubeOptions(context="kind-dev", namespace="web"), ctx)

    out = applier.apply(MANIFEST, CancelToken())

    assert popen.calls == [
        {"cmd": ["kubectl", "--context", "kind-dev", "--namespace", "web", "apply", "-f", "-"], "input": MANIFEST}
    ]
    assert "service/nginx created" in out
    assert "deployment.apps/nginx created" in ctx.console.file.getvalue()


def test_apply_failure_surfaces_stderr(popen, ctx) -> None:
    popen.result = (1, "", "error: forbidden\n")
    with pytest.raises(ApplyError, match="forbidden"):
        KubectlApplier(KubeOptions(), ctx).apply(MANIFEST, CancelToken())


def test_invalid_manifest_never_reaches_cluster(popen, ctx) -> None:
    with pytest.raises(ApplyError):
        KubectlApplier(KubeOptions(), ctx).apply("not: [valid", CancelToken())
    assert popen.calls == []


def test_missing_kubectl_is_apply_error(monkeypatch: pytest.MonkeyPatch, ctx) -> None:
    def _missing(*args, **kwargs):
        raise FileNotFoundError("kubectl")

    monkeypatch.setattr(kube.subprocess, "Popen", _missing)
    with pytest.raises(ApplyError, match="could not run kubectl"):
        KubectlApplier(KubeOptions(), ctx).apply(MANIFEST, CancelToken())


def test_cancelled_token_prevents_apply(popen, ctx) -> None:
    token = CancelToken()
    token.cancel()
    with pytest.raises(Cancelled):
        KubectlApplier(KubeOptions(), ctx).apply(MANIFEST, token)
    assert popen.calls == []


class InterruptedPopen(FakePopen):
    """A kubectl child that is still running when SIGINT arrives."""

    killed = False
    waited = False

    def communicate(self, input=None):
        FakePopen.calls[-1]["input"] = input
        raise KeyboardInterrupt

    def kill(self):
        InterruptedPopen.killed = True

    def wait(self, timeout=None):
        InterruptedPopen.waited = True
        self.returncode = -9
        return self.returncode


def test_interrupt_during_apply_kills_kubectl_and_cancels(monkeypatch, ctx) -> None:
    FakePopen.calls = []
    InterruptedPopen.killed = InterruptedPopen.waited = False
    monkeypatch.setattr(kube.subprocess, "Popen", InterruptedPopen)
    token = CancelToken()

    with pytest.raises(Cancelled, match="applying the manifest"):
        KubectlApplier(KubeOptions(), ctx).apply(MANIFEST, token)

    assert InterruptedPopen.killed and InterruptedPopen.waited
    assert token.cancelled
    assert len(FakePopen.calls) == 1
    assert ctx.console.file.getvalue() == ""


def test_current_context_prefers_explicit_flag(popen) -> None:
    assert current_context_name(KubeOptions(context="staging")) == "staging"
    assert popen.calls == []


def test_current_context_asks_kubectl(popen) -> None:
    popen.result = (0, "kind-dev\n", "")
    assert current_context_name(KubeOptions(kubeconfig="/tmp/kc")) == "kind-dev"
    assert popen.calls[0]["cmd"] == ["kubectl", "--kubeconfig", "/tmp/kc", "config", "current-context"]


def test_current_context_failure_is_lookup_error(popen) -> None:
    popen.result = (1, "", "error: current-context is not set\n")
    with pytest.raises(ContextLookupError, match="current-context is not set"):
        current_context_name(KubeOptions())
