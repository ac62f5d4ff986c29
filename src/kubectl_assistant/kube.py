# kubectl-assistant: Cluster side of the assistant. Runs kubectl for context lookup, raw API reads and manifest apply; validates manifests with PyYAML before anything reaches the cluster.

import subprocess
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .cancel import CancelToken, suspension
from .config import KubeOptions
from .context import Context
from .errors import ApplyError, ContextLookupError

KUBECTL = "kubectl"


def run_kubectl(
    args: List[str],
    kube: KubeOptions,
    input_text: Optional[str] = None,
) -> Tuple[int, str, str]:
    """
    Run kubectl with the inherited cluster-client options and return (code, stdout, stderr).

    Raises FileNotFoundError when kubectl is not on PATH. On KeyboardInterrupt
    the child is killed before the interrupt propagates.
    """
    cmd = [KUBECTL] + kube.kubectl_args() + args
    proc = subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE if input_text is not None else subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    try:
        out, err = proc.communicate(input=input_text)
    except KeyboardInterrupt:
        proc.kill()
        proc.wait()
        raise
    return proc.returncode, out, err


def current_context_name(kube: KubeOptions) -> str:
    """
    Return the active cluster context name.

    An explicit --context wins; otherwise kubectl is asked. Any failure raises
    ContextLookupError, which callers treat as non-fatal.
    """
    if kube.context:
        return kube.context
    try:
        code, out, err = run_kubectl(["config", "current-context"], kube)
    except OSError as e:
        raise ContextLookupError(f"kubectl unavailable: {e}") from e
    name = out.strip()
    if code != 0 or not name:
        raise ContextLookupError(err.strip() or "no current context")
    return name


def parse_manifest(text: str) -> List[Dict[str, Any]]:
    """
    Parse a (multi-document) YAML manifest into resource objects.

    Empty documents are skipped. Every remaining document must be a mapping
    carrying apiVersion and kind.
    """
    try:
        docs = list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        raise ApplyError(f"manifest is not valid YAML: {e}") from e
    objects: List[Dict[str, Any]] = []
    for i, doc in enumerate(docs, start=1):
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise ApplyError(f"document {i} is not a mapping")
        missing = [k for k in ("apiVersion", "kind") if not doc.get(k)]
        if missing:
            raise ApplyError(f"document {i} is missing {', '.join(missing)}")
        objects.append(doc)
    if not objects:
        raise ApplyError("manifest contains no resources")
    return objects


def describe(obj: Dict[str, Any]) -> str:
    """Return kind/name for a resource object, e.g. 'Deployment/nginx'."""
    name = (obj.get("metadata") or {}).get("name") or "<unnamed>"
    return f"{obj.get('kind')}/{name}"


class KubectlApplier:
    """Apply manifests with `kubectl apply -f -` against the configured cluster."""

    def __init__(self, kube: KubeOptions, ctx: Context) -> None:
        self.kube = kube
        self.ctx = ctx

    def apply(self, manifest: str, token: CancelToken) -> str:
        objects = parse_manifest(manifest)
        self.ctx.log(f"Applying {len(objects)} resource(s): {', '.join(describe(o) for o in objects)}")
        with suspension(token, "applying the manifest"):
            try:
                code, out, err = run_kubectl(["apply", "-f", "-"], self.kube, input_text=manifest)
            except OSError as e:
                raise ApplyError(f"could not run {KUBECTL}: {e}") from e
        if code != 0:
            raise ApplyError(err.strip() or f"{KUBECTL} apply exited with status {code}")
        out = out.strip()
        if out:
            self.ctx.send_to_user(out)
        return out
