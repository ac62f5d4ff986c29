# kubectl-assistant: Kubernetes OpenAPI v2 lookups exposed to the model as function tools when --use-k8s-api is set.

from __future__ import annotations

import json
from typing import Any, Dict, List

import requests

from .config import REQUEST_TIMEOUT_SEC, KubeOptions
from .context import Context
from .errors import ProviderError
from .kube import run_kubectl


class SchemaCatalog:
    """Index over the `definitions` section of a Kubernetes swagger document."""

    def __init__(self, document: Dict[str, Any]) -> None:
        definitions = document.get("definitions") if isinstance(document, dict) else None
        if not isinstance(definitions, dict) or not definitions:
            raise ProviderError("Kubernetes OpenAPI document has no definitions")
        self.definitions: Dict[str, Any] = definitions

    def find_schema_names(self, resource_name: str) -> List[str]:
        """
        Return definition names whose last dotted segment matches resource_name
        (case-insensitive), e.g. "Deployment" -> ["io.k8s.api.apps.v1.Deployment"].
        """
        want = resource_name.strip().lower()
        if not want:
            return []
        return sorted(k for k in self.definitions if k.rsplit(".", 1)[-1].lower() == want)

    def get_schema(self, resource_type: str) -> Dict[str, Any]:
        return self.definitions.get(resource_type.strip()) or {}

    def run_tool(self, name: str, args: Dict[str, Any]) -> Dict[str, Any]:
        """Dispatch a tool call from the model; unknown tools and bad args return an error object."""
        if name == "findSchemaNames":
            names = self.find_schema_names(str(args.get("resourceName") or ""))
            return {"names": names}
        if name == "getSchema":
            resource_type = str(args.get("resourceType") or "")
            schema = self.get_schema(resource_type)
            if not schema:
                return {"_meta_error": f"no schema named {resource_type}"}
            return {"name": resource_type, "schema": schema}
        return {"_meta_error": f"unknown tool {name}", "_args_echo": args}


def tool_definitions() -> List[Dict[str, Any]]:
    """Return the chat-completions tool definitions backed by SchemaCatalog.run_tool."""
    return [
        {
            "type": "function",
            "function": {
                "name": "findSchemaNames",
                "description": "Get the list of possible fully-namespaced names for a specific Kubernetes resource. E.g. given `Container` return `io.k8s.api.core.v1.Container`. Given `EnvVarSource` return `io.k8s.api.core.v1.EnvVarSource`",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "resourceName": {"type": "string", "description": "The name of a Kubernetes resource or field."},
                    },
                    "required": ["resourceName"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": "getSchema",
                "description": "Get the OpenAPI schema for a Kubernetes resource",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "resourceType": {
                            "type": "string",
                            "description": "The type of the Kubernetes resource or object (e.g. Deployment, Service, etc.)",
                        },
                    },
                    "required": ["resourceType"],
                },
            },
        },
    ]


def load_catalog(url: str, kube: KubeOptions, ctx: Context, session: requests.Session) -> SchemaCatalog:
    """
    Fetch the swagger document from `url`, or from the cluster's /openapi/v2
    endpoint via kubectl when no URL is configured.

    Raises:
        ProviderError: when the document cannot be fetched or parsed.
    """
    if url:
        ctx.log(f"Fetching Kubernetes OpenAPI spec from {url}")
        try:
            r = session.get(url, timeout=REQUEST_TIMEOUT_SEC)
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"could not fetch Kubernetes OpenAPI spec: {e}") from e
        if r.status_code != 200:
            raise ProviderError(f"Kubernetes OpenAPI spec fetch failed with {r.status_code}", status_code=r.status_code)
        text = r.text
    else:
        ctx.log("Fetching Kubernetes OpenAPI spec from the cluster (/openapi/v2)")
        try:
            code, text, err = run_kubectl(["get", "--raw", "/openapi/v2"], kube)
        except OSError as e:
            raise ProviderError(f"could not run kubectl to fetch the OpenAPI spec: {e}") from e
        if code != 0:
            raise ProviderError(f"could not fetch OpenAPI spec from the cluster: {err.strip()}")
    try:
        document = json.loads(text)
    except ValueError as e:
        raise ProviderError(f"Kubernetes OpenAPI spec is not valid JSON: {e}") from e
    return SchemaCatalog(document)
