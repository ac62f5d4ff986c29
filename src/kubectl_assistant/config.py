# kubectl-assistant: Immutable run configuration. Built once in main() from flags, environment variables and the optional settings file, then passed explicitly to the session loop and its collaborators.

from __future__ import annotations

import os
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import StartupConfigError

VERSION = "0.1.0"

OPENAI_API_URL_V1 = "https://api.openai.com/v1"
DEFAULT_DEPLOYMENT_NAME = "gpt-3.5-turbo-0301"
AZURE_API_VERSION = os.environ.get("AZURE_OPENAI_API_VERSION", "2023-07-01-preview")

# HTTP timeout for a single completion request (seconds)
REQUEST_TIMEOUT_SEC = int(os.environ.get("KUBECTL_ASSISTANT_TIMEOUT_SEC", "120"))

_TRUE = {"1", "t", "true"}
_FALSE = {"0", "f", "false"}


def parse_bool(value: Any) -> bool:
    """Parse 1/t/true/0/f/false (any case). Real booleans pass through."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"invalid boolean {value!r}")


def parse_model_map(value: Any) -> Dict[str, str]:
    """
    Parse a model-to-deployment mapping.

    Accepts a dict (settings file) or a comma separated "model=deployment" string
    (flag / environment), e.g. "gpt-3.5-turbo=my-deployment,gpt-4=big".
    """
    if isinstance(value, dict):
        return {str(k): str(v) for k, v in value.items()}
    mapping: Dict[str, str] = {}
    for item in str(value or "").split(","):
        item = item.strip()
        if not item:
            continue
        if "=" not in item:
            raise ValueError(f"invalid mapping entry {item!r}, expected model=deployment")
        model, deployment = item.split("=", 1)
        mapping[model.strip()] = deployment.strip()
    return mapping


class KubeOptions(BaseModel):
    """Standard cluster-client selection forwarded to kubectl."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    namespace: Optional[str] = None

    def kubectl_args(self) -> List[str]:
        args: List[str] = []
        if self.kubeconfig:
            args += ["--kubeconfig", self.kubeconfig]
        if self.context:
            args += ["--context", self.context]
        if self.namespace:
            args += ["--namespace", self.namespace]
        return args


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    openai_endpoint: str = OPENAI_API_URL_V1
    openai_deployment_name: str = DEFAULT_DEPLOYMENT_NAME
    openai_api_key: str = Field(..., repr=False)
    azure_openai_map: Dict[str, str] = Field(default_factory=dict)
    temperature: float = Field(0.0, ge=0.0, le=2.0)
    require_confirmation: bool = True
    raw: bool = False
    use_k8s_api: bool = False
    k8s_openapi_url: str = ""
    debug: bool = False
    kube: KubeOptions = Field(default_factory=KubeOptions)
    httpcalls_dir: Optional[str] = None

    @field_validator("openai_api_key")
    @classmethod
    def _require_key(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Please provide an OpenAI key.")
        return v

    @field_validator("openai_endpoint")
    @classmethod
    def _normalize_endpoint(cls, v: str) -> str:
        v = (v or "").strip().rstrip("/")
        return v or OPENAI_API_URL_V1

    @field_validator("azure_openai_map", mode="before")
    @classmethod
    def _parse_map(cls, v: Any) -> Dict[str, str]:
        return parse_model_map(v)

    @property
    def show_progress(self) -> bool:
        """The spinner is cosmetic; it is suppressed when it would corrupt raw output or debug logs."""
        return not (self.raw or self.debug)

    def debug_lines(self) -> List[str]:
        return [
            f"openai-endpoint: {self.openai_endpoint}",
            f"openai-deployment-name: {self.openai_deployment_name}",
            f"azure-openai-map: {self.azure_openai_map}",
            f"temperature: {self.temperature:f}",
            f"require-confirmation: {str(self.require_confirmation).lower()}",
            f"use-k8s-api: {str(self.use_k8s_api).lower()}",
            f"k8s-openapi-url: {self.k8s_openapi_url}",
        ]


# field name, environment variable (None: flag or settings file only), parser for string input
OPTIONS: List[Tuple[str, Optional[str], Callable[[Any], Any]]] = [
    ("openai_endpoint", "OPENAI_ENDPOINT", str),
    ("openai_deployment_name", "OPENAI_DEPLOYMENT_NAME", str),
    ("openai_api_key", "OPENAI_API_KEY", str),
    ("azure_openai_map", "AZURE_OPENAI_MAP", parse_model_map),
    ("temperature", "TEMPERATURE", float),
    ("require_confirmation", "REQUIRE_CONFIRMATION", parse_bool),
    ("raw", None, parse_bool),
    ("use_k8s_api", "USE_K8S_API", parse_bool),
    ("k8s_openapi_url", "K8S_OPENAPI_URL", str),
    ("debug", "DEBUG", parse_bool),
]


def _parse_strict(parse: Callable[[Any], Any], raw_value: Any, source: str) -> Any:
    try:
        return parse(raw_value)
    except (TypeError, ValueError) as e:
        raise StartupConfigError(f"invalid value for {source}: {e}") from e


def resolve_settings(
    cli: Dict[str, Any],
    environ: Optional[Dict[str, str]] = None,
    file_settings: Optional[Dict[str, Any]] = None,
    kube: Optional[KubeOptions] = None,
    httpcalls_dir: Optional[str] = None,
    warnings: Optional[List[str]] = None,
) -> Settings:
    """
    Merge option sources into a Settings instance.

    Precedence (highest first): explicit flag, environment variable, settings
    file, built-in default. A flag counts as explicit when its value is not None.

    Unparseable environment values are skipped (the next source or the
    default applies) and reported through `warnings`. Flag and settings-file
    values stay strict.

    Raises:
        StartupConfigError: when the API key is missing or a value cannot be parsed.
    """
    env = os.environ if environ is None else environ
    file_settings = file_settings or {}
    values: Dict[str, Any] = {}

    for field, env_name, parse in OPTIONS:
        if cli.get(field) is not None:
            values[field] = _parse_strict(parse, cli[field], f"--{field.replace('_', '-')}")
            continue
        if env_name and env.get(env_name):
            try:
                values[field] = parse(env[env_name])
                continue
            except (TypeError, ValueError) as e:
                if warnings is not None:
                    warnings.append(f"ignoring {env_name}={env[env_name]!r}: {e}")
        if field in file_settings and file_settings[field] is not None:
            values[field] = _parse_strict(parse, file_settings[field], f"settings file key {field}")

    if not str(values.get("openai_api_key") or "").strip():
        raise StartupConfigError("Please provide an OpenAI key.")

    try:
        return Settings(**values, kube=kube or KubeOptions(), httpcalls_dir=httpcalls_dir)
    except ValidationError as e:
        details = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise StartupConfigError(f"invalid configuration: {details}") from e
