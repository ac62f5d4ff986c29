# kubectl-assistant: Completion provider. A small requests-based Chat Completions client that speaks to OpenAI-compatible endpoints and Azure OpenAI deployments, retries transient failures, and runs the OpenAPI tool loop when cluster API lookups are enabled.

import json
import pathlib
import random
import re
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import requests
from pydantic import ValidationError

from .cancel import CancelToken
from .config import AZURE_API_VERSION, REQUEST_TIMEOUT_SEC, Settings
from .context import Context
from .errors import Cancelled, ProviderError
from .models import ChatCompletionResponse
from .openapi import SchemaCatalog, load_catalog, tool_definitions
from .prompts import get_prompt

MAX_RETRIES = 3
MAX_TOOL_TURNS = 12

_FENCE_RE = re.compile(r"^```[\w-]*[ \t]*\n(.*?)\n?```\s*$", re.DOTALL)
_AZURE_PATH_RE = re.compile(r"/openai(?=/|$)", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove a single surrounding Markdown code fence (```yaml ... ```), if present."""
    stripped = text.strip()
    m = _FENCE_RE.match(stripped)
    if m:
        return m.group(1).strip("\n")
    return stripped


def looks_like_azure(url: Optional[str]) -> bool:
    """Azure OpenAI is recognised by its host only; other `/openai` paths (Groq, Gemini) are OpenAI-compatible."""
    if not url:
        return False
    host = (urlsplit(url).hostname or "").lower()
    return host == "openai.azure.com" or host.endswith(".openai.azure.com")


def dump_http_file(file: pathlib.Path, url: str, method: str, headers: Dict[str, str], obj: Any) -> bool:
    """
    Write a REST Client style request dump. Credentials must already be redacted.

    Returns False instead of raising when the body is not serializable or the
    file cannot be written.
    """
    try:
        json_str = json.dumps(obj, indent=2, ensure_ascii=False)
        file.parent.mkdir(parents=True, exist_ok=True)
        with open(file, "w", encoding="utf-8") as f:
            f.write(f"{method.upper()} {url}\n")
            for key, value in headers.items():
                f.write(f"{key}: {value}\n")
            f.write("\n")
            f.write(json_str)
        return True
    except (TypeError, OSError):
        return False


class CompletionClient:
    """
    Generate manifests from a prompt history.

    Provider is inferred from the endpoint: Azure OpenAI endpoints are called
    per deployment with an `api-key` header, everything else is treated as an
    OpenAI-compatible /chat/completions endpoint with a bearer token.
    """

    backoff_base = (1.0, 2.0, 4.0)

    def __init__(self, settings: Settings, ctx: Context, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.ctx = ctx
        self.session = session or requests.Session()
        self.provider = "azure" if looks_like_azure(settings.openai_endpoint) else "openai"
        if self.provider == "azure":
            self.session.headers.update({"api-key": settings.openai_api_key, "Content-Type": "application/json"})
        else:
            self.session.headers.update(
                {"Authorization": f"Bearer {settings.openai_api_key}", "Content-Type": "application/json"}
            )
        self._catalog: Optional[SchemaCatalog] = None
        self._dump_seq = 0

    # ---------- Routing ----------

    def deployment_for(self, model: str) -> str:
        """Map an OpenAI model name to its Azure deployment; unmapped names drop '.' and ':'."""
        mapped = self.settings.azure_openai_map.get(model)
        if mapped:
            return mapped
        return re.sub(r"[.:]", "", model)

    def chat_url(self) -> str:
        endpoint = self.settings.openai_endpoint
        if self.provider == "azure":
            # Accept both https://x.openai.azure.com and https://x.openai.azure.com/openai
            base = _AZURE_PATH_RE.split(endpoint, 1)[0]
            deployment = self.deployment_for(self.settings.openai_deployment_name)
            return f"{base}/openai/deployments/{deployment}/chat/completions"
        return f"{endpoint}/chat/completions"

    def query_params(self) -> Dict[str, str]:
        return {"api-version": AZURE_API_VERSION} if self.provider == "azure" else {}

    # ---------- Prompt construction ----------

    def system_prompt(self) -> str:
        text = get_prompt("prompt_manifest_system.txt").strip()
        if self.settings.use_k8s_api:
            text = f"{text}\n{get_prompt('prompt_k8s_api_system.txt').strip()}"
        return text

    def build_messages(self, history: List[str]) -> List[Dict[str, Any]]:
        return [
            {"role": "system", "content": self.system_prompt()},
            {"role": "user", "content": "\n".join(history)},
        ]

    def schema_catalog(self) -> SchemaCatalog:
        if self._catalog is None:
            self._catalog = load_catalog(self.settings.k8s_openapi_url, self.settings.kube, self.ctx, self.session)
        return self._catalog

    # ---------- Main entry point ----------

    def complete(self, history: List[str], token: CancelToken) -> str:
        """
        Return generated manifest text for the given prompt history.

        Raises:
            ProviderError: network/auth/model failures after retries, malformed
                responses, empty answers, or exceeding the tool-call turn limit.
            Cancelled: when the token fires during a retry wait.
        """
        messages = self.build_messages(history)
        catalog = self.schema_catalog() if self.settings.use_k8s_api else None
        tools = tool_definitions() if catalog is not None else None
        turns = 0

        while True:
            payload: Dict[str, Any] = {
                "model": self.settings.openai_deployment_name,
                "messages": messages,
                "temperature": self.settings.temperature,
            }
            if tools:
                payload["tools"] = tools
                payload["tool_choice"] = "auto"

            resp = self._post(payload, token)
            try:
                parsed = ChatCompletionResponse.model_validate(resp)
            except ValidationError as e:
                raise ProviderError(f"unexpected Chat Completions response: {e}") from e
            self._log_usage(parsed)
            msg = parsed.choices[0].message

            if msg.tool_calls:
                if catalog is None:
                    raise ProviderError("model requested a tool call but --use-k8s-api is disabled")
                turns += 1
                if turns > MAX_TOOL_TURNS:
                    raise ProviderError("Exceeded max tool-call turns; aborting.")
                messages.append(msg.as_request_message())
                for tc in msg.tool_calls:
                    try:
                        args = json.loads(tc.function.arguments or "{}")
                    except ValueError:
                        args = {}
                    if not isinstance(args, dict):
                        args = {}
                    self.ctx.log(f"Invoking tool: {tc.function.name} with args: {json.dumps(args)}")
                    output = catalog.run_tool(tc.function.name, args)
                    messages.append(
                        {"role": "tool", "tool_call_id": tc.id, "content": json.dumps(output, ensure_ascii=False)}
                    )
                continue

            text = strip_code_fences(msg.content or "")
            if not text:
                raise ProviderError("model returned an empty completion")
            return text

    # ---------- HTTP ----------

    def _post(self, payload: Dict[str, Any], token: CancelToken) -> Dict[str, Any]:
        url = self.chat_url()
        params = self.query_params()
        attempt = 0
        while True:
            attempt += 1
            token.raise_if_cancelled("waiting for the completion")
            http_file = self._dump_request(url, payload)
            self.ctx.log(f"POST {url} (attempt {attempt}, tools={len(payload.get('tools') or [])})")
            t0 = time.time()
            try:
                r = self.session.post(url, json=payload, params=params, timeout=REQUEST_TIMEOUT_SEC)
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                if attempt <= MAX_RETRIES:
                    self._backoff(attempt, type(e).__name__, token)
                    continue
                raise ProviderError(f"Chat Completions API unreachable after {attempt} attempt(s): {e}") from e
            except requests.exceptions.RequestException as e:
                raise ProviderError(f"Chat Completions API request failed: {e}") from e

            self._dump_response(http_file, r, int((time.time() - t0) * 1000))

            if r.status_code == 200:
                break
            if (r.status_code >= 500 or r.status_code == 429) and attempt <= MAX_RETRIES:
                self._backoff(attempt, f"HTTP {r.status_code}", token)
                continue
            raise ProviderError(self._describe_failure(r), status_code=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            raise ProviderError(f"Chat Completions API returned invalid JSON: {e}") from e

    def _backoff(self, attempt: int, reason: str, token: CancelToken) -> None:
        # Exponential backoff with jitter; the wait itself observes cancellation.
        base_delay = self.backoff_base[min(attempt - 1, len(self.backoff_base) - 1)]
        delay = base_delay * random.uniform(0.5, 1.5)
        self.ctx.log(f"Chat Completions attempt {attempt} failed ({reason}); retrying in {delay:.2f}s...")
        if token.wait(delay):
            raise Cancelled("interrupted while waiting for the completion")

    def _describe_failure(self, r: requests.Response) -> str:
        body = (r.text or "")[:2000]
        if r.status_code == 401:
            return f"authentication failed (HTTP 401), check the API key: {body}"
        if r.status_code == 404:
            return f"model or deployment {self.settings.openai_deployment_name!r} not found (HTTP 404): {body}"
        return f"Chat Completions API error {r.status_code}: {body}"

    def _log_usage(self, parsed: ChatCompletionResponse) -> None:
        if parsed.usage is None:
            return
        self.ctx.log(
            f"OpenAI usage: prompt_tokens={parsed.usage.prompt_tokens}, "
            f"completion_tokens={parsed.usage.completion_tokens}, total_tokens={parsed.usage.total_tokens}"
        )

    # ---------- .http dumps ----------

    def _dump_request(self, url: str, payload: Dict[str, Any]) -> Optional[pathlib.Path]:
        if not self.settings.httpcalls_dir:
            return None
        headers = dict(self.session.headers)
        if "Authorization" in headers:
            headers["Authorization"] = "Bearer {{OPENAI_API_KEY}}"
        if "api-key" in headers:
            headers["api-key"] = "{{OPENAI_API_KEY}}"
        stamp = int(time.time() * 1000)
        path = pathlib.Path(self.settings.httpcalls_dir) / f"call-{stamp}-{self._dump_seq:04d}.http"
        self._dump_seq += 1
        if not dump_http_file(path, url, "POST", headers, payload):
            self.ctx.log(f"Could not write HTTP dump {path}")
            return None
        return path

    def _dump_response(self, http_file: Optional[pathlib.Path], r: requests.Response, elapsed_ms: int) -> None:
        if http_file is None:
            return
        try:
            with open(http_file, "a", encoding="utf-8") as f:
                f.write(f"\n\n### Response, elapsed_ms: {elapsed_ms}\n")
                f.write(f"HTTP/1.1 {r.status_code} {getattr(r, 'reason', '') or ''}\n")
                for hk, hv in r.headers.items():
                    f.write(f"{hk}: {hv}\n")
                f.write("\n")
                f.write(r.text or "")
        except OSError:
            self.ctx.log(f"Could not append response to {http_file}")
