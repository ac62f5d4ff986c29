# kubectl-assistant: CLI entrypoint. Parses flags (with environment and settings-file fallback), builds the immutable Settings, wires the collaborators and maps errors to exit codes.

import argparse
import os
import sys
from typing import Any, List, Optional

from .cancel import CancelToken, interrupt_scope
from .client import CompletionClient
from .config import DEFAULT_DEPLOYMENT_NAME, OPENAI_API_URL_V1, OPTIONS, VERSION, KubeOptions, Settings, parse_bool, resolve_settings
from .context import Context
from .errors import AssistantError, StartupConfigError, UsageError
from .kube import KubectlApplier
from .models import Outcome
from .prompter import ConsolePrompter
from .session import SessionLoop
from .settings import httpcalls_dir, load_settings

BOOL_FLAGS = ("require-confirmation", "raw", "use-k8s-api", "debug")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kubectl-assistant",
        description="kubectl-assistant is a plugin for kubectl that allows you to interact with OpenAI GPT API.",
        allow_abbrev=False,
    )
    parser.add_argument("prompt", nargs="*", help="What to create, in plain words, e.g. 'deploy nginx with 3 replicas'")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    ai = parser.add_argument_group("completion")
    ai.add_argument(
        "--openai-endpoint",
        help=f"The endpoint for OpenAI service. Defaults to {OPENAI_API_URL_V1}. Set this to your Local AI endpoint or Azure OpenAI Service, if needed. [env OPENAI_ENDPOINT]",
    )
    ai.add_argument(
        "--openai-deployment-name",
        help=f"The deployment name used for the model in OpenAI service. Defaults to {DEFAULT_DEPLOYMENT_NAME}. [env OPENAI_DEPLOYMENT_NAME]",
    )
    ai.add_argument("--openai-api-key", help="The API key for the OpenAI service. This is required. [env OPENAI_API_KEY]")
    ai.add_argument(
        "--azure-openai-map",
        help="The mapping from OpenAI model to Azure OpenAI deployment, e.g. gpt-3.5-turbo=my-deployment. [env AZURE_OPENAI_MAP]",
    )
    ai.add_argument(
        "--temperature",
        type=float,
        help="The temperature to use for the model. Closer to 0 is more deterministic but less creative. Defaults to 0.0. [env TEMPERATURE]",
    )
    ai.add_argument(
        "--use-k8s-api",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Whether to use the Kubernetes API to create resources with function calling. Defaults to false. [env USE_K8S_API]",
    )
    ai.add_argument(
        "--k8s-openapi-url",
        help="The URL to a Kubernetes OpenAPI spec. Only used if --use-k8s-api is set. [env K8S_OPENAPI_URL]",
    )

    behavior = parser.add_argument_group("behavior")
    behavior.add_argument(
        "--require-confirmation",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Whether to require confirmation before applying the manifest. Defaults to true. [env REQUIRE_CONFIRMATION]",
    )
    behavior.add_argument(
        "--raw",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Prints the raw YAML output immediately. Defaults to false.",
    )
    behavior.add_argument(
        "--debug",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Whether to print debug logs. Defaults to false. [env DEBUG]",
    )

    kube = parser.add_argument_group("cluster")
    kube.add_argument("--kubeconfig", help="Path to the kubeconfig file to use for CLI requests.")
    kube.add_argument("--context", help="The name of the kubeconfig context to use.")
    kube.add_argument("-n", "--namespace", help="If present, the namespace scope for this CLI request.")
    return parser


def normalize_bool_flags(argv: List[str]) -> List[str]:
    """
    Rewrite `--flag=value` for boolean flags into `--flag` / `--no-flag`.

    Arguments after a literal `--` are left alone.
    """
    out: List[str] = []
    for i, a in enumerate(argv):
        if a == "--":
            out.extend(argv[i:])
            break
        if a.startswith("--") and "=" in a:
            name, value = a[2:].split("=", 1)
            if name in BOOL_FLAGS:
                try:
                    flag = parse_bool(value)
                except ValueError as e:
                    raise StartupConfigError(f"invalid value for --{name}: {e}") from e
                out.append(f"--{name}" if flag else f"--no-{name}")
                continue
        out.append(a)
    return out


def settings_from_args(
    args: argparse.Namespace, environ: Optional[dict] = None, warnings: Optional[List[str]] = None
) -> Settings:
    env = os.environ if environ is None else environ
    file_settings = load_settings(env)
    cli = {field: getattr(args, field, None) for field, _, _ in OPTIONS}
    kube = KubeOptions(kubeconfig=args.kubeconfig, context=args.context, namespace=args.namespace)
    return resolve_settings(cli, env, file_settings, kube=kube, httpcalls_dir=httpcalls_dir(file_settings), warnings=warnings)


def run(
    settings: Settings,
    ctx: Context,
    prompt: str,
    provider: Any = None,
    prompter: Any = None,
    applier: Any = None,
) -> Outcome:
    """Run one session with SIGINT routed to a fresh cancel token."""
    token = CancelToken()
    with interrupt_scope(token):
        loop = SessionLoop(
            settings,
            ctx,
            provider or CompletionClient(settings, ctx),
            prompter or ConsolePrompter(ctx, settings.kube),
            applier or KubectlApplier(settings.kube, ctx),
            token,
        )
        return loop.run(prompt)


def main(argv: Optional[List[str]] = None) -> int:
    """
    kubectl-assistant CLI entrypoint.

    Usage:
        kubectl-assistant [options] <prompt words...>

    Returns the process exit code: 0 on success or "Don't Apply", 1 on any
    reported error, 130 on interrupt. argparse itself exits with 2 on
    malformed options.
    """
    ctx = Context()
    argv = sys.argv[1:] if argv is None else argv
    try:
        args = build_parser().parse_intermixed_args(normalize_bool_flags(argv))
        warnings: List[str] = []
        # The credential is checked before anything else runs.
        settings = settings_from_args(args, warnings=warnings)
        ctx.debug = settings.debug
        for warning in warnings:
            ctx.log(warning)
        for line in settings.debug_lines():
            ctx.log(line)
        if not args.prompt:
            raise UsageError("prompt must be provided")
        outcome = run(settings, ctx, " ".join(args.prompt))
    except AssistantError as e:
        ctx.error_message(str(e))
        return e.exit_code
    except KeyboardInterrupt:
        ctx.error_message("interrupted")
        return 130
    ctx.log(f"Session finished: {outcome.value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
