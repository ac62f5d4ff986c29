from __future__ import annotations

import pytest

from kubectl_assistant import prompter as prompter_mod
from kubectl_assistant.cancel import CancelToken
from kubectl_assistant.config import KubeOptions
from kubectl_assistant.errors import Cancelled, ContextLookupError, PromptError
from kubectl_assistant.models import Action
from kubectl_assistant.prompter import ConsolePrompter, build_label, match_choice


def _lookup_ok(kube: KubeOptions) -> str:
    return "kind-dev"


def _lookup_fails(kube: KubeOptions) -> str:
    raise ContextLookupError("no current context")


def _script(monkeypatch: pytest.MonkeyPatch, *answers):
    """Replace Prompt.ask with a queue of answers (exceptions are raised)."""
    queue = list(answers)
    asked: list[str] = []

    def _ask(prompt, console=None, **kwargs):
        asked.append(prompt)
        answer = queue.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer

    monkeypatch.setattr(prompter_mod.Prompt, "ask", staticmethod(_ask))
    return asked


def test_label_includes_context_when_known(ctx) -> None:
    label = build_label(KubeOptions(), ctx, _lookup_ok)
    assert label == "(context: kind-dev) Would you like to apply this? [Reprompt/Apply/Don't Apply]"


def test_label_degrades_silently_when_lookup_fails(ctx) -> None:
    label = build_label(KubeOptions(), ctx, _lookup_fails)
    assert label == "Would you like to apply this? [Reprompt/Apply/Don't Apply]"


@pytest.mark.parametrize(
    "answer,expected",
    [("1", "Reprompt"), ("2", "Apply"), ("3", "Don't Apply"), ("apply", "Apply"), ("Don't Apply", "Don't Apply"), ("n", "Don't Apply"), ("4", ""), ("", "")],
)
def test_match_choice(answer: str, expected: str) -> None:
    assert match_choice(answer) == expected


def test_apply_choice(monkeypatch, ctx) -> None:
    _script(monkeypatch, "2")
    decision = ConsolePrompter(ctx, KubeOptions(), _lookup_ok).ask(CancelToken())

    assert decision.action == Action.apply
    output = ctx.console.file.getvalue()
    assert "(context: kind-dev)" in output
    assert "+ Reprompt" in output


def test_invalid_answer_is_asked_again(monkeypatch, ctx) -> None:
    asked = _script(monkeypatch, "maybe", "3")
    decision = ConsolePrompter(ctx, KubeOptions(), _lookup_ok).ask(CancelToken())

    assert decision.action == Action.dont_apply
    assert len(asked) == 2


def test_reprompt_collects_non_empty_guidance(monkeypatch, ctx) -> None:
    _script(monkeypatch, "1", "   ", "use 3 replicas")
    decision = ConsolePrompter(ctx, KubeOptions(), _lookup_ok).ask(CancelToken())

    assert decision.action == Action.reprompt
    assert decision.text == "use 3 replicas"


def test_closed_input_is_prompt_error(monkeypatch, ctx) -> None:
    _script(monkeypatch, EOFError())
    with pytest.raises(PromptError, match="input closed"):
        ConsolePrompter(ctx, KubeOptions(), _lookup_ok).ask(CancelToken())


def test_interrupt_is_prompt_error_and_cancels(monkeypatch, ctx) -> None:
    _script(monkeypatch, KeyboardInterrupt())
    token = CancelToken()
    with pytest.raises(PromptError):
        ConsolePrompter(ctx, KubeOptions(), _lookup_ok).ask(token)
    assert token.cancelled


def test_already_cancelled_does_not_prompt(monkeypatch, ctx) -> None:
    asked = _script(monkeypatch, "2")
    token = CancelToken()
    token.cancel()
    with pytest.raises(Cancelled):
        ConsolePrompter(ctx, KubeOptions(), _lookup_ok).ask(token)
    assert asked == []
