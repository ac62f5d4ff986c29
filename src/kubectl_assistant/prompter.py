# kubectl-assistant: Confirmation prompter. Renders the Apply / Don't Apply menu with an open "Reprompt" entry whose free text becomes new guidance for the model.

from typing import Callable

from rich.prompt import Prompt

from .cancel import CancelToken
from .config import KubeOptions
from .context import Context
from .errors import ContextLookupError, PromptError
from .kube import current_context_name
from .models import Action, Decision

APPLY = Action.apply.value
DONT_APPLY = Action.dont_apply.value
REPROMPT = Action.reprompt.value

# Menu order puts the "add new item" entry first, then the fixed choices.
MENU = [REPROMPT, APPLY, DONT_APPLY]


def build_label(kube: KubeOptions, ctx: Context, lookup: Callable[[KubeOptions], str] = current_context_name) -> str:
    """
    Return the prompt label, prefixed with the active cluster context when it
    can be determined. A failed lookup only drops the prefix.
    """
    label = f"Would you like to apply this? [{REPROMPT}/{APPLY}/{DONT_APPLY}]"
    try:
        name = lookup(kube)
    except ContextLookupError as e:
        ctx.log(f"Context lookup failed: {e}")
        return label
    return f"(context: {name}) {label}"


def match_choice(answer: str) -> str:
    """Map a typed answer (menu number, name or first letter) to a menu entry; '' if unknown."""
    a = answer.strip().lower()
    if not a:
        return ""
    if a.isdigit() and 1 <= int(a) <= len(MENU):
        return MENU[int(a) - 1]
    for item in MENU:
        if a == item.lower():
            return item
    aliases = {"r": REPROMPT, "a": APPLY, "y": APPLY, "yes": APPLY, "d": DONT_APPLY, "n": DONT_APPLY, "no": DONT_APPLY, "dont apply": DONT_APPLY}
    return aliases.get(a, "")


class ConsolePrompter:
    """Interactive prompter reading from the terminal through rich.prompt.Prompt."""

    def __init__(
        self,
        ctx: Context,
        kube: KubeOptions,
        lookup: Callable[[KubeOptions], str] = current_context_name,
    ) -> None:
        self.ctx = ctx
        self.kube = kube
        self.lookup = lookup

    def ask(self, token: CancelToken) -> Decision:
        """
        Ask the user what to do with the manifest just shown.

        Raises:
            PromptError: interrupt received, input closed (EOF), or any
                rendering failure. An interrupt also cancels the token.
        """
        label = build_label(self.kube, self.ctx, self.lookup)
        token.raise_if_cancelled("waiting for confirmation")
        try:
            return self._ask(label)
        except KeyboardInterrupt as e:
            token.cancel()
            raise PromptError("^C") from e
        except EOFError as e:
            raise PromptError("input closed before a choice was made") from e
        except (OSError, ValueError) as e:
            raise PromptError(f"prompt failed: {e}") from e

    def _ask(self, label: str) -> Decision:
        self.ctx.send_to_user(label)
        for i, item in enumerate(MENU, start=1):
            marker = "+ " if item == REPROMPT else ""
            self.ctx.send_to_user(f"  {i}. {marker}{item}")

        while True:
            choice = match_choice(Prompt.ask("Choose", console=self.ctx.console))
            if choice:
                break
            self.ctx.send_to_user(f"Please choose 1-{len(MENU)}.")

        if choice == APPLY:
            return Decision.apply()
        if choice == DONT_APPLY:
            return Decision.dont_apply()

        while True:
            text = Prompt.ask(REPROMPT, console=self.ctx.console).strip()
            if text:
                return Decision.reprompt(text)
            self.ctx.send_to_user("Guidance cannot be empty.")
