# kubectl-assistant: The confirm/regenerate loop. Generates a manifest from the accumulated prompt history, asks the user, and then applies, discards, or regenerates with the extra guidance.

from typing import Any, Optional

from .cancel import CancelToken, suspension
from .config import Settings
from .context import Context
from .models import Action, Decision, Outcome, SessionState

BANNER = "✨ Attempting to apply the following manifest:"


class SessionLoop:
    """
    Orchestrates one run: Generating -> Reviewing -> {Applying, Reprompting, Exiting}.

    Collaborators are duck-typed:
      - provider.complete(history: List[str], token) -> str
      - prompter.ask(token) -> Decision
      - applier.apply(manifest: str, token) -> Any

    Their errors propagate unchanged; the loop never retries a failed call.
    Reprompting is the only cycle and is unbounded. Because the provider is
    stateless, regenerating means resending the whole history plus the new
    guidance rather than editing the previous output.
    """

    def __init__(
        self,
        settings: Settings,
        ctx: Context,
        provider: Any,
        prompter: Any,
        applier: Any,
        token: CancelToken,
    ) -> None:
        self.settings = settings
        self.ctx = ctx
        self.provider = provider
        self.prompter = prompter
        self.applier = applier
        self.token = token
        self.state: Optional[SessionState] = None

    def run(self, prompt: str) -> Outcome:
        self.state = SessionState(history=[prompt])
        state = self.state

        while True:
            # Generating
            state.last_completion = self._generate()

            # Reviewing
            if self.settings.raw:
                self.ctx.emit_raw(state.last_completion)
                return Outcome.printed

            self.ctx.send_to_user(f"{BANNER}\n{state.last_completion}")
            decision = self._decide()
            state.action = decision.action

            if decision.action == Action.reprompt:
                state.add_guidance(decision.text)
                self.ctx.log(f"Regenerating with {len(state.history)} prompt(s) in history")
                continue
            if decision.action == Action.dont_apply:
                return Outcome.discarded
            break

        # Applying
        self.token.raise_if_cancelled("applying the manifest")
        self.applier.apply(state.last_completion, self.token)
        return Outcome.applied

    def _generate(self) -> str:
        state = self.state
        with suspension(self.token, "waiting for the completion"):
            with self.ctx.progress("Processing...", enabled=self.settings.show_progress):
                completion = self.provider.complete(list(state.history), self.token)
        state.completions += 1
        self.ctx.log(f"Completion #{state.completions} received ({len(completion)} chars)")
        return completion

    def _decide(self) -> Decision:
        self.token.raise_if_cancelled("waiting for confirmation")
        if not self.settings.require_confirmation:
            return Decision.apply()
        return self.prompter.ask(self.token)
