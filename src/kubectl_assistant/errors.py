# kubectl-assistant: Error taxonomy shared by the session loop and its collaborators. Each boundary raises its own type so callers can decide fatal vs. non-fatal by class.


class AssistantError(Exception):
    """Base class for every error the assistant reports to the user."""

    kind = "error"
    exit_code = 1


class StartupConfigError(AssistantError):
    """Invalid or missing configuration detected before any command logic runs."""

    kind = "startup_config"


class UsageError(AssistantError):
    kind = "usage"


class ProviderError(AssistantError):
    """The completion call failed (network, auth, bad model, unusable answer)."""

    kind = "provider"

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class PromptError(AssistantError):
    """The confirmation prompt failed, was interrupted, or its input was closed."""

    kind = "prompt"


class ApplyError(AssistantError):
    kind = "apply"


class ContextLookupError(AssistantError):
    """The current cluster context name is unavailable. Never fatal."""

    kind = "context_lookup"


class Cancelled(AssistantError):
    """The run was interrupted (SIGINT) at a suspension point."""

    kind = "cancelled"
    exit_code = 130
