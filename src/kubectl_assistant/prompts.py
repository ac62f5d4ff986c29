# kubectl-assistant: Load system prompt templates packaged under kubectl_assistant.resources.

from importlib import resources


def get_prompt(name: str, **kwargs) -> str:
    """
    Load a text prompt from the kubectl_assistant.resources package.

    If kwargs are provided, apply str.format(**kwargs) to the content. If no
    kwargs are provided, return the raw text so literal braces in YAML examples
    survive untouched.
    """
    data = resources.files("kubectl_assistant.resources").joinpath(name).read_text(encoding="utf-8")
    if kwargs:
        return data.format(**kwargs)
    return data
