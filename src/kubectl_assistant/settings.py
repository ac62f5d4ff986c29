# kubectl-assistant: Lightweight YAML settings loader. Values here sit below flags and environment variables.

from __future__ import annotations

import os
import pathlib
from typing import Any, Dict, List, Optional

import yaml

SETTINGS_ENV = "KUBECTL_ASSISTANT_SETTINGS"


def settings_candidates(environ: Optional[Dict[str, str]] = None) -> List[pathlib.Path]:
    """Return the settings file locations to try, most specific first."""
    env = os.environ if environ is None else environ
    explicit = (env.get(SETTINGS_ENV) or "").strip()
    if explicit:
        return [pathlib.Path(explicit).expanduser()]
    base = pathlib.Path(env.get("XDG_CONFIG_HOME") or pathlib.Path.home() / ".config")
    conf_dir = base / "kubectl-assistant"
    return [conf_dir / "settings.yaml", conf_dir / "settings.yml"]


def load_settings(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Load assistant settings from $KUBECTL_ASSISTANT_SETTINGS or
    ~/.config/kubectl-assistant/settings.yaml (or .yml).

    Returns an empty dict {} when the settings file is missing, unreadable, or
    does not contain a mapping. The function never raises.
    """
    for p in settings_candidates(environ):
        try:
            if not (p.exists() and p.is_file()):
                continue
            data = yaml.safe_load(p.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError):
            # Unreadable or malformed; try the next candidate.
            continue
        if isinstance(data, dict):
            return data
        return {}
    return {}


def httpcalls_dir(settings: Dict[str, Any]) -> Optional[str]:
    """
    Resolve the directory for .http request dumps from `logging.httpcalls`.

    Dumps are written only when `enabled` is true; `dir` defaults to
    ./.httpcalls relative to the working directory.
    """
    log_cfg = (settings.get("logging") or {}) if isinstance(settings, dict) else {}
    http_cfg = log_cfg.get("httpcalls") if isinstance(log_cfg, dict) else None
    if not isinstance(http_cfg, dict) or http_cfg.get("enabled") is not True:
        return None
    return str(http_cfg.get("dir") or ".httpcalls")
