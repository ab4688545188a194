"""Config loader: parse and validate chatrelay.yaml."""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml

from contracts.config import GatewayConfig

_UNSET_VAR = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def load_config(path: str) -> GatewayConfig:
    """Load a chatrelay.yaml file and return a validated GatewayConfig.

    ``${VAR}`` references are expanded from the environment before parsing,
    so API keys can stay out of the file. A reference to an unset variable
    is an error rather than a literal placeholder.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    raw = os.path.expandvars(p.read_text(encoding="utf-8"))
    unset = sorted(set(_UNSET_VAR.findall(raw)))
    if unset:
        raise ValueError(f"Config references unset environment variables: {', '.join(unset)}")

    data = yaml.safe_load(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a YAML mapping, got {type(data).__name__}")

    return GatewayConfig(**data)
