"""Secret reference resolution for configuration values.

Two reference styles are understood:
  - "op://vault/item/field", read through the 1Password CLI;
  - "env:NAME", read from the process environment.
"""

from __future__ import annotations

import os
import subprocess
from typing import Any

import structlog

logger = structlog.get_logger()

OP_PREFIX = "op://"
ENV_PREFIX = "env:"


def is_secret_reference(value: Any) -> bool:
    """Check if a value is a secret reference of either style."""
    return isinstance(value, str) and value.startswith((OP_PREFIX, ENV_PREFIX))


def _read_op(reference: str) -> str:
    try:
        result = subprocess.run(
            ["op", "read", reference],
            capture_output=True,
            text=True,
            check=True,
            timeout=10,
        )
    except FileNotFoundError:
        raise RuntimeError(
            "1Password CLI (`op`) is not installed or not in PATH. "
            "Install it from https://1password.com/downloads/command-line/"
        )
    except subprocess.CalledProcessError as e:
        raise RuntimeError(f"Failed to resolve secret {reference}: {e.stderr.strip()}")
    except subprocess.TimeoutExpired:
        raise RuntimeError(f"Timed out resolving secret {reference}. Is 1Password unlocked?")
    return result.stdout.strip()


def _read_env(reference: str) -> str:
    name = reference[len(ENV_PREFIX):]
    try:
        return os.environ[name]
    except KeyError:
        raise RuntimeError(f"Environment variable {name} is not set")


def resolve_secret(reference: str) -> str:
    """Resolve a single secret reference; plain values pass through.

    Raises:
        RuntimeError: If the reference cannot be resolved.
    """
    if not is_secret_reference(reference):
        return reference
    if reference.startswith(ENV_PREFIX):
        return _read_env(reference)
    return _read_op(reference)


def resolve_secrets_in_dict(data: dict) -> dict:
    """Recursively replace every secret reference in a config mapping."""
    resolved = {}
    for key, value in data.items():
        if isinstance(value, dict):
            resolved[key] = resolve_secrets_in_dict(value)
        elif is_secret_reference(value):
            logger.debug("resolving_secret", key=key, reference=value.split("/")[0] + "...")
            resolved[key] = resolve_secret(value)
        else:
            resolved[key] = value
    return resolved
