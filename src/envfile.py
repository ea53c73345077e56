"""
Env-String Codec - Parse and render flat KEY=VALUE environment blocks.

Dokploy stores an application's environment as a single text block. This
module turns that block into a mapping and back, and defines the three
whole-block transforms the environment reconciler applies to it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from errors import DecodeError

logger = logging.getLogger(__name__)


def parse_env(text: Optional[str]) -> Dict[str, str]:
    """
    Parse an environment block into a mapping.

    Entries are separated by newlines. A block without any newline is
    also split on '&'. Blank lines and lines starting with '#' are
    skipped. On duplicate keys the last occurrence wins.

    Args:
        text: The raw environment block (None is treated as empty).

    Returns:
        Mapping of variable name to value, in first-seen key order.

    Raises:
        DecodeError: If an entry has no '=' or an empty key.
    """
    if not text:
        return {}

    if "\n" in text:
        entries = text.splitlines()
    else:
        entries = text.split("&")

    result: Dict[str, str] = {}
    for lineno, entry in enumerate(entries, start=1):
        stripped = entry.strip()
        if not stripped or stripped.startswith("#"):
            continue

        if "=" not in stripped:
            raise DecodeError(f"Invalid env entry {lineno}: missing '=' in {stripped!r}")

        key, value = stripped.split("=", 1)
        key = key.strip()
        if not key:
            raise DecodeError(f"Invalid env entry {lineno}: empty key")

        if key in result:
            logger.debug(f"Duplicate env key {key}, keeping last value")
        result[key] = value.strip()

    return result


def format_env(variables: Mapping[str, str]) -> str:
    """
    Render a mapping as an environment block.

    One KEY=VALUE per line, in mapping order. Non-empty blocks end with a
    newline so that a single entry containing '&' is not split on re-parse.

    Raises:
        DecodeError: If a key or value cannot be represented in the block.
    """
    lines = []
    for key, value in variables.items():
        name = key.strip()
        if not name or "=" in name or "\n" in name:
            raise DecodeError(f"Invalid env variable name: {key!r}")
        if "\n" in value:
            raise DecodeError(f"Value of env variable {name} contains a newline")
        lines.append(f"{name}={value.strip()}")

    if not lines:
        return ""
    return "\n".join(lines) + "\n"


class EnvOperation(ABC):
    """A whole-block transform of an application's environment."""

    @abstractmethod
    def apply(self, current: Mapping[str, str]) -> Dict[str, str]:
        """Return the new mapping. Never mutates ``current``."""
        pass


@dataclass
class MergeEnv(EnvOperation):
    """Overlay variables onto the current block, keeping unrelated keys."""

    variables: Dict[str, str] = field(default_factory=dict)

    def apply(self, current: Mapping[str, str]) -> Dict[str, str]:
        merged = dict(current)
        merged.update(self.variables)
        return merged


@dataclass
class ReplaceEnv(EnvOperation):
    """Drop every current key and write exactly these variables."""

    variables: Dict[str, str] = field(default_factory=dict)

    def apply(self, current: Mapping[str, str]) -> Dict[str, str]:
        return dict(self.variables)


@dataclass
class ClearEnv(EnvOperation):
    """Drop every current key."""

    def apply(self, current: Mapping[str, str]) -> Dict[str, str]:
        return {}
