"""
Shortcode registry - placeholder rendering for tokens.

Content may reference a token as ``[NAME]`` (optionally ``[NAME /]`` or with
attributes, which are ignored). ``[[NAME]]`` renders the literal ``[NAME]``.
Unregistered shortcodes are left as written.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping

from .models import TokenData

logger = logging.getLogger(__name__)

ShortcodeHandler = Callable[[], str]

_SHORTCODE_RE = re.compile(r"\[(\[?)([A-Za-z0-9_]+)(?:\s[^\]]*)?\](\]?)")


class ShortcodeRegistry:
    """Maps shortcode names (case-sensitive) to handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, ShortcodeHandler] = {}

    def exists(self, name: str) -> bool:
        return name in self._handlers

    def add(self, name: str, handler: ShortcodeHandler) -> None:
        self._handlers[name] = handler

    def names(self) -> list[str]:
        return list(self._handlers)

    def render(self, content: str) -> str:
        """Replace every registered shortcode in content with its output."""

        def _replace(match: re.Match[str]) -> str:
            opening, name, closing = match.group(1), match.group(2), match.group(3)
            handler = self._handlers.get(name)
            if handler is None:
                return match.group(0)
            if opening and closing:
                return match.group(0)[1:-1]
            return opening + handler() + closing

        return _SHORTCODE_RE.sub(_replace, content)


def _value_handler(value: str) -> ShortcodeHandler:
    return lambda: value


def register_token_shortcodes(
    registry: ShortcodeRegistry,
    tokens: Mapping[str, TokenData],
) -> int:
    """
    Register one shortcode per token, returning its value.

    Names already registered are skipped. Returns the number added.
    """
    added = 0
    for name, data in tokens.items():
        if registry.exists(name):
            continue
        registry.add(name, _value_handler(data.value))
        added += 1
    logger.debug("Registered %d token shortcodes", added)
    return added


def render_tokens(content: str, tokens: Mapping[str, TokenData]) -> str:
    """Render content against a fresh registry built from tokens."""
    registry = ShortcodeRegistry()
    register_token_shortcodes(registry, tokens)
    return registry.render(content)
