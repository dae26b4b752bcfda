"""Identifier casefolding and hostname checks shared by the config loader."""

from __future__ import annotations

import unicodedata


_FORBIDDEN_CHARS = frozenset(",*?!@")
_FORBIDDEN_PREFIXES = ("#", "&")
_HOSTNAME_CHARS = frozenset("abcdefghijklmnopqrstuvwxyz0123456789-.")


class CasefoldError(ValueError):
    pass


def casefold_name(name: str) -> str:
    """Return the canonical comparable form of an oper or listener name.

    Names are NFKC-normalized and Unicode casefolded. Empty names, whitespace,
    control characters, wildcard/prefix characters and channel-style leading
    characters are rejected.
    """
    if not isinstance(name, str):
        raise CasefoldError(f"name must be a string, got {type(name).__name__}")
    folded = unicodedata.normalize("NFKC", unicodedata.normalize("NFKC", name).casefold())
    if not folded:
        raise CasefoldError("name is empty")
    for char in folded:
        if char.isspace() or unicodedata.category(char).startswith("C"):
            raise CasefoldError(f"name '{name}' contains whitespace or control characters")
        if char in _FORBIDDEN_CHARS:
            raise CasefoldError(f"name '{name}' contains invalid character '{char}'")
    if folded.startswith(_FORBIDDEN_PREFIXES):
        raise CasefoldError(f"name '{name}' must not start with '{folded[0]}'")
    return folded


def is_hostname(name: str) -> bool:
    # server names must contain a period to be told apart from nicknames
    if "." not in name or len(name) > 253:
        return False
    for part in name.split("."):
        if not part or len(part) > 63 or part.startswith("-") or part.endswith("-"):
            return False
    return all(char in _HOSTNAME_CHARS for char in name.lower())
