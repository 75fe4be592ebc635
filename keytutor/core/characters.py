from __future__ import annotations

import re
import string
from dataclasses import dataclass
from typing import Iterable, Optional

CONTROL_KEYS = frozenset(
    {
        "Enter",
        "Tab",
        "Escape",
        "Backspace",
        "Delete",
        "ArrowLeft",
        "ArrowRight",
        "ArrowUp",
        "ArrowDown",
        "Home",
        "End",
        "PageUp",
        "PageDown",
        "Shift",
        "Control",
        "Alt",
        "Meta",
        "CapsLock",
    }
)

_FUNCTION_KEY = re.compile(r"^F([1-9]|1[0-2])$")
_PUNCTUATION = ".,!?;:'\"-"
_BASIC_PUNCTUATION = ".,!?;:"


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    normalized_char: str
    reason: Optional[str] = None


def is_control_key(key: str) -> bool:
    """Return True for named non-printing keys (Shift, F5, ArrowLeft...)."""
    return key in CONTROL_KEYS or bool(_FUNCTION_KEY.match(key))


def is_printable_key(key: str) -> bool:
    """A key the engine should judge: exactly one character, not a control key."""
    return len(key) == 1 and not is_control_key(key)


def compare_characters(received: str, expected: str, case_sensitive: bool = False) -> bool:
    if not received or not expected:
        return False
    if case_sensitive:
        return received == expected
    return received.lower() == expected.lower()


def normalize_text(text: str, case_sensitive: bool = False, trim_spaces: bool = False) -> str:
    normalized = text if case_sensitive else text.lower()
    if trim_spaces:
        normalized = " ".join(normalized.split())
    return normalized


def character_category(key: str) -> str:
    """Classify a key as letter, number, space, punctuation, special, control or unknown."""
    if not key:
        return "unknown"
    if is_control_key(key):
        return "control"
    ch = key[0]
    if ch == " ":
        return "space"
    if ch in string.ascii_letters:
        return "letter"
    if ch in string.digits:
        return "number"
    if ch in _PUNCTUATION:
        return "punctuation"
    return "special"


def validate_character(
    char: str,
    *,
    case_sensitive: bool = False,
    allow_spaces: bool = True,
    allow_punctuation: bool = True,
    allow_numbers: bool = True,
    allow_special: bool = False,
    allowed: Iterable[str] = (),
) -> ValidationResult:
    """Check a typed character against an exercise's allowed character set.

    Only the first character of ``char`` is considered. When ``allowed`` is
    non-empty it replaces the category rules entirely.
    """
    if not char:
        return ValidationResult(False, "", "Empty character")

    ch = char[0]
    normalized = ch if case_sensitive else ch.lower()

    allowed = list(allowed)
    if allowed:
        if case_sensitive:
            ok = ch in allowed
        else:
            ok = normalized in {a.lower() for a in allowed}
        return ValidationResult(ok, normalized, None if ok else "Character not in allowed list")

    if ch == " ":
        return ValidationResult(allow_spaces, normalized, None if allow_spaces else "Spaces not allowed")
    if ch in string.ascii_letters:
        return ValidationResult(True, normalized)
    if ch in string.digits:
        return ValidationResult(allow_numbers, normalized, None if allow_numbers else "Numbers not allowed")
    if ch in _BASIC_PUNCTUATION:
        return ValidationResult(
            allow_punctuation, normalized, None if allow_punctuation else "Punctuation not allowed"
        )
    return ValidationResult(
        allow_special, normalized, None if allow_special else "Special characters not allowed"
    )
