"""Tiny terminal UI helpers (prompt_toolkit-based) for the SAP import wizard.

Each helper runs one prompt with completion over a closed set of options and
returns the canonical option. They are kept apart from the wizard state
machine so both can be tested in isolation (pass a ``PromptSession`` built on
a pipe input in tests).
"""

from __future__ import annotations

from collections.abc import Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.validation import ValidationError, Validator

from .field_map import REFERENCE_TARGETS, SKIP
from .parsing import NUMBER_FORMATS
from .records import CATEGORIES, FIELD_ORDER

UNMAPPED = ""


def _session(kb: KeyBindings, session: PromptSession | None) -> PromptSession:
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


class _OptionValidator(Validator):
    def __init__(self, allowed_lower: set[str], hint: str, allow_blank: bool) -> None:
        self._allowed_lower = allowed_lower
        self._hint = hint
        self._allow_blank = allow_blank

    def validate(self, document) -> None:
        text = document.text.strip().lower()
        if not text and self._allow_blank:
            return
        if text not in self._allowed_lower:
            raise ValidationError(message=self._hint)


def choose_option(
    options: Sequence[str],
    *,
    default: str = "",
    message: str,
    hint: str = "Select a value from the list.",
    allow_blank: bool = False,
    session: PromptSession | None = None,
) -> str | None:
    """Prompt for one of ``options`` (case-insensitive, with completion).

    Returns the canonical option, ``""`` for an accepted blank answer when
    ``allow_blank`` is set, or ``None`` when canceled with Esc.
    """

    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    canonical = {o.lower(): o for o in options}
    completer = WordCompleter(list(options), ignore_case=True, match_middle=True, sentence=True)
    value = _session(kb, session).prompt(
        message,
        default=default,
        completer=completer,
        validator=_OptionValidator(set(canonical), hint, allow_blank),
        validate_while_typing=False,
    )
    if value is None:
        return None
    text = value.strip()
    if not text:
        return UNMAPPED
    return canonical.get(text.lower(), text)


def select_category(
    raw_value: str,
    *,
    default: str = "",
    session: PromptSession | None = None,
) -> str | None:
    """Pick the category for one raw source value; blank leaves it unmapped."""

    return choose_option(
        CATEGORIES,
        default=default,
        message=f"Category for {raw_value!r} (Enter to accept): ",
        hint="Select one of the spend categories or leave blank.",
        allow_blank=True,
        session=session,
    )


def select_column_target(
    column: str,
    *,
    default: str = SKIP,
    session: PromptSession | None = None,
) -> str | None:
    """Pick the canonical field (or reference target / skip) for ``column``."""

    options = [*FIELD_ORDER, *sorted(REFERENCE_TARGETS), SKIP]
    return choose_option(
        options,
        default=default or SKIP,
        message=f"Map column {column!r} to (Enter to accept): ",
        hint=f"Select a field name, a reference target or {SKIP}.",
        session=session,
    )


def select_number_format(
    *,
    default: str = "auto",
    session: PromptSession | None = None,
) -> str | None:
    return choose_option(
        NUMBER_FORMATS,
        default=default,
        message="Number format [auto/EU/US] (Enter to accept): ",
        hint="Choose auto, EU or US.",
        session=session,
    )


def confirm(
    message: str,
    *,
    default: bool = True,
    session: PromptSession | None = None,
) -> bool:
    """Yes/no prompt; Esc counts as "no"."""

    answer = choose_option(
        ("yes", "no", "y", "n"),
        default="yes" if default else "no",
        message=message,
        hint="Answer yes or no.",
        session=session,
    )
    return answer in ("yes", "y")


__all__ = [
    "UNMAPPED",
    "choose_option",
    "select_category",
    "select_column_target",
    "select_number_format",
    "confirm",
]
