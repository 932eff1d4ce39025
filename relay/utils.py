import re
from typing import Callable, Iterable, Mapping, Optional

from .constants import COLOR_FIRING, COLOR_RESOLVED, STATUS_RESOLVED

_LEADING_FENCE_RE = re.compile(r"^\s*```[ \t]*(?:markdown|md)?[ \t]*(?:\r?\n|$)", re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r"(?:\r?\n|^)[ \t]*```\s*$")

Lookup = Callable[[], Optional[str]]


def from_mapping(mapping: Mapping[str, str], key: str) -> Lookup:
    """Lookup that is present when ``key`` exists in ``mapping`` with a string value."""
    def _lookup():
        value = mapping.get(key)
        return value if isinstance(value, str) else None
    return _lookup


def non_empty(value: Optional[str]) -> Lookup:
    """Lookup that is present only for non-empty strings."""
    def _lookup():
        return value if isinstance(value, str) and value != "" else None
    return _lookup


def first_present(lookups: Iterable[Lookup], default: str) -> str:
    for lookup in lookups:
        value = lookup()
        if value is not None:
            return value
    return default


def status_color(status: Optional[str]) -> str:
    return COLOR_RESOLVED if status == STATUS_RESOLVED else COLOR_FIRING


def strip_markdown_fence(text: str) -> str:
    """
    Remove a Markdown code fence that wraps the whole reply.

    Models often answer with ```markdown ... ``` around the report; the card
    renders Markdown itself, so the outer fence is dropped. Fences inside the
    text are left alone, including a code block that closes the reply when
    no opening wrapper fence was found.
    """
    if text is None:
        return ""
    stripped, opened = _LEADING_FENCE_RE.subn("", text, count=1)
    if opened:
        stripped = _TRAILING_FENCE_RE.sub("", stripped, count=1)
    return stripped.strip()
