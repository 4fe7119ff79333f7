"""Keyword match strategies for auto-response rules.

Strategies are looked up by the rule's ``match_type``; new ones are added
with ``register_matcher``.
"""

from typing import Callable

Matcher = Callable[[str, str], bool]

_MATCHERS: dict[str, Matcher] = {}


def register_matcher(name: str) -> Callable[[Matcher], Matcher]:
    def decorator(fn: Matcher) -> Matcher:
        _MATCHERS[name] = fn
        return fn
    return decorator


@register_matcher("contains")
def _contains(text: str, keyword: str) -> bool:
    return keyword in text


@register_matcher("exact")
def _exact(text: str, keyword: str) -> bool:
    return text.strip() == keyword.strip()


@register_matcher("starts_with")
def _starts_with(text: str, keyword: str) -> bool:
    return text.lstrip().startswith(keyword)


def available_match_types() -> list[str]:
    return sorted(_MATCHERS)


def get_matcher(match_type: str) -> Matcher:
    try:
        return _MATCHERS[match_type]
    except KeyError:
        raise ValueError(f"Unknown match type: {match_type!r}") from None


def matches(
    text: str,
    keywords: list[str],
    match_type: str = "contains",
    case_sensitive: bool = False,
) -> bool:
    """True when any non-empty keyword matches ``text``."""
    matcher = get_matcher(match_type)
    if not case_sensitive:
        text = text.lower()
    for keyword in keywords:
        if not keyword:
            continue
        if matcher(text, keyword if case_sensitive else keyword.lower()):
            return True
    return False
