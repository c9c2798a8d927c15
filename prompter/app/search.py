"""Client-side prompt filtering and ranking.

Matching is a literal, case-insensitive substring test. A prompt is kept when
the query occurs in its name, description, any tag, or content. Name matches
are listed first; everything else keeps its original relative order.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from prompter.app import config
from prompter.app.models import MatchField, Prompt, SearchResult

logger = logging.getLogger(__name__)

_TIER_SCORES = {
    MatchField.NAME: 1.0,
    MatchField.DESCRIPTION: 0.75,
    MatchField.TAGS: 0.5,
    MatchField.CONTENT: 0.25,
}


def _normalize(query: str) -> str:
    return (query or "").strip().lower()


def best_match(prompt: Prompt, needle: str) -> Optional[MatchField]:
    """Return the highest-priority field containing ``needle`` (already lower-cased)."""
    if needle in (prompt.name or "").lower():
        return MatchField.NAME
    if prompt.description and needle in prompt.description.lower():
        return MatchField.DESCRIPTION
    for tag in prompt.tags or ():
        if tag and needle in tag.lower():
            return MatchField.TAGS
    if needle in (prompt.content or "").lower():
        return MatchField.CONTENT
    return None


def rank_prompts(prompts: Sequence[Prompt], query: str) -> list[SearchResult]:
    """Return matching prompts with their best field; name tier first, stable otherwise."""
    needle = _normalize(query)
    if not needle:
        return [SearchResult(prompt, 0.0, MatchField.NAME) for prompt in prompts]
    results = []
    for prompt in prompts:
        field = best_match(prompt, needle)
        if field is not None:
            results.append(SearchResult(prompt, _TIER_SCORES[field], field))
    # sorted() is stable: within a tier the input order is kept.
    return sorted(results, key=lambda r: 0 if r.matched_field is MatchField.NAME else 1)


def filter_prompts(prompts: Sequence[Prompt], query: str) -> Sequence[Prompt]:
    """Filter prompts by query. A blank query returns ``prompts`` itself."""
    if not _normalize(query):
        return prompts
    return [result.prompt for result in rank_prompts(prompts, query)]


class PromptSearch:
    """Memoized ``filter_prompts`` for the last (prompts, query) pair."""

    def __init__(self) -> None:
        self._prompts: Optional[Sequence[Prompt]] = None
        self._query: Optional[str] = None
        self._result: Sequence[Prompt] = []

    def __call__(self, prompts: Sequence[Prompt], query: str) -> Sequence[Prompt]:
        if self._query == query and self._prompts is not None:
            if self._prompts is prompts or list(self._prompts) == list(prompts):
                return self._result
        result = filter_prompts(prompts, query)
        if config.debug_enabled("PROMPTER_DEBUG_SEARCH"):
            logger.debug("search %r: %d of %d prompts", query, len(result), len(prompts))
        self._prompts = prompts
        self._query = query
        self._result = result
        return result

    def clear(self) -> None:
        self._prompts = None
        self._query = None
        self._result = []
