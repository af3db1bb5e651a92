"""Fuzzy ranking of catalog entries against a search query."""

from __future__ import annotations

from collections.abc import Sequence

from gadget.registry import CATALOG, CatalogEntry, categorized_catalog

CHAR_SCORE = 10
CONSECUTIVE_STEP = 5
WORD_START_BONUS = 8
POSITION_BONUS_MAX = 50
COMPACTNESS_BONUS_MAX = 25
NAME_MATCH_BONUS = 50

_WORD_SEPARATORS = (" ", "-")


def score_text(text: str, query: str) -> int:
    """Score a subsequence match of *query* in *text*; 0 means no match.

    Both arguments are expected to be lowercased already.
    """
    if not query or not text:
        return 0

    qi = 0
    score = 0
    consecutive = 0
    positions: list[int] = []

    for i, ch in enumerate(text):
        if qi >= len(query) or ch != query[qi]:
            continue
        positions.append(i)
        score += CHAR_SCORE

        if qi > 0 and i > 0 and text[i - 1] == query[qi - 1]:
            consecutive += CONSECUTIVE_STEP
            score += consecutive
        else:
            consecutive = 0

        if i == 0 or text[i - 1] in _WORD_SEPARATORS:
            score += WORD_START_BONUS
        qi += 1

    if qi != len(query):
        return 0

    avg_pos = sum(positions) // len(positions)
    score += max(0, POSITION_BONUS_MAX - (avg_pos * POSITION_BONUS_MAX // len(text)))

    if len(positions) > 1:
        span = positions[-1] - positions[0] + 1
        score += max(0, COMPACTNESS_BONUS_MAX - (span * COMPACTNESS_BONUS_MAX // len(text)))

    return score


def score_entry(entry: CatalogEntry, query: str) -> int:
    """Best of the name and description scores, boosted when the name matches."""
    query = query.lower()
    name_score = score_text(entry.name.lower(), query)
    desc_score = score_text(entry.description.lower(), query)
    score = max(name_score, desc_score)
    if name_score > 0:
        score += NAME_MATCH_BONUS
    return score


def filter_commands(
    query: str,
    catalog: Sequence[CatalogEntry] = CATALOG,
) -> list[CatalogEntry]:
    """Entries matching *query*, best first; ties keep catalog order.

    An empty query returns the whole catalog in its categorized order.
    """
    if not query:
        return categorized_catalog(tuple(catalog))

    scored = [(score_entry(entry, query), entry) for entry in catalog]
    matches = [(score, entry) for score, entry in scored if score > 0]
    matches.sort(key=lambda item: item[0], reverse=True)
    return [entry for _, entry in matches]
