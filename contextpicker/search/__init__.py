"""Search package exports."""

from __future__ import annotations

from .matching import (
    directory_matches_search,
    has_matching_descendant,
    parse_search_terms,
    path_matches_search,
)

__all__ = [
    "parse_search_terms",
    "path_matches_search",
    "has_matching_descendant",
    "directory_matches_search",
]
