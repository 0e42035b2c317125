"""Near-duplicate detection for generated tasks."""
from __future__ import annotations

import logging
from typing import Iterable, List

from planstream.services.text_normalizer import normalize_for_comparison

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.85


def word_similarity(first: str, second: str) -> float:
    """Jaccard similarity of the word sets of two normalized strings."""
    words_first = set(first.split())
    words_second = set(second.split())
    union = words_first | words_second
    if not union:
        return 0.0
    return len(words_first & words_second) / len(union)


def _matches_any(normalized: str, normalized_others: Iterable[str], threshold: float) -> bool:
    for other in normalized_others:
        if normalized == other or word_similarity(normalized, other) >= threshold:
            return True
    return False


def is_duplicate(
    candidate: str,
    accepted_so_far: Iterable[str],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> bool:
    """True when ``candidate`` matches any accepted description exactly or by word overlap."""
    return _matches_any(
        normalize_for_comparison(candidate),
        (normalize_for_comparison(existing) for existing in accepted_so_far),
        threshold,
    )


class TaskDeduplicator:
    """Running set of accepted tasks for a single parse, shared across all weeks."""

    def __init__(self, threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> None:
        self.threshold = threshold
        # Stored already normalized.
        self.accepted: List[str] = []

    def admit(self, description: str) -> bool:
        """Record ``description`` unless it duplicates an accepted task; report whether it was kept."""
        normalized = normalize_for_comparison(description)
        if _matches_any(normalized, self.accepted, self.threshold):
            logger.debug("Skipping duplicate task: %s", description)
            return False
        self.accepted.append(normalized)
        return True

    def __len__(self) -> int:
        return len(self.accepted)
