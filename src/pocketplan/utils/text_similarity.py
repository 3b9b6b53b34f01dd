"""Text normalization and similarity helpers."""

import re

from rapidfuzz.distance import Levenshtein

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_TOKEN_SPLIT = re.compile(r"[\s\-_.,;:!?()\[\]{}'\"]+")

# A candidate word must beat this to count as a match
WORD_MATCH_THRESHOLD = 0.8

STOP_WORDS = frozenset(
    {
        "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
        "from", "up", "about", "into", "through", "during", "before", "after", "above",
        "below", "between", "among", "a", "an", "is", "was", "are", "were", "be", "been",
        "being", "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "must", "can",
    }
)


def normalize_description(text: str) -> str:
    """Lowercase, collapse whitespace and strip punctuation."""
    text = _WHITESPACE.sub(" ", text.lower().strip())
    return _NON_WORD.sub("", text)


def similarity_ratio(a: str, b: str) -> float:
    """1 - edit distance / longer length; 1.0 for two empty strings."""
    if not a and not b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


def tokenize(text: str) -> list[str]:
    """Split into lowercase words, dropping stop words and bare numbers."""
    words = [w.strip() for w in _TOKEN_SPLIT.split(text.lower())]
    return [w for w in words if len(w) > 1 and w not in STOP_WORDS and not w.isdigit()]


def word_match_score(a: str, b: str) -> float:
    """Similarity of two words.

    A word contained in the other scores ``len(shorter) / len(longer)``;
    anything else falls back to the edit distance ratio.
    """
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0
    if a in b or b in a:
        return min(len(a), len(b)) / max(len(a), len(b))
    return similarity_ratio(a, b)


def word_weight(word: str, position: int, total: int) -> float:
    """Longer words and words near the start weigh more."""
    weight = 1.0
    if len(word) >= 4:
        weight += 0.3
    if len(word) >= 6:
        weight += 0.2
    return weight + (1 - position / (total * 2)) * 0.2


def coverage_score(input_count: int, candidate_count: int, matched: int) -> float:
    input_coverage = matched / input_count
    candidate_coverage = matched / candidate_count
    if input_coverage < 0.6:
        return input_coverage / 0.6
    return min(1.2, (input_coverage + candidate_coverage) / 2)


def length_penalty(input_count: int, candidate_count: int) -> float:
    ratio = min(input_count, candidate_count) / max(input_count, candidate_count)
    if ratio < 0.3:
        return 0.7
    if ratio < 0.5:
        return 0.85
    return 1.0


def order_bonus(matched_indices: set[int]) -> float:
    """0.02 for every pair of matched candidate words that sit next to each other."""
    indices = sorted(matched_indices)
    adjacent = sum(1 for prev, cur in zip(indices, indices[1:]) if cur == prev + 1)
    return min(0.1, adjacent * 0.02)


def word_similarity(input_words: list[str], candidate_words: list[str]) -> float:
    """Score in ``[0, 1]`` of how well ``candidate_words`` cover ``input_words``.

    Each input word takes its best unused candidate word scoring above
    ``WORD_MATCH_THRESHOLD``. The weighted match score is scaled by coverage
    and by a penalty for very different lengths, and adjacent matches add a
    small bonus.
    """
    if not input_words or not candidate_words:
        return 0.0

    total = 0.0
    possible = 0.0
    used: set[int] = set()
    for position, word in enumerate(input_words):
        weight = word_weight(word, position, len(input_words))
        possible += weight
        best_score = 0.0
        best_index = -1
        for index, candidate in enumerate(candidate_words):
            if index in used:
                continue
            score = word_match_score(word, candidate)
            if score > WORD_MATCH_THRESHOLD and score > best_score:
                best_score = score
                best_index = index
        if best_index != -1:
            used.add(best_index)
            total += best_score * weight

    base = total / possible
    score = (
        base
        * coverage_score(len(input_words), len(candidate_words), len(used))
        * length_penalty(len(input_words), len(candidate_words))
        + order_bonus(used)
    )
    return max(0.0, min(1.0, score))
