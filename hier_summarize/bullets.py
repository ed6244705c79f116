"""Bullet normalization, near-duplicate removal and quality filtering."""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

BULLET_MARKER = "- "
MIN_BULLET_CHARS = 5  # shorter bullets are dropped by dedupe_bullets

SIMILARITY_THRESHOLD = 0.85
PREFIX_CHARS = 20

_MARKER = re.compile(r"^[-•*]\s*")
_LINE_BREAK = re.compile(r"\r?\n")
_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")

_UNITS = (
    r"(?:milliseconds?|ms|seconds?|secs?|minutes?|mins?|hours?|hrs?|days?"
    r"|weeks?|percent|%|bytes?|kb|mb|gb)"
)
_SELF_REFERENTIAL_NUMBER = re.compile(
    rf"\b(\d+(?:\.\d+)?)\s*{_UNITS}?\s+(?:to|from|improved to|changed to)\s+\1\s*{_UNITS}(?!\w)",
    re.IGNORECASE,
)
_TRUNCATED = re.compile(r"\w\s*$")
_VAGUE_PASSIVE = re.compile(
    r"^(the|a|an)\s+(app|application|system|software|tool|site|page|it)\s+"
    r"(is|are|was|were|being)\s+(?:being\s+)?(used|run|controlled|operated|analyzed|doing)",
    re.IGNORECASE,
)
_AGENT_CLAUSE = re.compile(r"\b(by|with|for|to|through)\b", re.IGNORECASE)
_FILLER = re.compile(r"\b(you know|youknow|like|so|well|um|uh)\b", re.IGNORECASE)
_HEDGE = re.compile(
    r"\b(seems|appears|looks like|probably|maybe|might|could|doing a lot of stuff|happening)\b",
    re.IGNORECASE,
)
_CONCRETE = re.compile(
    r"\b(specific|concrete|measured|milliseconds|percent|seconds|improved|added|modified)\b",
    re.IGNORECASE,
)
_RESULT_KEYWORD = re.compile(
    r"\b(improved|added|modified|analyzed|identified|found|shows|reveals|demonstrates|measured)\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class QualityProfile:
    """Thresholds for filter_bullets."""

    min_chars: int
    min_unique_ratio: float
    passive_max_words: int | None = None  # None checks every line
    reject_hedging: bool = False


CHUNK_PROFILE = QualityProfile(min_chars=15, min_unique_ratio=0.5)
FINAL_PROFILE = QualityProfile(
    min_chars=20,
    min_unique_ratio=0.55,
    passive_max_words=8,
    reject_hedging=True,
)


def strip_marker(line: str) -> str:
    """Remove a leading bullet marker and surrounding whitespace."""
    return _MARKER.sub("", line.strip()).strip()


def split_lines(block: str) -> list[str]:
    """Split a block on line breaks, dropping blank lines."""
    return [line.strip() for line in _LINE_BREAK.split(block) if line.strip()]


def wrap_bullets(text: str) -> str:
    """Force every non-empty line to start with the bullet marker."""
    bullets = []
    for line in split_lines(text):
        body = strip_marker(line)
        if body:
            bullets.append(f"{BULLET_MARKER}{body}")
    return "\n".join(bullets)


def bullet_key(line: str) -> str:
    """Comparison key: case-folded, punctuation stripped, whitespace collapsed."""
    key = _PUNCTUATION.sub("", strip_marker(line).casefold())
    return _WHITESPACE.sub(" ", key).strip()


def is_near_duplicate(key: str, other: str) -> bool:
    """
    Check whether two bullet keys describe the same fact.

    Keys match when identical, or when their lengths are within the
    similarity threshold and one contains the other's leading characters.
    """
    if key == other:
        return True
    if not key or not other:
        return False
    similarity = min(len(key), len(other)) / max(len(key), len(other))
    if similarity <= SIMILARITY_THRESHOLD:
        return False
    return other[:PREFIX_CHARS] in key or key[:PREFIX_CHARS] in other


def dedupe_bullets(block: str) -> str:
    """
    Remove near-duplicate and too-short bullets, keeping first occurrences.

    Returns:
        Bullet block with the uniform marker
    """
    seen: list[str] = []
    out: list[str] = []
    for line in split_lines(block):
        body = strip_marker(line)
        if len(body) < MIN_BULLET_CHARS:
            continue
        key = bullet_key(body)
        if any(is_near_duplicate(key, existing) for existing in seen):
            continue
        seen.append(key)
        out.append(f"{BULLET_MARKER}{body}")
    return "\n".join(out)


def normalize(text: str) -> str:
    """Canonicalize raw generated text into a deduplicated bullet block."""
    return dedupe_bullets(wrap_bullets(text))


def is_self_referential_number(line: str) -> bool:
    """Detect contradictions like '280 ms to 280 ms'."""
    return _SELF_REFERENTIAL_NUMBER.search(line) is not None


def rejection_reason(line: str, profile: QualityProfile = CHUNK_PROFILE) -> str | None:
    """
    Return the name of the first quality check a bullet fails.

    Args:
        line: Bullet with or without its marker
        profile: Thresholds to apply

    Returns:
        Check name, or None when the bullet passes
    """
    body = strip_marker(line)
    if len(body) < profile.min_chars:
        return "too-short"
    if _TRUNCATED.search(body):
        return "truncated"
    if is_self_referential_number(body):
        return "self-referential-number"

    words = body.lower().split()
    if len(words) > 5 and len(set(words)) < len(words) * profile.min_unique_ratio:
        return "repetitive"

    if profile.passive_max_words is None or len(words) < profile.passive_max_words:
        if _VAGUE_PASSIVE.search(body) and not _AGENT_CLAUSE.search(body):
            return "vague-passive"

    if len(_FILLER.findall(body)) > 1:
        return "filler"
    if profile.reject_hedging and _HEDGE.search(body) and not _CONCRETE.search(body):
        return "hedging"
    return None


def filter_bullets(block: str, profile: QualityProfile = CHUNK_PROFILE) -> str:
    """Drop bullets that fail any quality check."""
    kept = []
    for line in split_lines(block):
        reason = rejection_reason(line, profile)
        if reason:
            logger.debug("Dropped bullet (%s): %s", reason, line)
            continue
        kept.append(line)
    return "\n".join(kept)


def score_bullet(line: str) -> int:
    """Rank bullets by result keywords first, then by length."""
    return (10 if _RESULT_KEYWORD.search(line) else 0) + len(line)
