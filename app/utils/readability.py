"""
Flesch Reading Ease scoring
"""
import logging
import re
from typing import Any, Dict

logger = logging.getLogger(__name__)

VOWELS = "aeiouy"

_SENTENCE_SPLIT = re.compile(r"[.!?]+")

# (minimum score, label), checked top-down
READABILITY_LEVELS = [
    (90, "Very Easy"),
    (80, "Easy"),
    (70, "Fairly Easy"),
    (60, "Standard"),
    (50, "Fairly Difficult"),
    (30, "Difficult"),
]


def count_syllables(word: str) -> int:
    """Count vowel groups, minus a silent trailing 'e'; never less than one"""
    word = word.lower()
    if len(word) <= 3:
        return 1

    syllables = 0
    previous_was_vowel = False
    for char in word:
        is_vowel = char in VOWELS
        if is_vowel and not previous_was_vowel:
            syllables += 1
        previous_was_vowel = is_vowel

    if word.endswith("e"):
        syllables -= 1

    return max(1, syllables)


def readability_level(score: float) -> str:
    for minimum, label in READABILITY_LEVELS:
        if score >= minimum:
            return label
    return "Very Difficult"


def flesch_reading_ease(words: int, sentences: int, syllables: int) -> float:
    return 206.835 - 1.015 * (words / sentences) - 84.6 * (syllables / words)


def calculate_readability_score(content: str) -> Dict[str, Any]:
    """
    Score content on the Flesch Reading Ease scale (clamped to 0-100)

    Returns the score, its level label and the counts it was derived from.
    Content with no words or sentences yields a neutral 50 / "Unknown".
    """
    sentences = [s for s in _SENTENCE_SPLIT.split(content or "") if s.strip()]
    words = (content or "").split()

    if not sentences or not words:
        logger.warning("Readability requested for content without words or sentences")
        return {
            "score": 50,
            "level": "Unknown",
            "error": "Content has no measurable words or sentences"
        }

    syllables = sum(count_syllables(word) for word in words)
    avg_sentence_length = len(words) / len(sentences)
    avg_syllables_per_word = syllables / len(words)
    score = flesch_reading_ease(len(words), len(sentences), syllables)

    return {
        "score": max(0.0, min(100.0, score)),
        "level": readability_level(score),
        "stats": {
            "sentences": len(sentences),
            "words": len(words),
            "syllables": syllables,
            "avg_sentence_length": round(avg_sentence_length, 1),
            "avg_syllables_per_word": round(avg_syllables_per_word, 1)
        }
    }
