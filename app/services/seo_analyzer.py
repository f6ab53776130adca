"""
Heuristic SEO scoring for a draft post

Scores title, body length, excerpt, tags and readability, and produces
human readable suggestions for each check.
"""
import re
from collections import Counter
from typing import Any, Dict, List

from utils.readability import calculate_readability_score
from utils.text import count_words, reading_time, strip_html

TITLE_RANGE = (30, 60)
EXCERPT_RANGE = (120, 160)
MIN_WORDS = 300
LONG_FORM_WORDS = 2000
MAX_TAGS = 10
KEYWORD_DENSITY_RANGE = (0.5, 3.0)


def extract_keywords(text: str, limit: int = 10) -> List[str]:
    """Most frequent words longer than three characters"""
    words = re.sub(r"[^\w\s]", "", text.lower()).split()
    frequency = Counter(word for word in words if len(word) > 3)
    return [word for word, _ in frequency.most_common(limit)]


def _suggestion(kind: str, message: str) -> Dict[str, str]:
    return {"type": kind, "message": message}


def generate_seo_suggestions(
    title: str, content: str, excerpt: str, tags: List[str], word_count: int, keywords: List[str]
) -> List[Dict[str, str]]:
    suggestions = []

    if len(title) < TITLE_RANGE[0]:
        suggestions.append(_suggestion("warning", "Title is too short. Aim for 30-60 characters for better SEO."))
    elif len(title) > TITLE_RANGE[1]:
        suggestions.append(_suggestion(
            "warning", "Title is too long. Keep it under 60 characters for better search visibility."
        ))
    else:
        suggestions.append(_suggestion("success", "Title length is optimal for SEO."))

    if word_count < MIN_WORDS:
        suggestions.append(_suggestion(
            "error", "Content is too short. Aim for at least 300 words for better SEO ranking."
        ))
    elif word_count > LONG_FORM_WORDS:
        suggestions.append(_suggestion(
            "success", "Excellent content length! Long-form content performs well in search."
        ))
    else:
        suggestions.append(_suggestion("success", "Good content length for SEO."))

    if not excerpt or len(excerpt) < EXCERPT_RANGE[0]:
        suggestions.append(_suggestion(
            "warning", "Add a meta description (excerpt) of 120-160 characters for better search snippets."
        ))
    elif len(excerpt) > EXCERPT_RANGE[1]:
        suggestions.append(_suggestion("warning", "Meta description is too long. Keep it under 160 characters."))
    else:
        suggestions.append(_suggestion("success", "Meta description length is perfect."))

    if not tags:
        suggestions.append(_suggestion("warning", "Add relevant tags to improve content discoverability."))
    elif len(tags) > MAX_TAGS:
        suggestions.append(_suggestion("warning", "Too many tags. Focus on 3-5 most relevant tags."))
    else:
        suggestions.append(_suggestion("success", "Good use of tags for categorization."))

    if keywords and word_count:
        top_keyword = keywords[0]
        occurrences = len(re.findall(re.escape(top_keyword), content.lower()))
        density = occurrences / word_count * 100

        if density < KEYWORD_DENSITY_RANGE[0]:
            suggestions.append(_suggestion(
                "warning",
                f'Consider using your main keyword "{top_keyword}" more frequently '
                f"(current density: {density:.1f}%)."
            ))
        elif density > KEYWORD_DENSITY_RANGE[1]:
            suggestions.append(_suggestion(
                "warning",
                f'Keyword "{top_keyword}" might be overused ({density:.1f}%). Aim for 1-3% density.'
            ))
        else:
            suggestions.append(_suggestion(
                "success", f'Good keyword density for "{top_keyword}" ({density:.1f}%).'
            ))

    return suggestions


def calculate_seo_score(title: str, excerpt: str, tags: List[str], word_count: int, readability: float) -> int:
    score = 0

    # Title (20)
    if TITLE_RANGE[0] <= len(title) <= TITLE_RANGE[1]:
        score += 20
    elif title:
        score += 10

    # Content length (25)
    if word_count >= MIN_WORDS:
        score += 25
    elif word_count >= 150:
        score += 15
    elif word_count > 0:
        score += 5

    # Excerpt (15)
    if EXCERPT_RANGE[0] <= len(excerpt) <= EXCERPT_RANGE[1]:
        score += 15
    elif excerpt:
        score += 8

    # Tags (10)
    if 3 <= len(tags) <= 5:
        score += 10
    elif tags:
        score += 5

    # Readability (30)
    if readability >= 60:
        score += 30
    elif readability >= 30:
        score += 20
    else:
        score += 10

    return min(100, score)


def analyze_content(title: str, content: str, excerpt: str = "", tags: List[str] = None) -> Dict[str, Any]:
    tags = tags or []
    excerpt = excerpt or ""
    plain_text = strip_html(content)
    word_count = count_words(plain_text)

    readability = calculate_readability_score(plain_text)
    keywords = extract_keywords(plain_text, 10)

    return {
        "readability_score": round(readability["score"]),
        "readability_grade": readability["level"],
        "word_count": word_count,
        "reading_time": reading_time(word_count),
        "keywords": keywords,
        "suggestions": generate_seo_suggestions(title, plain_text, excerpt, tags, word_count, keywords),
        "seo_score": calculate_seo_score(title, excerpt, tags, word_count, readability["score"])
    }
