"""
Text helpers shared by the post model and routes: slugs, tags, word counts
"""
import math
import re
from typing import Iterable, List, Optional, Union

SLUG_MAX_LENGTH = 100
WORDS_PER_MINUTE = 200

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")
_HTML_TAG = re.compile(r"<[^>]*>")


def generate_slug(title: str) -> str:
    """Lowercase, collapse non-alphanumerics to '-', trim dashes, cap at 100 chars"""
    slug = _NON_SLUG_CHARS.sub("-", title.lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH]


def unique_slug(db, title: str, exclude_post_id: Optional[int] = None) -> str:
    """
    Build a slug for the title that no other post uses yet,
    appending -1, -2, ... on collisions
    """
    from models import Post

    base_slug = generate_slug(title) or "post"
    slug = base_slug
    counter = 1

    while True:
        query = db.query(Post.id).filter(Post.slug == slug)
        if exclude_post_id is not None:
            query = query.filter(Post.id != exclude_post_id)
        if query.first() is None:
            return slug
        slug = f"{base_slug}-{counter}"
        counter += 1


def normalize_tags(tags: Union[str, Iterable[str], None]) -> List[str]:
    """Accept a comma separated string or a list; trim, lowercase, drop blanks"""
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")

    normalized = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        tag = tag.strip().lower()
        if tag and tag not in normalized:
            normalized.append(tag)
    return normalized


def strip_html(text: str) -> str:
    return _HTML_TAG.sub("", text or "")


def count_words(text: str) -> int:
    return len((text or "").split())


def reading_time(word_count: int) -> int:
    """Minutes to read at 200 words per minute, rounded up"""
    return math.ceil(word_count / WORDS_PER_MINUTE)
