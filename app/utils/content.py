"""
Helpers for large post bodies: chunking, whitespace compression,
image extraction and size validation
"""
import re
from typing import Any, Dict, List

DEFAULT_CHUNK_SIZE = 1024 * 1024
MAX_CONTENT_SIZE = 16 * 1024 * 1024
LARGE_CONTENT_WARNING = 5 * 1024 * 1024
MAX_RECOMMENDED_IMAGES = 20

_IMG_TAG = re.compile(r'<img[^>]+src="([^"]+)"[^>]*alt="([^"]*)"[^>]*>', re.IGNORECASE)
_LARGE_BASE64_IMAGE = re.compile(r"data:image/[^;]+;base64,[A-Za-z0-9+/]{1000000,}")


def chunk_content(content: str, max_chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[Dict[str, Any]]:
    """
    Split content into ordered chunks of at most max_chunk_size characters,
    preferring to break after a closing '>', then after a '.', then at a space
    """
    if len(content) <= max_chunk_size:
        return [{"id": "1", "content": content, "order": 1, "size": len(content)}]

    chunks = []
    position = 0
    index = 1

    while position < len(content):
        chunk_end = min(position + max_chunk_size, len(content))

        if chunk_end < len(content):
            tag_end = content.rfind(">", 0, chunk_end)
            tag_start = content.rfind("<", 0, chunk_end)

            if tag_end > tag_start and tag_end > position:
                chunk_end = tag_end + 1
            else:
                sentence_end = content.rfind(".", 0, chunk_end)
                if sentence_end > position:
                    chunk_end = sentence_end + 1
                else:
                    word_end = content.rfind(" ", 0, chunk_end)
                    if word_end > position:
                        chunk_end = word_end

        piece = content[position:chunk_end]
        chunks.append({"id": str(index), "content": piece, "order": index, "size": len(piece)})
        position = chunk_end
        index += 1

    return chunks


def reassemble_chunks(chunks: List[Dict[str, Any]]) -> str:
    return "".join(chunk["content"] for chunk in sorted(chunks, key=lambda c: c["order"]))


def estimate_content_size(content: str) -> int:
    """Size in bytes once UTF-8 encoded"""
    return len(content.encode("utf-8"))


def compress_content(content: str) -> str:
    content = re.sub(r">\s+<", "><", content)
    content = re.sub(r">\s+", ">", content)
    content = re.sub(r"\s+<", "<", content)
    content = re.sub(r"\s{2,}", " ", content)
    content = re.sub(r"<p[^>]*>\s*</p>", "", content, flags=re.IGNORECASE)
    content = re.sub(r"<div[^>]*>\s*</div>", "", content, flags=re.IGNORECASE)
    return content


def extract_images(content: str) -> Dict[str, Any]:
    """Replace <img> tags with numbered placeholders, returning both"""
    images = []

    def _replace(match):
        image_id = f"IMG_{len(images) + 1}"
        src, alt = match.group(1), match.group(2)
        images.append({"id": image_id, "src": src, "alt": alt})
        return f'<img-placeholder id="{image_id}" alt="{alt}" />'

    return {"content": _IMG_TAG.sub(_replace, content), "images": images}


def restore_images(content: str, images: List[Dict[str, str]]) -> str:
    for image in images:
        placeholder = f'<img-placeholder id="{image["id"]}" alt="{image["alt"]}" />'
        img_tag = f'<img src="{image["src"]}" alt="{image["alt"]}" style="max-width: 100%; height: auto;" />'
        content = content.replace(placeholder, img_tag, 1)
    return content


def validate_content_size(content: str) -> Dict[str, Any]:
    size = estimate_content_size(content)
    recommendations = []

    if size > MAX_CONTENT_SIZE:
        recommendations.append("Content is too large. Consider splitting into multiple posts.")

    if size > LARGE_CONTENT_WARNING:
        recommendations.append("Large content detected. Consider compressing images.")

    image_count = len(re.findall(r"<img", content, flags=re.IGNORECASE))
    if image_count > MAX_RECOMMENDED_IMAGES:
        recommendations.append("Many images detected. Consider using thumbnails or galleries.")

    if _LARGE_BASE64_IMAGE.search(content):
        recommendations.append("Large uncompressed images found. Use image compression.")

    return {
        "valid": size <= MAX_CONTENT_SIZE,
        "size": size,
        "recommendations": recommendations
    }


def format_content_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(units) - 1:
        exponent += 1
    value = round(size / (1024 ** exponent), 2)
    return f"{value:g} {units[exponent]}"


def optimize_content(content: str) -> Dict[str, Any]:
    original_size = estimate_content_size(content)
    compressed = compress_content(content)
    optimized_size = estimate_content_size(compressed)
    savings = round((original_size - optimized_size) / original_size * 100) if original_size else 0

    return {
        "optimized": compressed,
        "original_size": original_size,
        "optimized_size": optimized_size,
        "savings": savings
    }
