"""Tests for large-content helpers."""

from utils.content import (
    MAX_CONTENT_SIZE, chunk_content, compress_content, estimate_content_size, extract_images,
    format_content_size, optimize_content, reassemble_chunks, restore_images, validate_content_size
)


class TestChunking:
    def test_small_content_is_one_chunk(self):
        chunks = chunk_content("short", max_chunk_size=100)
        assert chunks == [{"id": "1", "content": "short", "order": 1, "size": 5}]

    def test_breaks_after_closing_tag(self):
        chunks = chunk_content("<p>ab</p><p>cd</p>", max_chunk_size=9)
        assert [c["content"] for c in chunks] == ["<p>ab</p>", "<p>cd</p>"]

    def test_breaks_after_sentence(self):
        chunks = chunk_content("aaaa. bbbb. cccc.", max_chunk_size=8)
        assert [c["content"] for c in chunks] == ["aaaa.", " bbbb.", " cccc."]
        assert all(c["size"] <= 8 for c in chunks)

    def test_reassemble_sorts_by_order(self):
        content = "aaaa. bbbb. cccc."
        chunks = chunk_content(content, max_chunk_size=8)
        assert reassemble_chunks(list(reversed(chunks))) == content


class TestCompression:
    def test_estimate_size_is_utf8_bytes(self):
        assert estimate_content_size("abc") == 3
        assert estimate_content_size("é") == 2

    def test_compress_content(self):
        html = "<p>Hi</p>   <p> </p>\n<div>  </div><p>a    b</p>"
        assert compress_content(html) == "<p>Hi</p><p>a b</p>"

    def test_optimize_content(self):
        result = optimize_content("<p>a</p>   <p>b</p>")
        assert result["optimized"] == "<p>a</p><p>b</p>"
        assert result["original_size"] == 19
        assert result["optimized_size"] == 16
        assert result["savings"] == 16

    def test_optimize_empty(self):
        assert optimize_content("")["savings"] == 0


class TestImages:
    def test_extract_and_restore(self):
        html = '<p><img src="a.png" alt="A"></p>'
        extracted = extract_images(html)
        assert extracted["content"] == '<p><img-placeholder id="IMG_1" alt="A" /></p>'
        assert extracted["images"] == [{"id": "IMG_1", "src": "a.png", "alt": "A"}]

        restored = restore_images(extracted["content"], extracted["images"])
        assert restored == '<p><img src="a.png" alt="A" style="max-width: 100%; height: auto;" /></p>'

    def test_numbering(self):
        html = '<img src="1.png" alt=""><img src="2.png" alt="two">'
        images = extract_images(html)["images"]
        assert [i["id"] for i in images] == ["IMG_1", "IMG_2"]


class TestValidation:
    def test_small_content_is_valid(self):
        assert validate_content_size("<p>hello</p>") == {"valid": True, "size": 12, "recommendations": []}

    def test_many_images(self):
        report = validate_content_size("<img>" * 21)
        assert report["valid"]
        assert "Many images detected. Consider using thumbnails or galleries." in report["recommendations"]

    def test_too_large(self):
        report = validate_content_size("a" * (MAX_CONTENT_SIZE + 1))
        assert not report["valid"]
        assert "Content is too large. Consider splitting into multiple posts." in report["recommendations"]
        assert "Large content detected. Consider compressing images." in report["recommendations"]


class TestFormatSize:
    def test_units(self):
        assert format_content_size(0) == "0 Bytes"
        assert format_content_size(512) == "512 Bytes"
        assert format_content_size(1024) == "1 KB"
        assert format_content_size(1536) == "1.5 KB"
        assert format_content_size(1024 * 1024) == "1 MB"
