"""Tests for the AI assistant endpoints (no provider keys, so the local template answers)."""

import pytest

from conftest import make_post


class TestGenerateContent:
    def test_local_fallback(self, client, auth_headers):
        response = client.post("/api/ai/generate-content", json={"prompt": "Remote work"}, headers=auth_headers)
        assert response.status_code == 200

        body = response.json()
        assert body["data"]["provider"] == "local"
        assert body["data"]["model"] == "local-template"
        assert body["data"]["content"].startswith("# Blog Post: Remote work")

        content_length = len(body["data"]["content"])
        assert body["usage"] == {
            "prompt_tokens": 11,
            "completion_tokens": content_length,
            "total_tokens": 11 + content_length
        }

    @pytest.mark.parametrize("prompt, message", [
        ("", "Prompt is required"),
        ("   ", "Prompt is required"),
        ("x" * 2001, "Prompt is too long (max 2,000 characters)"),
    ])
    def test_prompt_validation(self, client, auth_headers, prompt, message):
        response = client.post("/api/ai/generate-content", json={"prompt": prompt}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == message

    def test_requires_auth(self, client, db):
        assert client.post("/api/ai/generate-content", json={"prompt": "hi"}).status_code == 401


class TestAssistantEndpoints:
    def test_outline(self, client, auth_headers):
        response = client.post("/api/ai/generate-outline", json={"topic": "Gardening"}, headers=auth_headers)
        assert response.json()["data"]["success"] is True
        assert "outline" in response.json()["data"]

    def test_outline_requires_topic(self, client, auth_headers):
        response = client.post("/api/ai/generate-outline", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Topic is required"

    def test_seo_suggestions_fall_back_to_raw_text(self, client, auth_headers):
        response = client.post("/api/ai/seo-suggestions", json={"content": "Some text", "title": "T"},
                               headers=auth_headers)
        assert "raw_suggestions" in response.json()["data"]["suggestions"]

    def test_seo_suggestions_length_limit(self, client, auth_headers):
        response = client.post("/api/ai/seo-suggestions", json={"content": "x" * 10001}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Content is too long for analysis (max 10,000 characters)"

    def test_improve_readability_length_limit(self, client, auth_headers):
        response = client.post("/api/ai/improve-readability", json={"content": "x" * 5001}, headers=auth_headers)
        assert response.status_code == 400

    def test_readability_score(self, client, auth_headers):
        response = client.post("/api/ai/readability-score", json={"content": "The cat sat on the mat."},
                               headers=auth_headers)
        assert response.json()["data"]["level"] == "Very Easy"

    def test_seo_analysis(self, client, auth_headers):
        response = client.post("/api/ai/seo-analysis", json={
            "title": "A practical guide to writing better blog posts",
            "content": "Short body.",
            "tags": ["writing"]
        }, headers=auth_headers)
        data = response.json()["data"]
        assert data["word_count"] == 2
        assert 0 <= data["seo_score"] <= 100
        assert {s["type"] for s in data["suggestions"]} <= {"success", "warning", "error"}

    def test_models_and_usage(self, client, auth_headers):
        models = client.get("/api/ai/models", headers=auth_headers).json()["data"]
        assert [m["id"] for m in models] == ["llama3-8b-8192", "microsoft/DialoGPT-medium", "gpt-3.5-turbo"]

        usage = client.get("/api/ai/usage", headers=auth_headers).json()["data"]
        assert usage["current_month"]["limit"] == 50000


class TestPlagiarism:
    def test_flags_copied_sentences(self, client, db, user, auth_headers):
        make_post(db, user, title="Source", content="The quick brown fox jumps over the lazy dog every morning.")

        response = client.post("/api/ai/check-plagiarism", json={
            "content": "The quick brown fox jumps over the lazy dog every morning. Entirely new words here today."
        }, headers=auth_headers)
        data = response.json()["data"]
        assert data["is_original"] is False
        assert data["overall_score"] == 0.8
        assert data["suspicious_sentences"][0]["sources"] == ["source"]

    def test_original_content(self, client, db, auth_headers):
        response = client.post("/api/ai/check-plagiarism", json={
            "content": "Nothing in the database resembles this sentence at all."
        }, headers=auth_headers)
        data = response.json()["data"]
        assert data["is_original"] is True
        assert data["overall_score"] == 0.1


class TestRateLimit:
    def test_limit_per_window(self, client, auth_headers):
        for _ in range(20):
            assert client.get("/api/ai/models", headers=auth_headers).status_code == 200

        response = client.get("/api/ai/models", headers=auth_headers)
        assert response.status_code == 429
        assert response.json() == {"success": False, "message": "Too many AI requests, please try again later."}
        assert response.headers["X-RateLimit-Remaining"] == "0"
