"""
AI writing assistant backed by hosted completion APIs

Generation goes to Groq first, falls back to the Hugging Face inference
API, and finally to a local markdown template, so callers always get
content back.
"""
import difflib
import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy.orm import Session

from config import settings
from models import Post
from utils.readability import calculate_readability_score
from utils.text import strip_html

logger = logging.getLogger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
HF_BASE_URL = "https://api-inference.huggingface.co/models"

DEFAULT_GROQ_MODEL = "llama3-8b-8192"
DEFAULT_HF_MODEL = "microsoft/DialoGPT-medium"

SYSTEM_PROMPT = (
    "You are a professional blog writer and content creator. Create engaging, "
    "well-structured, and SEO-friendly blog content. Use proper markdown formatting."
)

# Plagiarism heuristic
PLAGIARISM_SENTENCE_MIN_LENGTH = 20
PLAGIARISM_SENTENCES_CHECKED = 5
PLAGIARISM_SIMILARITY_THRESHOLD = 0.7

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


class AIProviderError(Exception):
    """A hosted provider could not produce a completion"""


class AIService:
    """Content generation and analysis helpers for the editor"""

    def __init__(
        self,
        groq_api_key: Optional[str] = None,
        huggingface_api_key: Optional[str] = None,
        timeout: float = 30.0
    ):
        self.groq_api_key = groq_api_key
        self.huggingface_api_key = huggingface_api_key
        self.timeout = timeout

    async def generate_content(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Generate blog content with Groq, falling back to Hugging Face"""
        options = options or {}
        max_tokens = options.get("max_tokens") or 1000
        temperature = options.get("temperature", 0.7)
        model = options.get("model") or DEFAULT_GROQ_MODEL

        try:
            if not self.groq_api_key:
                raise AIProviderError("Groq API key not configured")

            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{GROQ_BASE_URL}/chat/completions",
                    json={
                        "model": model,
                        "messages": [
                            {"role": "system", "content": SYSTEM_PROMPT},
                            {"role": "user", "content": prompt}
                        ],
                        "max_tokens": max_tokens,
                        "temperature": temperature,
                        "stream": False
                    },
                    headers={"Authorization": f"Bearer {self.groq_api_key}"}
                )
                response.raise_for_status()
                payload = response.json()

            return {
                "success": True,
                "content": payload["choices"][0]["message"]["content"],
                "model": model,
                "provider": "groq",
                "usage": payload.get("usage")
            }

        except (AIProviderError, httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            logger.error(f"Groq API error: {str(e)}")
            return await self.generate_content_with_huggingface(prompt, options)

    async def generate_content_with_huggingface(
        self, prompt: str, options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Second provider; falls back to the local template on failure"""
        options = options or {}
        max_tokens = min(options.get("max_tokens") or 500, 500)
        model = DEFAULT_HF_MODEL

        try:
            if not self.huggingface_api_key:
                raise AIProviderError("Hugging Face API key not configured")

            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{HF_BASE_URL}/{model}",
                    json={
                        "inputs": prompt,
                        "parameters": {
                            "max_new_tokens": max_tokens,
                            "temperature": 0.7,
                            "return_full_text": False
                        }
                    },
                    headers={"Authorization": f"Bearer {self.huggingface_api_key}"}
                )
                response.raise_for_status()
                payload = response.json()

            return {
                "success": True,
                "content": payload[0]["generated_text"],
                "model": model,
                "provider": "huggingface"
            }

        except (AIProviderError, httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Hugging Face API error: {str(e)}")
            return self.generate_local_content(prompt)

    def generate_local_content(self, prompt: str) -> Dict[str, Any]:
        """Static markdown template used when no provider is reachable"""
        content = (
            f"# Blog Post: {prompt}\n\n"
            "## Introduction\n"
            f"This is an introduction to the topic of {prompt}. Here we'll explore the key "
            "concepts and provide valuable insights.\n\n"
            "## Main Content\n"
            f"The main content would go here, covering the essential points about {prompt}.\n\n"
            "## Conclusion\n"
            f"In conclusion, {prompt} is an important topic that deserves attention and "
            "further exploration."
        )
        return {
            "success": True,
            "content": content,
            "model": "local-template",
            "provider": "local"
        }

    async def generate_seo_suggestions(self, content: str, title: Optional[str] = None) -> Dict[str, Any]:
        prompt = (
            "Analyze the following blog post and provide SEO suggestions:\n\n"
            f"Title: {title or ''}\n"
            f"Content: {content[:1000]}...\n\n"
            "Please provide:\n"
            "1. Meta description (150-160 characters)\n"
            "2. 5-10 relevant keywords\n"
            "3. SEO title suggestions (under 60 characters)\n"
            "4. Content improvement suggestions\n"
            "5. Readability score and suggestions\n\n"
            "Format the response as JSON."
        )

        try:
            result = await self.generate_content(prompt, {"max_tokens": 500})
            try:
                suggestions = json.loads(result["content"])
            except (json.JSONDecodeError, TypeError):
                suggestions = {"raw_suggestions": result["content"]}
            return {"success": True, "suggestions": suggestions}
        except Exception as e:
            logger.error(f"SEO generation error: {str(e)}")
            return {"success": False, "error": str(e)}

    async def improve_readability(self, content: str) -> Dict[str, Any]:
        prompt = (
            "Improve the readability of the following content while maintaining its meaning "
            "and key points:\n\n"
            f"{content}\n\n"
            "Make it:\n"
            "- More engaging and conversational\n"
            "- Easier to read (shorter sentences, simpler words where appropriate)\n"
            "- Better structured with clear paragraphs\n"
            "- Include transition words for better flow"
        )

        try:
            result = await self.generate_content(prompt, {"max_tokens": 1500})
            return {"success": True, "improved_content": result["content"]}
        except Exception as e:
            logger.error(f"Readability improvement error: {str(e)}")
            return {"success": False, "error": str(e)}

    async def generate_outline(self, topic: str, target_audience: str = "general") -> Dict[str, Any]:
        prompt = (
            f'Create a detailed blog post outline for the topic: "{topic}"\n'
            f"Target audience: {target_audience}\n\n"
            "Include:\n"
            "1. Compelling title suggestions (3-5 options)\n"
            "2. Introduction hook\n"
            "3. Main sections with subsections\n"
            "4. Key points to cover in each section\n"
            "5. Conclusion summary\n"
            "6. Call-to-action suggestions\n\n"
            "Format as a structured outline."
        )

        try:
            result = await self.generate_content(prompt, {"max_tokens": 800})
            return {"success": True, "outline": result["content"]}
        except Exception as e:
            logger.error(f"Outline generation error: {str(e)}")
            return {"success": False, "error": str(e)}

    def check_plagiarism(self, db: Session, content: str, exclude_post_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Compare the opening sentences of content against sentences of stored
        posts. A sentence at or above the similarity threshold is suspicious
        and lists the slugs of the posts it matched.
        """
        sentences = _sentences(strip_html(content))
        candidates = [s for s in sentences if len(s) > PLAGIARISM_SENTENCE_MIN_LENGTH]
        candidates = candidates[:PLAGIARISM_SENTENCES_CHECKED]

        query = db.query(Post.id, Post.slug, Post.content)
        if exclude_post_id is not None:
            query = query.filter(Post.id != exclude_post_id)
        corpus = [
            (slug, _sentences(strip_html(body)))
            for _, slug, body in query.all()
        ]

        suspicious_sentences = []
        for sentence in candidates:
            best_similarity = 0.0
            sources: List[str] = []
            for slug, stored_sentences in corpus:
                similarity = _best_match(sentence, stored_sentences)
                if similarity >= PLAGIARISM_SIMILARITY_THRESHOLD:
                    sources.append(slug)
                    best_similarity = max(best_similarity, similarity)

            if sources:
                suspicious_sentences.append({
                    "text": sentence,
                    "similarity": round(best_similarity, 2),
                    "sources": sources
                })

        return {
            "success": True,
            "overall_score": 0.8 if suspicious_sentences else 0.1,
            "suspicious_sentences": suspicious_sentences,
            "is_original": not suspicious_sentences,
            "sentences_checked": len(candidates)
        }

    def calculate_readability_score(self, content: str) -> Dict[str, Any]:
        return calculate_readability_score(content)


def _sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text) if s.strip()]


def _best_match(sentence: str, candidates: List[str]) -> float:
    needle = sentence.lower()
    best = 0.0
    for candidate in candidates:
        ratio = difflib.SequenceMatcher(None, needle, candidate.lower()).ratio()
        if ratio > best:
            best = ratio
    return best


# Global service instance
ai_service = AIService(
    groq_api_key=settings.groq_api_key,
    huggingface_api_key=settings.huggingface_api_key,
    timeout=settings.ai_request_timeout
)


def get_ai_service() -> AIService:
    return ai_service
