# routers/ai.py
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from schemas.ai import (
    GenerateContentRequest, GenerateOutlineRequest, ContentRequest, SEOAnalysisRequest,
    GeneratedContentResponse, TokenUsage, SEOAnalysis, AIModelInfo
)
from schemas.common import ApiResponse
from services.ai_service import AIService, get_ai_service
from services.seo_analyzer import analyze_content
from utils.auth import CurrentUser
from utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

ai_rate_limiter = RateLimiter(
    limit=settings.ai_rate_limit,
    window=settings.ai_rate_window_seconds,
    message="Too many AI requests, please try again later."
)

router = APIRouter(prefix="/ai", tags=["ai"], dependencies=[Depends(ai_rate_limiter)])

MAX_PROMPT_LENGTH = 2000
MAX_SEO_CONTENT_LENGTH = 10000
MAX_REWRITE_CONTENT_LENGTH = 5000

AI_MODELS = [
    AIModelInfo(
        id="llama3-8b-8192",
        name="Llama 3 8B",
        provider="Groq",
        description="Fast and efficient model for content generation",
        max_tokens=8192,
        features=["content-generation", "seo-suggestions", "readability"],
        free=True,
        speed="very-fast"
    ),
    AIModelInfo(
        id="microsoft/DialoGPT-medium",
        name="DialoGPT Medium",
        provider="Hugging Face",
        description="Good for conversational content and dialogue",
        max_tokens=1024,
        features=["content-generation"],
        free=True,
        speed="medium"
    ),
    AIModelInfo(
        id="gpt-3.5-turbo",
        name="GPT-3.5 Turbo",
        provider="OpenAI",
        description="High-quality content generation with excellent understanding",
        max_tokens=4096,
        features=["content-generation", "seo-suggestions", "readability", "plagiarism-check"],
        free=False,
        speed="fast"
    ),
]


def _require_text(value: Optional[str], name: str, max_length: Optional[int] = None, purpose: str = "") -> str:
    if not value or not value.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{name} is required"
        )
    if max_length is not None and len(value) > max_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{name} is too long{purpose} (max {max_length:,} characters)"
        )
    return value


@router.post("/generate-content", response_model=GeneratedContentResponse)
async def generate_content(
    request: GenerateContentRequest,
    current_user: CurrentUser,
    ai: AIService = Depends(get_ai_service)
):
    prompt = _require_text(request.prompt, "Prompt", MAX_PROMPT_LENGTH)

    result = await ai.generate_content(prompt, request.options.model_dump())
    logger.info(f"Generated content for {current_user.username} via {result['provider']}")

    # Usage is measured in characters
    completion_length = len(result.get("content") or "")
    return GeneratedContentResponse(
        data=result,
        usage=TokenUsage(
            prompt_tokens=len(prompt),
            completion_tokens=completion_length,
            total_tokens=len(prompt) + completion_length
        )
    )


@router.post("/generate-outline", response_model=ApiResponse[Dict[str, Any]])
async def generate_outline(
    request: GenerateOutlineRequest,
    current_user: CurrentUser,
    ai: AIService = Depends(get_ai_service)
):
    topic = _require_text(request.topic, "Topic")
    return ApiResponse(data=await ai.generate_outline(topic, request.target_audience))


@router.post("/seo-suggestions", response_model=ApiResponse[Dict[str, Any]])
async def seo_suggestions(
    request: ContentRequest,
    current_user: CurrentUser,
    ai: AIService = Depends(get_ai_service)
):
    content = _require_text(request.content, "Content", MAX_SEO_CONTENT_LENGTH, " for analysis")
    return ApiResponse(data=await ai.generate_seo_suggestions(content, request.title))


@router.post("/improve-readability", response_model=ApiResponse[Dict[str, Any]])
async def improve_readability(
    request: ContentRequest,
    current_user: CurrentUser,
    ai: AIService = Depends(get_ai_service)
):
    content = _require_text(request.content, "Content", MAX_REWRITE_CONTENT_LENGTH, " for improvement")
    return ApiResponse(data=await ai.improve_readability(content))


@router.post("/check-plagiarism", response_model=ApiResponse[Dict[str, Any]])
def check_plagiarism(
    request: ContentRequest,
    current_user: CurrentUser,
    ai: AIService = Depends(get_ai_service),
    db: Session = Depends(get_db)
):
    content = _require_text(request.content, "Content", MAX_REWRITE_CONTENT_LENGTH, " for plagiarism check")
    return ApiResponse(data=ai.check_plagiarism(db, content))


@router.post("/readability-score", response_model=ApiResponse[Dict[str, Any]])
def readability_score(
    request: ContentRequest,
    current_user: CurrentUser,
    ai: AIService = Depends(get_ai_service)
):
    content = _require_text(request.content, "Content")
    return ApiResponse(data=ai.calculate_readability_score(content))


@router.post("/seo-analysis", response_model=ApiResponse[SEOAnalysis])
def seo_analysis(request: SEOAnalysisRequest, current_user: CurrentUser):
    content = _require_text(request.content, "Content")
    return ApiResponse(data=analyze_content(request.title, content, request.excerpt, request.tags))


@router.get("/usage", response_model=ApiResponse[Dict[str, Any]])
def get_usage(current_user: CurrentUser):
    """Static usage figures; AI calls are not recorded per user"""
    return ApiResponse(data={
        "current_month": {"requests": 45, "tokens": 12500, "limit": 50000},
        "last_month": {"requests": 38, "tokens": 9800},
        "features": {
            "content_generation": 25,
            "seo_suggestions": 12,
            "readability_check": 8,
            "plagiarism_check": 5
        }
    })


@router.get("/models", response_model=ApiResponse[List[AIModelInfo]])
def get_models(current_user: CurrentUser):
    return ApiResponse(data=AI_MODELS)
