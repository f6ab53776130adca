"""
Request/response schemas for the AI writing assistant endpoints
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class GenerationOptions(BaseModel):
    max_tokens: int = Field(1000, ge=1, le=8192)
    temperature: float = Field(0.7, ge=0, le=2)
    model: Optional[str] = None


class GenerateContentRequest(BaseModel):
    prompt: Optional[str] = None
    options: GenerationOptions = Field(default_factory=GenerationOptions)


class GenerateOutlineRequest(BaseModel):
    topic: Optional[str] = None
    target_audience: str = "general"


class ContentRequest(BaseModel):
    content: Optional[str] = None
    title: Optional[str] = None


class SEOAnalysisRequest(BaseModel):
    title: str = ""
    content: Optional[str] = None
    excerpt: str = ""
    tags: List[str] = Field(default_factory=list)


class TokenUsage(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class GeneratedContentResponse(BaseModel):
    success: bool = True
    data: Dict[str, Any]
    usage: TokenUsage


class SEOSuggestion(BaseModel):
    type: str
    message: str


class SEOAnalysis(BaseModel):
    readability_score: int
    readability_grade: str
    word_count: int
    reading_time: int
    keywords: List[str]
    suggestions: List[SEOSuggestion]
    seo_score: int


class AIModelInfo(BaseModel):
    id: str
    name: str
    provider: str
    description: str
    max_tokens: int
    features: List[str]
    free: bool
    speed: str
