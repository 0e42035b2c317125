"""Request-scoped dependencies for plan routes."""
from __future__ import annotations

from typing import List

from fastapi import Depends, HTTPException, Request, status

from planstream.core.config import settings
from planstream.core.rate_limit import RateLimiter
from planstream.services.plan_store import PlanSavedHook
from planstream.services.text_generation import OpenAITextGenerator, TextGenerator

RATE_LIMIT_DETAIL = "Too many requests. Please slow down."


def get_text_generator() -> TextGenerator:
    if not settings.openai_api_key:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Plan generation is not configured")
    return OpenAITextGenerator(api_key=settings.openai_api_key)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_plan_saved_hooks(request: Request) -> List[PlanSavedHook]:
    return list(getattr(request.app.state, "plan_saved_hooks", []))


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def enforce_plan_rate_limit(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
    if not limiter.allow(f"plan:{client_ip(request)}"):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=RATE_LIMIT_DETAIL)
