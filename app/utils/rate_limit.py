"""
In-memory sliding window rate limiting, used as a router dependency
"""
import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Allows `limit` requests per `window` seconds for each client IP.

    Instances are FastAPI dependencies; over the limit they raise 429 with
    the configured message and the usual X-RateLimit headers.
    """

    def __init__(self, limit: int, window: int, message: str = "Too many requests, please try again later."):
        self.limit = limit
        self.window = window
        self.message = message
        self.request_history: Dict[str, Deque[float]] = defaultdict(deque)
        logger.info(f"Rate limit: {limit} requests per {window} seconds")

    def _get_client_id(self, request: Request) -> str:
        return f"ip:{request.client.host if request.client else 'unknown'}"

    def hit(self, client_id: str) -> int:
        """Record a request; returns the remaining allowance or raises 429"""
        now = time.time()
        history = self.request_history[client_id]
        while history and history[0] <= now - self.window:
            history.popleft()

        if len(history) >= self.limit:
            logger.warning(f"Rate limit exceeded for {client_id}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=self.message,
                headers={
                    "X-RateLimit-Limit": str(self.limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(history[0] + self.window))
                }
            )

        history.append(now)
        return self.limit - len(history)

    async def __call__(self, request: Request) -> None:
        self.hit(self._get_client_id(request))

    def reset(self):
        self.request_history.clear()
