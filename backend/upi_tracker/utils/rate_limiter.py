"""
Simple memory-based fixed-window rate limiter.
Counters are per process; run a single worker or move this to Redis when scaling out.
"""
import threading
import time
from fastapi import Request, HTTPException
from typing import Dict, Tuple

# In-memory storage: {(scope, client): (window_start, count)}
_rate_limit_store: Dict[Tuple[str, str], Tuple[float, int]] = {}
_lock = threading.Lock()
_now = time.time


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def reset_rate_limits() -> None:
    """Drop every counter (used by tests and on restart)."""
    with _lock:
        _rate_limit_store.clear()


def rate_limit(requests: int, window: int, scope: str = "general", message: str | None = None):
    """
    Dependency factory for rate limiting.
    Example: Depends(rate_limit(requests=20, window=900, scope="payment-create"))
    """
    detail = message or "Too many requests from this IP, please try again later."

    def limiter(request: Request):
        key = (scope, _client_key(request))
        now = _now()

        with _lock:
            if key not in _rate_limit_store:
                _rate_limit_store[key] = (now, 1)
                return True

            window_start, count = _rate_limit_store[key]

            # Reset window if expired
            if now - window_start > window:
                _rate_limit_store[key] = (now, 1)
                return True

            if count >= requests:
                retry_after = max(int(window - (now - window_start)), 1)
                raise HTTPException(
                    status_code=429,
                    detail=detail,
                    headers={"Retry-After": str(retry_after)},
                )

            _rate_limit_store[key] = (window_start, count + 1)
        return True

    return limiter
