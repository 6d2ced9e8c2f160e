"""
MemoTap Backend — Rate Limiter Tests
======================================

What we test:
    ✅ Requests under the limit pass
    ✅ The request over the limit raises with a correct Retry-After
    ✅ The window slides: old requests stop counting
    ✅ Clients are counted independently
"""

import pytest

from app.exceptions import RateLimitExceededError
from app.middleware.rate_limit import SlidingWindowLimiter


class TestSlidingWindowLimiter:

    def test_under_limit(self):
        limiter = SlidingWindowLimiter(limit=3, window=60)
        for second in range(3):
            limiter.hit("1.2.3.4", now=float(second))

    def test_over_limit(self):
        limiter = SlidingWindowLimiter(limit=2, window=60)
        limiter.hit("1.2.3.4", now=0.0)
        limiter.hit("1.2.3.4", now=1.0)

        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.hit("1.2.3.4", now=2.0)

        assert exc_info.value.retry_after == 59
        assert exc_info.value.context["requests_in_window"] == 2

    def test_rejected_request_is_not_counted(self):
        limiter = SlidingWindowLimiter(limit=1, window=10)
        limiter.hit("c", now=0.0)
        with pytest.raises(RateLimitExceededError):
            limiter.hit("c", now=5.0)
        # Only the first hit counts, so the window is clear after 10s
        limiter.hit("c", now=10.5)

    def test_window_slides(self):
        limiter = SlidingWindowLimiter(limit=2, window=60)
        limiter.hit("c", now=0.0)
        limiter.hit("c", now=30.0)
        limiter.hit("c", now=61.0)
        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.hit("c", now=62.0)
        assert exc_info.value.retry_after == 29

    def test_clients_are_independent(self):
        limiter = SlidingWindowLimiter(limit=1, window=60)
        limiter.hit("a", now=0.0)
        limiter.hit("b", now=0.0)
        with pytest.raises(RateLimitExceededError):
            limiter.hit("a", now=1.0)

    def test_idle_clients_are_swept(self):
        limiter = SlidingWindowLimiter(limit=5, window=10)
        limiter.CLEANUP_EVERY = 3
        limiter.hit("idle", now=0.0)
        limiter.hit("busy", now=20.0)
        limiter.hit("busy", now=21.0)
        assert "idle" not in limiter._hits
        assert "busy" in limiter._hits
