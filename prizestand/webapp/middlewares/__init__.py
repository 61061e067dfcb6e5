from prizestand.webapp.middlewares.rate_limiter import RateLimiterMiddleware

__all__ = ["RateLimiterMiddleware"]
