"""Admission control module."""

from .limiter import AdmissionResult, RateLimiter, RateLimitRecord

__all__ = ["AdmissionResult", "RateLimiter", "RateLimitRecord"]
