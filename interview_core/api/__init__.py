"""
API routers package.
"""
from interview_core.api import analytics, errors, health, sessions, share

__all__ = ["analytics", "errors", "health", "sessions", "share"]
