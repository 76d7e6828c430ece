from .http_fallback import HttpFallbackClient

__all__ = ["HttpFallbackClient"]
