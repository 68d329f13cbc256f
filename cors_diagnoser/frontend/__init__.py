"""The Frontend - browser-side CORS error observation."""

from cors_diagnoser.frontend.listener import (
    BrowserListener,
    CorsErrorInfo,
    analyze_cors_error,
    is_cors_error,
)

__all__ = ["BrowserListener", "CorsErrorInfo", "analyze_cors_error", "is_cors_error"]
