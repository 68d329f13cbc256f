"""The Backend - server-side interception, history and probing."""

from cors_diagnoser.backend.history import CorsError, ErrorHistory
from cors_diagnoser.backend.middleware import CorsDiagnoserMiddleware
from cors_diagnoser.backend.probe import CorsProbe, ProbeError, ProbeResult

__all__ = [
    "CorsError",
    "ErrorHistory",
    "CorsDiagnoserMiddleware",
    "CorsProbe",
    "ProbeError",
    "ProbeResult",
]
