"""CORS Diagnoser - explain why the browser blocked your request."""

__version__ = "0.1.0"

from cors_diagnoser.core.analyzer import (
    analyze_headers,
    compare_configuration,
    simulate_origin,
)
from cors_diagnoser.core.models import CorsConfiguration, Diagnosis, Severity
from cors_diagnoser.core.patterns import detect_pattern
from cors_diagnoser.core.security import check_security

__all__ = [
    "__version__",
    "analyze_headers",
    "compare_configuration",
    "simulate_origin",
    "CorsConfiguration",
    "Diagnosis",
    "Severity",
    "detect_pattern",
    "check_security",
]
