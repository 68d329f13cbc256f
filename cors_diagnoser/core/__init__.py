"""The Core - pure CORS header analysis."""

from cors_diagnoser.core.analyzer import (
    analyze_headers,
    compare_configuration,
    configuration_from_headers,
    simulate_origin,
)
from cors_diagnoser.core.headers import build_header_view, is_preflight, normalize_origin
from cors_diagnoser.core.models import (
    ConfigurationDiff,
    CorsConfiguration,
    Diagnosis,
    OriginTestResult,
    SecurityIssue,
    Severity,
)
from cors_diagnoser.core.patterns import COMMON_PATTERNS, ErrorPattern, detect_pattern
from cors_diagnoser.core.security import check_security

__all__ = [
    "analyze_headers",
    "compare_configuration",
    "configuration_from_headers",
    "simulate_origin",
    "build_header_view",
    "is_preflight",
    "normalize_origin",
    "ConfigurationDiff",
    "CorsConfiguration",
    "Diagnosis",
    "OriginTestResult",
    "SecurityIssue",
    "Severity",
    "COMMON_PATTERNS",
    "ErrorPattern",
    "detect_pattern",
    "check_security",
]
