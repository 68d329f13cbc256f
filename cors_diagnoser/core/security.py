"""Security advisor for CORS configurations."""

from typing import List, Union
import logging

from cors_diagnoser.core.headers import WILDCARD
from cors_diagnoser.core.models import CorsConfiguration, SecurityIssue, Severity, as_configuration

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("development", "production")

# Headers that should never be readable from client-side JavaScript
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "set-cookie",
        "x-csrf-token",
        "x-xsrf-token",
        "x-api-key",
        "x-auth-token",
        "x-access-token",
        "x-refresh-token",
    }
)

POTENTIALLY_DANGEROUS_METHODS = frozenset({"DELETE", "PUT", "PATCH", "TRACE"})


def is_wildcard_origin(origin: Union[str, list, bool, None]) -> bool:
    """True for every spelling of "any origin": '*', True or a list holding '*'."""
    if origin is True or origin == WILDCARD:
        return True
    return isinstance(origin, list) and WILDCARD in origin


def _check_wildcard_in_production(config: CorsConfiguration, environment: str) -> List[SecurityIssue]:
    if environment != "production" or not is_wildcard_origin(config.origin):
        return []
    return [
        SecurityIssue(
            level=Severity.WARNING,
            title="Wildcard Origin in Production",
            description=(
                "Access-Control-Allow-Origin is set to '*' (wildcard) in a production "
                "environment. This allows any website to make requests to your API, "
                "which may expose sensitive data or functionality."
            ),
            recommendation=(
                "Specify exact allowed origins instead of using a wildcard. Use a list "
                "of trusted domains or validate origins dynamically against an allowlist."
            ),
        )
    ]


def _check_credentials_with_wildcard(config: CorsConfiguration, environment: str) -> List[SecurityIssue]:
    if config.credentials is not True or not is_wildcard_origin(config.origin):
        return []
    return [
        SecurityIssue(
            level=Severity.CRITICAL,
            title="Credentials with Wildcard Origin",
            description=(
                "Access-Control-Allow-Credentials is set to 'true' while "
                "Access-Control-Allow-Origin is '*' (wildcard). Browsers reject this "
                "combination, so every credentialed request fails. It would also be a "
                "severe vulnerability if it were allowed."
            ),
            recommendation=(
                "Replace the wildcard origin with specific allowed origins (e.g. "
                "'https://example.com'). Never use a wildcard with credentials."
            ),
        )
    ]


def _check_sensitive_exposed_headers(config: CorsConfiguration, environment: str) -> List[SecurityIssue]:
    exposed = [h for h in config.exposed_headers or [] if h.lower() in SENSITIVE_HEADERS]
    if not exposed:
        return []
    return [
        SecurityIssue(
            level=Severity.WARNING,
            title="Sensitive Headers Exposed",
            description=(
                "The following sensitive headers are exposed via "
                f"Access-Control-Expose-Headers: {', '.join(exposed)}. Client-side "
                "JavaScript can read them, and they may carry authentication tokens or "
                "session data."
            ),
            recommendation=(
                "Remove sensitive headers from the exposed list and only expose headers "
                "that are safe for scripts to read. Prefer secure, httpOnly cookies for "
                "session data."
            ),
        )
    ]


def _check_dangerous_methods(config: CorsConfiguration, environment: str) -> List[SecurityIssue]:
    methods = [m for m in config.methods or [] if m.upper() in POTENTIALLY_DANGEROUS_METHODS]
    if not methods:
        return []
    return [
        SecurityIssue(
            level=Severity.INFO,
            title="Potentially Unnecessary HTTP Methods Allowed",
            description=(
                f"The following HTTP methods are allowed: {', '.join(methods)}. This is "
                "not necessarily a vulnerability, but methods like DELETE, PUT or PATCH "
                "increase the attack surface of your API."
            ),
            recommendation=(
                "Only allow the HTTP methods your API actually needs. A read-only API "
                "usually needs nothing beyond GET and HEAD."
            ),
        )
    ]


SECURITY_RULES = (
    _check_wildcard_in_production,
    _check_credentials_with_wildcard,
    _check_sensitive_exposed_headers,
    _check_dangerous_methods,
)


def check_security(config, environment: str = "production") -> List[SecurityIssue]:
    """Run every security rule and return the issues, most severe first.

    Args:
        config: A CorsConfiguration or an equivalent mapping
        environment: "production" (default) or "development"
    """
    config = as_configuration(config)
    if environment not in ENVIRONMENTS:
        logger.warning("Unknown environment '%s', checking as production.", environment)
        environment = "production"

    issues: List[SecurityIssue] = []
    for rule in SECURITY_RULES:
        issues.extend(rule(config, environment))

    # sorted() is stable, so rules of equal severity keep their order
    return sorted(issues, key=lambda issue: issue.level.rank)
