"""CORS analyzer: header-pair diagnosis, configuration diffing and origin simulation."""

from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union
import json
import logging
import re

from cors_diagnoser.core.codegen import generate_server_example
from cors_diagnoser.core.headers import (
    ALLOW_CREDENTIALS,
    ALLOW_HEADERS,
    ALLOW_METHODS,
    ALLOW_ORIGIN,
    EXPOSE_HEADERS,
    MAX_AGE,
    ORIGIN,
    REQUEST_HEADERS,
    WILDCARD,
    HeaderView,
    RawHeaders,
    build_header_view,
    is_preflight,
    normalize_origin,
    split_header_list,
)
from cors_diagnoser.core.models import (
    ConfigurationDiff,
    CorsConfiguration,
    Diagnosis,
    IncorrectProperty,
    OriginTestResult,
    PreflightResult,
    Severity,
    as_configuration,
)
from cors_diagnoser.core.patterns import detect_pattern
from cors_diagnoser.core.security import check_security

logger = logging.getLogger(__name__)

SIMPLE_METHODS = frozenset({"GET", "HEAD", "POST"})

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class _Exchange:
    request: HeaderView
    response: HeaderView
    method: str

    @property
    def origin(self) -> Optional[str]:
        return self.request.get(ORIGIN)

    @property
    def allow_origin(self) -> Optional[str]:
        return self.response.get(ALLOW_ORIGIN)


def _check_missing_allow_origin(exchange: _Exchange, found: List[Diagnosis]) -> List[Diagnosis]:
    origin = exchange.origin
    if not origin or exchange.allow_origin:
        return []
    return [
        Diagnosis(
            issue="Missing Access-Control-Allow-Origin",
            description=(
                f"The request includes an Origin header ({origin}), but the server "
                "response is missing the Access-Control-Allow-Origin header. This is the "
                "most common CORS error and will cause the browser to block the response."
            ),
            recommendation=(
                "Add the Access-Control-Allow-Origin header to your response. Use a CORS "
                "extension like flask-cors, or set the header manually in your route handlers."
            ),
            code_example=generate_server_example("missing allow origin", origin=origin).code,
            severity=Severity.CRITICAL,
        )
    ]


def _check_origin_mismatch(exchange: _Exchange, found: List[Diagnosis]) -> List[Diagnosis]:
    origin = exchange.origin
    allow_origin = exchange.allow_origin
    if not origin or not allow_origin or allow_origin == WILDCARD:
        return []
    if normalize_origin(origin) == normalize_origin(allow_origin):
        return []
    return [
        Diagnosis(
            issue="Origin Mismatch",
            description=(
                f"The request origin ({origin}) does not match the "
                f"Access-Control-Allow-Origin header ({allow_origin}). The browser will "
                "block this response."
            ),
            recommendation=(
                "Ensure your CORS configuration includes the requesting origin, or use a "
                "dynamic origin validator to check against an allowlist of origins."
            ),
            code_example=generate_server_example("origin mismatch", origin=origin).code,
            severity=Severity.CRITICAL,
        )
    ]


def _check_wildcard_credentials(exchange: _Exchange, found: List[Diagnosis]) -> List[Diagnosis]:
    if exchange.allow_origin != WILDCARD or exchange.response.get(ALLOW_CREDENTIALS) != "true":
        return []
    return [
        Diagnosis(
            issue="Wildcard Origin with Credentials",
            description=(
                "Access-Control-Allow-Origin is set to '*' (wildcard) while "
                "Access-Control-Allow-Credentials is 'true'. This combination is forbidden "
                "by the CORS specification and will cause all requests to fail."
            ),
            recommendation=(
                "Replace the wildcard '*' with the specific origin from the request. When "
                "using credentials, you must specify an exact origin."
            ),
            code_example=generate_server_example(
                "wildcard credentials conflict", origin=exchange.origin
            ).code,
            pattern="wildcard-credentials-conflict",
            severity=Severity.CRITICAL,
        )
    ]


def _check_preflight(exchange: _Exchange, found: List[Diagnosis]) -> List[Diagnosis]:
    if not is_preflight(exchange.method, exchange.request):
        return []

    diagnoses = []
    if not exchange.response.get(ALLOW_METHODS):
        diagnoses.append(
            Diagnosis(
                issue="Missing Access-Control-Allow-Methods on Preflight",
                description=(
                    "This is a preflight OPTIONS request, but the response is missing the "
                    "Access-Control-Allow-Methods header. The browser needs to know which "
                    "HTTP methods are allowed."
                ),
                recommendation=(
                    "Add the Access-Control-Allow-Methods header to your preflight response, "
                    "listing all HTTP methods your API supports (e.g. 'GET, POST, PUT, DELETE')."
                ),
                code_example=generate_server_example(
                    "preflight missing methods",
                    origin=exchange.origin,
                    methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
                ).code,
                severity=Severity.CRITICAL,
            )
        )

    requested = exchange.request.get(REQUEST_HEADERS)
    if requested and not exchange.response.get(ALLOW_HEADERS):
        diagnoses.append(
            Diagnosis(
                issue="Missing Access-Control-Allow-Headers on Preflight",
                description=(
                    f"The browser is requesting permission to send custom headers "
                    f"({requested}), but the server is not responding with "
                    "Access-Control-Allow-Headers to grant permission."
                ),
                recommendation=(
                    "Add the Access-Control-Allow-Headers header to your preflight response, "
                    "listing all custom headers your API accepts."
                ),
                code_example=generate_server_example(
                    "custom headers not allowed",
                    origin=exchange.origin,
                    headers=split_header_list(requested),
                ).code,
                pattern="custom-headers-not-allowed",
                severity=Severity.CRITICAL,
            )
        )
    return diagnoses


def _check_catalog(exchange: _Exchange, found: List[Diagnosis]) -> List[Diagnosis]:
    pattern = detect_pattern(exchange.request, exchange.response, exchange.method)
    if pattern is None or any(d.pattern == pattern.id for d in found):
        return []
    return [
        Diagnosis(
            issue=pattern.name,
            description=pattern.explanation,
            recommendation=pattern.solution,
            code_example=pattern.code_example,
            pattern=pattern.id,
            severity=Severity.WARNING,
        )
    ]


def _check_response_security(exchange: _Exchange, found: List[Diagnosis]) -> List[Diagnosis]:
    config = configuration_from_headers(exchange.response)
    return [
        Diagnosis(
            issue=issue.title,
            description=issue.description,
            recommendation=issue.recommendation,
            severity=issue.level,
        )
        for issue in check_security(config)
    ]


ANALYSIS_STEPS = (
    _check_missing_allow_origin,
    _check_origin_mismatch,
    _check_wildcard_credentials,
    _check_preflight,
    _check_catalog,
    _check_response_security,
)


def _parse_max_age(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


def configuration_from_headers(response_headers: RawHeaders) -> CorsConfiguration:
    """Reconstruct the CORS policy a server applied from its response headers."""
    res = build_header_view(response_headers)
    credentials = res.get(ALLOW_CREDENTIALS)
    return CorsConfiguration(
        origin=res.get(ALLOW_ORIGIN) or False,
        methods=split_header_list(res.get(ALLOW_METHODS)),
        allowed_headers=split_header_list(res.get(ALLOW_HEADERS)),
        exposed_headers=split_header_list(res.get(EXPOSE_HEADERS)),
        credentials=None if credentials is None else credentials == "true",
        max_age=_parse_max_age(res.get(MAX_AGE)),
    )


def analyze_headers(
    request_headers: RawHeaders,
    method: str,
    response_headers: RawHeaders,
) -> List[Diagnosis]:
    """Diagnose one request/response header pair.

    Args:
        request_headers: Request headers as a mapping or (name, value) pairs
        method: HTTP method of the request
        response_headers: Response headers as a mapping or (name, value) pairs

    Returns:
        Diagnoses in check order. Never raises; a failing check is logged
        and skipped.
    """
    exchange = _Exchange(
        request=build_header_view(request_headers),
        response=build_header_view(response_headers),
        method=str(method or ""),
    )

    diagnoses: List[Diagnosis] = []
    for step in ANALYSIS_STEPS:
        try:
            diagnoses.extend(step(exchange, diagnoses))
        except Exception as e:
            logger.error("CORS analysis step %s failed: %s", step.__name__, e, exc_info=True)
    return diagnoses


def _values_equal(current: Any, expected: Any) -> bool:
    if isinstance(current, list) and isinstance(expected, list):
        return Counter(current) == Counter(expected)
    # keep True from comparing equal to 1
    if isinstance(current, bool) != isinstance(expected, bool):
        return False
    return current == expected


def _build_summary(missing: List[str], incorrect: List[IncorrectProperty], extra: List[str]) -> str:
    if not (missing or incorrect or extra):
        return "Configurations match perfectly."

    parts = []
    if missing:
        parts.append(
            f"Missing properties: {', '.join(missing)}. "
            "These need to be added to your CORS configuration."
        )
    if incorrect:
        details = "; ".join(
            f"{item.property} (current: {json.dumps(item.current)}, "
            f"expected: {json.dumps(item.expected)})"
            for item in incorrect
        )
        parts.append(f"Incorrect values: {details}. These need to be updated.")
    if extra:
        parts.append(
            f"Extra properties: {', '.join(extra)}. These are not needed but won't cause issues."
        )
    return " ".join(parts)


def compare_configuration(
    current: Union[CorsConfiguration, Mapping[str, Any]],
    expected: Union[CorsConfiguration, Mapping[str, Any]],
) -> ConfigurationDiff:
    """Diff a current CORS configuration against the expected one.

    List-valued fields compare as multisets. A field set to ``None`` is
    treated as absent.

    Raises:
        ValueError: If either mapping is not a valid CORS configuration
    """
    current_fields = dict(as_configuration(current).present_fields())
    expected_fields = dict(as_configuration(expected).present_fields())

    missing: List[str] = []
    incorrect: List[IncorrectProperty] = []
    for name, expected_value in expected_fields.items():
        if name not in current_fields:
            missing.append(name)
        elif not _values_equal(current_fields[name], expected_value):
            incorrect.append(
                IncorrectProperty(
                    property=name,
                    current=current_fields[name],
                    expected=expected_value,
                )
            )

    extra = [name for name in current_fields if name not in expected_fields]

    return ConfigurationDiff(
        missing=missing,
        incorrect=incorrect,
        extra=extra,
        summary=_build_summary(missing, incorrect, extra),
    )


def test_origin(origin: str, config: Union[CorsConfiguration, Mapping[str, Any]]) -> OriginTestResult:
    """Simulate the CORS headers a policy would send back to ``origin``.

    Raises:
        ValueError: If ``config`` is a mapping that is not a valid configuration
    """
    config = as_configuration(config)
    normalized = normalize_origin(origin)
    headers: Dict[str, str] = {}
    allowed = False
    reason = None

    configured = config.origin
    if configured is True or configured == WILDCARD:
        allowed = True
        headers["Access-Control-Allow-Origin"] = WILDCARD
    elif isinstance(configured, str):
        if normalized == normalize_origin(configured):
            allowed = True
            headers["Access-Control-Allow-Origin"] = configured
        else:
            reason = f"Origin '{origin}' does not match configured origin '{configured}'"
    elif isinstance(configured, list):
        if normalized in [normalize_origin(o) for o in configured]:
            allowed = True
            headers["Access-Control-Allow-Origin"] = origin
        else:
            reason = (
                f"Origin '{origin}' is not in the list of allowed origins: "
                f"{', '.join(configured)}"
            )
    else:
        reason = "CORS is not configured (origin is false or undefined)"

    if config.credentials:
        if headers.get("Access-Control-Allow-Origin") == WILDCARD:
            # browsers reject this pair, report what the server would still send
            allowed = False
            reason = "Cannot use wildcard origin (*) with credentials. Must specify exact origin."
            headers["Access-Control-Allow-Credentials"] = "true"
        elif allowed:
            headers["Access-Control-Allow-Credentials"] = "true"

    if config.methods:
        headers["Access-Control-Allow-Methods"] = ", ".join(config.methods)
    if config.allowed_headers:
        headers["Access-Control-Allow-Headers"] = ", ".join(config.allowed_headers)
    if config.exposed_headers:
        headers["Access-Control-Expose-Headers"] = ", ".join(config.exposed_headers)
    if config.max_age is not None:
        headers["Access-Control-Max-Age"] = str(config.max_age)

    preflight_required = any(
        m.upper() not in SIMPLE_METHODS for m in config.methods or []
    ) or bool(config.allowed_headers)
    preflight_allowed = allowed and (
        not preflight_required
        or (
            "Access-Control-Allow-Methods" in headers
            and "Access-Control-Allow-Headers" in headers
        )
    )

    return OriginTestResult(
        allowed=allowed,
        headers=headers,
        preflight=PreflightResult(required=preflight_required, allowed=preflight_allowed),
        reason=reason,
    )


# pytest would collect an imported test_origin as a test
simulate_origin = test_origin
test_origin.__test__ = False
