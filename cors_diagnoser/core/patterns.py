"""Catalog of recognizable CORS failure signatures.

Each entry pairs a pure detector with a canned explanation, a fix and a
short flask-cors snippet. The catalog is ordered: when several detectors
match, the first one wins.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import urlsplit
import logging

from cors_diagnoser.core.headers import (
    ALLOW_CREDENTIALS,
    ALLOW_HEADERS,
    ALLOW_METHODS,
    ALLOW_ORIGIN,
    COOKIE,
    ORIGIN,
    REQUEST_HEADERS,
    WILDCARD,
    HeaderView,
    RawHeaders,
    build_header_view,
    is_preflight,
)

logger = logging.getLogger(__name__)

Detector = Callable[[HeaderView, HeaderView, str], bool]


@dataclass(frozen=True)
class ErrorPattern:
    id: str
    name: str
    detector: Detector
    explanation: str
    solution: str
    code_example: str


def _wildcard_with_credentials(req: HeaderView, res: HeaderView, method: str) -> bool:
    return res.get(ALLOW_ORIGIN) == WILDCARD and res.get(ALLOW_CREDENTIALS) == "true"


def _multiple_origins(req: HeaderView, res: HeaderView, method: str) -> bool:
    return "," in res.get(ALLOW_ORIGIN, "")


def _preflight_incomplete(req: HeaderView, res: HeaderView, method: str) -> bool:
    if not is_preflight(method, req):
        return False
    return ALLOW_ORIGIN not in res or ALLOW_METHODS not in res


def _requested_headers_not_allowed(req: HeaderView, res: HeaderView, method: str) -> bool:
    if not is_preflight(method, req):
        return False
    return bool(req.get(REQUEST_HEADERS)) and not res.get(ALLOW_HEADERS)


def _missing_allow_origin(req: HeaderView, res: HeaderView, method: str) -> bool:
    return bool(req.get(ORIGIN)) and not res.get(ALLOW_ORIGIN)


def _missing_allow_methods(req: HeaderView, res: HeaderView, method: str) -> bool:
    if not is_preflight(method, req):
        return False
    return not res.get(ALLOW_METHODS)


def _credentials_mismatch(req: HeaderView, res: HeaderView, method: str) -> bool:
    return COOKIE in req and res.get(ALLOW_CREDENTIALS) != "true"


def _null_origin_blocked(req: HeaderView, res: HeaderView, method: str) -> bool:
    return req.get(ORIGIN) == "null" and res.get(ALLOW_ORIGIN) not in ("null", WILDCARD)


def _port_mismatch(req: HeaderView, res: HeaderView, method: str) -> bool:
    origin = req.get(ORIGIN)
    allow_origin = res.get(ALLOW_ORIGIN)
    if not origin or not allow_origin or allow_origin == WILDCARD:
        return False

    try:
        origin_url = urlsplit(origin)
        allowed_url = urlsplit(allow_origin)
        if not origin_url.scheme or not allowed_url.scheme:
            return False
        if not origin_url.hostname or not allowed_url.hostname:
            return False
        return (
            origin_url.hostname == allowed_url.hostname
            and _effective_port(origin_url) != _effective_port(allowed_url)
        )
    except ValueError:
        # urlsplit rejects malformed ports and IPv6 literals
        return False


_DEFAULT_PORTS = {"http": 80, "https": 443}


def _effective_port(url) -> Optional[int]:
    # An explicit default port is the same origin as no port at all
    port = url.port
    if port == _DEFAULT_PORTS.get(url.scheme):
        return None
    return port


COMMON_PATTERNS = (
    ErrorPattern(
        id="wildcard-credentials-conflict",
        name="Wildcard Origin with Credentials Conflict",
        detector=_wildcard_with_credentials,
        explanation=(
            "Access-Control-Allow-Origin is set to '*' (wildcard) while "
            "Access-Control-Allow-Credentials is 'true'. This combination is forbidden "
            "by the CORS specification. When credentials are included, you must "
            "specify an exact origin."
        ),
        solution=(
            "Replace the wildcard '*' with the specific origin from the request, or "
            "disable credentials if you need to allow all origins."
        ),
        code_example="""\
# Instead of:
CORS(app, origins="*", supports_credentials=True)

# Use an explicit origin:
CORS(app, origins=["https://example.com"], supports_credentials=True)

# Or validate against an allowlist:
ALLOWED_ORIGINS = {"https://example.com", "https://app.example.com"}

@app.after_request
def add_cors_headers(response):
    origin = request.headers.get("Origin")
    if origin in ALLOWED_ORIGINS:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers.add("Vary", "Origin")
    return response""",
    ),
    ErrorPattern(
        id="multiple-origins-misconfiguration",
        name="Multiple Origins Misconfiguration",
        detector=_multiple_origins,
        explanation=(
            "Access-Control-Allow-Origin contains multiple origins separated by commas. "
            "The CORS specification only allows a single origin or '*' in this header. "
            "You cannot specify multiple origins directly."
        ),
        solution=(
            "Echo back the single matching origin for each request, or use a CORS "
            "extension that handles an allowlist of origins."
        ),
        code_example="""\
# Instead of:
response.headers["Access-Control-Allow-Origin"] = "https://example.com, https://app.example.com"

# Echo the matching origin:
ALLOWED_ORIGINS = {"https://example.com", "https://app.example.com"}
origin = request.headers.get("Origin")
if origin in ALLOWED_ORIGINS:
    response.headers["Access-Control-Allow-Origin"] = origin
    response.headers.add("Vary", "Origin")

# Or let flask-cors do it:
CORS(app, origins=["https://example.com", "https://app.example.com"])""",
    ),
    ErrorPattern(
        id="preflight-only-failure",
        name="Preflight Request Failure",
        detector=_preflight_incomplete,
        explanation=(
            "The preflight OPTIONS request is missing required CORS headers. Preflight "
            "responses must include Access-Control-Allow-Origin and "
            "Access-Control-Allow-Methods headers."
        ),
        solution=(
            "Ensure your server answers OPTIONS requests with the appropriate CORS "
            "headers, or use a CORS extension that handles preflight automatically."
        ),
        code_example="""\
# flask-cors answers OPTIONS automatically:
CORS(app, origins=["https://example.com"])

# Or handle it manually:
@app.route("/api/<path:path>", methods=["OPTIONS"])
def preflight(path):
    response = app.make_default_options_response()
    response.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    return response""",
    ),
    ErrorPattern(
        id="custom-headers-not-allowed",
        name="Custom Headers Not Allowed",
        detector=_requested_headers_not_allowed,
        explanation=(
            "The browser is requesting permission to send custom headers (via "
            "Access-Control-Request-Headers), but the server is not responding with "
            "Access-Control-Allow-Headers to grant permission."
        ),
        solution=(
            "Add the Access-Control-Allow-Headers header to your preflight response, "
            "listing all custom headers your API accepts."
        ),
        code_example="""\
# With flask-cors:
CORS(app, allow_headers=["Content-Type", "Authorization", "X-Custom-Header"])

# Or manually on the preflight response:
response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization, X-Custom-Header\"""",
    ),
    ErrorPattern(
        id="missing-allow-origin",
        name="Missing Access-Control-Allow-Origin",
        detector=_missing_allow_origin,
        explanation=(
            "The request includes an Origin header, but the server response is missing "
            "the Access-Control-Allow-Origin header. This is the most common CORS error."
        ),
        solution=(
            "Add the Access-Control-Allow-Origin header to your response. Use a CORS "
            "extension or set the header manually."
        ),
        code_example="""\
# Using flask-cors (recommended):
from flask_cors import CORS
CORS(app)

# Or for a single route:
@app.get("/api/data")
def data():
    response = jsonify({"data": "your data"})
    response.headers["Access-Control-Allow-Origin"] = "https://example.com"
    return response""",
    ),
    ErrorPattern(
        id="missing-allow-headers",
        name="Missing Access-Control-Allow-Headers on Preflight",
        detector=_requested_headers_not_allowed,
        explanation=(
            "The preflight request includes Access-Control-Request-Headers, but the "
            "response is missing Access-Control-Allow-Headers. The browser needs "
            "explicit permission to send custom headers."
        ),
        solution=(
            "Include the Access-Control-Allow-Headers header in your preflight response "
            "with the list of allowed headers."
        ),
        code_example="""\
# With flask-cors:
CORS(app, allow_headers=["Content-Type", "Authorization"])

# Or echo the requested headers on OPTIONS:
requested = request.headers.get("Access-Control-Request-Headers", "")
response.headers["Access-Control-Allow-Headers"] = requested""",
    ),
    ErrorPattern(
        id="missing-allow-methods",
        name="Missing Access-Control-Allow-Methods on Preflight",
        detector=_missing_allow_methods,
        explanation=(
            "The preflight OPTIONS request is missing the Access-Control-Allow-Methods "
            "header. This header tells the browser which HTTP methods are allowed for "
            "the actual request."
        ),
        solution=(
            "Add the Access-Control-Allow-Methods header to your preflight response, "
            "listing all HTTP methods your API supports."
        ),
        code_example="""\
# With flask-cors:
CORS(app, methods=["GET", "POST", "PUT", "DELETE", "PATCH"])

# Or manually:
response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, PATCH\"""",
    ),
    ErrorPattern(
        id="credentials-mismatch",
        name="Credentials Mode Mismatch",
        detector=_credentials_mismatch,
        explanation=(
            "The frontend is sending credentials (cookies, authorization headers) but "
            "the server is not responding with Access-Control-Allow-Credentials: true. "
            "Credentials will be blocked."
        ),
        solution=(
            "Enable credentials in your CORS configuration on the server, and make sure "
            "you are using a specific origin (not wildcard)."
        ),
        code_example="""\
# Backend (Flask):
CORS(app, origins=["https://example.com"], supports_credentials=True)

// Frontend (fetch):
fetch("https://api.example.com/data", { credentials: "include" });

// Frontend (axios):
axios.get("https://api.example.com/data", { withCredentials: true });""",
    ),
    ErrorPattern(
        id="origin-null-blocked",
        name="Origin 'null' Blocked",
        detector=_null_origin_blocked,
        explanation=(
            "The request has Origin: null (common with file:// pages, sandboxed iframes "
            "or redirects), but the server is not configured to allow it. This is a "
            "security-sensitive scenario."
        ),
        solution=(
            "If you need to support null origins (e.g. for local file testing), allow it "
            "explicitly. Be cautious, as this can be a security risk in production."
        ),
        code_example="""\
# Development only:
CORS(app, origins=["null", "http://localhost:8000"])

# Better: serve the page from a local server instead of file://
#   python -m http.server 8000""",
    ),
    ErrorPattern(
        id="port-mismatch",
        name="Same Domain Different Port Blocked",
        detector=_port_mismatch,
        explanation=(
            "The request is from the same domain but a different port (e.g. "
            "localhost:3000 vs localhost:5000). Browsers treat different ports as "
            "different origins, so CORS applies."
        ),
        solution=(
            "Include the full origin with the port number in your CORS configuration, "
            "or use a dynamic origin validator."
        ),
        code_example="""\
# Allow specific ports:
CORS(app, origins=["http://localhost:3000", "http://localhost:5000"])

# Or any localhost port (development only):
CORS(app, origins=[r"http://localhost:\\d+"])""",
    ),
)


def _iter_matches(request_headers: RawHeaders, response_headers: RawHeaders, method: str):
    req = build_header_view(request_headers)
    res = build_header_view(response_headers)
    for pattern in COMMON_PATTERNS:
        try:
            matched = pattern.detector(req, res, method)
        except Exception:
            logger.debug("Detector %s failed, treating as no match", pattern.id, exc_info=True)
            continue
        if matched:
            yield pattern


def detect_pattern(
    request_headers: RawHeaders,
    response_headers: RawHeaders,
    method: str = "GET",
) -> Optional[ErrorPattern]:
    """Return the first catalog entry matching the header pair, if any."""
    return next(_iter_matches(request_headers, response_headers, method), None)


def find_patterns(
    request_headers: RawHeaders,
    response_headers: RawHeaders,
    method: str = "GET",
) -> List[ErrorPattern]:
    """Return every matching catalog entry, in catalog order."""
    return list(_iter_matches(request_headers, response_headers, method))


def get_pattern(pattern_id: str) -> Optional[ErrorPattern]:
    for pattern in COMMON_PATTERNS:
        if pattern.id == pattern_id:
            return pattern
    return None
