"""Remediation snippet generator.

Snippets are rendered from the Jinja2 templates under ``templates/``:
``server/*.py.j2`` produce Flask + flask-cors code and ``fetch/*.js.j2``
produce browser-side fetch calls.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional
import json
import logging

from jinja2 import Environment, FileSystemLoader

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

DEFAULT_ORIGIN = "https://example.com"
DEFAULT_METHODS = ["GET", "POST", "PUT", "DELETE"]
DEFAULT_HEADERS = ["Content-Type", "Authorization"]


@dataclass(frozen=True)
class CodeExample:
    language: str
    code: str
    description: str


def _pylist(values: Iterable[str]) -> str:
    # JSON string arrays are valid Python list literals
    return json.dumps(list(values))


def _pystr(value: str) -> str:
    return json.dumps(str(value))


def _jsquote(value: str) -> str:
    """Escape text for a single-quoted JavaScript string."""
    text = json.dumps(str(value))[1:-1]
    return text.replace('\\"', '"').replace("'", "\\'")


def _create_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=False,  # output is source code, not HTML
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["pylist"] = _pylist
    env.filters["pystr"] = _pystr
    env.filters["jsquote"] = _jsquote
    return env


_env = _create_environment()


# template name -> description
_SERVER_VARIANTS = {
    "wildcard_credentials": "Use a specific origin instead of a wildcard when credentials are enabled",
    "multiple_origins": "Echo back one allowed origin per request instead of a comma-separated list",
    "preflight": "Answer OPTIONS preflight requests with the allowed methods and headers",
    "custom_headers": "Allow the custom request headers your frontend sends",
    "credentials": "Enable credentials together with an explicit origin",
    "methods": "Allow the HTTP methods your API supports",
    "basic": "Enable CORS with flask-cors",
}

_FETCH_VARIANTS = {
    "credentials": "Send cookies and auth headers with a cross-origin request",
    "custom_headers": "Send custom headers (requires Access-Control-Allow-Headers on the server)",
    "preflight": "Requests that trigger, or avoid, a preflight",
    "basic": "Basic cross-origin fetch",
}


def _server_variant(issue: str) -> str:
    label = issue.lower()
    if "wildcard" in label and "credential" in label:
        return "wildcard_credentials"
    if "multiple" in label and "origin" in label:
        return "multiple_origins"
    if "preflight" in label or "options" in label:
        return "preflight"
    if "custom header" in label or "access-control-allow-headers" in label:
        return "custom_headers"
    if "credential" in label:
        return "credentials"
    if "method" in label:
        return "methods"
    return "basic"


def _fetch_variant(issue: str) -> str:
    label = issue.lower()
    if "credential" in label:
        return "credentials"
    if "header" in label:
        return "custom_headers"
    if "preflight" in label or "options" in label:
        return "preflight"
    return "basic"


def _context(
    origin: Optional[str],
    origins: Optional[List[str]],
    methods: Optional[List[str]],
    headers: Optional[List[str]],
) -> dict:
    origin = origin or DEFAULT_ORIGIN
    if not origins:
        origins = [origin] if origin != DEFAULT_ORIGIN else [origin, "https://app.example.com"]
    return {
        "origin": origin,
        "origins": list(origins),
        "methods": list(methods or DEFAULT_METHODS),
        "headers": list(headers or DEFAULT_HEADERS),
    }


def generate_server_example(
    issue: str,
    origin: Optional[str] = None,
    origins: Optional[List[str]] = None,
    methods: Optional[List[str]] = None,
    headers: Optional[List[str]] = None,
) -> CodeExample:
    """Render a Flask + flask-cors fix for the given issue label.

    Args:
        issue: Free-text issue label; its keywords pick the template
        origin: Origin to put in the snippet
        origins: Origins for allowlist-style snippets
        methods: Methods for method/preflight snippets
        headers: Header names for header/preflight snippets

    Returns:
        CodeExample with language "python"
    """
    variant = _server_variant(issue or "")
    logger.debug("Rendering server example '%s' for issue '%s'", variant, issue)
    template = _env.get_template(f"server/{variant}.py.j2")
    code = template.render(**_context(origin, origins, methods, headers))
    return CodeExample(language="python", code=code, description=_SERVER_VARIANTS[variant])


def generate_fetch_example(
    issue: str,
    origin: Optional[str] = None,
    headers: Optional[List[str]] = None,
) -> CodeExample:
    """Render a browser-side fetch snippet for the given issue label."""
    variant = _fetch_variant(issue or "")
    template = _env.get_template(f"fetch/{variant}.js.j2")
    code = template.render(**_context(origin, None, None, headers or ["X-Custom-Header"]))
    return CodeExample(language="javascript", code=code, description=_FETCH_VARIANTS[variant])
