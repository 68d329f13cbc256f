"""WSGI middleware that diagnoses CORS problems on live traffic.

Wrap any WSGI application (e.g. ``app.wsgi_app`` for Flask)::

    app.wsgi_app = CorsDiagnoserMiddleware(app.wsgi_app, options={"verbose": True})

The middleware only observes. Status, headers and body pass through
unchanged, and analysis errors are logged instead of raised.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
import logging

from cors_diagnoser.backend.history import CorsError, ErrorHistory
from cors_diagnoser.core.analyzer import analyze_headers
from cors_diagnoser.core.headers import HeaderView, build_header_view
from cors_diagnoser.core.models import Diagnosis, Severity
from cors_diagnoser.reporting.console import DiagnosisPrinter
from cors_diagnoser.utils.config import MiddlewareOptions

logger = logging.getLogger(__name__)

WSGIApp = Callable[[Dict[str, Any], Callable], Iterable[bytes]]

# CGI variables that carry request headers without the HTTP_ prefix
_UNPREFIXED_HEADERS = {"CONTENT_TYPE": "content-type", "CONTENT_LENGTH": "content-length"}


def request_headers_from_environ(environ: Mapping[str, Any]) -> HeaderView:
    """Rebuild the request header bag from a WSGI environ."""
    headers = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            headers[key[5:].replace("_", "-").lower()] = value
        elif key in _UNPREFIXED_HEADERS:
            headers[_UNPREFIXED_HEADERS[key]] = value
    return build_header_view(headers)


class CorsDiagnoserMiddleware:
    """Analyze each request/response header pair for CORS issues."""

    def __init__(
        self,
        app: WSGIApp,
        history: Optional[ErrorHistory] = None,
        options: Union[MiddlewareOptions, Mapping[str, Any], None] = None,
        printer: Optional[DiagnosisPrinter] = None,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The wrapped WSGI application
            history: Ledger to record failures in; created from
                ``options.max_history_size`` when omitted and history is enabled
            options: MiddlewareOptions or an equivalent mapping
            printer: Console renderer for detected issues

        Raises:
            ValueError: If options are invalid
        """
        self.app = app
        if isinstance(options, MiddlewareOptions):
            self.options = options
        else:
            self.options = MiddlewareOptions.from_dict(options)

        if history is None and self.options.enable_history:
            history = ErrorHistory(self.options.max_history_size)
        self.history = history
        self.printer = printer or DiagnosisPrinter()

    def __call__(self, environ: Dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "GET")
        route = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "") or "/"
        request_headers = request_headers_from_environ(environ)
        analyzed = False

        def diagnosing_start_response(
            status: str,
            headers: List[Tuple[str, str]],
            exc_info: Any = None,
        ) -> Callable:
            nonlocal analyzed
            if not analyzed:
                analyzed = True
                self._diagnose(route, method, request_headers, headers)
            if exc_info is not None:
                return start_response(status, headers, exc_info)
            return start_response(status, headers)

        return self.app(environ, diagnosing_start_response)

    def _diagnose(
        self,
        route: str,
        method: str,
        request_headers: HeaderView,
        response_headers: List[Tuple[str, str]],
    ) -> None:
        origin = request_headers.get("origin", "")
        try:
            diagnoses = analyze_headers(request_headers, method, list(response_headers))
            if not self.options.security_checks:
                diagnoses = [d for d in diagnoses if d.severity is not Severity.INFO]

            if diagnoses:
                self._report(route, method, origin, diagnoses)
            elif self.options.verbose:
                message = f"No CORS issues detected on {method} {route} from origin: {origin}"
                logger.info(message)
                self.printer.log("info", message)
        except Exception as e:
            logger.error("Error during CORS analysis of %s %s: %s", method, route, e, exc_info=True)

    def _report(self, route: str, method: str, origin: str, diagnoses: List[Diagnosis]) -> None:
        message = f"CORS issues detected on {method} {route} from origin: {origin}"
        logger.warning("%s (%d issue(s))", message, len(diagnoses))
        self.printer.log("error", message)
        self.printer.print_diagnoses(diagnoses)

        if self.history is not None:
            self.history.add(route=route, method=method, origin=origin, diagnoses=diagnoses)

    def get_error_history(self) -> List[CorsError]:
        """Recorded failures, newest first; empty when history is disabled."""
        if self.history is None:
            return []
        return self.history.get_all()

    def clear_error_history(self) -> None:
        if self.history is not None:
            self.history.clear()
