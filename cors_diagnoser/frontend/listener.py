"""Browser Listener - explain CORS errors reported by a browser page.

Attach to a Playwright ``Page`` (or anything exposing ``on`` and
``remove_listener`` for ``console`` and ``pageerror`` events) to collect
CORS console errors and annotate them with likely causes.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, List, Optional, Tuple
import logging

from cors_diagnoser.reporting.console import DiagnosisPrinter

logger = logging.getLogger(__name__)

CORS_KEYWORDS = ("cors", "cross-origin", "blocked")


@dataclass
class CorsErrorInfo:
    message: str
    possible_causes: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)


def is_cors_error(message: Optional[str]) -> bool:
    """True if a console message looks CORS-related."""
    text = (message or "").lower()
    return any(keyword in text for keyword in CORS_KEYWORDS)


def analyze_cors_error(message: str, page_origin: Optional[str] = None) -> Tuple[List[str], List[str]]:
    """Guess causes and fixes from the wording of a browser error.

    Args:
        message: The console error text
        page_origin: Origin of the page that logged it, if known

    Returns:
        (possible_causes, recommendations)
    """
    text = (message or "").lower()
    causes: List[str] = []
    recommendations: List[str] = []

    if "access-control-allow-origin" in text:
        causes.append("Server is not sending the Access-Control-Allow-Origin header")
        causes.append("Server is sending the header but with a different origin than expected")
        recommendations.append(
            "Ask the backend team to add CORS middleware (e.g. flask-cors for Flask)"
        )
        recommendations.append(
            f"Verify the server is configured to allow your origin: {page_origin or 'your-origin'}"
        )

    if "preflight" in text or "options" in text or "access-control-request" in text:
        causes.append("Preflight OPTIONS request is failing or not handled by server")
        causes.append("Server is not responding with required preflight headers")
        recommendations.append("Ensure server handles OPTIONS requests for the endpoint")
        recommendations.append(
            "Check that Access-Control-Allow-Methods and Access-Control-Allow-Headers are set"
        )

    if "credential" in text or "cookie" in text or "withcredentials" in text:
        causes.append("Server is not allowing credentials (cookies, authorization headers)")
        causes.append("Server is using wildcard origin (*) with credentials, which is forbidden")
        recommendations.append("Set Access-Control-Allow-Credentials: true on the server")
        recommendations.append(
            "Ensure server uses specific origin, not wildcard (*), when allowing credentials"
        )
        recommendations.append(
            "Use credentials: 'include' in fetch or withCredentials: true in axios"
        )

    if "header" in text and ("not allowed" in text or "forbidden" in text):
        causes.append("Custom headers are being sent but not allowed by server")
        recommendations.append(
            "Ask backend to add your custom headers to Access-Control-Allow-Headers"
        )
        recommendations.append(
            "Common headers to allow: Content-Type, Authorization, X-Requested-With"
        )

    if "method" in text and "not allowed" in text:
        causes.append("HTTP method is not allowed by server CORS policy")
        recommendations.append(
            "Ask backend to add the HTTP method to Access-Control-Allow-Methods"
        )

    if "blocked" in text and "policy" in text:
        causes.append("Request is blocked by CORS policy")
        causes.append("Origin might not be in the server's allowed list")
        recommendations.append("Verify your origin is allowed by the server")
        recommendations.append("Check browser console for specific CORS error details")

    if not causes:
        causes.append("CORS policy is blocking the request")
        causes.append("Server CORS configuration might be incorrect")
        recommendations.append("Check the browser console for detailed CORS error message")
        recommendations.append("Verify server has CORS enabled and configured correctly")
        recommendations.append(
            "Use browser DevTools Network tab to inspect request/response headers"
        )

    return causes, recommendations


class BrowserListener:
    """Collect and explain CORS errors emitted by a browser page."""

    def __init__(
        self,
        verbose: bool = False,
        custom_handler: Optional[Callable[[CorsErrorInfo], Any]] = None,
        max_history: int = 100,
        printer: Optional[DiagnosisPrinter] = None,
    ) -> None:
        """Initialize the listener.

        Args:
            verbose: Print start/stop notices and a DevTools tip
            custom_handler: Called with every captured CorsErrorInfo
            max_history: Number of captured errors to keep
            printer: Console renderer for captured errors
        """
        if max_history < 1:
            raise ValueError("max_history must be a positive integer")
        self.verbose = verbose
        self.custom_handler = custom_handler
        self.printer = printer or DiagnosisPrinter()
        self._errors: Deque[CorsErrorInfo] = deque(maxlen=max_history)
        self._page: Any = None

    @property
    def is_listening(self) -> bool:
        return self._page is not None

    def capture(self, message: str) -> Optional[CorsErrorInfo]:
        """Analyze one error message; non-CORS messages are ignored.

        Returns:
            The recorded CorsErrorInfo, or None if the message was ignored
        """
        if not is_cors_error(message):
            return None

        page_origin = _origin_of(getattr(self._page, "url", None))
        causes, recommendations = analyze_cors_error(message, page_origin)
        info = CorsErrorInfo(
            message=message,
            possible_causes=causes,
            recommendations=recommendations,
        )
        self._errors.append(info)
        logger.info("Captured CORS error: %s", message)

        self.printer.print_browser_error(info)
        if self.verbose:
            self.printer.log(
                "info", "Tip: use the DevTools Network tab to see full request/response headers"
            )

        if self.custom_handler is not None:
            try:
                self.custom_handler(info)
            except Exception as e:
                logger.error("Error in custom CORS handler: %s", e, exc_info=True)
        return info

    def _on_console(self, msg: Any) -> None:
        if getattr(msg, "type", None) != "error":
            return
        self.capture(str(getattr(msg, "text", "") or ""))

    def _on_page_error(self, error: Any) -> None:
        message = getattr(error, "message", None) or str(error)
        self.capture(message)

    def start(self, page: Any) -> None:
        """Subscribe to a page's console and pageerror events."""
        if self._page is not None:
            logger.warning("Browser listener is already active. Call stop() first.")
            return

        page.on("console", self._on_console)
        page.on("pageerror", self._on_page_error)
        self._page = page

        if self.verbose:
            self.printer.log("info", "Browser listener started")

    def stop(self) -> None:
        if self._page is None:
            return

        self._page.remove_listener("console", self._on_console)
        self._page.remove_listener("pageerror", self._on_page_error)
        self._page = None
        self.printer.log("info", "Browser listener stopped")

    def get_errors(self) -> List[CorsErrorInfo]:
        """Captured errors, oldest first."""
        return list(self._errors)

    def clear(self) -> None:
        self._errors.clear()


def _origin_of(url: Optional[str]) -> Optional[str]:
    if not isinstance(url, str) or "://" not in url:
        return None
    scheme, rest = url.split("://", 1)
    host = rest.split("/", 1)[0]
    return f"{scheme}://{host}" if host else None
