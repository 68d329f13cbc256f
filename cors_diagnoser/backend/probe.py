"""Active CORS probe - replay what a browser would send and diagnose the answers."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
import logging

import httpx

from cors_diagnoser.core.analyzer import SIMPLE_METHODS, analyze_headers
from cors_diagnoser.core.models import Diagnosis

logger = logging.getLogger(__name__)

USER_AGENT = "CorsDiagnoser/0.1.0"

# Headers a browser may send cross-origin without a preflight
SAFELISTED_HEADERS = frozenset({"accept", "accept-language", "content-language", "content-type"})
SIMPLE_CONTENT_TYPES = frozenset(
    {"application/x-www-form-urlencoded", "multipart/form-data", "text/plain"}
)


class ProbeError(Exception):
    """Raised when the target could not be reached."""


@dataclass
class ProbeResult:
    url: str
    origin: str
    method: str
    preflight_status: Optional[int] = None
    status_code: Optional[int] = None
    diagnoses: List[Diagnosis] = field(default_factory=list)

    @property
    def preflight_sent(self) -> bool:
        return self.preflight_status is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "origin": self.origin,
            "method": self.method,
            "preflight_status": self.preflight_status,
            "status_code": self.status_code,
            "diagnoses": [d.to_dict() for d in self.diagnoses],
        }


def non_safelisted_headers(request_headers: Mapping[str, str]) -> List[str]:
    """Names of the headers that would force a browser to preflight."""
    names = []
    for name, value in request_headers.items():
        lowered = name.lower()
        if lowered not in SAFELISTED_HEADERS:
            names.append(lowered)
        elif lowered == "content-type":
            media_type = value.split(";", 1)[0].strip().lower()
            if media_type not in SIMPLE_CONTENT_TYPES:
                names.append(lowered)
    return names


def needs_preflight(method: str, request_headers: Mapping[str, str]) -> bool:
    return method.upper() not in SIMPLE_METHODS or bool(non_safelisted_headers(request_headers))


class CorsProbe:
    """Send browser-like cross-origin requests with httpx.

    Usable as an async context manager to share one client between probes;
    otherwise every probe opens and closes its own client.
    """

    def __init__(self, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None) -> None:
        """Initialize the probe.

        Args:
            timeout: Request timeout in seconds
            client: Pre-configured AsyncClient to use instead of an owned one
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "CorsProbe":
        if self._client is None:
            self._client = self._create_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, headers={"User-Agent": USER_AGENT})

    async def probe(
        self,
        url: str,
        origin: str,
        method: str = "GET",
        request_headers: Optional[Mapping[str, str]] = None,
    ) -> ProbeResult:
        """Probe ``url`` as a page on ``origin`` would.

        Args:
            url: Target URL
            origin: Origin to send in the Origin header
            method: Method of the actual request
            request_headers: Extra headers the page would send

        Returns:
            ProbeResult with diagnoses for the preflight (if any) followed by
            those for the actual request

        Raises:
            ProbeError: If a request fails at the transport level
        """
        method = method.upper()
        request_headers = dict(request_headers or {})
        result = ProbeResult(url=url, origin=origin, method=method)

        if self._client is not None:
            await self._run(self._client, result, request_headers)
        else:
            async with self._create_client() as client:
                await self._run(client, result, request_headers)
        return result

    async def _run(
        self,
        client: httpx.AsyncClient,
        result: ProbeResult,
        request_headers: Dict[str, str],
    ) -> None:
        if needs_preflight(result.method, request_headers):
            preflight_headers = {
                "Origin": result.origin,
                "Access-Control-Request-Method": result.method,
            }
            custom = non_safelisted_headers(request_headers)
            if custom:
                preflight_headers["Access-Control-Request-Headers"] = ", ".join(custom)

            response = await self._send(client, "OPTIONS", result.url, preflight_headers)
            result.preflight_status = response.status_code
            result.diagnoses.extend(
                analyze_headers(preflight_headers, "OPTIONS", response.headers.multi_items())
            )

        actual_headers = {**request_headers, "Origin": result.origin}
        response = await self._send(client, result.method, result.url, actual_headers)
        result.status_code = response.status_code
        result.diagnoses.extend(
            analyze_headers(actual_headers, result.method, response.headers.multi_items())
        )

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        headers: Dict[str, str],
    ) -> httpx.Response:
        logger.debug("Probing %s %s with headers %s", method, url, headers)
        try:
            return await client.request(method, url, headers=headers)
        except httpx.HTTPError as e:
            raise ProbeError(f"{method} {url} failed: {e}") from e
