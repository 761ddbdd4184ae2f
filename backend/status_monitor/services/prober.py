"""Prober service - performs one HTTP GET health check per endpoint."""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..models import Endpoint
from ..models.ping_log import PING_FAILURE, PING_SUCCESS, PING_TIMEOUT

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n... [Response truncated - exceeded {limit} character limit]"


@dataclass
class ProbeResult:
    """Outcome of one probe. Failures are values here, not exceptions."""
    endpoint_id: int
    status: str  # success, failure, timeout
    response_time_ms: int
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    response_body: Optional[str] = None
    response_headers: Optional[Dict[str, str]] = None

    @property
    def is_success(self) -> bool:
        return self.status == PING_SUCCESS

    def as_ping_log_fields(self) -> Dict[str, Any]:
        """Column values for the PingLog row recording this outcome."""
        return {
            "endpoint_id": self.endpoint_id,
            "status": self.status,
            "status_code": self.status_code,
            "response_time_ms": self.response_time_ms,
            "error_message": self.error_message,
            "response_body": self.response_body,
            "response_headers": self.response_headers,
        }


def truncate_body(body: Optional[str], max_length: int) -> Optional[str]:
    """Cap a captured response body, appending a marker when cut."""
    if body is None:
        return None
    if len(body) > max_length:
        return body[:max_length] + TRUNCATION_MARKER.format(limit=max_length)
    return body


class ProberService:
    """Issues single GET requests against endpoints and classifies the outcome.

    Never retries; the next scheduler tick is the retry.
    """

    def __init__(
        self,
        max_body_chars: int = settings.max_response_body_chars,
        user_agent: str = settings.user_agent,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.max_body_chars = max_body_chars
        self.user_agent = user_agent
        # Tests inject an httpx.MockTransport here
        self._transport = transport

    async def probe(self, endpoint: Endpoint) -> ProbeResult:
        """Probe one endpoint with a hard deadline of its configured timeout."""
        timeout = max(endpoint.timeout_ms or 0, 1) / 1000
        start = time.monotonic()

        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                transport=self._transport,
                headers={"User-Agent": self.user_agent, "Accept": "*/*"},
            ) as client:
                # httpx timeouts are per phase; wait_for bounds the whole exchange
                response = await asyncio.wait_for(client.get(endpoint.url), timeout=timeout)

            response_time = self._elapsed_ms(start)

            if response.status_code == endpoint.expected_status_code:
                return ProbeResult(
                    endpoint_id=endpoint.id,
                    status=PING_SUCCESS,
                    status_code=response.status_code,
                    response_time_ms=response_time,
                )

            return ProbeResult(
                endpoint_id=endpoint.id,
                status=PING_FAILURE,
                status_code=response.status_code,
                response_time_ms=response_time,
                error_message=(
                    f"Unexpected status code: {response.status_code} "
                    f"(expected {endpoint.expected_status_code})"
                ),
                response_body=self._read_body(response),
                response_headers=dict(response.headers),
            )

        except (asyncio.TimeoutError, httpx.TimeoutException):
            return ProbeResult(
                endpoint_id=endpoint.id,
                status=PING_TIMEOUT,
                response_time_ms=self._elapsed_ms(start),
                error_message=f"Request timeout after {timeout:g}s",
            )
        except httpx.HTTPError as e:
            # DNS, TLS, refused connections and protocol errors
            return ProbeResult(
                endpoint_id=endpoint.id,
                status=PING_FAILURE,
                response_time_ms=self._elapsed_ms(start),
                error_message=str(e) or type(e).__name__,
            )
        except Exception as e:
            logger.exception(f"Unexpected error probing {endpoint.url}")
            return ProbeResult(
                endpoint_id=endpoint.id,
                status=PING_FAILURE,
                response_time_ms=self._elapsed_ms(start),
                error_message=str(e) or "Connection failed",
            )

    def _read_body(self, response: httpx.Response) -> str:
        try:
            return truncate_body(response.text, self.max_body_chars)
        except Exception as e:
            return f"[Error reading response body: {e}]"

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
