"""
HTTP prober for ``/api/tags`` inventory endpoints.

A probe never raises: network errors, bad status codes, malformed bodies
and empty inventories all come back as an unhealthy ProbeResult. Only
transport failures are retried; a response that arrived with a non-200
status is a definitive answer.
"""

import json
import threading
import time
from typing import Callable, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import HTTPError, ReadTimeoutError

from ollama_checker.config import ProbeConfig
from ollama_checker.concurrent.models import ModelDescriptor, ProbeResult
from ollama_checker.utils.logging import get_business_logger


TAGS_PATH = "/api/tags"

ERROR_INVALID_FORMAT = "invalid response format"
ERROR_NO_MODELS = "no available models"
ERROR_NO_VALID_MODELS = "no valid models"
ERROR_CANCELLED = "probe cancelled"

READ_CHUNK_BYTES = 8192

# Waits ``delay`` seconds; returns True when the wait was cut short by cancellation.
Sleeper = Callable[[float, Optional[threading.Event]], bool]


def default_sleeper(delay: float, cancel_event: Optional[threading.Event] = None) -> bool:
    """Sleep for ``delay`` seconds, waking early if ``cancel_event`` is set."""
    if cancel_event is None:
        time.sleep(delay)
        return False
    return cancel_event.wait(delay)


def tags_url(endpoint: str) -> str:
    """Build the inventory URL for an endpoint base URL."""
    return endpoint.rstrip('/') + TAGS_PATH


def parse_inventory(body: bytes) -> List[ModelDescriptor]:
    """
    Decode an ``/api/tags`` body into model descriptors.

    Raises:
        ValueError: If the body is not JSON or not shaped like an inventory
    """
    payload = json.loads(body)
    if not isinstance(payload, dict):
        raise ValueError("inventory must be a JSON object")

    models = payload.get("models")
    if models is None:
        return []
    if not isinstance(models, list):
        raise ValueError("'models' must be an array")

    return [ModelDescriptor.from_dict(item) for item in models]


class Prober:
    """Probes one endpoint with retry and classifies the response."""

    def __init__(self,
                 config: Optional[ProbeConfig] = None,
                 session: Optional[requests.Session] = None,
                 sleeper: Optional[Sleeper] = None,
                 pool_size: int = 10,
                 logger=None,
                 wire_logger=None):
        """
        Initialize prober.

        Args:
            config: Probe configuration
            session: HTTP session shared by all workers (one is created if omitted)
            sleeper: Backoff wait function
            pool_size: Connection pool size for the created session
            logger: Event logger (success/error lines)
            wire_logger: Network trace logger (raw request/response)
        """
        self.config = config or ProbeConfig()
        self.session = session or self._create_session(pool_size)
        self.sleeper = sleeper or default_sleeper
        self.logger = logger or get_business_logger('probe')
        self.wire_logger = wire_logger or get_business_logger('network')

    def _create_session(self, pool_size: int) -> requests.Session:
        """Create requests session with a connection pool sized for the workers."""
        session = requests.Session()

        # Retries are driven by probe(); the adapter must not retry on its own
        adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size, max_retries=0)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def backoff_delay(self, retry: int) -> float:
        """Linear backoff: the n-th retry waits ``n * retry_backoff`` seconds."""
        return retry * self.config.retry_backoff

    def probe(self, endpoint: str, cancel_event: Optional[threading.Event] = None) -> ProbeResult:
        """
        Probe one endpoint.

        Args:
            endpoint: Endpoint base URL
            cancel_event: Run-wide cancellation signal, checked between attempts

        Returns:
            Classified probe result
        """
        start_time = time.monotonic()

        def elapsed() -> float:
            return time.monotonic() - start_time

        url = tags_url(endpoint)
        try:
            prepared = self.session.prepare_request(requests.Request(
                "GET",
                url,
                headers={
                    "Accept": "application/json",
                    "Accept-Encoding": "identity",
                    "User-Agent": self.config.user_agent,
                }
            ))
        except (requests.exceptions.RequestException, ValueError) as e:
            self.logger.error(f"[ERROR] Failed to build request: {endpoint} ({e})")
            return ProbeResult.failure(endpoint, f"invalid request: {e}", elapsed=elapsed())

        attempts = 0
        last_error: Optional[str] = None

        for retry in range(self.config.max_retries + 1):
            if retry > 0:
                delay = self.backoff_delay(retry)
                self.logger.warning(
                    f"[RETRY] {endpoint} retry {retry}/{self.config.max_retries} in {delay:.2f}s ({last_error})"
                )
                if self.sleeper(delay, cancel_event):
                    self.logger.info(f"[CANCEL] Probe cancelled during backoff: {endpoint}")
                    return ProbeResult.failure(endpoint, ERROR_CANCELLED,
                                               attempts=attempts, elapsed=elapsed())

            attempts += 1
            self._trace_request(endpoint, prepared)
            attempt_deadline = time.monotonic() + self.config.request_timeout

            try:
                response = self.session.send(prepared, timeout=self.config.request_timeout, stream=True)
                status_code, body = self._read_response(endpoint, response, attempt_deadline)
            except requests.exceptions.RequestException as e:
                last_error = str(e)
                self.logger.error(f"[ERROR] Network error: {endpoint} ({e})")
                continue

            return self._classify(endpoint, status_code, body, attempts, elapsed)

        return ProbeResult.failure(endpoint, last_error or "request failed",
                                   attempts=attempts, elapsed=elapsed())

    def _classify(self, endpoint: str, status_code: int, body: bytes, attempts: int,
                  elapsed: Callable[[], float]) -> ProbeResult:
        """Classify a fully read response."""
        preview = self._preview(body)
        common = {"status_code": status_code, "attempts": attempts}

        if status_code != 200:
            self.logger.error(f"[ERROR] Unexpected status: {endpoint} ({status_code})\nbody: {preview}")
            return ProbeResult.failure(endpoint, f"HTTP {status_code}: {preview}",
                                       elapsed=elapsed(), **common)

        try:
            descriptors = parse_inventory(body)
        except ValueError as e:
            self.logger.error(f"[ERROR] Failed to decode inventory: {endpoint} ({e})\nbody: {preview}")
            return ProbeResult.failure(endpoint, ERROR_INVALID_FORMAT, elapsed=elapsed(), **common)

        if not descriptors:
            self.logger.info(f"[EMPTY] No models: {endpoint}")
            return ProbeResult.failure(endpoint, ERROR_NO_MODELS, elapsed=elapsed(), **common)

        names = [d.name for d in descriptors if d.is_valid(self.config.require_digest)]
        if not names:
            self.logger.info(f"[EMPTY] No valid models: {endpoint} ({len(descriptors)} entries)")
            return ProbeResult.failure(endpoint, ERROR_NO_VALID_MODELS, elapsed=elapsed(), **common)

        self.logger.info(f"[SUCCESS] Healthy endpoint: {endpoint} (models: {len(names)})")
        return ProbeResult.success(endpoint, names, elapsed=elapsed(), **common)

    def _read_response(self, endpoint: str, response: requests.Response,
                       deadline: float) -> Tuple[int, bytes]:
        """
        Read the whole body before ``deadline`` and close the response.

        The socket timeout only bounds the gap between reads, so the body is
        pulled with ``read1`` (whatever one socket read returns) and the
        overall deadline is checked after every chunk.

        Raises:
            requests.exceptions.Timeout: If the body is not complete by the deadline
            requests.exceptions.ConnectionError: If the connection fails mid-body
        """
        chunks = []
        try:
            while True:
                if time.monotonic() >= deadline:
                    raise requests.exceptions.Timeout(
                        f"read timed out: body not complete after {self.config.request_timeout}s"
                    )
                chunk = response.raw.read1(READ_CHUNK_BYTES)
                if not chunk:
                    break
                chunks.append(chunk)
        except ReadTimeoutError as e:
            raise requests.exceptions.Timeout(str(e))
        except (HTTPError, OSError) as e:
            raise requests.exceptions.ConnectionError(str(e))
        finally:
            response.close()

        body = b"".join(chunks)
        self._trace_response(endpoint, response, body)
        return response.status_code, body

    def _preview(self, body: bytes) -> str:
        return body[:self.config.body_preview_bytes].decode('utf-8', errors='replace')

    def _trace_request(self, endpoint: str, prepared: requests.PreparedRequest) -> None:
        headers = "\n".join(f"{k}: {v}" for k, v in prepared.headers.items())
        self.wire_logger.debug(f"[NET] request -> {endpoint}\n{prepared.method} {prepared.url}\n{headers}")

    def _trace_response(self, endpoint: str, response: requests.Response, body: bytes) -> None:
        headers = "\n".join(f"{k}: {v}" for k, v in response.headers.items())
        self.wire_logger.debug(
            f"[NET] response <- {endpoint}\n{response.status_code} {response.reason}\n{headers}\n\n{self._preview(body)}"
        )

    def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
