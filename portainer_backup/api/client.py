"""
HTTP client for the Portainer API.

Wraps a requests.Session with:
- the X-API-Key header on every call
- connect/read timeouts
- urllib3 retries with a fixed delay between attempts
- optional TLS verification bypass for self-signed certificates
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


logger = logging.getLogger(__name__)

# Statuses curl treats as transient when --retry-all-errors is off
TRANSIENT_STATUSES = frozenset({408, 429, 500, 502, 503, 504})
ALL_ERROR_STATUSES = frozenset(range(400, 600))

DOWNLOAD_CHUNK_SIZE = 64 * 1024


class TransportError(Exception):
    """Raised when an API call fails after exhausting retries."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FixedDelayRetry(Retry):
    """Retry that sleeps a constant delay between attempts instead of backing off."""

    def __init__(self, *args, retry_delay: float = 0, **kwargs):
        super().__init__(*args, **kwargs)
        self.retry_delay = retry_delay

    def new(self, **kwargs):
        retry = super().new(**kwargs)
        retry.retry_delay = self.retry_delay
        return retry

    def get_backoff_time(self) -> float:
        return self.retry_delay


def build_retry(retries: int, retry_delay: float, retry_all_errors: bool) -> FixedDelayRetry:
    """
    Build the retry policy mounted on the session.

    Args:
        retries: Number of retries after the first attempt
        retry_delay: Seconds to wait between attempts
        retry_all_errors: Retry any HTTP error status and non-idempotent
            methods too, not only transient network failures

    Returns:
        FixedDelayRetry instance
    """
    if retry_all_errors:
        return FixedDelayRetry(
            total=retries,
            connect=retries,
            read=retries,
            status=retries,
            other=retries,
            status_forcelist=ALL_ERROR_STATUSES,
            allowed_methods=None,
            raise_on_status=False,
            respect_retry_after_header=False,
            retry_delay=retry_delay,
        )
    return FixedDelayRetry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        status_forcelist=TRANSIENT_STATUSES,
        raise_on_status=False,
        respect_retry_after_header=False,
        retry_delay=retry_delay,
    )


@dataclass(frozen=True)
class StackFileResponse:
    """Body of GET /api/stacks/{id}/file along with its declared content type"""
    text: str
    content_type: str = ''

    @property
    def declares_json(self) -> bool:
        return 'json' in self.content_type.lower()


class PortainerClient:
    """
    Authenticated client for the handful of Portainer endpoints a backup needs.
    """

    def __init__(self, base_url: str, api_key: str, connect_timeout: float = 10,
                 max_time: float = 120, retries: int = 3, retry_delay: float = 2,
                 retry_all_errors: bool = True, verify_tls: bool = True,
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            base_url: Portainer URL, e.g. https://portainer.example.com
            api_key: Portainer access token (sent as X-API-Key)
            connect_timeout: Seconds allowed to establish a connection
            max_time: Seconds allowed for a response once connected
            retries: Retry count per request
            retry_delay: Seconds between retries
            retry_all_errors: Also retry HTTP error statuses
            verify_tls: Validate the server certificate
            session: Optional pre-built session (mostly for tests)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = (connect_timeout, max_time)
        self.verify_tls = verify_tls

        self.session = session or requests.Session()
        self.session.headers.update({
            'X-API-Key': api_key,
            'Accept': 'application/json',
        })
        self.session.verify = verify_tls

        adapter = HTTPAdapter(max_retries=build_retry(retries, retry_delay, retry_all_errors))
        self.session.mount('http://', adapter)
        self.session.mount('https://', adapter)

        if not verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    @classmethod
    def from_settings(cls, settings) -> 'PortainerClient':
        return cls(
            base_url=settings.portainer_url,
            api_key=settings.api_key,
            connect_timeout=settings.connect_timeout,
            max_time=settings.max_time,
            retries=settings.retries,
            retry_delay=settings.retry_delay,
            retry_all_errors=settings.retry_all_errors,
            verify_tls=settings.verify_tls,
        )

    def url(self, path: str) -> str:
        return f'{self.base_url}{path}'

    def request(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None,
                stream: bool = False) -> requests.Response:
        """
        Issue a request and return the successful response.

        Raises:
            TransportError: On transport failure or a non-2xx status
        """
        url = self.url(path)
        headers = {}
        if json_body is not None:
            headers['Content-Type'] = 'application/json; charset=utf-8'

        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                data=json.dumps(json_body).encode('utf-8') if json_body is not None else None,
                headers=headers,
                timeout=self.timeout,
                stream=stream,
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}")

        if not response.ok:
            response.close()
            raise TransportError(
                f"{method} {path} failed: HTTP {response.status_code} {response.reason}",
                status_code=response.status_code
            )
        return response

    def get_text(self, path: str) -> str:
        """GET a path and return the body as text."""
        response = self.request('GET', path)
        return _decode_text(response)

    def get_json(self, path: str) -> Any:
        """
        GET a path and decode the JSON body.

        Raises:
            TransportError: On failure or if the body is not valid JSON
        """
        text = self.get_text(path)
        try:
            return json.loads(text)
        except ValueError as e:
            raise TransportError(f"GET {path} returned invalid JSON: {e}")

    def get_stack_file(self, stack_id: int) -> StackFileResponse:
        """Fetch a stack's compose file as returned by the API."""
        response = self.request('GET', f'/api/stacks/{stack_id}/file')
        return StackFileResponse(
            text=_decode_text(response),
            content_type=response.headers.get('Content-Type', '')
        )

    def post_json_download(self, path: str, json_body: Dict[str, Any], destination) -> Path:
        """
        POST a JSON body and stream the response verbatim to a file.

        Args:
            path: API path
            json_body: Request body
            destination: File to write

        Returns:
            Path of the written file

        Raises:
            TransportError: On failure; a partially written file is removed
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        response = self.request('POST', path, json_body=json_body, stream=True)
        try:
            with open(destination, 'wb') as f:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        except (requests.RequestException, OSError) as e:
            destination.unlink(missing_ok=True)
            raise TransportError(f"POST {path} download failed: {e}")
        finally:
            response.close()

        return destination

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def _decode_text(response: requests.Response) -> str:
    # Raw compose files come back without a charset; requests would assume latin-1
    if 'charset' not in response.headers.get('Content-Type', '').lower():
        response.encoding = 'utf-8'
    return response.text
