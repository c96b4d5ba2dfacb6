"""
HTTP transport to the LCD REST gateway.
"""
import logging
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import ChainConfig
from .exceptions import LcdResponseError, TransportFailure

logger = logging.getLogger(__name__)

_REDACTED_FIELDS = ("tx_bytes", "private_key", "viewing_key", "key")


def sanitize(payload: Any) -> Any:
    """
    Replace secrets and bulky binary fields with their length, for logging.
    """
    if isinstance(payload, dict):
        result = {}
        for k, v in payload.items():
            if k in _REDACTED_FIELDS and isinstance(v, str):
                result[k] = f"[REDACTED - {len(v)} chars]"
            else:
                result[k] = sanitize(v)
        return result
    if isinstance(payload, list):
        return [sanitize(v) for v in payload]
    return payload


class LcdTransport:
    """
    JSON-over-HTTP session bound to one gateway.

    Failures are reported, never retried, except that idempotent GETs may
    be retried by urllib3 when ChainConfig.retry_count is above zero.
    """

    def __init__(
        self,
        config: ChainConfig,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.base_url = config.base_url
        self.timeout = config.timeout
        self.logger = logger or logging.getLogger(__name__)

        self.session = session or requests.Session()
        if session is None:
            retries = Retry(
                total=config.retry_count,
                backoff_factor=0.5,
                status_forcelist=[502, 503, 504],
                allowed_methods=["GET"],
                raise_on_status=False,
            )
            self.session.mount("http://", HTTPAdapter(max_retries=retries))
            self.session.mount("https://", HTTPAdapter(max_retries=retries))

        # Sent per request; a caller-supplied session is left untouched
        self.headers = {"Accept": "application/json"}
        if config.api_key:
            self.headers["Authorization"] = f"Bearer {config.api_key}"

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", path, params=params)

    def post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", path, body=body)

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Send a request and decode its JSON response.

        Args:
            method: HTTP method
            path: Path below the base URL, starting with "/"
            params: Query string parameters
            body: JSON body

        Returns:
            Decoded JSON response

        Raises:
            TransportFailure: On connection errors, timeouts or non-JSON bodies
            LcdResponseError: When the gateway answers with a non-2xx status
        """
        url = f"{self.base_url}{path}"
        self.logger.debug(f"{method} {url} params={params} body={sanitize(body)}")

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=body,
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            self.logger.error(f"Request to {url} timed out: {e}")
            raise TransportFailure(f"Request to {url} timed out: {str(e)}") from e
        except requests.RequestException as e:
            self.logger.error(f"Request to {url} failed: {e}")
            raise TransportFailure(f"Request to {url} failed: {str(e)}") from e

        try:
            data = response.json()
        except ValueError as e:
            if response.status_code >= 400:
                raise LcdResponseError(
                    f"Gateway returned HTTP {response.status_code}: {response.text[:200]}",
                    status_code=response.status_code,
                ) from e
            self.logger.error(f"Invalid JSON response from {url}: {e}")
            raise TransportFailure(f"Invalid JSON response from {url}: {str(e)}") from e

        if response.status_code >= 400:
            error_code = data.get("code") if isinstance(data, dict) else None
            message = data.get("message", "") if isinstance(data, dict) else ""
            self.logger.warning(f"Gateway returned HTTP {response.status_code} for {url}: {message}")
            raise LcdResponseError(
                f"Gateway returned HTTP {response.status_code}: {message or data}",
                status_code=response.status_code,
                error_code=error_code,
                body=data,
            )

        if not isinstance(data, dict):
            raise TransportFailure(f"Unexpected response type from {url}: {type(data).__name__}")
        return data

    def close(self) -> None:
        self.session.close()
