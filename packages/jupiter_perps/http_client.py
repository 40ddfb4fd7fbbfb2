"""HTTP client shared by the Solana RPC and Telegram sinks."""

import logging
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)


class HttpClient:
    """requests.Session wrapper bound to one base URL.

    Requests are sent exactly once.  A failed fetch abandons the poll cycle
    and the next scheduled cycle is the retry.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 20.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Base URL for all requests
            timeout: Request timeout in seconds
            session: Pre-built session (tests inject fakes here)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def _url(self, path: str) -> str:
        if not path:
            return self.base_url
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str = "", **kwargs: Any) -> requests.Response:
        """
        Send one request.

        Raises:
            requests.RequestException: If the request fails
        """
        url = self._url(path)
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.debug(f"{type(e).__name__} on {method} {url}: {e}")
            raise

    def post(
        self,
        path: str,
        json: Any = None,
        headers: Optional[dict] = None,
    ) -> requests.Response:
        return self.request("POST", path, json=json, headers=headers)

    def post_json(
        self,
        path: str,
        json: Any = None,
        headers: Optional[dict] = None,
    ) -> Any:
        """
        Make a POST request with a JSON body and return the JSON response.

        Raises:
            requests.RequestException: If request fails
            ValueError: If response is not valid JSON
        """
        response = self.post(path, json=json, headers=headers)
        response.raise_for_status()
        return response.json()
