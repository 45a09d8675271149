"""Platform HTTP transport: one synchronous request per call"""

import logging
from typing import Optional, Protocol

import httpx

from mambu_client.api.definitions import HttpMethod
from mambu_client.config import settings
from mambu_client.domain.exceptions import TransportError

logger = logging.getLogger(__name__)

JSON_CONTENT = "application/json; charset=utf-8"
FORM_CONTENT = "application/x-www-form-urlencoded; charset=utf-8"


class UnsuccessfulResponse(Exception):
    """Server answered with a non-2xx status; body holds its error payload"""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class Transport(Protocol):
    def execute(self, url: str, method: HttpMethod, params: str = "", body: Optional[str] = None) -> str:
        """
        Send one request and return the raw response body.

        Raises:
            TransportError: network failure
            UnsuccessfulResponse: non-2xx response
        """
        ...


class HttpTransport:
    """
    httpx-backed transport.

    Encoded params travel in the query string for GET/DELETE and whenever a
    JSON body is attached; otherwise they are sent as a form body. No
    retries: each call is exactly one attempt.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        user_agent: Optional[str] = None,
    ):
        self.timeout = timeout or settings.http_timeout_seconds
        if client is None:
            username = username or settings.username
            password = password or settings.password
            client = httpx.Client(
                timeout=self.timeout,
                auth=(username, password) if username and password else None,
                headers={
                    "Accept": "application/json",
                    "User-Agent": user_agent or settings.user_agent,
                },
            )
        self._client = client

    def execute(self, url: str, method: HttpMethod, params: str = "", body: Optional[str] = None) -> str:
        headers = {}
        content = None

        if body is not None:
            headers["Content-Type"] = JSON_CONTENT
            content = body.encode("utf-8")
            if params:
                url = f"{url}?{params}"
        elif method in (HttpMethod.GET, HttpMethod.DELETE):
            if params:
                url = f"{url}?{params}"
        else:
            headers["Content-Type"] = FORM_CONTENT
            content = params.encode("utf-8")

        logger.debug("Sending platform request", extra={"method": method.value, "url": url})
        try:
            response = self._client.request(method.value, url, content=content, headers=headers)
            response.raise_for_status()
            return response.text

        except httpx.TimeoutException as e:
            raise TransportError(f"Platform API timeout after {self.timeout}s: {method.value} {url}") from e
        except httpx.HTTPStatusError as e:
            raise UnsuccessfulResponse(e.response.status_code, e.response.text) from e
        except httpx.RequestError as e:
            raise TransportError(f"Platform API unreachable: {method.value} {url}: {e}") from e

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
