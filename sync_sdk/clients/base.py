import asyncio
from typing import Any, Dict, Optional, Tuple

import httpx

from sync_sdk.clients import ClientInterface
from sync_sdk.common.error_codes import CLIENT_ERRORS, RateLimitError, TransportError
from sync_sdk.constants import HTTP_BASE_WAIT_TIME, HTTP_MAX_RETRIES, HTTP_TIMEOUT
from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)


class BaseClient(ClientInterface):
    """
    Base client for paginated HTTP sources.

    Network errors are retried with exponential backoff. Rate-limit rejections
    are never waited out here: they are raised as ``RateLimitError`` so the
    extraction can suspend and be resumed by the host. Any other unsuccessful
    response raises ``TransportError``.

    Attributes:
        credentials (Dict[str, Any]): Client credentials for authentication.

    Extending the Client:
        To handle authentication errors (401 responses), subclasses implement
        ``_handle_auth_error()``; it is called before the request is retried.
        Sources that signal rate limits other than with a 429 override
        ``_rate_limit_delay_ms()``.

        Example:
            >>> class MyClient(BaseClient):
            ...     async def _handle_auth_error(self):
            ...         await self.refresh_token()
    """

    def __init__(
        self,
        credentials: Optional[Dict[str, Any]] = None,
        max_retries: int = HTTP_MAX_RETRIES,
        base_wait_time: int = HTTP_BASE_WAIT_TIME,
        timeout: int = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the base client.

        Args:
            credentials (Optional[Dict[str, Any]]): Client credentials for authentication.
            max_retries (int): Attempts per request on network errors. Max is 10.
            base_wait_time (int): Base wait time in seconds for exponential backoff.
            timeout (int): Request timeout in seconds.
            transport (Optional[httpx.AsyncBaseTransport]): Transport override,
                e.g. ``httpx.MockTransport`` in tests.
        """
        self.credentials = credentials or {}
        self.max_retries = max_retries
        self.base_wait_time = base_wait_time
        self.timeout = timeout
        self.transport = transport

    async def load(self, credentials: Optional[Dict[str, Any]] = None) -> None:
        raise NotImplementedError("load method is not implemented")

    async def _handle_auth_error(self) -> None:
        """
        Handle authentication errors (401 Unauthorized responses).

        This method is optional. If not implemented, 401 errors will not trigger
        retries and will result in request failure.
        """
        raise NotImplementedError(
            "Subclasses must implement _handle_auth_error to handle authentication errors"
        )

    def _rate_limit_delay_ms(self, response: httpx.Response) -> Optional[int]:
        """Delay requested by a rate-limit rejection, or None if not one."""
        if response.status_code != httpx.codes.TOO_MANY_REQUESTS:
            return None
        retry_after = response.headers.get("Retry-After")
        if retry_after and retry_after.isdigit():
            return int(retry_after) * 1000
        logger.warning(
            f"Received 429 with invalid Retry-After: '{retry_after}'. Using {self.base_wait_time}s"
        )
        return self.base_wait_time * 1000

    async def _handle_http_response(
        self, response: httpx.Response, url: str, attempt: int
    ) -> Tuple[Optional[httpx.Response], bool]:
        """
        Handle HTTP response and determine if retry is needed.

        Returns:
            Tuple of (response_or_none, should_retry)

        Raises:
            RateLimitError: If the source rejected the request for rate.
            TransportError: For any other unsuccessful response.
        """
        try:
            status_phrase = httpx.codes.get_reason_phrase(response.status_code)
        except ValueError:
            status_phrase = f"Unknown Status {response.status_code}"

        if response.is_success:
            return response, False

        delay_ms = self._rate_limit_delay_ms(response)
        if delay_ms is not None:
            logger.warning(
                f"Received {response.status_code} {status_phrase} (url={url}), source asks to wait {delay_ms} ms"
            )
            raise RateLimitError(delay_ms, status_code=response.status_code)

        if response.status_code == httpx.codes.UNAUTHORIZED:
            logger.warning(
                f"Received 401 {status_phrase} (attempt {attempt + 1}/{self.max_retries}) (url={url})"
            )
            try:
                await self._handle_auth_error()
                logger.info("Auth error handler called successfully, retrying request")
                return None, True
            except NotImplementedError:
                raise TransportError(
                    f"Authentication failed for {url}",
                    status_code=response.status_code,
                    error_code=CLIENT_ERRORS["AUTH_ERROR"],
                ) from None

        logger.error(
            f"Request failed with status {response.status_code} {status_phrase} (url={url}): {response.text}"
        )
        raise TransportError(
            f"Request failed with status {response.status_code} {status_phrase} (url={url})",
            status_code=response.status_code,
        )

    async def execute_http_get_request(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Perform an HTTP GET request, retrying network errors.

        Args:
            url (str): The URL to make the GET request to
            headers (Optional[Dict[str, str]]): HTTP headers to include in the request
            params (Optional[Dict[str, Any]]): Query parameters to include in the request

        Returns:
            httpx.Response: The successful response.

        Raises:
            RateLimitError: If the source rejected the request for rate.
            TransportError: If the request failed or every attempt errored.

        Example:
            >>> response = await client.execute_http_get_request(
            ...     url="https://api.example.com/data",
            ...     headers={"Authorization": "Bearer token"},
            ...     params={"per_page": 100}
            ... )
        """
        attempts = min(self.max_retries, 10)
        last_error: Optional[Exception] = None
        attempt = 0
        while attempt < attempts:
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self.transport
                ) as client:
                    response = await client.get(url, headers=headers, params=params)
            except httpx.RequestError as e:
                last_error = e
                log_level = logger.warning if attempt < attempts - 1 else logger.error
                log_level(
                    f"Network error on attempt {attempt + 1}/{attempts} (url={url}): {str(e)}"
                )
                await asyncio.sleep(self.base_wait_time * 2**attempt)
                attempt += 1
                continue

            result, should_retry = await self._handle_http_response(
                response, url, attempt
            )
            if should_retry:
                attempt += 1
                continue
            return result

        raise TransportError(f"All {attempts} attempts failed for URL: {url}: {last_error}")
