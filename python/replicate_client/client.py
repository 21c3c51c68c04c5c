"""
Replicate API Client SDK

Provides synchronous and asynchronous clients for creating, listing,
fetching and canceling predictions over HTTP.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Iterator, Optional, Tuple

import aiohttp

from ._version import __version__
from .config import ClientConfig
from .errors import PredictionError, ReplicateError, ServerError
from .pagination import Page
from .predictions import (
    Prediction,
    PredictionInput,
    Webhook,
    build_prediction_body,
    resolve_create_target,
)

logger = logging.getLogger(__name__)

USER_AGENT = f"replicate-client-python/{__version__}"

# Failures of a single call that get wrapped with the operation name.
_CALL_ERRORS: Tuple[type, ...] = (ReplicateError, OSError, ValueError)
_ASYNC_CALL_ERRORS: Tuple[type, ...] = _CALL_ERRORS + (aiohttp.ClientError, asyncio.TimeoutError)


@dataclass
class HTTPRequest:
    """A request ready to be sent by a transport."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


def _server_error(status_code: int, body: str) -> ServerError:
    """Build a ServerError from an error response body."""
    title = None
    message = body
    try:
        error_json = json.loads(body)
    except json.JSONDecodeError:
        error_json = None
    if isinstance(error_json, dict):
        message = error_json.get("detail") or error_json.get("error") or body
        title = error_json.get("title")
    return ServerError(status_code, message, title=title)


def _status_text(prediction: Prediction) -> str:
    return str(getattr(prediction.status, "value", prediction.status))


class _BaseClient:
    """Request construction shared by Client and AsyncClient."""

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        config: Optional[ClientConfig] = None,
    ):
        config = config or ClientConfig.from_env()
        self.api_token = api_token if api_token is not None else config.api_token
        self.base_url = (base_url or config.base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.timeout
        self.config = config

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    def _new_request(self, method: str, path: str, body: Optional[bytes] = None) -> HTTPRequest:
        """
        Build a request for ``path``.

        ``path`` is either relative to the base URL or an absolute URL
        (as returned in pagination cursors).

        Raises:
            ValueError: If the resulting URL is not an http(s) URL.
        """
        if path.startswith(("http://", "https://")):
            url = path
        else:
            url = f"{self.base_url}{path}"

        parts = urllib.parse.urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"invalid request URL: {url!r}")

        return HTTPRequest(method=method, url=url, headers=self._headers(), body=body)

    def _create_prediction_request(
        self,
        path: str,
        data: Optional[Dict[str, Any]],
        inputs: PredictionInput,
        webhook: Optional[Webhook],
        stream: bool,
    ) -> HTTPRequest:
        body = build_prediction_body(data, inputs, webhook=webhook, stream=stream)
        try:
            return self._new_request("POST", path, body)
        except ValueError as e:
            raise PredictionError(f"failed to create prediction request: {e}") from e


class Client(_BaseClient):
    """
    Synchronous HTTP client for the predictions API.

    Example:
        client = Client(api_token="r8_...")

        prediction = client.create_prediction(
            "stability-ai/sdxl",
            {"prompt": "an astronaut riding a horse"},
        )
        prediction = client.wait(prediction)
        print(prediction.output)
    """

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        config: Optional[ClientConfig] = None,
    ):
        """
        Initialize the client.

        Unset arguments fall back to ``config``, which itself defaults to
        :meth:`ClientConfig.from_env`.

        Args:
            api_token: API token sent as a bearer token
            base_url: Base URL of the API (e.g., "https://api.replicate.com/v1")
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts for requests that fail to connect
            retry_delay: Delay between retries in seconds
            config: Settings to use for anything not passed explicitly
        """
        super().__init__(api_token=api_token, base_url=base_url, timeout=timeout, config=config)
        self.max_retries = max_retries if max_retries is not None else self.config.max_retries
        self.retry_delay = retry_delay if retry_delay is not None else self.config.retry_delay

    def _do(self, request: HTTPRequest) -> bytes:
        """Send ``request`` and return the response body."""
        last_error = None
        attempts = max(self.max_retries, 1)

        for attempt in range(attempts):
            logger.debug("%s %s (attempt %d/%d)", request.method, request.url, attempt + 1, attempts)
            try:
                req = urllib.request.Request(
                    request.url,
                    data=request.body,
                    headers=request.headers,
                    method=request.method
                )
                with urllib.request.urlopen(req, timeout=self.timeout) as response:
                    return response.read()

            except urllib.error.HTTPError as e:
                raise _server_error(e.code, e.read().decode("utf-8", errors="replace"))

            except urllib.error.URLError as e:
                last_error = e
                if attempt < attempts - 1:
                    logger.debug("Request to %s failed: %s; retrying", request.url, e.reason)
                    time.sleep(self.retry_delay * (attempt + 1))

        logger.warning("Giving up on %s after %d attempts", request.url, attempts)
        raise ConnectionError(f"Failed to connect to server: {last_error}")

    def _fetch(self, method: str, path: str) -> bytes:
        return self._do(self._new_request(method, path))

    def _fetch_prediction(
        self,
        action: str,
        method: str,
        path: str,
        prediction: Optional[Prediction] = None,
    ) -> Prediction:
        prediction = prediction if prediction is not None else Prediction()
        try:
            return prediction.load_json(self._fetch(method, path))
        except _CALL_ERRORS as e:
            raise PredictionError(f"failed to {action} prediction: {e}") from e

    def create_prediction(
        self,
        identifier: str,
        inputs: PredictionInput,
        webhook: Optional[Webhook] = None,
        stream: bool = False,
    ) -> Prediction:
        """
        Create a prediction.

        Args:
            identifier: ``owner/name`` to run a model's latest version,
                or ``owner/name:version`` / a bare version id
            inputs: Model inputs. File values are replaced in this
                mapping by their URLs.
            webhook: Optional callback for prediction events
            stream: Request a streaming-capable prediction

        Returns:
            The prediction as accepted by the server

        Raises:
            PredictionError: If the request could not be built or sent
        """
        path, data = resolve_create_target(identifier)
        request = self._create_prediction_request(path, data, inputs, webhook, stream)
        try:
            return Prediction.from_json(self._do(request))
        except _CALL_ERRORS as e:
            raise PredictionError(f"failed to create prediction: {e}") from e

    def list_predictions(self) -> Page[Prediction]:
        """Get the first page of predictions, most recent first."""
        return self._list_page("/predictions")

    def _list_page(self, path: str) -> Page[Prediction]:
        try:
            return Page.from_json(self._fetch("GET", path), Prediction.from_json)
        except _CALL_ERRORS as e:
            raise PredictionError(f"failed to list predictions: {e}") from e

    def iter_predictions(self) -> Iterator[Prediction]:
        """Iterate over all predictions, following pagination cursors."""
        page = self.list_predictions()
        while True:
            yield from page.results
            if not page.has_next:
                return
            page = self._list_page(page.next)

    def get_prediction(self, id: str) -> Prediction:
        """Get the current state of a prediction."""
        return self._fetch_prediction("get", "GET", f"/predictions/{id}")

    def cancel_prediction(self, id: str) -> Prediction:
        """
        Cancel a running prediction.

        Returns:
            The prediction as it stands right after the cancel request,
            which may not be terminal yet
        """
        return self._fetch_prediction("cancel", "POST", f"/predictions/{id}/cancel")

    def wait(
        self,
        prediction: Prediction,
        poll_interval: float = 1.0,
        timeout: Optional[float] = None
    ) -> Prediction:
        """
        Poll a prediction until it succeeds, fails or is canceled.

        The given prediction is updated in place.

        Args:
            prediction: Prediction to wait for
            poll_interval: Time between fetches in seconds
            timeout: Maximum time to wait in seconds (None = no limit)

        Returns:
            The same prediction, now terminal

        Raises:
            TimeoutError: If timeout elapses first
            PredictionError: If fetching the prediction fails
        """
        start = time.time()
        while not prediction.is_terminal:
            if timeout is not None and time.time() - start >= timeout:
                raise TimeoutError(
                    f"prediction {prediction.id} still {_status_text(prediction)} after {timeout}s"
                )
            time.sleep(poll_interval)
            self._fetch_prediction("get", "GET", f"/predictions/{prediction.id}", prediction)
        return prediction


class AsyncClient(_BaseClient):
    """
    Asynchronous HTTP client for the predictions API.

    Example:
        async with AsyncClient(api_token="r8_...") as client:
            prediction = await client.create_prediction(
                "meta/llama-2-70b-chat",
                {"prompt": "hello"},
            )
            prediction = await client.wait(prediction)

    Cancelling the awaiting task aborts the request in flight; the
    resulting ``asyncio.CancelledError`` is not wrapped.
    """

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_connections: int = 100,
        config: Optional[ClientConfig] = None,
    ):
        """
        Initialize the async client.

        Args:
            api_token: API token sent as a bearer token
            base_url: Base URL of the API
            timeout: Request timeout in seconds
            max_connections: Maximum concurrent connections
            config: Settings to use for anything not passed explicitly
        """
        super().__init__(api_token=api_token, base_url=base_url, timeout=timeout, config=config)
        self.max_connections = max_connections
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "AsyncClient":
        """Enter async context manager."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager."""
        await self.close()

    async def _ensure_session(self):
        """Ensure session is created."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                connector=aiohttp.TCPConnector(limit=self.max_connections)
            )

    async def close(self):
        """Close the client session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _do(self, request: HTTPRequest) -> bytes:
        """Send ``request`` and return the response body."""
        await self._ensure_session()
        logger.debug("%s %s", request.method, request.url)

        async with self._session.request(
            request.method,
            request.url,
            data=request.body,
            headers=request.headers
        ) as response:
            body = await response.read()

            if response.status >= 400:
                raise _server_error(response.status, body.decode("utf-8", errors="replace"))

            return body

    async def _fetch(self, method: str, path: str) -> bytes:
        return await self._do(self._new_request(method, path))

    async def _fetch_prediction(
        self,
        action: str,
        method: str,
        path: str,
        prediction: Optional[Prediction] = None,
    ) -> Prediction:
        prediction = prediction if prediction is not None else Prediction()
        try:
            return prediction.load_json(await self._fetch(method, path))
        except _ASYNC_CALL_ERRORS as e:
            raise PredictionError(f"failed to {action} prediction: {e}") from e

    async def create_prediction(
        self,
        identifier: str,
        inputs: PredictionInput,
        webhook: Optional[Webhook] = None,
        stream: bool = False,
    ) -> Prediction:
        """Create a prediction. See :meth:`Client.create_prediction`."""
        path, data = resolve_create_target(identifier)
        request = self._create_prediction_request(path, data, inputs, webhook, stream)
        try:
            return Prediction.from_json(await self._do(request))
        except _ASYNC_CALL_ERRORS as e:
            raise PredictionError(f"failed to create prediction: {e}") from e

    async def list_predictions(self) -> Page[Prediction]:
        """Get the first page of predictions."""
        return await self._list_page("/predictions")

    async def _list_page(self, path: str) -> Page[Prediction]:
        try:
            return Page.from_json(await self._fetch("GET", path), Prediction.from_json)
        except _ASYNC_CALL_ERRORS as e:
            raise PredictionError(f"failed to list predictions: {e}") from e

    async def iter_predictions(self) -> AsyncIterator[Prediction]:
        """Iterate over all predictions, following pagination cursors."""
        page = await self.list_predictions()
        while True:
            for prediction in page.results:
                yield prediction
            if not page.has_next:
                return
            page = await self._list_page(page.next)

    async def get_prediction(self, id: str) -> Prediction:
        """Get the current state of a prediction."""
        return await self._fetch_prediction("get", "GET", f"/predictions/{id}")

    async def cancel_prediction(self, id: str) -> Prediction:
        """Cancel a running prediction."""
        return await self._fetch_prediction("cancel", "POST", f"/predictions/{id}/cancel")

    async def wait(
        self,
        prediction: Prediction,
        poll_interval: float = 1.0,
        timeout: Optional[float] = None
    ) -> Prediction:
        """Poll a prediction until it is terminal. See :meth:`Client.wait`."""
        loop = asyncio.get_running_loop()
        start = loop.time()
        while not prediction.is_terminal:
            if timeout is not None and loop.time() - start >= timeout:
                raise TimeoutError(
                    f"prediction {prediction.id} still {_status_text(prediction)} after {timeout}s"
                )
            await asyncio.sleep(poll_interval)
            await self._fetch_prediction("get", "GET", f"/predictions/{prediction.id}", prediction)
        return prediction
