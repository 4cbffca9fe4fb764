"""REST client for the Tabichan trip-planning API.

Chat generation is asynchronous on the server side: ``start_chat`` returns a
task id, ``poll_chat`` reads its current status, and ``wait_for_chat`` polls
until the task reaches a terminal status or the poll budget runs out.
"""

from __future__ import annotations

import asyncio
import http.client
import json
import logging
import socket
from typing import Any, Callable
from urllib import error, parse, request

from pydantic import ValidationError

from contracts.v1.schemas import (
    ImageResponse,
    PollChatResponse,
    StartChatRequest,
    StartChatResponse,
)

from .config import (
    ALTERNATIVE_BASE_URL,
    DEFAULT_COUNTRY,
    IMAGE_TIMEOUT_SECONDS,
    MAX_POLL_ATTEMPTS,
    POLL_INTERVAL_SECONDS,
    POLL_TIMEOUT_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
    START_TIMEOUT_SECONDS,
    USER_AGENT,
    resolve_api_key,
    resolve_base_url,
)
from .errors import (
    GenerationFailed,
    HTTPStatusError,
    NetworkError,
    PollFailure,
    PollTimeout,
    ProtocolError,
    TransportError,
    UnexpectedStatus,
)
from .models import ApiResponse, Job, JobStatus

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Any]

_BODY_METHODS = {"POST", "PUT", "PATCH"}


class TabichanClient:
    """HTTP client for the Tabichan REST API."""

    def __init__(self, api_key: str | None = None, *, base_url: str | None = None):
        self.api_key = resolve_api_key(api_key)
        self.base_url = resolve_base_url(base_url)
        self.alternative_base_url = ALTERNATIVE_BASE_URL
        self.default_headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "x-api-key": self.api_key,
        }

    def set_api_key(self, api_key: str) -> None:
        self.api_key = api_key
        self.default_headers["x-api-key"] = api_key

    def set_base_url(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Generic verbs
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        body: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> ApiResponse:
        """Send one request without retrying. Raises TransportError on failure."""
        return await asyncio.to_thread(
            self._request, method.upper(), endpoint, body, params, headers, timeout
        )

    async def get(self, endpoint: str, **kwargs) -> ApiResponse:
        return await self.request("GET", endpoint, **kwargs)

    async def post(self, endpoint: str, data: Any = None, **kwargs) -> ApiResponse:
        return await self.request("POST", endpoint, body=data, **kwargs)

    async def put(self, endpoint: str, data: Any = None, **kwargs) -> ApiResponse:
        return await self.request("PUT", endpoint, body=data, **kwargs)

    async def patch(self, endpoint: str, data: Any = None, **kwargs) -> ApiResponse:
        return await self.request("PATCH", endpoint, body=data, **kwargs)

    async def delete(self, endpoint: str, **kwargs) -> ApiResponse:
        return await self.request("DELETE", endpoint, **kwargs)

    # ------------------------------------------------------------------
    # Chat jobs
    # ------------------------------------------------------------------

    async def start_chat(
        self,
        user_query: str,
        user_id: str,
        country: str = DEFAULT_COUNTRY,
        history: list[dict] | None = None,
        additional_inputs: dict | None = None,
    ) -> str:
        """Call ``POST /chat`` and return the task id of the new generation job."""
        body = StartChatRequest(
            user_query=user_query,
            user_id=user_id,
            country=country,
            history=history or [],
            additional_inputs=additional_inputs or {},
        )
        response = await self.request(
            "POST", "/chat", body=body.model_dump(), timeout=START_TIMEOUT_SECONDS
        )
        task_id = _validate(StartChatResponse, response.data).task_id
        logger.info("Started chat task %s for user %s", task_id, user_id)
        return task_id

    async def poll_chat(self, task_id: str) -> Job:
        """Call ``GET /chat/poll`` once and return the job's current state."""
        response = await self.request(
            "GET", "/chat/poll", params={"task_id": task_id}, timeout=POLL_TIMEOUT_SECONDS
        )
        job = Job.from_poll_response(task_id, _validate(PollChatResponse, response.data))
        logger.debug("Task %s status: %s", task_id, job.status)
        return job

    async def wait_for_chat(
        self,
        task_id: str,
        verbose: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> Any:
        """Poll until the job completes and return its result.

        Polls at most ``MAX_POLL_ATTEMPTS`` times, ``POLL_INTERVAL_SECONDS``
        apart.

        Raises:
            PollFailure: a poll request failed at the transport level.
            GenerationFailed: the service reported the job as failed.
            UnexpectedStatus: the service reported an unknown status.
            PollTimeout: the job was still running after the last attempt.
        """
        attempts = 0

        while attempts < MAX_POLL_ATTEMPTS:
            try:
                job = await self.poll_chat(task_id)
            except TransportError as e:
                raise PollFailure(f"Failed to poll status: {e}") from e

            status = job.known_status
            if status is JobStatus.COMPLETED:
                logger.info("Task %s completed after %d poll(s)", task_id, attempts + 1)
                if verbose:
                    print("✅ Generation complete!")
                return job.result

            if status is JobStatus.RUNNING:
                if verbose:
                    print(
                        f"⏳ Generation still running... "
                        f"(attempt {attempts + 1}/{MAX_POLL_ATTEMPTS})"
                    )
                if on_progress is not None:
                    on_progress(attempts + 1, MAX_POLL_ATTEMPTS)
            elif status is JobStatus.FAILED:
                logger.warning("Task %s failed: %s", task_id, job.error)
                raise GenerationFailed(
                    f"Generation failed: {job.error_text}",
                    job.to_poll_data(),
                )
            else:
                logger.warning("Task %s returned unexpected status %r", task_id, job.status)
                raise UnexpectedStatus(job.status, job.to_poll_data())

            attempts += 1
            if attempts < MAX_POLL_ATTEMPTS:
                await asyncio.sleep(POLL_INTERVAL_SECONDS)

        logger.warning("Task %s still running after %d polls", task_id, attempts)
        raise PollTimeout("Timeout: Generation took too long", attempts=attempts)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def get_image(self, image_id: str, country: str = DEFAULT_COUNTRY) -> str:
        """Call ``GET /image`` and return the image as base64 text."""
        response = await self.request(
            "GET",
            "/image",
            params={"id": image_id, "country": country},
            timeout=IMAGE_TIMEOUT_SECONDS,
        )
        return _validate(ImageResponse, response.data).base64

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        endpoint: str,
        body: Any,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
        timeout: float,
    ) -> ApiResponse:
        url = f"{self.base_url}{endpoint}"
        if params:
            url = f"{url}?{parse.urlencode(params)}"
        data = None
        if body is not None and method in _BODY_METHODS:
            data = body.encode("utf-8") if isinstance(body, str) else json.dumps(body).encode("utf-8")

        req = request.Request(
            url,
            data=data,
            headers={**self.default_headers, **(headers or {})},
            method=method,
        )
        logger.debug("%s %s (timeout=%ss)", method, url, timeout)
        try:
            with request.urlopen(req, timeout=timeout) as resp:
                raw = resp.read().decode("utf-8")
                status = getattr(resp, "status", 200)
                resp_headers = getattr(resp, "headers", None)
        except error.HTTPError as e:
            detail, payload = self._read_http_error(e)
            raise HTTPStatusError(e.code, detail, payload) from e
        except (error.URLError, TimeoutError, socket.timeout, ConnectionError, http.client.HTTPException) as e:
            reason = getattr(e, "reason", None) or e
            raise NetworkError(f"Request failed: No response received ({reason})") from e

        return ApiResponse(
            data=_parse_body(raw),
            status=status,
            headers=dict(resp_headers.items()) if resp_headers is not None else {},
        )

    @staticmethod
    def _read_http_error(exc: error.HTTPError) -> tuple[str, Any]:
        fallback = str(exc.reason or "HTTP error")
        try:
            body = exc.read().decode("utf-8")
        except Exception:
            return fallback, None
        if not body:
            return fallback, None
        payload = _parse_body(body)
        if isinstance(payload, dict) and "detail" in payload:
            return str(payload["detail"]), payload
        return fallback, payload


def _parse_body(raw: str) -> Any:
    """Decode a JSON body; non-JSON text is returned unchanged, empty as None."""
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _validate(model, data: Any):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ProtocolError(
            f"Tabichan API returned an unexpected {model.__name__} payload: {e}"
        ) from e
