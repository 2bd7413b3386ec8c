"""
Vegap Request Sender

Sends one prepared request and checks the status.
No retries. No backoff. One request in, one response or one error out.
"""

import logging
import time
from typing import Any, Optional, Tuple

import httpx

from .errors import VegapAPIError, VegapDecodeError, VegapTransportError
from .normalize import PreparedRequest

logger = logging.getLogger(__name__)


CSV_CONTENT_TYPE = "text/csv"


def extract_error_message(response: httpx.Response) -> Tuple[str, Optional[Any]]:
    """
    Pull a message out of a rejected response.

    Uses the "error" field of a JSON body when present, otherwise
    "HTTP {status}: {reason}".

    Returns:
        (message, decoded body or raw text)
    """
    try:
        body: Any = response.json()
    except ValueError:
        body = response.text or None

    if isinstance(body, dict) and body.get("error"):
        return str(body["error"]), body

    return f"HTTP {response.status_code}: {response.reason_phrase}", body


def decode_json(response: httpx.Response) -> Any:
    """Decode a success body as JSON."""
    try:
        return response.json()
    except ValueError as e:
        raise VegapDecodeError(
            f"Invalid JSON in response (HTTP {response.status_code})"
        ) from e


def is_csv(response: httpx.Response) -> bool:
    return CSV_CONTENT_TYPE in response.headers.get("content-type", "").lower()


async def _issue(client: httpx.AsyncClient, prepared: PreparedRequest) -> httpx.Response:
    return await client.request(
        prepared.method,
        prepared.url,
        headers=prepared.headers,
        content=prepared.content,
        files=prepared.files,
    )


async def send_request(
    prepared: PreparedRequest,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 30.0,
) -> httpx.Response:
    """
    Send a prepared request and return the successful response.

    Uses the given client when one is passed (its own timeout applies),
    otherwise a short-lived client with the given timeout.

    Raises:
        VegapTransportError: Connection failure or timeout
        VegapAPIError: Non-2xx status
    """
    logger.debug(
        f"Sending {prepared.method} {prepared.url}",
        extra={"method": prepared.method, "url": prepared.url},
    )
    started = time.perf_counter()

    try:
        if client is not None:
            response = await _issue(client, prepared)
        else:
            async with httpx.AsyncClient(timeout=timeout) as owned:
                response = await _issue(owned, prepared)

    except httpx.RequestError as e:
        detail = str(e) or type(e).__name__
        logger.error(
            f"HTTP request failed: {detail}",
            exc_info=True,
            extra={"method": prepared.method, "url": prepared.url},
        )
        raise VegapTransportError(f"HTTP request failed: {detail}") from e

    elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

    if not response.is_success:
        message, body = extract_error_message(response)
        logger.warning(
            f"Vegap API error: {response.status_code} - {message}",
            extra={
                "method": prepared.method,
                "url": prepared.url,
                "status_code": response.status_code,
                "elapsed_ms": elapsed_ms,
            },
        )
        raise VegapAPIError(message, status_code=response.status_code, body=body)

    logger.info(
        f"{prepared.method} {prepared.url} -> {response.status_code}",
        extra={
            "method": prepared.method,
            "url": prepared.url,
            "status_code": response.status_code,
            "elapsed_ms": elapsed_ms,
        },
    )
    return response
