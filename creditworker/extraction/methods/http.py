from typing import Any

import httpx

from creditworker.extraction.exceptions import MethodFailedError, MethodTimeoutError
from creditworker.extraction.models import ExtractionMethodName

AUTH_FAILURE_STATUSES = frozenset({401, 403})
RATE_LIMIT_STATUS = 429


def post_json(
    client: httpx.Client,
    url: str,
    *,
    method: ExtractionMethodName,
    payload: dict[str, Any],
    timeout: float,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
) -> dict[str, Any]:
    """POST a JSON payload and return the decoded JSON object.

    Transport errors, rate limiting and server errors raise a retryable
    MethodFailedError. Authentication failures, other client errors and
    malformed bodies raise a non-retryable one.
    """
    label = method.value
    try:
        response = client.post(
            url,
            json=payload,
            headers=headers,
            params=params,
            timeout=timeout,
        )
    except httpx.TimeoutException as exc:
        raise MethodTimeoutError(f"{label} request timed out: {exc}") from exc
    except httpx.TransportError as exc:
        raise MethodFailedError(f"{label} network error: {exc}") from exc

    status = response.status_code
    if status in AUTH_FAILURE_STATUSES:
        raise MethodFailedError(f"{label} authentication failed ({status})", retryable=False)
    if status == RATE_LIMIT_STATUS:
        raise MethodFailedError(f"{label} rate limited")
    if status >= 500:
        raise MethodFailedError(f"{label} server error ({status})")
    if status >= 400:
        raise MethodFailedError(
            f"{label} rejected the request ({status}): {response.text[:200]}",
            retryable=False,
        )

    try:
        body = response.json()
    except ValueError as exc:
        raise MethodFailedError(f"{label} returned malformed JSON", retryable=False) from exc
    if not isinstance(body, dict):
        raise MethodFailedError(f"{label} returned an unexpected response body", retryable=False)
    return body
