"""Error classifiers for HTTP provider calls.

Converts ``requests`` responses and exceptions into standardized
OperationResult objects so that channels never have to inspect raw HTTP
details.

Key Functions:
- is_success_status(): whether an HTTP status code is a 2xx
- classify_http_response(): non-2xx requests.Response → OperationResult
- classify_request_exception(): requests exceptions → OperationResult

Usage:
    from infrastructure.operations.classifiers import (
        classify_http_response,
        classify_request_exception,
        is_success_status,
    )

    try:
        response = requests.post(url, json=body, timeout=10)
    except requests.RequestException as exc:
        return classify_request_exception(exc)
    if not is_success_status(response.status_code):
        return classify_http_response(response)
"""

from typing import Any, Optional

import requests

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def classify_http_response(
    response: requests.Response, provider: str = "Provider"
) -> OperationResult:
    """Classify a non-2xx HTTP response into OperationResult.

    The provider body and status code are always carried on the result.

    Status Code Mapping:
    - 3xx: Unfollowed redirect → PERMANENT_ERROR
    - 429: Rate limiting → TRANSIENT_ERROR with retry_after
    - 401/403: Credentials rejected → UNAUTHORIZED
    - 404: Not found → NOT_FOUND
    - 5xx: Server error → TRANSIENT_ERROR
    - Other 4xx: Bad request → PERMANENT_ERROR

    Args:
        response: Response returned by ``requests``
        provider: Provider name used in messages

    Returns:
        OperationResult with appropriate status, message, error_code, data
        (``{"status_code": ..., "body": ...}``) and retry_after (if applicable)
    """
    status_code = response.status_code
    data = {"status_code": status_code, "body": _response_body(response)}

    if 300 <= status_code < 400:
        return OperationResult.permanent_error(
            f"{provider} API answered with a redirect ({status_code})",
            error_code="UNEXPECTED_REDIRECT",
            data=data,
            status_code=status_code,
        )

    if status_code == 429:
        retry_after = 60
        header_value = response.headers.get("Retry-After")
        if header_value:
            try:
                retry_after = int(header_value)
            except (ValueError, TypeError):
                retry_after = 60

        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            f"{provider} API rate limited",
            error_code="RATE_LIMITED",
            retry_after=retry_after,
            data=data,
            status_code=status_code,
        )

    if status_code in (401, 403):
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            f"{provider} API rejected credentials ({status_code})",
            error_code="UNAUTHORIZED" if status_code == 401 else "FORBIDDEN",
            data=data,
            status_code=status_code,
        )

    if status_code == 404:
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"{provider} resource not found",
            error_code="NOT_FOUND",
            data=data,
            status_code=status_code,
        )

    if 500 <= status_code < 600:
        return OperationResult.transient_error(
            f"{provider} API server error ({status_code})",
            error_code="SERVER_ERROR",
            data=data,
            status_code=status_code,
        )

    return OperationResult.permanent_error(
        f"{provider} API client error ({status_code})",
        error_code="HTTP_ERROR",
        data=data,
        status_code=status_code,
    )


def classify_request_exception(
    exc: Exception, provider: str = "Provider"
) -> OperationResult:
    """Classify an exception raised by ``requests`` into OperationResult.

    Timeouts and connection failures are transient. Anything else raised by
    the HTTP layer (invalid URL, TLS failure) is permanent.

    Args:
        exc: Exception raised while performing the request
        provider: Provider name used in messages

    Returns:
        OperationResult with TRANSIENT_ERROR or PERMANENT_ERROR status
    """
    status_code: Optional[int] = None
    response = getattr(exc, "response", None)
    if response is not None:
        status_code = response.status_code

    if isinstance(exc, requests.exceptions.Timeout):
        return OperationResult.transient_error(
            f"{provider} API timed out: {exc}",
            error_code="TIMEOUT",
            status_code=status_code,
        )

    if isinstance(exc, requests.exceptions.SSLError):
        return OperationResult.permanent_error(
            f"{provider} TLS verification failed: {exc}",
            error_code="TLS_ERROR",
            status_code=status_code,
        )

    if isinstance(exc, requests.exceptions.ConnectionError):
        return OperationResult.transient_error(
            f"{provider} connection error: {exc}",
            error_code="CONNECTION_ERROR",
            status_code=status_code,
        )

    return OperationResult.permanent_error(
        f"{provider} request failed: {type(exc).__name__}: {exc}",
        error_code="REQUEST_ERROR",
        status_code=status_code,
    )
