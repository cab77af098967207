"""Operation result dataclass.

Uniform result type returned by integrations and channels, including status,
data, the provider's HTTP status code and error information.
"""

from typing import Optional, Any
from dataclasses import dataclass

from infrastructure.operations.status import OperationStatus


@dataclass
class OperationResult:
    """Uniform result returned from operations.

    Attributes:
        status: OperationStatus -- high-level outcome
        message: str -- human-friendly message for logs/troubleshooting
        data: Optional[Any] -- optional payload (provider response body, ids)
        error_code: Optional[str] -- optional machine error code
        retry_after: Optional[int] -- seconds until retry when rate-limited
        status_code: Optional[int] -- HTTP status returned by the provider
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    retry_after: Optional[int] = None
    status_code: Optional[int] = None

    @property
    def is_success(self) -> bool:
        """Helper property to check if operation was successful.

        Returns:
            True if status is SUCCESS, False otherwise
        """
        return self.status == OperationStatus.SUCCESS

    @property
    def is_transient(self) -> bool:
        return self.status == OperationStatus.TRANSIENT_ERROR

    @classmethod
    def success(
        cls,
        data: Optional[Any] = None,
        message: str = "ok",
        status_code: Optional[int] = None,
    ) -> "OperationResult":
        """Create a SUCCESS OperationResult with optional data.

        Args:
            data: Optional payload to include with the result
            message: Human-friendly success message
            status_code: Optional HTTP status returned by the provider

        Returns:
            OperationResult with SUCCESS status
        """
        return cls(
            status=OperationStatus.SUCCESS,
            message=message,
            data=data,
            status_code=status_code,
        )

    @classmethod
    def error(
        cls,
        status: OperationStatus,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
        data: Optional[Any] = None,
        status_code: Optional[int] = None,
    ) -> "OperationResult":
        """Create an error OperationResult.

        Args:
            status: OperationStatus indicating error type
            message: Human-friendly error message
            error_code: Optional machine error code
            retry_after: Optional seconds until retry (for rate limiting)
            data: Optional payload to include with the error
            status_code: Optional HTTP status returned by the provider

        Returns:
            OperationResult with specified error status
        """
        return cls(
            status=status,
            message=message,
            error_code=error_code,
            retry_after=retry_after,
            data=data,
            status_code=status_code,
        )

    @classmethod
    def transient_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
        data: Optional[Any] = None,
        status_code: Optional[int] = None,
    ) -> "OperationResult":
        """Create a transient error result.

        Use for errors that may succeed on a later attempt, such as:
        - Network timeouts
        - Rate limiting
        - Temporary provider unavailability

        Returns:
            OperationResult with TRANSIENT_ERROR status
        """
        return cls.error(
            OperationStatus.TRANSIENT_ERROR,
            message,
            error_code,
            retry_after,
            data=data,
            status_code=status_code,
        )

    @classmethod
    def permanent_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        data: Optional[Any] = None,
        status_code: Optional[int] = None,
    ) -> "OperationResult":
        """Create a permanent error result.

        Use for errors that will not succeed on a later attempt, such as:
        - Validation errors
        - Authentication/authorization failures
        - Invalid input

        Returns:
            OperationResult with PERMANENT_ERROR status
        """
        return cls.error(
            OperationStatus.PERMANENT_ERROR,
            message,
            error_code,
            data=data,
            status_code=status_code,
        )
