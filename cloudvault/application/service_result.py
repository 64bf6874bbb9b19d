"""
Service Result Value Object

Encapsulates the outcome of an application service call so the API layer
never has to catch domain exceptions itself.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..domain.errors import (
    ERROR_MESSAGES,
    DomainError,
    ErrorCategory,
    status_code_for,
)


@dataclass
class ServiceResult:
    """
    Value object representing the result of a use case.

    Either ``success`` with a JSON-ready ``data`` payload, or a failure
    with an error category, a technical message and the retryable flag of
    the underlying error.
    """

    success: bool
    data: Any = None
    error_category: Optional[ErrorCategory] = None
    error_message: Optional[str] = None
    retryable: bool = False
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def create_success(cls, data: Any = None, status_code: int = 200) -> 'ServiceResult':
        """
        Create a successful result.

        Args:
            data: JSON-serializable payload
            status_code: HTTP status to respond with

        Returns:
            ServiceResult indicating success
        """
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def create_failure(
        cls,
        error_category: ErrorCategory,
        error_message: str,
        retryable: bool = False,
    ) -> 'ServiceResult':
        """
        Create a failed result.

        Args:
            error_category: Category of error that occurred
            error_message: Technical error message (logged, not shown to users)
            retryable: Whether the same call may succeed later

        Returns:
            ServiceResult indicating failure
        """
        return cls(
            success=False,
            error_category=error_category,
            error_message=error_message,
            retryable=retryable,
            status_code=status_code_for(error_category),
        )

    @classmethod
    def from_error(cls, error: DomainError) -> 'ServiceResult':
        """Translate a domain error into a failed result."""
        return cls.create_failure(error.category, str(error), retryable=error.retryable)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the result to the API response body.

        Success returns the payload itself; failure returns
        ``{error, title, message, action, retryable}``.
        """
        if self.success:
            return self.data if self.data is not None else {}

        info = ERROR_MESSAGES.get(self.error_category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR])
        return {
            'error': self.error_category.value,
            'title': info['title'],
            'message': info['message'],
            'action': info['action'],
            'retryable': self.retryable,
        }


def run_service_call(
    logger: logging.Logger,
    operation: str,
    func: Callable[[], Any],
    status_code: int = 200,
) -> ServiceResult:
    """
    Run a use case and wrap its outcome.

    Domain errors become failed results (logged at warning, or error for
    retryable backend failures). Anything else is logged with its traceback
    and reported as SYSTEM_ERROR.

    Args:
        logger: Logger of the calling service
        operation: Name used in log lines
        func: Zero-argument callable returning the success payload
        status_code: HTTP status for success

    Returns:
        ServiceResult
    """
    try:
        return ServiceResult.create_success(func(), status_code=status_code)
    except DomainError as e:
        if e.retryable or e.category is ErrorCategory.METADATA_WRITE_FAILED:
            logger.error(f"{operation} failed: {e}")
        else:
            logger.warning(f"{operation} rejected ({e.category.value}): {e}")
        return ServiceResult.from_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error in {operation}: {e}")
        return ServiceResult.create_failure(ErrorCategory.SYSTEM_ERROR, str(e))
