"""
Centralized error handling and tagged calculation outcomes.

This module turns failures of the calculation pipeline into structured
outcomes so that callers can branch on a status instead of catching
exceptions, and keeps a short history of errors for monitoring.
"""

import logging
from collections import Counter
from typing import Dict, Any, Optional
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timedelta

from data.parsers import TableFormatError, MissingColumnError, UnknownAudienceError, EmptyTableError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for better classification."""
    DATA_ERROR = "data_error"
    VALIDATION_ERROR = "validation_error"
    USER_ERROR = "user_error"
    SYSTEM_ERROR = "system_error"


class OutcomeStatus(Enum):
    """Status tag of a calculation outcome."""
    OK = "ok"
    MISSING_COLUMN = "missing_column"
    UNKNOWN_AUDIENCE = "unknown_audience"
    EMPTY_REGION_SET = "empty_region_set"
    EMPTY_TABLE = "empty_table"
    INVALID_WEIGHTS = "invalid_weights"
    INVALID_SHARES = "invalid_shares"
    UNKNOWN_REGION = "unknown_region"
    SYSTEM_ERROR = "system_error"


MAX_ERROR_HISTORY = 100

LOG_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL
}

NOTIFICATION_TITLES = {
    ErrorCategory.DATA_ERROR: "Table Error",
    ErrorCategory.VALIDATION_ERROR: "Brief Validation Error",
    ErrorCategory.USER_ERROR: "Input Error",
    ErrorCategory.SYSTEM_ERROR: "System Error"
}


class EmptyRegionSetError(ValueError):
    """Raised when a brief names no region at all."""

    def __init__(self):
        super().__init__("At least one region must be specified in the brief")


class InvalidWeightsError(ValueError):
    """Raised when custom blend weights are missing or do not sum to 100."""
    pass


class InvalidSharesError(ValueError):
    """Raised when manual shares are negative or do not sum to 100."""
    pass


class UnknownRegionError(KeyError):
    """Raised when an ad hoc split is requested for a region outside the results."""

    def __init__(self, region: str):
        self.region = region
        super().__init__(region)

    def __str__(self):
        return f"Region '{self.region}' is not part of the calculation results"


@dataclass
class ErrorInfo:
    """Classified failure of a calculation step."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    technical_details: Optional[str] = None
    suggested_action: Optional[str] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()


@dataclass
class CalculationOutcome:
    """Tagged result of a controller operation."""
    status: OutcomeStatus
    value: Any = None
    error: Optional[ErrorInfo] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    @classmethod
    def success(cls, value: Any) -> 'CalculationOutcome':
        return cls(status=OutcomeStatus.OK, value=value)


class ErrorHandler:
    """
    Centralized error classification and user feedback.

    Failures of the engine are deterministic, so nothing is retried: each
    error is classified once and surfaced verbatim.
    """

    def __init__(self):
        self.error_history = []

    def classify_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Map a pipeline exception onto a category, severity and user message.

        Args:
            error: Exception raised by a calculation step
            context: Name of the failed step

        Returns:
            ErrorInfo describing the failure
        """
        if isinstance(error, MissingColumnError):
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.ERROR,
                message=str(error),
                user_message=f"The {error.table} table has no '{error.column}' column.",
                suggested_action="Export the table again with all required columns."
            )

        elif isinstance(error, UnknownAudienceError):
            return ErrorInfo(
                category=ErrorCategory.USER_ERROR,
                severity=ErrorSeverity.ERROR,
                message=str(error),
                user_message=f"Target audience '{error.audience}' is not present in the ratings table.",
                suggested_action=f"Choose one of: {', '.join(error.available)}"
            )

        elif isinstance(error, (EmptyTableError, TableFormatError)):
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.ERROR,
                message=str(error),
                user_message=str(error),
                suggested_action="Check the uploaded table and try again."
            )

        elif isinstance(error, (EmptyRegionSetError, InvalidWeightsError, InvalidSharesError, UnknownRegionError)):
            return ErrorInfo(
                category=ErrorCategory.VALIDATION_ERROR,
                severity=ErrorSeverity.WARNING,
                message=str(error),
                user_message=str(error),
                suggested_action="Please correct the brief and try again."
            )

        elif isinstance(error, (FileNotFoundError, PermissionError)):
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Input file error in {context}: {str(error)}",
                user_message="The input table file could not be opened.",
                suggested_action="Check the file path and permissions."
            )

        # Generic system error
        return ErrorInfo(
            category=ErrorCategory.SYSTEM_ERROR,
            severity=ErrorSeverity.CRITICAL,
            message=f"Unexpected error in {context}: {str(error)}",
            user_message="An unexpected error occurred during calculation.",
            technical_details=repr(error),
            suggested_action="Contact support with the error details."
        )

    def outcome_status(self, error: Exception) -> OutcomeStatus:
        """Map an exception onto its outcome tag."""
        if isinstance(error, MissingColumnError):
            return OutcomeStatus.MISSING_COLUMN
        if isinstance(error, UnknownAudienceError):
            return OutcomeStatus.UNKNOWN_AUDIENCE
        if isinstance(error, (EmptyTableError, TableFormatError)):
            return OutcomeStatus.EMPTY_TABLE
        if isinstance(error, EmptyRegionSetError):
            return OutcomeStatus.EMPTY_REGION_SET
        if isinstance(error, InvalidWeightsError):
            return OutcomeStatus.INVALID_WEIGHTS
        if isinstance(error, InvalidSharesError):
            return OutcomeStatus.INVALID_SHARES
        if isinstance(error, UnknownRegionError):
            return OutcomeStatus.UNKNOWN_REGION
        return OutcomeStatus.SYSTEM_ERROR

    def to_outcome(self, error: Exception, context: str = "") -> CalculationOutcome:
        """Classify, log and wrap an error into a failed outcome."""
        error_info = self.classify_error(error, context)
        self.log_error(error_info, context)
        return CalculationOutcome(status=self.outcome_status(error), error=error_info)

    def create_user_notification(self, error_info: ErrorInfo) -> Dict[str, Any]:
        """
        Turn a classified error into a message for the brief form.

        Args:
            error_info: Classified error

        Returns:
            Notification payload; technical details are only attached to critical errors
        """
        notification = {
            'type': 'warning' if error_info.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING) else 'error',
            'title': NOTIFICATION_TITLES.get(error_info.category, "Error"),
            'message': error_info.user_message,
            'timestamp': error_info.timestamp.isoformat(),
            # Brief mistakes can be fixed in place, table errors need a new upload
            'dismissible': error_info.category == ErrorCategory.VALIDATION_ERROR
        }

        if error_info.suggested_action:
            notification['action'] = error_info.suggested_action
        if error_info.severity == ErrorSeverity.CRITICAL and error_info.technical_details:
            notification['technical_details'] = error_info.technical_details

        return notification

    def log_error(self, error_info: ErrorInfo, context: str = ""):
        """Record an error in the bounded history and log it at its severity."""
        self.error_history.append(error_info)
        del self.error_history[:-MAX_ERROR_HISTORY]

        prefix = f"{context}: " if context else ""
        logger.log(LOG_LEVELS[error_info.severity], f"{prefix}{error_info.message}")

    def get_error_statistics(self, window_hours: int = 24) -> Dict[str, Any]:
        """
        Summarize the error history.

        Args:
            window_hours: Size of the recent-errors window

        Returns:
            Totals plus per-category and per-severity counts over the window
        """
        if not self.error_history:
            return {'total_errors': 0}

        since = datetime.now() - timedelta(hours=window_hours)
        recent = [info for info in self.error_history if info.timestamp > since]

        return {
            'total_errors': len(self.error_history),
            'recent_errors': len(recent),
            'category_breakdown': dict(Counter(info.category.value for info in recent)),
            'severity_breakdown': dict(Counter(info.severity.value for info in recent))
        }


# Global error handler instance
error_handler = ErrorHandler()
