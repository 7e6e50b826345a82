"""Custom exception hierarchy for the loan tracker."""


class LoanTrackerError(Exception):
    """Base exception for all loan tracker errors."""


class InvalidLoanParametersError(LoanTrackerError, ValueError):
    """Raised when a loan is created with a non-positive principal or term."""


class InvalidExtraPaymentError(LoanTrackerError, ValueError):
    """Raised when an extra payment has a non-positive amount."""


class LoanNotFoundError(LoanTrackerError):
    """Raised when a referenced loan does not exist."""


class ConfigurationError(LoanTrackerError):
    """Raised when configuration is invalid or missing."""


class StoreError(LoanTrackerError):
    """Raised when a loan store operation fails."""
