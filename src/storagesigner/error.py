"""
Exception classes for the storage URL signer
"""


class SignerException(Exception):
    """
    Base exception for all storage signer errors.
    """
    
    def __init__(self, message: str = "", error_code: str = None):
        super().__init__(message)
        self.error_code = error_code


class InvalidArgumentException(SignerException, ValueError):
    """Thrown when a signing option is missing or malformed."""
    
    def __init__(self, message: str):
        super().__init__(message, error_code="InvalidArgument")


class InvalidDateException(SignerException, ValueError):
    """Thrown when an expiration or accessible-at date cannot be parsed."""
    
    def __init__(self, message: str = "The expiration date provided was invalid."):
        super().__init__(message, error_code="InvalidDate")


class ExpirationInPastException(SignerException, ValueError):
    """Thrown when the expiration date is not in the future."""
    
    def __init__(self):
        super().__init__(
            "An expiration date cannot be in the past.",
            error_code="ExpirationInPast"
        )


class AccessibleAtAfterExpirationException(SignerException, ValueError):
    """Thrown when the accessible-at date falls after the expiration date."""
    
    def __init__(self):
        super().__init__(
            "An expiration date cannot be before accessible date.",
            error_code="AccessibleAtAfterExpiration"
        )


class ExpirationTooFarException(SignerException, ValueError):
    """Thrown when a V4 expiration exceeds the seven day ceiling."""
    
    def __init__(self, max_seconds: int):
        super().__init__(
            f"Max allowed expiration is seven days ({max_seconds} seconds).",
            error_code="ExpirationTooFar"
        )
        self.max_seconds = max_seconds


class SigningError(SignerException):
    """Thrown when the credential signer fails to produce a signature."""
    
    def __init__(self, message: str):
        super().__init__(message, error_code="SigningError")


class CredentialException(SignerException):
    """Thrown when a credential signer cannot load its key or reach its backend."""
    
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message, error_code="CredentialError")
        self.status_code = status_code
