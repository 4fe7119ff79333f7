"""LeadHub-Engine exception hierarchy.

Each error carries the HTTP status it maps to; ``app.create_app`` renders
them as ``{"success": false, "message": ..., "code": ...}``.
"""


class LeadhubError(Exception):
    """Base exception for all LeadHub errors."""

    status_code = 500

    def __init__(self, message: str = "", code: str = "LEADHUB_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class AuthenticationError(LeadhubError):
    """No session, or a session that does not verify."""

    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, code="UNAUTHENTICATED")


class AuthorizationError(LeadhubError):
    """Authenticated but not allowed (inactive member, wrong role)."""

    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, code="FORBIDDEN")


class ValidationError(LeadhubError):
    """Missing or malformed input."""

    status_code = 400

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, code="VALIDATION_ERROR")


class NotFoundError(LeadhubError):
    """Entity absent or owned by another tenant — callers cannot tell which."""

    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class ConflictError(LeadhubError):
    status_code = 409

    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message, code="CONFLICT")


class UpstreamGatewayError(LeadhubError):
    """A third-party API answered with a non-success status."""

    status_code = 502

    def __init__(self, message: str = "Upstream service error", code: str = "UPSTREAM_ERROR"):
        super().__init__(message, code=code)


class TransientConnectionError(LeadhubError):
    status_code = 503

    def __init__(self, message: str = "Database temporarily unavailable", code: str = "UNAVAILABLE"):
        super().__init__(message, code=code)


class RetryExhaustedError(TransientConnectionError):
    """Raised by ``with_reconnect`` once every retry hit a connection error."""

    def __init__(self, last_error: BaseException, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        # The driver error stays on ``last_error`` and in the log, not in the response.
        super().__init__("Database temporarily unavailable", code="RETRY_EXHAUSTED")


class CryptoError(LeadhubError):
    def __init__(self, message: str = "Cryptographic operation failed", code: str = "CRYPTO_ERROR"):
        super().__init__(message, code=code)


class DecryptionError(CryptoError):
    """Malformed ciphertext or failed authentication tag."""

    def __init__(self, message: str = "Decryption failed"):
        super().__init__(message, code="DECRYPTION_FAILED")


class ConfigurationError(LeadhubError):
    """Fatal misconfiguration, raised at startup."""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIGURATION_ERROR")
