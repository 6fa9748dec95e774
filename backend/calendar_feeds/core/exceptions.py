"""
Errors raised by the calendar integration services and endpoints.

Every error carries the HTTP status it maps to and a public message that is
safe to show to callers; internal detail goes to the server log only.
"""


class CalendarIntegrationError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        if message is not None:
            self.public_message = message


class AuthenticationError(CalendarIntegrationError):
    status_code = 401
    public_message = "Unauthorized"


class FeedNotFound(CalendarIntegrationError):
    # Same response for unknown and revoked tokens
    status_code = 404
    public_message = "Not found"


class MethodNotAllowed(CalendarIntegrationError):
    status_code = 405
    public_message = "Method not allowed"


class ValidationError(CalendarIntegrationError):
    status_code = 400
    public_message = "Invalid request"


class TokenGenerationExhausted(CalendarIntegrationError):
    status_code = 500

    def __init__(self, attempts: int):
        super().__init__()
        self.attempts = attempts

    def __str__(self) -> str:
        return f"Unable to generate a unique feed token after {self.attempts} attempts"


class UpstreamStoreError(CalendarIntegrationError):
    # Wraps SQLAlchemy failures; the driver message stays in the log
    status_code = 500
