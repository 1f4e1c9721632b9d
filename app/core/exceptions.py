class AuthError(Exception):
    """Raised by the LINE login flow when a step fails.

    The auth routes turn it into the ``{"status": "error"}`` envelope; it never
    escapes as an HTTP error status.
    """

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)
        self.message = message
