"""Error types shared by validation, data access and the API layer."""


class ValidationError(Exception):
    """Raised when request input is malformed. Mapped to HTTP 400."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RepositoryError(Exception):
    """Raised when a store operation fails. Mapped to HTTP 500 with a generic message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
