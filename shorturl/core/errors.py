class ShortenerError(Exception):
    """Base for failures that map onto a user-facing status code."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ShortenerError):
    status_code = 400


class Conflict(ShortenerError):
    status_code = 409


class DuplicateShortcode(Conflict):
    """Raised by the store when the unique constraint rejects an insert."""

    def __init__(self, shortcode: str):
        super().__init__("Shortcode already exists")
        self.shortcode = shortcode


class NotFound(ShortenerError):
    status_code = 404


class Expired(ShortenerError):
    status_code = 410


class AllocationExhausted(ShortenerError):
    status_code = 500


class StorageFailure(ShortenerError):
    status_code = 500
