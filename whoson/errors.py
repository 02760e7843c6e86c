# whoson/errors.py


class WhosOnError(Exception):
    """Base class for errors raised by this package."""


class StorageUnavailable(WhosOnError):
    """The local cache could not be read or written."""


class RemoteFetchFailed(WhosOnError):
    """The upstream source could not deliver a shift batch."""


class ConfigurationError(WhosOnError):
    """Startup configuration is missing or malformed."""


class ApiError(WhosOnError):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @classmethod
    def bad_request(cls, message="Bad request"):
        return cls(400, message)

    @classmethod
    def not_found(cls, message="Not found"):
        return cls(404, message)

    @classmethod
    def upstream(cls, exc: Exception):
        return cls(502, f"Upstream error: {exc or 'Unknown error'}")
