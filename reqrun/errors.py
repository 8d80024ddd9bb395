"""reqrun errors - exception hierarchy.

All errors raised by the request pipeline inherit from ReqrunError. The CLI
is the only place that turns them into an error message and exit code.

    ReqrunError
    +-- ConfigurationError      bad input, never retried
    |   +-- InvalidAuthType
    |   +-- ProfileNotFound
    |   +-- MissingURL
    |   +-- PayloadParseError
    |   +-- PayloadReadError
    |   +-- InvalidRequest
    |   +-- ProfileStoreError
    +-- RetryExhausted          network failures / 5xx after the last attempt
    +-- OutputError             writing the response body to --out failed
"""


class ReqrunError(Exception):
    """Base class for every reqrun failure."""


class ConfigurationError(ReqrunError):
    """Invalid request configuration. Always terminal."""


class InvalidAuthType(ConfigurationError):
    def __init__(self, auth_type: str):
        super().__init__(f"unknown auth type: {auth_type}")
        self.auth_type = auth_type


class ProfileNotFound(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(f"profile '{name}' not found")
        self.name = name


class MissingURL(ConfigurationError):
    """No absolute URL and no profile base URL to join a relative path to."""


class PayloadParseError(ConfigurationError):
    """A JSON payload fragment is malformed or not a JSON object."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"parsing {source}: {reason}")
        self.source = source
        self.reason = reason


class PayloadReadError(ConfigurationError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"loading json-file {path}: {reason}")
        self.path = path


class InvalidRequest(ConfigurationError):
    """The request could not be built (e.g. unparsable URL)."""


class ProfileStoreError(ConfigurationError):
    """The profile file exists but cannot be read or written."""


class RetryExhausted(ReqrunError):
    """Every attempt ended in a network failure or a 5xx response."""

    def __init__(self, attempts: int, last_reason: str):
        super().__init__(f"request failed after {attempts} attempt(s): {last_reason}")
        self.attempts = attempts
        self.last_reason = last_reason


class OutputError(ReqrunError):
    """The response was displayed but could not be written to the output file."""
