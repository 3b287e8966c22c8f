"""Error taxonomy shared by every streamscribe layer."""


class StreamingError(Exception):
    """Base exception for streaming errors."""


class ConfigurationError(StreamingError):
    """Raised when the engine or session cannot be configured (bad model reference, bad settings)."""


class InvalidInputError(StreamingError, ValueError):
    """Raised when submitted audio is missing, empty or malformed.

    Nothing in the session is mutated when this is raised.
    """


class InferenceError(StreamingError):
    """Raised when the inference engine fails.

    Session state before the call stays valid, so the caller may retry.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class AllocationError(StreamingError):
    """Raised when decoding worked but the output could not be produced."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class SessionClosedError(StreamingError):
    """Raised when a closed session is used."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is closed")
