"""Error taxonomy shared by the request handlers and the pipeline stages."""


class RelayError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ParseError(RelayError):
    """Model output could not be decoded into the expected shape.

    Only bounded previews of the untrusted text are kept: the first 200 and
    the last 100 characters.
    """

    PREVIEW_CHARS = 200
    TAIL_CHARS = 100

    def __init__(self, message: str, raw_text: str = ""):
        raw_text = raw_text or ""
        self.preview = raw_text[: self.PREVIEW_CHARS]
        self.tail = raw_text[-self.TAIL_CHARS :] if raw_text else ""
        detail = message
        if raw_text:
            detail = f"{message}. Response preview: {self.preview}"
        super().__init__(detail)


class ProviderError(RelayError):
    """Transport or HTTP failure talking to an upstream service."""

    status_code = 502

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider} error: {message}")
        self.provider = provider


class ValidationError(RelayError):
    status_code = 400


class AuthenticationError(RelayError):
    status_code = 401
