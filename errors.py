# file: errors.py


class InvalidRequest(ValueError):
    """Caller-supplied symbol, account size or risk percent is missing or out of domain."""


class OracleUnavailable(RuntimeError):
    """The language-model call failed: transport error, rate limit, bad status or empty content."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
