class ConfigurationError(RuntimeError):
    """Raised when a required runtime setting is absent."""


class MissingApiKeyError(ConfigurationError):
    def __init__(self, message: str = "FINNHUB_API_KEY_MISSING") -> None:
        super().__init__(message)
