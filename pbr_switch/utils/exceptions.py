class PbrSwitchError(Exception):
    pass


class ConfigError(PbrSwitchError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"Configuration error: {self.message}"


class LLMError(PbrSwitchError):
    def __init__(self, message: str, model: str, status_code: int | None = None) -> None:
        self.message = message
        self.model = model
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        status_info = f" (HTTP {self.status_code})" if self.status_code else ""
        return f"LLM error with {self.model}{status_info}: {self.message}"


class ResponseValidationError(PbrSwitchError):
    def __init__(self, message: str, operation: str) -> None:
        self.message = message
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        return f"Invalid {self.operation} response: {self.message}"
