from typing import Optional, Any

class ScreenBotError(Exception):
    """
    Base exception for the screening bot.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ConfigurationError(ScreenBotError):
    """
    Raised when required settings are missing or inconsistent.
    """
    def __init__(self, message: str = "Invalid configuration", details: Optional[Any] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", status_code=500, details=details)

class ExternalServiceError(ScreenBotError):
    """
    Raised when an external service (messaging provider, store) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)

class TemplateError(ExternalServiceError):
    """
    Raised when a provider-side quick-reply template cannot be created.
    """
    def __init__(self, message: str = "Template creation failed", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "TEMPLATE_ERROR"
