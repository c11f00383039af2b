"""Domain exceptions shared by the slot engine, the chat flow and the HTTP layer."""


class InvalidDateError(ValueError):
    """A date handed to the slot engine could not be read as a calendar date."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid date: {value!r}")


class OracleParseError(ValueError):
    """Language-model output was not the expected JSON shape. Always recovered locally."""


class OracleServiceError(RuntimeError):
    """The language-model call itself failed (auth, quota, overload, timeout)."""

    API_KEY_EXPIRED = "api_key_expired"
    QUOTA = "quota"
    OVERLOADED = "overloaded"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"

    USER_MESSAGES = {
        API_KEY_EXPIRED: "The AI service API key has expired. Please contact the administrator.",
        QUOTA: "The AI service quota has been exceeded. Please try again later.",
        OVERLOADED: "The AI service is currently overloaded. Please try again in a moment.",
        TIMEOUT: "The AI service took too long to respond. Please try again.",
        UNKNOWN: "Failed to process message. Please try again.",
    }

    def __init__(self, message: str, category: str | None = None) -> None:
        super().__init__(message)
        self.category = category or classify_oracle_failure(message)

    @property
    def user_message(self) -> str:
        return self.USER_MESSAGES.get(self.category, self.USER_MESSAGES[self.UNKNOWN])


def classify_oracle_failure(message: str) -> str:
    """Pick an OracleServiceError category from the provider's error text."""
    text = message or ""
    if "API key expired" in text:
        return OracleServiceError.API_KEY_EXPIRED
    if "quota" in text.lower():
        return OracleServiceError.QUOTA
    if "overloaded" in text.lower():
        return OracleServiceError.OVERLOADED
    return OracleServiceError.UNKNOWN


class StorageError(RuntimeError):
    """Reading or writing bookings failed."""


class SlotUnavailableError(Exception):
    """Requested appointment time is closed, outside business hours or already taken."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
