"""Exception hierarchy for the metadata provider."""


class ProviderError(Exception):
    """Base exception for all provider errors."""


class InputError(ProviderError):
    """A required request parameter is missing."""


class AuthError(ProviderError):
    """The request carries no authorization token."""


class FetchError(ProviderError):
    """A catalog request failed (transport error, timeout, bad status)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"GET {url} failed: {reason}")
        self.url = url
        self.reason = reason


class ParseError(ProviderError):
    """A detail-page value could not be converted (date, number)."""

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"Cannot parse {field} from {value!r}")
        self.field = field
        self.value = value
