from __future__ import annotations


class ScrapeError(Exception):
    """Base class for every failure raised inside a scrape run."""


class ConfigurationError(ScrapeError):
    """A provider credential or setting is missing. Never retried."""


class TransportError(ScrapeError):
    """Network failure, timeout or non-2xx response from the provider."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ParseError(ScrapeError):
    """The provider answered with a body we could not interpret."""


class JobFailure(ScrapeError):
    """The provider reported the run as failed."""


class RetryExhaustion(ScrapeError):
    """The attempt budget ran out before a usable answer arrived."""

    def __init__(self, message: str, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(message)
