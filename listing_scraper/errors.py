"""
Exception types for the listing scraper.

Playwright's own TimeoutError/Error are not wrapped: transient interaction
failures are caught where they happen, navigation failures propagate.
"""


class ScraperError(Exception):
    """Base class for scraper errors."""


class ConfigError(ScraperError):
    """Raised when the run configuration is invalid."""


class UnknownSiteError(ScraperError):
    """Raised when no site profile exists for a name."""

    def __init__(self, name: str, known: list):
        self.name = name
        self.known = known
        super().__init__(f"Unknown site '{name}'. Available: {', '.join(known)}")
