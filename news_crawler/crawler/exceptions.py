"""Exception taxonomy for fetching, extraction and persistence."""


class CrawlerError(Exception):
    """Base class for all crawler errors."""


class FetchError(CrawlerError):
    """A page could not be fetched.

    ``kind`` classifies the failure ("blocked", "cert_expired", "tls",
    "header_overflow", "http_error", "server_error", "network", "timeout",
    "browser"). Fatal errors are never retried.
    """

    def __init__(
        self,
        url: str,
        kind: str,
        fatal: bool,
        message: str = "",
        status: int | None = None,
    ) -> None:
        self.url = url
        self.kind = kind
        self.fatal = fatal
        self.status = status
        detail = message or kind
        super().__init__(f"{kind} ({'fatal' if fatal else 'transient'}) for {url}: {detail}")


class ExtractionMethodError(CrawlerError):
    """A single extraction method failed; the chain moves on."""


class TemplateGenerationError(CrawlerError):
    """The LLM could not produce a usable template."""


class TemplateValidationError(TemplateGenerationError):
    """A generated template failed validation against its sample page."""


class PersistenceError(CrawlerError):
    """A news row could not be written."""
