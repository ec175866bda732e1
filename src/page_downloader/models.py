"""Result model returned by the page downloader."""

from dataclasses import dataclass
from typing import Optional

CANCELLED_MESSAGE = "Download cancelled"


@dataclass(frozen=True)
class PageResult:
    """
    Outcome of downloading one URL.

    Exactly one of content (on success) or error_message (on failure) is
    meaningful. Build instances with the success_result()/failure()/cancelled()
    constructors rather than directly.

    Attributes:
        url: URL as supplied by the caller
        content: Page body on success, empty string on failure
        success: Whether the page was retrieved (from cache or network)
        error_message: Failure description, None on success
    """

    url: str
    content: str
    success: bool
    error_message: Optional[str] = None

    @classmethod
    def success_result(cls, url: str, content: str) -> "PageResult":
        return cls(url=url, content=content, success=True, error_message=None)

    @classmethod
    def failure(cls, url: str, error_message: str) -> "PageResult":
        return cls(url=url, content="", success=False, error_message=error_message)

    @classmethod
    def cancelled(cls, url: str) -> "PageResult":
        return cls.failure(url, CANCELLED_MESSAGE)

    @property
    def is_cancelled(self) -> bool:
        return not self.success and self.error_message == CANCELLED_MESSAGE
