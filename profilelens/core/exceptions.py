class ProfileLensError(Exception):
    """Base class for errors raised by ProfileLens services."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StoreError(ProfileLensError):
    """A document store backend operation failed."""

    def __init__(self, operation: str, cause: BaseException | str | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Store operation '{operation}' failed{detail}")


class NotFoundError(ProfileLensError):
    """An operation required an existing document that is absent."""

    def __init__(self, collection: str, document_id: str) -> None:
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"Document '{document_id}' not found in '{collection}'")


class TransactionConflict(ProfileLensError):
    """A transaction lost a write race and may be retried."""


class ScrapeError(ProfileLensError):
    """The external profile fetch failed or returned an unusable payload."""


class NoProfileDataError(ScrapeError):
    """The scraper payload did not contain a profile in any known shape."""

    def __init__(self, message: str = "No profile data found in scraper response") -> None:
        super().__init__(message)


class AIError(ProfileLensError):
    """Narrative generation by the AI collaborator failed."""


class ValidationError(ProfileLensError):
    """A required identifier or argument is missing or malformed."""


class QuotaExceededError(ProfileLensError):
    """The profile has used up its allowance for an operation."""
