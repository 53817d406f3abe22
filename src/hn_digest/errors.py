"""Error taxonomy shared by the digest pipeline and its collaborators."""


class DigestError(Exception):
    """Base class for all hn_digest errors."""


class UnavailableError(DigestError):
    """A collaborator could not be reached or returned a transient failure.

    Never retried mid-run; the next scheduled run is the retry.
    """


class NotFoundError(DigestError):
    """A requested setting, article or tag does not exist."""


class InvalidArgumentError(DigestError, ValueError):
    """Bad parameters passed to a store operation (decay rate, boost amount)."""


class InvalidResponseError(DigestError):
    """A collaborator answered, but the answer could not be used."""


class ParseError(DigestError):
    """Page content could not be extracted."""


class InvalidRecipientError(DigestError):
    """The transport rejected the recipient identity."""
