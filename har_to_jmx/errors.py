"""Exceptions raised while converting a HAR capture into a JMX test plan."""


class ConversionError(Exception):
    """Base class for every conversion failure."""


class MalformedInputError(ConversionError):
    """The HAR text is not valid JSON or its entries are not a list."""


class MissingEntriesError(ConversionError):
    """The HAR has no ``log.entries`` path.

    Never reaches the caller of ``reader.parse``: a capture without entries
    converts into a test plan with zero samplers.
    """


class MalformedEntryError(ConversionError):
    """A single HAR entry cannot be converted."""

    def __init__(self, message: str, index: int = None):
        super().__init__(message)
        self.index = index

    def __str__(self):
        message = super().__str__()
        if self.index is None:
            return message
        return f"entry {self.index}: {message}"


class MalformedUrlError(MalformedEntryError):
    """``request.url`` is absent or has no scheme, host or usable port."""


class MalformedHeaderError(MalformedEntryError):
    """A header has no name or its ``Name: Value`` string has no colon."""
