from .builder import JmxDocument, append_sampler, new_document
from .converter import ConversionResult, HarToJmxConverter, SkippedEntry, convert
from .errors import (
    ConversionError,
    MalformedEntryError,
    MalformedHeaderError,
    MalformedInputError,
    MalformedUrlError,
    MissingEntriesError,
)
from .reader import Cookie, RequestRecord, iter_records, parse

__all__ = [
    "ConversionError",
    "ConversionResult",
    "Cookie",
    "HarToJmxConverter",
    "JmxDocument",
    "MalformedEntryError",
    "MalformedHeaderError",
    "MalformedInputError",
    "MalformedUrlError",
    "MissingEntriesError",
    "RequestRecord",
    "SkippedEntry",
    "append_sampler",
    "convert",
    "iter_records",
    "new_document",
    "parse",
]

__version__ = "0.1.0"
