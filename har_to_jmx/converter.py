"""HAR to JMeter JMX conversion.

Reads a HAR capture (Fiddler, browser devtools, ...) and writes a JMX test
plan holding one HTTP sampler per recorded request, in capture order.

Entries that cannot be converted (no usable URL, a header without a name)
are skipped and reported in ``ConversionResult.skipped``. Pass
``strict=True`` to abort on the first one instead.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .builder import JmxDocument, append_sampler, new_document
from .errors import MalformedEntryError, MissingEntriesError
from .reader import get_field, load_har, locate_entries, read_all_text, records_from_entries

logger = logging.getLogger(__name__)


@dataclass
class SkippedEntry:
    index: int
    url: Optional[str]
    error: MalformedEntryError


@dataclass
class ConversionResult:
    output_path: Optional[str] = None
    samplers: int = 0
    skipped: List[SkippedEntry] = field(default_factory=list)
    missing_entries: bool = False


class HarToJmxConverter:
    def __init__(
        self,
        read_all_text: Callable[[str], str] = read_all_text,
        save: Callable[[JmxDocument, str], None] = JmxDocument.save,
        strict: bool = False,
    ):
        self.read_all_text = read_all_text
        self.save = save
        self.strict = strict

    def build(self, har_text) -> Tuple[JmxDocument, ConversionResult]:
        """Build the test plan for ``har_text`` without touching storage."""
        har = load_har(har_text)
        result = ConversionResult()
        doc = new_document()

        try:
            entries = locate_entries(har)
        except MissingEntriesError as e:
            logger.info("%s, writing an empty test plan", e)
            result.missing_entries = True
            return doc, result

        def skip(idx, error):
            if self.strict:
                raise error
            logger.warning("Skipping %s", error)
            url = get_field(entries[idx], "request.url")
            result.skipped.append(SkippedEntry(idx, url, error))

        for idx, record in records_from_entries(entries, on_error=skip):
            try:
                append_sampler(doc, record)
            except MalformedEntryError as e:
                e.index = idx
                skip(idx, e)
                continue
            result.samplers += 1

        logger.info(
            "HAR parsed: total=%d, converted=%d, skipped=%d",
            len(entries), result.samplers, len(result.skipped)
        )
        return doc, result

    def convert(self, har_path: str, jmx_path: str) -> ConversionResult:
        har_text = self.read_all_text(har_path)
        doc, result = self.build(har_text)
        self.save(doc, jmx_path)
        result.output_path = jmx_path
        logger.info("JMX generated: %s", jmx_path)
        return result


def convert(har_path: str, jmx_path: str, strict: bool = False) -> ConversionResult:
    return HarToJmxConverter(strict=strict).convert(har_path, jmx_path)
