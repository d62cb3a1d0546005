"""Page -> paragraph -> sentence decomposition of document text."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from annotation_intel.config import ExtractionConfig
from annotation_intel.types import DocumentPage, TextUnit

logger = logging.getLogger(__name__)

_BLANK_LINES = r"\n\s*\n"
_CAPITALIZED_SENTENCE = r"(?<=\.)\s+(?=[A-Z])"
_LIST_MARKER = r"\s+(?=\d{1,3}\.\s)"

_PARAGRAPH_BREAK = re.compile("|".join((_BLANK_LINES, _CAPITALIZED_SENTENCE, _LIST_MARKER)))
_PARAGRAPH_BREAK_NO_CAPITALS = re.compile("|".join((_BLANK_LINES, _LIST_MARKER)))
_SENTENCE_END = re.compile(r"[.!?]+(?:\s+(?=[A-Z])|$)|[。！？]+\s*")


class DocumentSource(ABC):
    """Supplies raw per-page text to the extractor."""

    @abstractmethod
    def page_numbers(self) -> Sequence[int]:
        """Return page numbers in reading order."""

    @abstractmethod
    def page_text(self, page_number: int) -> str:
        """Return the concatenated text of one page."""


class InMemoryDocument(DocumentSource):
    """Document source backed by already-fetched pages."""

    def __init__(self, pages: Sequence[DocumentPage]) -> None:
        self._pages: dict[int, str] = {}
        for page in pages:
            # last duplicate wins
            if page.page_number in self._pages:
                logger.warning("Duplicate page number %s; keeping the later page", page.page_number)
            self._pages[page.page_number] = page.text

    def page_numbers(self) -> Sequence[int]:
        return list(self._pages)

    def page_text(self, page_number: int) -> str:
        try:
            return self._pages[page_number]
        except KeyError:
            raise KeyError(f"Page not found: {page_number}") from None


@dataclass(slots=True)
class _Span:
    text: str
    start: int
    end: int


def _trimmed_span(text: str, start: int, end: int) -> _Span | None:
    raw = text[start:end]
    stripped = raw.strip()
    if not stripped:
        return None
    left_trim = len(raw) - len(raw.lstrip())
    begin = start + left_trim
    return _Span(text=stripped, start=begin, end=begin + len(stripped))


class ExtractedStructure:
    """Restartable view over the units of one document.

    Every iteration re-runs the extraction pass, so two iterations over the
    same source yield identical units.
    """

    def __init__(self, extractor: "TextStructureExtractor", document: DocumentSource) -> None:
        self._extractor = extractor
        self._document = document

    def __iter__(self) -> Iterator[TextUnit]:
        return self._extractor.iter_units(self._document)


class TextStructureExtractor:
    """Splits paginated text into addressable sentence units.

    Paragraph boundaries are blank-line runs, whitespace after a period that
    precedes a capital letter, and whitespace before a numbered-list marker.
    Sentences end at ``.``/``!``/``?`` runs followed by whitespace and a
    capital, at the end of the paragraph, or after CJK terminal punctuation.
    Text after the last terminator is kept as a sentence of its own, and a
    paragraph whose sentences are all too short is emitted whole.
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self._paragraph_break = (
            _PARAGRAPH_BREAK
            if self.config.split_on_capitalized_sentences
            else _PARAGRAPH_BREAK_NO_CAPITALS
        )

    def extract(self, document: DocumentSource | Sequence[DocumentPage]) -> ExtractedStructure:
        if not isinstance(document, DocumentSource):
            document = InMemoryDocument(document)
        return ExtractedStructure(self, document)

    def iter_units(self, document: DocumentSource) -> Iterator[TextUnit]:
        for page_number in document.page_numbers():
            if page_number < 1:
                logger.warning("Skipping invalid page number: %s", page_number)
                continue
            try:
                page_text = document.page_text(page_number)
            except Exception as exc:
                logger.warning("Text extraction failed for page %s: %s", page_number, exc)
                continue
            if not page_text:
                continue
            yield from self.page_units(page_number, page_text)

    def page_units(self, page_number: int, page_text: str) -> list[TextUnit]:
        units: list[TextUnit] = []
        for paragraph_index, paragraph in enumerate(self._split_paragraphs(page_text)):
            for sentence_index, sentence in enumerate(self._split_sentences(paragraph)):
                start = paragraph.start + sentence.start
                end = paragraph.start + sentence.end
                units.append(
                    TextUnit(
                        page=page_number,
                        paragraph_index=paragraph_index,
                        sentence_index=sentence_index,
                        start_offset=start,
                        end_offset=end,
                        text=sentence.text,
                        context=self._context(page_text, start, end),
                    )
                )
        return units

    def _split_paragraphs(self, text: str) -> list[_Span]:
        spans: list[_Span | None] = []
        last = 0
        for match in self._paragraph_break.finditer(text):
            spans.append(_trimmed_span(text, last, match.start()))
            last = match.end()
        spans.append(_trimmed_span(text, last, len(text)))
        return [
            span
            for span in spans
            if span is not None and len(span.text) > self.config.min_paragraph_chars
        ]

    def _split_sentences(self, paragraph: _Span) -> list[_Span]:
        text = paragraph.text
        candidates: list[_Span | None] = []
        last = 0
        for match in _SENTENCE_END.finditer(text):
            candidates.append(_trimmed_span(text, last, match.end()))
            last = match.end()
        candidates.append(_trimmed_span(text, last, len(text)))

        sentences = [
            span
            for span in candidates
            if span is not None and len(span.text) > self.config.min_sentence_chars
        ]
        if sentences:
            return sentences
        return [_Span(text=text, start=0, end=len(text))]

    def _context(self, page_text: str, start: int, end: int) -> str:
        window = self.config.context_chars
        return page_text[max(0, start - window) : min(len(page_text), end + window)]
