import logging
from collections.abc import Sequence

from annotation_intel.config import ExtractionConfig
from annotation_intel.ingest.extractor import (
    DocumentSource,
    InMemoryDocument,
    TextStructureExtractor,
)
from annotation_intel.types import DocumentPage

PAGE_ONE = (
    "Reading annotations helps researchers. This paper presents a key finding about X."
    "\n\n"
    "Second paragraph talks about methods in detail! It also covers evaluation carefully."
)


class _FlakySource(DocumentSource):
    def __init__(self, pages: dict[int, str], failing: set[int]) -> None:
        self._pages = pages
        self._failing = failing

    def page_numbers(self) -> Sequence[int]:
        return list(self._pages)

    def page_text(self, page_number: int) -> str:
        if page_number in self._failing:
            raise RuntimeError("text layer unavailable")
        return self._pages[page_number]


def test_units_follow_page_paragraph_sentence_order() -> None:
    extractor = TextStructureExtractor()
    units = list(extractor.extract([DocumentPage(page_number=1, text=PAGE_ONE)]))

    assert [(u.paragraph_index, u.sentence_index) for u in units] == [(0, 0), (1, 0), (2, 0), (2, 1)]
    assert [u.text for u in units] == [
        "Reading annotations helps researchers.",
        "This paper presents a key finding about X.",
        "Second paragraph talks about methods in detail!",
        "It also covers evaluation carefully.",
    ]
    for unit in units:
        assert unit.page == 1
        assert PAGE_ONE[unit.start_offset : unit.end_offset] == unit.text
        assert 0 <= unit.start_offset < unit.end_offset


def test_extraction_is_restartable_and_deterministic() -> None:
    extractor = TextStructureExtractor()
    structure = extractor.extract(InMemoryDocument([DocumentPage(page_number=1, text=PAGE_ONE)]))

    first = list(structure)
    second = list(structure)

    assert first
    assert first == second


def test_short_paragraphs_are_discarded_and_indices_stay_dense() -> None:
    text = "Too short here. Another fairly long sentence for the test."
    units = list(TextStructureExtractor().extract([DocumentPage(page_number=1, text=text)]))

    assert len(units) == 1
    assert units[0].text == "Another fairly long sentence for the test."
    assert units[0].paragraph_index == 0


def test_paragraph_without_terminator_is_emitted_whole() -> None:
    text = "a paragraph without any terminal punctuation at all"
    units = list(TextStructureExtractor().extract([DocumentPage(page_number=1, text=text)]))

    assert len(units) == 1
    assert units[0].text == text
    assert units[0].sentence_index == 0


def test_paragraph_of_short_sentences_falls_back_to_whole_paragraph() -> None:
    text = "Yes! No! Maybe so! Why not! Fine!"
    units = list(TextStructureExtractor().extract([DocumentPage(page_number=1, text=text)]))

    assert len(units) == 1
    assert units[0].text == text


def test_numbered_list_markers_start_new_paragraphs() -> None:
    text = "Steps follow here in order: 1. Collect the annotated documents 2. Run the extraction pass"
    units = list(TextStructureExtractor().extract([DocumentPage(page_number=1, text=text)]))

    assert [u.text for u in units] == [
        "Steps follow here in order:",
        "Collect the annotated documents",
        "Run the extraction pass",
    ]
    assert [u.paragraph_index for u in units] == [0, 1, 2]


def test_cjk_terminators_split_sentences() -> None:
    text = "这是第一个句子。这是第二个句子，内容更长一些。"
    units = list(TextStructureExtractor().extract([DocumentPage(page_number=1, text=text)]))

    assert [u.text for u in units] == ["这是第二个句子，内容更长一些。"]
    assert units[0].sentence_index == 0


def test_context_window_is_clamped_to_page_bounds() -> None:
    extractor = TextStructureExtractor(ExtractionConfig(context_chars=10))
    units = list(extractor.extract([DocumentPage(page_number=1, text=PAGE_ONE)]))

    first, second = units[0], units[1]
    assert first.context == PAGE_ONE[: first.end_offset + 10]
    assert second.context == PAGE_ONE[second.start_offset - 10 : second.end_offset + 10]
    assert units[-1].context.endswith("carefully.")


def test_failing_page_is_logged_and_skipped(caplog) -> None:
    source = _FlakySource(
        {
            1: "The first page carries a long enough sentence.",
            2: "The second page cannot be read at all today.",
            3: "The third page also carries a long sentence.",
        },
        failing={2},
    )

    with caplog.at_level(logging.WARNING):
        units = list(TextStructureExtractor().extract(source))

    assert [u.page for u in units] == [1, 3]
    assert "page 2" in caplog.text


def test_page_gaps_and_invalid_numbers_are_tolerated() -> None:
    pages = [
        DocumentPage(page_number=0, text="A page numbered zero is not addressable."),
        DocumentPage(page_number=1, text="Page one has a sentence that is long enough."),
        DocumentPage(page_number=4, text="Page four arrives after a gap in numbering."),
    ]
    units = list(TextStructureExtractor().extract(pages))

    assert [u.page for u in units] == [1, 4]


def test_fragments_are_joined_into_page_text() -> None:
    page = DocumentPage.from_fragments(2, ["Annotations anchor", "to sentences."])

    assert page.text == "Annotations anchor to sentences."
    assert page.page_number == 2


def test_capitalized_sentence_split_can_be_disabled() -> None:
    extractor = TextStructureExtractor(ExtractionConfig(split_on_capitalized_sentences=False))
    units = list(extractor.extract([DocumentPage(page_number=1, text=PAGE_ONE)]))

    assert [(u.paragraph_index, u.sentence_index) for u in units] == [(0, 0), (0, 1), (1, 0), (1, 1)]


def test_duplicate_page_numbers_keep_the_later_page(caplog) -> None:
    pages = [
        DocumentPage(page_number=1, text="Earlier text for the first page."),
        DocumentPage(page_number=1, text="Later text for the first page."),
    ]

    with caplog.at_level(logging.WARNING):
        document = InMemoryDocument(pages)

    assert list(document.page_numbers()) == [1]
    assert document.page_text(1) == "Later text for the first page."
    assert "Duplicate page number 1" in caplog.text
