import json
from pathlib import Path

import pytest

from annotation_intel.ingest.loader import LoaderRegistry


def test_text_loader_splits_pages_on_form_feed(tmp_path: Path) -> None:
    path = tmp_path / "paper.txt"
    path.write_text("First page text.\fSecond page text.", encoding="utf-8")

    document = LoaderRegistry().load_path(path)

    assert list(document.page_numbers()) == [1, 2]
    assert document.page_text(2) == "Second page text."


def test_json_loader_accepts_page_lists_and_fragments(tmp_path: Path) -> None:
    path = tmp_path / "paper.json"
    path.write_text(
        json.dumps(
            {
                "pages": [
                    {"page_number": 1, "text": "Plain page text."},
                    {"page_number": 3, "fragments": ["Joined", "text runs."]},
                ]
            }
        ),
        encoding="utf-8",
    )

    document = LoaderRegistry().load_path(path)

    assert list(document.page_numbers()) == [1, 3]
    assert document.page_text(3) == "Joined text runs."
    with pytest.raises(KeyError):
        document.page_text(2)


def test_json_loader_rejects_non_list_payload(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text(json.dumps({"title": "no pages"}), encoding="utf-8")

    with pytest.raises(ValueError, match="list of pages"):
        LoaderRegistry().load_path(path)


def test_unknown_extension_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="No loader"):
        LoaderRegistry().load_path(tmp_path / "paper.pdf")


@pytest.mark.parametrize(
    "entry",
    [
        {"page_number": None, "text": "Null page numbers are rejected."},
        {"page_number": "first", "text": "Non-numeric page numbers are rejected."},
        {"page_number": 1, "fragments": 5},
        {"page_number": 1, "fragments": "not a list"},
    ],
)
def test_json_loader_rejects_malformed_page_entries(tmp_path: Path, entry: dict) -> None:
    path = tmp_path / "malformed.json"
    path.write_text(json.dumps([entry]), encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid page entry"):
        LoaderRegistry().load_path(path)
