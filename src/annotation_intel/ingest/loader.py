"""Loaders turning page-text exports into in-memory documents."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from annotation_intel.ingest.extractor import InMemoryDocument
from annotation_intel.types import DocumentPage

PAGE_SEPARATOR = "\f"


class PageLoader(ABC):
    """Base loader interface keyed by file extension."""

    extensions: tuple[str, ...] = ()

    @abstractmethod
    def load(self, path: Path) -> InMemoryDocument:
        """Read a file into numbered pages."""


class TextPageLoader(PageLoader):
    """Plain text with pages separated by form feeds, numbered from 1."""

    extensions = (".txt",)

    def load(self, path: Path) -> InMemoryDocument:
        text = path.read_text(encoding="utf-8")
        pages = [
            DocumentPage(page_number=number, text=page_text)
            for number, page_text in enumerate(text.split(PAGE_SEPARATOR), start=1)
        ]
        return InMemoryDocument(pages)


class JsonPageLoader(PageLoader):
    """JSON list of page objects, or an object holding a ``pages`` list.

    Each page carries ``page_number`` and either ``text`` or ``fragments``
    (text runs joined with single spaces).
    """

    extensions = (".json",)

    def load(self, path: Path) -> InMemoryDocument:
        payload: Any = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(payload, dict):
            payload = payload.get("pages")
        if not isinstance(payload, list):
            raise ValueError(f"Expected a list of pages in {path}")
        return InMemoryDocument(
            [self._page(item, index, path) for index, item in enumerate(payload, start=1)]
        )

    @staticmethod
    def _page(item: Any, default_number: int, path: Path) -> DocumentPage:
        if not isinstance(item, dict):
            raise ValueError(f"Page entry must be an object, got {type(item).__name__}")
        try:
            number = int(item.get("page_number", default_number))
            if "fragments" in item:
                fragments = item["fragments"]
                if isinstance(fragments, str):
                    raise TypeError("fragments must be a list of strings")
                return DocumentPage.from_fragments(number, [str(part) for part in fragments])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid page entry in {path}: {exc}") from exc
        return DocumentPage(page_number=number, text=str(item.get("text", "")))


class LoaderRegistry:
    """Maps file extension to loader implementation."""

    def __init__(self, loaders: list[PageLoader] | None = None) -> None:
        self._loaders: dict[str, PageLoader] = {}
        for loader in loaders or [TextPageLoader(), JsonPageLoader()]:
            self.register(loader)

    def register(self, loader: PageLoader) -> None:
        for extension in loader.extensions:
            self._loaders[extension.lower()] = loader

    def load_path(self, path: str | Path) -> InMemoryDocument:
        file_path = Path(path)
        loader = self._loaders.get(file_path.suffix.lower())
        if loader is None:
            raise ValueError(f"No loader registered for extension: {file_path.suffix}")
        return loader.load(file_path)
