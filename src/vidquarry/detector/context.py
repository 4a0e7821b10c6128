"""
Element context for videos embedded in an article: caption, description,
nearest heading, neighbouring paragraphs and enclosing section.
"""

from __future__ import annotations

import re
from typing import Iterator, List, Optional

from bs4 import Tag

from vidquarry.detector.models import ElementContext
from vidquarry.parser.document import HTMLDocument

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
MAX_SURROUNDING_CHARS = 300
MAX_ASSOCIATED_PARAGRAPHS = 3

_whitespace = re.compile(r"\s+")


def _clean(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    cleaned = _whitespace.sub(" ", text).strip()
    return cleaned or None


def _within(element: Tag, document: HTMLDocument) -> bool:
    if not document.is_scoped:
        return True
    return element is document.root or any(parent is document.root for parent in element.parents)


def _sibling_tags(element: Tag) -> Iterator[Tag]:
    for sibling in element.next_siblings:
        if isinstance(sibling, Tag):
            yield sibling
    for sibling in element.previous_siblings:
        if isinstance(sibling, Tag):
            yield sibling


def _neighbourhood(element: Tag, document: HTMLDocument) -> Iterator[Tag]:
    """Siblings of the element, then siblings of its wrapper."""
    yield from _sibling_tags(element)
    parent = element.parent
    if isinstance(parent, Tag) and parent is not document.root and _within(parent, document):
        yield from _sibling_tags(parent)


def _find_classed(element: Tag, document: HTMLDocument, substring: str) -> Optional[Tag]:
    for candidate in _neighbourhood(element, document):
        classes = (document.attribute(candidate, "class") or "").lower()
        if substring in classes:
            return candidate
        nested = candidate.find(
            lambda tag: isinstance(tag, Tag) and substring in (document.attribute(tag, "class") or "").lower()
        )
        if isinstance(nested, Tag):
            return nested
    return None


def _caption(element: Tag, document: HTMLDocument) -> Optional[str]:
    figure = element.find_parent("figure")
    if isinstance(figure, Tag) and _within(figure, document):
        figcaption = figure.find("figcaption")
        if isinstance(figcaption, Tag):
            text = _clean(figcaption.get_text(" ", strip=True))
            if text:
                return text
    captioned = _find_classed(element, document, "caption")
    if captioned is not None:
        text = _clean(captioned.get_text(" ", strip=True))
        if text:
            return text
    return _clean(document.attribute(element, "alt")) or _clean(document.attribute(element, "title"))


def _heading(element: Tag, document: HTMLDocument) -> tuple[Optional[str], Optional[int]]:
    heading = element.find_previous(HEADING_TAGS)
    while isinstance(heading, Tag):
        if _within(heading, document):
            text = _clean(heading.get_text(" ", strip=True))
            if text:
                return text, int(heading.name[1])
        else:
            break
        heading = heading.find_previous(HEADING_TAGS)
    return None, None


def _paragraph(element: Tag, document: HTMLDocument, forward: bool, skip: set[str]) -> Optional[str]:
    finder = element.find_next if forward else element.find_previous
    paragraph = finder("p")
    while isinstance(paragraph, Tag) and _within(paragraph, document):
        if not forward or element not in paragraph.parents:
            text = _clean(paragraph.get_text(" ", strip=True))
            if text and text not in skip:
                return text
        paragraph = paragraph.find_next("p") if forward else paragraph.find_previous("p")
    return None


def _associated_paragraphs(element: Tag, document: HTMLDocument, skip: set[str]) -> List[str]:
    paragraphs: List[str] = []
    for candidate in _neighbourhood(element, document):
        if candidate.name != "p":
            continue
        text = _clean(candidate.get_text(" ", strip=True))
        if text and text not in skip and text not in paragraphs:
            paragraphs.append(text)
        if len(paragraphs) >= MAX_ASSOCIATED_PARAGRAPHS:
            break
    return paragraphs


def _sections(element: Tag, document: HTMLDocument) -> tuple[Optional[str], Optional[str]]:
    context_section: Optional[str] = None
    document_section: Optional[str] = None
    for parent in element.parents:
        if not isinstance(parent, Tag) or parent.name == "[document]" or not _within(parent, document):
            break
        element_id = document.attribute(parent, "id")
        if parent.name == "section" and context_section is None:
            context_section = element_id or document.attribute(parent, "class")
        if element_id and document_section is None:
            document_section = f"#{element_id}"
    if context_section is None and isinstance(element.parent, Tag):
        context_section = document.attribute(element.parent, "class")
    return _clean(context_section), document_section


def extract_element_context(element: Tag, document: HTMLDocument) -> ElementContext:
    """Describe where ``element`` sits within ``document``."""
    caption = _caption(element, document)
    described = _find_classed(element, document, "description")
    description = _clean(described.get_text(" ", strip=True)) if described is not None else None
    skip = {text for text in (caption, description) if text}

    heading, level = _heading(element, document)
    preceding = _paragraph(element, document, forward=False, skip=skip)
    following = _paragraph(element, document, forward=True, skip=skip)
    surrounding = " ".join(text for text in (preceding, following) if text) or None
    if surrounding and len(surrounding) > MAX_SURROUNDING_CHARS:
        surrounding = surrounding[:MAX_SURROUNDING_CHARS].rstrip() + "..."
    context_section, document_section = _sections(element, document)
    parent = element.parent

    return ElementContext(
        xpath=document.xpath(element),
        parent_tag=parent.name if isinstance(parent, Tag) and parent.name != "[document]" else None,
        caption=caption,
        description=description,
        parent_heading=heading,
        parent_heading_level=level,
        preceding_text=preceding,
        following_text=following,
        surrounding_text=surrounding,
        associated_paragraphs=tuple(_associated_paragraphs(element, document, skip)),
        context_section=context_section,
        document_section=document_section,
    )
