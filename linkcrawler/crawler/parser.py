"""
HTML link extraction over a typed document tree.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import CData, Comment, Declaration, Doctype, ProcessingInstruction


class LinkExtractionError(Exception):
    """Raised when the markup parser itself fails."""


@dataclass
class Element:
    """An element node with its attributes and children."""
    name: str
    attrs: List[Tuple[str, str]] = field(default_factory=list)
    children: List['Node'] = field(default_factory=list)

    def get(self, name: str):
        for key, value in self.attrs:
            if key == name:
                return value
        return None


@dataclass
class Text:
    """A run of character data."""
    data: str


@dataclass
class Other:
    """Comments, doctypes and other nodes that carry no links."""
    kind: str


@dataclass
class Document:
    """Root of a parsed document."""
    children: List['Node'] = field(default_factory=list)


Node = Union[Document, Element, Text, Other]

_OTHER_KINDS = (
    (Comment, 'comment'),
    (Doctype, 'doctype'),
    (CData, 'cdata'),
    (ProcessingInstruction, 'processing-instruction'),
    (Declaration, 'declaration'),
)


def _attr_value(value) -> str:
    # bs4 returns multi-valued attributes (class, rel) as lists
    if isinstance(value, list):
        return ' '.join(value)
    return value


def _convert_string(node: NavigableString) -> Node:
    for cls, kind in _OTHER_KINDS:
        if isinstance(node, cls):
            return Other(kind)
    return Text(str(node))


def build_tree(markup: bytes, features: str = 'lxml') -> Document:
    """
    Parse markup and convert it into the typed node tree.

    Args:
        markup: Raw page bytes, in any encoding BeautifulSoup can detect
        features: BeautifulSoup tree builder to use

    Returns:
        Document root

    Raises:
        LinkExtractionError: if the underlying parser raises
    """
    try:
        return _convert(BeautifulSoup(markup, features))
    except Exception as e:
        raise LinkExtractionError(f"Markup parser failed: {e}") from e


def _convert(soup: BeautifulSoup) -> Document:
    document = Document()
    stack = [(soup, document.children)]
    while stack:
        source, target = stack.pop()
        for child in source.children:
            if isinstance(child, Tag):
                element = Element(
                    name=child.name.lower(),
                    attrs=[(k.lower(), _attr_value(v)) for k, v in child.attrs.items()],
                )
                target.append(element)
                stack.append((child, element.children))
            elif isinstance(child, NavigableString):
                target.append(_convert_string(child))

    return document


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all of its descendants in document order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, (Document, Element)):
            stack.extend(reversed(current.children))


def find_links(document: Node) -> List[str]:
    """Collect ``href`` values of anchor elements in document order."""
    links = []
    for node in walk(document):
        if isinstance(node, Element) and node.name == 'a':
            href = node.get('href')
            if href is not None:
                links.append(href)
    return links


class LinkExtractor:
    """
    Extracts raw anchor targets from page bodies.

    The parser is tolerant: malformed markup still yields whatever anchors
    the tree builder recovered, and non-HTML bodies yield no links.
    """

    def __init__(self, features: str = 'lxml'):
        self.features = features
        self.logger = logging.getLogger(__name__)

    def extract(self, body: bytes) -> List[str]:
        if not body:
            return []

        document = build_tree(body, self.features)
        links = find_links(document)
        self.logger.debug(f"Extracted {len(links)} links from {len(body)} bytes")
        return links
