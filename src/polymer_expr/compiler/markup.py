"""Mutable markup tree built on ``html.parser``.

The tree keeps enough of the source to serialize an untouched document back
byte for byte: start tags remember their raw text, text nodes keep entity
references as written, and comments/declarations are stored verbatim. Only
start tags whose attributes were rewritten are re-rendered.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

# HTML void elements that don't have closing tags
VOID_ELEMENTS = {
    "area",
    "base",
    "br",
    "col",
    "embed",
    "hr",
    "img",
    "input",
    "link",
    "meta",
    "param",
    "source",
    "track",
    "wbr",
}

# Elements whose content the tokenizer hands over as raw text
RAW_TEXT_ELEMENTS = {"script", "style"}

_AMBIGUOUS_AMPERSAND = re.compile(r"&(?=[A-Za-z0-9#])")

# Start-tag tokens, matching the attribute grammar html.parser accepts
_TAG_OPEN = re.compile(r"<[^\s/>]+")
_ATTRIBUTE = re.compile(
    r"""[\s/]*(?P<name>[^\s/>=][^\s/=>]*)"""
    r"""(?:\s*=\s*(?P<raw>'[^']*'|"[^"]*"|(?!['"])[^>\s]*))?"""
)


@dataclass(eq=False)
class Node:
    parent: Optional["ParentNode"] = field(default=None, repr=False)

    def ancestors(self) -> Iterator["Element"]:
        """Yield enclosing elements, nearest first."""
        current = self.parent
        while isinstance(current, Element):
            yield current
            current = current.parent


@dataclass(eq=False)
class Text(Node):
    data: str = ""


@dataclass(eq=False)
class Comment(Node):
    data: str = ""


@dataclass(eq=False)
class Declaration(Node):
    data: str = ""


@dataclass(eq=False)
class ProcessingInstruction(Node):
    data: str = ""


@dataclass(eq=False)
class ParentNode(Node):
    children: List[Node] = field(default_factory=list)

    def append(self, child: Node) -> None:
        child.parent = self
        self.children.append(child)

    def iter(self) -> Iterator[Node]:
        """Depth-first, document-order iteration over all descendants."""
        stack: List[Iterator[Node]] = [iter(self.children)]
        while stack:
            child = next(stack[-1], None)
            if child is None:
                stack.pop()
                continue
            yield child
            if isinstance(child, ParentNode):
                stack.append(iter(child.children))

    def find_all(self, tag: str) -> Iterator["Element"]:
        for node in self.iter():
            if isinstance(node, Element) and node.tag == tag:
                yield node

    def find(self, tag: str) -> Optional["Element"]:
        return next(self.find_all(tag), None)


@dataclass(eq=False)
class Element(ParentNode):
    tag: str = ""
    attributes: Dict[str, Optional[str]] = field(default_factory=dict)
    source: Optional[str] = None
    self_closing: bool = False
    closed: bool = False
    _changed: Set[str] = field(default_factory=set, repr=False)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    def set_attribute(self, name: str, value: Optional[str]) -> None:
        """Set an attribute; only its value is re-rendered on serialization."""
        self.attributes[name] = value
        self._changed.add(name)

    @property
    def text(self) -> str:
        return "".join(c.data for c in self.children if isinstance(c, Text))

    def start_tag(self) -> str:
        if self.source is not None:
            if not self._changed:
                return self.source
            spliced = self._splice_source(self.source)
            if spliced is not None:
                return spliced
        parts = [f"<{self.tag}"]
        for name, value in self.attributes.items():
            parts.append(f" {name}{_render_value(value)}")
        parts.append("/>" if self.self_closing else ">")
        return "".join(parts)

    def _splice_source(self, source: str) -> Optional[str]:
        """Replace changed values inside the raw start tag.

        Everything else in the tag (name case, quoting, entities, spacing) is
        kept as written. Returns None if a changed attribute is not in the
        raw tag.
        """
        opening = _TAG_OPEN.match(source)
        if opening is None:
            return None
        parts: List[str] = []
        found: Set[str] = set()
        last = 0
        pos = opening.end()
        while True:
            match = _ATTRIBUTE.match(source, pos)
            if match is None:
                break
            name = match.group("name").lower()
            if name in self._changed:
                found.add(name)
                parts.append(source[last : match.end("name")])
                parts.append(_render_value(self.attributes[name], match.group("raw")))
                last = match.end()
            pos = match.end()
        if found != self._changed:
            return None
        parts.append(source[last:])
        return "".join(parts)


@dataclass(eq=False)
class Document(ParentNode):
    pass


def escape_attribute(value: str, quote: str = '"') -> str:
    """Escape an attribute value for an attribute quoted with ``quote``.

    Only ampersands that would otherwise read as a character reference are
    escaped, so binding operators such as ``&&`` survive untouched.
    """
    value = _AMBIGUOUS_AMPERSAND.sub("&amp;", value)
    if quote == "'":
        return value.replace("'", "&#39;")
    return value.replace('"', "&quot;")


def _render_value(value: Optional[str], raw: Optional[str] = None) -> str:
    if value is None:
        return ""
    # Keep single quotes where the source used them
    quote = "'" if raw and raw.startswith("'") else '"'
    return f"={quote}{escape_attribute(value, quote)}{quote}"


class _TreeBuilder(HTMLParser):
    def __init__(self, text: str) -> None:
        super().__init__(convert_charrefs=False)
        self.document = Document()
        self._stack: List[ParentNode] = [self.document]
        self._text = text
        self._line_starts = [0]
        for match in re.finditer("\n", text):
            self._line_starts.append(match.end())

    def _raw_reference(self, prefix: str, name: str) -> str:
        # html.parser reports references without saying whether the source
        # had the terminating ';'. Look it up so the text round-trips.
        lineno, offset = self.getpos()
        end = self._line_starts[lineno - 1] + offset + len(prefix) + len(name)
        if self._text.startswith(";", end):
            return f"{prefix}{name};"
        return f"{prefix}{name}"

    @property
    def _current(self) -> ParentNode:
        return self._stack[-1]

    def _append_text(self, data: str) -> None:
        children = self._current.children
        if children and isinstance(children[-1], Text):
            children[-1].data += data
        else:
            self._current.append(Text(data=data))

    def _element(
        self, tag: str, attrs: List[Tuple[str, Optional[str]]], self_closing: bool
    ) -> Element:
        element = Element(
            tag=tag,
            attributes=dict(attrs),
            source=self.get_starttag_text(),
            self_closing=self_closing,
        )
        self._current.append(element)
        return element

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        element = self._element(tag, attrs, self_closing=False)
        if tag not in VOID_ELEMENTS:
            self._stack.append(element)

    def handle_startendtag(
        self, tag: str, attrs: List[Tuple[str, Optional[str]]]
    ) -> None:
        self._element(tag, attrs, self_closing=True)

    def handle_endtag(self, tag: str) -> None:
        for index in range(len(self._stack) - 1, 0, -1):
            candidate = self._stack[index]
            if isinstance(candidate, Element) and candidate.tag == tag:
                candidate.closed = True
                del self._stack[index:]
                return
        # Stray end tag: keep it as text so it round-trips
        self._append_text(f"</{tag}>")

    def handle_data(self, data: str) -> None:
        self._append_text(data)

    def handle_entityref(self, name: str) -> None:
        self._append_text(self._raw_reference("&", name))

    def handle_charref(self, name: str) -> None:
        self._append_text(self._raw_reference("&#", name))

    def handle_comment(self, data: str) -> None:
        self._current.append(Comment(data=data))

    def handle_decl(self, decl: str) -> None:
        self._current.append(Declaration(data=decl))

    def unknown_decl(self, data: str) -> None:
        self._current.append(Declaration(data=f"[{data}]"))

    def handle_pi(self, data: str) -> None:
        self._current.append(ProcessingInstruction(data=data))


def parse_markup(text: str) -> Document:
    """Parse markup text into a mutable ``Document``."""
    builder = _TreeBuilder(text)
    builder.feed(text)
    builder.close()
    return builder.document


def serialize(node: Union[Document, Node]) -> str:
    """Serialize a node (usually the ``Document``) back to markup text."""
    parts: List[str] = []
    # Pending nodes, plus end tags queued behind their children
    stack: List[Union[Node, str]] = [node]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, Text):
            parts.append(item.data)
        elif isinstance(item, Comment):
            parts.append(f"<!--{item.data}-->")
        elif isinstance(item, Declaration):
            parts.append(f"<!{item.data}>")
        elif isinstance(item, ProcessingInstruction):
            parts.append(f"<?{item.data}>")
        elif isinstance(item, ParentNode):
            if isinstance(item, Element):
                parts.append(item.start_tag())
                if item.closed:
                    stack.append(f"</{item.tag}>")
            stack.extend(reversed(item.children))
    return "".join(parts)
