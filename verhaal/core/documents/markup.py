"""HTML -> markup dialect conversion.

The dialect is plain text with inline markers:

    ***bold italic***  **bold**  *italic*  __underline__  ~~strike~~  `code`

Paragraphs are separated by a blank line and explicit line breaks become a
single newline. Everything else is reduced to its text content.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

BOLD_TAGS: FrozenSet[str] = frozenset({"strong", "b"})
ITALIC_TAGS: FrozenSet[str] = frozenset({"em", "i"})
UNDERLINE_TAGS: FrozenSet[str] = frozenset({"u"})
STRIKE_TAGS: FrozenSet[str] = frozenset({"s", "strike", "del"})
CODE_TAGS: FrozenSet[str] = frozenset({"code"})

_DROPPED_TAGS = frozenset({"script", "style", "head", "title"})
_NON_TEXT_NODES = (Comment, Declaration, Doctype, ProcessingInstruction)

_EXCESS_BLANK_LINES = re.compile(r"\n\s*\n\s*\n")


def _only_child_tag(tag: Tag) -> Optional[Tag]:
    """Return the single element child of `tag` if it has no other content."""

    children = [c for c in tag.children if not isinstance(c, _NON_TEXT_NODES)]
    if len(children) != 1 or not isinstance(children[0], Tag):
        return None
    return children[0]


def _combined_bold_italic(tag: Tag) -> Optional[Tag]:
    inner = _only_child_tag(tag)
    if inner is None:
        return None
    if tag.name in BOLD_TAGS and inner.name in ITALIC_TAGS:
        return inner
    if tag.name in ITALIC_TAGS and inner.name in BOLD_TAGS:
        return inner
    return None


def _named(names: FrozenSet[str]) -> Callable[[Tag], Optional[Tag]]:
    def match(tag: Tag) -> Optional[Tag]:
        return tag if tag.name in names else None

    return match


@dataclass(frozen=True)
class InlineRule:
    """One row of the inline rule table.

    `match` returns the element whose children are rendered between the
    delimiters, or None when the rule does not apply.
    """

    name: str
    delimiter: str
    match: Callable[[Tag], Optional[Tag]]


# First match wins. The combined rule precedes bold and italic so a run that is
# both never gets nested ** and * wrappers.
INLINE_RULES: Tuple[InlineRule, ...] = (
    InlineRule("bold_italic", "***", _combined_bold_italic),
    InlineRule("bold", "**", _named(BOLD_TAGS)),
    InlineRule("italic", "*", _named(ITALIC_TAGS)),
    InlineRule("underline", "__", _named(UNDERLINE_TAGS)),
    InlineRule("strikethrough", "~~", _named(STRIKE_TAGS)),
    InlineRule("code", "`", _named(CODE_TAGS)),
)


class _MarkupWriter:
    def __init__(self, rules: Tuple[InlineRule, ...]) -> None:
        self._rules = rules

    def render_children(self, tag: Tag) -> str:
        return "".join(self.render(child) for child in tag.children)

    def render(self, node) -> str:
        if isinstance(node, _NON_TEXT_NODES):
            return ""
        if isinstance(node, NavigableString):
            return str(node)
        if not isinstance(node, Tag):
            return ""

        name = (node.name or "").lower()
        if name in _DROPPED_TAGS:
            return ""

        for rule in self._rules:
            inner = rule.match(node)
            if inner is not None:
                return f"{rule.delimiter}{self.render_children(inner)}{rule.delimiter}"

        if name == "p":
            return self.render_children(node) + "\n\n"
        if name == "br":
            return "\n"
        return self.render_children(node)


def tidy_markup(text: str) -> str:
    """Collapse blank-line runs, strip trailing whitespace per line, trim the result.

    Idempotent: tidy_markup(tidy_markup(x)) == tidy_markup(x).
    """

    collapsed = _EXCESS_BLANK_LINES.sub("\n\n", text)
    lines: List[str] = [line.rstrip() for line in collapsed.split("\n")]
    return "\n".join(lines).strip()


def html_to_markup(html: str, *, rules: Tuple[InlineRule, ...] = INLINE_RULES) -> str:
    """Rewrite extracted HTML into the markup dialect.

    The HTML is parsed into a tree first; inline rules are applied per element
    in table order, then paragraph/line-break handling, then tag stripping.

    Time:  O(N) in the size of the HTML
    Space: O(N)
    """

    soup = BeautifulSoup(html or "", "html.parser")
    raw = _MarkupWriter(rules).render_children(soup)
    return tidy_markup(raw)
