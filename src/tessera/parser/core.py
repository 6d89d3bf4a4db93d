"""Tessera Parser: recursive descent over the Scanner.

Produces an immutable tuple of Element / Text / Other nodes. Attributes
are kept exactly as written: in source order, duplicates included, values
unprocessed. Directive and binding prefixes (``*``, ``@``, ``?``, ``.``,
``~``, ``$``) are just attribute-name characters here; their meaning is
assigned by the compiler.

Dispatch on ``<``:
    ``<!--``        comment                 -> Other(content)
    ``<!``          declaration / doctype   -> Other("!" + content)
    ``<?``          processing instruction  -> Other("?" + content)
    ``</`` name     closing tag (must match the open element)
    ``<`` letter    open tag                -> Element
    anything else   literal text

"""

from __future__ import annotations

from tessera._types import OpenTag
from tessera.environment.exceptions import ErrorCode
from tessera.nodes import Attribute, Element, Node, Other, Text
from tessera.parser.scanner import WHITESPACE, Scanner

VOID_ELEMENTS = frozenset(
    {
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
        # historical
        "command",
        "keygen",
        "menuitem",
    }
)

_ALPHA = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz")
_DIGITS = frozenset("0123456789")
_TAG_NAME_CHARS = _ALPHA | _DIGITS | frozenset("-_:.")
_ATTR_NAME_START = _ALPHA | frozenset("_:*@?.~$")
_ATTR_NAME_CHARS = _ALPHA | _DIGITS | frozenset("_:-.")


class Parser:
    """Recursive-descent markup parser.

    Example:
        >>> Parser(Scanner("<img src='x'>")).parse_document()
        (Element(lineno=1, col=1, tag_name='img', attributes=(Attribute(...),), children=(), is_void=True),)

    """

    __slots__ = ("_s",)

    def __init__(self, scanner: Scanner):
        self._s = scanner

    def parse_document(self) -> tuple[Node, ...]:
        """Parse the whole input into top-level nodes."""
        return self.parse_nodes()

    def parse_nodes(self, expected: OpenTag | None = None) -> tuple[Node, ...]:
        """Parse siblings until EOF, or until the closing tag for ``expected``."""
        s = self._s
        nodes: list[Node] = []
        while not s.eof():
            if s.starts_with("</"):
                pos = s.position()
                closing = self._parse_closing_tag()
                if expected is None:
                    s.throw_error(
                        f"Unexpected closing tag </{closing}>",
                        pos.line,
                        pos.col,
                        code=ErrorCode.UNEXPECTED_CLOSING_TAG,
                    )
                if closing.lower() != expected.tag.lower():
                    s.throw_error(
                        f"Mismatched closing tag: expected </{expected.tag}>, "
                        f"found </{closing}> "
                        f"(opened at line {expected.line}, col {expected.col})",
                        pos.line,
                        pos.col,
                        code=ErrorCode.MISMATCHED_CLOSING_TAG,
                    )
                return tuple(nodes)

            if s.starts_with("<!--"):
                nodes.append(self._parse_comment())
            elif s.starts_with("<!"):
                nodes.append(self._parse_declaration())
            elif s.starts_with("<?"):
                nodes.append(self._parse_processing_instruction())
            elif self._at_tag_start():
                nodes.append(self._parse_element())
            else:
                nodes.append(self._parse_text())

        if expected is not None:
            s.throw_error(
                f"Unclosed tag <{expected.tag}> "
                f"(opened at line {expected.line}, col {expected.col}) before end of input",
                code=ErrorCode.UNCLOSED_TAG,
            )
        return tuple(nodes)

    # ─────────────────────────────────────────────────────────────────────
    # Node kinds
    # ─────────────────────────────────────────────────────────────────────

    def _at_tag_start(self) -> bool:
        if self._s.peek() != "<":
            return False
        c2 = self._s.peek(1)
        return c2 is not None and c2 in _ALPHA

    def _parse_text(self) -> Text:
        s = self._s
        start = s.position()
        while not s.eof():
            if s.peek() == "<":
                if s.starts_with("</") or s.starts_with("<!") or s.starts_with("<?"):
                    break
                if self._at_tag_start():
                    break
            s.next()
        return Text(start.line, start.col, s.source[start.index:s.position().index])

    def _parse_comment(self) -> Other:
        s = self._s
        start = s.position()
        s.consume_expected("<!--")
        content = s.read_until_sequence(
            "-->",
            lambda: s.throw_error(
                "Unterminated comment. Expected -->",
                start.line,
                start.col,
                code=ErrorCode.UNTERMINATED,
            ),
        )
        s.consume_expected("-->")
        return Other(start.line, start.col, content)

    def _parse_declaration(self) -> Other:
        s = self._s
        start = s.position()
        s.consume_expected("<!")
        content = s.read_until_char(
            ">",
            lambda: s.throw_error(
                "Unterminated declaration. Expected >",
                start.line,
                start.col,
                code=ErrorCode.UNTERMINATED,
            ),
        )
        s.consume_expected(">")
        return Other(start.line, start.col, f"!{content}")

    def _parse_processing_instruction(self) -> Other:
        s = self._s
        start = s.position()
        s.consume_expected("<?")
        content = s.read_until_sequence(
            "?>",
            lambda: s.throw_error(
                "Unterminated processing instruction. Expected ?>",
                start.line,
                start.col,
                code=ErrorCode.UNTERMINATED,
            ),
        )
        s.consume_expected("?>")
        return Other(start.line, start.col, f"?{content}")

    def _parse_closing_tag(self) -> str:
        s = self._s
        start = s.position()
        s.consume_expected("</")
        s.skip_whitespace()
        name = self._read_name(_ALPHA, _TAG_NAME_CHARS)
        if name is None:
            s.throw_error(
                "Invalid closing tag name", start.line, start.col, code=ErrorCode.INVALID_NAME
            )
        s.skip_whitespace()
        if s.peek() != ">":
            s.throw_error(
                f"Expected '>' after closing tag </{name}>", code=ErrorCode.UNEXPECTED_INPUT
            )
        s.next()
        return name

    def _parse_element(self) -> Element:
        s = self._s
        open_pos = s.position()
        s.consume_expected("<")
        tag_name = self._read_name(_ALPHA, _TAG_NAME_CHARS)
        if tag_name is None:
            s.throw_error(
                'Invalid tag name after "<"',
                open_pos.line,
                open_pos.col,
                code=ErrorCode.INVALID_NAME,
            )

        attributes: list[Attribute] = []
        self_closing = False
        while True:
            s.skip_whitespace()
            if s.starts_with("/>"):
                s.consume_expected("/>")
                self_closing = True
                break
            ch = s.peek()
            if ch == ">":
                s.next()
                break
            if ch is None:
                s.throw_error(
                    "Unexpected end of input inside start tag",
                    open_pos.line,
                    open_pos.col,
                    code=ErrorCode.UNEXPECTED_INPUT,
                )
            attributes.append(self._parse_attribute())

        if self_closing or tag_name.lower() in VOID_ELEMENTS:
            return Element(open_pos.line, open_pos.col, tag_name, tuple(attributes), (), True)

        children = self.parse_nodes(OpenTag(tag_name, open_pos.line, open_pos.col))
        return Element(open_pos.line, open_pos.col, tag_name, tuple(attributes), children, False)

    def _parse_attribute(self) -> Attribute:
        s = self._s
        start = s.position()
        name = self._read_name(_ATTR_NAME_START, _ATTR_NAME_CHARS)
        if name is None:
            s.throw_error(
                "Invalid attribute name", start.line, start.col, code=ErrorCode.INVALID_NAME
            )

        s.skip_whitespace()
        if s.peek() != "=":
            return Attribute(start.line, start.col, name)

        s.next()
        s.skip_whitespace()
        quote = s.peek()
        if quote == '"' or quote == "'":
            s.next()
            value_pos = s.position()
            value = s.read_until_char(
                quote,
                lambda: s.throw_error(
                    f'Unterminated quoted attribute value for "{name}"',
                    start.line,
                    start.col,
                    code=ErrorCode.UNTERMINATED,
                ),
            )
            s.consume_expected(quote)
        else:
            value_pos = s.position()
            while not s.eof():
                c = s.peek()
                if c in WHITESPACE or c == ">" or (c == "/" and s.peek(1) == ">"):
                    break
                s.next()
            value = s.source[value_pos.index:s.position().index]
        return Attribute(start.line, start.col, name, value, value_pos.line, value_pos.col)

    def _read_name(self, first: frozenset[str], rest: frozenset[str]) -> str | None:
        s = self._s
        c = s.peek()
        if c is None or c not in first:
            return None
        start = s.position().index
        s.next()
        while not s.eof() and s.peek() in rest:
            s.next()
        return s.source[start:s.position().index]
