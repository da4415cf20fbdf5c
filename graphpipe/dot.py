"""Parser for the Graphviz DOT language."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Union

_KEYWORDS = frozenset({"strict", "graph", "digraph", "node", "edge", "subgraph"})

_TOKEN_RE = re.compile(
    r"(?P<space>\s+)"
    r"|(?P<comment>//[^\n]*|/\*.*?\*/|^\#[^\n]*)"
    r"|(?P<open_comment>/\*)"
    r"|(?P<edgeop>->|--)"
    r"|(?P<number>-?(?:\.\d+|\d+(?:\.\d*)?))"
    r"|(?P<name>[^\W\d]\w*)"
    r"|(?P<punct>[{}\[\];,=:+])"
    r"|(?P<quote>\")"
    r"|(?P<html><)",
    re.DOTALL | re.MULTILINE,
)

_QUOTED_SPECIAL = re.compile(r'\\(.)|"', re.DOTALL)
_ANGLE = re.compile(r"[<>]")


class DotParseError(ValueError):
    """Raised when a text is not a valid DOT document."""

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        if position is not None:
            message = f"{message} at offset {position}"
        super().__init__(message)


@dataclass(frozen=True)
class NodeStatement:
    """A node statement: an identifier with optional attributes and port."""

    id: str
    attributes: tuple[tuple[str, str], ...] = ()
    port: str | None = None


@dataclass(frozen=True)
class _Subgraph:
    name: str | None
    statements: tuple


@dataclass(frozen=True)
class _AttributeStatement:
    target: str
    attributes: tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class _Assignment:
    key: str
    value: str


Endpoint = Union[str, _Subgraph]


@dataclass(frozen=True)
class EdgeStatement:
    """An edge statement; endpoints are node ids or subgraphs, in order."""

    endpoints: tuple[Endpoint, ...]
    attributes: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class DotGraph:
    """A parsed DOT document."""

    directed: bool
    strict: bool
    name: str | None
    statements: tuple


@dataclass(frozen=True)
class _Token:
    kind: str
    value: str
    pos: int

    def describe(self) -> str:
        return "end of input" if self.kind == "eof" else repr(self.value)


def _read_quoted(text: str, start: int) -> tuple[str, int]:
    pieces: list[str] = []
    last = start + 1
    for match in _QUOTED_SPECIAL.finditer(text, start + 1):
        pieces.append(text[last:match.start()])
        last = match.end()
        if match.group() == '"':
            return "".join(pieces), match.end()
        escaped = match.group(1)
        if escaped == '"':
            pieces.append('"')
        elif escaped != "\n":
            pieces.append(match.group())
    raise DotParseError("unterminated string", start)


def _read_html(text: str, start: int) -> tuple[str, int]:
    depth = 0
    for match in _ANGLE.finditer(text, start):
        depth += 1 if match.group() == "<" else -1
        if depth == 0:
            return text[start + 1:match.start()], match.end()
    raise DotParseError("unterminated HTML string", start)


def _tokenize(text: str) -> Iterator[_Token]:
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise DotParseError(f"unexpected character {text[pos]!r}", pos)
        kind = match.lastgroup
        if kind in ("space", "comment"):
            pos = match.end()
            continue
        if kind == "open_comment":
            raise DotParseError("unterminated comment", pos)
        if kind == "quote":
            value, end = _read_quoted(text, pos)
            yield _Token("string", value, pos)
            pos = end
            continue
        if kind == "html":
            value, end = _read_html(text, pos)
            yield _Token("string", value, pos)
            pos = end
            continue
        if kind in ("number", "name"):
            yield _Token("id", match.group(), pos)
        else:
            yield _Token(match.group(), match.group(), pos)
        pos = match.end()
    yield _Token("eof", "", pos)


class _Parser:
    def __init__(self, text: str) -> None:
        self._tokens = list(_tokenize(text))
        self._pos = 0
        self._directed = False

    def _peek(self) -> _Token:
        return self._tokens[self._pos]

    def _advance(self) -> _Token:
        token = self._tokens[self._pos]
        if token.kind != "eof":
            self._pos += 1
        return token

    def _at(self, kind: str) -> bool:
        return self._peek().kind == kind

    def _accept(self, kind: str) -> bool:
        if self._at(kind):
            self._advance()
            return True
        return False

    def _expect(self, kind: str, what: str | None = None) -> _Token:
        token = self._peek()
        if token.kind != kind:
            raise DotParseError(
                f"expected {what or repr(kind)}, found {token.describe()}", token.pos
            )
        return self._advance()

    def _at_keyword(self, word: str) -> bool:
        token = self._peek()
        return token.kind == "id" and token.value.lower() == word

    def _accept_keyword(self, word: str) -> bool:
        if self._at_keyword(word):
            self._advance()
            return True
        return False

    def _at_id(self) -> bool:
        token = self._peek()
        return token.kind == "string" or (
            token.kind == "id" and token.value.lower() not in _KEYWORDS
        )

    def _at_edgeop(self) -> bool:
        return self._peek().kind in ("->", "--")

    def _id(self) -> str:
        if not self._at_id():
            token = self._peek()
            raise DotParseError(f"expected identifier, found {token.describe()}", token.pos)
        token = self._advance()
        value = token.value
        if token.kind == "string":
            while self._accept("+"):
                following = self._peek()
                if following.kind != "string":
                    raise DotParseError(
                        f"expected quoted string after '+', found {following.describe()}",
                        following.pos,
                    )
                value += self._advance().value
        return value

    def parse(self) -> DotGraph:
        strict = self._accept_keyword("strict")
        if self._accept_keyword("digraph"):
            self._directed = True
        elif self._accept_keyword("graph"):
            self._directed = False
        else:
            token = self._peek()
            raise DotParseError(
                f"expected 'graph' or 'digraph', found {token.describe()}", token.pos
            )
        name = self._id() if self._at_id() else None
        self._expect("{")
        statements = self._statements()
        self._expect("}")
        self._expect("eof", "end of input")
        return DotGraph(self._directed, strict, name, statements)

    def _statements(self) -> tuple:
        statements = []
        while not self._at("}"):
            if self._at("eof"):
                raise DotParseError("unexpected end of input", self._peek().pos)
            statements.append(self._statement())
            self._accept(";")
        return tuple(statements)

    def _statement(self):
        for target in ("graph", "node", "edge"):
            if self._accept_keyword(target):
                if not self._at("["):
                    token = self._peek()
                    raise DotParseError(
                        f"expected attribute list after {target!r}, found {token.describe()}",
                        token.pos,
                    )
                return _AttributeStatement(target, self._attributes())
        if self._at_keyword("subgraph") or self._at("{"):
            subgraph = self._subgraph()
            if self._at_edgeop():
                return self._edge(subgraph)
            return subgraph
        first = self._id()
        if self._accept("="):
            return _Assignment(first, self._id())
        port = self._port()
        if self._at_edgeop():
            return self._edge(first)
        return NodeStatement(first, self._attributes(), port)

    def _port(self) -> str | None:
        if not self._accept(":"):
            return None
        port = self._id()
        if self._accept(":"):
            port += ":" + self._id()
        return port

    def _subgraph(self) -> _Subgraph:
        name = None
        if self._accept_keyword("subgraph") and self._at_id():
            name = self._id()
        self._expect("{")
        statements = self._statements()
        self._expect("}")
        return _Subgraph(name, statements)

    def _endpoint(self) -> Endpoint:
        if self._at_keyword("subgraph") or self._at("{"):
            return self._subgraph()
        node_id = self._id()
        self._port()
        return node_id

    def _edge(self, first: Endpoint) -> EdgeStatement:
        endpoints = [first]
        expected = "->" if self._directed else "--"
        while self._at_edgeop():
            operator = self._advance()
            if operator.kind != expected:
                kind = "digraph" if self._directed else "graph"
                raise DotParseError(
                    f"edge operator {operator.kind} not allowed in {kind}", operator.pos
                )
            endpoints.append(self._endpoint())
        return EdgeStatement(tuple(endpoints), self._attributes())

    def _attributes(self) -> tuple[tuple[str, str], ...]:
        pairs = []
        while self._accept("["):
            while not self._accept("]"):
                key = self._id()
                self._expect("=")
                pairs.append((key, self._id()))
                if not self._accept(";"):
                    self._accept(",")
        return tuple(pairs)


def parse_dot(text: str) -> DotGraph:
    """Parse a DOT document, raising DotParseError if it is malformed."""
    return _Parser(text).parse()