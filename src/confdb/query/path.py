"""Path expressions over the configuration document tree.

The document is a YAML mapping tree. A key holding a mapping is a single
element, a key holding a list is a run of repeated sibling elements sharing
that name, and scalars are property leaves.

Grammar:

    path    := ("/" | "//") step (("/" | "//") step)*
    step    := (NAME | "*") ("[" expr "]")*
    expr    := term ("or" term)*
    term    := factor ("and" factor)*
    factor  := "(" expr ")" | operand ("=" | "!=") LITERAL
    operand := NAME | "."

Usage:
    expr = parse_path("/config/network/interfaces/interface[name='eth0']")
    for node in expr.select(document):
        print(node.value)
"""
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterator, Optional, Union


class PathSyntaxError(ValueError):
    """Error parsing a path expression."""

    def __init__(self, message: str, path: str, position: int = -1):
        self.path = path
        self.position = position
        where = f" at position {position}" if position >= 0 else ""
        super().__init__(f"{message}{where} in path: {path}")


_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<descendant>//)
      | (?P<slash>/)
      | (?P<lbracket>\[)
      | (?P<rbracket>\])
      | (?P<lparen>\()
      | (?P<rparen>\))
      | (?P<ne>!=)
      | (?P<eq>=)
      | (?P<literal>'(?:[^']|'')*'|"(?:[^"]|"")*")
      | (?P<name>[A-Za-z_][\w.\-]*|\*|\.)
    )
    """,
    re.VERBOSE,
)


def to_text(value: Any) -> str:
    """Text form of a scalar, as compared by predicates."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def quote_literal(value: Any) -> str:
    """Quote a value for use as a predicate literal."""
    text = to_text(value)
    return "'" + text.replace("'", "''") + "'"


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


def tokenize(path: str) -> list[Token]:
    """Split a path expression into tokens."""
    tokens = []
    pos = 0
    while pos < len(path):
        if path[pos:].strip() == "":
            break
        match = _TOKEN_RE.match(path, pos)
        if match is None or match.end() == pos:
            raise PathSyntaxError(f"Unexpected character {path[pos]!r}", path, pos)
        kind = match.lastgroup
        tokens.append(Token(kind, match.group(kind), match.start(kind)))
        pos = match.end()
    return tokens


# --- Predicate AST ---

@dataclass(frozen=True)
class Comparison:
    """`operand = 'literal'` or `operand != 'literal'`."""
    operand: str
    negate: bool
    literal: str

    def matches(self, value: Any) -> bool:
        if self.operand == ".":
            candidates = [value]
        else:
            if not isinstance(value, dict) or self.operand not in value:
                return False
            prop = value[self.operand]
            candidates = prop if isinstance(prop, list) else [prop]

        texts = [
            to_text(c) for c in candidates
            if not isinstance(c, (dict, list))
        ]
        if self.negate:
            return any(t != self.literal for t in texts)
        return any(t == self.literal for t in texts)


@dataclass(frozen=True)
class BoolOp:
    """Conjunction or disjunction of predicate expressions."""
    op: str  # 'and', 'or'
    operands: tuple

    def matches(self, value: Any) -> bool:
        if self.op == "and":
            return all(o.matches(value) for o in self.operands)
        return any(o.matches(value) for o in self.operands)


Predicate = Union[Comparison, BoolOp]


# --- Document nodes ---

@dataclass
class Node:
    """A location in the document tree.

    `container` is the mapping holding `key`; `index` is set when the key holds
    repeated siblings. The document root has no container.
    """
    container: Optional[dict]
    key: Optional[str]
    index: Optional[int] = None
    root: Any = None

    @property
    def value(self) -> Any:
        if self.container is None:
            return self.root
        value = self.container[self.key]
        if self.index is not None:
            return value[self.index]
        return value

    @property
    def identity(self) -> tuple:
        return (id(self.container), self.key, self.index)

    @property
    def is_root(self) -> bool:
        return self.container is None


def _children(node: Node, name: str) -> Iterator[Node]:
    value = node.value
    if not isinstance(value, dict):
        return
    for key, child in value.items():
        if name != "*" and key != name:
            continue
        if isinstance(child, list):
            for i in range(len(child)):
                yield Node(value, key, i)
        else:
            yield Node(value, key)


def _descendants_or_self(node: Node) -> Iterator[Node]:
    yield node
    for child in _children(node, "*"):
        yield from _descendants_or_self(child)


@dataclass(frozen=True)
class Step:
    """One location step of a path."""
    name: str
    descendant: bool = False
    predicates: tuple = ()

    def apply(self, context: list[Node]) -> list[Node]:
        result = []
        seen = set()

        for node in context:
            origins = _descendants_or_self(node) if self.descendant else [node]
            for origin in origins:
                for child in _children(origin, self.name):
                    if child.identity in seen:
                        continue
                    if all(p.matches(child.value) for p in self.predicates):
                        seen.add(child.identity)
                        result.append(child)

        return result


@dataclass(frozen=True)
class PathExpression:
    """A parsed path expression."""
    source: str
    steps: tuple = field(default_factory=tuple)

    def select(self, document: Any) -> list[Node]:
        """Return the nodes matched in `document`, in document order."""
        context = [Node(None, None, root=document)]
        for step in self.steps:
            context = step.apply(context)
            if not context:
                break
        return context

    def __str__(self) -> str:
        return self.source


class PathParser:
    """Recursive-descent parser for path expressions."""

    def __init__(self, path: str):
        self.path = path
        self.tokens = tokenize(path)
        self.pos = 0

    def parse(self) -> PathExpression:
        if not self.tokens:
            raise PathSyntaxError("Empty path", self.path)

        steps = []
        while self._peek() is not None:
            sep = self._next()
            if sep.kind not in ("slash", "descendant"):
                raise PathSyntaxError(
                    f"Expected '/' or '//', got {sep.text!r}", self.path, sep.position
                )
            steps.append(self._parse_step(descendant=sep.kind == "descendant"))

        return PathExpression(self.path, tuple(steps))

    def _parse_step(self, descendant: bool) -> Step:
        token = self._expect("name")
        if token.text == ".":
            raise PathSyntaxError("'.' is not a valid step", self.path, token.position)

        predicates = []
        while self._peek_kind() == "lbracket":
            self._next()
            predicates.append(self._parse_or())
            self._expect("rbracket")

        return Step(token.text, descendant, tuple(predicates))

    def _parse_or(self) -> Predicate:
        operands = [self._parse_and()]
        while self._peek_keyword("or"):
            self._next()
            operands.append(self._parse_and())
        return operands[0] if len(operands) == 1 else BoolOp("or", tuple(operands))

    def _parse_and(self) -> Predicate:
        operands = [self._parse_factor()]
        while self._peek_keyword("and"):
            self._next()
            operands.append(self._parse_factor())
        return operands[0] if len(operands) == 1 else BoolOp("and", tuple(operands))

    def _parse_factor(self) -> Predicate:
        if self._peek_kind() == "lparen":
            self._next()
            expr = self._parse_or()
            self._expect("rparen")
            return expr

        operand = self._expect("name")
        if operand.text == "*":
            raise PathSyntaxError("'*' is not a valid operand", self.path, operand.position)

        op = self._next()
        if op is None or op.kind not in ("eq", "ne"):
            position = op.position if op else len(self.path)
            raise PathSyntaxError("Expected '=' or '!='", self.path, position)

        literal = self._expect("literal")
        quote = literal.text[0]
        text = literal.text[1:-1].replace(quote * 2, quote)

        return Comparison(operand.text, op.kind == "ne", text)

    # Token helpers

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _peek_kind(self) -> Optional[str]:
        token = self._peek()
        return token.kind if token else None

    def _peek_keyword(self, keyword: str) -> bool:
        token = self._peek()
        return token is not None and token.kind == "name" and token.text == keyword

    def _next(self) -> Optional[Token]:
        token = self._peek()
        if token is not None:
            self.pos += 1
        return token

    def _expect(self, kind: str) -> Token:
        token = self._next()
        if token is None:
            raise PathSyntaxError(f"Unexpected end of path, expected {kind}", self.path)
        if token.kind != kind:
            raise PathSyntaxError(
                f"Expected {kind}, got {token.text!r}", self.path, token.position
            )
        return token


@lru_cache(maxsize=512)
def parse_path(path: str) -> PathExpression:
    """Parse a path expression (cached)."""
    return PathParser(path).parse()


def select(document: Any, path: Union[str, PathExpression]) -> list[Node]:
    """Evaluate `path` against `document`."""
    expr = parse_path(path) if isinstance(path, str) else path
    return expr.select(document)
