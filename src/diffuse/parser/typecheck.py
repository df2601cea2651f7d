"""A small structural model of TypeScript types for assignability queries.

Type annotations are kept as text on declarations. `parse_type` turns that
text into an immutable type expression and `is_assignable` answers "can a
value of type A be assigned to a slot of type B" under strict null checks.

Supported: primitives, string/number/boolean literals, unions, intersections,
arrays (`T[]`, `Array<T>`), tuples, object literal types, function types and
named references with type arguments. Anything else (conditional, mapped,
`keyof`, template literal types...) becomes an opaque type that is only
assignable to an identical opaque type, `any` or `unknown`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache


class TypeExpr:
    """Base class for parsed type expressions."""


@dataclass(frozen=True)
class Primitive(TypeExpr):
    name: str


@dataclass(frozen=True)
class Literal(TypeExpr):
    value: str
    base: str  # "string", "number", "boolean" or "bigint"


@dataclass(frozen=True)
class Union(TypeExpr):
    members: tuple[TypeExpr, ...]


@dataclass(frozen=True)
class Intersection(TypeExpr):
    members: tuple[TypeExpr, ...]


@dataclass(frozen=True)
class ArrayType(TypeExpr):
    element: TypeExpr


@dataclass(frozen=True)
class TupleType(TypeExpr):
    elements: tuple[TypeExpr, ...]


@dataclass(frozen=True)
class ObjectProperty:
    name: str
    type: TypeExpr
    optional: bool = False


@dataclass(frozen=True)
class ObjectType(TypeExpr):
    properties: tuple[ObjectProperty, ...]

    def get(self, name: str) -> ObjectProperty | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


@dataclass(frozen=True)
class FunctionType(TypeExpr):
    parameters: tuple[TypeExpr, ...]
    returns: TypeExpr


@dataclass(frozen=True)
class Reference(TypeExpr):
    name: str
    arguments: tuple[TypeExpr, ...] = ()


@dataclass(frozen=True)
class Opaque(TypeExpr):
    text: str


ANY = Primitive("any")
UNKNOWN = Primitive("unknown")
NEVER = Primitive("never")
UNDEFINED = Primitive("undefined")
BOOLEAN = Union((Literal("true", "boolean"), Literal("false", "boolean")))

_PRIMITIVES = {
    "any", "unknown", "never", "void", "null", "undefined",
    "string", "number", "bigint", "symbol", "object",
}
_UNSUPPORTED_KEYWORDS = {"keyof", "typeof", "infer", "unique", "asserts", "abstract", "new"}

_TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'|`[^`$]*`)
      | (?P<number>\d+(?:\.\d+)?n?)
      | (?P<ident>[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*)
      | (?P<punct>=>|\.\.\.|[|&\[\](){}<>,;:?=\-])
    )""",
    re.VERBOSE,
)


class _Unsupported(Exception):
    """Raised internally when a type falls outside the modelled subset."""


def make_union(members: list[TypeExpr] | tuple[TypeExpr, ...]) -> TypeExpr:
    """Build a normalized union: flattened, deduplicated, never-free."""
    flat: list[TypeExpr] = []
    for member in members:
        for m in member.members if isinstance(member, Union) else (member,):
            if m == ANY or m == UNKNOWN:
                return m
            if m != NEVER and m not in flat:
                flat.append(m)
    if not flat:
        return NEVER
    if len(flat) == 1:
        return flat[0]
    return Union(tuple(flat))


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    end = len(text.rstrip())
    while pos < end:
        match = _TOKEN_RE.match(text, pos)
        if not match or match.end() == pos:
            raise _Unsupported(text[pos:])
        kind = match.lastgroup or ""
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _TypeParser:
    """Recursive-descent parser over the token list."""

    def __init__(self, tokens: list[tuple[str, str]]) -> None:
        self.tokens = tokens
        self.pos = 0

    def peek(self, offset: int = 0) -> tuple[str, str]:
        index = self.pos + offset
        if index < len(self.tokens):
            return self.tokens[index]
        return ("eof", "")

    def next(self) -> tuple[str, str]:
        token = self.peek()
        if token[0] == "eof":
            raise _Unsupported("unexpected end of type")
        self.pos += 1
        return token

    def accept(self, value: str) -> bool:
        kind, text = self.peek()
        if kind in ("punct", "ident") and text == value:
            self.pos += 1
            return True
        return False

    def expect(self, value: str) -> None:
        if not self.accept(value):
            raise _Unsupported(f"expected {value!r}")

    def parse(self) -> TypeExpr:
        result = self.parse_type()
        if self.peek()[0] != "eof":
            raise _Unsupported(f"trailing tokens at {self.peek()[1]!r}")
        return result

    def parse_type(self) -> TypeExpr:
        if self.peek()[1] == "(" and self._function_ahead():
            return self.parse_function()
        self.accept("|")
        return self.parse_union()

    def parse_union(self) -> TypeExpr:
        members = [self.parse_intersection()]
        while self.accept("|"):
            members.append(self.parse_intersection())
        return make_union(members) if len(members) > 1 else members[0]

    def parse_intersection(self) -> TypeExpr:
        self.accept("&")
        members = [self.parse_postfix()]
        while self.accept("&"):
            members.append(self.parse_postfix())
        if len(members) == 1:
            return members[0]
        return Intersection(tuple(members))

    def parse_postfix(self) -> TypeExpr:
        result = self.parse_primary()
        while self.peek()[1] == "[":
            self.next()
            if not self.accept("]"):
                raise _Unsupported("indexed access type")
            result = ArrayType(result)
        return result

    def parse_primary(self) -> TypeExpr:
        kind, text = self.next()

        if kind == "string":
            return Literal(text[1:-1], "string")
        if kind == "number":
            return Literal(text, "bigint" if text.endswith("n") else "number")
        if kind == "punct":
            if text == "(":
                inner = self.parse_type()
                self.expect(")")
                return inner
            if text == "{":
                return self.parse_object()
            if text == "[":
                return self.parse_tuple()
            if text == "-" and self.peek()[0] == "number":
                return Literal("-" + self.next()[1], "number")
            raise _Unsupported(text)

        if text in _UNSUPPORTED_KEYWORDS:
            raise _Unsupported(text)
        if text == "readonly":
            return self.parse_postfix()
        if text in ("true", "false"):
            return Literal(text, "boolean")
        if text == "boolean":
            return BOOLEAN
        if text in _PRIMITIVES:
            return Primitive(text)

        arguments: list[TypeExpr] = []
        if self.accept("<"):
            arguments.append(self.parse_type())
            while self.accept(","):
                arguments.append(self.parse_type())
            self.expect(">")
        if text in ("Array", "ReadonlyArray") and len(arguments) == 1:
            return ArrayType(arguments[0])
        return Reference(text, tuple(arguments))

    def parse_object(self) -> TypeExpr:
        properties: list[ObjectProperty] = []
        while not self.accept("}"):
            if self.peek()[1] == "readonly" and self.peek(1)[1] not in (":", "?", "(", ";", ","):
                self.next()

            if self.accept("["):
                # Index signature; mapped types are not modelled.
                self.next()
                if not self.accept(":"):
                    raise _Unsupported("mapped type")
                self.parse_type()
                self.expect("]")
                self.accept("?")
                self.expect(":")
                self.parse_type()
            else:
                kind, name = self.next()
                if kind == "punct":
                    raise _Unsupported("call signature")
                if kind == "string":
                    name = name[1:-1]
                optional = self.accept("?")
                if self.peek()[1] == "(":
                    params = self.parse_parameters()
                    self.expect(":")
                    prop_type: TypeExpr = FunctionType(params, self.parse_type())
                else:
                    self.expect(":")
                    prop_type = self.parse_type()
                properties.append(ObjectProperty(name, prop_type, optional))

            if not (self.accept(";") or self.accept(",")) and self.peek()[1] != "}":
                raise _Unsupported("object member separator")
        return ObjectType(tuple(properties))

    def parse_tuple(self) -> TypeExpr:
        elements: list[TypeExpr] = []
        while not self.accept("]"):
            if self.peek()[1] == "...":
                raise _Unsupported("variadic tuple")
            if self.peek()[0] == "ident" and self.peek(1)[1] in (":", "?") and self.peek(2)[1] != "]":
                self.next()
                self.accept("?")
                self.expect(":")
            elements.append(self.parse_type())
            self.accept("?")
            if not self.accept(","):
                self.expect("]")
                break
        return TupleType(tuple(elements))

    def parse_function(self) -> TypeExpr:
        params = self.parse_parameters()
        self.expect("=>")
        return FunctionType(params, self.parse_type())

    def parse_parameters(self) -> tuple[TypeExpr, ...]:
        self.expect("(")
        params: list[TypeExpr] = []
        while not self.accept(")"):
            self.accept("...")
            kind, _ = self.next()
            if kind != "ident":
                raise _Unsupported("destructured parameter")
            optional = self.accept("?")
            param_type: TypeExpr = ANY
            if self.accept(":"):
                param_type = self.parse_type()
            if optional:
                param_type = make_union([param_type, UNDEFINED])
            params.append(param_type)
            if not self.accept(","):
                self.expect(")")
                break
        return tuple(params)

    def _function_ahead(self) -> bool:
        """True when the parenthesis at the cursor opens a parameter list."""
        depth = 0
        for index in range(self.pos, len(self.tokens)):
            value = self.tokens[index][1]
            if value == "(":
                depth += 1
            elif value == ")":
                depth -= 1
                if depth == 0:
                    following = self.tokens[index + 1][1] if index + 1 < len(self.tokens) else ""
                    return following == "=>"
        return False


@lru_cache(maxsize=4096)
def parse_type(text: str) -> TypeExpr:
    """Parse TypeScript type text. Never raises; unknown syntax becomes Opaque."""
    try:
        tokens = _tokenize(text)
        if not tokens:
            return ANY
        return _TypeParser(tokens).parse()
    except _Unsupported:
        return Opaque(re.sub(r"\s+", "", text))


def is_assignable(source: str | TypeExpr, target: str | TypeExpr) -> bool:
    """Whether a value of type `source` can be assigned where `target` is expected."""
    if isinstance(source, str):
        source = parse_type(source)
    if isinstance(target, str):
        target = parse_type(target)
    return _assignable(source, target)


def is_narrowed(old: str | TypeExpr, new: str | TypeExpr) -> bool:
    """The new type is strictly more restrictive than the old one."""
    return is_assignable(new, old) and not is_assignable(old, new)


def _assignable(s: TypeExpr, t: TypeExpr) -> bool:
    if s == t or t == ANY or t == UNKNOWN or s == NEVER:
        return True
    if s == ANY:
        return t != NEVER
    if t == NEVER:
        return False

    if isinstance(s, Union):
        return all(_assignable(m, t) for m in s.members)
    if isinstance(t, Intersection):
        return all(_assignable(s, m) for m in t.members)
    if isinstance(t, Union):
        return any(_assignable(s, m) for m in t.members)
    if isinstance(s, Intersection):
        return any(_assignable(m, t) for m in s.members)

    if isinstance(s, Opaque) or isinstance(t, Opaque):
        return False

    if isinstance(s, Literal):
        return isinstance(t, Primitive) and t.name == s.base
    if isinstance(s, Primitive):
        return s == UNDEFINED and t == Primitive("void")

    # s is structural from here on
    if isinstance(t, Primitive):
        return t.name == "object"

    if isinstance(s, ArrayType):
        return isinstance(t, ArrayType) and _assignable(s.element, t.element)
    if isinstance(s, TupleType):
        if isinstance(t, TupleType):
            return len(s.elements) == len(t.elements) and all(
                _assignable(a, b) for a, b in zip(s.elements, t.elements)
            )
        if isinstance(t, ArrayType):
            return all(_assignable(e, t.element) for e in s.elements)
        return False
    if isinstance(s, ObjectType):
        return isinstance(t, ObjectType) and _object_assignable(s, t)
    if isinstance(s, FunctionType):
        return isinstance(t, FunctionType) and _function_assignable(s, t)
    if isinstance(s, Reference):
        return (
            isinstance(t, Reference)
            and s.name == t.name
            and len(s.arguments) == len(t.arguments)
            and all(_assignable(a, b) for a, b in zip(s.arguments, t.arguments))
        )
    return False


def _object_assignable(s: ObjectType, t: ObjectType) -> bool:
    for expected in t.properties:
        actual = s.get(expected.name)
        if actual is None:
            if not expected.optional:
                return False
            continue
        if actual.optional and not expected.optional:
            return False
        target_type = make_union([expected.type, UNDEFINED]) if expected.optional else expected.type
        if not _assignable(actual.type, target_type):
            return False
    return True


def _function_assignable(s: FunctionType, t: FunctionType) -> bool:
    # A function taking fewer parameters may stand in for one taking more.
    if len(s.parameters) > len(t.parameters):
        return False
    for own, expected in zip(s.parameters, t.parameters):
        if not _assignable(expected, own):
            return False
    if t.returns == Primitive("void"):
        return True
    return _assignable(s.returns, t.returns)
