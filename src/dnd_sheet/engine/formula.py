"""Sandboxed evaluation of data-supplied formulas.

Rules data carries formulas such as ``floor((score - 10) / 2)`` or
``1 + ceil(totalLevel / 4)``. They are parsed by a small recursive-descent
parser into an immutable expression tree and walked by an evaluator whose
only callable surface is an explicit FunctionTable. There is no ``eval``,
no attribute access, no assignment, and no way to reach the host.

Grammar (lowest to highest precedence)::

    expression  := conditional
    conditional := equality ( "?" conditional ":" conditional )?
    equality    := relational ( ( "==" | "!=" ) relational )*
    relational  := additive ( ( "<" | "<=" | ">" | ">=" ) additive )*
    additive    := term ( ( "+" | "-" ) term )*
    term        := unary ( ( "*" | "/" | "%" ) unary )*
    unary       := ( "+" | "-" ) unary | primary
    primary     := NUMBER | STRING | NAME | NAME "(" arguments? ")" | "(" expression ")"

Comparisons yield 1 or 0; the conditional treats any non-zero value as true.

Example:
    >>> from dnd_sheet.engine.formula import evaluate
    >>> evaluate("floor((score - 10) / 2)", {"score": 15})
    2
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Union

from dnd_sheet.core.config import get_settings
from dnd_sheet.core.exceptions import ConfigurationError, FormulaError
from dnd_sheet.core.logging import get_logger


logger = get_logger(__name__)

Number = int | float
Tables = Mapping[str, Mapping[str, Number]]

LOOKUP = "lookup"

# Deepest nesting the recursive parser and walker can handle on a default stack.
MAX_DEPTH_LIMIT = 64


# =============================================================================
# Function Table
# =============================================================================


@dataclass(frozen=True)
class FunctionSpec:
    """A callable exposed to formulas, with its accepted argument count.

    Attributes:
        func: The implementation; receives only numbers.
        min_args: Fewest arguments accepted.
        max_args: Most arguments accepted, or None for variadic.
    """

    func: Callable[..., Number]
    min_args: int = 1
    max_args: int | None = 1

    def accepts(self, count: int) -> bool:
        if count < self.min_args:
            return False
        return self.max_args is None or count <= self.max_args


_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class FunctionTable(Mapping[str, FunctionSpec]):
    """Immutable allow-list of functions callable from formulas.

    Build stricter or looser tables with ``without`` and ``with_functions``;
    the original table is never modified, so one table can be shared by
    every evaluator in the process.
    """

    def __init__(self, functions: Mapping[str, FunctionSpec]) -> None:
        """Validate and freeze the function mapping.

        Raises:
            ConfigurationError: If a name is not a plain identifier, shadows
                ``lookup``, or maps to something other than a FunctionSpec.
        """
        checked: dict[str, FunctionSpec] = {}
        for name, spec in functions.items():
            if not isinstance(name, str) or not _NAME_RE.match(name):
                raise ConfigurationError(
                    f"Invalid formula function name {name!r}",
                    config_key="functions",
                )
            if name == LOOKUP:
                raise ConfigurationError(
                    "'lookup' is built into the evaluator and cannot be redefined",
                    config_key="functions",
                )
            if not isinstance(spec, FunctionSpec) or not callable(spec.func):
                raise ConfigurationError(
                    f"Formula function {name!r} must be a FunctionSpec wrapping a callable",
                    config_key="functions",
                )
            checked[name] = spec
        self._functions = MappingProxyType(checked)

    def __getitem__(self, name: str) -> FunctionSpec:
        return self._functions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._functions)

    def __len__(self) -> int:
        return len(self._functions)

    def __repr__(self) -> str:
        return f"FunctionTable({sorted(self._functions)!r})"

    def without(self, *names: str) -> FunctionTable:
        """Return a copy with the named functions removed."""
        return FunctionTable({k: v for k, v in self._functions.items() if k not in names})

    def with_functions(self, **functions: FunctionSpec) -> FunctionTable:
        """Return a copy with additional or replaced functions."""
        return FunctionTable({**self._functions, **functions})


def _round_half_away(value: Number, digits: Number = 0) -> Number:
    if digits != int(digits) or digits < 0:
        raise ValueError("round() digits must be a non-negative integer")
    sign = -1 if value < 0 else 1
    if digits == 0:
        return sign * math.floor(abs(value) + 0.5)
    factor = 10 ** int(digits)
    return sign * math.floor(abs(value) * factor + 0.5) / factor


DEFAULT_FUNCTIONS = FunctionTable(
    {
        "floor": FunctionSpec(math.floor),
        "ceil": FunctionSpec(math.ceil),
        "round": FunctionSpec(_round_half_away, min_args=1, max_args=2),
        "min": FunctionSpec(lambda *args: min(args), min_args=1, max_args=None),
        "max": FunctionSpec(lambda *args: max(args), min_args=1, max_args=None),
        "abs": FunctionSpec(abs),
    }
)


@dataclass(frozen=True)
class EvaluatorConfig:
    """Immutable evaluator configuration.

    Attributes:
        functions: Functions formulas may call.
        max_length: Longest accepted formula, in characters.
        max_depth: Deepest accepted expression nesting.
    """

    functions: FunctionTable = field(default_factory=lambda: DEFAULT_FUNCTIONS)
    max_length: int = 512
    max_depth: int = 32

    def __post_init__(self) -> None:
        if not 1 <= self.max_depth <= MAX_DEPTH_LIMIT:
            raise ConfigurationError(
                f"max_depth must be between 1 and {MAX_DEPTH_LIMIT}, got {self.max_depth}",
                config_key="max_depth",
            )
        if self.max_length < 1:
            raise ConfigurationError(
                f"max_length must be positive, got {self.max_length}",
                config_key="max_length",
            )

    @classmethod
    def from_settings(cls, functions: FunctionTable = DEFAULT_FUNCTIONS) -> EvaluatorConfig:
        """Build a config using the limits from application settings."""
        limits = get_settings().formula
        return cls(functions=functions, max_length=limits.max_length, max_depth=limits.max_depth)


# =============================================================================
# Expression Tree
# =============================================================================


@dataclass(frozen=True, slots=True)
class NumberLiteral:
    value: Number


@dataclass(frozen=True, slots=True)
class StringLiteral:
    value: str


@dataclass(frozen=True, slots=True)
class Variable:
    name: str


@dataclass(frozen=True, slots=True)
class UnaryOp:
    op: str
    operand: Node


@dataclass(frozen=True, slots=True)
class BinaryOp:
    op: str
    left: Node
    right: Node


@dataclass(frozen=True, slots=True)
class Conditional:
    condition: Node
    if_true: Node
    if_false: Node


@dataclass(frozen=True, slots=True)
class Call:
    name: str
    args: tuple[Node, ...]


Node = Union[NumberLiteral, StringLiteral, Variable, UnaryOp, BinaryOp, Conditional, Call]


def iter_nodes(node: Node) -> Iterator[Node]:
    """Yield a node and all of its descendants, depth first."""
    yield node
    if isinstance(node, UnaryOp):
        yield from iter_nodes(node.operand)
    elif isinstance(node, BinaryOp):
        yield from iter_nodes(node.left)
        yield from iter_nodes(node.right)
    elif isinstance(node, Conditional):
        yield from iter_nodes(node.condition)
        yield from iter_nodes(node.if_true)
        yield from iter_nodes(node.if_false)
    elif isinstance(node, Call):
        for arg in node.args:
            yield from iter_nodes(arg)


# =============================================================================
# Tokenizer & Parser
# =============================================================================


_TOKEN_RE = re.compile(
    r"""
    (?P<number>\d+(?:\.\d+)?|\.\d+)
    | (?P<string>"[^"\\\n]*"|'[^'\\\n]*')
    | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<op>==|!=|<=|>=|[-+*/%<>?:(),])
    """,
    re.VERBOSE,
)


@dataclass(frozen=True, slots=True)
class _Token:
    kind: str
    text: str
    position: int


def _tokenize(expression: str) -> list[_Token]:
    tokens: list[_Token] = []
    position = 0
    length = len(expression)
    while position < length:
        if expression[position].isspace():
            position += 1
            continue
        match = _TOKEN_RE.match(expression, position)
        if match is None:
            raise FormulaError(
                f"Unexpected character {expression[position]!r} at position {position}",
                expression=expression,
            )
        kind = match.lastgroup or "op"
        tokens.append(_Token(kind, match.group(), position))
        position = match.end()
    tokens.append(_Token("end", "", length))
    return tokens


class _Parser:
    """Recursive-descent parser over a token list."""

    _EQUALITY = ("==", "!=")
    _RELATIONAL = ("<", "<=", ">", ">=")
    _ADDITIVE = ("+", "-")
    _MULTIPLICATIVE = ("*", "/", "%")

    def __init__(self, expression: str, max_depth: int) -> None:
        self._expression = expression
        self._tokens = _tokenize(expression)
        self._index = 0
        self._depth = 0
        self._max_depth = max_depth

    def parse(self) -> Node:
        node = self._conditional()
        token = self._peek()
        if token.kind != "end":
            raise self._error(f"Unexpected {token.text!r} at position {token.position}")
        return node

    # -- helpers -------------------------------------------------------------

    def _peek(self) -> _Token:
        return self._tokens[self._index]

    def _advance(self) -> _Token:
        token = self._tokens[self._index]
        self._index += 1
        return token

    def _accept(self, *texts: str) -> _Token | None:
        token = self._peek()
        if token.kind == "op" and token.text in texts:
            self._index += 1
            return token
        return None

    def _expect(self, text: str) -> _Token:
        token = self._accept(text)
        if token is None:
            found = self._peek()
            where = "end of formula" if found.kind == "end" else repr(found.text)
            raise self._error(f"Expected {text!r} but found {where}")
        return token

    def _error(self, message: str) -> FormulaError:
        return FormulaError(message, expression=self._expression)

    def _descend(self) -> None:
        self._depth += 1
        if self._depth > self._max_depth:
            raise self._error(f"Formula nests deeper than {self._max_depth} levels")

    # -- grammar -------------------------------------------------------------

    def _conditional(self) -> Node:
        self._descend()
        try:
            condition = self._equality()
            if self._accept("?") is None:
                return condition
            if_true = self._conditional()
            self._expect(":")
            if_false = self._conditional()
            return Conditional(condition, if_true, if_false)
        finally:
            self._depth -= 1

    def _binary_level(self, operators: tuple[str, ...], operand: Callable[[], Node]) -> Node:
        # Each operator in a chain deepens the left-leaning tree by one.
        node = operand()
        chained = 0
        try:
            while (token := self._accept(*operators)) is not None:
                self._descend()
                chained += 1
                node = BinaryOp(token.text, node, operand())
        finally:
            self._depth -= chained
        return node

    def _equality(self) -> Node:
        return self._binary_level(self._EQUALITY, self._relational)

    def _relational(self) -> Node:
        return self._binary_level(self._RELATIONAL, self._additive)

    def _additive(self) -> Node:
        return self._binary_level(self._ADDITIVE, self._term)

    def _term(self) -> Node:
        return self._binary_level(self._MULTIPLICATIVE, self._unary)

    def _unary(self) -> Node:
        token = self._accept("+", "-")
        if token is None:
            return self._primary()
        self._descend()
        try:
            return UnaryOp(token.text, self._unary())
        finally:
            self._depth -= 1

    def _primary(self) -> Node:
        token = self._advance()
        if token.kind == "number":
            text = token.text
            try:
                return NumberLiteral(float(text) if "." in text else int(text))
            except ValueError as exc:
                raise self._error(f"Number literal at position {token.position} is too long") from exc
        if token.kind == "string":
            return StringLiteral(token.text[1:-1])
        if token.kind == "name":
            if self._accept("(") is not None:
                return Call(token.text, self._arguments())
            return Variable(token.text)
        if token.kind == "op" and token.text == "(":
            node = self._conditional()
            self._expect(")")
            return node
        if token.kind == "end":
            raise self._error("Unexpected end of formula")
        raise self._error(f"Unexpected {token.text!r} at position {token.position}")

    def _arguments(self) -> tuple[Node, ...]:
        if self._accept(")") is not None:
            return ()
        args = [self._conditional()]
        while self._accept(",") is not None:
            args.append(self._conditional())
        self._expect(")")
        return tuple(args)


# =============================================================================
# Evaluation
# =============================================================================


@dataclass(frozen=True)
class Expression:
    """A parsed formula.

    Attributes:
        source: The original formula string.
        tree: Root node of the expression tree.
    """

    source: str
    tree: Node

    @property
    def variables(self) -> frozenset[str]:
        """Names the formula reads from its variables map."""
        return frozenset(n.name for n in iter_nodes(self.tree) if isinstance(n, Variable))

    @property
    def functions(self) -> frozenset[str]:
        """Names of every function the formula calls, including lookup."""
        return frozenset(n.name for n in iter_nodes(self.tree) if isinstance(n, Call))


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite_number(value: object) -> bool:
    if not _is_number(value):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints too large for a float
        return False


def _normalize_key(value: Number | str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class _Walker:
    """Evaluates one expression tree against one set of inputs."""

    def __init__(
        self,
        expression: str,
        functions: FunctionTable,
        variables: Mapping[str, Number],
        tables: Tables | None,
    ) -> None:
        self._expression = expression
        self._functions = functions
        self._variables = variables
        self._tables = tables

    def _error(self, message: str, **context: str) -> FormulaError:
        return FormulaError(message, expression=self._expression, **context)

    def value(self, node: Node) -> Number | str:
        if isinstance(node, NumberLiteral):
            return node.value
        if isinstance(node, StringLiteral):
            return node.value
        if isinstance(node, Variable):
            return self._variable(node.name)
        if isinstance(node, UnaryOp):
            operand = self.number(node.operand)
            return -operand if node.op == "-" else operand
        if isinstance(node, BinaryOp):
            return self._binary(node)
        if isinstance(node, Conditional):
            branch = node.if_true if self.number(node.condition) != 0 else node.if_false
            return self.value(branch)
        if isinstance(node, Call):
            return self._call(node)
        raise self._error(f"Unsupported expression node {type(node).__name__}")

    def number(self, node: Node) -> Number:
        result = self.value(node)
        if not _is_number(result):
            raise self._error("Text values are only allowed as lookup() arguments")
        return result

    def _variable(self, name: str) -> Number:
        if name not in self._variables:
            raise self._error(f"Unknown variable '{name}'")
        value = self._variables[name]
        if not _is_finite_number(value):
            raise self._error(f"Variable '{name}' is not a finite number")
        return value

    def _binary(self, node: BinaryOp) -> Number:
        left = self.number(node.left)
        right = self.number(node.right)
        op = node.op
        try:
            if op == "+":
                return left + right
            if op == "-":
                return left - right
            if op == "*":
                return left * right
            if op in ("/", "%"):
                if right == 0:
                    raise self._error("Division by zero")
                return left / right if op == "/" else left % right
            if op == "==":
                return int(left == right)
            if op == "!=":
                return int(left != right)
            if op == "<":
                return int(left < right)
            if op == "<=":
                return int(left <= right)
            if op == ">":
                return int(left > right)
            if op == ">=":
                return int(left >= right)
        except OverflowError as exc:
            raise self._error(f"Numeric overflow in '{op}'") from exc
        raise self._error(f"Unsupported operator {op!r}")

    def _call(self, node: Call) -> Number:
        if node.name == LOOKUP:
            return self._lookup(node)
        spec = self._functions.get(node.name)
        if spec is None:
            raise self._error(f"Function '{node.name}' is not allowed")
        if not spec.accepts(len(node.args)):
            raise self._error(f"Function '{node.name}' called with {len(node.args)} argument(s)")
        args = [self.number(arg) for arg in node.args]
        try:
            result = spec.func(*args)
        except (ArithmeticError, ValueError, TypeError) as exc:
            raise self._error(f"Function '{node.name}' failed: {exc}") from exc
        if not _is_number(result):
            raise self._error(f"Function '{node.name}' returned a non-numeric value")
        return result

    def _lookup(self, node: Call) -> Number:
        if len(node.args) != 2:
            raise self._error(f"lookup() takes 2 arguments, got {len(node.args)}")
        table_name = self.value(node.args[0])
        if not isinstance(table_name, str):
            raise self._error("lookup() table name must be text")
        key = _normalize_key(self.value(node.args[1]))
        if self._tables is None or table_name not in self._tables:
            raise self._error(f"Table '{table_name}' not found", table=table_name)
        table = self._tables[table_name]
        if key not in table:
            raise self._error(
                f"Key '{key}' not found in table '{table_name}'",
                table=table_name,
                key=key,
            )
        value = table[key]
        if not _is_number(value):
            raise self._error(
                f"Table '{table_name}' holds a non-numeric value for key '{key}'",
                table=table_name,
                key=key,
            )
        return value


class FormulaEvaluator:
    """Evaluates formulas under a fixed, immutable configuration.

    An evaluator holds no per-call state, so a single instance can serve
    any number of concurrent callers.

    Example:
        >>> evaluator = FormulaEvaluator(EvaluatorConfig())
        >>> evaluator.evaluate_int("1 + ceil(totalLevel / 4)", {"totalLevel": 5})
        3
    """

    def __init__(self, config: EvaluatorConfig | None = None) -> None:
        """Initialize the evaluator.

        Args:
            config: Function allow-list and limits; defaults to settings.
        """
        self._config = config if config is not None else EvaluatorConfig.from_settings()

    @property
    def config(self) -> EvaluatorConfig:
        return self._config

    def parse(self, expression: str) -> Expression:
        """Parse a formula without evaluating it.

        Raises:
            FormulaError: If the formula is empty, too long, too deep, or
                not valid under the grammar.
        """
        if not isinstance(expression, str) or not expression.strip():
            raise FormulaError("Empty formula", expression=expression)
        if len(expression) > self._config.max_length:
            raise FormulaError(
                f"Formula longer than {self._config.max_length} characters",
                expression=expression[:64],
            )
        tree = _Parser(expression, self._config.max_depth).parse()
        return Expression(expression, tree)

    def validate(self, expression: str, variables: frozenset[str] | set[str]) -> Expression:
        """Check a formula statically against the names it may use.

        Args:
            expression: The formula to check.
            variables: Variable names that will be bound at evaluation.

        Returns:
            The parsed expression.

        Raises:
            FormulaError: If the formula calls a function outside the
                allow-list or reads a variable that will not be bound.
        """
        parsed = self.parse(expression)
        for name in sorted(parsed.functions):
            if name != LOOKUP and name not in self._config.functions:
                raise FormulaError(f"Function '{name}' is not allowed", expression=expression)
        unknown = sorted(parsed.variables - set(variables))
        if unknown:
            raise FormulaError(f"Unknown variable '{unknown[0]}'", expression=expression)
        return parsed

    def evaluate(
        self,
        expression: str,
        variables: Mapping[str, Number],
        tables: Tables | None = None,
    ) -> Number:
        """Evaluate a formula.

        Args:
            expression: The formula string.
            variables: Values for every name the formula reads.
            tables: Tables available to ``lookup(table, key)``.

        Returns:
            The finite numeric result.

        Raises:
            FormulaError: On any parse or evaluation failure, or when the
                result is not a finite number.
        """
        parsed = self.parse(expression)
        result = _Walker(expression, self._config.functions, variables, tables).value(parsed.tree)
        if not _is_finite_number(result):
            raise FormulaError(
                f"Formula did not evaluate to a finite number (got {type(result).__name__})",
                expression=expression,
            )
        logger.debug("Formula evaluated", expression=expression, result=result)
        return result

    def evaluate_int(
        self,
        expression: str,
        variables: Mapping[str, Number],
        tables: Tables | None = None,
    ) -> int:
        """Evaluate a formula whose result must be a whole number.

        Raises:
            FormulaError: If the result is not integral.
        """
        result = self.evaluate(expression, variables, tables)
        if isinstance(result, float):
            if not result.is_integer():
                raise FormulaError(
                    f"Formula must produce a whole number (got {result!r})",
                    expression=expression,
                )
            return int(result)
        return result


def parse_formula(expression: str, config: EvaluatorConfig | None = None) -> Expression:
    """Parse a formula into its expression tree without evaluating it."""
    return FormulaEvaluator(config).parse(expression)


@lru_cache(maxsize=1)
def default_evaluator() -> FormulaEvaluator:
    """Get the shared evaluator built from application settings."""
    return FormulaEvaluator(EvaluatorConfig.from_settings())


def clear_default_evaluator() -> None:
    """Drop the shared evaluator so the next call rebuilds it from settings."""
    default_evaluator.cache_clear()


def evaluate(
    expression: str,
    variables: Mapping[str, Number],
    tables: Tables | None = None,
) -> Number:
    """Evaluate a formula with the shared default evaluator.

    Example:
        >>> evaluate("lookup('proficiencyBonus', 5)", {}, {"proficiencyBonus": {"5": 3}})
        3
    """
    return default_evaluator().evaluate(expression, variables, tables)


def evaluate_int(
    expression: str,
    variables: Mapping[str, Number],
    tables: Tables | None = None,
) -> int:
    """Evaluate a whole-number formula with the shared default evaluator."""
    return default_evaluator().evaluate_int(expression, variables, tables)


__all__ = [
    "DEFAULT_FUNCTIONS",
    "EvaluatorConfig",
    "Expression",
    "FormulaEvaluator",
    "FunctionSpec",
    "FunctionTable",
    "MAX_DEPTH_LIMIT",
    "clear_default_evaluator",
    "default_evaluator",
    "evaluate",
    "evaluate_int",
    "parse_formula",
]
