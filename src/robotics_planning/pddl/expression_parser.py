"""Implement a recursive-descent parser for PDDL condition and effect expressions.

Reference: Section 5 ("Numeric Expressions, Conditions and Effects") of Fox & Long (2003).
"""

from __future__ import annotations

import logging

from robotics_planning.errors import PDDLSyntaxError
from robotics_planning.pddl.expressions import (
    And,
    Arithmetic,
    ArithmeticOperator,
    Atom,
    Comparison,
    ComparisonOperator,
    Expression,
    FunctionModifier,
    ModifierOperator,
    Not,
    Number,
    Or,
    Unknown,
)
from robotics_planning.pddl.pddl_scanner import PDDLScanner, PDDLToken, PDDLTokenType

logger = logging.getLogger(__name__)

TERM_TYPES = {PDDLTokenType.NAME, PDDLTokenType.VARIABLE, PDDLTokenType.NUMBER}
"""Token types allowed as the arguments of an atom."""

MODIFIER_NAMES = {op.value for op in ModifierOperator}
COMPARISON_SYMBOLS = {op.value for op in ComparisonOperator}


class ExpressionParser:
    """A parser for a single PDDL goal description, condition, or effect."""

    def __init__(self, string: str) -> None:
        """Initialize the parser for the given string of PDDL."""
        self.string = string
        self.scanner = PDDLScanner()
        self.remaining_tokens = self.scanner.tokenize(string)
        self.input_token: PDDLToken = next(self.remaining_tokens)
        """Once the input token type is `PDDLTokenType.END`, all tokens have been consumed."""

    def match(self, token_type: PDDLTokenType, value: str | None = None) -> PDDLToken:
        """Consume a token of the given type from the scanner.

        :param token_type: Expected type of the next PDDL token
        :param value: Expected string value of the next token (optional; defaults to None)
        :return: PDDL token consumed from the scanner
        :raises PDDLSyntaxError: If the next token doesn't have the expected type or value
        """
        if self.input_token.type_ == PDDLTokenType.END:
            raise PDDLSyntaxError(f"Unexpected end of input while parsing '{self.string}'.")

        if value is not None and value != self.input_token.value:
            raise PDDLSyntaxError(
                f"Expected '{value}' as next token but found '{self.input_token.value}'.",
            )

        if self.input_token.type_ != token_type:
            raise PDDLSyntaxError(
                f"Expected PDDL token type {token_type.name} but found "
                f"{self.input_token.type_.name} ('{self.input_token.value}') "
                f"at line {self.input_token.line}, column {self.input_token.column}.",
            )

        matched_token = self.input_token
        self.input_token = next(self.remaining_tokens)
        return matched_token

    def parse(self) -> Expression:
        """Parse the complete input string as one expression, rejecting trailing tokens."""
        result = self.expression()
        if self.input_token.type_ != PDDLTokenType.END:
            raise PDDLSyntaxError(f"Unexpected trailing token: '{self.input_token.value}'.")
        return result

    def expression(self) -> Expression:
        """Parse a logical expression (a condition or an effect) from the input tokens."""
        if self.input_token.type_ == PDDLTokenType.NUMBER:
            return Number(float(self.match(PDDLTokenType.NUMBER).value))

        self.match(PDDLTokenType.OPEN_PAREN)
        lookahead = self.input_token

        if lookahead.type_ in {PDDLTokenType.OPERATOR, PDDLTokenType.MINUS}:
            result = self._operation()
            self.match(PDDLTokenType.CLOSE_PAREN)
            return result

        if lookahead.type_ != PDDLTokenType.NAME:
            raise PDDLSyntaxError(f"Unexpected token type: {lookahead}")

        match lookahead.value:
            case "and" | "or":
                connective = self.match(PDDLTokenType.NAME).value
                children: list[Expression] = []
                while self.input_token.type_ != PDDLTokenType.CLOSE_PAREN:
                    children.append(self.expression())
                self.match(PDDLTokenType.CLOSE_PAREN)
                return And(tuple(children)) if connective == "and" else Or(tuple(children))

            case "not":
                self.match(PDDLTokenType.NAME, value="not")
                child = self.expression()
                self.match(PDDLTokenType.CLOSE_PAREN)
                return Not(child)

            case name if name in MODIFIER_NAMES:
                operator = ModifierOperator(self.match(PDDLTokenType.NAME).value)
                target = self.function_atom()
                value = self.numeric_expression()
                self.match(PDDLTokenType.CLOSE_PAREN)
                return FunctionModifier(operator, target, value)

            case _:
                return self.atom_body(is_function=False)

    def _operation(self) -> Comparison | Arithmetic:
        """Parse a comparison or arithmetic operation following its open parenthesis."""
        symbol = self.input_token.value
        self.match(self.input_token.type_)

        left = self.numeric_expression()
        right = self.numeric_expression()

        if symbol in COMPARISON_SYMBOLS:
            return Comparison(ComparisonOperator(symbol), left, right)

        return Arithmetic(ArithmeticOperator(symbol), left, right)

    def numeric_expression(self) -> Expression:
        """Parse a numeric expression: a number, a function, or an arithmetic operation."""
        if self.input_token.type_ == PDDLTokenType.NUMBER:
            return Number(float(self.match(PDDLTokenType.NUMBER).value))

        self.match(PDDLTokenType.OPEN_PAREN)

        if self.input_token.type_ in {PDDLTokenType.OPERATOR, PDDLTokenType.MINUS}:
            result = self._operation()
            if isinstance(result, Comparison):
                raise PDDLSyntaxError(f"Expected a numeric expression but found {result}.")
            self.match(PDDLTokenType.CLOSE_PAREN)
            return result

        return self.atom_body(is_function=True)

    def function_atom(self) -> Atom:
        """Parse a function reference, including its enclosing parentheses."""
        self.match(PDDLTokenType.OPEN_PAREN)
        return self.atom_body(is_function=True)

    def atom_body(self, is_function: bool) -> Atom:
        """Parse an atom from its name through its closing parenthesis.

        :param is_function: Whether the atom refers to a function (else a predicate)
        :return: Atom whose text is in canonical form `(name arg1 ... argN)`
        """
        name = self.match(PDDLTokenType.NAME).value

        terms: list[str] = []
        while self.input_token.type_ in TERM_TYPES:
            terms.append(self.match(self.input_token.type_).value)

        self.match(PDDLTokenType.CLOSE_PAREN)
        return Atom.from_terms(name, tuple(terms), is_function=is_function)


def parse_expression(string: str | None) -> Expression | None:
    """Parse a PDDL expression, mapping malformed input onto an `Unknown` node.

    :param string: PDDL text of a condition or effect (None or blank means "no expression")
    :return: Parsed expression tree, None for empty input, or Unknown for malformed input
    """
    if string is None or not string.strip():
        return None

    try:
        return ExpressionParser(string).parse()
    except PDDLSyntaxError as error:
        logger.warning(f"Malformed PDDL expression '{string}': {error}")
        return Unknown(string)
