"""Implement a scanner for PDDL condition and effect expressions.

Reference: PDDL2.1: An Extension to PDDL for Expressing Temporal Planning Domains (Fox & Long, 2003)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterator

from robotics_planning.errors import PDDLSyntaxError

PDDL_NAME_REGEX = r"[a-zA-Z]{1}[a-zA-Z0-9\-_]*"
"""Names in PDDL begin with a letter and contain only letters, digits, hyphens, and underscores."""


class PDDLTokenType(StrEnum):
    """Enumeration of token types when scanning PDDL expressions.

    The order of the members matters: earlier patterns take precedence in the combined regex.
    """

    NUMBER = r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?"
    """A numeric literal (a leading minus sign binds to the digits that follow it)."""

    NAME = PDDL_NAME_REGEX
    """Name of a predicate, function, object, or logical connective."""

    VARIABLE = r"\?" + PDDL_NAME_REGEX
    """Name of a PDDL variable (i.e., an action parameter placeholder)."""

    OPERATOR = r"<=|>=|[<>=+*/]"
    """A comparison or arithmetic operator (except minus, which has its own token)."""

    MINUS = r"-"
    """Subtraction, or the separator between entities and their types in typed lists."""

    OPEN_PAREN = r"\("
    """An open parenthesis."""

    CLOSE_PAREN = r"\)"
    """A close parenthesis."""

    COMMENT = r";[^\n]*"
    """Comments in PDDL begin with a semicolon and end with the next newline."""

    NEWLINE = r"\n"

    SKIP = r"[ \t\r]+"
    """Whitespace to be ignored."""

    MISMATCH = r"."
    """Any other character is a mismatch."""

    END = r"$^"
    """Marks the end of the token stream; never produced by the regex itself."""

    @property
    def named_group_regex(self) -> str:
        """Retrieve the named group regular expression for the token type."""
        return f"(?P<{self.name}>{self.value})"


@dataclass(frozen=True)
class PDDLToken:
    """A token scanned from a string of PDDL.

    Reference: https://docs.python.org/3/library/re.html#writing-a-tokenizer
    """

    type_: PDDLTokenType
    value: str
    line: int
    column: int


class PDDLScanner:
    """A scanner for the expression subset of PDDL used in conditions and effects."""

    def __init__(self) -> None:
        """Compile the regular expression used to scan PDDL tokens."""
        scanned_types = (tt for tt in PDDLTokenType if tt is not PDDLTokenType.END)
        self.token_regex = re.compile("|".join(tt.named_group_regex for tt in scanned_types))

    def tokenize(self, string: str) -> Iterator[PDDLToken]:
        """Tokenize a string of PDDL into an iterator over tokens.

        :param string: String containing PDDL to be tokenized
        :yield: Iterator over PDDL tokens in the string, ending with an END token
        :raises PDDLSyntaxError: If an unexpected character is found
        """
        line_num = 1
        line_start = 0
        for mo in self.token_regex.finditer(string):
            if mo.lastgroup is None:
                raise PDDLSyntaxError(f"Failed to tokenize string into PDDL:\n{string}")

            token_type = PDDLTokenType[mo.lastgroup]
            value = mo.group()
            column = mo.start() - line_start

            match token_type:
                case PDDLTokenType.MISMATCH:
                    raise PDDLSyntaxError(f"Cannot tokenize '{value}' on line {line_num}.")

                case PDDLTokenType.COMMENT | PDDLTokenType.SKIP:
                    continue  # Skip comments and whitespace

                case PDDLTokenType.NEWLINE:
                    line_start = mo.end()
                    line_num += 1
                    continue

                case _:
                    pass

            yield PDDLToken(token_type, value, line_num, column)

        yield PDDLToken(PDDLTokenType.END, "", line_num, len(string) - line_start)
