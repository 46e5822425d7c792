"""
Lexer/Tokenizer for msgbind interface schemas.

Converts raw schema text into a stream of tokens with source location
tracking. The schema language is line oriented, so NEWLINE tokens are
significant; full-line comments vanish, trailing comments are kept as
COMMENT tokens so the parser can attach them to their declaration.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import make_syntax_error


class TokenType(Enum):
    """Token types in the schema language."""

    # Literals
    IDENTIFIER = "IDENTIFIER"
    NUMBER = "NUMBER"
    STRING = "STRING"

    # Punctuation
    SLASH = "/"
    LBRACKET = "["
    RBRACKET = "]"
    LESS_EQUAL = "<="
    EQUALS = "="
    COMMA = ","

    # Structure
    COMMENT = "COMMENT"
    SEPARATOR = "---"
    NEWLINE = "NEWLINE"
    EOF = "EOF"


ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    "'": "'",
    '"': '"',
}


@dataclass
class Token:
    """
    A single token in a schema.

    Attributes:
        type: Type of token
        value: String value of the token
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """

    type: TokenType
    value: str
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


class Lexer:
    """
    Lexer for interface schemas.

    Converts source text into a stream of tokens.
    """

    def __init__(self, text: str, file: Path):
        """
        Initialize lexer.

        Args:
            text: Source text to tokenize
            file: Source file path (for error reporting)
        """
        self.text = text
        self.file = file
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []
        self.lines = text.splitlines()

    def current_char(self) -> str | None:
        """Get current character or None if at end."""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def peek_char(self, offset: int = 1) -> str | None:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def advance(self) -> None:
        """Move to next character, updating line/column."""
        if self.pos < len(self.text):
            if self.text[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def source_line(self, line: int) -> str:
        """Return the text of a 1-indexed line, for error snippets."""
        if 1 <= line <= len(self.lines):
            return self.lines[line - 1]
        return ""

    def error(self, message: str, line: int, column: int):
        return make_syntax_error(message, self.file, line, column, self.source_line(line))

    def skip_whitespace(self) -> None:
        """Skip whitespace characters other than newlines."""
        while self.current_char() in (" ", "\t", "\r"):
            self.advance()

    def read_comment(self) -> str:
        """Read a comment (from # to end of line), returning its text."""
        chars = []
        self.advance()  # skip '#'
        while self.current_char() and self.current_char() != "\n":
            chars.append(self.current_char())
            self.advance()
        return "".join(chars).strip()

    def read_string(self) -> str:
        """Read a quoted string on a single line."""
        start_line = self.line
        start_col = self.column
        quote = self.current_char()  # " or '
        self.advance()  # skip opening quote

        chars = []
        while True:
            current = self.current_char()
            if not current or current == quote or current == "\n":
                break

            if current == "\\":
                self.advance()
                escape_char = self.current_char()
                if escape_char is None or escape_char == "\n":
                    break
                chars.append(ESCAPES.get(escape_char, escape_char))
                self.advance()
            else:
                chars.append(current)
                self.advance()

        if self.current_char() != quote:
            raise self.error("Unterminated string literal", start_line, start_col)

        self.advance()  # skip closing quote
        return "".join(chars)

    def read_number(self) -> str:
        """Read an integer or floating-point literal, with optional sign and exponent."""
        chars = []
        if self.current_char() == "-":
            chars.append("-")
            self.advance()

        current = self.current_char()
        while current and (current.isdigit() or current == "."):
            chars.append(current)
            self.advance()
            current = self.current_char()

        if current in ("e", "E") and (
            (self.peek_char() or "").isdigit()
            or (self.peek_char() in ("+", "-") and (self.peek_char(2) or "").isdigit())
        ):
            chars.append(current)
            self.advance()
            if self.current_char() in ("+", "-"):
                chars.append(self.current_char())
                self.advance()
            while self.current_char() and self.current_char().isdigit():
                chars.append(self.current_char())
                self.advance()

        return "".join(chars)

    def read_identifier(self) -> str:
        """Read an identifier."""
        chars = []
        current = self.current_char()
        while current and (current.isalnum() or current == "_"):
            chars.append(current)
            self.advance()
            current = self.current_char()
        return "".join(chars)

    def at_separator(self) -> bool:
        """Check whether the rest of the current line is a service separator."""
        end = self.text.find("\n", self.pos)
        rest = self.text[self.pos : end if end != -1 else len(self.text)].rstrip()
        return len(rest) >= 3 and set(rest) == {"-"}

    def tokenize(self) -> list[Token]:
        """
        Tokenize the entire source text.

        Returns:
            List of tokens ending with EOF

        Raises:
            SchemaSyntaxError: If an unexpected character is encountered
        """
        at_line_start = True

        while self.pos < len(self.text):
            self.skip_whitespace()

            ch = self.current_char()
            if ch is None:
                break

            token_line = self.line
            token_col = self.column

            if at_line_start and ch == "-" and self.at_separator():
                while self.current_char() == "-":
                    self.advance()
                self.tokens.append(Token(TokenType.SEPARATOR, "---", token_line, token_col))
                at_line_start = False
                continue

            # Comments: full-line comments are dropped, trailing ones kept
            if ch == "#":
                text = self.read_comment()
                if not at_line_start:
                    self.tokens.append(Token(TokenType.COMMENT, text, token_line, token_col))
                continue

            at_line_start = False

            if ch == "\n":
                self.tokens.append(Token(TokenType.NEWLINE, "\\n", token_line, token_col))
                self.advance()
                at_line_start = True

            elif ch in ('"', "'"):
                value = self.read_string()
                self.tokens.append(Token(TokenType.STRING, value, token_line, token_col))

            elif ch.isdigit() or (ch == "-" and (self.peek_char() or "").isdigit()):
                value = self.read_number()
                self.tokens.append(Token(TokenType.NUMBER, value, token_line, token_col))

            elif ch.isalpha() or ch == "_":
                value = self.read_identifier()
                self.tokens.append(Token(TokenType.IDENTIFIER, value, token_line, token_col))

            elif ch == "<" and self.peek_char() == "=":
                self.advance()
                self.advance()
                self.tokens.append(Token(TokenType.LESS_EQUAL, "<=", token_line, token_col))

            elif ch in "/[]=,":
                self.advance()
                self.tokens.append(Token(TokenType(ch), ch, token_line, token_col))

            else:
                raise self.error(f"Unexpected character: {ch!r}", token_line, token_col)

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column))
        return self.tokens


def tokenize(text: str, file: Path) -> list[Token]:
    """
    Convenience function to tokenize schema text.

    Args:
        text: Source text
        file: Source file path

    Returns:
        List of tokens
    """
    lexer = Lexer(text, file)
    return lexer.tokenize()
