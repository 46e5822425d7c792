"""
Recursive descent parser for msgbind interface schemas.

Grammar (one declaration per line)::

    schema      = block | block SEPARATOR block        (services)
    block       = { declaration | empty }
    declaration = type_ref IDENT [ "=" literal | literal ] [ COMMENT ] NEWLINE
    type_ref    = IDENT [ "/" IDENT ] [ "<=" bound ] [ array ]
    array       = "[" "]" | "[" bound "]" | "[" "<=" bound "]"
    literal     = NUMBER | STRING | "true" | "false" | "[" [ literal { "," literal } ] "]"

Parsing is purely syntactic: bounds are kept as written and referenced
types are not looked up.
"""

import logging
from pathlib import Path

from . import ir
from .errors import SchemaIOError, SchemaSyntaxError, make_syntax_error, with_context
from .lexer import Lexer, Token, TokenType

logger = logging.getLogger(__name__)

BOOLEAN_LITERALS = {"true": True, "false": False, "True": True, "False": False}

SCHEMA_EXTENSIONS = {
    ".msg": ir.SchemaKind.MESSAGE,
    ".srv": ir.SchemaKind.SERVICE,
}


class SchemaParser:
    """
    Parser over the token stream of one schema file.

    Provides token navigation in the same shape as the lexer: current,
    peek, advance, expect and match.
    """

    def __init__(self, tokens: list[Token], file: Path, lines: list[str] | None = None):
        """
        Initialize parser.

        Args:
            tokens: List of tokens from lexer
            file: Source file path (for error reporting)
            lines: Source lines, used for error snippets
        """
        self.tokens = tokens
        self.file = file
        self.lines = lines or []
        self.pos = 0

    # ------------------------------------------------------------------
    # Token navigation
    # ------------------------------------------------------------------

    def current_token(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # Return EOF
        return self.tokens[self.pos]

    def peek_token(self, offset: int = 1) -> Token:
        """Peek ahead at token."""
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.current_token()
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def match(self, *token_types: TokenType) -> bool:
        """Check if current token matches any of the given types."""
        return self.current_token().type in token_types

    def expect(self, token_type: TokenType, what: str | None = None) -> Token:
        """
        Expect a specific token type and consume it.

        Raises:
            SchemaSyntaxError: If token doesn't match
        """
        token = self.current_token()
        if token.type != token_type:
            raise self.error(
                f"Expected {what or token_type.value}, got {_describe(token)}",
                token,
            )
        return self.advance()

    def skip_newlines(self) -> None:
        while self.match(TokenType.NEWLINE):
            self.advance()

    def source_line(self, line: int) -> str:
        if 1 <= line <= len(self.lines):
            return self.lines[line - 1]
        return ""

    def error(self, message: str, token: Token):
        return make_syntax_error(
            message, self.file, token.line, token.column, self.source_line(token.line)
        )

    # ------------------------------------------------------------------
    # Grammar
    # ------------------------------------------------------------------

    def parse_blocks(self) -> list[ir.MessageBlock]:
        """Parse every block of the file, splitting on separator lines."""
        blocks = [self.parse_block()]
        while self.match(TokenType.SEPARATOR):
            self.advance()
            if not self.match(TokenType.NEWLINE, TokenType.EOF):
                raise self.error("Separator line must not carry other text", self.current_token())
            blocks.append(self.parse_block())
        self.expect(TokenType.EOF, "end of schema")
        return blocks

    def parse_block(self) -> ir.MessageBlock:
        """Parse declarations up to the next separator or end of file."""
        declarations: list[ir.FieldDecl | ir.ConstantDecl] = []
        while True:
            self.skip_newlines()
            if self.match(TokenType.EOF, TokenType.SEPARATOR):
                break
            declarations.append(self.parse_declaration())
        return ir.MessageBlock(declarations=declarations)

    def parse_declaration(self) -> ir.FieldDecl | ir.ConstantDecl:
        """Parse one ``TYPE NAME [=VALUE | DEFAULT]`` line."""
        start = self.current_token()
        type_ref = self.parse_type_ref()
        name_token = self.expect(TokenType.IDENTIFIER, "field name")

        constant: ir.LiteralValue | None = None
        default: ir.LiteralValue | None = None
        if self.match(TokenType.EQUALS):
            self.advance()
            constant = self.parse_literal()
        elif self.match(
            TokenType.NUMBER, TokenType.STRING, TokenType.IDENTIFIER, TokenType.LBRACKET
        ):
            default = self.parse_literal()

        comment = None
        if self.match(TokenType.COMMENT):
            comment = self.advance().value or None

        if not self.match(TokenType.NEWLINE, TokenType.EOF):
            raise self.error(
                f"Unexpected {_describe(self.current_token())} after declaration of "
                f"'{name_token.value}'",
                self.current_token(),
            )

        common = {
            "type": type_ref,
            "name": name_token.value,
            "line": start.line,
            "column": start.column,
            "source": self.source_line(start.line).strip(),
            "comment": comment,
        }
        if constant is not None:
            return ir.ConstantDecl(value=constant, **common)
        return ir.FieldDecl(default=default, **common)

    def parse_type_ref(self) -> ir.TypeRef:
        """Parse a type token: ``int32``, ``string<=5[3]``, ``pkg/Msg[<=4]``."""
        first = self.expect(TokenType.IDENTIFIER, "type name")
        base = first.value
        package = None
        text = base

        if self.match(TokenType.SLASH):
            self.advance()
            package = base
            base = self.expect(TokenType.IDENTIFIER, "message name after '/'").value
            text = f"{package}/{base}"

        string_bound = None
        if self.match(TokenType.LESS_EQUAL):
            op = self.advance()
            if package is not None or base != ir.STRING_TYPE_NAME:
                raise self.error(f"Only string types accept a '<=' bound, not '{text}'", op)
            string_bound = self.parse_bound_text()
            text += f"<={string_bound}"

        array = ir.ArrayKind.NONE
        array_bound = None
        if self.match(TokenType.LBRACKET):
            self.advance()
            if self.match(TokenType.RBRACKET):
                array = ir.ArrayKind.UNBOUNDED
                text += "[]"
            elif self.match(TokenType.LESS_EQUAL):
                self.advance()
                array = ir.ArrayKind.BOUNDED
                array_bound = self.parse_bound_text()
                text += f"[<={array_bound}]"
            else:
                array = ir.ArrayKind.FIXED
                array_bound = self.parse_bound_text()
                text += f"[{array_bound}]"
            self.expect(TokenType.RBRACKET, "']'")

        return ir.TypeRef(
            base=base,
            package=package,
            string_bound=string_bound,
            array=array,
            array_bound=array_bound,
            text=text,
        )

    def parse_bound_text(self) -> str:
        """Read a bound as written; the resolver checks that it is a positive integer."""
        token = self.current_token()
        if token.type not in (TokenType.NUMBER, TokenType.IDENTIFIER):
            raise self.error(f"Expected array bound, got {_describe(token)}", token)
        return self.advance().value

    def parse_literal(self) -> ir.LiteralValue:
        """Parse a default or constant value."""
        token = self.current_token()

        if token.type == TokenType.NUMBER:
            self.advance()
            return ir.LiteralValue(value=self._number(token), text=token.value)

        if token.type == TokenType.STRING:
            self.advance()
            return ir.LiteralValue(value=token.value, text=repr(token.value))

        if token.type == TokenType.IDENTIFIER and token.value in BOOLEAN_LITERALS:
            self.advance()
            return ir.LiteralValue(value=BOOLEAN_LITERALS[token.value], text=token.value)

        if token.type == TokenType.LBRACKET:
            self.advance()
            items: list[ir.LiteralValue] = []
            if not self.match(TokenType.RBRACKET):
                items.append(self.parse_literal())
                while self.match(TokenType.COMMA):
                    self.advance()
                    items.append(self.parse_literal())
            self.expect(TokenType.RBRACKET, "']' closing array literal")
            return ir.LiteralValue(
                value=[item.value for item in items],
                text="[" + ", ".join(item.text for item in items) + "]",
            )

        raise self.error(f"Expected a value, got {_describe(token)}", token)

    def _number(self, token: Token) -> int | float:
        text = token.value
        try:
            if any(c in text for c in ".eE"):
                return float(text)
            return int(text)
        except ValueError:
            raise self.error(f"Malformed number '{text}'", token) from None


def _describe(token: Token) -> str:
    if token.type == TokenType.EOF:
        return "end of file"
    if token.type == TokenType.NEWLINE:
        return "end of line"
    if token.type in (TokenType.IDENTIFIER, TokenType.NUMBER):
        return f"'{token.value}'"
    if token.type == TokenType.STRING:
        return f"string {token.value!r}"
    return f"'{token.type.value}'"


def parse_schema_text(
    text: str, file: Path, kind: ir.SchemaKind = ir.SchemaKind.MESSAGE
) -> list[ir.MessageBlock]:
    """
    Parse schema text into message blocks.

    Args:
        text: Schema source
        file: Path used in error reports
        kind: MESSAGE expects one block, SERVICE exactly two

    Returns:
        One block for a message, two (request, response) for a service

    Raises:
        SchemaSyntaxError: On a malformed line or a wrong number of separators
    """
    lexer = Lexer(text, file)
    tokens = lexer.tokenize()
    separators = [t for t in tokens if t.type == TokenType.SEPARATOR]

    if kind == ir.SchemaKind.MESSAGE and separators:
        sep = separators[0]
        raise make_syntax_error(
            "Service separator in a message schema",
            file,
            sep.line,
            sep.column,
            lexer.source_line(sep.line),
        )
    if kind == ir.SchemaKind.SERVICE and len(separators) != 1:
        if separators:
            sep = separators[1]
            raise make_syntax_error(
                f"Service schema must contain exactly one '---' separator, found {len(separators)}",
                file,
                sep.line,
                sep.column,
                lexer.source_line(sep.line),
            )
        raise with_context(
            SchemaSyntaxError,
            "Service schema must contain exactly one '---' separator, found none",
            file=file,
        )

    parser = SchemaParser(tokens, file, lexer.lines)
    return parser.parse_blocks()


def schema_identity(path: Path) -> tuple[str, ir.SchemaKind]:
    """
    Derive schema name and kind from a file path (``Sample.msg`` -> Sample, MESSAGE).

    Raises:
        SchemaIOError: For an extension that is not a schema extension
    """
    kind = SCHEMA_EXTENSIONS.get(path.suffix)
    if kind is None:
        raise with_context(
            SchemaIOError,
            f"Unsupported schema file extension '{path.suffix}' (expected .msg or .srv)",
            file=path,
        )
    if not path.stem.isidentifier():
        raise with_context(
            SchemaIOError,
            f"Schema name '{path.stem}' is not a valid identifier",
            file=path,
        )
    return path.stem, kind


def read_schema_text(path: Path) -> str:
    """Read a schema file, mapping OS failures to SchemaIOError."""
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise with_context(SchemaIOError, f"Cannot read schema: {e}", file=path) from e


def parse_schema_file(path: Path, package: str) -> ir.SchemaFile:
    """
    Read and parse one schema file.

    Args:
        path: ``.msg`` or ``.srv`` file
        package: Package the schema belongs to

    Returns:
        SchemaFile with one block (message) or two blocks (service)
    """
    name, kind = schema_identity(path)
    text = read_schema_text(path)
    blocks = parse_schema_text(text, path, kind)
    logger.debug(
        "Parsed %s/%s (%s): %d declaration(s)",
        package,
        name,
        kind.value,
        sum(len(b.declarations) for b in blocks),
    )
    return ir.SchemaFile(package=package, name=name, kind=kind, path=path, blocks=blocks)
