"""
Type resolution for parsed schemas.

Turns the syntactic declarations of one ``SchemaFile`` into a resolved
``MessageSpec`` (or ``ServiceSpec``) against a symbol table that already
knows every message name of the invocation.

Resolution order for a type token:
1. primitive and ``string`` spellings (fixed dictionary lookup)
2. array/sequence decomposition (element first, then bound)
3. package-qualified message lookup in the symbol table
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from . import ir
from .errors import (
    CyclicTypeError,
    DuplicateFieldError,
    InvalidBoundError,
    InvalidDefaultError,
    MsgbindError,
    UnresolvedTypeError,
    with_context,
)

if TYPE_CHECKING:
    from .linker_impl import SymbolTable

FLOAT32_MAX = 3.4028234663852886e38


class TypeResolver:
    """
    Resolves the declarations of one message against a symbol table.

    The resolver only reads the symbol table; it is safe to run one
    resolver per schema on separate threads once the table is frozen.
    """

    def __init__(self, symbols: SymbolTable, schema: ir.SchemaFile):
        self.symbols = symbols
        self.schema = schema
        self.package = schema.package

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def error(
        self,
        error_cls: type[MsgbindError],
        message: str,
        decl: ir.Declaration,
        message_name: str,
    ) -> MsgbindError:
        return with_context(
            error_cls,
            message,
            file=self.schema.path,
            line=decl.line,
            column=decl.column,
            schema=f"{self.package}/{message_name}",
            snippet=decl.source,
        )

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def resolve_type(self, decl: ir.Declaration, message_name: str) -> ir.SemanticType:
        """
        Resolve the type token of a declaration.

        Raises:
            UnresolvedTypeError: Unknown primitive spelling or message reference
            InvalidBoundError: Non-positive or malformed bound
            CyclicTypeError: The message would contain itself in place
        """
        ref = decl.type
        element = self._resolve_element(decl, message_name)

        if ref.array == ir.ArrayKind.NONE:
            semantic: ir.SemanticType = element
        elif ref.array == ir.ArrayKind.FIXED:
            length = self._parse_bound(ref.array_bound, decl, message_name, "array length")
            semantic = ir.FixedArrayType(element=element, length=length)
        elif ref.array == ir.ArrayKind.BOUNDED:
            bound = self._parse_bound(ref.array_bound, decl, message_name, "sequence bound")
            semantic = ir.SequenceType(element=element, bound=bound)
        else:
            semantic = ir.SequenceType(element=element)

        if (
            isinstance(element, ir.NestedType)
            and element.qualified_name == f"{self.package}/{message_name}"
            and not isinstance(semantic, ir.SequenceType)
        ):
            raise self.error(
                CyclicTypeError,
                f"Message '{element.qualified_name}' cannot contain itself in place "
                f"(field '{decl.name}'); use a sequence ('{ref.text}[]') instead",
                decl,
                message_name,
            )
        return semantic

    def _resolve_element(
        self, decl: ir.Declaration, message_name: str
    ) -> ir.PrimitiveType | ir.TextType | ir.NestedType:
        ref = decl.type

        if ref.package is None:
            if ref.base == ir.STRING_TYPE_NAME:
                bound = None
                if ref.string_bound is not None:
                    bound = self._parse_bound(ref.string_bound, decl, message_name, "string bound")
                return ir.TextType(bound=bound)

            kind = ir.lookup_primitive(ref.base)
            if kind is not None:
                return ir.PrimitiveType(kind=kind)

        package = ref.package or self.package
        qualified = f"{package}/{ref.base}"
        if self.symbols.lookup(qualified) is None:
            if ref.package is None and ref.base[:1].islower():
                what = f"Unknown primitive type '{ref.base}'"
            else:
                what = f"Unknown message type '{qualified}'"
            raise self.error(
                UnresolvedTypeError,
                f"{what} for field '{decl.name}'",
                decl,
                message_name,
            )
        return ir.NestedType(package=package, name=ref.base)

    def _parse_bound(
        self, text: str | None, decl: ir.Declaration, message_name: str, what: str
    ) -> int:
        try:
            value = int(text or "")
        except ValueError:
            raise self.error(
                InvalidBoundError,
                f"Malformed {what} '{text}' in '{decl.type.text}'",
                decl,
                message_name,
            ) from None
        if value <= 0:
            raise self.error(
                InvalidBoundError,
                f"{what.capitalize()} must be positive, got {value} in '{decl.type.text}'",
                decl,
                message_name,
            )
        return value

    # ------------------------------------------------------------------
    # Literals
    # ------------------------------------------------------------------

    def resolve_literal(
        self,
        semantic: ir.SemanticType,
        literal: ir.LiteralValue,
        decl: ir.Declaration,
        message_name: str,
    ) -> Any:
        """
        Validate a literal against a resolved type and return its Python value.

        Raises:
            InvalidDefaultError: The literal is malformed or out of range
        """
        try:
            return check_literal(semantic, literal.value)
        except ValueError as e:
            raise self.error(
                InvalidDefaultError,
                f"Invalid value {literal.text} for '{decl.name}' of type "
                f"'{semantic.describe()}': {e}",
                decl,
                message_name,
            ) from None

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def resolve_block(
        self, block: ir.MessageBlock, message_name: str, namespace: str
    ) -> tuple[ir.MessageSpec | None, list[MsgbindError]]:
        """
        Resolve every declaration of a block, collecting all errors.

        Returns:
            (MessageSpec, []) on success, (None, errors) otherwise
        """
        errors: list[MsgbindError] = []
        fields: list[ir.FieldSpec] = []
        constants: list[ir.ConstantSpec] = []
        seen: dict[str, ir.Declaration] = {}

        for decl in block.declarations:
            first = seen.get(decl.name)
            if first is not None:
                error = self.error(
                    DuplicateFieldError,
                    f"Duplicate field '{decl.name}' (lines {first.line} and {decl.line})",
                    decl,
                    message_name,
                )
                error.lines = (first.line, decl.line)
                errors.append(error)
                continue
            seen[decl.name] = decl

            try:
                semantic = self.resolve_type(decl, message_name)
                if isinstance(decl, ir.ConstantDecl):
                    constants.append(self._constant(decl, semantic, message_name))
                else:
                    fields.append(self._field(decl, semantic, message_name))
            except MsgbindError as e:
                errors.append(e)

        if errors:
            return None, errors
        return (
            ir.MessageSpec(
                package=self.package,
                name=message_name,
                namespace=namespace,
                fields=fields,
                constants=constants,
                file=self.schema.path,
            ),
            [],
        )

    def _field(
        self, decl: ir.FieldDecl, semantic: ir.SemanticType, message_name: str
    ) -> ir.FieldSpec:
        default = None
        if decl.default is not None:
            default = self.resolve_literal(semantic, decl.default, decl, message_name)
        return ir.FieldSpec(
            name=decl.name,
            type_token=decl.type.text,
            type=semantic,
            default=default,
            line=decl.line,
            comment=decl.comment,
        )

    def _constant(
        self, decl: ir.ConstantDecl, semantic: ir.SemanticType, message_name: str
    ) -> ir.ConstantSpec:
        if not isinstance(semantic, (ir.PrimitiveType, ir.TextType)):
            raise self.error(
                InvalidDefaultError,
                f"Constant '{decl.name}' must have a primitive or string type, "
                f"not '{semantic.describe()}'",
                decl,
                message_name,
            )
        value = self.resolve_literal(semantic, decl.value, decl, message_name)
        return ir.ConstantSpec(
            name=decl.name,
            type=semantic,
            value=value,
            line=decl.line,
            comment=decl.comment,
        )


def check_literal(semantic: ir.SemanticType, value: Any) -> Any:
    """
    Check a parsed literal against a semantic type.

    Returns:
        The normalized Python value (bool, int, float, str or list)

    Raises:
        ValueError: With a short reason when the literal does not fit
    """
    if isinstance(semantic, ir.PrimitiveType):
        return _check_primitive(semantic.kind, value)

    if isinstance(semantic, ir.TextType):
        if not isinstance(value, str):
            raise ValueError("expected a quoted string")
        if semantic.bound is not None and len(value.encode("utf-8")) > semantic.bound:
            raise ValueError(f"string longer than {semantic.bound} byte(s)")
        return value

    if isinstance(semantic, ir.NestedType):
        raise ValueError("message fields cannot have default values")

    if isinstance(semantic, (ir.FixedArrayType, ir.SequenceType)):
        if not isinstance(value, list):
            raise ValueError("expected an array literal '[...]'")
        if isinstance(semantic, ir.FixedArrayType) and len(value) != semantic.length:
            raise ValueError(f"expected exactly {semantic.length} element(s), got {len(value)}")
        if (
            isinstance(semantic, ir.SequenceType)
            and semantic.bound is not None
            and len(value) > semantic.bound
        ):
            raise ValueError(f"expected at most {semantic.bound} element(s), got {len(value)}")
        return [check_literal(semantic.element, item) for item in value]

    raise ValueError(f"unsupported type {semantic!r}")


def _check_primitive(kind: ir.PrimitiveKind, value: Any) -> bool | int | float:
    if isinstance(value, list):
        raise ValueError("expected a scalar, got an array literal")

    if kind is ir.PrimitiveKind.BOOL:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise ValueError("expected true, false, 1 or 0")

    if isinstance(value, bool) or isinstance(value, str):
        raise ValueError("expected a number")

    if kind.is_integer:
        if not isinstance(value, int):
            raise ValueError("expected an integer")
        low, high = kind.integer_range()
        if not low <= value <= high:
            raise ValueError(f"out of range [{low}, {high}]")
        return value

    try:
        number = float(value)
    except OverflowError:
        raise ValueError("out of range for a floating-point value") from None
    if not math.isfinite(number):
        raise ValueError("out of range for a floating-point value")
    if kind is ir.PrimitiveKind.FLOAT32 and abs(number) > FLOAT32_MAX:
        raise ValueError("out of range for float32")
    return number


def resolve_schema(
    symbols: SymbolTable, schema: ir.SchemaFile
) -> tuple[ir.MessageSpec | ir.ServiceSpec | None, list[MsgbindError]]:
    """
    Resolve a parsed schema file.

    Returns:
        (spec, []) on success or (None, errors) with every error of the file
    """
    resolver = TypeResolver(symbols, schema)

    if schema.kind == ir.SchemaKind.MESSAGE:
        return resolver.resolve_block(schema.blocks[0], schema.name, "msg")

    request, request_errors = resolver.resolve_block(
        schema.blocks[0], f"{schema.name}_Request", "srv"
    )
    response, response_errors = resolver.resolve_block(
        schema.blocks[1], f"{schema.name}_Response", "srv"
    )
    errors = request_errors + response_errors
    if errors or request is None or response is None:
        return None, errors
    return (
        ir.ServiceSpec(
            package=schema.package,
            name=schema.name,
            request=request,
            response=response,
            file=schema.path,
        ),
        [],
    )
