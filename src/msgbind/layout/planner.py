"""
Layout planner.

Maps each resolved field to its representation and allocation discipline
(see ``plan`` for the table). Whether a nested message owns buffers is
computed transitively over in-place containment and memoized.
"""

from __future__ import annotations

from collections.abc import Mapping

from ..core import ir
from ..core.errors import LayoutError, with_context
from ..core.naming import (
    c_struct_name,
    import_alias,
    module_name,
    module_path,
    python_name,
    service_of,
)
from .plan import (
    ConstantPlan,
    Container,
    Discipline,
    ElementKind,
    FieldPlan,
    MessagePlan,
    MessageRef,
    Representation,
)


class LayoutPlanner:
    """
    Plans messages against the resolved specs of one invocation.

    Args:
        specs: Every resolved message, keyed by qualified name
    """

    def __init__(self, specs: Mapping[str, ir.MessageSpec]):
        self.specs = specs
        self._owns: dict[str, bool] = {}

    def error(self, message: str, spec: ir.MessageSpec, field: ir.FieldSpec | None = None):
        return with_context(
            LayoutError,
            message,
            file=spec.file,
            line=field.line if field else None,
            schema=spec.qualified_name,
        )

    # ------------------------------------------------------------------
    # Buffer ownership
    # ------------------------------------------------------------------

    def owns_buffers(self, qualified_name: str, _visiting: frozenset[str] = frozenset()) -> bool:
        """
        Whether a message's raw struct owns any heap buffer, directly or
        through values embedded in place.
        """
        if qualified_name in self._owns:
            return self._owns[qualified_name]
        spec = self.specs.get(qualified_name)
        if spec is None:
            raise LayoutError(f"No resolved message '{qualified_name}' to plan against")
        if qualified_name in _visiting:
            raise self.error(f"Message '{qualified_name}' contains itself in place", spec)

        visiting = _visiting | {qualified_name}
        result = any(self._type_owns(f.type, visiting) for f in spec.fields)
        self._owns[qualified_name] = result
        return result

    def _type_owns(self, semantic: ir.SemanticType, visiting: frozenset[str]) -> bool:
        if isinstance(semantic, (ir.TextType, ir.SequenceType)):
            return True
        if isinstance(semantic, ir.PrimitiveType):
            return False
        if isinstance(semantic, ir.FixedArrayType):
            return self._type_owns(semantic.element, visiting)
        if isinstance(semantic, ir.NestedType):
            return self.owns_buffers(semantic.qualified_name, visiting)
        raise LayoutError(f"No representation for type {semantic!r}")

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def message_ref(self, nested: ir.NestedType) -> MessageRef:
        spec = self.specs.get(nested.qualified_name)
        if spec is None:
            raise LayoutError(f"No resolved message '{nested.qualified_name}' to plan against")
        return MessageRef(
            qualified_name=spec.qualified_name,
            module=module_path(spec.package, spec.namespace, spec.name),
            class_name=spec.name,
            struct_name=c_struct_name(spec.package, spec.namespace, spec.name),
            alias=import_alias(spec.package, spec.namespace, spec.name),
            owns_buffers=self.owns_buffers(spec.qualified_name),
        )

    def plan_field(self, spec: ir.MessageSpec, field: ir.FieldSpec) -> FieldPlan:
        """
        Choose representation and discipline for one field.

        Raises:
            LayoutError: If the type has no ABI representation
        """
        semantic = field.type
        length = bound = None
        if isinstance(semantic, ir.FixedArrayType):
            container, element, length = Container.ARRAY, semantic.element, semantic.length
        elif isinstance(semantic, ir.SequenceType):
            container, element, bound = Container.SEQUENCE, semantic.element, semantic.bound
        else:
            container, element = Container.NONE, semantic

        primitive = text_bound = message = None
        if isinstance(element, ir.PrimitiveType):
            kind = ElementKind.PRIMITIVE
            primitive = element.kind.value
            element_owns = False
        elif isinstance(element, ir.TextType):
            kind = ElementKind.TEXT
            text_bound = element.bound
            element_owns = True
        elif isinstance(element, ir.NestedType):
            kind = ElementKind.MESSAGE
            message = self.message_ref(element)
            element_owns = message.owns_buffers
        else:
            raise self.error(
                f"No representation for field '{field.name}' of type '{field.type_token}'",
                spec,
                field,
            )

        if container == Container.NONE:
            representation = {
                ElementKind.PRIMITIVE: Representation.SCALAR,
                ElementKind.TEXT: Representation.DESCRIPTOR,
                ElementKind.MESSAGE: Representation.EMBEDDED,
            }[kind]
            if kind == ElementKind.TEXT:
                discipline = Discipline.SINGLE_BUFFER
            else:
                discipline = Discipline.RECURSIVE if element_owns else Discipline.IN_PLACE
        elif container == Container.ARRAY:
            representation = Representation.ARRAY
            discipline = Discipline.RECURSIVE if element_owns else Discipline.IN_PLACE
        else:
            representation = Representation.DESCRIPTOR
            discipline = Discipline.RECURSIVE if element_owns else Discipline.SINGLE_BUFFER

        return FieldPlan(
            name=field.name,
            attr=python_name(field.name),
            type_token=field.type_token,
            container=container,
            element_kind=kind,
            representation=representation,
            discipline=discipline,
            primitive=primitive,
            text_bound=text_bound,
            message=message,
            length=length,
            bound=bound,
            default=field.default,
            comment=field.comment,
        )

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def plan_message(self, spec: ir.MessageSpec) -> MessagePlan:
        """Plan every field and constant of a message, preserving order."""
        fields = [self.plan_field(spec, f) for f in spec.fields]
        constants = [
            ConstantPlan(
                name=c.name,
                attr=python_name(c.name),
                type_token=c.type.describe(),
                value=c.value,
                comment=c.comment,
            )
            for c in spec.constants
        ]
        stem = service_of(spec.name) if spec.namespace == "srv" else spec.name
        return MessagePlan(
            qualified_name=spec.qualified_name,
            package=spec.package,
            namespace=spec.namespace,
            name=spec.name,
            module=module_path(spec.package, spec.namespace, spec.name),
            module_name=module_name(stem),
            struct_name=c_struct_name(spec.package, spec.namespace, spec.name),
            fields=fields,
            constants=constants,
            file=spec.file,
        )
