"""Layout planning: ABI representation and ownership contract per field."""

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
from .planner import LayoutPlanner

__all__ = [
    "ConstantPlan",
    "Container",
    "Discipline",
    "ElementKind",
    "FieldPlan",
    "LayoutPlanner",
    "MessagePlan",
    "MessageRef",
    "Representation",
]
