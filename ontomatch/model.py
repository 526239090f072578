"""
Record model for ontomatch.

A small, immutable rendition of the OWL structural model: entities, class
expressions and axioms. Records are frozen dataclasses, so equality and
hashing are structural - two ``SubClassOf`` axioms with the same classes
are the same axiom, wherever they were built.

Examples:
    kinase = Class("kinase")
    part_of = ObjectProperty("part_of")
    pathway = Class("pathway")

    axiom = SubClassOf(kinase, ObjectSomeValuesFrom(part_of, pathway))
    str(axiom)
    # => 'SubClassOf(<kinase> ObjectSomeValuesFrom(<part_of> <pathway>))'

Every dataclass field is also a capability in DEFAULT_ACCESSORS, so the
pattern ``{"a": SubClassOf, "super_class": "?x"}`` binds ``x`` to the
axiom's super class.
"""

from dataclasses import dataclass, fields
from typing import Any, FrozenSet, Iterable, Set

from .accessors import AccessorRegistry


def _frozen(obj: Any, name: str) -> None:
    """Normalise a multi-valued field to a frozenset."""
    object.__setattr__(obj, name, frozenset(getattr(obj, name)))


@dataclass(frozen=True)
class OWLObject:
    """Base of every record in the model."""

    def __str__(self) -> str:
        return format_record(self)


# ============================================================
# Entities
# ============================================================

@dataclass(frozen=True)
class Entity(OWLObject):
    iri: str


@dataclass(frozen=True)
class ClassExpression(OWLObject):
    pass


@dataclass(frozen=True)
class Class(Entity, ClassExpression):
    pass


@dataclass(frozen=True)
class ObjectProperty(Entity):
    pass


@dataclass(frozen=True)
class NamedIndividual(Entity):
    pass


@dataclass(frozen=True)
class AnnotationProperty(Entity):
    pass


# ============================================================
# Class Expressions
# ============================================================

@dataclass(frozen=True)
class ObjectSomeValuesFrom(ClassExpression):
    property: ObjectProperty
    filler: ClassExpression


@dataclass(frozen=True)
class ObjectAllValuesFrom(ClassExpression):
    property: ObjectProperty
    filler: ClassExpression


@dataclass(frozen=True)
class ObjectHasValue(ClassExpression):
    property: ObjectProperty
    filler: NamedIndividual


@dataclass(frozen=True)
class ObjectIntersectionOf(ClassExpression):
    operands: FrozenSet[ClassExpression]

    def __post_init__(self):
        _frozen(self, "operands")


@dataclass(frozen=True)
class ObjectUnionOf(ClassExpression):
    operands: FrozenSet[ClassExpression]

    def __post_init__(self):
        _frozen(self, "operands")


@dataclass(frozen=True)
class ObjectComplementOf(ClassExpression):
    operand: ClassExpression


# ============================================================
# Axioms
# ============================================================

@dataclass(frozen=True)
class Axiom(OWLObject):
    pass


@dataclass(frozen=True)
class SubClassOf(Axiom):
    sub_class: ClassExpression
    super_class: ClassExpression


@dataclass(frozen=True)
class EquivalentClasses(Axiom):
    class_expressions: FrozenSet[ClassExpression]

    def __post_init__(self):
        _frozen(self, "class_expressions")


@dataclass(frozen=True)
class DisjointClasses(Axiom):
    class_expressions: FrozenSet[ClassExpression]

    def __post_init__(self):
        _frozen(self, "class_expressions")


@dataclass(frozen=True)
class ClassAssertion(Axiom):
    class_expression: ClassExpression
    individual: NamedIndividual


@dataclass(frozen=True)
class ObjectPropertyAssertion(Axiom):
    property: ObjectProperty
    subject: NamedIndividual
    object: NamedIndividual


@dataclass(frozen=True)
class SubObjectPropertyOf(Axiom):
    sub_property: ObjectProperty
    super_property: ObjectProperty


@dataclass(frozen=True)
class TransitiveObjectProperty(Axiom):
    property: ObjectProperty


@dataclass(frozen=True)
class Declaration(Axiom):
    entity: Entity


@dataclass(frozen=True)
class AnnotationAssertion(Axiom):
    property: AnnotationProperty
    subject: Entity
    value: Any


RECORD_TYPES = (
    Class, ObjectProperty, NamedIndividual, AnnotationProperty,
    ObjectSomeValuesFrom, ObjectAllValuesFrom, ObjectHasValue,
    ObjectIntersectionOf, ObjectUnionOf, ObjectComplementOf,
    SubClassOf, EquivalentClasses, DisjointClasses, ClassAssertion,
    ObjectPropertyAssertion, SubObjectPropertyOf, TransitiveObjectProperty,
    Declaration, AnnotationAssertion,
)


# ============================================================
# Rendering
# ============================================================

def format_record(obj: Any) -> str:
    """
    Render a record (or a bound value) in OWL functional-style syntax.

    Examples:
        Class("kinase")                          -> "<kinase>"
        ObjectSomeValuesFrom(part_of, pathway)   -> "ObjectSomeValuesFrom(<part_of> <pathway>)"
        ObjectIntersectionOf({a, b})             -> "ObjectIntersectionOf(<a> <b>)"
        "a label"                                -> '"a label"'
        [Class("a"), Class("b")]                 -> "[<a> <b>]"
    """
    if isinstance(obj, Entity):
        return f"<{obj.iri}>"
    if isinstance(obj, OWLObject):
        parts = []
        for f in fields(obj):
            value = getattr(obj, f.name)
            if isinstance(value, frozenset):
                parts.extend(sorted(format_record(v) for v in value))
            else:
                parts.append(format_record(value))
        return f"{type(obj).__name__}({' '.join(parts)})"
    if isinstance(obj, str):
        return f'"{obj}"'
    if isinstance(obj, (set, frozenset)):
        return "[" + " ".join(sorted(format_record(v) for v in obj)) + "]"
    if isinstance(obj, (list, tuple)):
        return "[" + " ".join(format_record(v) for v in obj) + "]"
    return str(obj)


def signature(obj: Any) -> Set[Entity]:
    """Collect every entity mentioned anywhere inside a record."""
    if isinstance(obj, Entity):
        return {obj}
    found: Set[Entity] = set()
    if isinstance(obj, OWLObject):
        for f in fields(obj):
            found |= signature(getattr(obj, f.name))
    elif isinstance(obj, (set, frozenset, list, tuple)):
        for item in obj:
            found |= signature(item)
    return found


def _register_model(registry: AccessorRegistry, kinds: Iterable[type]) -> AccessorRegistry:
    for kind in kinds:
        registry.register_fields(kind, *(f.name for f in fields(kind)))
    registry.register(OWLObject, "signature", signature)
    return registry


# Capabilities of every model record: one per dataclass field, plus
# "signature" on all of them.
DEFAULT_ACCESSORS = _register_model(AccessorRegistry(), RECORD_TYPES)
