"""
ontomatch - structural pattern matching and rewriting over ontology stores

Finds axioms and class expressions by shape, binds variables, and applies
batched find-and-replace rewrites.

Quick Start:
    from ontomatch import QueryEngine, OntologyStore, SubClassOf, Class

    store = OntologyStore([SubClassOf(Class("kinase"), Class("enzyme"))])
    engine = QueryEngine(store)

    engine.find({"a": SubClassOf, "super_class": "?parent"})
    # => [(Bindings({'parent': Class(iri='enzyme')}), SubClassOf(...))]

Pattern Syntax:
    "?x"                          - match anything, bind to x
    {"var": "x", "condition": f}  - bind to x if f(value, store) holds
    Class("kinase")               - match an equal record
    {"a": Kind, "field": pat}     - match a record of Kind whose field matches pat
    [pat1, pat2]                  - match distinct members of an unordered collection
    [pat1, "..."]                 - same, marked open-ended

Rewriting:
    def rewrite(bindings, store):
        return SubClassOf(bindings["x"], Class("protein"))   # or None, or a list

    added = engine.find_and_replace(pattern, rewrite)
"""

__version__ = "0.1.0"

# Patterns
from .patterns import (
    Pattern,
    Variable,
    Literal,
    Structural,
    Sequence,
    PatternError,
    P,
    compile_pattern,
    VARIABLE_SIGIL,
    TYPE_KEY,
    REST_MARKER,
)

# Matching
from .matcher import (
    Bindings,
    NoMatch,
    StructuralMatcher,
    merge_bindings,
    assign_positions,
    coerce_collection,
    render_key,
    CONFLICT_POLICIES,
)

# Capability accessors
from .accessors import AccessorRegistry, canonical_key

# Record model
from .model import (
    OWLObject,
    Entity,
    Class,
    ObjectProperty,
    NamedIndividual,
    AnnotationProperty,
    ClassExpression,
    ObjectSomeValuesFrom,
    ObjectAllValuesFrom,
    ObjectHasValue,
    ObjectIntersectionOf,
    ObjectUnionOf,
    ObjectComplementOf,
    Axiom,
    SubClassOf,
    EquivalentClasses,
    DisjointClasses,
    ClassAssertion,
    ObjectPropertyAssertion,
    SubObjectPropertyOf,
    TransitiveObjectProperty,
    Declaration,
    AnnotationAssertion,
    DEFAULT_ACCESSORS,
    format_record,
    signature,
)

# Store and engine
from .store import KnowledgeStore, OntologyStore
from .engine import QueryEngine, RewriteStep, RewriteTrace
from .logging import configure_logging

# Public API
__all__ = [
    # Version
    "__version__",
    # Patterns
    "Pattern",
    "Variable",
    "Literal",
    "Structural",
    "Sequence",
    "PatternError",
    "P",
    "compile_pattern",
    "VARIABLE_SIGIL",
    "TYPE_KEY",
    "REST_MARKER",
    # Matching
    "Bindings",
    "NoMatch",
    "StructuralMatcher",
    "merge_bindings",
    "assign_positions",
    "coerce_collection",
    "render_key",
    "CONFLICT_POLICIES",
    # Accessors
    "AccessorRegistry",
    "canonical_key",
    # Model
    "OWLObject",
    "Entity",
    "Class",
    "ObjectProperty",
    "NamedIndividual",
    "AnnotationProperty",
    "ClassExpression",
    "ObjectSomeValuesFrom",
    "ObjectAllValuesFrom",
    "ObjectHasValue",
    "ObjectIntersectionOf",
    "ObjectUnionOf",
    "ObjectComplementOf",
    "Axiom",
    "SubClassOf",
    "EquivalentClasses",
    "DisjointClasses",
    "ClassAssertion",
    "ObjectPropertyAssertion",
    "SubObjectPropertyOf",
    "TransitiveObjectProperty",
    "Declaration",
    "AnnotationAssertion",
    "DEFAULT_ACCESSORS",
    "format_record",
    "signature",
    # Store and engine
    "KnowledgeStore",
    "OntologyStore",
    "QueryEngine",
    "RewriteStep",
    "RewriteTrace",
    # Logging
    "configure_logging",
]
