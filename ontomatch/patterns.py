"""
Pattern model and classifier.

Patterns describe what to look for in a store. They can be written as
plain Python values and compiled, or built explicitly with ``P``.

Pattern shorthand (compiled by compile_pattern):
    "?x"                                  - variable x, matches anything
    {"var": "x", "condition": fn}         - variable x, fn(value, store) must hold
    Class("kinase")                       - literal record, matched by equality
    "kinase", 3, None                     - literal scalar
    {"a": SubClassOf, "sub_class": "?x"}  - structural: kind plus capabilities
    ["?x", Class("b")]                    - unordered sequence
    ["?x", "..."]                         - open-ended sequence

Examples:
    compile_pattern({"a": ObjectSomeValuesFrom,
                     "property": part_of,
                     "filler": "?whole"})
    # => Structural(ObjectSomeValuesFrom, {'property': Literal(...), 'filler': Variable('whole')})

    P.of(SubClassOf, sub_class=P.var("x"), super_class=P.lit(tissue))
"""

from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .accessors import canonical_key

VARIABLE_SIGIL = "?"
TYPE_KEY = "a"
VAR_KEY = "var"
CONDITION_KEY = "condition"
REST_MARKER = "..."

ConditionType = Callable[[Any, Any], bool]
KindType = Union[type, Tuple[type, ...]]

_SCALAR_TYPES = (str, int, float, bool, type(None))


class PatternError(ValueError):
    """Raised when a value cannot be read as a pattern."""


# ============================================================
# Pattern Model
# ============================================================

class Pattern:
    """Base class of the four compiled pattern kinds."""

    __slots__ = ()

    def _key(self) -> tuple:
        raise NotImplementedError

    def __eq__(self, other):
        if type(other) is type(self):
            return self._key() == other._key()
        return NotImplemented

    __hash__ = None


class Variable(Pattern):
    """Matches any value and binds it to ``name``."""

    __slots__ = ('name', 'condition')

    def __init__(self, name: str, condition: Optional[ConditionType] = None):
        self.name = name
        self.condition = condition

    def _key(self) -> tuple:
        return (self.name, self.condition)

    def __repr__(self) -> str:
        if self.condition is not None:
            return f"Variable({self.name!r}, condition={self.condition!r})"
        return f"Variable({self.name!r})"


class Literal(Pattern):
    """Matches only a value equal to ``value``."""

    __slots__ = ('value',)

    def __init__(self, value: Any):
        self.value = value

    def _key(self) -> tuple:
        return (self.value,)

    def __repr__(self) -> str:
        return f"Literal({self.value!r})"


class Structural(Pattern):
    """
    Matches a record by runtime kind and capability sub-patterns.

    ``fields`` maps canonical capability keys to compiled patterns. They
    are checked in insertion order.
    """

    __slots__ = ('kind', 'fields')

    def __init__(self, kind: Optional[KindType] = None,
                 fields: Optional[Dict[str, Pattern]] = None):
        self.kind = kind
        self.fields = dict(fields or {})

    def _key(self) -> tuple:
        return (self.kind, self.fields)

    def __repr__(self) -> str:
        kind = _kind_name(self.kind)
        return f"Structural({kind}, {self.fields!r})"


class Sequence(Pattern):
    """
    Matches an unordered collection.

    Each element must be matched by a distinct member of the candidate
    collection. ``open_ended`` is recorded but does not change matching:
    unassigned candidates are always allowed.
    """

    __slots__ = ('elements', 'open_ended')

    def __init__(self, elements: List[Pattern], open_ended: bool = False):
        self.elements = list(elements)
        self.open_ended = open_ended

    def _key(self) -> tuple:
        return (self.elements, self.open_ended)

    def __len__(self) -> int:
        return len(self.elements)

    def __repr__(self) -> str:
        if self.open_ended:
            return f"Sequence({self.elements!r}, open_ended=True)"
        return f"Sequence({self.elements!r})"


def _kind_name(kind: Optional[KindType]) -> str:
    if kind is None:
        return "*"
    if isinstance(kind, tuple):
        return "(" + ", ".join(k.__name__ for k in kind) + ")"
    return kind.__name__


# ============================================================
# Classifier
# ============================================================

def is_type_descriptor(value: Any) -> bool:
    """Check if value can be used with isinstance(): a class or tuple of classes."""
    if isinstance(value, type):
        return True
    return isinstance(value, tuple) and len(value) > 0 and all(isinstance(v, type) for v in value)


def variable_name(raw: Any, sigil: str = VARIABLE_SIGIL) -> Optional[str]:
    """
    Extract a variable name from a raw pattern, or None if it isn't one.

    Forms:
        "?x"                           -> "x"
        {"var": "x", ...}              -> "x"
    """
    if isinstance(raw, str):
        if raw.startswith(sigil):
            return raw[len(sigil):]
        return None
    if isinstance(raw, dict) and VAR_KEY in raw:
        return raw[VAR_KEY]
    return None


def compile_pattern(
    raw: Any,
    record_types: Tuple[type, ...] = (),
    sigil: str = VARIABLE_SIGIL,
) -> Pattern:
    """
    Classify a raw pattern value and compile it to a Pattern tree.

    Precedence:
        1. list or tuple           -> Sequence
        2. variable shorthand      -> Variable
        3. instance of record_types -> Literal
        4. dict                    -> Structural ("a" is the kind constraint)
        5. scalar, set, frozenset  -> Literal

    Args:
        raw: The pattern value (already-compiled Patterns pass through)
        record_types: Types whose instances are matched by equality
        sigil: Prefix marking a string as a variable

    Returns:
        The compiled Pattern

    Raises:
        PatternError: If raw (or any part of it) is not a valid pattern
    """
    if isinstance(raw, Pattern):
        return raw

    if isinstance(raw, (list, tuple)):
        return _compile_sequence(list(raw), record_types, sigil)

    name = variable_name(raw, sigil)
    if name is not None:
        return _compile_variable(raw, name)

    if record_types and isinstance(raw, record_types):
        return Literal(raw)

    if isinstance(raw, dict):
        return _compile_structural(raw, record_types, sigil)

    if isinstance(raw, _SCALAR_TYPES + (set, frozenset)):
        return Literal(raw)

    raise PatternError(f"Cannot use {raw!r} as a pattern")


def _compile_variable(raw: Any, name: Any) -> Variable:
    if not isinstance(name, str) or not name:
        raise PatternError(f"Variable pattern {raw!r} has no name")
    condition = raw.get(CONDITION_KEY) if isinstance(raw, dict) else None
    if condition is not None and not callable(condition):
        raise PatternError(f"Condition for variable '{name}' must be callable")
    return Variable(name, condition)


def _compile_sequence(items: List, record_types: Tuple[type, ...], sigil: str) -> Sequence:
    open_ended = False
    if items and items[-1] == REST_MARKER:
        open_ended = True
        items = items[:-1]
    elements = []
    for item in items:
        if item == REST_MARKER:
            raise PatternError(f"Rest marker ({REST_MARKER}) must be last in a sequence pattern")
        elements.append(compile_pattern(item, record_types, sigil))
    return Sequence(elements, open_ended)


def _compile_structural(raw: Dict, record_types: Tuple[type, ...], sigil: str) -> Structural:
    kind = None
    compiled: Dict[str, Pattern] = {}
    for key, sub in raw.items():
        if not isinstance(key, str):
            raise PatternError(f"Structural pattern key {key!r} must be a string")
        if key == TYPE_KEY:
            if not is_type_descriptor(sub):
                raise PatternError(f"Type constraint {sub!r} is not a class or tuple of classes")
            kind = sub
            continue
        compiled[canonical_key(key)] = compile_pattern(sub, record_types, sigil)
    return Structural(kind, compiled)


# ============================================================
# Pattern Builder
# ============================================================

class _PatternBuilder:
    """
    Pattern builder for ontomatch.

    Builds compiled patterns directly, without going through the
    shorthand classifier.

    Examples:
        from ontomatch import P

        P.var("x")
        P.var("whole", condition=lambda cls, store: cls in store.super_classes(organ))
        P.lit(Class("kinase"))
        P.of(ObjectSomeValuesFrom, property=part_of, filler="?whole")
        P.seq("?x", P.lit(Class("b")), open_ended=True)
    """

    def var(self, name: str, condition: Optional[ConditionType] = None) -> Variable:
        """Create a variable pattern."""
        return _compile_variable({VAR_KEY: name, CONDITION_KEY: condition}, name)

    def lit(self, value: Any) -> Literal:
        """Create a literal pattern, whatever the value looks like."""
        return Literal(value)

    def of(self, kind: Optional[KindType] = None, **fields) -> Structural:
        """
        Create a structural pattern.

        Field values may be Patterns or shorthand; records are taken
        literally.
        """
        if kind is not None and not is_type_descriptor(kind):
            raise PatternError(f"Type constraint {kind!r} is not a class or tuple of classes")
        compiled = {
            canonical_key(key): compile_pattern(sub, _record_types(sub))
            for key, sub in fields.items()
        }
        return Structural(kind, compiled)

    def seq(self, *elements, open_ended: bool = False) -> Sequence:
        """Create an unordered sequence pattern."""
        return Sequence([compile_pattern(e, _record_types(e)) for e in elements], open_ended)

    def __repr__(self) -> str:
        return "P (pattern builder)"


def _record_types(value: Any) -> Tuple[type, ...]:
    """Treat any non-pattern, non-shorthand object passed to P as a literal."""
    if isinstance(value, (Pattern, list, tuple, dict) + _SCALAR_TYPES):
        return ()
    return (type(value),)


# Singleton instance
P = _PatternBuilder()
