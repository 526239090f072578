"""
Core structural matcher.

This module provides the binding environment, binding merge, recursive
structural matching, and the assignment search used to match unordered
collections against sequence patterns.

Matching rules by pattern kind:
    Variable   - always matches (if its condition holds), binds name -> value
    Literal    - matches an equal value, binds nothing
    Structural - kind check, then each capability's value must match its sub-pattern
    Sequence   - each element must match a distinct member of the collection
"""

from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from .accessors import AccessorRegistry
from .logging import logger
from .model import format_record
from .patterns import Literal, Pattern, Sequence, Structural, Variable

CONFLICT_POLICIES = ("fail", "discard")

_COLLECTION_TYPES = (list, tuple, set, frozenset)


# ============================================================
# Match Results
# ============================================================

class Bindings:
    """
    The variables a successful match bound, by name.

    A match that binds nothing still yields an (empty, truthy) Bindings,
    so success is tested with ``is NoMatch`` or plain truthiness:

        bindings = engine.match(axiom, {"a": SubClassOf, "super_class": "?parent"})
        if bindings:
            parent = bindings["parent"]

    Results from QueryEngine.find() and find_and_replace() also carry the
    store record they came from as ``record``. Equality ignores it, and a
    plain dict compares equal to Bindings with the same entries.
    """

    __slots__ = ('_dict', 'record')

    def __init__(self, values: Optional[Dict[str, Any]] = None, record: Any = None):
        self._dict = dict(values or {})
        self.record = record

    def __bool__(self) -> bool:
        return True

    def __getitem__(self, key: str):
        return self._dict[key]

    def get(self, key: str, default=None):
        return self._dict.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._dict

    def keys(self):
        return self._dict.keys()

    def values(self):
        return self._dict.values()

    def items(self):
        return self._dict.items()

    def __iter__(self):
        return iter(self._dict)

    def __len__(self) -> int:
        return len(self._dict)

    def __repr__(self) -> str:
        return f"Bindings({self._dict})"

    def __eq__(self, other):
        if isinstance(other, Bindings):
            return self._dict == other._dict
        if isinstance(other, dict):
            return self._dict == other
        return False

    __hash__ = None

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict copy of the bound variables."""
        return self._dict.copy()

    def with_record(self, record: Any) -> 'Bindings':
        """Same bindings, attributed to ``record``."""
        return Bindings(self._dict, record)


class _NoMatch:
    """
    The failed-match result. There is exactly one instance, ``NoMatch``.

    It is falsy and reads as an empty mapping, so code that only looks up
    variables after a truthiness check never needs a second branch.
    Lookups by key raise KeyError naming the variable.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NoMatch"

    def __getitem__(self, key: str):
        raise KeyError(f"'{key}' is unbound: the pattern did not match")

    def get(self, key: str, default=None):
        return default

    def __contains__(self, key: str) -> bool:
        return False

    def __len__(self) -> int:
        return 0

    def __iter__(self):
        return iter(())


NoMatch = _NoMatch()

MatchResult = Union[Bindings, _NoMatch]

EMPTY = Bindings()


def merge_bindings(first: MatchResult, second: MatchResult,
                   on_conflict: str = "fail") -> MatchResult:
    """
    Merge two binding environments.

    A name bound in both to equal values is consistent and kept once. A
    name bound to different values is a conflict, resolved by policy:

        "fail"    - the merge (and so the enclosing match) is NoMatch
        "discard" - all bindings are dropped and empty Bindings returned

    Args:
        first: Bindings accumulated so far
        second: Bindings to add
        on_conflict: Conflict policy, "fail" or "discard"

    Returns:
        The merged Bindings, or NoMatch
    """
    if first is NoMatch or second is NoMatch:
        return NoMatch

    merged = first.to_dict()
    for name, value in second.items():
        if name in merged:
            if merged[name] == value:
                continue
            logger.debug("Binding conflict on '%s': %r vs %r", name, merged[name], value)
            if on_conflict == "discard":
                return Bindings()
            return NoMatch
        merged[name] = value
    return Bindings(merged)


def render_key(value: Any) -> Tuple[str, str]:
    """Sort key for set members: rendered form, then type name."""
    return (format_record(value), type(value).__name__)


def coerce_collection(value: Any) -> Any:
    """
    Turn a multi-valued accessor result into an ordered list.

    Lists and tuples keep their order. Sets are ordered by render_key(),
    which does not depend on hash order, so the search visits members in
    the same order in every process. Single values pass through.
    """
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=render_key)
    return value


# ============================================================
# Sequence Assignment Search
# ============================================================

CandidateRow = List[Tuple[int, Bindings]]


def assign_positions(
    rows: List[CandidateRow],
    row_num: int = 0,
    used: FrozenSet[int] = frozenset(),
    accumulated: MatchResult = EMPTY,
    on_conflict: str = "fail",
) -> MatchResult:
    """
    Pick one distinct candidate position per row, depth-first.

    Rows are processed in order. Within a row, candidates are tried in
    the order given; positions already in ``used`` are skipped, as are
    candidates whose bindings conflict with those accumulated so far.
    The first complete assignment wins - no attempt is made to find a
    better or different one.

    Args:
        rows: For each pattern element, its (position, bindings) candidates
        row_num: The row to assign next
        used: Candidate positions taken by earlier rows
        accumulated: Bindings merged from earlier rows
        on_conflict: Conflict policy passed to merge_bindings()

    Returns:
        The merged Bindings of the whole assignment, or NoMatch
    """
    if row_num >= len(rows):
        return accumulated

    for pos, bindings in rows[row_num]:
        if pos in used:
            continue
        merged = merge_bindings(accumulated, bindings, on_conflict)
        if merged is NoMatch:
            continue
        result = assign_positions(rows, row_num + 1, used | {pos}, merged, on_conflict)
        if result is not NoMatch:
            return result

    return NoMatch


# ============================================================
# Structural Matcher
# ============================================================

class StructuralMatcher:
    """
    Matches candidate values against compiled patterns.

    The matcher holds no store; the store is passed to every match() call
    and handed on to variable conditions.

    Example:
        matcher = StructuralMatcher(DEFAULT_ACCESSORS)
        pattern = compile_pattern({"a": SubClassOf, "super_class": "?x"}, (OWLObject,))
        matcher.match(axiom, pattern, store)   # => Bindings({'x': ...}) or NoMatch
    """

    def __init__(self, accessors: AccessorRegistry, on_conflict: str = "fail"):
        if on_conflict not in CONFLICT_POLICIES:
            raise ValueError(f"Unknown conflict policy: {on_conflict}. "
                             f"Valid options: {', '.join(CONFLICT_POLICIES)}")
        self.accessors = accessors
        self.on_conflict = on_conflict

    def match(self, candidate: Any, pattern: Pattern, store: Any = None) -> MatchResult:
        """
        Match a candidate value against a compiled pattern.

        Returns:
            Bindings on success (possibly empty), NoMatch on failure
        """
        if isinstance(pattern, Sequence):
            return self.match_sequence(candidate, pattern, store)
        if isinstance(pattern, Variable):
            return self.match_variable(candidate, pattern, store)
        if isinstance(pattern, Literal):
            return self.match_literal(candidate, pattern)
        if isinstance(pattern, Structural):
            return self.match_structural(candidate, pattern, store)
        raise TypeError(f"match: expected a compiled Pattern, got {pattern!r}")

    def match_variable(self, candidate: Any, pattern: Variable, store: Any) -> MatchResult:
        if pattern.condition is not None and not pattern.condition(candidate, store):
            return NoMatch
        return Bindings({pattern.name: candidate})

    def match_literal(self, candidate: Any, pattern: Literal) -> MatchResult:
        value = pattern.value
        if isinstance(value, (set, frozenset)) and isinstance(candidate, _COLLECTION_TYPES):
            try:
                return EMPTY if frozenset(candidate) == frozenset(value) else NoMatch
            except TypeError:
                return NoMatch
        if isinstance(value, bool) != isinstance(candidate, bool):
            return NoMatch
        return EMPTY if candidate == value else NoMatch

    def match_structural(self, candidate: Any, pattern: Structural, store: Any) -> MatchResult:
        if pattern.kind is not None and not isinstance(candidate, pattern.kind):
            return NoMatch

        bindings: MatchResult = EMPTY
        for key, sub_pattern in pattern.fields.items():
            accessor = self.accessors.resolve(candidate, key)
            if accessor is None:
                return NoMatch
            value = coerce_collection(accessor(candidate))
            sub_bindings = self.match(value, sub_pattern, store)
            if sub_bindings is NoMatch:
                return NoMatch
            bindings = merge_bindings(bindings, sub_bindings, self.on_conflict)
            if bindings is NoMatch:
                return NoMatch
        return bindings

    def match_sequence(self, candidate: Any, pattern: Sequence, store: Any) -> MatchResult:
        """
        Match an unordered collection against a sequence pattern.

        Every element pattern must be satisfied by a different member of
        the collection. Members left over are ignored.
        """
        if not isinstance(candidate, _COLLECTION_TYPES):
            return NoMatch
        pool = coerce_collection(candidate)

        rows = self.candidate_rows(pool, pattern.elements, store)
        if rows is None:
            return NoMatch

        result = assign_positions(rows, on_conflict=self.on_conflict)
        if result is NoMatch:
            logger.debug("No assignment for %d elements over %d candidates",
                         len(rows), len(pool))
        else:
            logger.debug("Assignment found: %r", result)
        return result

    def candidate_rows(self, pool: List, elements: Iterable[Pattern],
                       store: Any) -> Optional[List[CandidateRow]]:
        """
        Build, for each element pattern, the pool positions it matches.

        Returns None as soon as an element matches nothing in the pool.
        """
        rows: List[CandidateRow] = []
        for element in elements:
            row = []
            for pos, member in enumerate(pool):
                bindings = self.match(member, element, store)
                if bindings is not NoMatch:
                    row.append((pos, bindings))
            if not row:
                logger.debug("Sequence element %r matched no candidate", element)
                return None
            logger.debug("Sequence element %r candidates: %s",
                         element, [pos for pos, _ in row])
            rows.append(row)
        return rows
