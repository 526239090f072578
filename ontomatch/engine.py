"""
Query Engine for ontomatch.

This module runs compiled patterns against every record of a knowledge
store, and applies batched find-and-replace rewrites.

Usage:
    engine = QueryEngine(store)

    # Find: every match, with its bindings and source record
    for bindings, axiom in engine.find({"a": SubClassOf,
                                        "super_class": {"a": ObjectSomeValuesFrom,
                                                        "property": part_of,
                                                        "filler": "?whole"}}):
        print(axiom, "->", bindings["whole"])

    # Find and replace: the rewrite function receives the bindings and the
    # store and returns None (leave alone), a record, or a list of records
    def to_has_part(b, store):
        return SubClassOf(b["whole"], ObjectSomeValuesFrom(has_part, b["part"]))

    added = engine.find_and_replace(pattern, to_has_part)

Replacement is atomic with respect to the scan: every match is computed
against the records present when the call started, and the store is only
changed once the scan is complete.

Tracing:
    Use engine.find_and_replace(pattern, rewrite, trace=True) to see which
    records were rewritten into what.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .accessors import AccessorRegistry
from .logging import logger
from .matcher import Bindings, MatchResult, NoMatch, StructuralMatcher
from .model import DEFAULT_ACCESSORS, OWLObject, format_record
from .patterns import VARIABLE_SIGIL, Pattern, compile_pattern

RewriteResult = Union[None, Any, List[Any]]
RewriteFunc = Callable[[Bindings, Any], RewriteResult]

_MULTIPLE_RESULT_TYPES = (list, tuple, set, frozenset)


class RewriteStep:
    """A single record substitution in a find-and-replace run."""

    def __init__(self, record: Any, replacements: List[Any], bindings: Bindings):
        self.record = record
        self.replacements = replacements
        self.bindings = bindings

    @property
    def kept(self) -> bool:
        """True if the record is among its own replacements."""
        return self.record in self.replacements

    def __repr__(self) -> str:
        if not self.replacements:
            return f"{format_record(self.record)} => (deleted)"
        after = ", ".join(format_record(r) for r in self.replacements)
        return f"{format_record(self.record)} => {after}"

    def to_dict(self) -> Dict:
        """Convert step to dictionary for serialization."""
        return {
            "record": format_record(self.record),
            "replacements": [format_record(r) for r in self.replacements],
            "bindings": {name: format_record(v) for name, v in self.bindings.items()},
        }


class RewriteTrace:
    """
    A trace of all substitutions made by find_and_replace().

    Provides multiple formatting options:
        - Default repr: verbose multi-line format
        - format("compact"): single line summary
        - format("records"): diff-style list of removed (-) and added (+) records
        - to_dict(): JSON-serializable dictionary
    """

    def __init__(self):
        self.steps: List[RewriteStep] = []

    def add_step(self, step: RewriteStep):
        self.steps.append(step)

    def added(self) -> List[Any]:
        """All replacement records, in scan order."""
        return [r for step in self.steps for r in step.replacements]

    def removed(self) -> List[Any]:
        """Matched records that left the store, in scan order."""
        return [step.record for step in self.steps if not step.kept]

    def format(self, style: str = "verbose") -> str:
        """
        Format the trace in different styles.

        Args:
            style: One of "verbose", "compact", "records"

        Returns:
            Formatted string representation of the trace.
        """
        if style == "compact":
            return (f"{len(self.steps)} rewrites "
                    f"(-{len(self.removed())} +{len(self.added())})")

        elif style == "records":
            if not self.steps:
                return "(no records rewritten)"
            lines = []
            for step in self.steps:
                if not step.kept:
                    lines.append(f"- {format_record(step.record)}")
                lines.extend(f"+ {format_record(r)}" for r in step.replacements
                             if r != step.record)
            return "\n".join(lines)

        else:  # verbose (default)
            return repr(self)

    def __repr__(self) -> str:
        lines = [f"Rewrites: {len(self.steps)}"]
        for i, step in enumerate(self.steps, 1):
            lines.append(f"  {i}. {step}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        """Iterate over rewrite steps."""
        return iter(self.steps)

    def __bool__(self) -> bool:
        """True if any record was rewritten."""
        return len(self.steps) > 0

    def to_dict(self) -> Dict:
        """Convert trace to dictionary for JSON serialization."""
        return {
            "steps": [step.to_dict() for step in self.steps],
            "step_count": len(self.steps),
            "added_count": len(self.added()),
            "removed_count": len(self.removed()),
        }

    def summary(self) -> str:
        """Get a brief summary of the rewriting."""
        if not self.steps:
            return "No rewriting performed"
        deleted = sum(1 for step in self.steps if not step.replacements)
        return (f"{len(self.steps)} records rewritten into {len(self.added())} "
                f"({deleted} deleted)")


class QueryEngine:
    """
    Finds and rewrites store records that match a pattern.

    Patterns may be compiled Pattern objects or shorthand values (see
    ontomatch.patterns). They are compiled before the store is touched,
    so a malformed pattern raises PatternError without side effects.

    Example:
        from ontomatch import QueryEngine, OntologyStore, SubClassOf

        engine = QueryEngine(store)
        matches = engine.find({"a": SubClassOf, "sub_class": kinase, "super_class": "?parent"})
        parents = [b["parent"] for b, _ in matches]

        # Legacy conflict handling: drop bindings instead of failing the match
        engine = QueryEngine(store, on_conflict="discard")
    """

    def __init__(self, store: Any,
                 accessors: Optional[AccessorRegistry] = None,
                 record_types: Optional[Tuple[type, ...]] = None,
                 on_conflict: str = "fail",
                 sigil: str = VARIABLE_SIGIL):
        """
        Initialize a QueryEngine.

        Args:
            store: The knowledge store to search and rewrite
            accessors: Capability registry. Default: DEFAULT_ACCESSORS
            record_types: Types matched by equality when used in a pattern.
                Default: (OWLObject,)
            on_conflict: "fail" (default) fails a match whose variable is
                bound to two different values; "discard" keeps the match
                with empty bindings
            sigil: Prefix marking string variables. Default: "?"
        """
        if not sigil:
            raise ValueError("Variable sigil must be a non-empty string")
        self.store = store
        self.record_types = tuple(record_types) if record_types is not None else (OWLObject,)
        self.sigil = sigil
        self._matcher = StructuralMatcher(
            accessors if accessors is not None else DEFAULT_ACCESSORS,
            on_conflict,
        )

    @property
    def accessors(self) -> AccessorRegistry:
        return self._matcher.accessors

    @property
    def on_conflict(self) -> str:
        return self._matcher.on_conflict

    def with_accessors(self, accessors: AccessorRegistry) -> 'QueryEngine':
        """Set the capability registry. Returns self for chaining."""
        self._matcher = StructuralMatcher(accessors, self._matcher.on_conflict)
        return self

    def with_conflict_policy(self, on_conflict: str) -> 'QueryEngine':
        """Set the binding conflict policy. Returns self for chaining."""
        self._matcher = StructuralMatcher(self._matcher.accessors, on_conflict)
        return self

    def compile(self, pattern: Any) -> Pattern:
        """Compile a pattern using this engine's record types and sigil."""
        return compile_pattern(pattern, self.record_types, self.sigil)

    def match(self, record: Any, pattern: Any) -> MatchResult:
        """
        Match a single value against a pattern.

        Returns Bindings if matched, NoMatch if not.

        Example:
            if bindings := engine.match(axiom, {"a": SubClassOf, "sub_class": "?x"}):
                print(bindings["x"])
        """
        return self._matcher.match(record, self.compile(pattern), self.store)

    def find(self, pattern: Any) -> List[Tuple[Bindings, Any]]:
        """
        Find every store record matching a pattern.

        Returns:
            List of (bindings, record) pairs in store order. Each bindings
            object also carries its record as ``bindings.record``.
        """
        compiled = self.compile(pattern)
        records = list(self.store.all_records())

        matches = []
        for record in records:
            bindings = self._matcher.match(record, compiled, self.store)
            if bindings is not NoMatch:
                matches.append((bindings.with_record(record), record))

        logger.info("find: %d of %d records matched %r", len(matches), len(records), compiled)
        return matches

    def find_and_replace(self, pattern: Any, rewrite: RewriteFunc, trace: bool = False):
        """
        Replace every store record matching a pattern.

        For each match, ``rewrite(bindings, store)`` decides the outcome:
            None                 - leave the record alone
            a record             - replace the record with it
            list/tuple/set       - replace the record with all of them
                                   (an empty list deletes the record)

        The store is changed once, after the whole scan: all replacements
        are added, then all replaced records are removed. A record that its
        own rewrite returns among its replacements is kept. If rewrite
        raises, the store is left untouched.

        Args:
            pattern: Pattern to match
            rewrite: Function computing replacements from bindings
            trace: If True, return (added, trace) tuple

        Returns:
            List of added records, or (added, RewriteTrace) if trace=True
        """
        compiled = self.compile(pattern)
        records = list(self.store.all_records())
        trace_obj = RewriteTrace()

        additions: List[Any] = []
        removals: List[Any] = []
        for record in records:
            bindings = self._matcher.match(record, compiled, self.store)
            if bindings is NoMatch:
                continue
            bindings = bindings.with_record(record)
            result = rewrite(bindings, self.store)
            if result is None:
                continue
            if isinstance(result, _MULTIPLE_RESULT_TYPES):
                replacements = list(result)
            else:
                replacements = [result]
            step = RewriteStep(record, replacements, bindings)
            additions.extend(replacements)
            if not step.kept:
                removals.append(record)
            trace_obj.add_step(step)

        if additions:
            self.store.add_records(additions)
        if removals:
            self.store.remove_records(removals)

        logger.info("find_and_replace: %d matches rewritten, %d added, %d removed",
                    len(trace_obj), len(additions), len(removals))
        if trace:
            return additions, trace_obj
        return additions

    def __repr__(self) -> str:
        return f"QueryEngine({self.store!r})"
