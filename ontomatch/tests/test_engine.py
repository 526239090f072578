"""Tests for QueryEngine.find() and QueryEngine.find_and_replace()."""

from dataclasses import dataclass

import pytest
from ontomatch import (
    QueryEngine, OntologyStore, AccessorRegistry, DEFAULT_ACCESSORS,
    Bindings, NoMatch, PatternError, P,
    Class, ObjectProperty, NamedIndividual, AnnotationProperty,
    ObjectSomeValuesFrom, SubClassOf, ClassAssertion, ObjectPropertyAssertion,
    AnnotationAssertion, TransitiveObjectProperty, Declaration,
)

part_of = ObjectProperty("part_of")
has_part = ObjectProperty("has_part")
kinase = Class("kinase")
pathway = Class("pathway")
cascade = Class("cascade")
enzyme = Class("enzyme")


class RecordingStore(OntologyStore):
    """OntologyStore that records every mutation call."""

    def __init__(self, records=()):
        super().__init__(records)
        self.calls = []

    def add_records(self, records):
        self.calls.append(("add", list(records)))
        super().add_records(records)

    def remove_records(self, records):
        self.calls.append(("remove", list(records)))
        super().remove_records(records)


def part_of_store():
    return OntologyStore([
        Declaration(kinase),
        TransitiveObjectProperty(part_of),
        SubClassOf(kinase, ObjectSomeValuesFrom(part_of, cascade)),
        SubClassOf(cascade, ObjectSomeValuesFrom(part_of, pathway)),
        SubClassOf(kinase, enzyme),
    ])


PART_OF_PATTERN = {
    "a": SubClassOf,
    "sub_class": "?part",
    "super_class": {"a": ObjectSomeValuesFrom, "property": part_of, "filler": "?whole"},
}


class TestFind:
    """Tests for QueryEngine.find()."""

    def setup_method(self):
        self.store = part_of_store()
        self.engine = QueryEngine(self.store)

    def test_find_all_matches(self):
        """find() returns every matching record with its bindings."""
        matches = self.engine.find(PART_OF_PATTERN)
        assert len(matches) == 2
        assert [dict(b.items()) for b, _ in matches] == [
            {"part": kinase, "whole": cascade},
            {"part": cascade, "whole": pathway},
        ]

    def test_find_pairs_source_record(self):
        """Each match is paired with the record it came from."""
        for bindings, record in self.engine.find(PART_OF_PATTERN):
            assert record in self.store
            assert bindings.record is record
            assert record.sub_class == bindings["part"]

    def test_find_store_order(self):
        """Matches come back in store order."""
        records = [r for _, r in self.engine.find({"a": SubClassOf})]
        assert records == [r for r in self.store.all_records() if isinstance(r, SubClassOf)]

    def test_find_no_matches(self):
        """find() returns an empty list when nothing matches."""
        assert self.engine.find({"a": ClassAssertion}) == []

    def test_find_kind_only(self):
        """A kind-only structural pattern matches by runtime kind."""
        matches = self.engine.find({"a": TransitiveObjectProperty})
        assert [r for _, r in matches] == [TransitiveObjectProperty(part_of)]
        assert matches[0][0] == {}

    def test_find_literal(self):
        """A literal record finds exactly itself."""
        axiom = SubClassOf(kinase, enzyme)
        matches = self.engine.find(axiom)
        assert [r for _, r in matches] == [axiom]

    def test_find_with_variable_condition(self):
        """Conditions can consult the store."""
        pattern = {
            "a": SubClassOf,
            "sub_class": {"var": "c",
                          "condition": lambda cls, store: enzyme in store.super_classes(cls)},
        }
        matches = self.engine.find(pattern)
        assert {b["c"] for b, _ in matches} == {kinase}
        assert len(matches) == 2

    def test_find_malformed_pattern(self):
        """Malformed patterns raise PatternError instead of matching nothing."""
        with pytest.raises(PatternError):
            self.engine.find({"a": "SubClassOf"})

    def test_find_does_not_mutate(self):
        """find() never touches the store."""
        before = self.store.all_records()
        self.engine.find(PART_OF_PATTERN)
        assert self.store.all_records() == before

    def test_find_builder_pattern(self):
        """Patterns from P work the same as shorthand."""
        pattern = P.of(SubClassOf, sub_class=P.var("part"),
                       super_class=P.of(ObjectSomeValuesFrom, property=part_of, filler="?whole"))
        assert len(self.engine.find(pattern)) == 2


class TestScenario:
    """Two records of one kind differing in a single field."""

    def test_two_bindings(self):
        """Each record yields its own binding for the varying field."""
        prop = AnnotationProperty("rank")
        x1 = AnnotationAssertion(prop, kinase, 1)
        x2 = AnnotationAssertion(prop, kinase, 2)
        engine = QueryEngine(OntologyStore([x1, x2]))

        matches = engine.find({"a": AnnotationAssertion, "property": P.lit(prop), "value": P.var("v")})
        assert matches == [(Bindings({"v": 1}), x1), (Bindings({"v": 2}), x2)]

    def test_custom_record_type(self):
        """Engines work over any record type given its accessors."""
        @dataclass(frozen=True)
        class X:
            prop: str
            val: int

        registry = AccessorRegistry().register_fields(X, "prop", "val")
        store = OntologyStore([X("A", 1), X("A", 2), X("B", 3)])
        engine = QueryEngine(store, accessors=registry, record_types=(X,))

        matches = engine.find({"a": X, "prop": "A", "val": "?v"})
        assert [b["v"] for b, _ in matches] == [1, 2]
        assert engine.find(X("B", 3)) == [(Bindings(), X("B", 3))]


class TestFindAndReplace:
    """Tests for QueryEngine.find_and_replace()."""

    def setup_method(self):
        self.store = part_of_store()
        self.engine = QueryEngine(self.store)

    def test_replace_single(self):
        """A returned record replaces the matched one."""
        def invert(b, store):
            return SubClassOf(b["whole"], ObjectSomeValuesFrom(has_part, b["part"]))

        added = self.engine.find_and_replace(PART_OF_PATTERN, invert)

        assert added == [
            SubClassOf(cascade, ObjectSomeValuesFrom(has_part, kinase)),
            SubClassOf(pathway, ObjectSomeValuesFrom(has_part, cascade)),
        ]
        for record in added:
            assert record in self.store
        assert self.engine.find(PART_OF_PATTERN) == []
        assert SubClassOf(kinase, enzyme) in self.store

    def test_replace_many(self):
        """A returned list replaces the matched record with all of them."""
        def split(b, store):
            return [SubClassOf(b["part"], b["whole"]), Declaration(b["whole"])]

        added = self.engine.find_and_replace(PART_OF_PATTERN, split)
        assert len(added) == 4
        assert SubClassOf(kinase, cascade) in self.store
        assert Declaration(pathway) in self.store
        assert len(self.engine.find(PART_OF_PATTERN)) == 0

    def test_none_leaves_record(self):
        """Returning None leaves the matched record in place."""
        before = self.store.all_records()
        added = self.engine.find_and_replace(PART_OF_PATTERN, lambda b, store: None)
        assert added == []
        assert self.store.all_records() == before

    def test_empty_list_deletes(self):
        """Returning an empty list deletes the matched record."""
        added = self.engine.find_and_replace(PART_OF_PATTERN, lambda b, store: [])
        assert added == []
        assert self.engine.find(PART_OF_PATTERN) == []
        assert len(self.store) == 3

    def test_selective_rewrite(self):
        """The rewrite function decides per match."""
        def only_kinase(b, store):
            if b["part"] == kinase:
                return SubClassOf(kinase, b["whole"])
            return None

        self.engine.find_and_replace(PART_OF_PATTERN, only_kinase)
        remaining = self.engine.find(PART_OF_PATTERN)
        assert [b["part"] for b, _ in remaining] == [cascade]
        assert SubClassOf(kinase, cascade) in self.store

    def test_bindings_carry_record(self):
        """The rewrite sees the matched record on the bindings."""
        seen = []
        self.engine.find_and_replace(PART_OF_PATTERN, lambda b, store: seen.append(b.record))
        assert len(seen) == 2
        assert all(isinstance(r, SubClassOf) for r in seen)

    def test_rewrite_receives_store(self):
        """The rewrite gets the engine's store."""
        stores = []
        self.engine.find_and_replace(PART_OF_PATTERN, lambda b, store: stores.append(store))
        assert stores == [self.store, self.store]

    def test_snapshot_atomicity(self):
        """Every rewrite sees the store exactly as it was when the call started."""
        before = self.store.all_records()
        views = []

        def rewrite(b, store):
            views.append(store.all_records())
            return SubClassOf(b["part"], b["whole"])

        self.engine.find_and_replace(PART_OF_PATTERN, rewrite)
        assert views == [before, before]

    def test_replacement_not_rematched(self):
        """Replacements that match the pattern are not rewritten again."""
        calls = []

        def rewrite(b, store):
            calls.append(b["part"])
            return SubClassOf(b["part"], ObjectSomeValuesFrom(part_of, enzyme))

        self.engine.find_and_replace(PART_OF_PATTERN, rewrite)
        assert calls == [kinase, cascade]
        assert {b["whole"] for b, _ in self.engine.find(PART_OF_PATTERN)} == {enzyme}

    def test_round_trip_is_noop(self):
        """Returning the matched record unchanged leaves the store as it was."""
        before = self.store.all_records()
        added = self.engine.find_and_replace(PART_OF_PATTERN, lambda b, store: b.record)
        assert set(added) == {r for _, r in self.engine.find(PART_OF_PATTERN)}
        assert self.store.all_records() == before

    def test_chained_rewrites_remove_every_match(self):
        """A matched record is removed even when another rewrite produces it."""
        a, b, c, d = Class("a"), Class("b"), Class("c"), Class("d")
        first, second = SubClassOf(a, b), SubClassOf(b, c)
        store = OntologyStore([first, second])
        engine = QueryEngine(store)

        def shift(bindings, store):
            if bindings.record == first:
                return second
            return SubClassOf(c, d)

        added = engine.find_and_replace({"a": SubClassOf}, shift)
        assert added == [second, SubClassOf(c, d)]
        assert store.all_records() == [SubClassOf(c, d)]

    def test_kept_record_alongside_new_ones(self):
        """A rewrite may keep its record and add more next to it."""
        axiom = SubClassOf(kinase, enzyme)
        store = RecordingStore([axiom])
        QueryEngine(store).find_and_replace(
            {"a": SubClassOf}, lambda b, s: [b.record, Declaration(kinase)])
        assert store.all_records() == [axiom, Declaration(kinase)]
        assert [kind for kind, _ in store.calls] == ["add"]

    def test_single_batched_mutation(self):
        """The store sees at most one add and one remove call, in that order."""
        store = RecordingStore(part_of_store().all_records())
        engine = QueryEngine(store)
        engine.find_and_replace(PART_OF_PATTERN, lambda b, s: SubClassOf(b["part"], b["whole"]))
        assert [kind for kind, _ in store.calls] == ["add", "remove"]
        assert len(store.calls[0][1]) == 2
        assert len(store.calls[1][1]) == 2

    def test_no_mutation_calls_without_changes(self):
        """No store calls are made when nothing is rewritten."""
        store = RecordingStore(part_of_store().all_records())
        QueryEngine(store).find_and_replace(PART_OF_PATTERN, lambda b, s: None)
        assert store.calls == []

    def test_rewrite_error_aborts_batch(self):
        """An exception in rewrite propagates and nothing is committed."""
        store = RecordingStore(part_of_store().all_records())
        engine = QueryEngine(store)
        before = store.all_records()
        count = []

        def rewrite(b, s):
            count.append(1)
            if len(count) == 2:
                raise RuntimeError("rewrite failed")
            return SubClassOf(b["part"], b["whole"])

        with pytest.raises(RuntimeError, match="rewrite failed"):
            engine.find_and_replace(PART_OF_PATTERN, rewrite)
        assert store.calls == []
        assert store.all_records() == before

    def test_malformed_pattern(self):
        """Malformed patterns raise before the rewrite is ever called."""
        calls = []
        with pytest.raises(PatternError):
            self.engine.find_and_replace({"a": 3}, lambda b, s: calls.append(b))
        assert calls == []

    def test_individual_assertions(self):
        """Rewrites work on any axiom kind."""
        i1, c1 = NamedIndividual("i1"), NamedIndividual("c1")
        store = OntologyStore([ObjectPropertyAssertion(part_of, i1, c1)])
        engine = QueryEngine(store)

        added = engine.find_and_replace(
            {"a": ObjectPropertyAssertion, "property": part_of, "subject": "?s", "object": "?o"},
            lambda b, s: ObjectPropertyAssertion(has_part, b["o"], b["s"]))

        assert added == [ObjectPropertyAssertion(has_part, c1, i1)]
        assert store.all_records() == added


class TestEngineConfiguration:
    """Tests for engine settings."""

    def test_defaults(self):
        """Engines default to the model's accessors and the fail policy."""
        engine = QueryEngine(OntologyStore())
        assert engine.accessors is DEFAULT_ACCESSORS
        assert engine.on_conflict == "fail"
        assert engine.sigil == "?"

    def test_discard_policy(self):
        """The discard policy keeps conflicting matches with no bindings."""
        store = OntologyStore([SubClassOf(kinase, enzyme)])
        pattern = {"sub_class": "?x", "super_class": "?x"}
        assert QueryEngine(store).find(pattern) == []
        matches = QueryEngine(store, on_conflict="discard").find(pattern)
        assert len(matches) == 1
        assert matches[0][0] == {}

    def test_with_conflict_policy(self):
        """with_conflict_policy() returns self for chaining."""
        engine = QueryEngine(OntologyStore())
        assert engine.with_conflict_policy("discard") is engine
        assert engine.on_conflict == "discard"

    def test_with_accessors(self):
        """with_accessors() swaps the registry."""
        registry = AccessorRegistry()
        engine = QueryEngine(OntologyStore([SubClassOf(kinase, enzyme)])).with_accessors(registry)
        assert engine.accessors is registry
        assert engine.find({"sub_class": "?x"}) == []

    def test_bad_policy(self):
        """Unknown policies are rejected."""
        with pytest.raises(ValueError):
            QueryEngine(OntologyStore(), on_conflict="ignore")

    def test_bad_sigil(self):
        """The sigil must not be empty."""
        with pytest.raises(ValueError):
            QueryEngine(OntologyStore(), sigil="")

    def test_custom_sigil(self):
        """Variables use the configured sigil."""
        store = OntologyStore([SubClassOf(kinase, enzyme)])
        engine = QueryEngine(store, sigil="$")
        assert engine.find({"a": SubClassOf, "super_class": "$p"})[0][0] == {"p": enzyme}

    def test_repr(self):
        assert "QueryEngine" in repr(QueryEngine(OntologyStore()))
