#!/usr/bin/env python3
"""
ontomatch Feature Demonstration

This script walks through the main features of the ontomatch library on a
tiny signalling ontology.
"""

from ontomatch import (
    QueryEngine, OntologyStore, P, configure_logging,
    Class, ObjectProperty, NamedIndividual,
    ObjectSomeValuesFrom, ObjectIntersectionOf,
    SubClassOf, EquivalentClasses, ClassAssertion, ObjectPropertyAssertion,
)

part_of = ObjectProperty("part_of")
has_part = ObjectProperty("has_part")
kinase = Class("kinase")
cascade = Class("cascade")
pathway = Class("pathway")
enzyme = Class("enzyme")
signalling_kinase = Class("signalling_kinase")


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def build_store() -> OntologyStore:
    return OntologyStore([
        SubClassOf(kinase, enzyme),
        SubClassOf(kinase, ObjectSomeValuesFrom(part_of, cascade)),
        SubClassOf(cascade, ObjectSomeValuesFrom(part_of, pathway)),
        EquivalentClasses({
            signalling_kinase,
            ObjectIntersectionOf({kinase, ObjectSomeValuesFrom(part_of, pathway)}),
        }),
        ClassAssertion(kinase, NamedIndividual("k1")),
        ObjectPropertyAssertion(part_of, NamedIndividual("k1"), NamedIndividual("c1")),
    ], iri="http://example.org/signalling.owl")


def demo_find():
    """Demonstrate find with variables and nested structure."""
    section("Find")

    engine = QueryEngine(build_store())
    matches = engine.find({
        "a": SubClassOf,
        "sub_class": "?part",
        "super_class": {"a": ObjectSomeValuesFrom, "property": part_of, "filler": "?whole"},
    })
    for bindings, axiom in matches:
        print(f"  {axiom}")
        print(f"    part={bindings['part']}  whole={bindings['whole']}")


def demo_conditions():
    """Demonstrate variables with conditions."""
    section("Conditions")

    store = build_store()
    engine = QueryEngine(store)

    def has_parent(value, store):
        return bool(store.super_classes(value))

    pattern = {"a": SubClassOf, "sub_class": P.var("x", has_parent), "super_class": enzyme}
    for bindings, _ in engine.find(pattern):
        print(f"  {bindings['x']} is an enzyme with asserted parents")


def demo_sequences():
    """Demonstrate unordered sequence matching inside equivalences."""
    section("Sequences")

    engine = QueryEngine(build_store())
    pattern = {
        "a": EquivalentClasses,
        "class_expressions": [
            "?defined",
            {"a": ObjectIntersectionOf, "operands": [
                "?genus",
                {"a": ObjectSomeValuesFrom, "property": part_of, "filler": "?whole"},
            ]},
        ],
    }
    for bindings, _ in engine.find(pattern):
        print(f"  {bindings['defined']} = {bindings['genus']} and part_of some {bindings['whole']}")


def demo_find_and_replace():
    """Demonstrate batched rewriting with a trace."""
    section("Find and Replace")

    store = build_store()
    engine = QueryEngine(store)
    pattern = {
        "a": SubClassOf,
        "sub_class": "?part",
        "super_class": {"a": ObjectSomeValuesFrom, "property": part_of, "filler": "?whole"},
    }

    def invert(bindings, store):
        return SubClassOf(bindings["whole"], ObjectSomeValuesFrom(has_part, bindings["part"]))

    added, trace = engine.find_and_replace(pattern, invert, trace=True)
    print(trace.format("records"))
    print(f"\n  {trace.summary()}")
    print(f"  store now holds {len(store)} records, {len(added)} of them new")


def demo_delete():
    """Demonstrate deleting records by returning an empty list."""
    section("Deleting Records")

    store = build_store()
    engine = QueryEngine(store)
    before = len(store)
    engine.find_and_replace({"a": ObjectPropertyAssertion, "property": part_of},
                            lambda b, s: [])
    print(f"  {before} records -> {len(store)} records")


def main():
    configure_logging()
    demo_find()
    demo_conditions()
    demo_sequences()
    demo_find_and_replace()
    demo_delete()


if __name__ == "__main__":
    main()
