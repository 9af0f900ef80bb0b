"""
Tests for the task catalog and volunteer matching.
"""

import random

import pytest

from mutualaid.records import CAPABILITIES, PRIVATE_TRANSPORTATION, StoreRecord
from mutualaid.task import (
    CATCH_ALL_TASK,
    LONELINESS_TASK,
    TASK_DEFINITIONS,
    Task,
    TaskCatalog,
    build_default_catalog,
)


def volunteer(capabilities=None, **fields):
    data = dict(fields)
    if capabilities is not None:
        data[CAPABILITIES] = list(capabilities)
    return StoreRecord("recV", data)


class TestMatching:
    """Test the capability and predicate clauses."""

    def test_prefix_match_not_exact(self):
        """A capability only has to start with the prefix."""
        task = Task("Dog walking/petsitting", ["Pet-sitting"])
        assert task.matches(volunteer(["Pet-sitting (dogs and cats)"]))

    def test_prefix_must_be_at_start(self):
        task = Task("Dog walking/petsitting", ["Pet-sitting"])
        assert not task.matches(volunteer(["Happy to do Pet-sitting"]))

    def test_missing_capabilities_treated_as_empty(self):
        task = Task("Dog walking/petsitting", ["Pet-sitting"])
        assert not task.matches(volunteer())

    def test_no_requirements_matches_everyone(self):
        task = Task("Anything")
        assert task.matches(volunteer())
        assert task.matches(volunteer(["Meal preparation"]))

    def test_predicate_only_task(self):
        task = Task("Ride", predicates={"car": lambda v: bool(v.get("car"))})
        assert task.matches(volunteer(car=True))
        assert not task.matches(volunteer(car=False))

    def test_any_predicate_is_enough(self):
        task = Task("Ride", predicates={"no": lambda v: False, "yes": lambda v: True})
        assert task.matches(volunteer())

    def test_both_clauses_required(self):
        """With prefixes and predicates, both must hold."""
        task = Task("Ride and errands", ["Running errands"], {"car": lambda v: bool(v.get("car"))})
        assert task.matches(volunteer(["Running errands (groceries)"], car=True))
        assert not task.matches(volunteer(["Running errands (groceries)"], car=False))
        assert not task.matches(volunteer(["Meal preparation"], car=True))

    def test_matching_rule_over_random_inputs(self):
        """Compare against a direct restatement of the rule over random data."""
        rng = random.Random(1234)
        alphabet = "abc"

        def word():
            return "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 4)))

        for _ in range(500):
            prefixes = [word() for _ in range(rng.randint(0, 3))]
            capabilities = [word() for _ in range(rng.randint(0, 4))]
            flags = [rng.choice([True, False]) for _ in range(rng.randint(0, 2))]
            predicates = {f"p{i}": (lambda v, f=f: f) for i, f in enumerate(flags)}
            task = Task("T", prefixes, predicates)

            capability_clause = not prefixes or any(c.startswith(p) for c in capabilities for p in prefixes)
            predicate_clause = not flags or any(flags)
            expected = capability_clause and predicate_clause

            assert task.matches(volunteer(capabilities)) == expected


class TestTask:
    def test_equality_by_identifier(self):
        assert Task("Loneliness", ["a"]) == Task("Loneliness", ["b"])
        assert Task("Loneliness") != Task("Other")
        assert len({Task("Loneliness", ["a"]), Task("Loneliness")}) == 1

    def test_immutable(self):
        task = Task("Loneliness", ["a"])
        with pytest.raises(AttributeError):
            task.prefixes = ("b",)

    def test_empty_identifier_rejected(self):
        with pytest.raises(ValueError):
            Task("  ")

    def test_single_prefix_string(self):
        task = Task("Dog walking/petsitting", "Pet-sitting")
        assert task.prefixes == ("Pet-sitting",)
        assert task.matches(StoreRecord("recV", {CAPABILITIES: "Pet-sitting (dogs)"}))
        assert not task.matches(volunteer(["P"]))


class TestCatalog:
    """Test the declarative catalog."""

    def test_default_catalog_contents(self, catalog):
        identifiers = [t.identifier for t in catalog.tasks()]
        assert identifiers == list(TASK_DEFINITIONS)
        assert len(catalog) == 7
        assert catalog.catch_all.identifier == CATCH_ALL_TASK

    def test_lookup_known_label(self, catalog):
        task = catalog.lookup("Grocery shopping")
        assert task is not None
        assert task.prefixes == ("Running errands (picking up groceries",)

    def test_lookup_unknown_label_returns_none(self, catalog):
        assert catalog.lookup("Juggling") is None
        assert "Juggling" not in catalog

    def test_get_unknown_raises(self, catalog):
        with pytest.raises(KeyError):
            catalog.get("Juggling")

    def test_duplicate_identifier_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            TaskCatalog([Task("A"), Task("A")], catch_all=None)

    def test_unknown_predicate_rejected(self):
        with pytest.raises(ValueError, match="Unknown predicate"):
            TaskCatalog.from_definitions({"A": {"predicates": ["flies"]}}, catch_all=None)

    def test_missing_catch_all_rejected(self):
        with pytest.raises(ValueError):
            TaskCatalog([Task("A")])

    def test_each_build_is_independent(self):
        assert build_default_catalog() is not build_default_catalog()

    def test_medical_transportation_needs_a_car(self, catalog):
        task = catalog.get("Transportation to/from a medical appointment")
        assert catalog.matches(task, volunteer([], **{PRIVATE_TRANSPORTATION: ["Car"]}))
        assert not catalog.matches(task, volunteer(["Transportation"]))

    def test_loneliness(self, catalog):
        task = catalog.get(LONELINESS_TASK)
        assert catalog.matches(task, volunteer(["Checking in on disabled/elderly relatives nearby"]))
        assert catalog.matches(task, volunteer([
            "Emotional support (talking on the phone with someone who is worried, lonely)"
        ]))
        assert not catalog.matches(task, volunteer(["Childcare"]))

    def test_tasks_for(self, catalog):
        found = catalog.tasks_for(volunteer(["Running errands (picking up groceries, medicine)"]))
        assert [t.identifier for t in found] == [
            "Grocery shopping",
            "Picking up a prescription",
            CATCH_ALL_TASK,
        ]

    def test_catch_all_is_superset_of_prefix_tasks(self, catalog):
        """Anyone matching a prefix-defined task also matches the catch-all."""
        other = catalog.catch_all
        for task in catalog.tasks():
            if task == other or not task.prefixes:
                continue
            for prefix in task.prefixes:
                v = volunteer([prefix + ", and more"])
                assert task.matches(v)
                assert other.matches(v), f"{task.identifier} / {prefix}"

    def test_catch_all_does_not_cover_predicate_only_tasks(self, catalog):
        """A car alone is not a declared capability."""
        v = volunteer([], **{PRIVATE_TRANSPORTATION: ["Car"]})
        assert catalog.matches(catalog.get("Transportation to/from a medical appointment"), v)
        assert not catalog.matches(catalog.catch_all, v)
