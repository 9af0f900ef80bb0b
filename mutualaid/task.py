"""
Task taxonomy and volunteer matching.

Tasks are declared as data (TASK_DEFINITIONS) and resolved once into an
immutable TaskCatalog. The catalog is built at startup and handed to the
services that need it; nothing here holds module-level mutable state.

Matching rule for a task with capability prefixes P and predicates A:

- capability clause: P is empty, or any declared capability starts with
  any prefix in P
- predicate clause: A is empty, or any predicate accepts the volunteer

A volunteer matches when both clauses hold.
"""

from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .records import CAPABILITIES, PRIVATE_TRANSPORTATION

Predicate = Callable[[Any], bool]

CATCH_ALL_TASK = "Other"
LONELINESS_TASK = "Loneliness"

RUNNING_ERRANDS = "Running errands (picking up groceries"
PET_SITTING = "Pet-sitting"
EMOTIONAL_SUPPORT = "Emotional support (talking on the phone with someone who is worried"
CHECKING_IN = "Checking in on disabled/elderly relatives nearby"
DOCTORS_APPOINTMENTS = "Making doctors appointments"
MEDICATION_REFILLS = "Calling about medication refills"
MEDICAL_RESPONSE = "Medical response (fielding calls with medical questions)"
HEALTH_INSURANCE = "Signing people up for health insurance"


def has_private_transportation(volunteer) -> bool:
    """Volunteer declared a car (or other private transport) with license/insurance."""
    return bool(volunteer.get(PRIVATE_TRANSPORTATION))


PREDICATES: Mapping[str, Predicate] = MappingProxyType({
    "has_private_transportation": has_private_transportation,
})

# Order matters: it is the order tasks are listed and tried.
TASK_DEFINITIONS: Mapping[str, Mapping[str, Tuple[str, ...]]] = MappingProxyType({
    "Grocery shopping": {"prefixes": (RUNNING_ERRANDS,)},
    "Picking up a prescription": {"prefixes": (RUNNING_ERRANDS,)},
    "Transportation to/from a medical appointment": {
        "predicates": ("has_private_transportation",),
    },
    "Dog walking/petsitting": {"prefixes": (PET_SITTING,)},
    LONELINESS_TASK: {"prefixes": (EMOTIONAL_SUPPORT, CHECKING_IN)},
    "Accessing verified health information": {
        "prefixes": (
            DOCTORS_APPOINTMENTS,
            MEDICATION_REFILLS,
            MEDICAL_RESPONSE,
            HEALTH_INSURANCE,
        ),
    },
    # We don't know the nature of an "Other" request, so match most capabilities.
    CATCH_ALL_TASK: {
        "prefixes": (
            RUNNING_ERRANDS,
            "Transportation to/from a medical appointment",
            "Transportation",
            PET_SITTING,
            EMOTIONAL_SUPPORT,
            CHECKING_IN,
            DOCTORS_APPOINTMENTS,
            MEDICATION_REFILLS,
            MEDICAL_RESPONSE,
            HEALTH_INSURANCE,
            'Translation (please list language in "other" box)',
            "Translation (ASL)",
            "Meal preparation",
            "Childcare",
            "Childcare (experienced care for high/special needs children)",
            "Household cleaning (dishwashing",
            "Spare bed/comfortable couch",
            "De-escalation, conflict resolution, peace-building skills",
            'Religious/spiritual ministry (please list faith tradition in "other" box)',
        ),
    },
})


class Task:
    """
    Something a requester can ask for help with.

    Two tasks are equal when their identifiers are equal.
    """

    __slots__ = ("identifier", "prefixes", "predicate_names", "predicates")

    def __init__(
        self,
        identifier: str,
        prefixes: Iterable[str] = (),
        predicates: Optional[Mapping[str, Predicate]] = None,
    ):
        if not isinstance(identifier, str) or not identifier.strip():
            raise ValueError("Task identifier must be a non-empty string")
        if isinstance(prefixes, str):
            prefixes = (prefixes,)
        predicates = dict(predicates or {})
        object.__setattr__(self, "identifier", identifier)
        object.__setattr__(self, "prefixes", tuple(prefixes))
        object.__setattr__(self, "predicate_names", tuple(predicates))
        object.__setattr__(self, "predicates", tuple(predicates.values()))

    def __setattr__(self, name, value):
        raise AttributeError(f"Task is immutable; cannot set {name!r}")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return self.identifier == other.identifier

    def __hash__(self) -> int:
        return hash(self.identifier)

    def __repr__(self) -> str:
        return f"Task({self.identifier!r})"

    def matches(self, volunteer) -> bool:
        """True if `volunteer` (anything with .get(field)) can fulfill this task."""
        capabilities = volunteer.get(CAPABILITIES) or []
        if isinstance(capabilities, str):
            capabilities = [capabilities]
        capability_ok = not self.prefixes or any(
            capability.startswith(prefix)
            for prefix in self.prefixes
            for capability in capabilities
        )
        if not capability_ok:
            return False
        return not self.predicates or any(check(volunteer) for check in self.predicates)


class TaskCatalog:
    """Immutable set of tasks keyed by identifier."""

    def __init__(self, tasks: Iterable[Task], catch_all: Optional[str] = CATCH_ALL_TASK):
        by_id: Dict[str, Task] = {}
        for task in tasks:
            if task.identifier in by_id:
                raise ValueError(f"Duplicate task identifier: {task.identifier}")
            by_id[task.identifier] = task
        if catch_all is not None and catch_all not in by_id:
            raise ValueError(f"Catch-all task {catch_all!r} is not in the catalog")
        self._tasks = MappingProxyType(by_id)
        self._catch_all = catch_all

    @classmethod
    def from_definitions(
        cls,
        definitions: Mapping[str, Mapping[str, Iterable[str]]],
        predicates: Mapping[str, Predicate] = PREDICATES,
        catch_all: Optional[str] = CATCH_ALL_TASK,
    ) -> "TaskCatalog":
        """
        Build a catalog from declarative definitions.

        Args:
            definitions: identifier -> {"prefixes": [...], "predicates": [names]}
            predicates: Registry used to resolve predicate names
            catch_all: Identifier of the fallback task, or None

        Raises:
            ValueError: on an unknown predicate name or duplicate identifier
        """
        tasks = []
        for identifier, definition in definitions.items():
            resolved = {}
            for name in definition.get("predicates", ()):
                if name not in predicates:
                    raise ValueError(f"Unknown predicate {name!r} for task {identifier!r}")
                resolved[name] = predicates[name]
            tasks.append(Task(identifier, definition.get("prefixes", ()), resolved))
        return cls(tasks, catch_all=catch_all)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, identifier) -> bool:
        return identifier in self._tasks

    def tasks(self) -> List[Task]:
        return list(self._tasks.values())

    def lookup(self, raw_label: str) -> Optional[Task]:
        """Task for a raw "Tasks" label, or None when the label is unknown."""
        return self._tasks.get(raw_label)

    def get(self, identifier: str) -> Task:
        return self._tasks[identifier]

    @property
    def catch_all(self) -> Optional[Task]:
        return self._tasks[self._catch_all] if self._catch_all else None

    def matches(self, task: Task, volunteer) -> bool:
        return task.matches(volunteer)

    def tasks_for(self, volunteer) -> List[Task]:
        """Every task in the catalog the volunteer can fulfill."""
        return [task for task in self._tasks.values() if task.matches(volunteer)]


def build_default_catalog() -> TaskCatalog:
    """Catalog of the tasks the requests form offers."""
    return TaskCatalog.from_definitions(TASK_DEFINITIONS)
