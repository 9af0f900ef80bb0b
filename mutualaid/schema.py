from typing import Any, Dict, List

from .records import ADDRESS, CAPABILITIES, COORDINATES, TASKS, Coordinates
from .task import TaskCatalog


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _is_str_list(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def _check_common(data: Dict[str, Any], errors: List[str]) -> None:
    if ADDRESS not in data:
        errors.append(f"Missing required field: {ADDRESS}")
    elif not _is_non_empty_str(data[ADDRESS]):
        errors.append(f"Field '{ADDRESS}' must be a non-empty string")

    raw = data.get(COORDINATES)
    if raw not in (None, "") and Coordinates.from_json(raw) is None:
        errors.append(f"Field '{COORDINATES}' must be JSON with numeric 'lat' and 'lng'")


def validate_request(data: Dict[str, Any], catalog: TaskCatalog) -> List[str]:
    """
    Returns a list of validation error messages for raw request fields.
    Empty list means valid. Unknown task labels are reported here even
    though RequestRecord.tasks() skips them.
    """
    errors: List[str] = []
    _check_common(data, errors)

    tasks = data.get(TASKS)
    if tasks is None:
        errors.append(f"Missing required field: {TASKS}")
    elif not _is_str_list(tasks) or not tasks:
        errors.append(f"Field '{TASKS}' must be a non-empty list of strings")
    else:
        for label in tasks:
            if catalog.lookup(label) is None:
                errors.append(f"Unknown task: {label}")
    return errors


def validate_volunteer(data: Dict[str, Any]) -> List[str]:
    """Returns a list of validation error messages for raw volunteer fields."""
    errors: List[str] = []
    _check_common(data, errors)

    capabilities = data.get(CAPABILITIES)
    if capabilities is not None and not _is_str_list(capabilities):
        errors.append(f"Field '{CAPABILITIES}' must be a list of strings if provided")
    return errors
