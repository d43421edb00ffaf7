"""Form state and validation for entity drafts.

A ``FormState`` holds the in-progress values of one create or edit form along
with the validation errors from the last ``validate()`` call. It performs no
I/O; the HTTP layer builds one per request and hands ``values`` to the
Supabase service once the draft validates.
"""

from typing import Any, Dict, Generic, Mapping, Optional, Sequence, Tuple, TypeVar

from .validation import FIELD_LABELS, ValidationErrors, validate_required_fields


T = TypeVar('T', bound=Mapping[str, Any])

TASK_DEFAULTS: Dict[str, Any] = {
    'title': '',
    'description': '',
    'due_date': '',
    'priority': 'MEDIUM',
    'status': 'TO DO',
    'project_id': '',
    'assigned_user': '',
}
TASK_REQUIRED: Tuple[str, ...] = ('title', 'description', 'project_id', 'due_date')

PROJECT_DEFAULTS: Dict[str, Any] = {
    'title': '',
    'description': '',
}
PROJECT_REQUIRED: Tuple[str, ...] = ('title',)

PROFILE_DEFAULTS: Dict[str, Any] = {
    'username': '',
    'role': 'User',
}
PROFILE_REQUIRED: Tuple[str, ...] = ('username',)
PROFILE_LABELS: Dict[str, str] = {**FIELD_LABELS, 'username': 'Name', 'role': 'Role'}


class FormState(Generic[T]):
    """Draft values plus required-field validation for a single form session.

    ``required_fields`` must name keys of ``initial_values``. ``labels`` maps
    field names to display names used in error messages; the shared
    ``FIELD_LABELS`` table is used when omitted.
    """

    def __init__(
        self,
        initial_values: T,
        required_fields: Sequence[str],
        labels: Optional[Mapping[str, str]] = None,
    ):
        unknown = [field for field in required_fields if field not in initial_values]
        if unknown:
            raise ValueError(f"Required fields not present in initial values: {', '.join(unknown)}")

        self._initial: Dict[str, Any] = dict(initial_values)
        self._values: Dict[str, Any] = dict(initial_values)
        self._errors: ValidationErrors = {}
        self.required_fields: Tuple[str, ...] = tuple(required_fields)
        self.labels: Mapping[str, str] = FIELD_LABELS if labels is None else dict(labels)

    @classmethod
    def create(
        cls,
        initial_values: T,
        required_fields: Sequence[str],
        labels: Optional[Mapping[str, str]] = None,
    ) -> 'FormState[T]':
        return cls(initial_values, required_fields, labels)

    @property
    def values(self) -> Dict[str, Any]:
        return dict(self._values)

    @property
    def errors(self) -> ValidationErrors:
        return dict(self._errors)

    @property
    def is_clean(self) -> bool:
        return not self._errors

    def get(self, field: str) -> Any:
        return self._values[field]

    def set_field(self, field: str, value: Any) -> None:
        if field not in self._values:
            raise KeyError(field)
        self._values[field] = value

    def update(self, values: Mapping[str, Any]) -> None:
        """Apply ``set_field`` for every known key in ``values``; others are ignored."""
        for field, value in values.items():
            if field in self._values:
                self._values[field] = value

    def validate(self) -> bool:
        self._errors = validate_required_fields(self._values, self.required_fields, self.labels)
        return not self._errors

    def reset(self, new_values: Optional[T] = None) -> None:
        source = self._initial if new_values is None else new_values
        if set(source) != set(self._initial):
            raise ValueError("Reset values must have the same fields as the form")
        self._values = dict(source)
        self._errors = {}

    def __repr__(self) -> str:
        return f"FormState(values={self._values!r}, errors={self._errors!r})"


def task_form() -> FormState:
    return FormState(TASK_DEFAULTS, TASK_REQUIRED)


def project_form() -> FormState:
    return FormState(PROJECT_DEFAULTS, PROJECT_REQUIRED)


def profile_form() -> FormState:
    return FormState(PROFILE_DEFAULTS, PROFILE_REQUIRED, PROFILE_LABELS)


def _text(value: Any) -> str:
    return '' if value is None else str(value)


def task_values_from_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Draft values for editing an existing task row."""
    assignees = row.get('tasks_assigned_users') or []
    first_profile = (assignees[0] or {}).get('profiles') if assignees else None
    return {
        'title': _text(row.get('title')),
        'description': _text(row.get('description')),
        'due_date': _text(row.get('due_date')),
        'priority': row.get('priority') or 'MEDIUM',
        'status': row.get('status') or 'TO DO',
        'project_id': str(row['project_id']) if row.get('project_id') else '',
        'assigned_user': (first_profile or {}).get('id') or '',
    }


def project_values_from_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        'title': _text(row.get('title')),
        'description': _text(row.get('description')),
    }


def task_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Column values for the ``tasks`` table from a validated task draft.

    ``assigned_user`` is not a column; it is stored through the assignment join.
    """
    project_id = _text(values.get('project_id')).strip()
    return {
        'title': _text(values.get('title')).strip(),
        'description': _text(values.get('description')).strip(),
        'due_date': _text(values.get('due_date')).strip() or None,
        'priority': values.get('priority') or 'MEDIUM',
        'status': values.get('status') or 'TO DO',
        'project_id': int(project_id) if project_id else None,
    }


def project_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        'title': _text(values.get('title')).strip(),
        'description': _text(values.get('description')).strip(),
    }
