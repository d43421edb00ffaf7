from typing import Any, Mapping, Optional


ADMINISTRATOR_ROLE = 'Administrator'
TASK_MANAGER_ROLES = frozenset({'Project manager', ADMINISTRATOR_ROLE})


def can_modify_project(user_id: Optional[str], project: Mapping[str, Any]) -> bool:
    return bool(user_id) and project.get('created_by') == user_id


def can_modify_task(user_id: Optional[str], role: Optional[str], task: Mapping[str, Any]) -> bool:
    if not user_id:
        return False
    return task.get('created_by') == user_id or role in TASK_MANAGER_ROLES


def can_change_role(role: Optional[str]) -> bool:
    return role == ADMINISTRATOR_ROLE
