import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException
from supabase import create_client, Client

from ..core.config import Config
from ..core.pagination import page_range


logger = logging.getLogger(__name__)

PROJECT_SELECT = """
    id,
    title,
    description,
    created_at,
    created_by,
    profiles ( username )
"""

TASK_SELECT = """
    id,
    title,
    description,
    due_date,
    priority,
    status,
    created_by,
    created_at,
    project_id,
    projects ( title ),
    profiles ( username ),
    tasks_assigned_users (
        user_id,
        profiles ( id, username )
    )
"""

# Inner join so only tasks with a matching assignee are returned
TASK_SELECT_BY_ASSIGNEE = TASK_SELECT.replace("tasks_assigned_users (", "tasks_assigned_users!inner (")


@dataclass
class TaskFilters:
    search: str = ""
    project_id: Optional[int] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None


def get_client() -> Client:
    return create_client(Config.SUPABASE_URL, Config.SUPABASE_SERVICE_KEY)


def get_anon_client() -> Client:
    return create_client(Config.SUPABASE_URL, Config.SUPABASE_ANON_KEY)


def _search_filter(search: str) -> Optional[str]:
    term = (search or "").strip()
    if not term:
        return None
    # Commas and parentheses delimit PostgREST or-filters
    term = term.replace(",", " ").replace("(", " ").replace(")", " ")
    return f"title.ilike.%{term}%,description.ilike.%{term}%"


def list_projects(search: str = "", page: int = 1, page_size: int = Config.PAGE_SIZE) -> Tuple[List[Dict[str, Any]], int]:
    start, end = page_range(page, page_size)
    try:
        supabase = get_client()
        query = (
            supabase
            .table('projects')
            .select(PROJECT_SELECT, count='exact')
            .order('created_at', desc=True)
            .range(start, end)
        )
        search_filter = _search_filter(search)
        if search_filter:
            query = query.or_(search_filter)

        result = query.execute()
        return result.data or [], result.count or 0
    except Exception as e:
        logger.error(f"Failed to list projects: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch projects")


def list_project_options() -> List[Dict[str, Any]]:
    try:
        supabase = get_client()
        result = supabase.table('projects').select('id, title').order('title').execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Failed to list project options: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch projects")


def get_project(project_id: int) -> Dict[str, Any]:
    try:
        supabase = get_client()
        result = supabase.table('projects').select(PROJECT_SELECT).eq('id', project_id).execute()
    except Exception as e:
        logger.error(f"Failed to fetch project {project_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch project")

    if not result.data:
        raise HTTPException(status_code=404, detail=f"Project not found: {project_id}")
    return result.data[0]


def create_project(fields: Dict[str, Any], created_by: str) -> Dict[str, Any]:
    try:
        supabase = get_client()
        result = supabase.table('projects').insert({**fields, 'created_by': created_by}).execute()
        return result.data[0] if result.data else {}
    except Exception as e:
        logger.error(f"Failed to create project: {e}")
        raise HTTPException(status_code=500, detail="Failed to create project")


def update_project(project_id: int, fields: Dict[str, Any]) -> List[Dict[str, Any]]:
    try:
        supabase = get_client()
        result = supabase.table('projects').update(fields).eq('id', project_id).execute()
        return result.data
    except Exception as e:
        logger.error(f"Failed to update project {project_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update project")


def delete_project(project_id: int) -> None:
    try:
        supabase = get_client()
        supabase.table('projects').delete().eq('id', project_id).execute()
    except Exception as e:
        logger.error(f"Failed to delete project {project_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete project")


def list_tasks(filters: TaskFilters, page: int = 1, page_size: int = Config.PAGE_SIZE) -> Tuple[List[Dict[str, Any]], int]:
    start, end = page_range(page, page_size)
    select = TASK_SELECT_BY_ASSIGNEE if filters.assigned_to else TASK_SELECT
    try:
        supabase = get_client()
        query = (
            supabase
            .table('tasks')
            .select(select, count='exact')
            .order('created_at', desc=True)
            .range(start, end)
        )
        search_filter = _search_filter(filters.search)
        if search_filter:
            query = query.or_(search_filter)
        if filters.project_id:
            query = query.eq('project_id', filters.project_id)
        if filters.status:
            query = query.eq('status', filters.status)
        if filters.priority:
            query = query.eq('priority', filters.priority)
        if filters.assigned_to:
            query = query.eq('tasks_assigned_users.user_id', filters.assigned_to)

        result = query.execute()
        return result.data or [], result.count or 0
    except Exception as e:
        logger.error(f"Failed to list tasks: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch tasks")


def get_task(task_id: int) -> Dict[str, Any]:
    try:
        supabase = get_client()
        result = supabase.table('tasks').select(TASK_SELECT).eq('id', task_id).execute()
    except Exception as e:
        logger.error(f"Failed to fetch task {task_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch task")

    if not result.data:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return result.data[0]


def create_task(fields: Dict[str, Any], created_by: str) -> Dict[str, Any]:
    try:
        supabase = get_client()
        result = supabase.table('tasks').insert({**fields, 'created_by': created_by}).execute()
    except Exception as e:
        logger.error(f"Failed to create task: {e}")
        raise HTTPException(status_code=500, detail="Failed to create task")

    if not result.data:
        raise HTTPException(status_code=500, detail="Task was not created")
    return result.data[0]


def update_task(task_id: int, fields: Dict[str, Any]) -> List[Dict[str, Any]]:
    try:
        supabase = get_client()
        result = supabase.table('tasks').update(fields).eq('id', task_id).execute()
        return result.data
    except Exception as e:
        logger.error(f"Failed to update task {task_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update task")


def assign_task(task_id: int, user_id: Optional[str]) -> None:
    """Replace the task's assignees with ``user_id`` (or none)."""
    try:
        supabase = get_client()
        supabase.table('tasks_assigned_users').delete().eq('task_id', task_id).execute()
        if user_id:
            supabase.table('tasks_assigned_users').insert({'task_id': task_id, 'user_id': user_id}).execute()
    except Exception as e:
        logger.error(f"Failed to assign task {task_id} to {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update task assignee")


def delete_task(task_id: int) -> None:
    try:
        supabase = get_client()
        supabase.table('tasks_assigned_users').delete().eq('task_id', task_id).execute()
    except Exception as e:
        logger.error(f"Failed to delete assignments for task {task_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete task assignments")

    try:
        supabase.table('tasks').delete().eq('id', task_id).execute()
    except Exception as e:
        logger.error(f"Failed to delete task {task_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete task")


def list_profiles() -> List[Dict[str, Any]]:
    try:
        supabase = get_client()
        result = supabase.table('profiles').select('id, username').execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Failed to list profiles: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch users")


def get_profile(user_id: str) -> Optional[Dict[str, Any]]:
    try:
        supabase = get_client()
        result = supabase.table('profiles').select('id, username, role').eq('id', user_id).execute()
        return result.data[0] if result.data else None
    except Exception as e:
        logger.error(f"Failed to fetch profile for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch profile")


def upsert_profile(user_id: str, username: str, role: str) -> Dict[str, Any]:
    try:
        supabase = get_client()
        result = supabase.table('profiles').upsert({
            'id': user_id,
            'username': username,
            'role': role,
            'updated_at': datetime.now(timezone.utc).isoformat(),
        }).execute()
        return result.data[0] if result.data else {}
    except Exception as e:
        logger.error(f"Failed to update profile for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update profile")
