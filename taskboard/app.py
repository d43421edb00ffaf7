import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Form, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .core.config import Config
from .core.forms import (
    FormState,
    profile_form,
    project_form,
    project_payload,
    project_values_from_row,
    task_form,
    task_payload,
    task_values_from_row,
)
from .core.middleware import ALLOWED_METHODS, global_exception_handler, log_requests
from .core.pagination import page_response
from .core.permissions import can_change_role, can_modify_project, can_modify_task
from .core.validation import (
    PRIORITIES,
    ROLES,
    STATUSES,
    validate_choice,
    validate_email,
    validate_numeric_id,
    validate_user_id,
)
from .services import auth_service, supabase_service
from .services.auth_service import Session, get_current_session
from .services.supabase_service import TaskFilters

logger = logging.getLogger(__name__)


async def submitted_fields(request: Request) -> Dict[str, str]:
    """Form fields exactly as sent, so an empty value can clear a field.

    ``Form(None)`` parameters cannot tell an omitted field from an empty one;
    edit routes apply only the keys present here.
    """
    form_data = await request.form()
    return {name: value for name, value in form_data.items() if isinstance(value, str)}


def require_valid(form: FormState) -> None:
    """Raise a 422 carrying the error map and draft when ``form`` does not validate."""
    if not form.validate():
        logger.info(f"Form validation failed: {form.errors}")
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Validation failed",
                "errors": form.errors,
                "values": form.values,
            },
        )


def _check_task_fields(priority: Optional[str], status: Optional[str], project_id: Optional[str], assigned_user: Optional[str]) -> None:
    validate_choice("priority", priority, PRIORITIES)
    validate_choice("status", status, STATUSES)
    validate_numeric_id("project_id", project_id)
    validate_user_id("assigned_user", assigned_user)


# Initialize FastAPI
app = FastAPI(title="Task Board API")

# CORS setup
ALLOWED_ORIGINS = Config.allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=ALLOWED_METHODS,
    allow_headers=["*"],
)

@app.middleware("http")
async def _log_requests(request, call_next):
    return await log_requests(request, call_next)

@app.exception_handler(Exception)
async def _global_exception_handler(request, exc):
    return await global_exception_handler(request, exc)


@app.post("/auth/magic-link")
def magic_link(email: str = Form(None)):
    """Email a sign-in link to the given address."""
    address = validate_email(email)
    auth_service.send_magic_link(address)
    return {"status": "sent", "message": "Check your email for the login link!"}


@app.post("/auth/sign-out")
def sign_out(session: Session = Depends(get_current_session)):
    auth_service.sign_out(session.access_token)
    return {"status": "signed_out"}


@app.get("/account")
def get_account(session: Session = Depends(get_current_session)):
    profile = supabase_service.get_profile(session.user_id) or {}
    return {
        "id": session.user_id,
        "email": session.email,
        "username": profile.get("username"),
        "role": profile.get("role") or session.role,
    }


@app.put("/account")
def update_account(
    fields: Dict[str, str] = Depends(submitted_fields),
    session: Session = Depends(get_current_session),
):
    role = fields.get("role")
    validate_choice("role", role, ROLES)

    profile = supabase_service.get_profile(session.user_id) or {}
    current_role = profile.get("role") or session.role
    if role and role != current_role and not can_change_role(session.role):
        logger.warning(f"User {session.user_id} ({session.role}) tried to change role to {role}")
        raise HTTPException(status_code=403, detail="Only an Administrator can change roles")

    form = profile_form()
    form.reset({
        "username": profile.get("username") or "",
        "role": current_role,
    })
    form.update(fields)
    require_valid(form)

    values = form.values
    return supabase_service.upsert_profile(session.user_id, values["username"].strip(), values["role"] or current_role)


@app.get("/profiles")
def list_profiles(session: Session = Depends(get_current_session)):
    return supabase_service.list_profiles()


@app.get("/projects")
def list_projects(
    search: str = "",
    page: int = Query(1, ge=1),
    page_size: int = Query(Config.PAGE_SIZE, ge=1, le=100),
    session: Session = Depends(get_current_session),
):
    rows, total = supabase_service.list_projects(search, page, page_size)
    items = [{**row, "can_edit": can_modify_project(session.user_id, row)} for row in rows]
    return page_response(items, total, page, page_size)


@app.get("/projects/options")
def project_options(session: Session = Depends(get_current_session)):
    return supabase_service.list_project_options()


@app.post("/projects", status_code=201)
def create_project(
    title: str = Form(""),
    description: str = Form(""),
    session: Session = Depends(get_current_session),
):
    form = project_form()
    form.update({"title": title, "description": description})
    require_valid(form)
    return supabase_service.create_project(project_payload(form.values), session.user_id)


def _editable_project(project_id: int, session: Session) -> Dict[str, Any]:
    project = supabase_service.get_project(project_id)
    if not can_modify_project(session.user_id, project):
        raise HTTPException(status_code=403, detail="Only the project creator can modify this project")
    return project


@app.put("/projects/{project_id}")
def update_project(
    project_id: int,
    fields: Dict[str, str] = Depends(submitted_fields),
    session: Session = Depends(get_current_session),
):
    project = _editable_project(project_id, session)

    form = project_form()
    form.reset(project_values_from_row(project))
    form.update(fields)
    require_valid(form)

    supabase_service.update_project(project_id, project_payload(form.values))
    return {"status": "updated", "id": project_id}


@app.delete("/projects/{project_id}")
def delete_project(project_id: int, session: Session = Depends(get_current_session)):
    _editable_project(project_id, session)
    supabase_service.delete_project(project_id)
    return {"status": "deleted", "id": project_id}


@app.get("/tasks")
def list_tasks(
    search: str = "",
    project_id: Optional[int] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assigned_to: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(Config.PAGE_SIZE, ge=1, le=100),
    session: Session = Depends(get_current_session),
):
    validate_choice("status", status, STATUSES)
    validate_choice("priority", priority, PRIORITIES)
    validate_user_id("assigned_to", assigned_to)

    filters = TaskFilters(
        search=search,
        project_id=project_id,
        status=status,
        priority=priority,
        assigned_to=assigned_to,
    )
    rows, total = supabase_service.list_tasks(filters, page, page_size)
    items = [{**row, "can_edit": can_modify_task(session.user_id, session.role, row)} for row in rows]
    return page_response(items, total, page, page_size)


@app.post("/tasks", status_code=201)
def create_task(
    title: str = Form(""),
    description: str = Form(""),
    due_date: str = Form(""),
    priority: str = Form("MEDIUM"),
    status: str = Form("TO DO"),
    project_id: str = Form(""),
    assigned_user: str = Form(""),
    session: Session = Depends(get_current_session),
):
    _check_task_fields(priority, status, project_id, assigned_user)

    form = task_form()
    form.update({
        "title": title,
        "description": description,
        "due_date": due_date,
        "priority": priority,
        "status": status,
        "project_id": project_id,
        "assigned_user": assigned_user,
    })
    require_valid(form)

    values = form.values
    task = supabase_service.create_task(task_payload(values), session.user_id)
    supabase_service.assign_task(task["id"], values["assigned_user"] or None)
    return task


def _editable_task(task_id: int, session: Session) -> Dict[str, Any]:
    task = supabase_service.get_task(task_id)
    if not can_modify_task(session.user_id, session.role, task):
        raise HTTPException(status_code=403, detail="You are not allowed to modify this task")
    return task


@app.put("/tasks/{task_id}")
def update_task(
    task_id: int,
    fields: Dict[str, str] = Depends(submitted_fields),
    session: Session = Depends(get_current_session),
):
    task = _editable_task(task_id, session)
    _check_task_fields(
        fields.get("priority"),
        fields.get("status"),
        fields.get("project_id"),
        fields.get("assigned_user"),
    )

    form = task_form()
    form.reset(task_values_from_row(task))
    form.update(fields)
    require_valid(form)

    values = form.values
    supabase_service.update_task(task_id, task_payload(values))
    supabase_service.assign_task(task_id, values["assigned_user"] or None)
    return {"status": "updated", "id": task_id}


@app.delete("/tasks/{task_id}")
def delete_task(task_id: int, session: Session = Depends(get_current_session)):
    _editable_task(task_id, session)
    supabase_service.delete_task(task_id)
    return {"status": "deleted", "id": task_id}


@app.get("/health")
def health_check():
    """Basic health and dependency checks for the API."""
    health_start_time = time.time()

    try:
        # Check configuration and Supabase connection
        Config.validate()
        supabase = supabase_service.get_client()
        supabase.table('projects').select('id').limit(1).execute()

        health_duration = time.time() - health_start_time

        return {
            "status": "healthy",
            "service": "taskboard-api",
            "timestamp": datetime.now().isoformat(),
            "response_time_ms": round(health_duration * 1000, 2)
        }
    except Exception as e:
        health_duration = time.time() - health_start_time
        logger.error(f"Health check failed: {str(e)} - Duration: {health_duration:.1f}s")

        return {
            "status": "unhealthy",
            "service": "taskboard-api",
            "timestamp": datetime.now().isoformat(),
            "error": str(e),
            "response_time_ms": round(health_duration * 1000, 2)
        }


@app.get("/")
def root():
    """Return basic API information."""

    return {
        "service": "Task Board API",
        "version": "1.0",
        "endpoints": {
            "magic_link": "/auth/magic-link",
            "account": "/account",
            "projects": "/projects",
            "tasks": "/tasks",
            "health": "/health"
        },
        "timestamp": datetime.now().isoformat(),
        "description": "Projects and tasks backed by Supabase, with magic-link sign-in"
    }
