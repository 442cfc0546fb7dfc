"""
HTTP routes for the portfolio API.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from auth import AdminGate
from database import DocumentStore
from dependencies import (
    get_admin_gate,
    get_contacts_service,
    get_dispatcher,
    get_projects_service,
    get_store,
    require_admin,
)
from errors import StorageUnavailable
from notifications import NotificationDispatcher
from schemas import (
    Contact,
    ContactCreate,
    ContactReceipt,
    HealthResponse,
    Project,
    ProjectCreate,
    ProjectUpdate,
    SuccessResponse,
)
from services import ContactsService, ProjectsService

logger = logging.getLogger(__name__)

router = APIRouter()

# Projects

@router.get("/projects", response_model=List[Project])
async def list_projects(projects: ProjectsService = Depends(get_projects_service)):
    return await projects.list()


@router.get("/projects/{project_id}", response_model=Project)
async def get_project(project_id: str, projects: ProjectsService = Depends(get_projects_service)):
    return await projects.get(project_id)


@router.post(
    "/projects",
    response_model=Project,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def create_project(
    payload: ProjectCreate,
    projects: ProjectsService = Depends(get_projects_service),
):
    return await projects.create(
        payload.title,
        description=payload.description,
        url=payload.url,
        tags=payload.tags,
    )


@router.put(
    "/projects/{project_id}",
    response_model=Project,
    dependencies=[Depends(require_admin)],
)
async def update_project(
    project_id: str,
    payload: Optional[ProjectUpdate] = None,
    projects: ProjectsService = Depends(get_projects_service),
):
    # An empty body is an update with no changes.
    fields = payload.model_dump(exclude_unset=True) if payload is not None else {}
    return await projects.update(project_id, fields)


@router.delete(
    "/projects/{project_id}",
    response_model=SuccessResponse,
    dependencies=[Depends(require_admin)],
)
async def delete_project(project_id: str, projects: ProjectsService = Depends(get_projects_service)):
    await projects.remove(project_id)
    return SuccessResponse()

# Contacts

@router.post("/contact", response_model=ContactReceipt, status_code=201)
async def submit_contact(
    payload: ContactCreate,
    contacts: ContactsService = Depends(get_contacts_service),
):
    entry = await contacts.create(name=payload.name, email=payload.email, message=payload.message)
    return ContactReceipt(entry=entry)


@router.get(
    "/contacts",
    response_model=List[Contact],
    dependencies=[Depends(require_admin)],
)
async def list_contacts(contacts: ContactsService = Depends(get_contacts_service)):
    return await contacts.list()

# Diagnostics

@router.get("/health", response_model=HealthResponse)
async def health(
    store: DocumentStore = Depends(get_store),
    gate: AdminGate = Depends(get_admin_gate),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    storage = "ok"
    try:
        async with store.session():
            pass
    except StorageUnavailable as exc:
        logger.warning("Health check: %s", exc.message)
        storage = "unavailable"
    return HealthResponse(
        status="ok" if storage == "ok" else "degraded",
        storage=storage,
        backend=store.backend,
        admin_policy=gate.policy.value,
        notifications="enabled" if dispatcher.configured else "disabled",
    )
