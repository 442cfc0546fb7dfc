"""
Dependency wiring for the FastAPI app.

Components are built once in `main.create_app` and kept on `app.state`.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Query, Request

from auth import AdminGate
from database import DocumentStore
from notifications import NotificationDispatcher
from services import ContactsService, ProjectsService


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_admin_gate(request: Request) -> AdminGate:
    return request.app.state.admin_gate


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_projects_service(request: Request) -> ProjectsService:
    return request.app.state.projects


def get_contacts_service(request: Request) -> ContactsService:
    return request.app.state.contacts


def require_admin(
    x_admin_key: Optional[str] = Header(None),
    admin_key: Optional[str] = Query(None, alias="adminKey"),
    gate: AdminGate = Depends(get_admin_gate),
) -> None:
    # The header wins; the query parameter is a fallback for plain links.
    gate.ensure(x_admin_key or admin_key)
