"""
Document Schemas

Pydantic models for the two collections held in the document store and for
the request/response bodies of the API.

Each stored record model maps to one collection:
- Project -> "projects" collection
- Contact -> "contacts" collection
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List

# Stored records

class Project(BaseModel):
    """
    Projects collection schema
    Collection name: "projects"
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Opaque id assigned on creation")
    title: str = Field(..., description="Project title")
    description: str = Field("", description="Short description")
    url: str = Field("", description="External link")
    tags: List[str] = Field(default_factory=list, description="Tags in display order")


class Contact(BaseModel):
    """
    Contacts collection schema
    Collection name: "contacts"
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., description="Opaque id assigned on creation")
    name: str = Field("", description="Sender name")
    email: str = Field("", description="Sender email")
    message: str = Field(..., description="Message body")
    created_at: str = Field(..., alias="createdAt", description="ISO-8601 UTC creation time")

# Request bodies. Required fields are checked by the services so that a
# missing title or message is reported with a readable 400 error.

class ProjectCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    tags: Optional[List[str]] = None


class ProjectUpdate(BaseModel):
    """Partial project. Only keys present in the request body are applied."""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    tags: Optional[List[str]] = None


class ContactCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None

# Responses

class SuccessResponse(BaseModel):
    success: bool = True


class ContactReceipt(BaseModel):
    success: bool = True
    entry: Contact


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    storage: str
    backend: str
    admin_policy: str = Field(..., alias="adminPolicy")
    notifications: str
