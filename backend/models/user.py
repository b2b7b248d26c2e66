"""
User model - uploaders referenced by history entries.
"""

from pydantic import BaseModel, Field


class User(BaseModel):
    """Registry user. Managed elsewhere; the ingestion path only reads it."""

    id: int = Field(..., alias="_id")
    name: str = Field(..., description="Display name")
    is_admin: bool = Field(default=False)

    class Config:
        populate_by_name = True
