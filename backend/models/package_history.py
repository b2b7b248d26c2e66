"""
PackageHistoryEntry model - append-only audit trail.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, Field

# Mongo hands back ObjectIds; the API only ever needs the hex string
PyObjectId = Annotated[str, BeforeValidator(str)]


class HistoryAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DOWNLOAD = "DOWNLOAD"
    RATE = "RATE"


class PackageHistoryEntry(BaseModel):
    """One action a user took on a package. Never updated or deleted."""

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    metadata_id: str = Field(..., description="PackageMetadata reference")
    user_id: int = Field(..., description="User who performed the action")
    action: HistoryAction = Field(..., description="What happened")
    date: datetime = Field(default_factory=datetime.utcnow, description="When it happened")

    class Config:
        populate_by_name = True
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "metadata_id": "0b7e5c1e-3f7a-4f2e-9d0a-6f1d2b3c4d5e",
                "user_id": 1,
                "action": "CREATE",
                "date": "2024-01-10T12:00:00Z",
            }
        }
