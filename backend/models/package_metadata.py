"""
PackageMetadata model - identity of an ingested package.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, Field


class PackageMetadata(BaseModel):
    """
    Name, version and durable id of an uploaded package.
    The id is generated at extraction time and every other record points at it.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    name: str = Field(..., description="Package name from package.json")
    version: str = Field(..., description="Package version from package.json")
    version_key: Optional[str] = Field(
        default=None, description="Zero-padded major.minor.patch used for range queries"
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "_id": "0b7e5c1e-3f7a-4f2e-9d0a-6f1d2b3c4d5e",
                "name": "underscore",
                "version": "1.13.6",
                "version_key": "000001.000013.000006",
            }
        }
