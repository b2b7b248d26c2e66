"""
PackageData model - the mutable payload of a package.
"""

from typing import Optional

from pydantic import BaseModel, Field


class PackageData(BaseModel):
    """
    Everything about a package that the update flow may replace.
    Keyed by the metadata id; the archive bytes live in the archive store.
    """

    id: str = Field(..., alias="_id", description="PackageMetadata reference")
    url: Optional[str] = Field(default=None, description="Declared source repository URL")
    js_program: Optional[str] = Field(default=None, description="Audit program shipped with the upload")
    archive_key: Optional[str] = Field(default=None, description="Object key (original file name)")
    archive_id: Optional[str] = Field(
        default=None, description="Archive store receipt, None until the upload is stored"
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "_id": "0b7e5c1e-3f7a-4f2e-9d0a-6f1d2b3c4d5e",
                "url": "https://github.com/jashkenas/underscore",
                "js_program": None,
                "archive_key": "underscore-1.13.6.zip",
                "archive_id": "65a1f0c2e4b0a1b2c3d4e5f6",
            }
        }
