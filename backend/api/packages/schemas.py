"""
Package API request/response schemas.

Field names on the wire follow the registry API (PascalCase); Python code
uses the snake_case attribute names.
"""

from typing import Optional
from datetime import datetime

from pydantic import BaseModel, Field


class _WireModel(BaseModel):
    class Config:
        populate_by_name = True


class PackageQuery(_WireModel):
    """Name and version range to search for. Name "*" matches every package."""

    name: str = Field(..., alias="Name", min_length=1)
    version: str = Field(..., alias="Version", min_length=1, description="npm-style version range")


class PackageMetadataOut(_WireModel):
    name: str = Field(..., alias="Name")
    version: str = Field(..., alias="Version")
    id: str = Field(..., alias="ID")


class PackageDataIn(_WireModel):
    content: Optional[str] = Field(default=None, alias="Content", description="Base64 encoded zip")
    url: Optional[str] = Field(default=None, alias="URL")
    js_program: Optional[str] = Field(default=None, alias="JSProgram")


class PackageDataOut(_WireModel):
    content: Optional[str] = Field(default=None, alias="Content")
    url: Optional[str] = Field(default=None, alias="URL")
    js_program: Optional[str] = Field(default=None, alias="JSProgram")


class UploadPackageRequest(_WireModel):
    """Upload of a zipped package."""

    content: str = Field(..., alias="Content", min_length=1, description="Base64 encoded zip")
    js_program: Optional[str] = Field(default=None, alias="JSProgram")
    file_name: Optional[str] = Field(default=None, alias="FileName")


class PackageOut(_WireModel):
    metadata: PackageMetadataOut
    data: PackageDataOut


class UpdatePackageRequest(_WireModel):
    metadata: PackageMetadataOut
    data: PackageDataIn


class UpdatePackageResponse(_WireModel):
    data: PackageDataOut = Field(..., alias="Data")


class PackageRatingOut(_WireModel):
    bus_factor: float = Field(..., alias="BusFactor")
    correctness: float = Field(..., alias="Correctness")
    ramp_up: float = Field(..., alias="RampUp")
    responsive_maintainer: float = Field(..., alias="ResponsiveMaintainer")
    license_score: float = Field(..., alias="LicenseScore")
    good_pinning_practice: float = Field(..., alias="GoodPinningPractice")
    pull_request: float = Field(..., alias="PullRequest")
    net_score: float = Field(..., alias="NetScore")


class HistoryUserOut(_WireModel):
    name: str
    is_admin: bool = Field(..., alias="isAdmin")


class PackageHistoryEntryOut(_WireModel):
    user: Optional[HistoryUserOut] = Field(default=None, alias="User")
    date: datetime = Field(..., alias="Date")
    package_metadata: PackageMetadataOut = Field(..., alias="PackageMetadata")
    action: str = Field(..., alias="Action")


class RegexSearchRequest(_WireModel):
    regex: str = Field(..., alias="RegEx", min_length=1)
