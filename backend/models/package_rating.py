"""
PackageRating model - stored trustworthiness scores.
"""

from pydantic import BaseModel, Field


class PackageRating(BaseModel):
    """
    Seven sub-scores plus the weighted net score, one document per package.
    Shares its _id with the metadata so a second rating for the same package
    is rejected by the unique index on _id.
    """

    id: str = Field(..., alias="_id", description="PackageMetadata reference")
    bus_factor: float = Field(..., ge=0, le=1)
    correctness: float = Field(..., ge=0, le=1)
    ramp_up: float = Field(..., ge=0, le=1)
    responsive_maintainer: float = Field(..., ge=0, le=1)
    license_score: float = Field(..., ge=0, le=1)
    good_pinning_practice: float = Field(..., ge=0, le=1)
    pull_request: float = Field(..., ge=0, le=1)
    net_score: float = Field(..., ge=0, le=1)

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "_id": "0b7e5c1e-3f7a-4f2e-9d0a-6f1d2b3c4d5e",
                "bus_factor": 0.4,
                "correctness": 0.83,
                "ramp_up": 0.72,
                "responsive_maintainer": 0.65,
                "license_score": 1.0,
                "good_pinning_practice": 0.5,
                "pull_request": 0.61,
                "net_score": 0.655,
            }
        }
