"""
Package API router.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Response

from api.packages import service
from api.packages.schemas import (
    PackageHistoryEntryOut,
    PackageMetadataOut,
    PackageOut,
    PackageQuery,
    PackageRatingOut,
    RegexSearchRequest,
    UpdatePackageRequest,
    UpdatePackageResponse,
    UploadPackageRequest,
)
from database import get_database, get_database_manager
from repositories.package_data import PackageDataRepository
from repositories.package_history import PackageHistoryRepository
from repositories.package_metadata import PackageMetadataRepository
from repositories.package_rating import PackageRatingRepository
from repositories.user import UserRepository
from services.archive_store import ArchiveStore
from services.github_client import GitHubApiClient
from services.ingestion import PackageIngestionService
from services.npm_client import NpmRegistryClient
from services.package_service import PackageService

router = APIRouter(tags=["packages"])


def get_archive_store() -> ArchiveStore:
    """Dependency injection for ArchiveStore."""
    return ArchiveStore(get_database_manager().archive_bucket())


def get_github_client() -> GitHubApiClient:
    """Dependency injection for GitHubApiClient."""
    return GitHubApiClient(npm_client=NpmRegistryClient())


def get_ingestion_service() -> PackageIngestionService:
    """Dependency injection for PackageIngestionService."""
    db = get_database()
    return PackageIngestionService(
        metadata_repo=PackageMetadataRepository(db),
        data_repo=PackageDataRepository(db),
        history_repo=PackageHistoryRepository(db),
        rating_repo=PackageRatingRepository(db),
        user_repo=UserRepository(db),
        archive_store=get_archive_store(),
        github_client=get_github_client(),
    )


def get_package_service() -> PackageService:
    """Dependency injection for PackageService."""
    db = get_database()
    return PackageService(
        metadata_repo=PackageMetadataRepository(db),
        data_repo=PackageDataRepository(db),
        history_repo=PackageHistoryRepository(db),
        rating_repo=PackageRatingRepository(db),
        user_repo=UserRepository(db),
        archive_store=get_archive_store(),
    )


@router.post("/packages", response_model=List[PackageMetadataOut])
async def list_packages(
    query: PackageQuery,
    response: Response,
    offset: int = Query(1, description="1-based page number; values below 1 mean page 1"),
    ingestion_service: PackageIngestionService = Depends(get_ingestion_service),
):
    """
    Query packages by name and npm-style version range, one page at a time.

    Name "*" matches every package. The page served is echoed in the
    ``offset`` response header.
    """
    page = max(1, offset)
    packages = await service.query_packages(query, page, ingestion_service)
    response.headers["offset"] = str(page)
    return packages


@router.post("/package", response_model=PackageOut, status_code=201)
async def upload_package(
    request: UploadPackageRequest,
    ingestion_service: PackageIngestionService = Depends(get_ingestion_service),
):
    """
    Upload a base64 encoded zip containing a package.json.

    Rating and archive storage are best effort; the upload succeeds once
    metadata and history are written.
    """
    return await service.upload_package(request, ingestion_service)


@router.post("/package/byRegEx", response_model=List[PackageMetadataOut])
async def search_packages_by_regex(
    request: RegexSearchRequest,
    package_service: PackageService = Depends(get_package_service),
):
    """Search package names with a regular expression."""
    return await service.search_packages_by_regex(request.regex, package_service)


@router.get("/package/byName/{name:path}", response_model=List[PackageHistoryEntryOut])
async def get_package_history(
    name: str,
    package_service: PackageService = Depends(get_package_service),
):
    """Return the history of every version of a package. Supports scoped names."""
    return await service.get_package_history(name, package_service)


@router.get("/package/{metadata_id}/rate", response_model=PackageRatingOut)
async def get_package_rating(
    metadata_id: str,
    package_service: PackageService = Depends(get_package_service),
):
    return await service.get_package_rating(metadata_id, package_service)


@router.get("/package/{metadata_id}", response_model=PackageOut)
async def download_package(
    metadata_id: str,
    package_service: PackageService = Depends(get_package_service),
):
    """Download a package: metadata plus base64 archive content."""
    return await service.download_package(metadata_id, package_service)


@router.put("/package/{metadata_id}", response_model=UpdatePackageResponse)
async def update_package(
    metadata_id: str,
    request: UpdatePackageRequest,
    package_service: PackageService = Depends(get_package_service),
):
    """
    Replace a package's data. The body's id, name and version must match
    the stored package.
    """
    return await service.update_package(metadata_id, request, package_service)
