"""
Package API service layer - maps HTTP payloads onto the registry services
and domain errors onto HTTP status codes.
"""

import base64
import binascii
from typing import List, Optional

from fastapi import HTTPException

from api.packages.schemas import (
    HistoryUserOut,
    PackageDataOut,
    PackageHistoryEntryOut,
    PackageMetadataOut,
    PackageOut,
    PackageQuery,
    PackageRatingOut,
    UpdatePackageRequest,
    UpdatePackageResponse,
    UploadPackageRequest,
)
from models.package_data import PackageData
from models.package_metadata import PackageMetadata
from services.errors import RegistryError
from services.ingestion import PackageIngestionService
from services.package_service import PackageService


def to_http_exception(error: RegistryError) -> HTTPException:
    """Translate a domain error using its own status classification."""
    if not error.client_fault:
        print(f"[api.packages] ERROR: {type(error).__name__}: {error}")
    return HTTPException(status_code=error.status_code, detail=str(error))


def _decode_content(content: str) -> bytes:
    try:
        return base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Content is not valid base64.")


def _metadata_out(metadata: PackageMetadata) -> PackageMetadataOut:
    return PackageMetadataOut(name=metadata.name, version=metadata.version, id=metadata.id)


def _data_out(data: Optional[PackageData], content: Optional[bytes] = None) -> PackageDataOut:
    return PackageDataOut(
        content=base64.b64encode(content).decode("ascii") if content is not None else None,
        url=data.url if data else None,
        js_program=data.js_program if data else None,
    )


async def query_packages(
    query: PackageQuery,
    offset: int,
    ingestion_service: PackageIngestionService,
) -> List[PackageMetadataOut]:
    """
    Resolve one page of a name/version-range query.

    Raises:
        HTTPException: 400 for an invalid range, 500 if the query failed or timed out
    """
    try:
        packages = await ingestion_service.find_packages(query.name, query.version, offset)
    except RegistryError as e:
        raise to_http_exception(e)
    if packages is None:
        raise HTTPException(status_code=500, detail="Package query failed or timed out.")
    return [_metadata_out(metadata) for metadata in packages]


async def upload_package(
    request: UploadPackageRequest,
    ingestion_service: PackageIngestionService,
) -> PackageOut:
    """
    Ingest an uploaded zip.

    Raises:
        HTTPException: 400 malformed upload, 409 duplicate, 500 persistence failure
    """
    archive_bytes = _decode_content(request.content)
    try:
        report = await ingestion_service.ingest_package(
            archive_bytes,
            file_name=request.file_name,
            js_program=request.js_program,
        )
    except RegistryError as e:
        raise to_http_exception(e)
    except Exception as e:
        print(f"[api.packages] ERROR: Error in POST /package: {e!r}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

    return PackageOut(
        metadata=_metadata_out(report.metadata),
        data=PackageDataOut(
            content=request.content,
            url=report.repository_url,
            js_program=request.js_program,
        ),
    )


async def download_package(metadata_id: str, package_service: PackageService) -> PackageOut:
    try:
        download = await package_service.download_package(metadata_id)
    except RegistryError as e:
        raise to_http_exception(e)
    return PackageOut(
        metadata=_metadata_out(download.metadata),
        data=_data_out(download.data, download.content),
    )


async def update_package(
    metadata_id: str,
    request: UpdatePackageRequest,
    package_service: PackageService,
) -> UpdatePackageResponse:
    """
    Replace a package's data.

    Raises:
        HTTPException: 400 id/name/version mismatch, 404 unknown package
    """
    if request.metadata.id != metadata_id:
        raise HTTPException(
            status_code=400,
            detail="Package ID in the URL does not match the ID in the request body.",
        )
    content = _decode_content(request.data.content) if request.data.content else None
    try:
        data = await package_service.update_package(
            metadata_id,
            name=request.metadata.name,
            version=request.metadata.version,
            url=request.data.url,
            js_program=request.data.js_program,
            content=content,
        )
    except RegistryError as e:
        raise to_http_exception(e)
    return UpdatePackageResponse(data=_data_out(data))


async def get_package_rating(metadata_id: str, package_service: PackageService) -> PackageRatingOut:
    try:
        rating = await package_service.get_rating(metadata_id)
    except RegistryError as e:
        raise to_http_exception(e)
    return PackageRatingOut(**rating.model_dump(exclude={"id"}))


async def get_package_history(name: str, package_service: PackageService) -> List[PackageHistoryEntryOut]:
    try:
        records = await package_service.get_history(name)
    except RegistryError as e:
        raise to_http_exception(e)
    if not records:
        raise HTTPException(status_code=404, detail=f"No such package '{name}'.")
    return [
        PackageHistoryEntryOut(
            user=HistoryUserOut(name=record.user.name, is_admin=record.user.is_admin)
            if record.user
            else None,
            date=record.entry.date,
            package_metadata=_metadata_out(record.metadata),
            action=record.entry.action,
        )
        for record in records
    ]


async def search_packages_by_regex(pattern: str, package_service: PackageService) -> List[PackageMetadataOut]:
    try:
        packages = await package_service.search_by_regex(pattern)
    except RegistryError as e:
        raise to_http_exception(e)
    if not packages:
        raise HTTPException(status_code=404, detail="No package found under this regex.")
    return [_metadata_out(metadata) for metadata in packages]
