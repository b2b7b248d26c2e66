"""
Domain errors raised by the registry services.

Each error knows the HTTP status it maps to so the API layer can translate
it without a lookup table of its own.
"""

from typing import Optional


class RegistryError(Exception):
    """Base class for all registry service errors."""

    status_code = 500
    client_fault = False


class InvalidRangeError(RegistryError):
    """Raised when a version-range expression cannot be resolved."""

    status_code = 400
    client_fault = True

    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid version range '{expression}': {reason}")


class ManifestNotFoundError(RegistryError):
    """Raised when an archive carries no package manifest."""

    status_code = 400
    client_fault = True

    def __init__(self, filename: str, reason: Optional[str] = None) -> None:
        self.filename = filename
        super().__init__(reason or f"{filename} not found inside the zip.")


class ManifestParseError(RegistryError):
    """Raised when the manifest is oversized or not a UTF-8 JSON object."""

    status_code = 400
    client_fault = True


class MissingFieldError(RegistryError):
    """Raised when a required manifest field is absent."""

    status_code = 400
    client_fault = True

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"package.json is missing required field '{field}'")


class RepositoryUrlNotFoundError(RegistryError):
    """Raised when the manifest declares no repository URL."""

    status_code = 400
    client_fault = True


class InvalidRepositoryUrlError(RegistryError):
    """Raised when a repository URL does not point at a GitHub owner/repo."""

    status_code = 400
    client_fault = True

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Invalid GitHub repository URL: {url}")


class UpstreamFetchError(RegistryError):
    """Raised when the source host (or registry site) cannot be reached."""

    status_code = 502


class UpstreamParseError(RegistryError):
    """Raised when an upstream response does not have the expected shape."""

    status_code = 502


class DuplicatePackageError(RegistryError):
    """Raised when a package identity has already been ingested."""

    status_code = 409

    def __init__(self, metadata_id: str) -> None:
        self.metadata_id = metadata_id
        super().__init__("Package Exists Already")


class PackageNotFoundError(RegistryError):
    """Raised when a package id is unknown."""

    status_code = 404

    def __init__(self, metadata_id: str) -> None:
        self.metadata_id = metadata_id
        super().__init__(f"Package '{metadata_id}' does not exist.")


class PersistenceError(RegistryError):
    """Raised when a database or object-store write fails."""

    status_code = 500


class InvalidQueryError(RegistryError):
    """Raised when a search pattern cannot be compiled."""

    status_code = 400
    client_fault = True


class PackageMismatchError(RegistryError):
    """Raised when an update names a different package than the stored one."""

    status_code = 400
    client_fault = True
