"""
Repository layer for database operations.
"""

from .package_metadata import PackageMetadataRepository
from .package_data import PackageDataRepository
from .package_history import PackageHistoryRepository
from .package_rating import PackageRatingRepository
from .user import UserRepository

__all__ = [
    "PackageMetadataRepository",
    "PackageDataRepository",
    "PackageHistoryRepository",
    "PackageRatingRepository",
    "UserRepository",
]
