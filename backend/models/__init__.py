"""
Data models for the package registry.
"""

from .package_metadata import PackageMetadata
from .package_data import PackageData
from .package_history import HistoryAction, PackageHistoryEntry
from .package_rating import PackageRating
from .user import User

__all__ = [
    "PackageMetadata",
    "PackageData",
    "HistoryAction",
    "PackageHistoryEntry",
    "PackageRating",
    "User",
]
