"""
PackageRating repository implementation.
"""

from pymongo.database import Database

from models.package_rating import PackageRating
from repositories.base import BaseRepository


class PackageRatingRepository(BaseRepository[PackageRating]):
    """
    Repository for PackageRating entities.

    The rating shares its _id with the metadata, so create() raises
    DuplicateKeyError when a package is rated twice.
    """

    def __init__(self, database: Database):
        super().__init__(database, "package_ratings", PackageRating)
