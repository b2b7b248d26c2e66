"""
Base repository with common CRUD operations.
"""

import asyncio
from typing import Any, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pymongo.collection import Collection
from pymongo.database import Database

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """
    Base repository providing common CRUD operations.

    Type parameter T should be a Pydantic model whose ``id`` field is aliased
    to ``_id``. Ids are whatever the model carries (UUID strings, ints);
    models without an id get one assigned by MongoDB.
    """

    def __init__(self, database: Database, collection_name: str, model_class: Type[T]):
        """
        Initialize repository.

        Args:
            database: MongoDB database instance
            collection_name: Name of the collection
            model_class: Pydantic model class for this repository
        """
        self.database = database
        self.collection: Collection = database[collection_name]
        self.model_class = model_class

    async def create(self, entity: T) -> T:
        """
        Create a new document.

        Args:
            entity: Entity to create

        Returns:
            Created entity with _id populated
        """
        entity_dict = entity.model_dump(by_alias=True)
        if entity_dict.get("_id") is None:
            entity_dict.pop("_id", None)
        result = await asyncio.to_thread(self.collection.insert_one, entity_dict)
        entity_dict["_id"] = result.inserted_id
        return self.model_class(**entity_dict)

    async def find_by_id(self, entity_id: Any) -> Optional[T]:
        """
        Find document by ID.

        Args:
            entity_id: Document ID

        Returns:
            Entity if found, None otherwise
        """
        doc = await asyncio.to_thread(self.collection.find_one, {"_id": entity_id})
        return self.model_class(**doc) if doc else None

    async def find_many(
        self,
        filter_dict: dict,
        skip: int = 0,
        limit: int = 100,
        sort: Optional[List[tuple]] = None,
        max_time_ms: Optional[int] = None,
    ) -> List[T]:
        """
        Find multiple documents matching filter.

        Args:
            filter_dict: MongoDB filter query
            skip: Number of documents to skip
            limit: Maximum number of documents to return
            sort: List of (field, direction) tuples for sorting
            max_time_ms: Server-side time limit; pymongo raises ExecutionTimeout past it

        Returns:
            List of entities
        """
        def _find():
            cursor = self.collection.find(filter_dict).skip(skip).limit(limit)
            if sort:
                cursor = cursor.sort(sort)
            if max_time_ms:
                cursor = cursor.max_time_ms(max_time_ms)
            return [self.model_class(**doc) for doc in cursor]

        return await asyncio.to_thread(_find)

    async def update(self, entity_id: Any, update_dict: dict) -> Optional[T]:
        """
        Update document by ID.

        Args:
            entity_id: Document ID
            update_dict: Fields to update (uses $set operator)

        Returns:
            Updated entity if found, None otherwise
        """
        def _update():
            return self.collection.find_one_and_update(
                {"_id": entity_id},
                {"$set": update_dict},
                return_document=True,
            )

        result = await asyncio.to_thread(_update)
        return self.model_class(**result) if result else None

    async def exists(self, filter_dict: dict) -> bool:
        """
        Check if document exists matching filter.

        Args:
            filter_dict: MongoDB filter query

        Returns:
            True if exists, False otherwise
        """
        count = await asyncio.to_thread(self.collection.count_documents, filter_dict, limit=1)
        return count > 0
