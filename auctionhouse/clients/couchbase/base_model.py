import uuid
from datetime import datetime
from typing import Annotated, ClassVar, Generic, List, Optional, TypeVar

from couchbase.exceptions import DocumentNotFoundException
from pydantic import AfterValidator, BaseModel, ConfigDict

from auctionhouse.utils import timeutil

from .keyspace import Keyspace, get_keyspace

# Every timestamp is stored and handed back as UTC, whatever zone it came in with.
UtcDatetime = Annotated[datetime, AfterValidator(timeutil.to_utc)]


class BaseCouchbaseEntityData(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None


DataT = TypeVar("DataT", bound=BaseCouchbaseEntityData)
T = TypeVar("T", bound="BaseModelCouchbase")


class BaseModelCouchbase(BaseModel, Generic[DataT]):
    id: str
    data: DataT
    cas: Optional[int] = None

    _collection_name: ClassVar[str] = ""

    @classmethod
    def get_keyspace(cls) -> Keyspace:
        if not cls._collection_name:
            raise ValueError(f"_collection_name not set for {cls.__name__}")
        return get_keyspace(cls._collection_name)

    @classmethod
    def from_rows(cls: type[T], rows: list) -> List[T]:
        """Build entities from ``SELECT META().id, * FROM keyspace`` rows."""
        return [
            cls(id=row["id"], data=row[cls._collection_name])
            for row in rows if row.get(cls._collection_name)
        ]

    @classmethod
    async def get(cls: type[T], id: str) -> Optional[T]:
        try:
            collection = await cls.get_keyspace().get_collection()
            result = await collection.get(id)
            return cls(id=id, data=result.content_as[dict], cas=result.cas)
        except DocumentNotFoundException:
            return None

    @classmethod
    async def create(cls: type[T], data: DataT, key: Optional[str] = None) -> T:
        """Insert a new document. Raises DocumentExistsException if *key* is taken."""
        if key is None:
            key = str(uuid.uuid4())

        now = timeutil.utcnow()
        if data.created_at is None:
            data.created_at = now
        data.updated_at = now

        doc = data.model_dump(mode="json")
        result = await cls.get_keyspace().insert(key, doc)
        return cls(id=key, data=data, cas=result.cas)

    @classmethod
    async def create_or_update(cls: type[T], key: str, data: DataT) -> T:
        """Idempotently create or overwrite the document at a deterministic key."""
        now = timeutil.utcnow()
        if data.created_at is None:
            data.created_at = now
        data.updated_at = now

        doc = data.model_dump(mode="json")
        result = await cls.get_keyspace().upsert(key, doc)
        return cls(id=key, data=data, cas=result.cas)

    @classmethod
    async def update(cls: type[T], item: T) -> T:
        """Replace the stored document. When the item was read with a CAS value the
        write only succeeds if nobody else wrote in between (CASMismatchException)."""
        item.data.updated_at = timeutil.utcnow()
        doc = item.data.model_dump(mode="json")
        result = await cls.get_keyspace().replace(item.id, doc, cas=item.cas)
        item.cas = result.cas
        return item

    @classmethod
    async def delete(cls: type[T], id: str) -> bool:
        try:
            await cls.get_keyspace().remove(id)
            return True
        except DocumentNotFoundException:
            return False
