"""In-memory snapshot of members and activities.

Every mutation is confirm-then-apply: the gateway is called first and the
snapshot changes only with the row the gateway hands back. Nothing is
written speculatively, so a failed call leaves the snapshot exactly as it
was. Concurrent writes to the same id are not serialized; whichever
response lands last decides the in-memory value.
"""
import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from family_planner.errors import NotFound, RemoteFailure
from family_planner.models import (
    Member, MemberCreate, MemberUpdate, Activity, ActivityCreate, ActivityUpdate,
)
from family_planner.repository import PersistenceGateway, Row, MEMBERS, ACTIVITIES

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=BaseModel)


def _optional(row: Row, key: str) -> Optional[Any]:
    # absent, null and "" all mean "not present"
    value = row.get(key)
    if value is None or value == "":
        return None
    return value


class EntityStore(Generic[E]):
    collection: str
    entity_model: Type[BaseModel]
    create_model: Type[BaseModel]
    update_model: Type[BaseModel]

    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway
        self._items: List[E] = []
        self.loading = False
        self.error: Optional[str] = None

    # --- reads ---

    def list(self) -> List[E]:
        """Current snapshot in load/creation order."""
        return list(self._items)

    def get(self, entity_id: str) -> Optional[E]:
        for item in self._items:
            if item.id == entity_id:
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)

    def _index_of(self, entity_id: str) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == entity_id:
                return index
        return None

    # --- row mapping ---

    def _from_row(self, row: Row) -> E:
        raise NotImplementedError

    def _parse_row(self, row: Row) -> E:
        try:
            return self._from_row(row)
        except (KeyError, ValueError, PydanticValidationError) as e:
            raise RemoteFailure(f"Malformed {self.collection} row: {e}") from e

    def _create_fields(self, payload: Union[BaseModel, Dict[str, Any]]) -> Row:
        if isinstance(payload, dict):
            payload = self.create_model.model_validate(payload)
        return payload.model_dump(mode="json", exclude_none=True)

    def _update_fields(self, changes: Union[BaseModel, Dict[str, Any]]) -> Row:
        if isinstance(changes, dict):
            changes = self.update_model.model_validate(changes)
        # only the keys the caller actually set go over the wire
        return changes.model_dump(mode="json", exclude_unset=True)

    async def _call_gateway(self, operation: str, *args):
        method = getattr(self.gateway, operation)
        try:
            return await method(self.collection, *args)
        except RemoteFailure:
            raise
        except Exception as e:
            logger.warning("%s on %s failed: %s", operation, self.collection, e)
            raise RemoteFailure(str(e) or f"{operation} on {self.collection} failed") from e

    # --- mutations ---

    async def load_all(self) -> bool:
        """Replace the snapshot with a fresh bulk fetch.

        Failures are recorded on ``error`` and leave the previous snapshot in
        place; they are not raised and not retried.
        """
        self.loading = True
        self.error = None
        try:
            rows = await self.gateway.fetch_all(self.collection)
            items = [self._from_row(row) for row in rows]
        except Exception as e:
            logger.exception("Error fetching %s", self.collection)
            self.error = str(e) or f"Failed to fetch {self.collection}"
            return False
        finally:
            self.loading = False
        self._items = items
        logger.debug("Loaded %d rows from %s", len(items), self.collection)
        return True

    async def create(self, payload: Union[BaseModel, Dict[str, Any]]) -> E:
        fields = self._create_fields(payload)
        row = await self._call_gateway("insert", fields)
        entity = self._parse_row(row)
        self._items.append(entity)
        return entity

    async def update(self, entity_id: str, changes: Union[BaseModel, Dict[str, Any]]) -> E:
        fields = self._update_fields(changes)
        row = await self._call_gateway("patch", entity_id, fields)
        entity = self._parse_row(row)
        index = self._index_of(entity_id)
        if index is None:
            raise NotFound(f"{self.collection} '{entity_id}' is not in the snapshot")
        self._items[index] = entity
        return entity

    async def delete(self, entity_id: str) -> None:
        await self._call_gateway("remove", entity_id)
        self._items = [item for item in self._items if item.id != entity_id]


class MemberStore(EntityStore[Member]):
    collection = MEMBERS
    entity_model = Member
    create_model = MemberCreate
    update_model = MemberUpdate

    def _from_row(self, row: Row) -> Member:
        return Member(
            id=row["id"],
            name=row["name"],
            role=row["role"],
            avatar=_optional(row, "avatar"),
            color=row.get("color") or "",
        )


class ActivityStore(EntityStore[Activity]):
    collection = ACTIVITIES
    entity_model = Activity
    create_model = ActivityCreate
    update_model = ActivityUpdate

    def _from_row(self, row: Row) -> Activity:
        return Activity(
            id=row["id"],
            title=row["title"],
            description=_optional(row, "description"),
            category=row["category"],
            start_time=row["start_time"],
            end_time=_optional(row, "end_time"),
            recurrence=row.get("recurrence") or "once",
            assigned_to=row.get("assigned_to") or [],
            assigned_children=row.get("assigned_children") or [],
            location=_optional(row, "location"),
            notes=_optional(row, "notes"),
            priority=row.get("priority") or "medium",
            completed=bool(row.get("completed", False)),
            created_by=_optional(row, "created_by"),
        )

    async def toggle_completion(self, activity_id: str) -> Optional[Activity]:
        """Flip ``completed``. An id missing from the snapshot is a no-op."""
        activity = self.get(activity_id)
        if activity is None:
            logger.debug("Toggle of unknown activity %s ignored", activity_id)
            return None
        return await self.update(activity_id, ActivityUpdate(completed=not activity.completed))
