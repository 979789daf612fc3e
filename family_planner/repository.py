# repository.py
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import DateTime

from family_planner.db_models.family import FamilyMember as FamilyMemberORM, Activity as ActivityORM

logger = logging.getLogger(__name__)

MEMBERS = "family_members"
ACTIVITIES = "activities"

Row = Dict[str, Any]


class PersistenceGateway(ABC):
    """Remote store contract. Rows are plain dicts, timestamps are ISO-8601 strings."""

    @abstractmethod
    async def fetch_all(self, collection: str) -> List[Row]:
        pass

    @abstractmethod
    async def insert(self, collection: str, fields: Row) -> Row:
        pass

    @abstractmethod
    async def patch(self, collection: str, row_id: str, fields: Row) -> Row:
        pass

    @abstractmethod
    async def remove(self, collection: str, row_id: str) -> None:
        pass


class InMemoryGateway(PersistenceGateway):
    _id_prefixes = {MEMBERS: "mem_", ACTIVITIES: "act_"}

    def __init__(self, seed: Dict[str, List[Row]] = None):
        self._tables: Dict[str, Dict[str, Row]] = {MEMBERS: {}, ACTIVITIES: {}}
        for collection, rows in (seed or {}).items():
            for row in rows:
                self._table(collection)[row["id"]] = copy.deepcopy(row)

    def _table(self, collection: str) -> Dict[str, Row]:
        if collection not in self._tables:
            raise ValueError(f"Unknown collection '{collection}'")
        return self._tables[collection]

    async def fetch_all(self, collection: str) -> List[Row]:
        return [copy.deepcopy(row) for row in self._table(collection).values()]

    async def insert(self, collection: str, fields: Row) -> Row:
        table = self._table(collection)
        now = datetime.now(timezone.utc).isoformat()
        row = copy.deepcopy(fields)
        row["id"] = self._id_prefixes.get(collection, "") + str(uuid.uuid4())[:8]
        row["created_at"] = now
        if collection == ACTIVITIES:
            row["updated_at"] = now
        table[row["id"]] = row
        return copy.deepcopy(row)

    async def patch(self, collection: str, row_id: str, fields: Row) -> Row:
        table = self._table(collection)
        if row_id not in table:
            raise LookupError(f"Row '{row_id}' not found in {collection}")
        table[row_id].update(copy.deepcopy(fields))
        if collection == ACTIVITIES:
            table[row_id]["updated_at"] = datetime.now(timezone.utc).isoformat()
        return copy.deepcopy(table[row_id])

    async def remove(self, collection: str, row_id: str) -> None:
        self._table(collection).pop(row_id, None)


class SQLAlchemyGateway(PersistenceGateway):
    _models = {MEMBERS: FamilyMemberORM, ACTIVITIES: ActivityORM}
    _order_by = {MEMBERS: FamilyMemberORM.created_at, ACTIVITIES: ActivityORM.start_time}

    def __init__(self, db_session):
        self.db_session = db_session

    def _model(self, collection: str):
        if collection not in self._models:
            raise ValueError(f"Unknown collection '{collection}'")
        return self._models[collection]

    @staticmethod
    def _datetime_columns(model) -> set:
        return {column.name for column in model.__table__.columns if isinstance(column.type, DateTime)}

    def _to_row(self, model, record) -> Row:
        row = {}
        datetime_columns = self._datetime_columns(model)
        for column in model.__table__.columns:
            value = getattr(record, column.name)
            if column.name in datetime_columns and value is not None:
                # SQLite hands back naive values; they were stored as UTC
                if value.tzinfo is None:
                    value = value.replace(tzinfo=timezone.utc)
                value = value.isoformat()
            row[column.name] = value
        return row

    def _to_columns(self, model, fields: Row) -> Row:
        datetime_columns = self._datetime_columns(model)
        known = {column.name for column in model.__table__.columns}
        values = {}
        for name, value in fields.items():
            if name not in known:
                raise ValueError(f"Unknown column '{name}' for {model.__tablename__}")
            if name in datetime_columns and isinstance(value, str):
                value = datetime.fromisoformat(value)
            if isinstance(value, datetime):
                if value.tzinfo is None:
                    value = value.replace(tzinfo=timezone.utc)
                value = value.astimezone(timezone.utc)
            values[name] = value
        return values

    async def fetch_all(self, collection: str) -> List[Row]:
        model = self._model(collection)
        records = self.db_session.query(model).order_by(self._order_by[collection]).all()
        return [self._to_row(model, record) for record in records]

    async def insert(self, collection: str, fields: Row) -> Row:
        model = self._model(collection)
        record = model(**self._to_columns(model, fields))
        try:
            self.db_session.add(record)
            self.db_session.commit()
        except Exception:
            self.db_session.rollback()
            raise
        self.db_session.refresh(record)
        return self._to_row(model, record)

    async def patch(self, collection: str, row_id: str, fields: Row) -> Row:
        model = self._model(collection)
        record = self.db_session.query(model).filter(model.id == row_id).first()
        if record is None:
            raise LookupError(f"Row '{row_id}' not found in {collection}")
        for name, value in self._to_columns(model, fields).items():
            setattr(record, name, value)
        try:
            self.db_session.commit()
        except Exception:
            self.db_session.rollback()
            raise
        self.db_session.refresh(record)
        return self._to_row(model, record)

    async def remove(self, collection: str, row_id: str) -> None:
        model = self._model(collection)
        record = self.db_session.query(model).filter(model.id == row_id).first()
        if record is None:
            logger.debug("Remove of absent row %s in %s", row_id, collection)
            return
        try:
            self.db_session.delete(record)
            self.db_session.commit()
        except Exception:
            self.db_session.rollback()
            raise
