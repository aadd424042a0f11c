from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging

from pydantic import BaseModel, ConfigDict, PrivateAttr

from ..errors import MetadataError, UnboundRecordError
from ..filters import Group, Leaf

log = logging.getLogger("tablequery.records")


class Result(BaseModel):
    """
    A row returned by the database. Every selected column is an attribute.
    """

    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_row(cls, data: Dict[str, Any], table=None) -> "Result":
        return cls.model_validate(data)

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    def has_property(self, name: str) -> bool:
        return name in self.as_dict()

    def value_of(self, name: str, default: Any = None) -> Any:
        return getattr(self, name, default)


class Lifecycle:
    """
    Optional hooks for records. A Record subclass opts in by inheriting this
    class; `save` and `delete` call the hooks around the statement.
    """

    def before_saving(self) -> None:
        pass

    def after_saving(self, success: bool) -> None:
        pass

    def before_deleting(self) -> None:
        pass

    def after_deleting(self, success: bool) -> None:
        pass


class Record(Result):
    """
    A row bound to the Table it came from, able to save and delete itself.

    Records hydrated by a query are bound and not new. Records created with
    `Table.new(...)` are bound and new; `save` inserts them.
    """

    _table: Any = PrivateAttr(default=None)
    _new: bool = PrivateAttr(default=True)

    @classmethod
    def from_row(cls, data: Dict[str, Any], table=None) -> "Record":
        record = cls.model_validate(data)
        record._table = table
        record._new = False
        return record

    @property
    def table(self):
        return self._table

    @property
    def is_new(self) -> bool:
        return self._new

    def bind(self, table) -> "Record":
        self._table = table
        return self

    def _require_table(self):
        if self._table is None:
            raise UnboundRecordError(f"{type(self).__name__} is not bound to a table")
        return self._table

    def primary_key_values(self) -> Optional[Dict[str, Any]]:
        """Primary key column -> value, or None when the table has no primary key."""
        columns: List[str] = self._require_table().primary_key()
        if not columns:
            return None
        return {c: getattr(self, c, None) for c in columns}

    def _self_query(self):
        from ..query import quote_identifier

        table = self._require_table()
        key = self.primary_key_values()
        if key is None:
            raise MetadataError(f"Table {table.name} has no primary key")
        leaves = [Leaf(f"{quote_identifier(c)} = ?", (v,)) for c, v in key.items()]
        node = leaves[0] if len(leaves) == 1 else Group.of(*leaves)
        return table.query(node)

    def save(self) -> bool:
        """
        Insert the record when it is new, otherwise update the row matching
        its primary key. Returns whether a row was written.
        """
        table = self._require_table()
        if isinstance(self, Lifecycle):
            self.before_saving()

        if self._new:
            key = table.primary_key()
            success = table.insert(self.model_dump(exclude_unset=True)) > 0
            if success and len(key) == 1:
                insert_id = table.database.last_insert_id()
                if insert_id:
                    setattr(self, key[0], insert_id)
            self._new = not success
        else:
            success = self._self_query().update(self.as_dict()) > 0

        if isinstance(self, Lifecycle):
            self.after_saving(success)
        log.debug("save %s on %s: %s", type(self).__name__, table.name, success)
        return success

    def delete(self) -> bool:
        if self._new:
            return False
        query = self._self_query()
        if isinstance(self, Lifecycle):
            self.before_deleting()
        success = query.delete() > 0
        if isinstance(self, Lifecycle):
            self.after_deleting(success)
        return success


__all__ = ["Result", "Lifecycle", "Record"]
