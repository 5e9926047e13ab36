"""Tables (`v3/table/...`)."""

from __future__ import annotations

import json
from typing import Any, Sequence

from treasuredata.adapters.services.base import BaseService, compact, require, seg
from treasuredata.core.domain.models import Table, TableCreateResponse, TableListResponse
from treasuredata.core.errors import InvalidArgumentError

TABLE_TYPES = ("log", "item")


def schema_to_text(schema: str | Sequence[Sequence[str]] | None) -> str | None:
    """Accept a schema as JSON text or as `[[name, type, alias?], ...]`."""

    if schema is None or isinstance(schema, str):
        return schema
    return json.dumps([list(col) for col in schema], separators=(",", ":"))


class TablesService(BaseService):
    def list(self, database: str) -> list[Table]:
        database = require("database", database)
        resp = self._transport.request_json("GET", f"v3/table/list/{seg(database)}", into=TableListResponse)
        if resp is None:
            return []
        for table in resp.tables:
            if not table.database:
                table.database = resp.database or database
        return resp.tables

    def get(self, database: str, table: str) -> Table:
        database = require("database", database)
        table = require("table", table)
        return self._transport.request_json(
            "GET", f"v3/table/show/{seg(database)}/{seg(table)}", into=Table
        )

    def create(self, database: str, table: str, table_type: str = "log") -> TableCreateResponse:
        database = require("database", database)
        table = require("table", table)
        table_type = table_type or "log"
        if table_type not in TABLE_TYPES:
            raise InvalidArgumentError("type", table_type, "must be 'log' or 'item'")
        return self._transport.request_json(
            "POST",
            f"v3/table/create/{seg(database)}/{seg(table)}/{seg(table_type)}",
            into=TableCreateResponse,
        )

    def delete(self, database: str, table: str) -> None:
        database = require("database", database)
        table = require("table", table)
        self._transport.request("POST", f"v3/table/delete/{seg(database)}/{seg(table)}")

    def swap(self, database: str, table1: str, table2: str) -> None:
        """Swap the contents of two tables in the same database."""

        database = require("database", database)
        table1 = require("table1", table1)
        table2 = require("table2", table2)
        self._transport.request("POST", f"v3/table/swap/{seg(database)}/{seg(table1)}/{seg(table2)}")

    def rename(self, database: str, old_name: str, new_name: str) -> None:
        database = require("database", database)
        old_name = require("old_name", old_name)
        new_name = require("new_name", new_name)
        self._transport.request("POST", f"v3/table/rename/{seg(database)}/{seg(old_name)}/{seg(new_name)}")

    def update(
        self,
        database: str,
        table: str,
        *,
        schema: str | Sequence[Sequence[str]] | None = None,
        expire_days: int | None = None,
    ) -> None:
        """Update the schema and/or retention of a table."""

        database = require("database", database)
        table = require("table", table)
        if expire_days is not None and expire_days < 0:
            raise InvalidArgumentError("expire_days", expire_days, "cannot be negative")
        body: dict[str, Any] = compact(schema=schema_to_text(schema), expire_days=expire_days)
        self._transport.request("POST", f"v3/table/update/{seg(database)}/{seg(table)}", body=body)
