"""Query submission (`v3/job/issue/{type}/{database}`)."""

from __future__ import annotations

from treasuredata.adapters.services.base import BaseService, require, seg
from treasuredata.core.domain.models import IssueQueryOptions, IssueQueryResponse, QueryType
from treasuredata.core.errors import InvalidArgumentError


class QueriesService(BaseService):
    def issue(
        self,
        query_type: QueryType | str,
        database: str,
        options: IssueQueryOptions | str,
        *,
        timeout: float | None = None,
    ) -> IssueQueryResponse:
        """Submit a query job.

        `options` may be a plain SQL string for the common case.
        """

        try:
            query_type = QueryType(getattr(query_type, "value", query_type))
        except ValueError:
            raise InvalidArgumentError("type", query_type, "must be one of: hive, trino, presto") from None
        database = require("database", database)
        if isinstance(options, str):
            options = IssueQueryOptions(query=require("query", options))

        return self._transport.request_json(
            "POST",
            f"v3/job/issue/{query_type.value}/{seg(database)}",
            body=options,
            into=IssueQueryResponse,
            timeout=timeout,
        )
