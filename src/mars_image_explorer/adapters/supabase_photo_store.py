"""Supabase-backed photo and vote store."""

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from mars_image_explorer.domain.errors import (
    ConditionalCheckFailedError,
    InvalidCursorError,
    TransientError,
)
from mars_image_explorer.domain.photos import IMAGE_ID_ATTRIBUTE
from mars_image_explorer.domain.queries import (
    ConditionalPut,
    Increment,
    StoreQuery,
    StoreResponse,
)
from mars_image_explorer.services.queries import PhotoStore

_UNIQUE_VIOLATION = "23505"


@dataclass
class SupabasePhotoStore(PhotoStore):
    """Supabase implementation of the photo store.

    Pages use keyset pagination over ``(sort attribute, imageid)``. One extra
    row is requested to tell whether another page exists.
    """

    client: Client

    async def query(self, request: StoreQuery) -> StoreResponse:
        """Run an ordered query against one partition."""
        builder = (
            self.client.table(request.table)
            .select("*")
            .eq(request.partition_attribute, request.partition_value)
        )
        if request.sort_upper_bound is not None:
            builder = builder.lte(request.sort_attribute, request.sort_upper_bound)
        if request.exclusive_start_key is not None:
            builder = builder.or_(_after_key_filter(request))
        descending = not request.scan_forward
        builder = builder.order(request.sort_attribute, desc=descending).order(
            IMAGE_ID_ATTRIBUTE, desc=descending
        )
        if request.limit is not None:
            builder = builder.limit(request.limit + 1)

        response = await self._execute(builder, f"query on {request.table}")
        rows = list(response.data or [])
        last_key = None
        if request.limit is not None and len(rows) > request.limit:
            rows = rows[: request.limit]
            last_key = {
                request.sort_attribute: rows[-1].get(request.sort_attribute),
                IMAGE_ID_ATTRIBUTE: rows[-1][IMAGE_ID_ATTRIBUTE],
            }
        return StoreResponse(items=rows, last_evaluated_key=last_key)

    async def put_if_absent(self, request: ConditionalPut) -> None:
        """Insert a record; the table's primary key enforces the condition."""
        builder = self.client.table(request.table).insert(request.item)
        try:
            await asyncio.to_thread(builder.execute)
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise ConditionalCheckFailedError(
                    f"{request.condition_attribute} already exists in {request.table}"
                ) from exc
            raise TransientError(
                f"Supabase insert into {request.table} failed: {exc.message}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransientError(
                f"Supabase insert into {request.table} failed: {exc}"
            ) from exc

    async def increment(self, request: Increment) -> int:
        """Call the table's increment function and return the new value."""
        function = f"increment_{request.table}_{request.attribute}"
        params: dict[str, object] = {f"p_{k}": v for k, v in request.key.items()}
        params["p_delta"] = request.delta
        response = await self._execute(self.client.rpc(function, params), function)
        return _parse_counter(response.data, request.attribute)

    async def get_item(
        self, table: str, key: dict[str, object]
    ) -> dict[str, object] | None:
        """Return a single record by key, if present."""
        builder = self.client.table(table).select("*")
        for column, value in key.items():
            builder = builder.eq(column, value)
        response = await self._execute(builder.limit(1), f"lookup in {table}")
        if not response.data:
            return None
        return response.data[0]

    async def _execute(self, builder: Any, action: str) -> Any:
        try:
            return await asyncio.to_thread(builder.execute)
        except APIError as exc:
            raise TransientError(f"Supabase {action} failed: {exc.message}") from exc
        except httpx.HTTPError as exc:
            raise TransientError(f"Supabase {action} failed: {exc}") from exc


def _after_key_filter(request: StoreQuery) -> str:
    """Build a PostgREST ``or`` filter selecting rows past the start key."""
    key = request.exclusive_start_key or {}
    try:
        sort_value = _filter_value(key[request.sort_attribute])
        image_id = _filter_value(key[IMAGE_ID_ATTRIBUTE])
    except KeyError as exc:
        raise InvalidCursorError(f"Cursor is missing {exc}") from exc
    op = "gt" if request.scan_forward else "lt"
    column = request.sort_attribute
    return (
        f"{column}.{op}.{sort_value},"
        f"and({column}.eq.{sort_value},{IMAGE_ID_ATTRIBUTE}.{op}.{image_id})"
    )


def _filter_value(value: object) -> str:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _parse_counter(data: object, attribute: str) -> int:
    """Extract the updated counter from an RPC response."""
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict):
        data = data.get(attribute)
    if isinstance(data, int | float) and not isinstance(data, bool):
        return int(data)
    raise TransientError(f"Increment of {attribute} returned no value")
