from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Literal, Mapping, Sequence

from pydantic import BaseModel, Field

from .errors import InvalidDocument, StoreNotReady
from .interfaces import Document, Query
from .registry import StoreRegistry

logger = logging.getLogger(__name__)

Channel = Literal["db-get", "db-get-one", "db-insert", "db-update", "db-remove", "db-count", "db-set"]


class WriteOptions(BaseModel):
    multi: bool = False
    upsert: bool = False


class BridgeRequest(BaseModel):
    """
    One call across the bridge. Every request is self-contained: it names its
    collection and carries all of its arguments, so no state is kept between calls.
    """

    channel: Channel
    collection: str
    query: dict[str, Any] = Field(default_factory=dict)
    document: dict[str, Any] | None = None
    patch: dict[str, Any] | None = None
    documents: list[dict[str, Any]] | None = None
    options: WriteOptions = Field(default_factory=WriteOptions)


class BridgeServer:
    """
    Owning side of the bridge: validates requests and dispatches them to the
    registry. Calls are refused until the registry has been initialized.
    """

    def __init__(self, registry: StoreRegistry, *, log_requests: bool = False):
        self._registry = registry
        self._log_requests = log_requests
        self._handlers: dict[str, Callable[[BridgeRequest], Any]] = {
            "db-get": self._get,
            "db-get-one": self._get_one,
            "db-insert": self._insert,
            "db-update": self._update,
            "db-remove": self._remove,
            "db-count": self._count,
            "db-set": self._set,
        }

    @property
    def registry(self) -> StoreRegistry:
        return self._registry

    def handle(self, request: BridgeRequest | Mapping[str, Any]) -> Any:
        req = request if isinstance(request, BridgeRequest) else BridgeRequest.model_validate(request)
        if not self._registry.ready:
            raise StoreNotReady("store registry is not initialized yet")
        if self._log_requests:
            logger.debug("bridge %s %s query=%r", req.channel, req.collection, req.query)
        return self._handlers[req.channel](req)

    def _get(self, req: BridgeRequest) -> list[Document]:
        return self._registry.collection(req.collection).find(req.query)

    def _get_one(self, req: BridgeRequest) -> Document | None:
        return self._registry.collection(req.collection).find_one(req.query)

    def _insert(self, req: BridgeRequest) -> Document:
        if req.document is None:
            raise InvalidDocument("db-insert needs a document")
        return self._registry.collection(req.collection).insert(req.document)

    def _update(self, req: BridgeRequest) -> int:
        if req.patch is None:
            raise InvalidDocument("db-update needs a patch")
        return self._registry.collection(req.collection).update(
            req.query, req.patch, multi=req.options.multi, upsert=req.options.upsert
        )

    def _remove(self, req: BridgeRequest) -> int:
        return self._registry.collection(req.collection).remove(req.query, multi=req.options.multi)

    def _count(self, req: BridgeRequest) -> int:
        return self._registry.collection(req.collection).count(req.query)

    def _set(self, req: BridgeRequest) -> int:
        return self._registry.collection(req.collection).replace_all(req.documents or [])


def _options(options: WriteOptions | Mapping[str, Any] | None) -> WriteOptions:
    if options is None:
        return WriteOptions()
    if isinstance(options, WriteOptions):
        return options
    return WriteOptions.model_validate(dict(options))


class AsyncBridgeClient:
    """
    Caller side of the bridge.

    Each method builds a request and awaits the server on a worker thread
    (asyncio.to_thread), so file I/O never blocks the event loop. Errors from
    the store propagate to the awaiting caller unchanged.
    """

    def __init__(self, server: BridgeServer):
        self._server = server

    async def _call(self, request: BridgeRequest) -> Any:
        return await asyncio.to_thread(self._server.handle, request)

    async def get(self, collection: str, query: Query | None = None) -> list[Document]:
        return await self._call(BridgeRequest(channel="db-get", collection=collection, query=dict(query or {})))

    async def get_one(self, collection: str, query: Query | None = None) -> Document | None:
        return await self._call(BridgeRequest(channel="db-get-one", collection=collection, query=dict(query or {})))

    async def insert(self, collection: str, document: Mapping[str, Any]) -> Document:
        return await self._call(BridgeRequest(channel="db-insert", collection=collection, document=dict(document)))

    async def update(
        self,
        collection: str,
        query: Query,
        patch: Mapping[str, Any],
        options: WriteOptions | Mapping[str, Any] | None = None,
    ) -> int:
        return await self._call(
            BridgeRequest(
                channel="db-update",
                collection=collection,
                query=dict(query),
                patch=dict(patch),
                options=_options(options),
            )
        )

    async def remove(
        self,
        collection: str,
        query: Query | None = None,
        options: WriteOptions | Mapping[str, Any] | None = None,
    ) -> int:
        return await self._call(
            BridgeRequest(channel="db-remove", collection=collection, query=dict(query or {}), options=_options(options))
        )

    async def count(self, collection: str, query: Query | None = None) -> int:
        return await self._call(BridgeRequest(channel="db-count", collection=collection, query=dict(query or {})))

    async def set(self, collection: str, documents: Sequence[Mapping[str, Any]]) -> int:
        return await self._call(
            BridgeRequest(channel="db-set", collection=collection, documents=[dict(d) for d in documents])
        )
