"""FastAPI application serving QuantomDocs content and search."""

from __future__ import annotations

import asyncio
import logging
import secrets
from contextlib import asynccontextmanager, suppress
from typing import Any, AsyncIterator, Literal

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from quantomdocs.config import AppConfig
from quantomdocs.errors import ContentError, IndexBuildError
from quantomdocs.runtime import DocsRuntime, build_runtime

LOGGER = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class SavePayload(BaseModel):
    path: str
    content: str


class CreatePayload(BaseModel):
    type: Literal["file", "folder"]
    name: str
    folderPath: str = ""
    product: str | None = None
    content: str = ""


class RenamePayload(BaseModel):
    path: str
    newName: str


class MovePayload(BaseModel):
    sourcePath: str
    targetPath: str = ""
    product: str | None = None


class DuplicatePayload(BaseModel):
    path: str


def get_runtime(request: Request) -> DocsRuntime:
    return request.app.state.runtime


async def require_editor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Accept requests carrying the externally issued editor token."""
    expected = request.app.state.runtime.config.editor_token
    if not expected:
        raise HTTPException(status_code=503, detail="Editor access is not configured")
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Access token required")
    if not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(status_code=401, detail="Invalid access token")
    return credentials.credentials


async def _sweep_cache(runtime: DocsRuntime) -> None:
    period = max(runtime.config.cache_check_period, 1.0)
    while True:
        await asyncio.sleep(period)
        runtime.cache.sweep()


docs_router = APIRouter(prefix="/api/docs")
search_router = APIRouter(prefix="/api/search")
files_router = APIRouter(prefix="/api/files", dependencies=[Depends(require_editor)])


@docs_router.get("/{product}/tree")
async def get_product_tree(product: str, runtime: DocsRuntime = Depends(get_runtime)) -> dict[str, Any]:
    tree = await asyncio.to_thread(runtime.content.get_tree, product)
    return tree.to_dict()


@docs_router.get("/{product}/{url_path:path}")
async def get_file_content(
    product: str, url_path: str, runtime: DocsRuntime = Depends(get_runtime)
) -> dict[str, Any]:
    result = await asyncio.to_thread(runtime.content.get_content_by_path, product, url_path)
    return {
        "html": result.html,
        "rawContent": result.raw_content,
        "fileType": result.file_type,
        "path": result.path,
        "size": result.size,
        "lastModified": result.last_modified.isoformat(),
        "degraded": result.degraded,
    }


@search_router.get("")
async def search_docs(
    q: str | None = None,
    product: str | None = None,
    limit: int | None = None,
    runtime: DocsRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    if q is None:
        raise HTTPException(status_code=400, detail="Search query required")
    limit = max(1, min(limit or runtime.config.search_limit, 100))
    # Scoring is CPU bound; keep the event loop free for other requests.
    results = await asyncio.to_thread(runtime.searcher.search, q, product=product or None, limit=limit)
    return {"query": q, "results": [result.to_dict() for result in results], "count": len(results)}


@search_router.get("/stats")
async def search_stats(runtime: DocsRuntime = Depends(get_runtime)) -> dict[str, Any]:
    return runtime.indexer.stats().to_dict()


@search_router.post("/rebuild", dependencies=[Depends(require_editor)])
async def rebuild_index(runtime: DocsRuntime = Depends(get_runtime)) -> dict[str, Any]:
    count = await asyncio.to_thread(runtime.indexer.build_full)
    runtime.cache.invalidate_all()
    return {"success": True, "message": "Search index rebuilt successfully", "documentsIndexed": count}


@files_router.get("/tree")
async def get_file_tree(
    product: str | None = None, runtime: DocsRuntime = Depends(get_runtime)
) -> dict[str, Any]:
    entries = await asyncio.to_thread(runtime.content.get_file_tree, product or None)
    return {"tree": [entry.to_dict() for entry in entries]}


@files_router.get("/content")
async def read_file_content(filePath: str, runtime: DocsRuntime = Depends(get_runtime)) -> dict[str, Any]:
    raw = await asyncio.to_thread(runtime.content.get_raw_content, filePath)
    return {
        "content": raw.content,
        "fileType": raw.file_type,
        "path": raw.path,
        "size": raw.size,
        "modified": raw.modified.isoformat(),
    }


@files_router.post("/save")
async def save_file(payload: SavePayload, runtime: DocsRuntime = Depends(get_runtime)) -> dict[str, Any]:
    result = await asyncio.to_thread(runtime.content.save_content, payload.path, payload.content)
    return {"success": result.success, "message": "File saved successfully", "path": result.path}


@files_router.post("/create")
async def create_file_or_folder(
    payload: CreatePayload, runtime: DocsRuntime = Depends(get_runtime)
) -> dict[str, Any]:
    result = await asyncio.to_thread(
        runtime.content.create_entry,
        payload.type,
        payload.name,
        folder_path=payload.folderPath,
        product=payload.product,
        content=payload.content,
    )
    label = "Folder" if payload.type == "folder" else "File"
    return {"success": result.success, "message": f"{label} created successfully", "path": result.path}


@files_router.delete("")
async def delete_file_or_folder(filePath: str, runtime: DocsRuntime = Depends(get_runtime)) -> dict[str, Any]:
    result = await asyncio.to_thread(runtime.content.delete_entry, filePath)
    return {"success": result.success, "message": "Deleted successfully", "path": result.path}


@files_router.post("/rename")
async def rename_file_or_folder(
    payload: RenamePayload, runtime: DocsRuntime = Depends(get_runtime)
) -> dict[str, Any]:
    result = await asyncio.to_thread(runtime.content.rename_entry, payload.path, payload.newName)
    return {"success": result.success, "message": "Renamed successfully", "newPath": result.path}


@files_router.post("/move")
async def move_file_or_folder(payload: MovePayload, runtime: DocsRuntime = Depends(get_runtime)) -> dict[str, Any]:
    result = await asyncio.to_thread(
        runtime.content.move_entry,
        payload.sourcePath,
        payload.targetPath,
        product=payload.product,
    )
    return {"success": result.success, "message": "Moved successfully", "newPath": result.path}


@files_router.post("/duplicate")
async def duplicate_file_or_folder(
    payload: DuplicatePayload, runtime: DocsRuntime = Depends(get_runtime)
) -> dict[str, Any]:
    result = await asyncio.to_thread(runtime.content.duplicate_entry, payload.path)
    return {"success": result.success, "message": "Duplicated successfully", "newPath": result.path}


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the web application around one :class:`DocsRuntime`."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
        runtime = build_runtime(config)
        app.state.runtime = runtime
        runtime.build_index()
        sweeper = asyncio.create_task(_sweep_cache(runtime))
        try:
            yield
        finally:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper
            runtime.close()

    app = FastAPI(title="QuantomDocs", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ContentError)
    async def content_error_handler(request: Request, exc: ContentError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "kind": exc.kind.value})

    @app.exception_handler(IndexBuildError)
    async def index_error_handler(request: Request, exc: IndexBuildError) -> JSONResponse:
        LOGGER.error("Index build failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc), "kind": "index_build"})

    @app.get("/api/products")
    async def list_products(runtime: DocsRuntime = Depends(get_runtime)) -> dict[str, Any]:
        return {"products": runtime.content.list_products()}

    app.include_router(docs_router)
    app.include_router(search_router)
    app.include_router(files_router)
    return app


app = create_app()
