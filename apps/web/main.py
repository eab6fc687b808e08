"""FastAPI web application for Locksmith."""

from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from locksmith.dependencies import ResolvedGraph
from locksmith.errors import LocksmithError
from locksmith.lockfile import is_lock_file_current, load_lock_file, serialize_lock_file
from locksmith.manifest import parse_project
from locksmith.restore import build_provider_chain, resolve

app = FastAPI(
    title="Locksmith",
    description="Resolve project dependencies into reproducible lock files",
    version="0.1.0",
)


class ResolveRequest(BaseModel):
    """Request model for resolving a project against a feed snapshot."""
    manifest: str
    feed: dict[str, dict[str, Optional[dict[str, Optional[str]]]]] = {}
    assemblies: dict[str, str] = {}
    timeout: Optional[float] = None


class LibraryModel(BaseModel):
    name: str
    version: str
    type: str
    dependencies: list[str]


class ResolveResponse(BaseModel):
    """Response model for a resolution."""
    project: str
    lock_file: str
    libraries: list[LibraryModel]
    warnings: list[str]


class ValidateRequest(BaseModel):
    """Request model for validating a lock file."""
    content: str
    manifest: Optional[str] = None


class ValidateResponse(BaseModel):
    valid: bool
    reason: Optional[str] = None
    current: Optional[bool] = None
    libraries: list[LibraryModel] = []


def _library_models(graph: ResolvedGraph) -> list[LibraryModel]:
    return [
        LibraryModel(
            name=library.identity.name,
            version=str(library.identity.version),
            type=library.provider_kind.value,
            dependencies=[str(d) for d in library.dependencies],
        )
        for library in graph
    ]


@app.get("/")
async def home():
    """Describe the available endpoints."""
    return {
        "name": "Locksmith",
        "endpoints": ["/api/resolve", "/api/lock/validate"],
    }


@app.post("/api/resolve", response_model=ResolveResponse)
async def resolve_dependencies(request: ResolveRequest):
    """Resolve a project.json against the feed snapshot in the request."""
    try:
        if not request.manifest.strip():
            raise HTTPException(status_code=400, detail="No manifest provided")

        manifest = parse_project(request.manifest)
        providers = build_provider_chain(feed_index=request.feed, assemblies=request.assemblies)
        outcome = await resolve(manifest, providers, timeout=request.timeout)

        return ResolveResponse(
            project=str(outcome.graph.root),
            lock_file=serialize_lock_file(outcome.graph),
            libraries=_library_models(outcome.graph),
            warnings=[str(w) for w in outcome.warnings],
        )

    except HTTPException:
        # Re-raise HTTP exceptions (don't convert to 500)
        raise
    except LocksmithError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error resolving dependencies: {str(e)}")


@app.post("/api/lock/validate", response_model=ValidateResponse)
async def validate_lock_file(request: ValidateRequest):
    """Check a lock file's shape and, given the project, whether it is current."""
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="No content provided")

    result = load_lock_file(request.content)
    if not result.is_valid:
        return ValidateResponse(valid=False, reason=result.reason)

    current = None
    if request.manifest:
        try:
            current = is_lock_file_current(result.graph, parse_project(request.manifest))
        except LocksmithError as e:
            raise HTTPException(status_code=400, detail=f"Invalid manifest: {e}")

    return ValidateResponse(
        valid=True,
        current=current,
        libraries=_library_models(result.graph),
    )
