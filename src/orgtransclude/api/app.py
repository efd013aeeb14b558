"""FastAPI application exposing transclusion resolution as a local JSON API."""

import secrets
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .. import __version__
from ..core.directive import extract_transclusions
from ..render import directive_to_dict, result_to_dict


def create_app(runtime: Any, token: str | None = None, enable_cors: bool = False) -> FastAPI:
    """
    Create FastAPI application with runtime injected.

    Each document path gets its own session (and so its own cache) for the
    lifetime of the app.

    Args:
        runtime: Runtime instance
        token: Bearer token for authentication (None to disable auth)
        enable_cors: Enable CORS middleware
    """
    app = FastAPI(
        title="orgtransclude API",
        description="Local JSON API for org-mode transclusion",
        version=__version__,
        docs_url="/docs" if token is None else None,
        redoc_url="/redoc" if token is None else None,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if token:
        security_scheme = HTTPBearer(auto_error=False)

        async def verify_token(
            credentials: HTTPAuthorizationCredentials | None = Security(security_scheme),  # noqa: B008
        ) -> None:
            """Verify bearer token."""
            if credentials is None or credentials.credentials != token:
                raise HTTPException(status_code=401, detail="Invalid or missing token")
    else:

        async def verify_token() -> None:
            """No-op when auth is disabled."""
            return None

    sessions: dict[Path, Any] = {}
    root = runtime.config.source.root.resolve()

    def session_for(path: str) -> Any:
        p = (root / path).resolve()
        if not p.is_relative_to(root):
            raise HTTPException(status_code=403, detail=f"Path {path} is outside the root")
        if not p.is_file():
            raise HTTPException(status_code=404, detail=f"Document {path} not found")
        if p not in sessions:
            sessions[p] = runtime.open(p)
        return sessions[p]

    @app.get("/health")
    async def health(auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "version": __version__, "open_documents": len(sessions)}

    @app.get("/transclusions")
    async def transclusions(
        path: str = Query(..., description="Document path relative to the root"),
        auth: None = Depends(verify_token),
    ) -> list[dict[str, Any]]:
        """List the directives of a document in document order."""
        session = session_for(path)
        tree = await session.load()
        return [directive_to_dict(d) for d in extract_transclusions(tree)]

    @app.get("/resolve")
    async def resolve(
        path: str = Query(..., description="Document path relative to the root"),
        index: int | None = Query(None, description="Only the N-th directive", ge=0),
        auth: None = Depends(verify_token),
    ) -> list[dict[str, Any]]:
        """Resolve the directives of a document."""
        session = session_for(path)
        directives = extract_transclusions(await session.load())
        if index is not None:
            if index >= len(directives):
                raise HTTPException(status_code=404, detail=f"No directive #{index}")
            directives = [directives[index]]

        out = []
        for directive in directives:
            result = await session.resolver.resolve(directive)
            out.append({"directive": directive_to_dict(directive), "result": result_to_dict(result)})
        return out

    @app.get("/render")
    async def render(
        path: str = Query(..., description="Document path relative to the root"),
        headers: bool = Query(False, description="Label each transclusion"),
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Document text with every directive expanded."""
        session = session_for(path)
        return {"path": path, "text": await session.render(headers=headers)}

    @app.post("/cache/invalidate")
    async def invalidate(
        path: str = Query(..., description="Document whose cache to invalidate"),
        source_id: str | None = Query(None, description="Source id; all entries when omitted"),
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Invalidate one source in a document's cache, or clear it."""
        session = session_for(path)
        if source_id is None:
            removed = len(session.cache)
            session.cache.clear()
        else:
            removed = session.cache.invalidate(source_id)
        return {"removed": removed}

    return app


def generate_token() -> str:
    """Generate a random bearer token."""
    return secrets.token_urlsafe(32)
