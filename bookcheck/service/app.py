"""FastAPI application entrypoint for bookcheck service mode."""

from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path
from typing import Any, Callable, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..book import BookError, load_book
from ..checker import CheckReport, LinkChecker
from ..config import ConfigError, LinkcheckConfig, load_config


class CheckRequest(BaseModel):
    path: str
    follow_web_links: Optional[bool] = None


class FailureEntry(BaseModel):
    url: str
    chapter: str
    line: int
    kind: str
    reason: str
    message: str


class CheckResponse(BaseModel):
    status: str
    links: int
    failures: List[FailureEntry]


class HealthResponse(BaseModel):
    status: str


CheckerFactory = Callable[[LinkcheckConfig], LinkChecker]


def _default_checker(config: LinkcheckConfig) -> LinkChecker:
    return LinkChecker(config)


def create_app(checker_factory: CheckerFactory = _default_checker) -> FastAPI:
    """Create the FastAPI application exposing link checks."""

    app = FastAPI(title="Bookcheck Service", version="0.1.0")

    async def get_checker_factory() -> CheckerFactory:
        return checker_factory

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/check", response_model=CheckResponse)
    async def check_book(
        payload: CheckRequest,
        factory: CheckerFactory = Depends(get_checker_factory),
    ) -> CheckResponse:
        def _run_check() -> CheckReport:
            book_path = Path(payload.path)
            if not book_path.exists():
                raise FileNotFoundError(f"Book not found: {book_path}")
            config = load_config(book_path)
            linkcheck = config.linkcheck
            if payload.follow_web_links is not None:
                linkcheck = dataclasses.replace(
                    linkcheck, follow_web_links=payload.follow_web_links
                )
            book = load_book(config.root, config.src)
            return factory(linkcheck).check(book)

        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, _run_check)

        return CheckResponse(
            status="ok" if report.ok else "broken",
            links=len(report.links),
            failures=[FailureEntry(**failure.as_dict()) for failure in report.failures],
        )

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(BookError)
    async def book_error_handler(_: Any, exc: BookError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Serve :func:`create_app` with uvicorn until interrupted."""
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)
