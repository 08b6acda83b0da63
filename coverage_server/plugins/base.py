"""
plugins/base.py - Plugin metadata.

A plugin module exposes a top-level ``plugin`` object that is an instance of
:class:`PluginMeta`, or a plain ``register(app)`` function. The loader in
``plugins/loader.py`` imports every module of a plugin directory and hands
the FastAPI app to whichever of the two it finds.

Minimal plugin example::

    from fastapi import APIRouter
    from coverage_server.plugins.base import PluginMeta

    router = APIRouter(tags=["my-feature"])

    @router.get("/my-feature/ping")
    async def ping():
        return {"ok": True}

    plugin = PluginMeta(
        name="my-feature",
        description="Does something useful.",
        router=router,
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import APIRouter, FastAPI


@dataclass
class PluginMeta:
    """Metadata + FastAPI router for a single plugin."""

    name: str
    """Unique kebab-case identifier (e.g. ``"coverage-diff"``)."""

    description: str
    """One-line human-readable description shown in logs and ``/api``."""

    router: APIRouter | None = None
    """Router mounted on the app by :meth:`register`."""

    tags: list[str] = field(default_factory=list)

    version: str = "1.0.0"

    def register(self, app: FastAPI, prefix: str = "") -> None:
        if self.router is not None:
            app.include_router(self.router, prefix=prefix)

    def __repr__(self) -> str:
        has_router = self.router is not None
        return (
            f"PluginMeta(name={self.name!r}, version={self.version!r}, "
            f"router={'yes' if has_router else 'no'})"
        )
