"""Stateless tool routers exposing the time-series routines on plain JSON."""

from fastapi import APIRouter

from . import detect, downsample, overlay, stats, trend

tool_router = APIRouter(prefix="/tools", tags=["tools"])

for module in (downsample, detect, trend, stats, overlay):
    tool_router.include_router(module.router)

__all__ = ["tool_router"]
