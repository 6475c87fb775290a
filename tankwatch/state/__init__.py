from .router import router as state_router

__all__ = ["state_router"]
