from .routes import pump_router, refill_router

__all__ = ["pump_router", "refill_router"]
