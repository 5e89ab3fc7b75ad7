from .auth import router as auth_router

ROUTERS = (auth_router,)

__all__ = ["ROUTERS", "auth_router"]
