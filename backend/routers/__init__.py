from .auth import router as auth_router
from .share import router as share_router
from .file import router as file_router

__all__ = ["auth_router", "share_router", "file_router"]
