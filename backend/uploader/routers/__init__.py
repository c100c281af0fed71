from uploader.routers import events, health, uploads

__all__ = [
    "events",
    "health",
    "uploads",
]
