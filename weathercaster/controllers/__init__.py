"""FastAPI routers acting as controllers in the MVC architecture."""

from . import assets, broadcast, weather

__all__ = ["assets", "broadcast", "weather"]
