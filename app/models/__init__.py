"""SQLAlchemy ORM models."""
from app.models.menu import Menu, MenuAction, MenuResource

__all__ = [
    "Menu",
    "MenuAction",
    "MenuResource",
]
