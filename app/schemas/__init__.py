"""Pydantic schemas for menu values and queries."""
from app.schemas.menu import (
    Menu,
    MenuAction,
    MenuResource,
    MenuTree,
    MenuQueryParam,
    MenuQueryOptions,
    MenuQueryResult,
    PaginationParam,
    PaginationResult,
)

__all__ = [
    "Menu",
    "MenuAction",
    "MenuResource",
    "MenuTree",
    "MenuQueryParam",
    "MenuQueryOptions",
    "MenuQueryResult",
    "PaginationParam",
    "PaginationResult",
]
