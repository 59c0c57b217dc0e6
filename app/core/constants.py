from enum import StrEnum


PATH_SEPARATOR = "/"

# Page size that disables paging and returns every match.
PAGE_SIZE_ALL = -1


class MenuErrorDetails(StrEnum):
    """Menu tree related error messages."""

    NOT_FOUND = "Menu not found"
    INVALID_PARENT = "Parent menu does not exist"
    NOT_ALLOW_SELF = "A menu cannot be its own parent"
    NOT_ALLOW_DELETE = "Menu has child menus and cannot be deleted"
