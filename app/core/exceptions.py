from app.core.constants import MenuErrorDetails


class AppException(Exception):
    """Base application exception with message, status code and optional data."""

    def __init__(self, message: str, status_code: int = 400, data: dict = None):
        self.message = message
        self.status_code = status_code
        self.data = data or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """Exception raised when a referenced menu does not exist."""

    def __init__(self, record_id: str):
        super().__init__(
            MenuErrorDetails.NOT_FOUND, status_code=404, data={"record_id": record_id}
        )


class InvalidParentException(AppException):
    """Exception raised when a declared parent does not resolve to a menu."""

    def __init__(self, parent_id: str):
        super().__init__(MenuErrorDetails.INVALID_PARENT, data={"parent_id": parent_id})


class NotAllowSelfException(AppException):
    """Exception raised when a menu declares itself as its parent."""

    def __init__(self, record_id: str):
        super().__init__(MenuErrorDetails.NOT_ALLOW_SELF, data={"record_id": record_id})


class NotAllowDeleteException(AppException):
    """Exception raised when deleting a menu that still has children."""

    def __init__(self, record_id: str, children: int):
        super().__init__(
            MenuErrorDetails.NOT_ALLOW_DELETE,
            data={"record_id": record_id, "children": children},
        )
