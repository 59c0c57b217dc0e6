"""Menu tree schemas shared by the service and the record stores."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.constants import PAGE_SIZE_ALL, PATH_SEPARATOR


class MenuAction(BaseModel):
    model_config = ConfigDict(frozen=True, extra='ignore')
    code: str
    name: str


class MenuResource(BaseModel):
    model_config = ConfigDict(frozen=True, extra='ignore')
    code: str
    name: str
    method: str = ""
    path: str = ""


class Menu(BaseModel):
    """
    A node of the menu tree.

    Values are immutable; the service derives new copies with
    ``model_copy(update=...)`` between path computation and persistence.
    """
    model_config = ConfigDict(frozen=True, extra='ignore')

    record_id: str = ""
    name: str
    sequence: int = 0
    icon: str = ""
    router: str = ""
    hidden: bool = False
    parent_id: str = ""
    parent_path: str = ""
    creator: str = ""
    created_at: datetime | None = None
    actions: list[MenuAction] = Field(default_factory=list)
    resources: list[MenuResource] = Field(default_factory=list)

    @field_validator('parent_id')
    @classmethod
    def strip_parent_id(cls, v: str | None) -> str:
        return (v or "").strip()

    @property
    def full_path(self) -> str:
        """Path prefix carried by every descendant of this menu."""
        return join_path(self.parent_path, self.record_id)


class MenuTree(BaseModel):
    model_config = ConfigDict(extra='ignore')

    menu: Menu
    children: list["MenuTree"] = Field(default_factory=list)


class PaginationParam(BaseModel):
    model_config = ConfigDict(frozen=True)
    page_index: int = 1
    page_size: int = 10

    @field_validator('page_index')
    @classmethod
    def validate_page_index(cls, v: int) -> int:
        if v < 1:
            raise ValueError("page_index must be at least 1")
        return v

    @field_validator('page_size')
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if v != PAGE_SIZE_ALL and v < 1:
            raise ValueError(f"page_size must be positive or {PAGE_SIZE_ALL}")
        return v

    @property
    def is_unbounded(self) -> bool:
        return self.page_size == PAGE_SIZE_ALL


class PaginationResult(BaseModel):
    total: int
    current: int
    page_size: int


class MenuQueryParam(BaseModel):
    model_config = ConfigDict(frozen=True)
    record_ids: list[str] | None = None
    name: str | None = None
    hidden: bool | None = None
    parent_id: str | None = None
    prefix_parent_path: str | None = None


class MenuQueryOptions(BaseModel):
    model_config = ConfigDict(frozen=True)
    page_param: PaginationParam | None = None
    include_actions: bool = False
    include_resources: bool = False


class MenuQueryResult(BaseModel):
    data: list[Menu] = Field(default_factory=list)
    page_result: PaginationResult | None = None


def join_path(parent_path: str, record_id: str) -> str:
    """Append an id to a materialized path; a root path contributes nothing."""
    if not parent_path:
        return record_id
    return f"{parent_path}{PATH_SEPARATOR}{record_id}"


def split_parent_path(parent_path: str) -> list[str]:
    """Return the ancestor ids of a materialized path, root first."""
    if not parent_path:
        return []
    return [part for part in parent_path.split(PATH_SEPARATOR) if part]


def is_under_path(parent_path: str, prefix: str) -> bool:
    """True when ``parent_path`` belongs to the subtree rooted at ``prefix``."""
    return parent_path == prefix or parent_path.startswith(prefix + PATH_SEPARATOR)


def build_menu_trees(menus: list[Menu]) -> list[MenuTree]:
    """
    Nest a flat list of menus by parent_id.

    Menus whose parent is not part of the list become roots. The input order
    is kept among siblings.
    """
    nodes = {menu.record_id: MenuTree(menu=menu) for menu in menus}
    roots: list[MenuTree] = []
    for menu in menus:
        node = nodes[menu.record_id]
        parent = nodes.get(menu.parent_id) if menu.parent_id else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots
