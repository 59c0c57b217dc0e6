"""Menu SQLAlchemy models."""
from datetime import datetime, timezone
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.core.database import Base


class Menu(Base):
    """Menu tree node stored with a materialized parent path."""

    __tablename__ = "menus"

    record_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    icon: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    router: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    parent_id: Mapped[str] = mapped_column(String(36), default="", nullable=False, index=True)
    parent_path: Mapped[str] = mapped_column(String(518), default="", nullable=False, index=True)
    creator: Mapped[str] = mapped_column(String(36), default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    actions: Mapped[list["MenuAction"]] = relationship(
        "MenuAction", back_populates="menu", cascade="all, delete-orphan", lazy="raise"
    )
    resources: Mapped[list["MenuResource"]] = relationship(
        "MenuResource", back_populates="menu", cascade="all, delete-orphan", lazy="raise"
    )

    def to_dict(self, include_actions: bool = False, include_resources: bool = False) -> dict:
        """Convert model to dictionary; related collections only when loaded on request."""
        return {
            "record_id": self.record_id,
            "name": self.name,
            "sequence": self.sequence,
            "icon": self.icon,
            "router": self.router,
            "hidden": self.hidden,
            "parent_id": self.parent_id,
            "parent_path": self.parent_path,
            "creator": self.creator,
            "created_at": self.created_at,
            "actions": [a.to_dict() for a in self.actions] if include_actions else [],
            "resources": [r.to_dict() for r in self.resources] if include_resources else [],
        }

    def __repr__(self) -> str:
        return f"<Menu(record_id={self.record_id}, name={self.name}, parent_path={self.parent_path})>"


class MenuAction(Base):
    """Action (permission code) attached to a menu."""

    __tablename__ = "menu_actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    menu_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("menus.record_id", ondelete="CASCADE"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    menu: Mapped["Menu"] = relationship("Menu", back_populates="actions")

    def to_dict(self) -> dict:
        return {"code": self.code, "name": self.name}


class MenuResource(Base):
    """API resource attached to a menu."""

    __tablename__ = "menu_resources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    menu_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("menus.record_id", ondelete="CASCADE"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    method: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    path: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    menu: Mapped["Menu"] = relationship("Menu", back_populates="resources")

    def to_dict(self) -> dict:
        return {"code": self.code, "name": self.name, "method": self.method, "path": self.path}
