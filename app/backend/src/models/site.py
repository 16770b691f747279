"""Site and site assignment models."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Site(Base):
    """A construction site documents are raised against."""

    __tablename__ = "sites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    site_code: Mapped[str | None] = mapped_column(String(32), unique=True, nullable=True)

    assignments: Mapped[list["SiteAssignment"]] = relationship(
        "SiteAssignment", back_populates="site", cascade="all, delete-orphan"
    )


class SiteAssignment(Base):
    """Links a user to a site they may act on."""

    __tablename__ = "site_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "site_id", name="uq_site_assignments_user_site"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False, index=True)

    user: Mapped["User"] = relationship("User", back_populates="site_assignments")
    site: Mapped["Site"] = relationship("Site", back_populates="assignments")


__all__ = ["Site", "SiteAssignment"]
