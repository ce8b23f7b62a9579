from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.community.models import Base, new_id, utcnow

BUILT_ON_CHOICES = ("windsurf", "other")


class ProjectSubmission(Base):
    __tablename__ = "project_submissions"
    __table_args__ = (
        Index("idx_project_submissions_user", "user_id"),
        Index("idx_project_submissions_featured_created", "is_featured", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    overview: Mapped[str] = mapped_column(Text, nullable=False)
    live_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    github_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    built_on: Mapped[str] = mapped_column(String(32), nullable=False, default="windsurf")  # windsurf, other
    built_on_other_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)  # admin-controlled

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)

    @property
    def built_on_label(self) -> str:
        if self.built_on == "windsurf":
            return "Windsurf"
        return self.built_on_other_text or "Other"
