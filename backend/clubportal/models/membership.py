import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from clubportal.db.base import Base

class ClubMember(Base):
    __tablename__ = "club_members"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    club_id: Mapped[int] = mapped_column(sa.Integer, sa.ForeignKey("clubs.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(sa.Integer, sa.ForeignKey("users.id"), nullable=False)
    role_id: Mapped[int] = mapped_column(sa.Integer, sa.ForeignKey("club_roles.id"), nullable=False)
    is_president: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, server_default=sa.false())
    status: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="active")
    joined_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.UniqueConstraint("club_id", "user_id", name="uq_club_member"),
        sa.CheckConstraint("status in ('active','removed')", name="ck_club_member_status"),
        sa.Index("ix_club_members_role_status", "role_id", "status"),
    )


class ClubJoinRequest(Base):
    __tablename__ = "club_join_requests"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    club_id: Mapped[int] = mapped_column(sa.Integer, sa.ForeignKey("clubs.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(sa.Integer, sa.ForeignKey("users.id"), nullable=False)
    access_code_used: Mapped[str] = mapped_column(sa.Text, nullable=False)
    message: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    status: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="pending")
    reviewed_by: Mapped[int | None] = mapped_column(sa.Integer, sa.ForeignKey("users.id"), nullable=True)
    reviewed_at: Mapped[sa.DateTime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    assigned_role_id: Mapped[int | None] = mapped_column(
        sa.Integer, sa.ForeignKey("club_roles.id", ondelete="SET NULL"), nullable=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.CheckConstraint("status in ('pending','approved','rejected')", name="ck_join_request_status"),
        sa.Index(
            "uq_join_request_pending",
            "club_id",
            "user_id",
            unique=True,
            postgresql_where=sa.text("status = 'pending'"),
            sqlite_where=sa.text("status = 'pending'"),
        ),
        sa.Index("ix_join_requests_club_status_created", "club_id", "status", "created_at"),
    )
