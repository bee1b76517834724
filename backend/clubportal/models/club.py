import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from clubportal.db.base import Base

class ClubCreationRequest(Base):
    __tablename__ = "club_creation_requests"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    requested_by: Mapped[int] = mapped_column(sa.Integer, sa.ForeignKey("users.id"), nullable=False)
    club_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    staff_advisor: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    president_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    requester_comment: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    status: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="pending")
    reviewed_by: Mapped[int | None] = mapped_column(sa.Integer, sa.ForeignKey("users.id"), nullable=True)
    reviewed_at: Mapped[sa.DateTime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    # Plain column: clubs.created_from_request_id already points the other way.
    created_club_id: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.CheckConstraint("status in ('pending','approved','rejected')", name="ck_club_request_status"),
        sa.Index(
            "uq_club_request_pending_per_user",
            "requested_by",
            unique=True,
            postgresql_where=sa.text("status = 'pending'"),
            sqlite_where=sa.text("status = 'pending'"),
        ),
        sa.Index("ix_club_request_status_created", "status", "created_at"),
    )


class Club(Base):
    __tablename__ = "clubs"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    staff_advisor: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    access_code: Mapped[str] = mapped_column(sa.Text, unique=True, nullable=False)
    current_president_id: Mapped[int | None] = mapped_column(sa.Integer, sa.ForeignKey("users.id"), nullable=True)
    created_from_request_id: Mapped[int | None] = mapped_column(
        sa.Integer, sa.ForeignKey("club_creation_requests.id"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, server_default=sa.true())
    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())
