import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from clubportal.db.base import Base

class ClubRole(Base):
    __tablename__ = "club_roles"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    club_id: Mapped[int] = mapped_column(sa.Integer, sa.ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False)
    role_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    role_description: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    is_system_role: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, server_default=sa.false())
    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.UniqueConstraint("club_id", "role_name", name="uq_club_role_name"),
    )


# Role names are unique per club regardless of case.
sa.Index("uq_club_role_name_lower", ClubRole.club_id, sa.func.lower(ClubRole.role_name), unique=True)


class RolePermission(Base):
    __tablename__ = "role_permissions"

    role_id: Mapped[int] = mapped_column(sa.Integer, sa.ForeignKey("club_roles.id", ondelete="CASCADE"), primary_key=True)
    permission_key: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    permission_value: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, server_default=sa.false())
