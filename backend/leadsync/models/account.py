"""Account and Team models (portal users and their territory groups)."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leadsync.database import Base


class AccountRole(str, enum.Enum):
    """Roles the sync engine cares about."""

    ADMIN = "ADMIN"
    SALES_HEAD = "SALES_HEAD"
    BD = "BD"


class Team(Base):
    """
    Territory group for business-development accounts.

    A lead without an explicit circle inherits the circle of its owner's team.
    """

    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    circle: Mapped[str] = mapped_column(String(20), nullable=False)
    # Owning supervisor; plain column to keep accounts <-> teams acyclic
    sales_head_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Team {self.name}: {self.circle}>"


class Account(Base):
    """Portal user account. Leads are owned by accounts with the BD role."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    team_id: Mapped[int | None] = mapped_column(ForeignKey("teams.id"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    team: Mapped[Team | None] = relationship(foreign_keys=[team_id], lazy="selectin")

    def __repr__(self) -> str:
        return f"<Account {self.email}: {self.role}>"
