"""Branch, branch login and employee models."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from printshop.database import Base
from printshop.db_types import JSONType, UUIDType


class BranchType(str, Enum):
    """Branch type. Exactly one MAIN branch acts as the central workshop."""
    MAIN = "main"
    SUB = "sub"


# Product kinds a branch may sell
KNOWN_PRODUCTS = ("mug", "plate", "tshirt", "banner")

DEFAULT_ALLOWED_PRODUCTS = {
    BranchType.MAIN.value: ["mug", "plate", "tshirt", "banner"],
    BranchType.SUB.value: ["mug", "plate", "banner"],
}


class Branch(Base):
    """A physical outlet."""
    __tablename__ = "branches"
    __table_args__ = (
        Index('ix_branch_type_active', 'type', 'is_active'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BranchType.SUB.value,
        comment="main, sub"
    )
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contacts: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    allowed_products: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    logins: Mapped[List["BranchLogin"]] = relationship(
        "BranchLogin",
        back_populates="branch",
        cascade="all, delete-orphan",
    )

    @property
    def is_main(self) -> bool:
        return self.type == BranchType.MAIN.value

    def __repr__(self) -> str:
        return f"<Branch(name='{self.name}', type='{self.type}')>"


class BranchLogin(Base):
    """Username/password pair that signs in as a branch."""
    __tablename__ = "branch_logins"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    branch_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("branches.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    branch: Mapped["Branch"] = relationship("Branch", back_populates="logins")


class Employee(Base):
    """Worker that tasks can be assigned to."""
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    branch_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("branches.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
