from fastapi_users.db import SQLAlchemyBaseUserTable
from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from .database import Base

ROLE_ADMIN = "ADMIN"
ROLE_BARTENDER = "BARTENDER"
ROLE_USER = "USER"

ROLES = (ROLE_ADMIN, ROLE_BARTENDER, ROLE_USER)
STAFF_ROLES = (ROLE_ADMIN, ROLE_BARTENDER)


class User(SQLAlchemyBaseUserTable[int], Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('ADMIN', 'BARTENDER', 'USER')", name="ck_users_role"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default=ROLE_USER)
    display_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    on_duty: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def to_schema(self):
        """Convert User model to schema dictionary format"""
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "role": self.role,
            "on_duty": bool(self.on_duty),
        }
