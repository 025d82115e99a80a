# Pydantic schemas for user-related requests/responses
# fastapi-users provides the base schemas; role and duty are ours

from typing import Optional

from fastapi_users import schemas
from pydantic import BaseModel


class UserRead(schemas.BaseUser[int]):
    role: str
    display_name: str
    on_duty: bool


class UserCreate(schemas.BaseUserCreate):
    display_name: str = ""


class UserUpdate(schemas.BaseUserUpdate):
    display_name: Optional[str] = None


class FlashMessage(BaseModel):
    level: str
    message: str
