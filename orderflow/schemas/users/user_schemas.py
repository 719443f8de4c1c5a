from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional

from orderflow.constants.department import Department
from orderflow.constants.user_role import UserRole
from orderflow.schemas.orders.order_schemas import User


# =========================
# CREATE
# =========================
class UserCreateSchema(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    department: Department
    role: UserRole = UserRole.MEMBER


# =========================
# LIST FILTERS
# =========================
class UserListFilters(BaseModel):
    search: Optional[str] = None
    department: Optional[Department] = None
    role: Optional[UserRole] = None


# =========================
# RESPONSE SCHEMAS
# =========================
class UserListData(BaseModel):
    total: int
    items: List[User]


class UserTokenData(BaseModel):
    user: User
    access_token: str
    token_type: str = "bearer"
