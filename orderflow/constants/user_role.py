# orderflow/constants/user_role.py
import enum


class UserRole(str, enum.Enum):
    ADMIN = "Admin"
    MEMBER = "Member"
