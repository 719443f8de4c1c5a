from uuid import uuid4

from orderflow.constants.error_codes import ErrorCode
from orderflow.core.exceptions import AppException
from orderflow.core.security import create_access_token
from orderflow.schemas.orders.order_schemas import User
from orderflow.schemas.users.user_schemas import (
    UserCreateSchema,
    UserListData,
    UserListFilters,
    UserTokenData,
)
from orderflow.services.store.document_store import USERS, DocumentStore
from orderflow.utils.logger import get_logger
from orderflow.utils.permissions import Capability, can

logger = get_logger(__name__)


def _require_admin(user: User):
    if not can(user, Capability.MANAGE_USERS):
        raise AppException(403, "Only admins can manage users", ErrorCode.PERMISSION_DENIED)


async def _all_users(store: DocumentStore) -> list[User]:
    return [User.model_validate(doc) for doc in await store.get(USERS)]


# =========================
# CREATE USER
# =========================
async def create_user(
    store: DocumentStore,
    payload: UserCreateSchema,
    admin: User | None,
) -> UserTokenData:
    """
    Register a user and hand back a signed access token for them.

    ``admin`` is None only for the bootstrap script.
    """
    if admin is not None:
        _require_admin(admin)

    email = payload.email.lower()
    if any(u.email.lower() == email for u in await _all_users(store)):
        raise AppException(400, "User already exists", ErrorCode.USER_EMAIL_EXISTS)

    user = User(
        id=uuid4().hex,
        name=payload.name.strip(),
        email=email,
        department=payload.department,
        role=payload.role,
    )
    await store.set(USERS, user.id, user.model_dump(mode="json"))

    logger.info(
        "User created",
        extra={"user_id": user.id, "created_by": admin.id if admin else None},
    )
    return UserTokenData(user=user, access_token=create_access_token(user.id))


# =========================
# LIST USERS
# =========================
async def list_users(
    store: DocumentStore,
    filters: UserListFilters,
    admin: User,
) -> UserListData:
    _require_admin(admin)

    users = await _all_users(store)

    if filters.search:
        term = filters.search.lower()
        users = [u for u in users if term in u.name.lower() or term in u.email.lower()]

    if filters.department:
        users = [u for u in users if u.department == filters.department]

    if filters.role:
        users = [u for u in users if u.role == filters.role]

    users.sort(key=lambda u: u.name.lower())
    return UserListData(total=len(users), items=users)


# =========================
# GET USER BY ID
# =========================
async def get_user_by_id(store: DocumentStore, user_id: str, admin: User) -> User:
    _require_admin(admin)

    doc = await store.get_one(USERS, user_id)
    if not doc:
        raise AppException(404, "User not found", ErrorCode.USER_NOT_FOUND)
    return User.model_validate(doc)


# =========================
# ISSUE TOKEN
# =========================
async def issue_user_token(store: DocumentStore, user_id: str, admin: User) -> UserTokenData:
    user = await get_user_by_id(store, user_id, admin)
    logger.info("Access token issued", extra={"user_id": user.id, "issued_by": admin.id})
    return UserTokenData(user=user, access_token=create_access_token(user.id))
