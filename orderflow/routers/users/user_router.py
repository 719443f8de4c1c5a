from fastapi import APIRouter, Depends, Query

from orderflow.constants.department import Department
from orderflow.constants.user_role import UserRole
from orderflow.schemas.orders.order_schemas import User
from orderflow.schemas.users.user_schemas import (
    UserCreateSchema,
    UserListData,
    UserListFilters,
    UserTokenData,
)
from orderflow.services.store.document_store import DocumentStore, get_store
from orderflow.services.users.user_services import (
    create_user,
    get_user_by_id,
    issue_user_token,
    list_users,
)
from orderflow.utils.get_user import get_current_user
from orderflow.utils.response import success_response, APIResponse

router = APIRouter(prefix="/users", tags=["Users"])


# =========================
# CREATE USER
# =========================
@router.post("", response_model=APIResponse[UserTokenData], status_code=201)
async def create_user_api(
    payload: UserCreateSchema,
    store: DocumentStore = Depends(get_store),
    admin: User = Depends(get_current_user),
):
    data = await create_user(store, payload, admin)
    return success_response("User created successfully", data)


# =========================
# LIST USERS
# =========================
@router.get("", response_model=APIResponse[UserListData])
async def list_users_api(
    store: DocumentStore = Depends(get_store),
    admin: User = Depends(get_current_user),
    search: str | None = Query(None),
    department: Department | None = Query(None),
    role: UserRole | None = Query(None),
):
    filters = UserListFilters(search=search, department=department, role=role)
    data = await list_users(store, filters, admin)
    return success_response("Users fetched successfully", data)


# =========================
# CURRENT USER
# =========================
@router.get("/me", response_model=APIResponse[User])
async def me_api(user: User = Depends(get_current_user)):
    return success_response("Current user", user)


# =========================
# GET USER
# =========================
@router.get("/{user_id}", response_model=APIResponse[User])
async def get_user_api(
    user_id: str,
    store: DocumentStore = Depends(get_store),
    admin: User = Depends(get_current_user),
):
    user = await get_user_by_id(store, user_id, admin)
    return success_response("User fetched successfully", user)


@router.post("/{user_id}/token", response_model=APIResponse[UserTokenData])
async def issue_token_api(
    user_id: str,
    store: DocumentStore = Depends(get_store),
    admin: User = Depends(get_current_user),
):
    data = await issue_user_token(store, user_id, admin)
    return success_response("Access token issued", data)
