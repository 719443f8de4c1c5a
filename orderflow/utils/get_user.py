from fastapi import Depends, HTTPException, Header, status, Request
from pydantic import ValidationError as PydanticValidationError

from orderflow.core.security import decode_access_token
from orderflow.schemas.orders.order_schemas import User
from orderflow.services.store.document_store import USERS, DocumentStore, get_store
from orderflow.utils.logger import get_logger

logger = get_logger("auth.guard")


async def get_current_user(
    request: Request,
    authorization: str = Header(...),
    store: DocumentStore = Depends(get_store),
) -> User:
    if not authorization.startswith("Bearer "):
        logger.warning("Missing bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )

    token = authorization.split("Bearer ")[1].strip()
    payload = decode_access_token(token)

    user_id = payload.get("sub")
    doc = await store.get_one(USERS, user_id) if user_id else None

    if not doc:
        logger.warning("Token user not found", extra={"user_id": user_id})
        raise HTTPException(status_code=401, detail="User not found")

    try:
        user = User.model_validate(doc)
    except PydanticValidationError:
        logger.warning("Stored user record is invalid", extra={"user_id": user_id})
        raise HTTPException(status_code=401, detail="User not found")

    request.state.user = user
    return user
