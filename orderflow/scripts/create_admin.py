"""Seed the first admin user and print an access token for them.

    python -m orderflow.scripts.create_admin
"""
import asyncio
import os

from orderflow.constants.department import Department
from orderflow.constants.user_role import UserRole
from orderflow.core.config import APP_ENV
from orderflow.core.db import AsyncSessionLocal, init_models
from orderflow.schemas.users.user_schemas import UserCreateSchema
from orderflow.services.store.document_store import DocumentStore
from orderflow.services.users.user_services import create_user


async def create_admin():
    if APP_ENV == "development":
        await init_models()

    async with AsyncSessionLocal() as session:
        created = await create_user(
            DocumentStore(session),
            UserCreateSchema(
                name=os.getenv("ADMIN_NAME", "Admin"),
                email=os.getenv("ADMIN_EMAIL", "admin@example.com"),
                department=Department.ADMIN,
                role=UserRole.ADMIN,
            ),
            admin=None,
        )
        print(f"Admin user created: {created.user.email} ({created.user.id})")
        print(f"Access token: {created.access_token}")


if __name__ == "__main__":
    asyncio.run(create_admin())
