from typing import Optional

from fastapi import Depends
from sqlalchemy import select, delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.db import get_db
from orderflow.core.exceptions import StaleWrite
from orderflow.models.store.document_models import Document
from orderflow.utils.logger import get_logger

logger = get_logger(__name__)

ORDERS = "orders"
USERS = "users"
NOTIFICATIONS = "notifications"


class DocumentStore:
    """
    Collection/id keyed JSON documents on top of the ``documents`` table.

    Writes commit immediately; each call is one atomic unit.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # =====================================================
    # READ
    # =====================================================
    async def get(self, collection: str) -> list[dict]:
        result = await self.db.execute(
            select(Document)
            .where(Document.collection == collection)
            .order_by(Document.created_at, Document.doc_id)
        )
        return [doc.data for doc in result.scalars().all()]

    async def get_one(self, collection: str, doc_id: str) -> Optional[dict]:
        doc = await self.db.get(Document, (collection, doc_id))
        return doc.data if doc else None

    # =====================================================
    # WRITE
    # =====================================================
    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict,
        *,
        expected_revision: Optional[int] = None,
        revision: Optional[int] = None,
    ) -> dict:
        """
        Insert or replace a document.

        With ``expected_revision`` the write is a compare-and-set: it only
        applies while the stored revision still equals it, otherwise
        StaleWrite is raised and nothing changes. ``revision`` sets the new
        revision explicitly instead of bumping it by one.
        """
        if expected_revision is not None:
            return await self._replace_if_current(
                collection, doc_id, data, expected_revision, revision
            )

        doc = await self.db.get(Document, (collection, doc_id))
        if doc is None:
            doc = Document(
                collection=collection,
                doc_id=doc_id,
                data=data,
                revision=revision or 1,
            )
            self.db.add(doc)
        else:
            # JSON columns only detect reassignment
            doc.data = dict(data)
            doc.revision = revision or (doc.revision or 0) + 1

        await self.db.commit()
        logger.debug("Document saved", extra={"collection": collection, "doc_id": doc_id})
        return data

    async def _replace_if_current(
        self,
        collection: str,
        doc_id: str,
        data: dict,
        expected_revision: int,
        revision: Optional[int],
    ) -> dict:
        result = await self.db.execute(
            update(Document)
            .where(
                Document.collection == collection,
                Document.doc_id == doc_id,
                Document.revision == expected_revision,
            )
            .values(
                data=dict(data),
                revision=revision or Document.revision + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            logger.warning(
                "Stale document write rejected",
                extra={
                    "collection": collection,
                    "doc_id": doc_id,
                    "expected_revision": expected_revision,
                },
            )
            raise StaleWrite(
                f"{collection}/{doc_id} was modified concurrently",
                {"collection": collection, "doc_id": doc_id},
            )

        await self.db.commit()
        # loaded Document rows no longer match the table
        self.db.expire_all()
        logger.debug("Document saved", extra={"collection": collection, "doc_id": doc_id})
        return data

    async def delete(self, collection: str, doc_id: str) -> bool:
        result = await self.db.execute(
            delete(Document).where(
                Document.collection == collection,
                Document.doc_id == doc_id,
            )
        )
        await self.db.commit()
        return result.rowcount > 0

    async def delete_all(self, collection: str) -> int:
        result = await self.db.execute(
            delete(Document).where(Document.collection == collection)
        )
        await self.db.commit()

        logger.info(
            "Collection cleared",
            extra={"collection": collection, "deleted": result.rowcount},
        )
        return result.rowcount


# =====================================================
# DEPENDENCY
# =====================================================
async def get_store(db: AsyncSession = Depends(get_db)) -> DocumentStore:
    return DocumentStore(db)
