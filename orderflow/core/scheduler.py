from apscheduler.schedulers.asyncio import AsyncIOScheduler

from orderflow.core.config import SHEET_SYNC_HOUR
from orderflow.core.db import AsyncSessionLocal
from orderflow.services.sheets.sheet_service import export_orders
from orderflow.services.store.document_store import DocumentStore

scheduler = AsyncIOScheduler()


@scheduler.scheduled_job("cron", hour=SHEET_SYNC_HOUR, minute=0)  # daily
async def export_orders_job():
    async with AsyncSessionLocal() as db:
        await export_orders(DocumentStore(db), None)
