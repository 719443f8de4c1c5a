# orderflow/routers/__init__.py

from .users.user_router import router as user_router

from .orders.order_router import router as order_router

from .reports.report_router import router as report_router

from .sheets.sheet_router import router as sheet_router

from .notifications.notification_router import router as notification_router
