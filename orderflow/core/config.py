# orderflow/core/config.py

import os
from dotenv import load_dotenv
from orderflow.utils.logger import get_logger

logger = get_logger(__name__)

load_dotenv()

# =====================================================
# APPLICATION
# =====================================================
APP_ENV = os.getenv("APP_ENV")
if APP_ENV not in {"development", "staging", "production"}:
    raise ValueError("APP_ENV must be development | staging | production")

IS_PRODUCTION = APP_ENV == "production"

# =====================================================
# DATABASE (document store backend)
# =====================================================
DB_TYPE = os.getenv("DB_TYPE")
if DB_TYPE not in {"postgres", "sqlite"}:
    raise ValueError("DB_TYPE must be postgres | sqlite")

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres")

elif DB_TYPE == "sqlite":
    if IS_PRODUCTION:
        raise ValueError("SQLite is NOT allowed in production")
    SQLITE_PATH = os.getenv("SQLITE_PATH", "./orderflow.db")
    DATABASE_URL = f"sqlite+aiosqlite:///{SQLITE_PATH}"

# ---- Pool tuning (postgres only) ----
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
DB_ECHO_POOL = os.getenv("DB_ECHO_POOL", "false").lower() == "true"

# ---- SSL ----
DB_SSL_VERIFY = os.getenv("DB_SSL_VERIFY", "true").lower() == "true"
if IS_PRODUCTION and not DB_SSL_VERIFY:
    logger.warning("Running in production with relaxed SSL verification")

# =====================================================
# JWT / AUTH
# =====================================================
JWT_ACCESS_SECRET_KEY = os.getenv("JWT_ACCESS_SECRET_KEY")
if not JWT_ACCESS_SECRET_KEY:
    raise ValueError("JWT_ACCESS_SECRET_KEY must be set")

JWT_ALGORITHM = "HS256"

ACCESS_TOKEN_EXPIRE_MINUTES = int(
    os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 12)
)

# =====================================================
# ORDER WORKFLOW
# =====================================================
STATUS_EDIT_WINDOW_MINUTES = int(os.getenv("STATUS_EDIT_WINDOW_MINUTES", 30))
RECENT_PAYMENTS_DAYS = int(os.getenv("RECENT_PAYMENTS_DAYS", 30))

# =====================================================
# SPREADSHEET SYNC
# =====================================================
SHEET_SYNC_ENABLED = os.getenv("SHEET_SYNC_ENABLED", "false").lower() == "true"
SHEET_EXPORT_PATH = os.getenv("SHEET_EXPORT_PATH", "exports/orders.xlsx")
SHEET_SYNC_HOUR = int(os.getenv("SHEET_SYNC_HOUR", 23))
# client-supplied sheet paths must resolve inside this directory
SHEET_DIR = os.path.abspath(
    os.getenv("SHEET_DIR") or os.path.dirname(SHEET_EXPORT_PATH) or "."
)
