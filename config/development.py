import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "time_tracker"),
}

TOKEN_TTL_HOURS = int(os.getenv("TOKEN_TTL_HOURS", "24"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").upper()

DEBUG = True

# If enabled, startup applies database/schema.sql (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
