import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timeclock_db"),
    "connect_timeout": int(os.getenv("DB_CONNECT_TIMEOUT", "10")),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Apply database/schema.sql at startup; every statement is IF NOT EXISTS
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Load demo employees, categories and work orders at startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
