import os
from dotenv import load_dotenv

load_dotenv()

# --- База Данных ---
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_NAME = os.getenv("DB_NAME")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")

# DATABASE_URL целиком перекрывает DB_* (например, sqlite для разработки)
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+psycopg2://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

# --- Администратор ---
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin")

# --- Логи ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# --- Расписание и оплаты ---
DEFAULT_SERVICE_DURATION = int(os.getenv("DEFAULT_SERVICE_DURATION", 30))
DEFAULT_PAYMENT_METHOD = os.getenv("DEFAULT_PAYMENT_METHOD", "cash")
