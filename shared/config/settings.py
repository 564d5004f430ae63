import os
from dotenv import load_dotenv

load_dotenv()

# --- Database ---
DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "storefront")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

# --- Tenancy ---
DEFAULT_TENANT_ID = os.getenv("DEFAULT_TENANT_ID", "")

# --- Collaborators ---
FRAUD_CHECK_URL = os.getenv("FRAUD_CHECK_URL", "http://localhost:3001/api/fraud-check")
FRAUD_CHECK_TIMEOUT = float(os.getenv("FRAUD_CHECK_TIMEOUT", "10"))
REALTIME_URL = os.getenv("REALTIME_URL", "http://localhost:4000")
META_GRAPH_URL = os.getenv("META_GRAPH_URL", "https://graph.facebook.com/v18.0")

# --- Checkout ---
CHECKOUT_RATE_LIMIT = os.getenv("CHECKOUT_RATE_LIMIT", "30/minute")
AFFILIATE_COOKIE_NAME = "affiliate_ref"

# --- Background tasks ---
TASK_QUEUE_MAXSIZE = int(os.getenv("TASK_QUEUE_MAXSIZE", "1000"))
TASK_QUEUE_WORKERS = int(os.getenv("TASK_QUEUE_WORKERS", "4"))
TASK_MAX_ATTEMPTS = int(os.getenv("TASK_MAX_ATTEMPTS", "3"))
TASK_RETRY_BASE_DELAY = float(os.getenv("TASK_RETRY_BASE_DELAY", "0.5"))

# --- Observability ---
OTEL_ENABLED = os.getenv("OTEL_ENABLED", "false").lower() == "true"
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Security ---
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
