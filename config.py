# config.py
import os
from pathlib import Path

from dotenv import load_dotenv, find_dotenv

load_dotenv(find_dotenv(usecwd=True), override=False)  # picks up your .env locally


# ---- base directories -------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent
INSTANCE_DIR = os.environ.get("FLASK_INSTANCE_PATH", str(BASE_DIR / "instance"))


# ---- tiny helpers -----------------------------------------------------------
def _to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on", "y"}


def _database_url() -> str:
    raw = os.getenv("DATABASE_URL", "").strip()

    # hosted Postgres hands out postgres://; normalize to postgresql+psycopg2://
    if raw.startswith("postgres://"):
        raw = raw.replace("postgres://", "postgresql+psycopg2://", 1)

    if not raw:
        # dev fallback; production sets DATABASE_URL
        raw = "sqlite:///" + str(Path(INSTANCE_DIR) / "moneyflow.db")
    return raw


# ----------------------------------------------------------------------------
class Config:
    """
    Base configuration loaded by the app factory via:
      app.config.from_object("config.Config")
    """

    # ------------ Core / Security ------------
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Europe/Paris")

    # ------------ Database ------------
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # ------------ Identity provider ------------
    # Bearer tokens are "<user_id>.<hex hmac-sha256(user_id)>" signed with this secret
    IDENTITY_SECRET = os.getenv("IDENTITY_SECRET", "dev-identity-secret")
    IDENTITY_WEBHOOK_SECRET = os.getenv("IDENTITY_WEBHOOK_SECRET", "")
    IDENTITY_API_URL = os.getenv("IDENTITY_API_URL", "")
    IDENTITY_API_KEY = os.getenv("IDENTITY_API_KEY", "")
    IDENTITY_API_TIMEOUT = float(os.getenv("IDENTITY_API_TIMEOUT", "20"))

    # ------------ Web Push (VAPID) ------------
    VAPID_PUBLIC_KEY = os.getenv("VAPID_PUBLIC_KEY", "")
    VAPID_PRIVATE_KEY = os.getenv("VAPID_PRIVATE_KEY", "")
    VAPID_CLAIM_EMAIL = os.getenv("VAPID_CLAIM_EMAIL", "contact@moneyflow.app")
    PUSH_TTL_SECONDS = int(os.getenv("PUSH_TTL_SECONDS", "86400"))

    # ------------ Notification defaults ------------
    LOW_BALANCE_THRESHOLD_DEFAULT = int(os.getenv("LOW_BALANCE_THRESHOLD_DEFAULT", "100"))
    UPCOMING_RECURRING_DAYS_DEFAULT = int(os.getenv("UPCOMING_RECURRING_DAYS_DEFAULT", "3"))
    CREDIT_DUE_DAYS = int(os.getenv("CREDIT_DUE_DAYS", "3"))

    # ------------ Misc / Debug ------------
    REQUEST_TRACE = _to_bool(os.getenv("REQUEST_TRACE", "1"), default=True)
    JSON_SORT_KEYS = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    IDENTITY_SECRET = "test-identity-secret"
    IDENTITY_WEBHOOK_SECRET = "test-webhook-secret"
    IDENTITY_API_URL = "https://identity.test/v1"
    IDENTITY_API_KEY = "sk_test"
    VAPID_PUBLIC_KEY = "test-public"
    VAPID_PRIVATE_KEY = "test-private"
    REQUEST_TRACE = False
