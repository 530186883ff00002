import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file)
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./fiscal.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_SENTRY = data.get("ENABLE_SENTRY", 0)
    DSN_SENTRY = data.get("DSN_SENTRY", "")
    SENTRY_ENVIRONMENT = data.get("SENTRY_ENVIRONMENT", "dev")

    # Fiscal numbering
    DEFAULT_INVOICE_SERIES = data.get("DEFAULT_INVOICE_SERIES", "F")
    SEQUENCE_LOCK_TIMEOUT_SECONDS = float(data.get("SEQUENCE_LOCK_TIMEOUT_SECONDS", 5.0))

    # Hash chain audit
    CHAIN_AUDIT_ENABLED = bool(data.get("CHAIN_AUDIT_ENABLED", True))
    CHAIN_AUDIT_INTERVAL_SECONDS = data.get("CHAIN_AUDIT_INTERVAL_SECONDS", 86400)  # Daily
