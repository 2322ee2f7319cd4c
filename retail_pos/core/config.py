import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    database_url: str = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./retail_pos.db"
    )
    database_echo: bool = _as_bool(os.getenv("DATABASE_ECHO", "False"))

    # Products (non-bundles) with stock below this are flagged as low stock.
    # Ingredients carry their own threshold.
    product_low_stock_threshold: int = int(os.getenv("PRODUCT_LOW_STOCK_THRESHOLD", "10"))

    # Strict: any integrity fault rejects the whole catalog load.
    # Lenient: only the affected items are quarantined.
    catalog_strict: bool = _as_bool(os.getenv("CATALOG_STRICT", "False"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_json: bool = _as_bool(os.getenv("LOG_JSON", "False"))


settings = Settings()
