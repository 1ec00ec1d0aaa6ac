# catalog_console/config/settings.py

"""Central configuration for the catalog console."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the catalog console."""

    # --- Catalog API ---
    CATALOG_API_URL: str = os.getenv("CATALOG_API_URL", "")
    CATALOG_API_TOKEN: str = os.getenv("CATALOG_API_TOKEN", "")
    PRODUCT_ENDPOINT: str = "/product"
    DEFAULT_VARIANT_ENDPOINT: str = "/product-default-variant"
    VARIANT_ENDPOINT: str = "/variant"

    # --- Transport ---
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Attempts for idempotent reads
    RETRY_DELAY: float = 0.5            # Base backoff between read retries
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }

    # --- Loader ---
    LOADER_BATCH_SIZE: int = 5          # Collections fetched concurrently

    # --- Catalog rules (mirrored by the in-memory store) ---
    TEMP_ID_PREFIX: str = "new-"
    MAX_VARIANTS_PER_PRODUCT: int = 24
    CASCADE_DELETE_LIMIT: int = 24

    # --- New entity defaults ---
    NEW_PRODUCT_NAME: str = "New Product"
    NEW_VARIANT_NAME: str = "New Variant"

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("CATALOG_LOG_LEVEL", "DEBUG")  # Run-file level

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SAMPLE_CATALOG_PATH: Path = (
        BASE_DIR / "catalog_console" / "config" / "sample_catalog.json"
    )
    LOGS_DIR: Path = BASE_DIR / "logs"
