# src/config/settings.py

"""Central configuration for the kaspi_catalog service."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the kaspi_catalog service."""

    # --- Upstream origin ---
    ALLOWED_ORIGIN: str = "https://kaspi.kz"
    ALLOWED_HOST: str = "kaspi.kz"
    LEGACY_PATH_PREFIX: str = "/p/"     # Rewritten to CURRENT_PATH_PREFIX
    CURRENT_PATH_PREFIX: str = "/shop/p/"
    PLACEHOLDER_IMAGE: str = (
        "https://resources.cdn-kaspi.kz/shop/medias/sys_master/"
        "images/images/h13/h52/0/0.jpg"
    )
    EMBEDDED_MARKER: str = "productListData:"

    # --- Request shaping ---
    DEFAULT_COUNT: int = 10
    MIN_COUNT: int = 1
    MAX_COUNT: int = 50
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out

    # --- Record defaults ---
    DEFAULT_RATING: float = 4.7
    MIN_RATING: float = 1.0
    MAX_RATING: float = 5.0
    MAX_IMAGES: int = 10
    FALLBACK_CATEGORY_LABEL: str = "RAM"

    # --- Abuse protection ---
    RATE_LIMIT_WINDOW: float = 60.0     # Seconds per counting window
    MAX_REQUESTS_PER_WINDOW: int = 20
    MIN_REQUEST_INTERVAL: float = 1.2   # Seconds between accepted requests

    # --- Caching ---
    SERVER_CACHE_TTL: float = 120.0     # Response cache (secs)
    CLIENT_CACHE_TTL: float = 24 * 60 * 60.0
    CLIENT_CACHE_KEY_PREFIX: str = "kaspi_category_cache_v3"

    # --- Pagination (client side) ---
    BATCH_SIZE: int = 10
    MAX_PAGE: int = 50
    EMPTY_PAGE_SCAN_LIMIT: int = 6
    MAX_TOTAL_PRODUCTS: int = 120

    # --- Resilience ---
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,*/*;q=0.8"
        ),
        "Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"macOS"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- HTTP API ---
    API_HOST: str = os.getenv("KASPI_API_HOST", "127.0.0.1")
    API_PORT: int = int(os.getenv("KASPI_API_PORT", "4000"))
    API_PARSE_PATH: str = "/api/kaspi/parse"

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = BASE_DIR / "src" / "config" / "selectors.json"
    CACHE_DIR: Path = Path(
        os.getenv("KASPI_CACHE_DIR", str(BASE_DIR / ".cache"))
    )
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Categories (registry for the client loader) ---
    CATEGORIES: list[dict[str, str]] = [
        {
            "key": "ram",
            "label": "RAM",
            "breadcrumb": "Оперативная память",
            "url": (
                "https://kaspi.kz/shop/c/ram/?q=%3Acategory%3ARAM"
                "%3Aprice%3A%D0%B1%D0%BE%D0%BB%D0%B5%D0%B5%20500%20000"
                "%20%D1%82%3AavailableInZones%3AMagnum_ZONE1"
                "&sort=relevance&sc="
            ),
        },
        {
            "key": "videocards",
            "label": "Видеокарты",
            "breadcrumb": "Видеокарты",
            "url": (
                "https://kaspi.kz/shop/c/videocards/?q=%3AavailableInZones"
                "%3AMagnum_ZONE1%3Acategory%3AVideocards"
                "&sort=relevance&sc="
            ),
        },
        {
            "key": "cpus",
            "label": "Процессоры",
            "breadcrumb": "Процессоры",
            "url": (
                "https://kaspi.kz/shop/c/cpus/?q=%3AavailableInZones"
                "%3AMagnum_ZONE1%3Acategory%3ACPUs"
                "&sort=relevance&sc="
            ),
        },
    ]
