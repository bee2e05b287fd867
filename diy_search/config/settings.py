# diy_search/config/settings.py

"""Central configuration for the diy_search engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    """Read a float override from the environment, keeping *default* on junk."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Settings:
    """Central configuration for the diy_search engine."""

    # --- Scraping ---
    REQUEST_DELAY: float = 1.0          # Back-off base between retries
    REQUEST_TIMEOUT: int = 10           # Seconds before a request times out
    MAX_RETRIES: int = 2                # Retry count on transient failures
    SOURCE_DEADLINE_MULTIPLIER: float = 2.0  # Per-retailer deadline = timeout x this

    # --- Resilience ---
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Search ---
    MAX_TERM_LENGTH: int = 64
    DEFAULT_RESULT_LIMIT: int = 75      # Results requested per retailer
    DISPLAY_LIMIT: int = 15             # Rows shown per retailer in views
    SCREWFIX_MIN_PRODUCTS: int = 3      # Below this, probe more shapes
    SCREWFIX_SCAN_CAP: int = 50         # Max items kept by the deep scan

    # --- Authenticated session (Toolstation) ---
    SESSION_SAFETY_MARGIN: float = 60.0
    SESSION_DEFAULT_TTL: float = 45 * 60.0
    TOKEN_COOKIE_NAME: str = "ecomApiAccessToken"

    # --- Images ---
    IMAGE_PROXY_ENDPOINT: str = os.getenv(
        "DIY_SEARCH_IMAGE_PROXY", "/api/image-proxy"
    )
    PROXIED_IMAGE_HOSTS: list[str] = [
        "assets.diy.com",
        "www.diy.com",
        "media.diy.com",
        "images.diy.com",
        "scene7.com",
    ]
    IMAGE_PROXY_ALLOWED_HOSTS: list[str] = [
        "assets.diy.com",
        "www.diy.com",
        "media.diy.com",
        "images.diy.com",
        "img.diy.com",
        "s7g10.scene7.com",
        "s7g1.scene7.com",
        "scene7.com",
    ]
    IMAGE_DEFAULTS: dict[str, str] = {
        "wid": "300",
        "hei": "300",
        "fmt": "jpg",
        "qlt": "80",
    }
    IMAGE_CACHE_CONTROL: str = "public, max-age=86400"

    # --- Product matching ---
    MATCH_THRESHOLD: float = _env_float(
        "DIY_SEARCH_MATCH_THRESHOLD", 0.5
    )
    MATCH_WEIGHTS: dict[str, float] = {
        "term": 0.25,
        "spec": 0.35,
        "partial": 0.20,
        "levenshtein": 0.15,
        "numbers": 0.05,
    }
    MATCH_STOP_WORDS: frozenset[str] = frozenset({
        "the", "and", "for", "with", "set", "pack", "kit", "tool",
        "tools", "professional", "pro", "premium", "standard", "basic",
        "deluxe", "heavy", "duty", "diy", "home", "garden", "indoor",
        "outdoor", "black", "white", "red", "blue", "green", "yellow",
        "orange", "silver", "gold", "chrome",
    })
    # Measurement tokens, applied in order to normalised titles
    SPEC_PATTERNS: list[tuple[str, str]] = [
        ("count", r"\b\d+\s?pcs?\b"),
        ("volume", r"\b\d+(?:\.\d+)?\s?(?:ml|l)\b"),
        ("length", r"\b\d+(?:\.\d+)?\s?mm\b"),
        ("fraction_inch", r"\b\d+/\d+\s?(?:inch|in)\b"),
        ("decimal_inch", r"\b\d+\.\d+\s?(?:inch|in)\b"),
        ("dimensions", r"\b\d+(?:\.\d+)?\s?x\s?\d+(?:\.\d+)?\b"),
        ("mass", r"\b\d+(?:\.\d+)?\s?kg\b"),
        ("power", r"\b\d+\s?w\b"),
        ("voltage", r"\b\d+\s?v\b"),
    ]

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,*/*;q=0.8"
        ),
        "Accept-Language": "en-GB,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Logging ---
    LOG_FILE_LEVEL: str = os.getenv("DIY_SEARCH_LOG_FILE_LEVEL", "DEBUG")
    LOG_CONSOLE_LEVEL: str | None = os.getenv("DIY_SEARCH_LOG_LEVEL")
    # Console level per launch mode; the TUI owns the terminal
    LOG_CONSOLE_LEVELS: dict[str, str] = {
        "cli": "WARNING",
        "tui": "CRITICAL",
        "api": "INFO",
    }
    # Transport libraries that are chatty at DEBUG
    QUIET_LOGGERS: list[str] = ["curl_cffi", "urllib3", "cloudscraper"]

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Sources (registry; timeout is the per-retailer deadline) ---
    AVAILABLE_SOURCES: list[dict[str, str]] = [
        {
            "id": "bq",
            "label": "B&Q",
            "scraper": "diy_search.scrapers.bq_scraper.BQScraper",
            "timeout": "10",
        },
        {
            "id": "screwfix",
            "label": "Screwfix",
            "scraper": "diy_search.scrapers.screwfix_scraper.ScrewfixScraper",
            "timeout": "10",
        },
        {
            "id": "toolstation",
            "label": "Toolstation",
            "scraper": (
                "diy_search.scrapers.toolstation_scraper.ToolstationScraper"
            ),
            "timeout": "20",
        },
    ]
