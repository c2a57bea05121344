"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import os

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


def env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


DEFAULT_MAX_CONCURRENT_RENDERS = max(4, min(32, os.cpu_count() or 4))
MAX_CONCURRENT_RENDERS = env_int(
    "FACTURA_MAX_CONCURRENT_RENDERS",
    DEFAULT_MAX_CONCURRENT_RENDERS,
    minimum=1,
)
MAX_INFLIGHT_RENDERS = env_int(
    "FACTURA_MAX_INFLIGHT_RENDERS",
    max(100, MAX_CONCURRENT_RENDERS * 4),
    minimum=1,
)
RENDER_QUEUE_TIMEOUT_MS = env_int("FACTURA_RENDER_QUEUE_TIMEOUT_MS", 120000, minimum=0)
RENDER_TIMEOUT_MS = env_int("FACTURA_RENDER_TIMEOUT_MS", 300000, minimum=1000)

MAX_BODY_BYTES = env_int("FACTURA_MAX_BODY_BYTES", 32 * 1024 * 1024, minimum=1024)
MAX_PAGES = env_int("FACTURA_MAX_PAGES", 500, minimum=1)
LISTEN_BACKLOG = env_int("FACTURA_LISTEN_BACKLOG", 512, minimum=1)

# Asset fetches are the only bounded wait in a render.
ASSET_TIMEOUT_MS = env_int("FACTURA_ASSET_TIMEOUT_MS", 5000, minimum=100)
ASSET_MAX_BYTES = env_int("FACTURA_ASSET_MAX_BYTES", 10 * 1024 * 1024, minimum=1024)
ASSET_CACHE_MAX_ENTRIES = env_int("FACTURA_ASSET_CACHE_MAX_ENTRIES", 32, minimum=0)
ASSET_CACHE_MAX_BYTES = env_int("FACTURA_ASSET_CACHE_MAX_BYTES", 64 * 1024 * 1024, minimum=0)

# Web-root paths such as "/logo.png" resolve against ASSET_BASE_URL when set,
# otherwise against ASSET_DIR on disk.
ASSET_DIR = env_str("FACTURA_ASSET_DIR", os.path.join(PROJECT_ROOT, "public"))
ASSET_BASE_URL = env_str("FACTURA_ASSET_BASE_URL", "")

# Fetched font files are written here so fpdf can load them by path; scoped by
# process to avoid cross-process write races.
ASSET_CACHE_ROOT = env_str("FACTURA_ASSET_CACHE_DIR", "/tmp/factura-asset-cache")
ASSET_CACHE_DIR = os.path.join(ASSET_CACHE_ROOT, str(os.getpid()))

DEFAULT_LOGO_SOURCE = env_str("FACTURA_DEFAULT_LOGO", "/rosegold_logo-big--white.png")
FONT_REGULAR_SOURCE = env_str("FACTURA_FONT_URL", "/fonts/Poppins-Regular.ttf")
FONT_BOLD_SOURCES = [
    source
    for source in (
        os.getenv("FACTURA_FONT_BOLD_URL", "").strip(),
        "/fonts/Poppins-SemiBold.ttf",
        "/fonts/Poppins-Medium.ttf",
    )
    if source
]

LOG_LEVEL = env_str("FACTURA_LOG_LEVEL", "INFO").upper()
