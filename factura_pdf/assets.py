"""Logo, signature and font asset loading.

Every loader returns ``None`` on failure so that a render never aborts
because of a missing or broken asset.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import io
import logging
import os
import re
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, List, Optional
from urllib.parse import urljoin

import httpx
from PIL import Image

from . import config

logger = logging.getLogger(__name__)

DATA_URI_RE = re.compile(r"^data:(.*?);base64,(.*)$", re.DOTALL)
FONT_EXTENSIONS = (".ttf", ".otf")


@dataclass(frozen=True)
class EmbeddedImage:
    image: Any
    width: int
    height: int
    format: str = "PNG"

    def scaled_width(self, height: float) -> float:
        if not self.height:
            return 0.0
        return height * self.width / self.height


class AssetCache:
    """Process-wide LRU cache of fetched asset bytes keyed by resolved location.

    Bounded by entry count and total bytes; the least recently used entries
    are evicted first. Call ``clear()`` after changing the asset configuration.
    """

    def __init__(self, max_entries: Optional[int] = None, max_bytes: Optional[int] = None) -> None:
        self.max_entries = config.ASSET_CACHE_MAX_ENTRIES if max_entries is None else max_entries
        self.max_bytes = config.ASSET_CACHE_MAX_BYTES if max_bytes is None else max_bytes
        self._entries: "OrderedDict[str, bytes]" = OrderedDict()
        self._size = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            data = self._entries.get(key)
            if data is not None:
                self._entries.move_to_end(key)
            return data

    def put(self, key: str, data: bytes) -> None:
        if len(data) > self.max_bytes or self.max_entries < 1:
            return
        with self._lock:
            previous = self._entries.pop(key, None)
            if previous is not None:
                self._size -= len(previous)
            self._entries[key] = data
            self._size += len(data)
            while len(self._entries) > self.max_entries or self._size > self.max_bytes:
                _, evicted = self._entries.popitem(last=False)
                self._size -= len(evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._size = 0

    
    def size(self) -> int:
        with self._lock:
            return self._size

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


ASSET_CACHE = AssetCache()


def is_remote(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def decode_data_uri(source: str) -> Optional[bytes]:
    match = DATA_URI_RE.match(source)
    if not match:
        return None
    try:
        return base64.b64decode(match.group(2))
    except (binascii.Error, ValueError):
        return None


def _inside_asset_dir(path: str) -> bool:
    root = os.path.realpath(config.ASSET_DIR)
    return os.path.commonpath([root, os.path.realpath(path)]) == root


def resolve_location(source: str, trusted: bool = False) -> Optional[str]:
    """Map a source to a URL or an existing local file path.

    Local paths must resolve inside ``config.ASSET_DIR``. Only ``trusted``
    sources (configured defaults, never request input) may name any file.
    """
    source = source.strip()
    if not source:
        return None
    if is_remote(source):
        return source
    if config.ASSET_BASE_URL and source.startswith("/"):
        return urljoin(config.ASSET_BASE_URL, source)

    candidate = os.path.join(config.ASSET_DIR, source.lstrip("/"))
    if os.path.isfile(candidate) and _inside_asset_dir(candidate):
        return os.path.realpath(candidate)
    if trusted and os.path.isfile(source):
        return source
    return None


def _read_remote(url: str) -> Optional[bytes]:
    try:
        response = httpx.get(
            url,
            timeout=config.ASSET_TIMEOUT_MS / 1000.0,
            follow_redirects=True,
        )
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("Asset fetch failed for %s: %s", url, exc)
        return None
    return response.content


def _read_local(path: str) -> Optional[bytes]:
    try:
        with open(path, "rb") as handle:
            return handle.read(config.ASSET_MAX_BYTES + 1)
    except OSError as exc:
        logger.warning("Asset read failed for %s: %s", path, exc)
        return None


def fetch_bytes(
    source: Optional[str],
    cache: AssetCache = ASSET_CACHE,
    trusted: bool = False,
    accept: Optional[Callable[[bytes], bool]] = None,
) -> Optional[bytes]:
    """Return the bytes behind ``source``.

    Fetched bytes enter ``cache`` only when ``accept`` (if given) approves
    them. Data URIs are decoded in place and never cached.
    """
    if not source or not source.strip():
        return None
    if source.startswith("data:"):
        data = decode_data_uri(source)
        if not data:
            logger.warning("Ignoring malformed data URI asset")
        return data or None

    location = resolve_location(source, trusted=trusted)
    if location is None:
        logger.debug("Asset not found or not allowed: %s", source)
        return None

    cached = cache.get(location)
    if cached is not None:
        return cached

    data = _read_remote(location) if is_remote(location) else _read_local(location)
    if not data:
        return None
    if len(data) > config.ASSET_MAX_BYTES:
        logger.warning("Asset %s exceeds %d bytes; skipping", source, config.ASSET_MAX_BYTES)
        return None
    if accept is None or accept(data):
        cache.put(location, data)
    return data


def decode_image(data: bytes) -> Optional[EmbeddedImage]:
    """Decode PNG, falling back to JPEG."""
    for image_format in ("PNG", "JPEG"):
        try:
            image = Image.open(io.BytesIO(data), formats=[image_format])
            image.load()
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError):
            continue
        if not image.width or not image.height:
            return None
        return EmbeddedImage(
            image=image,
            width=image.width,
            height=image.height,
            format=image_format,
        )
    return None


def load_image(
    source: Optional[str],
    cache: AssetCache = ASSET_CACHE,
    trusted: bool = False,
) -> Optional[EmbeddedImage]:
    decoded: List[EmbeddedImage] = []

    def accept(data: bytes) -> bool:
        image = decode_image(data)
        if image is not None:
            decoded.append(image)
        return image is not None

    data = fetch_bytes(source, cache, trusted=trusted, accept=accept)
    if data is None:
        return None
    image = decoded[0] if decoded else decode_image(data)
    if image is None:
        logger.warning("Asset is neither PNG nor JPEG: %.80s", source)
    return image


def load_font_file(source: Optional[str], cache: AssetCache = ASSET_CACHE) -> Optional[str]:
    """Return a local path for a configured font source, downloading it when remote."""
    if not source or not source.strip():
        return None
    if not source.startswith("data:"):
        location = resolve_location(source, trusted=True)
        if location is not None and not is_remote(location):
            return location

    data = fetch_bytes(source, cache, trusted=True)
    if data is None:
        return None

    extension = os.path.splitext(source.split("?", 1)[0])[1].lower()
    if extension not in FONT_EXTENSIONS:
        extension = ".ttf"
    path = os.path.join(config.ASSET_CACHE_DIR, hashlib.sha256(data).hexdigest() + extension)
    if os.path.exists(path):
        return path
    try:
        os.makedirs(config.ASSET_CACHE_DIR, exist_ok=True)
        with open(path, "wb") as handle:
            handle.write(data)
    except OSError as exc:
        logger.warning("Could not cache font %s: %s", source, exc)
        return None
    return path
