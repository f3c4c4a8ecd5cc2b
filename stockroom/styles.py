"""Style reference catalog (Styles.csv).

Loaded once per process and shared read-only. A reload builds the new
table completely before swapping it in, so readers see either the old or
the new table, never a partial one.
"""

import logging
import re
import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from stockroom import config
from stockroom.csv_decoder import read_table
from stockroom.logging_config import get_logger, log_catalog_event
from stockroom.models import StyleRecord

__all__ = [
    "StyleCatalog",
    "parse_style_id",
    "get_style_catalog",
    "set_style_catalog",
    "load_styles",
    "get_style",
    "search_styles",
    "list_all_styles",
]

logger = get_logger("styles")

# Digits, optionally followed by an all-zero decimal part
_STYLE_ID = re.compile(r"^(\d+)(?:\.0*)?$")

# Accepted header aliases per logical field (matched lower-cased)
STYLE_ID_ALIASES = ("styleid",)
BRAND_NAME_ALIASES = ("brandname",)
STYLE_NAME_ALIASES = ("stylename",)
TITLE_ALIASES = ("title",)
DESCRIPTION_ALIASES = ("description",)
STYLE_IMAGE_ALIASES = ("styleimage", "styleimageurl")
GENERIC_IMAGE_ALIASES = ("image",)
BRAND_IMAGE_ALIASES = ("brandimage",)


def _first(record: Dict[str, str], aliases: Sequence[str]) -> str:
    for alias in aliases:
        value = record.get(alias, "")
        if value:
            return value
    return ""


def parse_style_id(value: Union[int, str, None]) -> Optional[int]:
    """Coerce a style identifier from a cell or request parameter.

    Accepts non-negative ints, digit strings and integral decimals
    ("1001.0"). Signs, exponents and fractions return None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    match = _STYLE_ID.match(str(value).strip())
    return int(match.group(1)) if match else None


def _record_to_style(record: Dict[str, str]) -> Optional[StyleRecord]:
    style_id = parse_style_id(_first(record, STYLE_ID_ALIASES))
    if style_id is None:
        return None

    brand_image = _first(record, BRAND_IMAGE_ALIASES)
    image = (
        _first(record, STYLE_IMAGE_ALIASES)
        or _first(record, GENERIC_IMAGE_ALIASES)
        or brand_image
    )
    return StyleRecord(
        style_id=style_id,
        brand_name=_first(record, BRAND_NAME_ALIASES),
        style_name=_first(record, STYLE_NAME_ALIASES),
        title=_first(record, TITLE_ALIASES),
        description=_first(record, DESCRIPTION_ALIASES),
        image=image,
        brand_image=brand_image or None,
    )


class StyleCatalog:
    """In-memory style table indexed by numeric style identifier."""

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path or config.STYLES_CSV_PATH)
        self._lock = threading.Lock()
        self._snapshot: Optional[Tuple[Tuple[StyleRecord, ...], Dict[int, StyleRecord]]] = None

    def _read(self) -> Tuple[Tuple[StyleRecord, ...], Dict[int, StyleRecord]]:
        try:
            table = read_table(self.path)
        except OSError as e:
            log_catalog_event(
                "catalog_read_failed",
                {"message": f"Could not read styles file {self.path}: {e}", "catalog": "styles", "path": str(self.path)},
                level=logging.WARNING,
                logger_name="styles",
            )
            return (), {}

        if table is None:
            log_catalog_event(
                "catalog_missing",
                {"message": f"Styles file not found at {self.path}", "catalog": "styles", "path": str(self.path)},
                level=logging.WARNING,
                logger_name="styles",
            )
            return (), {}
        if not table.headers:
            log_catalog_event(
                "catalog_empty",
                {"message": "Styles file is empty or missing headers", "catalog": "styles", "path": str(self.path)},
                level=logging.WARNING,
                logger_name="styles",
            )
            return (), {}

        rows: List[StyleRecord] = []
        by_id: Dict[int, StyleRecord] = {}
        dropped = 0
        for record in table.records():
            style = _record_to_style(record)
            if style is None:
                dropped += 1
                continue
            rows.append(style)
            by_id.setdefault(style.style_id, style)

        if dropped:
            log_catalog_event(
                "catalog_rows_dropped",
                {"message": f"Dropped {dropped} style rows without a style id", "catalog": "styles", "dropped": dropped},
                level=logging.WARNING,
                logger_name="styles",
            )
        logger.info(f"Loaded {len(rows)} styles from {self.path.name} (delimiter {table.delimiter!r})")
        return tuple(rows), by_id

    def _current(self, refresh: bool = False) -> Tuple[Tuple[StyleRecord, ...], Dict[int, StyleRecord]]:
        snapshot = self._snapshot
        if snapshot is not None and not refresh:
            return snapshot

        with self._lock:
            if self._snapshot is not None and not refresh:
                return self._snapshot
            # Build fully, then publish in one assignment
            snapshot = self._read()
            self._snapshot = snapshot
            return snapshot

    def load(self, refresh: bool = False) -> Tuple[StyleRecord, ...]:
        """Return the style table, reading the file on first use or on refresh."""
        return self._current(refresh)[0]

    def all(self) -> List[StyleRecord]:
        return list(self.load())

    def get_by_id(self, style_id: Union[int, str]) -> Optional[StyleRecord]:
        sid = parse_style_id(style_id)
        if sid is None:
            return None
        return self._current()[1].get(sid)

    def search(self, query: str, limit: int = config.DEFAULT_SEARCH_LIMIT) -> List[StyleRecord]:
        """Styles whose brand, style name and title contain every query token.

        Tokens are whitespace-separated and matched as lower-cased substrings.
        Results keep table order; no relevance ranking.
        """
        tokens = (query or "").lower().split()
        if not tokens or limit <= 0:
            return []

        results: List[StyleRecord] = []
        for style in self.load():
            haystack = f"{style.brand_name} {style.style_name} {style.title}".lower()
            if all(token in haystack for token in tokens):
                results.append(style)
                if len(results) >= limit:
                    break
        return results

    def __len__(self) -> int:
        return len(self.load())


# Process-wide singleton
_catalog: Optional[StyleCatalog] = None
_catalog_lock = threading.Lock()


def get_style_catalog() -> StyleCatalog:
    """Get the style catalog singleton."""
    global _catalog
    if _catalog is None:
        with _catalog_lock:
            if _catalog is None:
                _catalog = StyleCatalog()
    return _catalog


def set_style_catalog(catalog: Optional[StyleCatalog]) -> None:
    """Replace the singleton (None resets it to a lazily created default)."""
    global _catalog
    with _catalog_lock:
        _catalog = catalog


def load_styles(refresh: bool = False) -> List[StyleRecord]:
    return list(get_style_catalog().load(refresh=refresh))


def get_style(style_id: Union[int, str]) -> Optional[StyleRecord]:
    return get_style_catalog().get_by_id(style_id)


def search_styles(query: str, limit: int = config.DEFAULT_SEARCH_LIMIT) -> List[StyleRecord]:
    return get_style_catalog().search(query, limit)


def list_all_styles() -> List[StyleRecord]:
    return get_style_catalog().all()
