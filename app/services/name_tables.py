"""
Name Tables

Loads the static code -> display name tables (operating systems, browsers,
countries) used to format breakdown data. Loaded once at startup and shared
read-only by every request.
"""
import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

OS_FILE = "os.json"
BROWSERS_FILE = "browsers.json"
COUNTRY_DIR = "country"


class NameTables:
    """Read-only lookup tables keyed by dimension (os, browser, country)."""

    def __init__(self, tables: Mapping[str, Mapping[str, str]]):
        self._tables = MappingProxyType(
            {dimension: MappingProxyType(dict(table)) for dimension, table in tables.items()}
        )

    @classmethod
    def load(cls, directory: str, country_locale: str = "en-US") -> "NameTables":
        """
        Load tables from a directory containing os.json, browsers.json and country/<locale>.json.

        A missing or unreadable file yields an empty table for that dimension.
        """
        base = Path(directory)
        return cls({
            "os": _load_table(base / OS_FILE),
            "browser": _load_table(base / BROWSERS_FILE),
            "country": _load_table(base / COUNTRY_DIR / f"{country_locale}.json"),
        })

    def get(self, dimension: str) -> Optional[Mapping[str, str]]:
        return self._tables.get(dimension)


def _load_table(path: Path) -> Dict[str, str]:
    if not path.exists():
        logger.warning(f"Name table not found: {path}")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error loading name table {path}: {e}", exc_info=True)
        return {}

    if not isinstance(data, dict):
        logger.error(f"Name table {path} is not a JSON object")
        return {}

    table = {str(code): str(name) for code, name in data.items()}
    logger.info(f"Loaded {len(table)} names from {path}")
    return table
