"""Physical table discovery for the staffing module.

The CRM stores each staffing entity in a generated table (bi_t8s, bi_t14s,
...) whose name differs between deployments. The mapping lives in the
module_files metadata table, keyed by page name.

TableCache memoizes resolved names for the life of the process. The memory
layer is only coherent for a single-process deployment; run several workers
with REDIS_URL set so they share the persistent layer.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from normalizer import decode

logger = logging.getLogger(__name__)

MODULE_NAME = "staffing"
MODULE_FILES_KEY = "module_files_staffing"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class LogicalTable(str, Enum):
    CLIENT = "client"
    REQUIREMENT = "requirement"
    PROFILE = "profile"


class Source(str, Enum):
    MEMORY_CACHE = "memoryCache"
    PERSISTENT_CACHE = "persistentCache"
    METADATA_QUERY = "metadataQuery"
    DEFAULT = "default"


# Page-name keywords, checked case-insensitively against module_files.pagename
PAGE_KEYWORDS = {
    LogicalTable.CLIENT: ("client",),
    LogicalTable.REQUIREMENT: ("requirement",),
    LogicalTable.PROFILE: ("profile", "candidate", "scrape", "lead"),
}

# ILIKE pattern for the single-row metadata lookup
PAGE_PATTERNS = {
    LogicalTable.CLIENT: "%client%",
    LogicalTable.REQUIREMENT: "%requirement%",
    LogicalTable.PROFILE: "%lead%",
}

DEFAULT_TABLES = {
    LogicalTable.CLIENT: "bi_t8s",
    LogicalTable.REQUIREMENT: "bi_t14s",
    LogicalTable.PROFILE: "bi_t20s",
}


@dataclass(frozen=True)
class Resolution:
    name: LogicalTable
    physical_name: str
    source: Source


def is_identifier(name) -> bool:
    return isinstance(name, str) and bool(_IDENTIFIER.match(name))


class TableCache:
    """In-process memo in front of an optional shared store."""

    def __init__(self, store=None):
        self.store = store
        self._memory = {}

    def memory_get(self, key: str):
        return self._memory.get(key)

    def memory_set(self, key: str, value) -> None:
        self._memory[key] = value

    def store_get(self, key: str):
        if self.store is None:
            return None
        try:
            return self.store.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    def store_set(self, key: str, value) -> None:
        if self.store is None:
            return
        try:
            self.store.set(key, value)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")


class TableResolver:
    def __init__(self, query, cache: TableCache):
        self.query = query
        self.cache = cache

    def resolve(self, logical) -> str:
        return self.resolve_entry(logical).physical_name

    def resolve_entry(self, logical) -> Resolution:
        """Resolve a logical table. Never raises; worst case is the default."""
        logical = LogicalTable(logical)
        key = f"{logical.value}_table_name"

        cached = self.cache.memory_get(key)
        if cached:
            return Resolution(logical, cached, Source.MEMORY_CACHE)

        stored = self.cache.store_get(key)
        if is_identifier(stored):
            self.cache.memory_set(key, stored)
            return Resolution(logical, stored, Source.PERSISTENT_CACHE)

        physical = self._from_module_files(logical) or self._from_direct_query(logical)
        if physical:
            source = Source.METADATA_QUERY
        else:
            physical = DEFAULT_TABLES[logical]
            source = Source.DEFAULT
            logger.warning(f"Falling back to default {logical.value} table {physical}")

        self.cache.memory_set(key, physical)
        self.cache.store_set(key, physical)
        return Resolution(logical, physical, source)

    def module_files(self) -> list[dict]:
        """All staffing file/page mappings, fetched once and cached."""
        files = self.cache.memory_get(MODULE_FILES_KEY)
        if files is not None:
            return files

        files = self.cache.store_get(MODULE_FILES_KEY)
        if isinstance(files, list):
            self.cache.memory_set(MODULE_FILES_KEY, files)
            return files

        try:
            result = self.query(
                "SELECT filename, pagename, module_name FROM module_files "
                "WHERE module_name = %s",
                (MODULE_NAME,),
            )
        except Exception as e:
            logger.warning(f"Error fetching module_files: {e}")
            return []

        files = [
            {"filename": row.get("filename"), "pagename": row.get("pagename") or ""}
            for row in decode(result, "module_files")
            if row.get("filename")
        ]
        self.cache.memory_set(MODULE_FILES_KEY, files)
        self.cache.store_set(MODULE_FILES_KEY, files)
        return files

    def _from_module_files(self, logical: LogicalTable):
        keywords = PAGE_KEYWORDS[logical]
        for entry in self.module_files():
            pagename = str(entry.get("pagename") or "").lower()
            if any(word in pagename for word in keywords):
                filename = entry.get("filename")
                if is_identifier(filename):
                    return filename
                logger.warning(f"Ignoring invalid table name {filename!r} for {logical.value}")
        return None

    def _from_direct_query(self, logical: LogicalTable):
        try:
            result = self.query(
                "SELECT filename, pagename FROM module_files "
                "WHERE module_name = %s AND pagename ILIKE %s LIMIT 1",
                (MODULE_NAME, PAGE_PATTERNS[logical]),
            )
        except Exception as e:
            logger.warning(f"Error fetching {logical.value} table name: {e}")
            return None

        rows = decode(result, "module_files")
        if rows and is_identifier(rows[0].get("filename")):
            return rows[0]["filename"]
        return None
