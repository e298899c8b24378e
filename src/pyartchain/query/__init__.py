"""Keyed fetch cache.

``QueryCache`` owns the entry table and is the single place where entries
change state; ``ConditionalFetch`` decides *when* a key may be loaded.
"""

from pyartchain.query.cache import QueryCache
from pyartchain.query.entry import EntrySnapshot, ErrorInfo, FetchStatus
from pyartchain.query.gate import ConditionalFetch
from pyartchain.query.keys import QueryKey, optional_key, query_key

__all__ = [
    "ConditionalFetch",
    "EntrySnapshot",
    "ErrorInfo",
    "FetchStatus",
    "QueryCache",
    "QueryKey",
    "optional_key",
    "query_key",
]
