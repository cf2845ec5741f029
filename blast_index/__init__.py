from .core import (
    BLAST, Dialect, DuplicateKey, Index, IndexEntry, IndexReadError,
    IndexWriteError, KeyNotFound, ReportIndexError, ReportUnreadable,
)
from .index import (
    ReportIndex, build_index, fetch, fetch_bytes, load, persist, read_keys,
)
