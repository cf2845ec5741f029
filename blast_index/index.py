"""offers a simple byte-offset index of BLAST reports, so a single record
can be pulled out of a multi-gigabyte report without reading the whole
thing. The index is a tab-separated file, one line per record:

    id  byte_offset  TRUE|FALSE  search_type  key

It's not a database. No queries, just lookups by key (see .db if you
want the entries in one).
"""
import logging
import os
from . import core
from .core import (
    BLAST, Index, IndexEntry, IndexReadError, IndexWriteError,
    ReportUnreadable,
)

logger = logging.getLogger(__name__)


def _open_report(report_path):
    try:
        return open(report_path, "rb")
    except OSError as err:
        raise ReportUnreadable(
            "cannot open report %s: %s" % (report_path, err.strerror),
            report_path,
        ) from err


def iter_entries(report_path, dialect=BLAST):
    with _open_report(report_path) as report:
        states = core.scan_records(report, dialect)
        for id_, state in enumerate(states, 1):
            yield IndexEntry(
                id_,
                state.offset,
                state.has_alignments,
                state.search_type,
                state.key,
            )


def build_index(report_path, dialect=BLAST, unique=False):
    """scan the report once and return an Index of all its records."""
    index = Index(iter_entries(report_path, dialect), unique=unique)
    logger.info("indexed %d records in %s", len(index), report_path)
    return index


def persist(index, index_path):
    try:
        with open(
                index_path, "w", encoding=core.ENCODING, errors=core.ERRORS,
                newline="\n"
        ) as out:
            for entry in index:
                out.write(entry.to_tsv())
                out.write("\n")
    except OSError as err:
        raise IndexWriteError(
            "cannot write index %s: %s" % (index_path, err.strerror),
            index_path,
        ) from err
    logger.info("wrote %d entries to %s", len(index), index_path)


def load(index_path, unique=False):
    index = Index(unique=unique)
    try:
        with open(
                index_path, encoding=core.ENCODING, errors=core.ERRORS,
                newline="\n"
        ) as file:
            for lineno, line in enumerate(file, 1):
                try:
                    entry = IndexEntry.from_tsv(line.rstrip("\n"))
                except ValueError as err:
                    raise IndexReadError(str(err), index_path, lineno) from err
                index.append(entry)
    except OSError as err:
        raise IndexReadError(
            "cannot read index %s: %s" % (index_path, err.strerror),
            index_path,
        ) from err
    logger.info("loaded %d entries from %s", len(index), index_path)
    return index


def getlines(file, address, dialect=BLAST):
    """read the raw lines of the record starting at address, up to (but
    not including) the start of the next record.
    """
    file.seek(address)
    first = file.readline()
    if not first:
        return []
    lines = [first]
    for line in file:
        if dialect.record_start(line):
            break
        lines.append(line)
    return lines


def fetch_bytes(report_path, index, key, dialect=BLAST):
    entry = index[key]
    with _open_report(report_path) as report:
        size = os.fstat(report.fileno()).st_size
        if entry.byte_offset > size:
            raise ReportUnreadable(
                "offset %d for %r is past the end of %s (%d bytes)"
                % (entry.byte_offset, key, report_path, size),
                report_path,
            )
        lines = getlines(report, entry.byte_offset, dialect)
    logger.debug("fetched %r from offset %d", key, entry.byte_offset)
    return b"".join(lines)


def fetch(report_path, index, key, dialect=BLAST):
    return core.decode(fetch_bytes(report_path, index, key, dialect))


def read_keys(file):
    """yield the keys in a list-of-keys file, one per line, trimmed.
    blank lines are skipped.
    """
    for line in map(str.strip, file):
        if line:
            yield line


class ReportIndex:
    __slots__ = "index", "report_path", "dialect"

    def __init__(self, index, report_path, dialect=BLAST):
        self.index = index
        self.report_path = report_path
        self.dialect = dialect

    def __repr__(self):
        cls = self.__class__.__qualname__
        return "%s(<%d entries>, %r)" % (cls, len(self.index), self.report_path)

    @classmethod
    def from_tsv(cls, report_path, index_path, dialect=BLAST):
        return cls(load(index_path), report_path, dialect)

    @classmethod
    def from_file(cls, report_path, dialect=BLAST):
        return cls(build_index(report_path, dialect), report_path, dialect)

    @classmethod
    def from_db(cls, report_path, sqlalchemy_url, dialect=BLAST):
        """use an index kept in a database. It's built from the report if
        the database has no entries yet.
        """
        from .db import IndexDB
        db = IndexDB(sqlalchemy_url)
        try:
            if not len(db):
                db.build_from_file(report_path, dialect=dialect)
            return cls(db.load(), report_path, dialect)
        finally:
            db.close()

    @classmethod
    def open(cls, report_path, index_path, dialect=BLAST):
        """load the index at index_path, or build it from the report and
        write it there if it doesn't exist yet. An existing index is
        trusted as is, even if the report changed since.
        """
        if os.path.exists(index_path):
            return cls.from_tsv(report_path, index_path, dialect)
        logger.info("no index at %s, building one", index_path)
        engine = cls.from_file(report_path, dialect)
        engine.save(index_path)
        return engine

    def save(self, index_path):
        persist(self.index, index_path)

    @property
    def entries(self):
        return self.index.entries

    def __len__(self):
        return len(self.index)

    def __contains__(self, key):
        return key in self.index

    def fetch_one(self, key):
        return fetch(self.report_path, self.index, key, self.dialect)

    def fetch_bytes(self, key):
        return fetch_bytes(self.report_path, self.index, key, self.dialect)

    __getitem__ = fetch_one

    def iter_many(self, keys, raw=False):
        """yield records in the order of keys. A missing key raises
        KeyNotFound when it's reached, so records for the keys before it
        have already been yielded and none after it will be.
        """
        get = self.fetch_bytes if raw else self.fetch_one
        for key in keys:
            yield get(key)

    def fetch_many(self, keys):
        return list(self.iter_many(keys))
