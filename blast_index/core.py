# Copyright 2017, Goethe University
#
# This library is free software; you can redistribute it and/or
# modify it either under the terms of:
#
#   the EUPL, Version 1.1 or – as soon they will be approved by the
#   European Commission - subsequent versions of the EUPL (the
#   "Licence"). You may obtain a copy of the Licence at:
#   https://joinup.ec.europa.eu/software/page/eupl
#
# or
#
#   the terms of the Mozilla Public License, v. 2.0. If a copy of the
#   MPL was not distributed with this file, You can obtain one at
#   http://mozilla.org/MPL/2.0/.
#
# If you do not alter this notice, a recipient may use your version of
# this file under either the MPL or the EUPL.
"""Module providing the types and the one-pass scanner for plain-text
BLAST reports. A report is a run of records, each starting with a
`Query=` line and running up to the next one (or to the end of the
file).

An `IndexEntry` is what the scanner remembers about a record: an id, the
byte offset of its `Query=` line, whether it has hits, which program
produced it and its key (the first token after `Query=`).

An `Index` is an ordered run of entries plus a key lookup table. If a
key shows up twice, the last one wins on lookup unless the index was
made with unique=True, in which case a DuplicateKey is raised.

A `Dialect` bundles the line recognizers the scanner relies on. `BLAST`
is the default one; pass another dialect to scan reports with different
markers without touching the scanning loop.

scan_records() walks a binary file once and yields a `RecordState`
    for every record, in the order they appear.
"""
import io
import re
from typing import (
    Dict, Iterable, Iterator, List, NamedTuple, Optional, Pattern, Union
)

ENCODING = "utf-8"
ERRORS = "surrogateescape"
SEP = "\t"
TRUE, FALSE = "TRUE", "FALSE"

RECORD_MARKER = b"Query="
ALIGNMENTS_MARKER = b"Sequences producing significant alignments"
SEARCH_TYPE_PATTERN = rb"^(T?BLAST[NPX]|PSI-BLAST|RPS-BLAST)(?:\s|$)"


def decode(raw: bytes) -> str:
    return raw.decode(ENCODING, ERRORS)


def encode(text: str) -> bytes:
    return text.encode(ENCODING, ERRORS)


# # errors # #
class ReportIndexError(Exception):
    """base class for everything this package raises on purpose."""


class ReportUnreadable(ReportIndexError, OSError):
    def __init__(self, msg, path=None):
        super().__init__(msg)
        self.msg = msg
        self.path = path

    def __str__(self):
        return self.msg


class IndexReadError(ReportIndexError):
    # raised for missing or malformed index files. lineno is 1-based and
    # None when the whole file is the problem.
    def __init__(self, msg, path=None, lineno=None):
        super().__init__(msg)
        self.msg = msg
        self.path = path
        self.lineno = lineno

    def __str__(self):
        if self.lineno is None:
            return self.msg
        return "%s:%d: %s" % (self.path, self.lineno, self.msg)


class IndexWriteError(ReportIndexError, OSError):
    def __init__(self, msg, path=None):
        super().__init__(msg)
        self.msg = msg
        self.path = path

    def __str__(self):
        return self.msg


class KeyNotFound(ReportIndexError, KeyError):
    def __init__(self, key):
        super().__init__(key)
        self.key = key

    def __str__(self):
        return "key not found in index: %r" % self.key


class DuplicateKey(ReportIndexError):
    def __init__(self, key, first_id, second_id):
        super().__init__(key)
        self.key = key
        self.first_id = first_id
        self.second_id = second_id

    def __str__(self):
        return "key %r appears in entries %d and %d" % (
            self.key, self.first_id, self.second_id)


# # types # #
class IndexEntry(NamedTuple):
    id: int
    byte_offset: int
    has_alignments: bool
    search_type: str
    key: str

    def to_tsv(self) -> str:
        return SEP.join((
            str(self.id),
            str(self.byte_offset),
            TRUE if self.has_alignments else FALSE,
            self.search_type,
            self.key,
        ))

    @classmethod
    def from_tsv(cls, line: str) -> "IndexEntry":
        """parse one index line (without its newline). Raises ValueError
        with a readable message if the line is malformed.
        """
        fields = line.split(SEP)
        if len(fields) != 5:
            raise ValueError("expected 5 fields, got %d" % len(fields))
        id_, offset, alignments, search_type, key = fields
        try:
            id_num = int(id_)
        except ValueError:
            raise ValueError("id is not an integer: %r" % id_) from None
        try:
            byte_offset = int(offset)
        except ValueError:
            raise ValueError(
                "byte offset is not an integer: %r" % offset) from None
        if byte_offset < 0:
            raise ValueError("byte offset is negative: %d" % byte_offset)
        if alignments == TRUE:
            has_alignments = True
        elif alignments == FALSE:
            has_alignments = False
        else:
            raise ValueError("bad boolean token: %r" % alignments)
        return cls(id_num, byte_offset, has_alignments, search_type, key)


class Index:
    """the ordered entries of one report plus a dictionary for lookups by
    key. Iterating gives entries in insertion order; subscripting with a
    key gives the matching entry or raises KeyNotFound.
    """

    __slots__ = "entries", "by_key", "unique"

    def __init__(self, entries: Iterable[IndexEntry] = (), unique=False):
        self.entries: List[IndexEntry] = []
        self.by_key: Dict[str, IndexEntry] = {}
        self.unique = unique
        self.extend(entries)

    def __repr__(self):
        cls = self.__class__.__qualname__
        return "%s(%r)" % (cls, self.entries)

    def append(self, entry: IndexEntry):
        if self.unique and entry.key in self.by_key:
            raise DuplicateKey(entry.key, self.by_key[entry.key].id, entry.id)
        self.entries.append(entry)
        self.by_key[entry.key] = entry

    def extend(self, entries: Iterable[IndexEntry]):
        for entry in entries:
            self.append(entry)

    def __len__(self):
        return len(self.entries)

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self.entries)

    def __contains__(self, key: str):
        return key in self.by_key

    def __getitem__(self, key: str) -> IndexEntry:
        try:
            return self.by_key[key]
        except KeyError:
            raise KeyNotFound(key) from None

    def get(self, key: str, default=None):
        return self.by_key.get(key, default)

    def keys(self):
        return self.by_key.keys()

    def __eq__(self, other):
        if not isinstance(other, Index):
            return NotImplemented
        return self.entries == other.entries


# # dialects # #
class Dialect:
    """the recognizers the scanner needs: where records start, what the
    key is, whether a record has hits and which program made it. Lines
    are bytes, as read from a file opened in binary mode, and include
    their line ending.
    """

    __slots__ = "record_marker", "alignments_marker", "search_type_re"

    def __init__(
            self,
            record_marker: bytes = RECORD_MARKER,
            alignments_marker: bytes = ALIGNMENTS_MARKER,
            search_type_pattern: Union[bytes, Pattern] = SEARCH_TYPE_PATTERN,
    ):
        self.record_marker = record_marker
        self.alignments_marker = alignments_marker
        self.search_type_re = re.compile(search_type_pattern)

    def __repr__(self):
        cls = self.__class__.__qualname__
        return "%s(%r, %r, %r)" % (
            cls,
            self.record_marker,
            self.alignments_marker,
            self.search_type_re.pattern,
        )

    def record_start(self, line: bytes) -> bool:
        return line.startswith(self.record_marker)

    def key(self, line: bytes) -> bytes:
        """first whitespace-delimited token after the record marker, or
        b"" if the marker stands alone.
        """
        tokens = line[len(self.record_marker):].split(None, 1)
        return tokens[0] if tokens else b""

    def has_alignments(self, line: bytes) -> bool:
        return line.startswith(self.alignments_marker)

    def search_type(self, line: bytes) -> Optional[bytes]:
        match = self.search_type_re.match(line)
        if match is None:
            return None
        return match.group(1)


BLAST = Dialect()


# # scanning # #
class RecordState:
    """what the scanner accumulates for the record it is currently in."""

    __slots__ = "offset", "key", "has_alignments", "search_type"

    def __init__(self, offset: int, key: str, search_type: str = ""):
        self.offset = offset
        self.key = key
        self.has_alignments = False
        self.search_type = search_type

    def __repr__(self):
        cls = self.__class__.__qualname__
        return "%s(offset=%r, key=%r, has_alignments=%r, search_type=%r)" % (
            cls, self.offset, self.key, self.has_alignments, self.search_type)

    def feed(self, line: bytes, dialect: Dialect, label: Optional[str] = None):
        """update the state with one line of the record body. label is the
        search type announced on that line, if any.
        """
        if not self.has_alignments and dialect.has_alignments(line):
            self.has_alignments = True
        if label and not self.search_type:
            self.search_type = label


def scan_records(
        file: io.BufferedIOBase, dialect: Dialect = BLAST
) -> Iterator[RecordState]:
    """yield a closed RecordState for every record in a binary report
    file, in order. Lines before the first record only matter for the
    search type they may announce. The offsets are counted from where the
    file position was when scanning started.

    A record takes the search type of the latest header line seen before
    its marker. A header line in its own body only counts when no header
    came before, so a header announcing the next record cannot relabel
    the current one. The price is that a record whose body names a
    different program than the preceding header keeps the preceding one.
    """
    offset = file.tell()
    # program label from the latest header line, carried into the next
    # record that opens
    search_type = ""
    state = None
    for line in file:
        if dialect.record_start(line):
            if state is not None:
                yield state
            state = RecordState(offset, decode(dialect.key(line)), search_type)
        else:
            label = dialect.search_type(line)
            if label is not None:
                search_type = decode(label)
            if state is not None:
                state.feed(line, dialect, search_type if label else None)
        offset += len(line)
    if state is not None:
        yield state
