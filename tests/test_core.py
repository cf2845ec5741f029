"""Unit tests for the scanner, the Index container and IndexEntry lines."""

import io

import pytest

from blast_index.core import (
    BLAST, Dialect, DuplicateKey, Index, IndexEntry, KeyNotFound,
    scan_records,
)

from conftest import HEADER, hit_record, no_hit_record


def scan(data, dialect=BLAST):
    return list(scan_records(io.BytesIO(data), dialect))


def test_scan_offsets_and_keys(report_bytes):
    states = scan(report_bytes)

    assert [s.key for s in states] == [
        "gi|45238847|ref|NM_000945.3|",
        "gi|71143145|ref|NM_006300.2|",
        "gi|11111111|ref|NM_000001.1|",
    ]
    for state in states:
        assert report_bytes[state.offset:].startswith(
            b"Query= " + state.key.encode())


def test_scan_count_matches_query_lines(report_bytes):
    expected = sum(
        1 for line in report_bytes.splitlines() if line.startswith(b"Query="))
    assert len(scan(report_bytes)) == expected == 3


def test_scan_alignments_flag(report_bytes):
    assert [s.has_alignments for s in scan(report_bytes)] == [
        True, False, True]


def test_scan_search_type_from_preceding_header(report_bytes):
    assert {s.search_type for s in scan(report_bytes)} == {"BLASTN"}


def test_search_type_of_next_header_does_not_relabel_record():
    data = (
        HEADER
        + hit_record(b"first")
        + HEADER.replace(b"BLASTN", b"TBLASTX")
        + hit_record(b"second")
    )
    states = scan(data)
    assert [s.search_type for s in states] == ["BLASTN", "TBLASTX"]


def test_search_type_inside_record_body():
    data = b"Query= q1\nBLASTP 2.2.26\n"
    assert scan(data)[0].search_type == "BLASTP"


def test_search_type_missing():
    assert scan(no_hit_record(b"q1"))[0].search_type == ""


def test_empty_report():
    assert scan(b"") == []
    assert scan(HEADER) == []


def test_truncated_last_record():
    data = hit_record(b"q1") + b"Query= q2\n  (12 let"
    states = scan(data)
    assert states[-1].key == "q2"
    assert states[-1].offset == len(hit_record(b"q1"))


def test_key_stops_at_whitespace():
    states = scan(b"Query=   abc\tdef\nQuery=xyz\nQuery=\n")
    assert [s.key for s in states] == ["abc", "xyz", ""]


def test_custom_dialect():
    dialect = Dialect(
        record_marker=b">>",
        alignments_marker=b"HIT",
        search_type_pattern=rb"^# program: (\S+)",
    )
    data = b"# program: hmmscan\n>>one\nHIT\n>>two\nnothing\n"
    states = scan(data, dialect)

    assert [(s.key, s.offset) for s in states] == [
        ("one", 19), ("two", 29)]
    assert [s.has_alignments for s in states] == [True, False]
    assert [s.search_type for s in states] == ["hmmscan", "hmmscan"]


def test_index_lookup_and_order():
    entries = [
        IndexEntry(1, 0, True, "BLASTN", "a"),
        IndexEntry(2, 10, False, "BLASTN", "b"),
    ]
    index = Index(entries)

    assert list(index) == entries
    assert len(index) == 2
    assert "a" in index and "c" not in index
    assert index["b"].byte_offset == 10
    assert index.get("c") is None


def test_index_missing_key():
    with pytest.raises(KeyNotFound) as info:
        Index()["nope"]
    assert info.value.key == "nope"
    # still usable where a KeyError is expected
    assert isinstance(info.value, KeyError)


def test_index_duplicate_last_wins():
    index = Index([
        IndexEntry(1, 0, True, "BLASTN", "a"),
        IndexEntry(2, 10, False, "BLASTN", "a"),
    ])
    assert len(index) == 2
    assert index["a"].id == 2


def test_index_duplicate_unique():
    index = Index([IndexEntry(1, 0, True, "BLASTN", "a")], unique=True)
    with pytest.raises(DuplicateKey) as info:
        index.append(IndexEntry(2, 10, False, "BLASTN", "a"))
    assert (info.value.first_id, info.value.second_id) == (1, 2)


def test_entry_tsv_line():
    entry = IndexEntry(2, 24552, True, "BLASTN", "gi|71143145|ref|NM_006300.2|")
    line = entry.to_tsv()

    assert line == "2\t24552\tTRUE\tBLASTN\tgi|71143145|ref|NM_006300.2|"
    assert IndexEntry.from_tsv(line) == entry


def test_entry_tsv_empty_fields():
    entry = IndexEntry(1, 0, False, "", "")
    assert IndexEntry.from_tsv(entry.to_tsv()) == entry


@pytest.mark.parametrize("line", [
    "1\t0\tTRUE\tBLASTN",
    "1\t0\tTRUE\tBLASTN\tkey\textra",
    "one\t0\tTRUE\tBLASTN\tkey",
    "1\tzero\tTRUE\tBLASTN\tkey",
    "1\t-5\tTRUE\tBLASTN\tkey",
    "1\t0\ttrue\tBLASTN\tkey",
    "",
])
def test_entry_tsv_malformed(line):
    with pytest.raises(ValueError):
        IndexEntry.from_tsv(line)


def test_body_header_does_not_override_preceding_header():
    data = HEADER + b"Query= a\nbody\nQuery= b\nBLASTP 2.2.26\n"
    states = scan(data)
    assert [(s.key, s.search_type) for s in states] == [
        ("a", "BLASTN"), ("b", "BLASTN")]
