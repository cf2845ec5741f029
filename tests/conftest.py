"""Shared fixtures: small synthetic BLAST reports written to tmp_path."""

import pytest

HEADER = b"""BLASTN 2.2.26 [Sep-21-2011]


Reference: Zheng Zhang, Scott Schwartz, Lukas Wagner, and Webb Miller
(2000), "A greedy algorithm for aligning DNA sequences", J Comput
Biol 2000; 7(1-2):203-14.

"""

HIT_RECORD = b"""Query= %s some description
         (2155 letters)

Database: refseq_rna
           1,234,567 sequences; 2,345,678,901 total letters

Searching..................................................done

                                                                 Score    E
Sequences producing significant alignments:                      (bits) Value

gi|45238847|ref|NM_000945.3| Homo sapiens protein phosphatase     4273   0.0

>gi|45238847|ref|NM_000945.3| Homo sapiens protein phosphatase
          Length = 2155

 Score = 4273 bits (2155), Expect = 0.0
 Identities = 2155/2155 (100%%)
 Strand = Plus / Plus

"""

NO_HIT_RECORD = b"""Query= %s
         (310 letters)

Database: refseq_rna
           1,234,567 sequences; 2,345,678,901 total letters

Searching..................................................done

 ***** No hits found ******

"""


def hit_record(key):
    return HIT_RECORD % key


def no_hit_record(key):
    return NO_HIT_RECORD % key


@pytest.fixture
def write_report(tmp_path):
    """Return a function writing bytes to a report file in tmp_path."""
    def write(data, name="report.blastn"):
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)
    return write


@pytest.fixture
def report_bytes():
    return (
        HEADER
        + hit_record(b"gi|45238847|ref|NM_000945.3|")
        + no_hit_record(b"gi|71143145|ref|NM_006300.2|")
        + HEADER
        + hit_record(b"gi|11111111|ref|NM_000001.1|")
    )


@pytest.fixture
def report_path(write_report, report_bytes):
    return write_report(report_bytes)


@pytest.fixture
def two_record_report(write_report):
    """Report with 'alpha' at byte 0 and 'beta' at byte 500."""
    alpha = b"Query= alpha\n"
    alpha += b"x" * (500 - len(alpha) - 1) + b"\n"
    beta = b"Query= beta\nSequences producing significant alignments:\n"
    data = alpha + beta
    assert data.index(b"Query= beta") == 500
    return write_report(data, "two.blastn"), data
