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
"""blastdex: pull single records out of a BLAST report by query id.

The first run against a report writes an index next to it (or wherever
--index says); later runs only read the index.
"""
import argparse
import itertools
import logging
import os
import sys
from .core import ReportIndexError
from .index import ReportIndex, read_keys

PROG = "blastdex"


def get_parser():
    parser = argparse.ArgumentParser(prog=PROG, description=__doc__.split(
        "\n")[0])
    parser.add_argument("report", help="BLAST report in plain-text format")
    parser.add_argument(
        "keys", nargs="*", metavar="KEY",
        help="query ids to print, in this order")
    parser.add_argument(
        "-i", "--index",
        help="index file. built if it doesn't exist (default: REPORT.idx)")
    parser.add_argument(
        "-k", "--keys-from", type=argparse.FileType("r"), metavar="FILE",
        help="read more keys from FILE, one per line ('-' for stdin)")
    parser.add_argument(
        "--db", metavar="URL",
        help="keep the index in this sqlalchemy database instead of a file")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="log progress to stderr (twice for debug output)")
    return parser


def open_engine(args):
    if args.db:
        return ReportIndex.from_db(args.report, args.db)
    return ReportIndex.open(args.report, args.index or args.report + ".idx")


def _quiet_stdout():
    # stdout is flushed again at exit, which would raise a second time
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, sys.stdout.fileno())


def run(args, out):
    engine = open_engine(args)
    keys = iter(args.keys)
    if args.keys_from:
        keys = itertools.chain(keys, read_keys(args.keys_from))
    for record in engine.iter_many(keys, raw=True):
        out.write(record)
    out.flush()


def main(argv=None):
    args = get_parser().parse_intermixed_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(
        args.verbose, logging.DEBUG)
    logging.basicConfig(
        level=level, format="%(name)s: %(levelname)s: %(message)s")
    try:
        run(args, sys.stdout.buffer)
    except ReportIndexError as err:
        print("%s: error: %s" % (PROG, err), file=sys.stderr)
        return 1
    except BrokenPipeError:
        _quiet_stdout()
        return 1
    finally:
        if args.keys_from and args.keys_from is not sys.stdin:
            args.keys_from.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
