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
import logging
from . import core, index as tsv
import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)
Base = declarative_base()


class Entry(Base):
    __tablename__ = 'entries'

    id = sa.Column(sa.Integer, primary_key=True, autoincrement=False)
    byte_offset = sa.Column(sa.BigInteger, nullable=False)
    has_alignments = sa.Column(sa.Boolean, nullable=False)
    search_type = sa.Column(sa.String, nullable=False)
    key = sa.Column(sa.String, index=True, nullable=False)

    def to_entry(self):
        return core.IndexEntry(
            self.id, self.byte_offset, self.has_alignments,
            self.search_type, self.key)


class IndexDB:
    """keeps the index entries of a report in a database instead of a
    tsv file. Lookups return core.IndexEntry instances, so anything that
    takes an Index can be fed from here with .load().
    """
    def __init__(self, sqlachemy_url):
        """database for index entries.

        - sqlachemy_url: a sqlalchemy-format database url. see:
        https://docs.sqlalchemy.org/en/latest/core/engines.html#database-urls
        """
        self.engine = sa.create_engine(sqlachemy_url)
        Session = sessionmaker(bind=self.engine)
        self.session = Session()

    def create(self):
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as err:
            raise core.IndexWriteError(
                "cannot create index tables: %s" % err) from err

    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        if type:
            self.session.rollback()
        else:
            self.session.commit()

    def close(self):
        self.session.close()
        self.engine.dispose()

    def __len__(self):
        try:
            if not sa.inspect(self.engine).has_table(Entry.__tablename__):
                return 0
            return self.session.query(Entry).count()
        except SQLAlchemyError as err:
            raise core.IndexReadError(
                "cannot query index database: %s" % err) from err

    def __getitem__(self, key):
        """entry for key. If there are several, the one with the highest id
        wins, same as in core.Index.
        """
        try:
            row = self.session.query(Entry).filter_by(key=key)\
                .order_by(Entry.id.desc()).first()
        except SQLAlchemyError as err:
            raise core.IndexReadError(
                "cannot query index database: %s" % err) from err
        if row is None:
            raise core.KeyNotFound(key)
        return row.to_entry()

    def load(self, unique=False):
        try:
            rows = self.session.query(Entry).order_by(Entry.id).all()
        except SQLAlchemyError as err:
            raise core.IndexReadError(
                "cannot read index database: %s" % err) from err
        index = core.Index((r.to_entry() for r in rows), unique=unique)
        logger.info("loaded %d entries from database", len(index))
        return index

    def add_entry(self, entry):
        self.session.add(Entry(**entry._asdict()))

    def add_index(self, index):
        self.create()
        try:
            with self:
                for entry in index:
                    self.add_entry(entry)
        except SQLAlchemyError as err:
            raise core.IndexWriteError(
                "cannot write index database: %s" % err) from err
        logger.info("wrote %d entries to database", len(index))

    def build_from_file(self, report_path, commit_every=10000,
                        dialect=core.BLAST):
        for i in self.bff_iter(report_path, commit_every, dialect):
            pass

    def bff_iter(self, report_path, commit_every=10000, dialect=core.BLAST):
        """build the index from a report, committing every commit_every
        entries. Yields the number of entries written at each commit.
        """
        self.create()
        i = 0
        try:
            with self:
                for i, entry in enumerate(
                        tsv.iter_entries(report_path, dialect), 1):
                    self.add_entry(entry)
                    if i % commit_every == 0:
                        self.session.commit()
                        yield i
                if i % commit_every or i == 0:
                    yield i
        except SQLAlchemyError as err:
            raise core.IndexWriteError(
                "cannot write index database: %s" % err) from err
        logger.info("indexed %d records from %s into database",
                    i, report_path)
