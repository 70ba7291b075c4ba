# Copyright (c) 2022 Huawei Technologies Co.,Ltd.
#
# openGauss is licensed under Mulan PSL v2.
# You can use this software according to the terms and conditions of the Mulan PSL v2.
# You may obtain a copy of Mulan PSL v2 at:
#
#          http://license.coscl.org.cn/MulanPSL2
#
# THIS SOFTWARE IS PROVIDED ON AN "AS IS" BASIS, WITHOUT WARRANTIES OF ANY KIND,
# EITHER EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO NON-INFRINGEMENT,
# MERCHANTABILITY OR FIT FOR A PARTICULAR PURPOSE.
# See the Mulan PSL v2 for more details.
"""Sizes of every database in the cluster, their table counts and
bloat diagnostics, as well as cluster-wide cache hit and commit rates.

One cycle runs in three stages:

1. Enumerate databases with their sizes through the coordinator
   connection. It is the only deadline-bounded statement, and a
   failure here ends the cycle at once.
2. Open a short-lived connection to each discovered database to
   count its tables and to list its bloated tables.
3. Query the cache hit rate and the commit rate through the
   coordinator connection again.

Failures of stage 2 and stage 3 are collected rather than raised
immediately, so that a broken database never hides the others.
"""
import logging
import os
from concurrent.futures import ThreadPoolExecutor

from greenplum_exporter.common.exceptions import ScanError, TargetError, combine_errors
from greenplum_exporter.common.utils import cast_to_numeric, exporter_assert
from greenplum_exporter.constants import DEFAULT_QUERY_TIMEOUT
from .driver import fetch_all, make_connection_factory, query_with_deadline, splice_dsn
from .metrics import (
    database_size_desc, tables_count_desc, bloat_table_desc,
    hit_cache_rate_desc, tx_commit_rate_desc
)
from .scraper import Scraper, YAML_DIR_PATH, load_queries, scan

DATABASE_SIZE_YAML = os.path.join(YAML_DIR_PATH, 'database_size.yml')
REQUIRED_QUERIES = ('database_size', 'table_count', 'bloat_tables',
                    'hit_cache_rate', 'tx_commit_rate')

BLOAT_NONE = 0
BLOAT_MODERATE = 1
BLOAT_SIGNIFICANT = 2


def bloat_severity(diagnostic):
    """Classify a bloat diagnostic message. The checking order matters:
    'significant' wins over 'moderate'."""
    if not isinstance(diagnostic, str):
        return BLOAT_NONE
    if 'significant' in diagnostic:
        return BLOAT_SIGNIFICANT
    if 'moderate' in diagnostic:
        return BLOAT_MODERATE
    return BLOAT_NONE


class _MetricBuffer(list):
    """Holds the measurements of one database until it is its turn to be flushed."""
    put = list.append


class DatabaseSizeScraper(Scraper):
    def __init__(self, base_dsn, connection_factory=None, queries=None,
                 timeout=None, parallel=1):
        """
        :param base_dsn: the connection string of the coordinator, from which
            the connection string of each discovered database is derived.
        :param connection_factory: a callable that opens a new connection for
            a connection string.
        :param queries: a dict of :class:`Query`, by default loaded
            from the packaged YAML file.
        :param timeout: the deadline in seconds of the database enumeration.
        :param parallel: how many databases are scraped at the same time.
        """
        exporter_assert(parallel >= 1, 'The parallel must be positive.')
        self.base_dsn = base_dsn
        self.connection_factory = connection_factory or make_connection_factory()
        self.queries = queries or load_queries(DATABASE_SIZE_YAML, REQUIRED_QUERIES)
        if timeout is None:
            timeout = self.queries['database_size'].timeout
        if timeout is None:
            timeout = DEFAULT_QUERY_TIMEOUT
        self.timeout = timeout
        self.parallel = parallel

    @property
    def name(self):
        return 'database_size_scraper'

    def scrape(self, conn, sink, server_version):
        errors = []
        # If the enumeration fails, there is nothing to do for other stages.
        dbnames = self._scrape_database_sizes(conn, sink, errors)
        self._scrape_databases(dbnames, sink, errors)
        errors.append(self._scrape_rate(conn, sink, 'hit_cache_rate', hit_cache_rate_desc))
        errors.append(self._scrape_rate(conn, sink, 'tx_commit_rate', tx_commit_rate_desc))

        error = combine_errors(*errors)
        if error is not None:
            raise error

    def _scrape_database_sizes(self, conn, sink, errors):
        rows = query_with_deadline(conn, self.queries['database_size'].sql, self.timeout)
        dbnames = []
        for row in rows:
            try:
                dbname, size_mb = scan(row, str, float)
            except ScanError as e:
                errors.append(e)
                continue

            sink.put(database_size_desc.const_metric(size_mb, dbname))
            dbnames.append(dbname)
        return dbnames

    def _scrape_databases(self, dbnames, sink, errors):
        if self.parallel == 1 or len(dbnames) <= 1:
            for dbname in dbnames:
                errors.extend(self.scrape_database(dbname, sink))
            return

        with ThreadPoolExecutor(
                max_workers=self.parallel, thread_name_prefix='DatabaseScrapeWorker'
        ) as executor:
            pending = []
            for dbname in dbnames:
                buffer = _MetricBuffer()
                pending.append((buffer, executor.submit(self.scrape_database, dbname, buffer)))
            # Flush in discovery order so that the output keeps the same
            # order as the sequential one.
            for buffer, future in pending:
                target_errors = future.result()
                for metric in buffer:
                    sink.put(metric)
                errors.extend(target_errors)

    def scrape_database(self, dbname, sink):
        """Scrape one database through its own connection, which is
        always closed before returning.

        :return: a list of failures, empty if everything went well.
        """
        try:
            conn = self.connection_factory(splice_dsn(self.base_dsn, dbname))
        except Exception as e:
            logging.warning('Cannot connect to the database %s due to %s.', dbname, e)
            return [TargetError(dbname, e)]

        errors = []
        try:
            count = None
            try:
                rows = fetch_all(conn, self.queries['table_count'].sql)
                if rows:
                    count, = scan(rows[0], float)
            except Exception as e:
                errors.append(TargetError(dbname, e))

            # Independent of the table count.
            errors.extend(self._scrape_bloat_tables(conn, dbname, sink))

            if count is not None:
                sink.put(tables_count_desc.const_metric(count, dbname))
        finally:
            try:
                conn.close()
            except Exception as e:
                logging.warning('Cannot close the connection to the database %s due to %s.', dbname, e)
                errors.append(TargetError(dbname, e))
        return errors

    def _scrape_bloat_tables(self, conn, dbname, sink):
        try:
            rows = fetch_all(conn, self.queries['bloat_tables'].sql)
        except Exception as e:
            return [TargetError(dbname, e)]

        errors = []
        for row in rows:
            try:
                current_db, schema, table, relpages, exppages, diagnostic = scan(
                    row, str, str, str, str, str, None
                )
            except ScanError as e:
                errors.append(TargetError(dbname, e))
                continue

            sink.put(bloat_table_desc.const_metric(
                bloat_severity(diagnostic), current_db, schema, table, relpages, exppages
            ))
        return errors

    def _scrape_rate(self, conn, sink, query_name, desc):
        try:
            rows = fetch_all(conn, self.queries[query_name].sql)
        except Exception as e:
            return e
        if not rows:
            logging.warning("Fetched nothing for metric '%s'.", desc.fq_name)
            return None

        # Only the first row makes sense.
        try:
            value, = scan(rows[0], None)
            rate = cast_to_numeric(value)
        except ScanError as e:
            return e
        except (TypeError, ValueError) as e:
            return ScanError('Cannot parse %s: %s' % (query_name, e))

        sink.put(desc.const_metric(rate))
        return None
