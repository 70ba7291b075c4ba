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
import logging
import queue
import threading
import time
from collections import OrderedDict

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.exposition import generate_latest
from prometheus_client.registry import CollectorRegistry

from greenplum_exporter.common.utils import exporter_assert, wipe_off_password
from greenplum_exporter.common.exceptions import ScrapeTimeoutError
from greenplum_exporter.constants import DEFAULT_QUERY_TIMEOUT, NAMESPACE, SUBSYSTEM_EXPORTER
from .database_size import DatabaseSizeScraper, DATABASE_SIZE_YAML, REQUIRED_QUERIES
from .driver import discard_connection, make_connection_factory, query_with_deadline
from .metrics import build_fq_name
from .scraper import load_queries

UP_METRIC = build_fq_name(NAMESPACE, '', 'up')
SCRAPE_DURATION_METRIC = build_fq_name(NAMESPACE, SUBSYSTEM_EXPORTER, 'scrape_duration_seconds')
LAST_SCRAPE_ERROR_METRIC = build_fq_name(NAMESPACE, SUBSYSTEM_EXPORTER, 'last_scrape_error')
SCRAPES_TOTAL_METRIC = build_fq_name(NAMESPACE, SUBSYSTEM_EXPORTER, 'scrapes_total')

_registry = CollectorRegistry()
collector = None


def drain(sink):
    while True:
        try:
            yield sink.get_nowait()
        except queue.Empty:
            return


class ScrapeCollector:
    """A Prometheus collector that runs every scraper once per collection.

    The connection to the coordinator is cached between collections
    and is checked before each use, reconnecting if it has become invalid.
    The check gives up after ``timeout`` seconds like the scrapers do.
    """

    def __init__(self, dsn, scrapers, connect=None, timeout=DEFAULT_QUERY_TIMEOUT):
        exporter_assert(len(scrapers) > 0)
        self.dsn = dsn
        self.scrapers = list(scrapers)
        self._connect = connect or make_connection_factory()
        self.timeout = timeout
        self._conn = None
        self._lock = threading.Lock()
        self._scrapes_total = 0

    def check_connection(self):
        try:
            self._get_conn()
        except Exception as e:
            raise ConnectionError(e)

    def _get_conn(self):
        if self._conn is None or self._conn.closed:
            self._conn = self._connect(self.dsn)
            return self._conn

        # Check whether the connection is timeout or invalid.
        try:
            query_with_deadline(self._conn, 'select 1;', self.timeout)
        except ScrapeTimeoutError as e:
            logging.warning('Cached connection to the coordinator hangs: %s, reconnecting.', e)
            self.discard()
            self._conn = self._connect(self.dsn)
        except Exception as e:
            logging.warning(
                'Cached connection to the coordinator has been invalid due to %s, reconnecting.', e
            )
            self.close()
            self._conn = self._connect(self.dsn)
        return self._conn

    def close(self):
        if self._conn is None:
            return
        try:
            self._conn.close()
        except Exception as e:
            logging.warning('Failed to close the connection to the coordinator: %s.', e)
        finally:
            self._conn = None

    def discard(self):
        """Forget the cached connection without waiting for it to close,
        because it may still be stuck in a statement."""
        if self._conn is not None:
            discard_connection(self._conn)
            self._conn = None

    def describe(self):
        # Avoid scraping the database while registering.
        return []

    def collect(self):
        with self._lock:
            return list(self._collect())

    def _collect(self):
        self._scrapes_total += 1
        yield CounterMetricFamily(
            SCRAPES_TOTAL_METRIC, 'Total number of times the exporter was scraped for metrics.',
            value=self._scrapes_total
        )

        try:
            conn = self._get_conn()
        except Exception as e:
            logging.error('Cannot connect to %s: %s.', wipe_off_password(self.dsn), e)
            yield GaugeMetricFamily(UP_METRIC, 'Whether the Greenplum coordinator is up.', value=0)
            return
        yield GaugeMetricFamily(UP_METRIC, 'Whether the Greenplum coordinator is up.', value=1)

        duration = GaugeMetricFamily(
            SCRAPE_DURATION_METRIC, 'Duration in seconds of the scrape of each scraper.',
            labels=['collector']
        )
        last_error = GaugeMetricFamily(
            LAST_SCRAPE_ERROR_METRIC, 'Whether the last scrape of each scraper resulted in an error (1 for error).',
            labels=['collector']
        )
        families = OrderedDict()
        server_version = getattr(conn, 'server_version', 0)
        for scraper in self.scrapers:
            sink = queue.Queue()
            start = time.monotonic()
            failed = 0
            try:
                if self._conn is None:
                    # The previous scraper has given up the connection.
                    conn = self._get_conn()
                scraper.scrape(conn, sink, server_version)
            except ScrapeTimeoutError as e:
                failed = 1
                logging.error('Timeout occurred while running %s: %s', scraper.name, e)
                # The statement may still be running on the cached connection.
                self.discard()
            except Exception as e:
                failed = 1
                logging.error('Error occurred while running %s: %s', scraper.name, e)
            duration.add_metric([scraper.name], time.monotonic() - start)
            last_error.add_metric([scraper.name], failed)

            # Measurements sharing one name are exposed as one family.
            for metric in drain(sink):
                family = families.get(metric.name)
                if family is None:
                    families[metric.name] = metric
                else:
                    family.samples.extend(metric.samples)

        yield from families.values()
        yield duration
        yield last_error


def config_collecting_params(url, timeout=None, parallel=1, connect_timeout=0,
                             statement_timeout=0, queries_file=None):
    global collector

    queries = load_queries(queries_file or DATABASE_SIZE_YAML, REQUIRED_QUERIES)
    scraper = DatabaseSizeScraper(
        url,
        connection_factory=make_connection_factory(connect_timeout, statement_timeout),
        queries=queries,
        timeout=timeout,
        parallel=parallel
    )
    new_collector = ScrapeCollector(url, [scraper], connect=make_connection_factory(connect_timeout),
                                    timeout=scraper.timeout)
    # If cannot access, raise a ConnectionError.
    new_collector.check_connection()

    if collector is not None:
        _registry.unregister(collector)
        collector.close()
    collector = new_collector
    _registry.register(collector)
    logging.info(
        'Monitoring %s, timeout of enumerating databases: %ss, parallel: %d.',
        wipe_off_password(url), scraper.timeout, parallel
    )


def query_all_metrics():
    return generate_latest(_registry)
