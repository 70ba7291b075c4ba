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
import math
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

import psycopg2
import psycopg2.extensions

from greenplum_exporter.common.exceptions import ScrapeTimeoutError
from greenplum_exporter.common.utils import wipe_off_password
from greenplum_exporter.constants import APPLICATION_NAME


def splice_dsn(base_dsn, dbname):
    """Derive the connection string of another database on the same
    cluster by substituting its name into the base connection string.
    Both URL and key/value connection strings are accepted."""
    parsed_dsn = psycopg2.extensions.parse_dsn(base_dsn)
    parsed_dsn['dbname'] = dbname
    return psycopg2.extensions.make_dsn(**parsed_dsn)


def make_connection_factory(connect_timeout=0, statement_timeout=0):
    """Return a callable that opens a new, independent connection for a
    connection string. Timeouts are in seconds and 0 disables them."""
    connect_kwargs = {'application_name': APPLICATION_NAME}
    if connect_timeout:
        # libpq only accepts whole seconds here.
        connect_kwargs['connect_timeout'] = max(2, int(math.ceil(connect_timeout)))
    statement_option = None
    if statement_timeout:
        statement_option = '-c statement_timeout=%d' % int(statement_timeout * 1000)

    def connect(dsn):
        logging.debug('Connecting to %s.', wipe_off_password(dsn))
        kwargs = dict(connect_kwargs)
        if statement_option:
            # Keyword arguments win over the connection string, so keep
            # the server options that the user has already given.
            options = psycopg2.extensions.parse_dsn(dsn).get('options')
            kwargs['options'] = '%s %s' % (options, statement_option) if options else statement_option
        return psycopg2.connect(dsn, **kwargs)

    return connect


def fetch_all(conn, stmt):
    """Execute a read-only statement and return all rows.

    The transaction is always finished afterwards, so a failed
    statement cannot poison the following statements that are
    issued through the same connection.
    """
    logging.debug('Query the SQL statement: %s.', stmt)
    try:
        with conn.cursor() as cursor:
            cursor.execute(stmt)
            rows = cursor.fetchall()
    except Exception:
        try:
            conn.rollback()
        except Exception as e:
            logging.warning('Cannot roll back the connection due to %s.', e)
        raise
    conn.commit()
    return rows


def query_with_deadline(conn, stmt, timeout):
    """Same as :func:`fetch_all` but gives up after ``timeout`` seconds.

    The statement runs in a worker thread. Once the deadline expires,
    a cancel request is sent to the server in the background and
    :class:`ScrapeTimeoutError` raises at once. A non-positive timeout
    means waiting forever.
    """
    if not timeout or timeout <= 0:
        return fetch_all(conn, stmt)

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='DeadlineQueryWorker')
    future = executor.submit(fetch_all, conn, stmt)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        logging.warning('The statement exceeded the deadline %ss, cancelling it: %s.', timeout, stmt)
        # PQcancel waits for the server, which may never answer.
        run_in_background(conn.cancel, 'cancel the running statement')
        raise ScrapeTimeoutError(stmt, timeout) from None
    finally:
        executor.shutdown(wait=False)


def discard_connection(conn):
    """Close a connection that may be stuck in a statement without
    waiting for it."""
    run_in_background(conn.close, 'close the discarded connection')


def run_in_background(func, action):
    def target():
        try:
            func()
        except Exception as e:
            logging.warning('Cannot %s due to %s.', action, e)

    thread = threading.Thread(target=target, name='DriverBackgroundWorker', daemon=True)
    thread.start()
    return thread
