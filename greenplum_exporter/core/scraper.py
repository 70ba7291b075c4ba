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
import os
from abc import ABC, abstractmethod

import yaml

from greenplum_exporter.common.exceptions import ScanError
from greenplum_exporter.common.utils import exporter_assert

YAML_DIR_PATH = os.path.realpath(
    os.path.join(os.path.dirname(__file__), '..', 'yamls')
)


class Scraper(ABC):
    """The unit of work that is invoked once per scrape cycle.

    An implementation pushes every measurement it produces into
    ``sink`` (anything with a ``put()`` method) as soon as the
    measurement is parsed. Partial failures must not stop the cycle,
    they are raised together once the cycle is over.
    """

    @property
    @abstractmethod
    def name(self):
        pass

    @abstractmethod
    def scrape(self, conn, sink, server_version):
        """Run one collection cycle.

        :param conn: the borrowed connection to the coordinator, never closed here.
        :param sink: the output stream of measurements.
        :param server_version: the server version as an integer, reserved
            for version-specific statements.
        """
        pass


def scan(row, *types):
    """Parse a fetched row into a tuple of values. Each type converts the
    value of its column. A type of None keeps the raw value, including NULL.

    :raise ScanError: if the number of columns does not match, a column
        is NULL or cannot be converted.
    """
    if row is None or len(row) != len(types):
        raise ScanError(
            'Expected %d columns but got %s.' % (len(types), 'nothing' if row is None else len(row))
        )
    values = []
    for index, (value, type_) in enumerate(zip(row, types)):
        if type_ is None:
            values.append(value)
            continue
        if value is None:
            raise ScanError('Column %d is NULL and cannot be converted to %s.' % (index, type_.__name__))
        try:
            values.append(type_(value))
        except (TypeError, ValueError) as e:
            raise ScanError(
                'Column %d (%r) cannot be converted to %s: %s' % (index, value, type_.__name__, e)
            ) from e
    return tuple(values)


class Query:
    def __init__(self, name, item):
        self.name = name
        self.sql = item['sql']
        self.timeout = item.get('timeout')

    def __repr__(self):
        return 'Query(%s)' % self.name


def load_queries(filepath, required=()):
    with open(filepath, errors='ignore') as fp:
        parsed_yml = yaml.load(fp, Loader=yaml.FullLoader)
    exporter_assert(isinstance(parsed_yml, dict), 'Invalid query file %s.' % filepath)

    queries = dict()
    for name, item in parsed_yml.items():
        exporter_assert(isinstance(item, dict) and 'sql' in item,
                        'The query %s in %s does not have a SQL statement.' % (name, filepath))
        queries[name] = Query(name, item)

    missing = set(required) - set(queries)
    exporter_assert(not missing, 'Not found queries %s in %s.' % (sorted(missing), filepath))
    return queries
