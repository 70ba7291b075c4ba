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
from greenplum_exporter.common.exceptions import (
    AggregatedError, ExporterError, ScanError, ScrapeTimeoutError, TargetError, combine_errors
)


def test_combine_nothing():
    assert combine_errors() is None
    assert combine_errors(None, None) is None


def test_combine_single_error():
    e = ValueError('only one')
    assert combine_errors(None, e, None) is e


def test_combine_many_errors():
    first = ScanError('bad row')
    second = TargetError('sales', ConnectionError('refused'))
    third = RuntimeError('boom')

    combined = combine_errors(first, None, second, third)
    assert isinstance(combined, AggregatedError)
    assert isinstance(combined, ExporterError)
    assert combined.errors == (first, second, third)
    assert len(combined) == 3

    message = str(combined)
    assert message.startswith('3 errors occurred:')
    assert 'bad row' in message
    assert '[sales] refused' in message
    assert 'boom' in message
    assert message.index('bad row') < message.index('refused') < message.index('boom')


def test_timeout_error():
    e = ScrapeTimeoutError('SELECT *\n    FROM gp_toolkit.gp_size_of_database;', 2)
    assert isinstance(e, TimeoutError)
    assert e.timeout == 2
    assert str(e) == 'Query did not finish within 2s: SELECT * FROM gp_toolkit.gp_size_of_database;'


def test_target_error():
    cause = ConnectionError('refused')
    e = TargetError('app', cause)
    assert e.dbname == 'app'
    assert e.cause is cause
    assert str(e) == '[app] refused'
