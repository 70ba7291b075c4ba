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


class ExporterError(Exception):
    pass


class ScrapeTimeoutError(ExporterError, TimeoutError):
    """Raises when a deadline-bounded query does not finish in time."""

    def __init__(self, stmt, timeout):
        self.stmt = stmt
        self.timeout = timeout
        super().__init__(
            'Query did not finish within %ss: %s' % (timeout, ' '.join(stmt.split()))
        )


class ScanError(ExporterError):
    """Raises when a fetched row cannot be parsed into the expected types."""
    pass


class TargetError(ExporterError):
    """A failure that is scoped to one target database."""

    def __init__(self, dbname, cause):
        self.dbname = dbname
        self.cause = cause
        super().__init__('[%s] %s' % (dbname, cause))


class AggregatedError(ExporterError):
    """Carries several independent failures at once. The textual form
    lists every underlying failure so that none of them is hidden
    behind the first one."""

    def __init__(self, errors):
        self.errors = tuple(errors)
        super().__init__(self.errors)

    def __str__(self):
        return '%d errors occurred:\n%s' % (
            len(self.errors),
            '\n'.join('* %s' % e for e in self.errors)
        )

    def __len__(self):
        return len(self.errors)

    def __iter__(self):
        return iter(self.errors)


def combine_errors(*errors):
    """Reduce the failures of independent operations into one outcome.

    :return: None if nothing failed, the error itself if only one failed,
        otherwise an :class:`AggregatedError` holding all of them in order.
    """
    errors = [e for e in errors if e is not None]
    if not errors:
        return None
    if len(errors) == 1:
        return errors[0]
    return AggregatedError(errors)
