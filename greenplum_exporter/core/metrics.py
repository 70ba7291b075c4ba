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
from prometheus_client.core import GaugeMetricFamily

from greenplum_exporter.common.utils import exporter_assert
from greenplum_exporter.constants import NAMESPACE, SUBSYSTEM_NODE, SUBSYSTEM_SERVER


def build_fq_name(namespace, subsystem, name):
    """Join the non-empty components with underscores."""
    return '_'.join(part for part in (namespace, subsystem, name) if part)


class Desc:
    """The declared schema of a metric: its fully-qualified name,
    help text and the ordered label names. Every measurement is
    created through :meth:`const_metric`, which checks that the label
    values line up with the declared label names."""

    def __init__(self, fq_name, documentation, label_names=None):
        self.fq_name = fq_name
        self.documentation = documentation
        self.label_names = tuple(label_names or ())

    def const_metric(self, value, *label_values):
        exporter_assert(
            len(label_values) == len(self.label_names),
            'Metric %s expects %d label values but got %d.' % (
                self.fq_name, len(self.label_names), len(label_values))
        )
        family = GaugeMetricFamily(
            self.fq_name, self.documentation, labels=self.label_names
        )
        family.add_metric([str(v) for v in label_values], value)
        return family

    def __repr__(self):
        return 'Desc(%s, labels=%s)' % (self.fq_name, list(self.label_names))


database_size_desc = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM_NODE, 'database_name_mb_size'),
    'Total MB size of each database name in the file system',
    ['dbname']
)

tables_count_desc = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM_NODE, 'database_table_total_count'),
    'Total table count of each database name in the file system',
    ['dbname']
)

bloat_table_desc = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM_SERVER, 'database_table_bloat_list'),
    'Bloat table list of each database name in greenplum cluster',
    ['dbname', 'schema', 'table', 'relpages', 'exppages']
)

hit_cache_rate_desc = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM_SERVER, 'database_hit_cache_percent_rate'),
    'Cache hit percent rate for all of database in greenplum server system'
)

tx_commit_rate_desc = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM_SERVER, 'database_transition_commit_percent_rate'),
    'Transaction commit percent rate for all of database in greenplum server system'
)
