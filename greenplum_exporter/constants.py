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
__version__ = '1.0.0'

NAMESPACE = 'greenplum'
SUBSYSTEM_NODE = 'node'
SUBSYSTEM_SERVER = 'server'
SUBSYSTEM_EXPORTER = 'exporter'

# Environment variable holding the base connection string of the coordinator.
DATA_SOURCE_ENV = 'GPDB_DATA_SOURCE_URL'
APPLICATION_NAME = 'greenplum-exporter'
DEFAULT_QUERY_TIMEOUT = 2
