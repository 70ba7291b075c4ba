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
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from greenplum_exporter.common.http import HttpService
from greenplum_exporter.common.http import Response
from .service import query_all_metrics

app = HttpService('Greenplum-exporter')


@app.route('/', methods=['GET', 'POST'])
def index(*args):
    return Response('Greenplum exporter')


def metrics(*args):
    return Response(query_all_metrics(), media_type=CONTENT_TYPE_LATEST)


def run(host, port, telemetry_path, ssl_keyfile, ssl_certfile, ssl_keyfile_password, ssl_ca_file):
    app.attach(metrics, telemetry_path)
    app.start_listen(host, port, ssl_keyfile, ssl_certfile, ssl_keyfile_password, ssl_ca_file)
