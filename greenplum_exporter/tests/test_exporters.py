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
from unittest import mock

import pytest
from fastapi.testclient import TestClient

from greenplum_exporter.constants import DATA_SOURCE_ENV
from greenplum_exporter.core import controller
from greenplum_exporter.core import main as exporter_main
from greenplum_exporter.core import service
from .fakes import BASE_DSN, SIZE_SQL, FakeConnection


@pytest.fixture
def log_args(tmp_path):
    yield ['--log.filepath', str(tmp_path / 'exporter.log')]
    # Do not leak the file handler to the following tests.
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, 'baseFilename', '').startswith(str(tmp_path)):
            root.removeHandler(handler)
            handler.close()


def test_parse_argv(monkeypatch):
    monkeypatch.delenv(DATA_SOURCE_ENV, raising=False)
    args = exporter_main.parse_argv(['--url', BASE_DSN, '--disable-https', '--parallel', '3',
                                     '--query-timeout', '0.5'])
    assert args.url == BASE_DSN
    assert args.parallel == 3
    assert args.query_timeout == 0.5
    assert args.target_statement_timeout == 0
    assert args.__dict__['web.listen_port'] == 9297
    assert args.__dict__['web.telemetry_path'] == '/metrics'
    assert args.keyfile_password is None


def test_parse_argv_from_environment(monkeypatch):
    monkeypatch.setenv(DATA_SOURCE_ENV, BASE_DSN)
    args = exporter_main.parse_argv(['--disable-https'])
    assert args.url == BASE_DSN


def test_parse_malformed_url_from_environment(monkeypatch, capsys):
    monkeypatch.setenv(DATA_SOURCE_ENV, 'host=127.0.0.1 password=secret dbname')
    with pytest.raises(SystemExit):
        exporter_main.parse_argv(['--disable-https'])
    err = capsys.readouterr().err
    assert 'not a valid connection string' in err
    assert 'secret' not in err


@pytest.mark.parametrize('argv', [
    ['--disable-https'],
    ['--url', BASE_DSN],
    ['--url', BASE_DSN, '--disable-https', '--parallel', '0'],
    ['--url', BASE_DSN, '--disable-https', '--web.listen-port', '80'],
    ['--url', BASE_DSN, '--disable-https', '--web.listen-address', '256.1.1.1'],
    ['--url', BASE_DSN, '--disable-https', '--query-timeout', '-1'],
    ['--url', 'postgresql://a:b@c@127.0.0.1:5432/postgres', '--disable-https'],
])
def test_parse_illegal_argv(monkeypatch, argv):
    monkeypatch.delenv(DATA_SOURCE_ENV, raising=False)
    with pytest.raises(SystemExit):
        exporter_main.parse_argv(argv)


@mock.patch('psycopg2.connect')
def test_exporter_main(mock_connect, monkeypatch, log_args):
    mock_connect.return_value = FakeConnection({SIZE_SQL: []})
    monkeypatch.setattr(controller, 'run', mock.MagicMock())

    args = exporter_main.parse_argv(['--url', BASE_DSN, '--disable-https'] + log_args)
    exporter_main.ExporterMain(args).run()

    controller.run.assert_called_once()
    assert controller.run.call_args.kwargs['telemetry_path'] == '/metrics'
    assert controller.run.call_args.kwargs['port'] == 9297
    assert service.query_all_metrics().startswith(b'# HELP')


@mock.patch('psycopg2.connect')
def test_exporter_main_cannot_connect(mock_connect, monkeypatch, log_args):
    import psycopg2

    mock_connect.side_effect = psycopg2.OperationalError('could not connect to server')
    monkeypatch.setattr(controller, 'run', mock.MagicMock())

    args = exporter_main.parse_argv(['--url', BASE_DSN, '--disable-https'] + log_args)
    with pytest.raises(SystemExit):
        exporter_main.ExporterMain(args).run()
    controller.run.assert_not_called()


def test_main_when_address_in_use(monkeypatch):
    monkeypatch.setattr(exporter_main, 'is_address_in_use', mock.MagicMock(return_value=True))
    monkeypatch.setattr(exporter_main, 'ExporterMain', mock.MagicMock())
    with pytest.raises(SystemExit):
        exporter_main.main(['--url', BASE_DSN, '--disable-https'])
    exporter_main.ExporterMain.assert_not_called()


@mock.patch('psycopg2.connect')
def test_http_service(mock_connect):
    mock_connect.return_value = FakeConnection({SIZE_SQL: []})
    service.config_collecting_params(BASE_DSN)
    controller.app.attach(controller.metrics, '/test-metrics')

    client = TestClient(controller.app.app)
    res = client.get('/')
    assert res.status_code == 200
    assert res.text == 'Greenplum exporter'

    res = client.get('/test-metrics')
    assert res.status_code == 200
    assert res.headers['content-type'].startswith('text/plain')
    assert 'greenplum_up 1.0' in res.text

    res = client.get('/not-found')
    assert res.status_code == 404
    assert res.json()['success'] is False
