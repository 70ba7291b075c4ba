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
import argparse
import logging
import os
import sys

from greenplum_exporter.common.utils import write_to_terminal, wipe_off_password
from greenplum_exporter.common.utils.checking import (
    check_ssl_file_permission, dsn_type, ip_type, port_type,
    path_type, positive_int_type, non_negative_float_type
)
from greenplum_exporter.common.utils.exporter import (
    LOG_LEVELS, adjust_https_args, is_address_in_use, set_logger
)
from greenplum_exporter.constants import __version__, DATA_SOURCE_ENV
from . import controller
from . import service

DEFAULT_LOGFILE = 'greenplum_exporter.log'


def parse_argv(argv):
    parser = argparse.ArgumentParser(
        description='Greenplum Exporter: Monitoring database sizes, bloat tables '
                    'and cluster-wide rates of Greenplum.'
    )
    parser.add_argument('--url', default=os.environ.get(DATA_SOURCE_ENV),
                        help='Greenplum coordinator url, by default read from the environment '
                             'variable %s. It is recommended to connect to the postgres '
                             'database through this URL, and connections to other discovered '
                             'databases are derived from it.' % DATA_SOURCE_ENV,
                        type=dsn_type)
    parser.add_argument('--queries-file', type=path_type,
                        help='path to the YAML file of SQL statements.')
    parser.add_argument('--web.listen-address', default='127.0.0.1', type=ip_type,
                        help='address on which to expose metrics and web interface')
    parser.add_argument('--web.listen-port', type=port_type, default=9297,
                        help='listen port to expose metrics and web interface')
    parser.add_argument('--web.telemetry-path', default='/metrics',
                        help='path under which to expose metrics.')
    parser.add_argument('--query-timeout', type=non_negative_float_type,
                        help='deadline in seconds of enumerating databases on the coordinator '
                             '(0 means no deadline). Defaults to the value in the queries file.')
    parser.add_argument('--target-connect-timeout', type=non_negative_float_type, default=0,
                        help='timeout in seconds of connecting to each discovered database '
                             '(0 means no timeout).')
    parser.add_argument('--target-statement-timeout', type=non_negative_float_type, default=0,
                        help='statement timeout in seconds on each discovered database '
                             '(0 means no timeout).')
    parser.add_argument('--parallel', default=1, type=positive_int_type,
                        help='number of databases to scrape at the same time.')
    parser.add_argument('--disable-https', action='store_true',
                        help='disable Https scheme')
    parser.add_argument('--ssl-keyfile', type=path_type, help='set the path of ssl key file')
    parser.add_argument('--ssl-certfile', type=path_type, help='set the path of ssl certificate file')
    parser.add_argument('--ssl-ca-file', type=path_type, help='set the path of ssl ca file')
    parser.add_argument('--log.filepath', type=os.path.realpath,
                        default=os.path.join(os.getcwd(), DEFAULT_LOGFILE),
                        help='the path to log')
    parser.add_argument('--log.level', default='info', choices=tuple(LOG_LEVELS),
                        help='only log messages with the given severity or above.'
                             ' Valid levels: [debug, info, warn, error, fatal]')
    parser.add_argument('-v', '--version', action='version', version=__version__)

    args = adjust_https_args(parser, parser.parse_args(argv))
    if not args.url:
        parser.error('The argument --url is required if the environment '
                     'variable %s is not set.' % DATA_SOURCE_ENV)
    return args


class ExporterMain:
    def __init__(self, args):
        self.args = args

    def change_file_permissions(self):
        for filepath in (self.args.ssl_keyfile, self.args.ssl_certfile, self.args.ssl_ca_file):
            if filepath and os.path.isfile(filepath):
                os.chmod(filepath, 0o400)
        log_filepath = self.args.__dict__['log.filepath']
        if log_filepath and os.path.isfile(log_filepath):
            os.chmod(log_filepath, 0o600)

    def run(self):
        set_logger(self.args.__dict__['log.filepath'],
                   self.args.__dict__['log.level'])
        self.change_file_permissions()
        try:
            service.config_collecting_params(
                url=self.args.url,
                timeout=self.args.query_timeout,
                parallel=self.args.parallel,
                connect_timeout=self.args.target_connect_timeout,
                statement_timeout=self.args.target_statement_timeout,
                queries_file=self.args.queries_file
            )
        except ConnectionError as e:
            logging.error('Failed to connect to %s: %s.', wipe_off_password(self.args.url), e)
            write_to_terminal('Failed to connect to the url, exiting...', color='red')
            sys.exit(1)

        check_ssl_file_permission(self.args.ssl_certfile, self.args.ssl_keyfile)
        write_to_terminal(
            'Serving metrics on %s:%s%s.' % (self.args.__dict__['web.listen_address'],
                                             self.args.__dict__['web.listen_port'],
                                             self.args.__dict__['web.telemetry_path']),
            color='green'
        )
        controller.run(
            host=self.args.__dict__['web.listen_address'],
            port=self.args.__dict__['web.listen_port'],
            telemetry_path=self.args.__dict__['web.telemetry_path'],
            ssl_keyfile=self.args.ssl_keyfile,
            ssl_certfile=self.args.ssl_certfile,
            ssl_keyfile_password=self.args.keyfile_password,
            ssl_ca_file=self.args.ssl_ca_file
        )


def main(argv):
    args = parse_argv(argv)
    if is_address_in_use(args.__dict__['web.listen_address'],
                         args.__dict__['web.listen_port']):
        write_to_terminal('Service has been started or the address already in use, exiting...', color='red')
        sys.exit(1)
    ExporterMain(args).run()


def entrypoint():
    main(sys.argv[1:])
