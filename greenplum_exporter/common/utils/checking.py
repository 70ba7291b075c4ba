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
import ipaddress
import logging
import os
from urllib.parse import urlsplit

import psycopg2
import psycopg2.extensions

from .cli import wipe_off_password, write_to_terminal

MIN_PORT = 1024
MAX_PORT = 65535


def check_ssl_file_permission(*filepaths):
    for filepath in filepaths:
        if filepath and (os.stat(filepath).st_mode & 0o777) > 0o600:
            msg = 'WARNING: the permission of ssl file %s is greater than 600.' % filepath
            logging.warning(msg)
            write_to_terminal(msg, color='yellow')


# The following are type functions for command line arguments.
# argparse also applies them to string defaults, such as the
# connection string read from the environment.
def dsn_type(dsn):
    masked = wipe_off_password(dsn)
    if dsn.startswith(('postgresql://', 'postgres://')) and urlsplit(dsn).netloc.count('@') > 1:
        raise argparse.ArgumentTypeError(
            'Unencoded "@" in the URL %s, percent-encode it as %%40.' % masked
        )
    try:
        psycopg2.extensions.parse_dsn(dsn)
    except psycopg2.ProgrammingError as e:
        raise argparse.ArgumentTypeError(
            '%s is not a valid connection string: %s' % (masked, str(e).strip())
        )
    return dsn


def ip_type(address):
    try:
        ipaddress.IPv4Address(address)
    except ValueError:
        raise argparse.ArgumentTypeError('Illegal IPv4 address: %s.' % address)
    return address


def port_type(port):
    if not port.isdigit() or not MIN_PORT <= int(port) <= MAX_PORT:
        raise argparse.ArgumentTypeError('Illegal port value(%d~%d): %s.' % (MIN_PORT, MAX_PORT, port))
    return int(port)


def path_type(path):
    realpath = os.path.realpath(path)
    if not os.path.exists(realpath):
        raise argparse.ArgumentTypeError('%s is not a valid path.' % path)
    return realpath


def positive_int_type(integer):
    if not integer.isdigit() or int(integer) == 0:
        raise argparse.ArgumentTypeError('Invalid value %s.' % integer)
    return int(integer)


def non_negative_float_type(number):
    try:
        value = float(number)
    except ValueError:
        raise argparse.ArgumentTypeError('Invalid value %s.' % number)
    # NaN fails the comparison as well.
    if not value >= 0:
        raise argparse.ArgumentTypeError('Invalid value %s.' % number)
    return value
