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
import re
import sys

from .base import exporter_assert
from .base import WHITE_FMT, RED_FMT, GREEN_FMT, YELLOW_FMT

COLOR_FORMATS = {
    'white': WHITE_FMT,
    'red': RED_FMT,
    'green': GREEN_FMT,
    'yellow': YELLOW_FMT
}

# Passwords of URL and key/value connection strings.
_PASSWORD_PATTERNS = (
    re.compile(r'(?P<prefix>://[^:/@]*:)(?P<password>[^/]*)(?=@)'),
    re.compile(r"(?P<prefix>\bpassword\s*=\s*)(?P<password>'(?:[^'\\]|\\.)*'|\S*)"),
)


def _mask(match):
    if not match.group('password'):
        return match.group(0)
    return match.group('prefix') + '******'


def wipe_off_password(dsn):
    """Mask the password of a connection string before it is logged or
    printed. Both URL and key/value connection strings are accepted."""
    for pattern in _PASSWORD_PATTERNS:
        dsn = pattern.sub(_mask, dsn)
    return dsn


def write_to_terminal(message, level='info', color=None):
    exporter_assert(level in ('info', 'error') and (color is None or color in COLOR_FORMATS))

    message = str(message)
    if color:
        message = COLOR_FORMATS[color].format(message)
    stream = sys.stderr if level == 'error' else sys.stdout
    print(message, file=stream, flush=True)
