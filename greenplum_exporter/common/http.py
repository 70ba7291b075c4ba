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
import ssl

from fastapi import FastAPI
from fastapi.exceptions import StarletteHTTPException
from fastapi.responses import JSONResponse, Response
import uvicorn

__all__ = ['HttpService', 'Response']


class HttpService:
    """A Http service implementation.
    ~~~~~~~~~~~~~~~~~~

    To decouple web service framework and web service interface,
    controllers only attach their handlers to this class.
    """

    def __init__(self, name=__name__):
        self.app = FastAPI(title=name)

        @self.app.exception_handler(StarletteHTTPException)
        async def exception_handler(_, exc):
            return JSONResponse(
                content={'success': False, 'msg': str(exc.detail)},
                status_code=exc.status_code
            )

    def attach(self, func, rule, **options):
        """Attach a rule to the backend app."""
        self.app.add_route(rule, func, **options)

    def route(self, rule, **options):
        def decorator(f):
            self.attach(f, rule, **options)
            return f

        return decorator

    def start_listen(self, host, port,
                     ssl_keyfile=None, ssl_certfile=None, ssl_keyfile_password=None,
                     ssl_ca_file=None):
        config = uvicorn.Config(self.app, host=host, port=port,
                                ssl_keyfile=ssl_keyfile, ssl_certfile=ssl_certfile,
                                ssl_keyfile_password=ssl_keyfile_password,
                                ssl_ca_certs=ssl_ca_file,
                                ssl_cert_reqs=ssl.CERT_REQUIRED if ssl_ca_file else ssl.CERT_NONE,
                                log_config=None)
        config.load()
        if config.is_ssl:
            config.ssl.options |= (
                    ssl.OP_NO_SSLv2 | ssl.OP_NO_SSLv3 | ssl.OP_NO_TLSv1 | ssl.OP_NO_TLSv1_1
            )  # RFC 7540 Section 9.2: MUST be TLS >=1.2
            config.ssl.set_ciphers('DHE+AESGCM:ECDHE+AESGCM')
        # Block until shutting down.
        uvicorn.Server(config).run()
