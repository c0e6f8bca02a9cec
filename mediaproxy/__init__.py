#!/usr/bin/env python3
# -*- coding:utf-8 -*-
import logging
import os
from importlib import import_module
from importlib.metadata import PackageNotFoundError, version
from logging.config import dictConfig

import aiohttp
from quart import Quart

dictConfig({
    'version':    1,
    'formatters': {
        'default': {
            'format': '%(asctime)s:%(levelname)s:%(name)s: %(message)s',
        }
    },
    'handlers':   {
        'wsgi': {
            'class':     'logging.StreamHandler',
            'stream':    'ext://sys.stderr',
            'formatter': 'default'
        }
    },
    'root':       {
        'level':    'INFO',
        'handlers': ['wsgi']
    },
    'disable_existing_loggers': False,
})

enable_debugging = False
if os.environ.get('ENABLE_DEBUGGING', 'false').lower() == 'true':
    enable_debugging = True

HTTP_CLIENT_KEY = 'mediaproxy.http_client'


def _installed_version():
    try:
        return version('media-proxy')
    except PackageNotFoundError:
        return 'unknown'


def _load_config():
    base_url = os.environ.get('MEDIA_PROXY_BASE_URL')
    return {
        'MEDIA_PROXY_BASE_URL':     base_url.rstrip('/') if base_url else None,
        'HTTP_CLIENT_PROXY':        os.environ.get('HTTP_CLIENT_PROXY') or None,
        'UPSTREAM_CONNECT_TIMEOUT': float(os.environ.get('MEDIA_PROXY_CONNECT_TIMEOUT', '30')),
        'UPSTREAM_READ_TIMEOUT':    float(os.environ.get('MEDIA_PROXY_READ_TIMEOUT', '60')),
        'MEDIA_PROXY_VERSION':      os.environ.get('MEDIA_PROXY_VERSION') or _installed_version(),
    }


def create_app(test_config=None):
    # Create app
    app = Quart(__name__, instance_relative_config=True)
    app.config.update(_load_config())
    if test_config:
        app.config.update(test_config)

    # Register the route blueprints
    for name in ('mediaproxy.api.routes_about', 'mediaproxy.api.routes_proxy'):
        import_module(name)
    module = import_module('mediaproxy.api')
    app.register_blueprint(module.blueprint)

    # Exception translation first, then version stamping
    from mediaproxy.middleware import register_middlewares
    register_middlewares(app)

    @app.before_serving
    async def _open_http_client():
        timeout = aiohttp.ClientTimeout(
            total=None,
            sock_connect=app.config['UPSTREAM_CONNECT_TIMEOUT'],
            sock_read=app.config['UPSTREAM_READ_TIMEOUT'],
        )
        # Bodies and negotiated encodings are relayed untouched
        app.extensions[HTTP_CLIENT_KEY] = aiohttp.ClientSession(
            timeout=timeout,
            auto_decompress=False,
            skip_auto_headers=('Accept-Encoding', 'User-Agent'),
        )

    @app.after_serving
    async def _close_http_client():
        session = app.extensions.pop(HTTP_CLIENT_KEY, None)
        if session is not None:
            await session.close()

    loggers = (app.logger, logging.getLogger('proxy'), logging.getLogger('playlist'))
    for log in loggers:
        log.setLevel(logging.DEBUG if enable_debugging else logging.INFO)

    return app
