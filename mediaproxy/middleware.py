#!/usr/bin/env python3
# -*- coding:utf-8 -*-
import logging

from werkzeug.exceptions import BadRequest

from mediaproxy.errors import plain_text_error

proxy_logger = logging.getLogger("proxy")

VERSION_HEADER = "X-InformationalVersion"


def install_bad_request_handler(app):
    @app.errorhandler(BadRequest)
    async def handle_bad_request(exc):
        proxy_logger.warning("Malformed request: %s", exc.description)
        return plain_text_error(exc.description, status=exc.code or 400)


def install_version_header(app):
    version = app.config["MEDIA_PROXY_VERSION"]

    @app.after_request
    async def stamp_version(response):
        response.headers[VERSION_HEADER] = version
        return response


MIDDLEWARES = (
    install_bad_request_handler,
    install_version_header,
)


def register_middlewares(app, middlewares=MIDDLEWARES):
    for install in middlewares:
        install(app)
