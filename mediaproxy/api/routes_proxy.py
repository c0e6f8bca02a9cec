#!/usr/bin/env python3
# -*- coding:utf-8 -*-
from quart import current_app, request
from werkzeug.exceptions import MethodNotAllowed

from mediaproxy import HTTP_CLIENT_KEY
from mediaproxy.api import blueprint
from mediaproxy.relay import handle_proxy_request


# Any path is accepted, the target comes from the query string
@blueprint.route("/", defaults={"ignored": ""}, methods=["GET"])
@blueprint.route("/<path:ignored>", methods=["GET"])
async def proxy(ignored):
    # GET rules also match HEAD, which is not relayed
    if request.method != "GET":
        raise MethodNotAllowed(valid_methods=["GET"])
    return await handle_proxy_request(
        request,
        current_app.extensions[HTTP_CLIENT_KEY],
        base_url=current_app.config.get("MEDIA_PROXY_BASE_URL"),
        http_proxy=current_app.config.get("HTTP_CLIENT_PROXY"),
    )
