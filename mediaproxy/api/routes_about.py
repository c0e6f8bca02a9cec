#!/usr/bin/env python3
# -*- coding:utf-8 -*-
from quart import Response

from mediaproxy.api import blueprint


@blueprint.route("/about", methods=["GET"])
async def about():
    """Liveness check."""
    return Response("", status=200)
