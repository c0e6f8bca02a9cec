#!/usr/bin/env python3
# -*- coding:utf-8 -*-
from quart import Response
from werkzeug.exceptions import BadRequest

FAILURE_MARKER = "❌"


class InputValidationError(BadRequest):
    """The caller supplied a missing, duplicated or malformed ``url``."""


class MissingParameter(InputValidationError):
    description = "A URL must be specified in the `url` query parameter"


class MultipleValues(InputValidationError):
    description = "A single `url` query parameter must be specified"


class InvalidUrl(InputValidationError):
    def __init__(self, value):
        super().__init__(description=f"The URL ({value}) is invalid")
        self.value = value


def plain_text_error(message, status=400):
    """
    Build the single line, plain text rejection shared by every 400 answer.
    """
    body = f"{FAILURE_MARKER} {message}\n"
    return Response(body, status=status, content_type="text/plain; charset=utf-8")
