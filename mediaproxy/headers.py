#!/usr/bin/env python3
# -*- coding:utf-8 -*-
import logging
from collections import namedtuple
from urllib.parse import urlsplit

from multidict import CIMultiDict
from werkzeug.datastructures import Headers

from mediaproxy.encoding import narrow_accept_encoding

proxy_logger = logging.getLogger("proxy")

# https://datatracker.ietf.org/doc/html/draft-ietf-httpbis-p1-messaging-14#section-7.1.3.1
HOP_BY_HOP_HEADERS = frozenset(
    name.lower()
    for name in (
        "Connection",
        "Keep-Alive",
        "Proxy-Authenticate",
        "Proxy-Authorization",
        "TE",
        "Trailer",
        "Transfer-Encoding",
        "Upgrade",
    )
)

UpstreamRequest = namedtuple("UpstreamRequest", ("method", "url", "headers"))


def connection_tokens(connection_values):
    """
    Split the values of a Connection header into lower-cased header names.
    """
    tokens = set()
    for value in connection_values or ():
        for token in value.split(","):
            token = token.strip().lower()
            if token:
                tokens.add(token)
    return tokens


def should_relay(header_name, connection_values=()):
    name = header_name.lower()
    # The length is always recomputed from the bytes actually written
    if name == "content-length":
        return False
    if name in HOP_BY_HOP_HEADERS:
        return False
    return name not in connection_tokens(connection_values)


def _getlist(headers, name):
    # werkzeug Headers and multidict spell this differently
    if hasattr(headers, "getlist"):
        return headers.getlist(name)
    return headers.getall(name, [])


def _relayable_items(headers):
    connection_values = _getlist(headers, "Connection")
    for name, value in headers.items():
        if should_relay(name, connection_values):
            yield name, value


def target_authority(target_url):
    parsed = urlsplit(target_url)
    return parsed.netloc.rpartition("@")[2]


def build_upstream_request(inbound_headers, target_url):
    """
    Build the outbound GET for the origin.

    Every relayable inbound header is copied (multi-value headers keep all
    of their values) and Host is then forced to the target's authority.
    Accept-Encoding is narrowed to the codings a playlist can be decoded from.
    """
    headers = CIMultiDict()
    for name, value in _relayable_items(inbound_headers):
        headers.add(name, value)
    if "Accept-Encoding" in headers:
        headers["Accept-Encoding"] = narrow_accept_encoding(headers.getall("Accept-Encoding"))
    headers["Host"] = target_authority(target_url)

    request = UpstreamRequest("GET", target_url, headers)
    proxy_logger.info("GET %s", target_url)
    for name, value in headers.items():
        proxy_logger.debug("%s: %s", name, value)
    return request


def relay_response_headers(upstream_headers):
    """
    Filter the origin's response headers into a new set for the client.
    """
    relayed = Headers()
    for name, value in _relayable_items(upstream_headers):
        relayed.add(name, value)
    return relayed
