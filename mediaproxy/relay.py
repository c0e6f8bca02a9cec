#!/usr/bin/env python3
# -*- coding:utf-8 -*-
import codecs
import logging
from urllib.parse import urlsplit

from quart import Response

from mediaproxy.encoding import DECODABLE_ENCODINGS, get_decoder
from mediaproxy.errors import InputValidationError, InvalidUrl, MissingParameter, MultipleValues, plain_text_error
from mediaproxy.headers import build_upstream_request, relay_response_headers
from mediaproxy.playlist import generate_proxy_url, stream_rewritten_lines

proxy_logger = logging.getLogger("proxy")

PLAYLIST_MEDIA_TYPES = frozenset((
    "application/x-mpegurl",
    "audio/mpegurl",
    "application/vnd.apple.mpegurl",
))

CHUNK_SIZE = 65536


def validate_target_url(values):
    """
    Return the single absolute URL supplied in ``values`` (the raw ``url``
    query parameter values) or raise an :class:`InputValidationError`.
    """
    if len(values) > 1:
        raise MultipleValues()
    if not values or not values[0]:
        raise MissingParameter()

    url = values[0]
    try:
        parsed = urlsplit(url)
        # Reading the port validates it
        parsed.port
    except ValueError:
        raise InvalidUrl(url)
    if not parsed.scheme or not parsed.netloc:
        raise InvalidUrl(url)
    return url


def is_playlist_media_type(media_type):
    return bool(media_type) and media_type.lower() in PLAYLIST_MEDIA_TYPES


def get_proxy_authority(request, base_url=None):
    if base_url:
        return base_url
    return f"{request.scheme}://{request.host}"


def _content_encoding(upstream_headers):
    return upstream_headers.get("Content-Encoding", "identity").strip().lower() or "identity"


def _resolve_charset(charset):
    try:
        return codecs.lookup(charset or "utf-8").name
    except LookupError:
        proxy_logger.warning("Unknown playlist charset '%s', reading it as utf-8", charset)
        return "utf-8"


def _build_response(body, upstream, headers):
    response = Response(body, status=upstream.status, headers=headers)
    if "Content-Type" not in upstream.headers:
        # Do not invent a media type the origin never sent
        response.headers.pop("Content-Type", None)
    return response


def _rewrite_location(headers, upstream, target_url, proxy_authority, code):
    location = headers.get("Location")
    if location and 300 <= upstream.status < 400:
        headers["Location"] = generate_proxy_url(proxy_authority, target_url, location, code)
        proxy_logger.info("Relaying redirect '%s' through the proxy", location)


async def _iter_body(upstream):
    async with upstream:
        async for chunk in upstream.content.iter_chunked(CHUNK_SIZE):
            yield chunk


async def _iter_decoded_body(upstream, encoding):
    decompressor = get_decoder(encoding)
    async for chunk in upstream.content.iter_chunked(CHUNK_SIZE):
        yield decompressor.decompress(chunk) if decompressor else chunk
    if decompressor:
        yield decompressor.flush()


def relay_direct(upstream, target_url, proxy_authority, code=None):
    headers = relay_response_headers(upstream.headers)
    if upstream.content_length is not None:
        headers["Content-Length"] = str(upstream.content_length)
    _rewrite_location(headers, upstream, target_url, proxy_authority, code)
    return _build_response(_iter_body(upstream), upstream, headers)


async def relay_playlist(upstream, target_url, proxy_authority, code=None):
    encoding = _content_encoding(upstream.headers)
    if encoding != "identity" and encoding not in DECODABLE_ENCODINGS:
        proxy_logger.warning(
            "Cannot rewrite playlist '%s' with Content-Encoding '%s', relaying it unmodified",
            target_url,
            encoding,
        )
        return relay_direct(upstream, target_url, proxy_authority, code)

    charset = _resolve_charset(upstream.charset)
    body = bytearray()
    async with upstream:
        async for line in stream_rewritten_lines(
            _iter_decoded_body(upstream, encoding),
            target_url,
            proxy_authority,
            code=code,
            charset=charset,
        ):
            body += line

    headers = relay_response_headers(upstream.headers)
    # The body is sent decoded
    headers.pop("Content-Encoding", None)
    _rewrite_location(headers, upstream, target_url, proxy_authority, code)
    response = _build_response(bytes(body), upstream, headers)
    response.content_length = len(body)
    proxy_logger.info(
        "Rewrote playlist '%s' (%s -> %d bytes)",
        target_url,
        upstream.content_length if upstream.content_length is not None else "unknown",
        len(body),
    )
    return response


async def handle_proxy_request(request, session, base_url=None, http_proxy=None):
    """
    Relay one inbound request to the origin named by its ``url`` parameter.

    Input errors answer 400 here. Transport errors from the origin are left
    to propagate to the application.
    """
    try:
        target_url = validate_target_url(request.args.getlist("url"))
    except InputValidationError as exc:
        proxy_logger.warning("Rejected request '%s': %s", request.full_path, exc.description)
        return plain_text_error(exc.description)

    upstream_request = build_upstream_request(request.headers, target_url)
    upstream = await session.request(
        upstream_request.method,
        upstream_request.url,
        headers=upstream_request.headers,
        allow_redirects=False,
        proxy=http_proxy,
    )

    proxy_authority = get_proxy_authority(request, base_url)
    code = request.args.get("code")
    try:
        if is_playlist_media_type(upstream.content_type):
            proxy_logger.debug("Upstream '%s' is a playlist (%s)", target_url, upstream.content_type)
            return await relay_playlist(upstream, target_url, proxy_authority, code)
        return relay_direct(upstream, target_url, proxy_authority, code)
    except BaseException:
        upstream.close()
        raise
