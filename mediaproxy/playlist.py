#!/usr/bin/env python3
# -*- coding:utf-8 -*-
import codecs
import logging
import re
from urllib.parse import quote, urljoin

playlist_logger = logging.getLogger("playlist")

URI_ATTRIBUTE = re.compile(r'URI="([^"]+)"')

# Tags whose resource is named on the next bare line
CONTINUATION_TAGS = ("#EXT-X-STREAM-INF", "#EXTINF")


def new_state():
    return {"expecting_uri": False}


def generate_proxy_url(proxy_authority, source_url, uri_value, code=None):
    """
    Resolve ``uri_value`` against the fetched playlist URL and wrap it in a
    URL pointing back at the proxy.
    """
    absolute_url = urljoin(source_url, uri_value)
    proxy_url = f"{proxy_authority}/?url={quote(absolute_url, safe='')}"
    if code:
        proxy_url = f"{proxy_url}&code={code}"
    return proxy_url


def rewrite_playlist_line(line, source_url, proxy_authority, state, code=None):
    stripped = line.strip()
    if not stripped:
        return line

    if state["expecting_uri"] and not line.startswith("#"):
        state["expecting_uri"] = False
        return generate_proxy_url(proxy_authority, source_url, stripped, code)

    match = URI_ATTRIBUTE.search(line)
    if match:
        new_uri = generate_proxy_url(proxy_authority, source_url, match.group(1), code)
        updated_line = f"{line[:match.start(1)]}{new_uri}{line[match.end(1):]}"
    else:
        updated_line = line

    if line.startswith(CONTINUATION_TAGS):
        state["expecting_uri"] = True
    return updated_line


async def stream_rewritten_lines(chunks, source_url, proxy_authority, code=None, charset="utf-8"):
    """
    Rewrite a playlist arriving as an async iterable of byte chunks.

    Yields one encoded, ``\\n`` terminated line per input line. Bytes that
    are not valid in ``charset`` are carried through unchanged.
    """
    decoder = codecs.getincrementaldecoder(charset)(errors="surrogateescape")
    state = new_state()
    buffer = ""
    line_count = 0

    def emit(line):
        if line.endswith("\r"):
            line = line[:-1]
        updated = rewrite_playlist_line(line, source_url, proxy_authority, state, code)
        return f"{updated}\n".encode(charset, errors="surrogateescape")

    async for chunk in chunks:
        buffer += decoder.decode(chunk)
        *lines, buffer = buffer.split("\n")
        for line in lines:
            line_count += 1
            yield emit(line)
    buffer += decoder.decode(b"", final=True)
    if buffer:
        line_count += 1
        yield emit(buffer)
    playlist_logger.debug("Rewrote %d playlist lines from '%s'", line_count, source_url)
