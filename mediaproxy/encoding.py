#!/usr/bin/env python3
# -*- coding:utf-8 -*-
import zlib

import brotli

# Content-Encodings a playlist body can be decoded from before rewriting
DECODABLE_ENCODINGS = frozenset(("gzip", "x-gzip", "deflate", "br"))


class ZlibDecoder:
    def __init__(self, wbits):
        self._decompressor = zlib.decompressobj(wbits)

    def decompress(self, data):
        return self._decompressor.decompress(data)

    def flush(self):
        return self._decompressor.flush()


class DeflateDecoder:
    """
    HTTP ``deflate`` is meant to be zlib wrapped, but plenty of servers send
    raw deflate. The zlib header check on the first two bytes picks the mode.
    """

    def __init__(self):
        self._decompressor = None
        self._pending = b""

    def _start(self, data):
        has_zlib_header = (data[0] & 0x0F) == 8 and (data[0] * 256 + data[1]) % 31 == 0
        self._decompressor = zlib.decompressobj(zlib.MAX_WBITS if has_zlib_header else -zlib.MAX_WBITS)

    def decompress(self, data):
        if self._decompressor is None:
            self._pending += data
            if len(self._pending) < 2:
                return b""
            data, self._pending = self._pending, b""
            self._start(data)
        return self._decompressor.decompress(data)

    def flush(self):
        if self._decompressor is None:
            if not self._pending:
                return b""
            self._decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
            return self._decompressor.decompress(self._pending) + self._decompressor.flush()
        return self._decompressor.flush()


class BrotliDecoder:
    def __init__(self):
        self._decompressor = brotli.Decompressor()

    def decompress(self, data):
        return self._decompressor.process(data)

    def flush(self):
        return b""


def get_decoder(encoding):
    """
    Return a streaming decoder for ``encoding``, ``None`` for identity.
    """
    if encoding == "identity":
        return None
    if encoding in ("gzip", "x-gzip"):
        return ZlibDecoder(16 + zlib.MAX_WBITS)
    if encoding == "deflate":
        return DeflateDecoder()
    if encoding == "br":
        return BrotliDecoder()
    raise ValueError(f"Unsupported Content-Encoding '{encoding}'")


def narrow_accept_encoding(values):
    """
    Keep only the codings of an Accept-Encoding header that a playlist can be
    decoded from, so an origin never picks one the rewriter cannot read.
    """
    kept = []
    for value in values:
        for token in value.split(","):
            token = token.strip()
            coding = token.split(";", 1)[0].strip().lower()
            if coding in DECODABLE_ENCODINGS or coding == "identity":
                kept.append(token)
    return ", ".join(kept) if kept else "identity"
