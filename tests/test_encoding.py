import gzip
import unittest
import zlib

import brotli

from mediaproxy import encoding as mod

PLAYLIST = b"#EXTM3U\n#EXTINF:10.0,\nsegment1.ts\n" * 20


def _decode_in_chunks(decoder, data, size=5):
    out = b''
    for offset in range(0, len(data), size):
        out += decoder.decompress(data[offset:offset + size])
    return out + decoder.flush()


class ContentDecoderTests(unittest.TestCase):
    def test_identity_has_no_decoder(self):
        self.assertIsNone(mod.get_decoder('identity'))

    def test_gzip(self):
        for name in ('gzip', 'x-gzip'):
            with self.subTest(name=name):
                self.assertEqual(_decode_in_chunks(mod.get_decoder(name), gzip.compress(PLAYLIST)), PLAYLIST)

    def test_zlib_wrapped_deflate(self):
        self.assertEqual(_decode_in_chunks(mod.get_decoder('deflate'), zlib.compress(PLAYLIST)), PLAYLIST)

    def test_raw_deflate(self):
        compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
        data = compressor.compress(PLAYLIST) + compressor.flush()
        self.assertEqual(_decode_in_chunks(mod.get_decoder('deflate'), data, size=1), PLAYLIST)

    def test_brotli(self):
        self.assertEqual(_decode_in_chunks(mod.get_decoder('br'), brotli.compress(PLAYLIST)), PLAYLIST)

    def test_unknown_encoding_is_rejected(self):
        with self.assertRaises(ValueError):
            mod.get_decoder('zstd')


class AcceptEncodingTests(unittest.TestCase):
    def test_keeps_decodable_codings_with_parameters(self):
        self.assertEqual(
            mod.narrow_accept_encoding(['gzip, deflate, br, zstd', 'identity;q=0.5']),
            'gzip, deflate, br, identity;q=0.5'
        )

    def test_nothing_decodable_means_identity(self):
        self.assertEqual(mod.narrow_accept_encoding(['zstd, *']), 'identity')


if __name__ == '__main__':
    unittest.main()
