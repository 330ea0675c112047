import gzip

from metricscollect.agent.utils import compress


def test_compress_round_trip():
    data = b"This is a test string to compress. Let's see if it works."
    assert gzip.decompress(compress(data)) == data


def test_compress_produces_gzip_header():
    assert compress(b"payload")[:2] == b"\x1f\x8b"


def test_compress_empty():
    assert gzip.decompress(compress(b"")) == b""