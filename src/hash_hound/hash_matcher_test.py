import pytest
from hash_hound.digest_codec import digest_of, parse
from hash_hound.errors import DigestLengthMismatch
from hash_hound.hash_matcher import HashMatcher, bytes_equal, matches


class TestHashMatcher:
    """Test suite for HashMatcher"""

    def test_match(self):
        matcher = HashMatcher(parse("5d41402abc4b2a76b9719d911017c592"))
        assert matcher.matches(b"hello")

    def test_mismatch(self):
        matcher = HashMatcher(parse("5d41402abc4b2a76b9719d911017c592"))
        assert not matcher.matches(b"hello ")
        assert not matcher.matches(b"Hello")

    def test_compares_exact_bytes(self):
        """No normalisation happens between the candidate and the hash"""
        target = digest_of("café")
        assert matches("café".encode("utf-8"), target)
        assert not matches("café".encode("latin-1"), target)


class TestBytesEqual:
    """Test suite for digest comparison"""

    def test_equal(self):
        assert bytes_equal(b"\x01\x02", b"\x01\x02")

    def test_first_byte_differs(self):
        assert not bytes_equal(b"\x00\x02", b"\x01\x02")

    def test_last_byte_differs(self):
        assert not bytes_equal(b"\x01\x02", b"\x01\x03")

    def test_length_mismatch_is_contract_violation(self):
        with pytest.raises(DigestLengthMismatch):
            bytes_equal(b"\x00" * 16, b"\x00" * 20)
