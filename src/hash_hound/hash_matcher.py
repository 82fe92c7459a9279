from hash_hound.digest_codec import TargetDigest, compute
from hash_hound.errors import DigestLengthMismatch


def bytes_equal(digest: bytes, target: bytes) -> bool:
    """Compare two digests, stopping at the first differing byte.

    Not constant time. Dictionary search timing leaks nothing worth protecting.
    """
    if len(digest) != len(target):
        raise DigestLengthMismatch(
            f"digest length {len(digest)} != target length {len(target)}"
        )
    # bytes.__eq__ is a memcmp that returns on the first mismatch.
    return digest == target


class HashMatcher:
    """Hashes candidates and checks them against one target digest."""

    def __init__(self, target: TargetDigest):
        self._target_bytes = target.value

    def matches(self, candidate: bytes) -> bool:
        return bytes_equal(compute(candidate), self._target_bytes)


def matches(candidate: bytes, target: TargetDigest) -> bool:
    """One-shot form of HashMatcher.matches."""
    return bytes_equal(compute(candidate), target.value)
