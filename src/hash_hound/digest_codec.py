import hashlib
import re
from dataclasses import dataclass

from hash_hound.errors import InvalidDigestFormat

DIGEST_SIZE = hashlib.md5(usedforsecurity=False).digest_size  # 16 bytes

_HEX_RE = re.compile(r"[0-9a-f]*")


@dataclass(frozen=True, slots=True)
class TargetDigest:
    """Immutable digest the search compares every candidate against."""

    value: bytes

    def __post_init__(self):
        value = bytes(self.value)
        if len(value) != DIGEST_SIZE:
            raise InvalidDigestFormat(
                f"digest must be {DIGEST_SIZE} bytes, got {len(value)}"
            )
        object.__setattr__(self, "value", value)

    def hex(self) -> str:
        return self.value.hex()

    def __len__(self) -> int:
        return len(self.value)

    def __str__(self) -> str:
        return self.value.hex()


def parse(hex_string: str) -> TargetDigest:
    """Parse a hex digest string into a TargetDigest.

    Surrounding whitespace is ignored and the input is lower-cased, so
    "5EB63BBBE01EEED093CB22BB8F5ACDC3" and "5eb63bbbe01eeed093cb22bb8f5acdc3\\n"
    parse to the same digest.
    """
    text = hex_string.strip().lower()
    if not text:
        raise InvalidDigestFormat("digest is empty")
    if not _HEX_RE.fullmatch(text):
        raise InvalidDigestFormat(f"digest contains non-hex characters: {hex_string!r}")
    if len(text) % 2 != 0:
        raise InvalidDigestFormat(f"digest has odd length {len(text)}")
    if len(text) != DIGEST_SIZE * 2:
        raise InvalidDigestFormat(
            f"digest must be {DIGEST_SIZE * 2} hex characters, got {len(text)}"
        )

    # Two hex characters per byte, order preserved.
    return TargetDigest(bytes(int(text[i:i + 2], 16) for i in range(0, len(text), 2)))


def compute(data: bytes) -> bytes:
    """MD5 of an arbitrary byte string."""
    return hashlib.md5(data, usedforsecurity=False).digest()


def digest_of(text: str) -> TargetDigest:
    """Digest of a word as it would appear in a dictionary line."""
    return TargetDigest(compute(text.encode("utf-8")))
