class HashHoundError(Exception):
    """Base class for all hash_hound errors."""


class InvalidDigestFormat(HashHoundError, ValueError):
    """The target digest is not a 32 character hex string."""


class DictionaryNotFound(HashHoundError, FileNotFoundError):
    pass


class DictionaryUnreadable(HashHoundError, OSError):
    pass


class SourceConsumed(HashHoundError, RuntimeError):
    """A candidate source was iterated a second time. Open a fresh one instead."""


class AlreadyRunning(HashHoundError, RuntimeError):
    pass


class DigestLengthMismatch(HashHoundError, AssertionError):
    """Computed and target digests differ in length. Never caused by user input."""
