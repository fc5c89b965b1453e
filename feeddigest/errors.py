class DigestError(Exception):
    """Base class for errors raised by the digest engine."""


class InvalidArgument(DigestError):
    """Caller passed a malformed recipient list, a non-integer id or an unknown entity id."""


class LockTimeout(DigestError):
    """The digest mutex could not be taken within the configured attempts."""

    def __init__(self, digest_id, attempts):
        super().__init__(f"mutex lock request expired for digest {digest_id} after {attempts} attempts")
        self.digest_id = digest_id
        self.attempts = attempts


class LockTargetMissing(DigestError):
    """Acquire was attempted on a digest id that has no record."""


class UnlockFailure(DigestError):
    """Release matched no record, so the mutex could not be unlocked."""


class MailError(Exception):
    """The mail provider rejected or failed to send a message."""
