class NotFoundError(Exception):
    """A page, site or file record does not exist. Never retried."""


class StorageError(Exception):
    """
    A datastore read/write failed.

    Carries the target and phase so the failure can be replayed by hand.
    """

    def __init__(self, message, *, target=None, phase=None):
        super().__init__(message)
        self.target = target
        self.phase = phase
