"""Ledger-write failure taxonomy."""


class LedgerError(Exception):
    """Base class for failures reported by the ledger-write capability."""


class InsufficientCapacity(LedgerError):
    """The ledger account cannot pay for another write.

    Sets the anchoring gate's sticky capacity flag.
    """


class TransientFailure(LedgerError):
    """Any other ledger failure (network, timeout, malformed payload).

    Does not change gate state; the write is retried on the next natural
    attempt.
    """
