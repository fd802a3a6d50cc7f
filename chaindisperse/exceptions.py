from typing import Optional


class DisperseError(Exception):
    """Base class for all chaindisperse errors."""


class InvalidAssetError(DisperseError):
    """The selected asset could not be resolved as a token contract."""

    def __init__(self, address: Optional[str], reason: str = ''):
        self.address = address
        self.reason = reason
        message = f'{address} does not behave like a token contract.'
        if reason:
            message = f'{message} {reason}'
        super().__init__(message)


class EmptyBatchError(DisperseError):
    """No valid recipients at submit time."""

    def __init__(self, message: str = 'No valid recipients found.'):
        super().__init__(message)


class AllowanceError(DisperseError):
    """An allowance action was requested from a state that does not permit it."""


class SessionError(DisperseError):
    """The wallet session is not connected."""


class ChainMismatch(DisperseError):
    """The wallet provider is connected to a different chain than expected."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f'Wallet is on chain {actual}, expected chain {expected}.')


class TransactionError(DisperseError):
    """A signing or submission step failed."""


class UserRejected(TransactionError):
    """The user declined the request in their wallet."""


class ChainReverted(TransactionError):
    """The transaction was mined but reverted, or the call would revert."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class NetworkFailure(TransactionError):
    """The node or wallet provider could not be reached, timed out, or returned an error."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(message)
