"""
Error taxonomy shared by the services and the HTTP layer.
"""


class FarmError(Exception):
    """Base class for game backend errors"""


class ValidationError(FarmError):
    """An action precondition is not met. The message is shown to the player."""


class ConfigError(FarmError):
    """Unknown seed/pet reference or malformed static table"""


class PersistenceError(FarmError):
    """The store is unavailable or a concurrent update won. Nothing was written."""

    def __init__(self, message, conflict=False):
        super().__init__(message)
        self.conflict = conflict  # lost an optimistic-concurrency race


class ReconciliationError(FarmError):
    """A confirmed ledger event could not be applied to the user's farm"""

    def __init__(self, message, action_kind=None, wallet_address=None):
        super().__init__(message)
        self.action_kind = action_kind
        self.wallet_address = wallet_address


class LedgerError(FarmError):
    """The chain RPC failed or the signer/contract is not configured"""
