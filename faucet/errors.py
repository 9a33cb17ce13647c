from typing import Optional


class FaucetError(Exception):
    """Base class for errors raised by the faucet core."""


class ConfigurationError(FaucetError):
    """Raised when the signing key or a contract address is missing or invalid."""


class FeeMechanismUnavailable(FaucetError):
    """Raised when the latest block carries no base fee (EIP-1559 not active)."""


class IneligibleRecipient(FaucetError):
    """Raised when a recipient does not qualify for the requested transfer."""


class BroadcastError(FaucetError):
    """
    Raised when building, signing or sending a transaction fails.

    If the failure was a contract revert, ``revert_data`` holds the raw bytes
    returned by the call; otherwise it is ``None``.
    """

    def __init__(self, message: str, revert_data: Optional[bytes] = None):
        super().__init__(message)
        self.revert_data = revert_data


class InclusionError(FaucetError):
    """Raised when awaiting a broadcast transaction yields no receipt."""


class SerializerStateError(FaucetError):
    """
    Raised when the broadcast exclusion state is corrupted.

    This is never a business outcome. It means the process is broken and
    should be restarted.
    """
