"""RoflUtility: Abstract base class for ROFL appd interaction."""

from abc import abstractmethod

import bech32
from web3.types import TxParams


class TxSubmitError(RuntimeError):
    """Raised when a transaction could not be submitted or was reverted."""

    pass


def bech32_to_bytes(app_id: str) -> bytes:
    """Decode a ROFL app ID from bech32 to raw bytes.

    :param app_id: Bech32-encoded app ID (e.g., "rofl1qr...").
    :returns: 21-byte raw app ID.
    :raises ValueError: If app_id is invalid bech32.
    """
    hrp, data = bech32.bech32_decode(app_id)
    if data is None:
        raise ValueError(f"Invalid bech32 app_id: {app_id}")

    # Convert 5-bit groups to bytes
    app_id_bytes = bech32.convertbits(data, 5, 8, False)
    if app_id_bytes is None:
        raise ValueError(f"Failed to convert app_id to bytes: {app_id}")

    return bytes(app_id_bytes)


class RoflUtility:
    """Abstract base class for ROFL utility implementations.

    Provides interface for app ID fetching and transaction submission on
    behalf of the ROFL app.
    """

    @abstractmethod
    def fetch_appid(self) -> str:
        """Fetch the current ROFL app ID.

        :returns: Bech32-encoded app ID.
        """
        pass

    @abstractmethod
    def submit_tx(self, tx: TxParams) -> str:
        """Sign and submit a transaction.

        :param tx: Transaction parameters.
        :returns: Transaction identifier.
        :raises TxSubmitError: If the transaction failed.
        """
        pass
