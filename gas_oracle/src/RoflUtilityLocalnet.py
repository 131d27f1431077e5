"""RoflUtilityLocalnet: ROFL utility for local development."""

import os

from web3 import Web3
from web3.types import TxParams

from .RoflUtility import RoflUtility, TxSubmitError

# Placeholder app ID used by contracts deployed on sapphire-localnet.
LOCALNET_APP_ID = "rofl11qqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqtdv26p"


class RoflUtilityLocalnet(RoflUtility):
    """ROFL utility implementation for localnet development.

    Uses direct Web3 transaction submission instead of appd.

    :ivar w3: Web3 instance for transaction submission.
    """

    def __init__(self, w3: Web3 | None = None) -> None:
        """Initialize the localnet utility.

        :param w3: Optional Web3 instance. Creates default if not provided.
        """
        if w3 is None:
            rpc_url = os.environ.get("RPC_URL", "http://localhost:8545")
            w3 = Web3(Web3.HTTPProvider(rpc_url))
        self.w3 = w3

    def fetch_appid(self) -> str:
        """Return the placeholder app ID for localnet."""
        return LOCALNET_APP_ID

    def submit_tx(self, tx: TxParams) -> str:
        """Submit a transaction directly via Web3 and wait for its receipt.

        :param tx: Transaction parameters.
        :returns: Transaction hash as 0x-prefixed hex.
        :raises TxSubmitError: If the transaction was reverted.
        """
        tx_hash = self.w3.eth.send_transaction(tx)
        tx_receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash)

        tx_id = Web3.to_hex(tx_receipt["transactionHash"])
        if tx_receipt["status"] != 1:
            raise TxSubmitError(f"Transaction {tx_id} reverted")
        return tx_id
