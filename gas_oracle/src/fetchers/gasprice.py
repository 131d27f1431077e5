"""Legacy gas price fetcher.

Method: eth_gasPrice
Supported by: every EVM JSON-RPC node
"""

import logging

from .base import BaseFetcher, FetcherError, RawSample, parse_quantity, register_fetcher

logger = logging.getLogger(__name__)


@register_fetcher
class GasPriceFetcher(BaseFetcher):
    """Fetcher returning the node's suggested legacy gas price.

    This is the value wallets use as ``gasPrice`` for type-0 transactions.
    """

    name = "gasprice"

    async def fetch_sample(self, source_id: str) -> RawSample:
        """Fetch the gas price via eth_gasPrice.

        :param source_id: Chain name (e.g., "ethereum").
        :returns: RawSample with the gas price in wei.
        :raises FetcherError: If the node has no gas price or the call fails.
        """
        result = await self._rpc(source_id, "eth_gasPrice")
        if result is None:
            raise FetcherError(f"No gas price data for {source_id}")

        value = parse_quantity(result)
        logger.debug(f"[gasprice] {source_id}: {value} wei")
        return self._sample(source_id, value)
