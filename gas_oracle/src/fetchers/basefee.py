"""EIP-1559 gas price fetcher.

Methods: eth_getBlockByNumber("latest"), eth_maxPriorityFeePerGas
Supported by: chains with a London-style base fee (not all L2s)
"""

import asyncio
import logging

from .base import BaseFetcher, FetcherError, RawSample, parse_quantity, register_fetcher

logger = logging.getLogger(__name__)


@register_fetcher
class BaseFeeFetcher(BaseFetcher):
    """Fetcher pricing gas as the latest base fee plus the suggested tip.

    Both RPC calls are issued concurrently. Chains whose blocks carry no
    ``baseFeePerGas`` are reported as failures.
    """

    name = "basefee"

    async def fetch_sample(self, source_id: str) -> RawSample:
        """Fetch base fee + priority fee for a chain.

        :param source_id: Chain name (e.g., "base").
        :returns: RawSample with the effective gas price in wei.
        :raises FetcherError: If the chain has no base fee or a call fails.
        """
        block, tip = await asyncio.gather(
            self._rpc(source_id, "eth_getBlockByNumber", ["latest", False]),
            self._rpc(source_id, "eth_maxPriorityFeePerGas"),
        )

        if not isinstance(block, dict):
            raise FetcherError(f"No latest block for {source_id}")
        base_fee = block.get("baseFeePerGas")
        if base_fee is None:
            raise FetcherError(f"No base fee on {source_id} (pre-London chain?)")

        value = parse_quantity(base_fee) + parse_quantity(tip)
        logger.debug(f"[basefee] {source_id}: base={base_fee} tip={tip}")
        return self._sample(source_id, value)
