"""Client seed acquisition from future TRON blocks.

The seed for a draw is the hash of a block that does not exist yet when the
draw is triggered: the head height is read, a target ``head + K`` is chosen,
and the head is polled until the chain reaches it. Anyone can later look the
block up by height and confirm the published seed.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Protocol

from ..config import Settings
from ..errors import ConfigError, EntropyTimeoutError, NetworkError, ProtocolError
from .api import TronClient
from .utils import extract_block_hash, extract_block_height, validate_hex

logger = logging.getLogger(__name__)


class EntropySource(Protocol):
    """Anything able to produce a fresh, verifiable client seed."""

    def acquire_entropy(self) -> str: ...


class BlockClient(Protocol):
    def get_now_block(self) -> Any: ...

    def get_block_by_num(self, num: int) -> Any: ...


class BlockHashEntropySource:
    """Derive a client seed from the hash of a block mined after the trigger.

    Parameters
    ----------
    client : BlockClient
        HTTP client for the chain, usually a :class:`~fairdraw.blockchain.api.TronClient`.
    target_increment : int, default: 2
        Look-ahead ``K``; must be positive so the seed is unknown when requested.
    poll_interval : float, default: 1.5
        Seconds between head polls.
    max_attempts : int, default: 40
        Poll budget before :class:`~fairdraw.errors.EntropyTimeoutError`.
    sleep : Callable[[float], None], default: time.sleep
        Injected for tests.
    """

    def __init__(
        self,
        client: BlockClient,
        *,
        target_increment: int = 2,
        poll_interval: float = 1.5,
        max_attempts: int = 40,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if target_increment < 1:
            raise ConfigError("target_increment must be a positive integer")
        if max_attempts < 1:
            raise ConfigError("max_attempts must be a positive integer")
        if poll_interval < 0:
            raise ConfigError("poll_interval must not be negative")
        self._client = client
        self.target_increment = target_increment
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls, settings: Settings, client: Optional[BlockClient] = None
    ) -> "BlockHashEntropySource":
        """Build the source from :class:`~fairdraw.config.Settings`.

        Raises
        ------
        ConfigError
            If no entropy provider URL is configured and no client is given.
        """
        return cls(
            client or TronClient.from_settings(settings),
            target_increment=settings.target_increment,
            poll_interval=settings.poll_interval,
            max_attempts=settings.max_poll_attempts,
        )

    def _read_head(self) -> tuple[Any, Optional[int]]:
        payload = self._client.get_now_block()
        if not isinstance(payload, dict):
            raise ProtocolError("getnowblock response is not a JSON object")
        return payload, extract_block_height(payload)

    def _wait_for_height(self, target: int) -> None:
        for attempt in range(1, self.max_attempts + 1):
            try:
                _, height = self._read_head()
                if height is not None and height >= target:
                    logger.debug(f"Head reached {height} (target {target}) after {attempt} polls")
                    return
                logger.debug(f"Poll {attempt}: head {height}, waiting for {target}")
            except (NetworkError, ProtocolError) as exc:
                logger.warning(f"Entropy poll attempt {attempt} failed: {exc}")
            if attempt < self.max_attempts:
                self._sleep(self.poll_interval)
        raise EntropyTimeoutError(
            f"Chain head did not reach target {target} within {self.max_attempts} polls"
        )

    def acquire_entropy(self) -> str:
        """Return the hex hash of block ``head + K``.

        Returns
        -------
        str
            Trimmed hexadecimal block hash to be used as the client seed.

        Raises
        ------
        NetworkError
            If the initial head request or the target block request fails.
        ProtocolError
            If a response lacks a usable height or hash, or the hash is not hex.
        EntropyTimeoutError
            If the head never reaches the target within the poll budget.
        """
        payload, head = self._read_head()
        if head is None:
            direct = extract_block_hash(payload)
            if direct is None:
                raise ProtocolError(
                    "Unable to determine head block number from getnowblock response"
                )
            # Degraded path: the node exposes a hash but no height to poll on.
            logger.warning("Head response carries no height; using its block id directly")
            return validate_hex(direct, what="head block hash")

        target = head + self.target_increment
        logger.info(f"Waiting for block {target} (head {head}) to derive client seed")
        self._wait_for_height(target)

        block = self._client.get_block_by_num(target)
        block_hash = extract_block_hash(block)
        if block_hash is None:
            raise ProtocolError(f"Target block {target} response is missing a block hash")
        seed = validate_hex(block_hash, what=f"block {target} hash")
        logger.info(f"Client seed acquired from block {target}")
        return seed


__all__ = ["BlockClient", "BlockHashEntropySource", "EntropySource"]
