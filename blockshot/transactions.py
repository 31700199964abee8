"""Transaction preparation.

Building and signing transactions is out of scope: the preparer contract
only promises signed bytes for a work item. ``SignedTxFilePreparer`` loads
bytes that were signed offline (for example with a chain CLI's
``--generate-only`` and ``sign`` commands).
"""

from __future__ import annotations

import base64
import binascii
from pathlib import Path

from typing import TYPE_CHECKING, Protocol

from blockshot.errors import ConfigurationError
from blockshot.helpers.logging import get_logger
from blockshot.models import PreparedTransaction


if TYPE_CHECKING:
    from blockshot.models import Coin
    from blockshot.work_items import CosmosWorkItem, EvmWorkItem


logger = get_logger(__name__)

LOWER_HEX_DIGITS = frozenset("0123456789abcdef")


class TransactionPreparer(Protocol):
    """Produces a signed transaction ready to broadcast."""

    async def validate(self, item: CosmosWorkItem | EvmWorkItem) -> None:
        """Raise ``ConfigurationError`` if ``item`` can never be prepared."""
        ...

    async def prepare(
        self,
        item: CosmosWorkItem | EvmWorkItem,
        amounts: list[Coin],
        priority_fee: float,
    ) -> PreparedTransaction: ...


def decode_signed_tx(text: str) -> bytes:
    """Decode a signed transaction written as hex or base64.

    Hex is either ``0x``-prefixed or bare lowercase hex digits. Anything
    else is read as base64, so an uppercase-only payload such as ``AAAA``
    stays base64.

    Raises:
        ValueError: If the text is empty or not valid in its encoding
    """
    text = text.strip()
    if not text:
        msg = "signed transaction is empty"
        raise ValueError(msg)

    if text.startswith(("0x", "0X")):
        return bytes.fromhex(text[2:])
    if set(text) <= LOWER_HEX_DIGITS:
        return bytes.fromhex(text)

    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as e:
        msg = "signed transaction is neither hex nor base64"
        raise ValueError(msg) from e


class SignedTxFilePreparer:
    """Reads a pre-signed transaction from the item's ``signed_tx_path``.

    The bytes are fixed at signing time, so ``amounts`` and
    ``priority_fee`` are recorded on the result but cannot change it.
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir else None

    def _resolve(self, path: str) -> Path:
        resolved = Path(path)
        if self.base_dir and not resolved.is_absolute():
            resolved = self.base_dir / resolved
        return resolved

    def _load(self, item: CosmosWorkItem | EvmWorkItem) -> bytes:
        if not item.signed_tx_path:
            msg = f"{item.chain_name}: work item has no signed_tx_path"
            raise ConfigurationError(msg)

        path = self._resolve(item.signed_tx_path)
        try:
            payload = decode_signed_tx(path.read_text(encoding="utf-8"))
        except OSError as e:
            msg = f"{item.chain_name}: cannot read {path}: {e}"
            raise ConfigurationError(msg) from e
        except ValueError as e:
            msg = f"{item.chain_name}: {path}: {e}"
            raise ConfigurationError(msg) from e
        return payload

    async def validate(self, item: CosmosWorkItem | EvmWorkItem) -> None:
        """Check that ``item`` names a readable, decodable transaction file.

        Raises:
            ConfigurationError: If the file cannot be read or decoded
        """
        self._load(item)

    async def prepare(
        self,
        item: CosmosWorkItem | EvmWorkItem,
        amounts: list[Coin],
        priority_fee: float,
    ) -> PreparedTransaction:
        """Load the signed transaction for ``item``.

        Raises:
            ConfigurationError: If the item has no readable, decodable file
        """
        payload = self._load(item)
        description = ", ".join(str(coin) for coin in amounts) or "pre-signed"
        logger.info(
            "Prepared %d-byte transaction for %s (%s)",
            len(payload),
            item.chain_name,
            description,
        )
        return PreparedTransaction(
            payload=payload,
            priority_fee=priority_fee,
            description=description,
        )


__all__ = [
    "SignedTxFilePreparer",
    "TransactionPreparer",
    "decode_signed_tx",
]
