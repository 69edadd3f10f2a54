"""Minimal JSON-RPC 2.0 client for the chain node.

Only the calls the faucet needs: pending nonce, gas price, gas estimate and
raw transaction broadcast, plus chain id and balance for health reporting.
No retries; callers decide whether a failure aborts the request.
"""

import asyncio
import itertools
import json
import logging
from typing import Any

import aiohttp

from drip.errors import RpcError, TransportError

logger = logging.getLogger(__name__)

# Gas limit of a plain value transfer, used when estimation fails
DEFAULT_GAS_LIMIT = 21000

DEFAULT_TIMEOUT_SECONDS = 30.0


def _parse_quantity(value: Any, what: str) -> int:
    """Decode a 0x-prefixed hex quantity from a JSON-RPC result."""
    if not isinstance(value, str) or not value.startswith(("0x", "0X")):
        raise RpcError(f"Invalid {what} format: {value!r}")
    try:
        return int(value, 16)
    except ValueError:
        raise RpcError(f"Invalid {what} format: {value!r}") from None


class JsonRpcClient:
    """Async JSON-RPC client over HTTP.

    Parameters
    ----------
    url : str
        The node's RPC endpoint URL.
    timeout : float
        Total per-call timeout in seconds.
    session : aiohttp.ClientSession | None
        Optional shared session. When omitted the client creates its own
        on first use and closes it in ``close()``.
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: aiohttp.ClientSession | None = None,
    ):
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        return self._url

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def call(self, method: str, params: list | None = None) -> Any:
        """Perform one JSON-RPC call.

        Parameters
        ----------
        method : str
            RPC method name.
        params : list | None
            Positional parameters.

        Returns
        -------
        Any
            The ``result`` member of the response.

        Raises
        ------
        RpcError
            The node returned an error object or no result.
        TransportError
            Timeout, connection failure or an unreadable response body.
        """
        request_id = next(self._ids)
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": request_id,
        }

        try:
            async with self._get_session().post(
                self._url, json=payload, timeout=self._timeout
            ) as response:
                body_text = await response.text()
                status = response.status
        except asyncio.TimeoutError as e:
            raise TransportError(f"{method} timed out after {self._timeout.total}s") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"{method} request failed: {e}") from e

        try:
            body = json.loads(body_text)
        except ValueError:
            raise TransportError(
                f"{method} returned a non-JSON response (HTTP {status})"
            ) from None

        if not isinstance(body, dict):
            raise TransportError(f"{method} returned an unexpected response (HTTP {status})")

        error = body.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise RpcError(str(error.get("message", "unknown error")), error.get("code"))
            raise RpcError(str(error))

        if status >= 400:
            raise TransportError(f"{method} failed with HTTP {status}")

        if "result" not in body or body["result"] is None:
            raise RpcError(f"{method} response missing result")

        return body["result"]

    async def get_chain_id(self) -> int:
        """Get the chain id reported by the node."""
        return _parse_quantity(await self.call("eth_chainId"), "chain id")

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """Get the account nonce.

        Parameters
        ----------
        address : str
            Account address.
        block : str
            Block tag; ``pending`` includes transactions still in the pool.

        Returns
        -------
        int
            Next usable nonce.
        """
        result = await self.call("eth_getTransactionCount", [address, block])
        return _parse_quantity(result, "nonce")

    async def get_gas_price(self) -> int:
        """Get the node's current gas price in wei."""
        return _parse_quantity(await self.call("eth_gasPrice"), "gas price")

    async def get_balance(self, address: str, block: str = "latest") -> int:
        """Get an account balance in wei."""
        result = await self.call("eth_getBalance", [address, block])
        return _parse_quantity(result, "balance")

    async def estimate_gas(self, from_address: str, to_address: str, value: int) -> int:
        """Estimate gas for a value transfer.

        Estimation errors are not fatal: any RPC or transport failure falls
        back to ``DEFAULT_GAS_LIMIT``.

        Returns
        -------
        int
            Estimated gas limit.
        """
        params = [{"from": from_address, "to": to_address, "value": hex(value)}]
        try:
            return _parse_quantity(await self.call("eth_estimateGas", params), "gas")
        except (RpcError, TransportError) as e:
            logger.warning(
                "Gas estimation failed, using default",
                extra={"error": str(e), "gas_limit": DEFAULT_GAS_LIMIT},
            )
            return DEFAULT_GAS_LIMIT

    async def send_raw_transaction(self, raw_tx: bytes | str) -> str:
        """Broadcast a signed transaction.

        Parameters
        ----------
        raw_tx : bytes | str
            Signed encoding, raw bytes or 0x-prefixed hex.

        Returns
        -------
        str
            Transaction hash reported by the node.
        """
        if isinstance(raw_tx, bytes):
            raw_tx = "0x" + raw_tx.hex()
        result = await self.call("eth_sendRawTransaction", [raw_tx])
        if not isinstance(result, str):
            raise RpcError(f"Invalid transaction hash format: {result!r}")
        return result
