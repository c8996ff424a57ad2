from __future__ import annotations

import logging
from typing import Any, Sequence

from web3 import Web3

from src.chainwatch.schemas.alerts import AlertDefinition
from src.chainwatch.services.abi import CallDescriptor, build_calldata, decode_result, parse_function_abi

logger = logging.getLogger(__name__)


class RemoteReadError(RuntimeError):
    """Raised when an RPC endpoint cannot be reached or does not answer the liveness check."""


# PUBLIC_INTERFACE
def invoke_remote_read(w3: Web3, contract_address: str, descriptor: CallDescriptor, args: Sequence[Any]) -> Any:
    """Perform an eth_call described by `descriptor` against `contract_address` and decode the result."""
    to = Web3.to_checksum_address(contract_address)
    data = build_calldata(descriptor, args)
    raw = w3.eth.call({"to": to, "data": "0x" + data.hex()})
    return decode_result(descriptor, bytes(raw))


class Web3RemoteReader:
    """Blocking remote reader: one HTTP provider per alert, no retries."""

    def __init__(self, timeout_sec: int = 30):
        self._timeout_sec = int(timeout_sec)

    def connect(self, rpc_url: str) -> Web3:
        """Create a provider for `rpc_url` and validate it by querying the chain id."""
        w3 = Web3(
            Web3.HTTPProvider(
                rpc_url,
                request_kwargs={"timeout": self._timeout_sec},
                exception_retry_configuration=None,
            )
        )
        try:
            chain_id = w3.eth.chain_id
        except Exception as exc:
            raise RemoteReadError(f"RPC endpoint did not answer the network check: {exc}") from exc
        logger.debug("Connected to RPC chain_id=%s", chain_id)
        return w3

    # PUBLIC_INTERFACE
    def read(self, definition: AlertDefinition) -> Any:
        """Run the alert's configured read call and return the decoded response."""
        w3 = self.connect(definition.rpc_url)
        descriptor = parse_function_abi(definition.function_abi_string, definition.function_name)
        return invoke_remote_read(w3, definition.contract_address, descriptor, definition.call_inputs)
