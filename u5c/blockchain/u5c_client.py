"""UTxO RPC client over gRPC (utxorpc v1alpha query and submit services)."""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import grpc
from utxorpc_spec.utxorpc.v1alpha.cardano import cardano_pb2
from utxorpc_spec.utxorpc.v1alpha.query import query_pb2, query_pb2_grpc
from utxorpc_spec.utxorpc.v1alpha.submit import submit_pb2, submit_pb2_grpc

from u5c.errors import RpcError, TransportFailure
from .records import message_to_record

logger = logging.getLogger(__name__)

POLICY_ID_SIZE = 28

# Status codes that say nothing about the request itself
TRANSPORT_CODES = frozenset({
    grpc.StatusCode.UNAVAILABLE,
    grpc.StatusCode.DEADLINE_EXCEEDED,
    grpc.StatusCode.CANCELLED,
})


def _translate(error: grpc.aio.AioRpcError, method: str) -> TransportFailure:
    code = error.code()
    details = error.details() or code.name
    if code in TRANSPORT_CODES:
        return TransportFailure(f"{method} failed: {code.name}: {details}")
    return RpcError(details, code=code.value[0], data=details)


def _asset_pattern(unit: bytes) -> cardano_pb2.AssetPattern:
    """Policy id plus optional asset name -> AssetPattern."""
    return cardano_pb2.AssetPattern(
        policy_id=unit[:POLICY_ID_SIZE],
        asset_name=unit[POLICY_ID_SIZE:],
    )


class U5CClient:
    """
    Async client for a UTxO RPC endpoint.

    One channel carries every call, status streams included. Responses are
    turned into plain records (see u5c.blockchain.records) before they leave
    the client.
    """

    def __init__(
        self,
        url: str = "http://localhost:50051",
        headers: Optional[Dict[str, str]] = None,
        request_timeout: float = 30.0,
        max_message_size: int = 50 * 1024 * 1024,
    ):
        self.url = url
        self.headers = dict(headers or {})
        self.request_timeout = request_timeout
        self.max_message_size = max_message_size
        self._channel: Optional[grpc.aio.Channel] = None
        self._query: Optional[query_pb2_grpc.QueryServiceStub] = None
        self._submit: Optional[submit_pb2_grpc.SubmitServiceStub] = None

    @property
    def _metadata(self) -> Tuple[Tuple[str, str], ...]:
        # gRPC metadata keys must be lower case
        return tuple((key.lower(), value) for key, value in self.headers.items())

    def _open(self) -> grpc.aio.Channel:
        parts = urlsplit(self.url if "://" in self.url else f"http://{self.url}")
        options = [
            ("grpc.max_receive_message_length", self.max_message_size),
            ("grpc.max_send_message_length", self.max_message_size),
        ]
        if parts.scheme == "https":
            return grpc.aio.secure_channel(parts.netloc, grpc.ssl_channel_credentials(), options=options)
        return grpc.aio.insecure_channel(parts.netloc, options=options)

    async def connect(self) -> bool:
        """Open the channel and wait until it is ready. Returns True on success."""
        channel = self._open()
        try:
            await asyncio.wait_for(channel.channel_ready(), timeout=self.request_timeout)
        except asyncio.TimeoutError:
            await channel.close()
            logger.error(f"Failed to connect to {self.url}: not ready after {self.request_timeout}s")
            return False
        self._channel = channel
        self._query = query_pb2_grpc.QueryServiceStub(channel)
        self._submit = submit_pb2_grpc.SubmitServiceStub(channel)
        logger.info(f"Connected to UTxO RPC at {self.url}")
        return True

    async def disconnect(self):
        if self._channel:
            await self._channel.close()
            self._channel = self._query = self._submit = None
            logger.info("Disconnected from UTxO RPC")

    @property
    def is_connected(self) -> bool:
        return self._channel is not None

    async def __aenter__(self):
        if not await self.connect():
            raise TransportFailure(f"Failed to connect to {self.url}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def _call(self, method: str, request: Any) -> Any:
        """Unary call with the request timeout; gRPC errors become TransportFailure / RpcError."""
        if not self.is_connected:
            raise TransportFailure("Not connected to UTxO RPC")
        stub = self._submit if hasattr(self._submit, method) else self._query
        try:
            response = await getattr(stub, method)(request, timeout=self.request_timeout, metadata=self._metadata)
        except grpc.aio.AioRpcError as e:
            logger.debug(f"{method} failed: {e.code().name}: {e.details()}")
            raise _translate(e, method) from e
        # grpc logs deserialization errors and hands back None
        if response is None:
            raise TransportFailure(f"{method} returned an undecodable response")
        return response

    async def _search(self, pattern: cardano_pb2.TxOutputPattern) -> List[Dict[str, Any]]:
        request = query_pb2.SearchUtxosRequest(
            predicate=query_pb2.UtxoPredicate(match=query_pb2.AnyUtxoPattern(cardano=pattern)),
        )
        response = await self._call("SearchUtxos", request)
        return [message_to_record(item) for item in response.items]

    async def _search_address(self, address: cardano_pb2.AddressPattern, asset: Optional[bytes]) -> List[Dict[str, Any]]:
        pattern = cardano_pb2.TxOutputPattern(address=address)
        if asset is not None:
            pattern.asset.CopyFrom(_asset_pattern(asset))
        return await self._search(pattern)

    async def search_utxos_by_address(self, address: bytes, asset: Optional[bytes] = None) -> List[Dict[str, Any]]:
        return await self._search_address(cardano_pb2.AddressPattern(exact_address=address), asset)

    async def search_utxos_by_payment_part(self, credential: bytes, asset: Optional[bytes] = None) -> List[Dict[str, Any]]:
        return await self._search_address(cardano_pb2.AddressPattern(payment_part=credential), asset)

    async def search_utxos_by_delegation_part(self, credential: bytes, asset: Optional[bytes] = None) -> List[Dict[str, Any]]:
        return await self._search_address(cardano_pb2.AddressPattern(delegation_part=credential), asset)

    async def search_utxos_by_asset(self, asset: bytes) -> List[Dict[str, Any]]:
        return await self._search(cardano_pb2.TxOutputPattern(asset=_asset_pattern(asset)))

    async def read_utxos(self, refs: Sequence[Tuple[bytes, int]]) -> List[Dict[str, Any]]:
        keys = [query_pb2.TxoRef(hash=tx_hash, index=index) for tx_hash, index in refs]
        response = await self._call("ReadUtxos", query_pb2.ReadUtxosRequest(keys=keys))
        return [message_to_record(item) for item in response.items]

    async def read_params(self) -> Optional[Dict[str, Any]]:
        response = await self._call("ReadParams", query_pb2.ReadParamsRequest())
        if not response.HasField("values") or not response.values.HasField("cardano"):
            return None
        return message_to_record(response.values.cardano)

    async def submit_tx(self, tx: bytes) -> bytes:
        request = submit_pb2.SubmitTxRequest(tx=submit_pb2.AnyChainTx(raw=tx))
        response = await self._call("SubmitTx", request)
        if not response.ref:
            raise TransportFailure("SubmitTx returned no transaction reference")
        return bytes(response.ref)

    async def wait_for_tx(self, tx_hash: bytes) -> AsyncIterator[Any]:
        """
        Yield status stage names for tx_hash.

        The call is cancelled when the server ends the stream or the consumer
        closes the generator. A broken stream raises TransportFailure.
        """
        if not self.is_connected:
            raise TransportFailure("Not connected to UTxO RPC")
        call = self._submit.WaitForTx(submit_pb2.WaitForTxRequest(ref=[tx_hash]), metadata=self._metadata)
        try:
            async for update in call:
                if update is None:
                    raise TransportFailure("WaitForTx returned an undecodable update")
                yield message_to_record(update).get("stage")
        except grpc.aio.AioRpcError as e:
            raise _translate(e, "WaitForTx") from e
        finally:
            call.cancel()

    async def evaluate_tx(self, tx: bytes) -> Dict[str, Any]:
        request = submit_pb2.EvalTxRequest(tx=submit_pb2.AnyChainTx(raw=tx))
        return message_to_record(await self._call("EvalTx", request))

    async def health_check(self) -> Dict[str, Any]:
        try:
            params = await self.read_params()
            return {"status": "healthy", "connected": True, "has_params": bool(params)}
        except TransportFailure as e:
            return {"status": "unhealthy", "connected": self.is_connected, "error": str(e)}
