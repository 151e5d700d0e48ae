"""UTxO RPC provider: the full method set a transaction builder needs."""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Union

from config.settings import Settings
from u5c.blockchain import U5CClient
from u5c.fetching import ChainQueryClient, UtxoResolver
from u5c.fetching.resolver import AddressOrCredential, OutRefLike
from u5c.params import map_protocol_parameters
from u5c.submit import Evaluator, SubmissionController
from u5c.types import EvalRedeemer, ProtocolParameters, UTxO

logger = logging.getLogger(__name__)


class U5CProvider:
    """
    Stateless translator over a UTxO RPC endpoint.

    Nothing is cached between calls; every result is a fresh snapshot.
    Pass client to use something other than the gRPC client (tests).
    """

    def __init__(
        self,
        url: str = "http://localhost:50051",
        headers: Optional[Dict[str, str]] = None,
        client: Optional[ChainQueryClient] = None,
        request_timeout: float = 30.0,
        confirmation_timeout: float = 120.0,
        max_message_size: int = 50 * 1024 * 1024,
    ):
        self.client = client or U5CClient(
            url, headers=headers, request_timeout=request_timeout, max_message_size=max_message_size
        )
        self.resolver = UtxoResolver(self.client)
        self.controller = SubmissionController(self.client, confirmation_timeout=confirmation_timeout)
        self.evaluator = Evaluator(self.client)

    @classmethod
    def from_settings(cls, settings: Settings) -> "U5CProvider":
        return cls(
            url=settings.u5c_url,
            headers=settings.u5c_headers,
            request_timeout=settings.request_timeout,
            confirmation_timeout=settings.confirmation_timeout,
            max_message_size=settings.max_message_size,
        )

    async def __aenter__(self):
        if hasattr(self.client, "__aenter__"):
            await self.client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if hasattr(self.client, "__aexit__"):
            await self.client.__aexit__(exc_type, exc_val, exc_tb)

    async def get_protocol_parameters(self) -> ProtocolParameters:
        return map_protocol_parameters(await self.client.read_params())

    async def get_utxos(self, address_or_credential: AddressOrCredential) -> List[UTxO]:
        return await self.resolver.get_utxos(address_or_credential)

    async def get_utxos_with_unit(self, address_or_credential: AddressOrCredential, unit: str) -> List[UTxO]:
        return await self.resolver.get_utxos_with_unit(address_or_credential, unit)

    async def get_utxo_by_unit(self, unit: str) -> UTxO:
        return await self.resolver.get_utxo_by_unit(unit)

    async def get_utxos_by_out_ref(self, out_refs: Sequence[OutRefLike]) -> List[UTxO]:
        return await self.resolver.get_utxos_by_out_ref(out_refs)

    async def submit_tx(self, tx: Union[bytes, str]) -> str:
        return await self.controller.submit_tx(tx)

    async def await_tx(self, tx_hash: str, timeout: Optional[float] = None) -> bool:
        return await self.controller.await_tx(tx_hash, timeout)

    async def evaluate_tx(self, tx: Union[bytes, str], additional_utxos: Optional[Iterable[UTxO]] = None) -> List[EvalRedeemer]:
        return await self.evaluator.evaluate_tx(tx, additional_utxos)

    async def get_delegation(self, reward_address: str):
        raise NotImplementedError("get_delegation is not supported by UTxO RPC")

    async def get_datum(self, datum_hash: str):
        raise NotImplementedError("get_datum is not supported by UTxO RPC")
