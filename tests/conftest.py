"""Pytest configuration and fixtures for provider tests."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest
from pycardano import Address, Network, VerificationKeyHash

from u5c.errors import RpcError


# ============================================================================
# SAMPLE KEYS
# ============================================================================

PAYMENT_HASH = bytes.fromhex("9b3b0c2da041c32b0b20dd238f6212f0959558f17f2ad8be68fbeab2")
STAKE_HASH = bytes.fromhex("e638308249edbf23183283158ab30ac4488bb58f6b5b392a8e92ef1e")
POLICY_ID = "5627f577d31b920c26cb69d07edf8b21327d4b485108805b9e68ace4"
ASSET_NAME = "436c61794e6174696f6e35"  # "ClayNation5"
UNIT = POLICY_ID + ASSET_NAME


def enterprise_address_bytes(key_hash: bytes = PAYMENT_HASH) -> bytes:
    """29-byte testnet enterprise address."""
    return bytes([0x60]) + key_hash


def base_address_bytes(payment: bytes = PAYMENT_HASH, stake: bytes = STAKE_HASH) -> bytes:
    """57-byte testnet base address."""
    return bytes([0x00]) + payment + stake


def bech32(address: bytes) -> str:
    return Address.from_primitive(address).encode()


def tx_hash(byte: int) -> bytes:
    return bytes([byte]) * 32


def make_record(
    hash_byte: int = 0xAA,
    index: int = 0,
    address: Optional[bytes] = None,
    coin: Any = "5000000",
    assets: Optional[List[Dict[str, Any]]] = None,
    datum: Optional[Dict[str, Any]] = None,
    script: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Raw UTxO record in the SDK shape."""
    output: Dict[str, Any] = {"address": address if address is not None else enterprise_address_bytes()}
    if coin is not None:
        output["coin"] = coin
    if assets is not None:
        output["assets"] = assets
    if datum is not None:
        output["datum"] = datum
    if script is not None:
        output["script"] = script
    return {"txoRef": {"hash": tx_hash(hash_byte), "index": index}, "parsedValued": output}


def run(coro):
    return asyncio.run(coro)


# ============================================================================
# FAKE SERVICE
# ============================================================================

class FakeChainClient:
    """In-memory ChainQueryClient; records every call."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.by_address: Dict[bytes, List[dict]] = {}
        self.by_payment: Dict[bytes, List[dict]] = {}
        self.by_delegation: Dict[bytes, List[dict]] = {}
        self.by_asset: Dict[bytes, List[dict]] = {}
        self.by_ref: Dict[tuple, dict] = {}
        self.params: Optional[dict] = None
        self.submit_error: Optional[Exception] = None
        self.stages: List[tuple] = []  # (delay seconds, stage)
        self.hang_after_stages = False
        self.stream_closed = False
        self.eval_report: Dict[str, Any] = {}
        self.evaluated: List[bytes] = []
        self.require_parallel = False
        self.payment_error: Optional[Exception] = None
        self.delegation_hangs = False
        self.delegation_cancelled = False
        self._delegation_started: Optional[asyncio.Event] = None

    def _event(self) -> asyncio.Event:
        if self._delegation_started is None:
            self._delegation_started = asyncio.Event()
        return self._delegation_started

    async def search_utxos_by_address(self, address, asset=None):
        self.calls.append(("address", address, asset))
        return list(self.by_address.get(address, []))

    async def search_utxos_by_payment_part(self, credential, asset=None):
        self.calls.append(("payment", credential, asset))
        if self.payment_error:
            await asyncio.sleep(0)
            raise self.payment_error
        if self.require_parallel:
            # only completes if the delegation query is already in flight
            await asyncio.wait_for(self._event().wait(), timeout=1.0)
        return list(self.by_payment.get(credential, []))

    async def search_utxos_by_delegation_part(self, credential, asset=None):
        self.calls.append(("delegation", credential, asset))
        self._event().set()
        if self.delegation_hangs:
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                self.delegation_cancelled = True
                raise
        return list(self.by_delegation.get(credential, []))

    async def search_utxos_by_asset(self, asset):
        self.calls.append(("asset", asset))
        return list(self.by_asset.get(asset, []))

    async def read_utxos(self, refs):
        self.calls.append(("read", list(refs)))
        return [self.by_ref[ref] for ref in refs if ref in self.by_ref]

    async def read_params(self):
        self.calls.append(("params",))
        return self.params

    async def submit_tx(self, tx):
        self.calls.append(("submit", tx))
        if self.submit_error:
            raise self.submit_error
        return tx_hash(0x53)

    async def wait_for_tx(self, tx_hash):
        self.calls.append(("wait", tx_hash))
        try:
            for delay, stage in self.stages:
                await asyncio.sleep(delay)
                yield stage
            if self.hang_after_stages:
                await asyncio.sleep(3600)
        finally:
            self.stream_closed = True

    async def evaluate_tx(self, tx):
        self.calls.append(("evaluate", tx))
        self.evaluated.append(tx)
        return self.eval_report


@pytest.fixture
def fake_client():
    return FakeChainClient()


@pytest.fixture
def rejection():
    return RpcError("BadInputsUTxO", code=3005, data={"badInputs": ["f8c9..#1"]})


# ============================================================================
# PROTOCOL PARAMETER FIXTURES
# ============================================================================

@pytest.fixture
def raw_params():
    """readParams result as protobuf JSON (int64 as strings)."""
    return {
        "coinsPerUtxoByte": "4310",
        "maxTxSize": "16384",
        "minFeeCoefficient": "44",
        "minFeeConstant": "155381",
        "maxBlockBodySize": "90112",
        "maxBlockHeaderSize": "1100",
        "stakeKeyDeposit": "2000000",
        "poolDeposit": "500000000",
        "minPoolCost": "170000000",
        "protocolVersion": {"major": 10, "minor": 0},
        "maxValueSize": "5000",
        "collateralPercentage": "150",
        "maxCollateralInputs": "3",
        "prices": {
            "memory": {"numerator": 577, "denominator": 10000},
            "steps": {"numerator": 721, "denominator": 10000000},
        },
        "maxExecutionUnitsPerTransaction": {"memory": "14000000", "steps": "10000000000"},
        "minFeeScriptRefCostPerByte": {"numerator": 15, "denominator": 1},
        "drepDeposit": "500000000",
        "governanceActionDeposit": "100000000000",
        "costModels": {
            "plutusV1": {"values": [str(i) for i in range(166)]},
            "plutusV2": {"values": list(range(175))},
            "plutusV3": {"values": list(range(251))},
        },
    }
