"""Tests for script evaluation."""

import logging

import pytest
from pycardano import (
    Address,
    AssetName,
    ScriptHash,
    Transaction,
    TransactionBody,
    TransactionInput,
    TransactionOutput,
    TransactionWitnessSet,
)

from u5c.submit import Evaluator, map_eval_report, merge_additional_utxos, purpose_to_tag
from u5c.types import Assets, EvalRedeemer, RedeemerTag, UTxO

from tests.conftest import POLICY_ID, bech32, enterprise_address_bytes, run, tx_hash


def build_tx() -> bytes:
    address = Address.from_primitive(enterprise_address_bytes())
    body = TransactionBody(
        inputs=[TransactionInput.from_primitive([tx_hash(0x01), 0])],
        outputs=[TransactionOutput(address, 2_000_000)],
        fee=170_000,
    )
    return Transaction(body, TransactionWitnessSet()).to_cbor()


def extra_utxo(lovelace: int = 3_000_000, **tokens) -> UTxO:
    return UTxO(
        tx_hash="0e" * 32,
        output_index=4,
        address=bech32(enterprise_address_bytes()),
        assets=Assets({"lovelace": lovelace, **tokens}),
    )


def redeemer(purpose, index=0, memory="1200", steps="340000"):
    return {"purpose": purpose, "index": index, "exUnits": {"memory": memory, "steps": steps}}


class TestPurpose:

    @pytest.mark.parametrize("code,tag", [
        (0, RedeemerTag.SPEND),
        (1, RedeemerTag.MINT),
        (2, RedeemerTag.PUBLISH),
        (3, RedeemerTag.WITHDRAW),
        (4, RedeemerTag.VOTE),
        (5, RedeemerTag.PROPOSE),
        ("REDEEMER_PURPOSE_MINT", RedeemerTag.MINT),
        ("withdraw", RedeemerTag.WITHDRAW),
        ("REDEEMER_PURPOSE_CERT", RedeemerTag.PUBLISH),
        ("REDEEMER_PURPOSE_REWARD", RedeemerTag.WITHDRAW),
        ("REDEEMER_PURPOSE_PROPOSE", RedeemerTag.PROPOSE),
    ])
    def test_known(self, code, tag):
        assert purpose_to_tag(code) is tag

    @pytest.mark.parametrize("code", [6, -1, "REDEEMER_PURPOSE_UNSPECIFIED", "REDEEMER_PURPOSE_FOO", None, True])
    def test_unknown_is_logged(self, code, caplog):
        with caplog.at_level(logging.ERROR):
            assert purpose_to_tag(code) is RedeemerTag.UNKNOWN
        assert "Unknown redeemer purpose" in caplog.text


class TestReport:

    def test_nested_report(self):
        report = {"report": [{"chain": {"cardano": {"redeemers": [
            redeemer(0, index=0),
            redeemer("REDEEMER_PURPOSE_MINT", index=1, memory=500, steps=900),
        ]}}}]}
        assert map_eval_report(report) == [
            EvalRedeemer(0, RedeemerTag.SPEND, 1200, 340000),
            EvalRedeemer(1, RedeemerTag.MINT, 500, 900),
        ]

    def test_grpc_report(self):
        report = {"report": {"cardano": {"fee": {"int": 180000}, "redeemers": [
            redeemer("REDEEMER_PURPOSE_SPEND", index=0, memory=10, steps=20),
            redeemer("REDEEMER_PURPOSE_REWARD", index=1, memory=30, steps=40),
        ]}}}
        assert map_eval_report(report) == [
            EvalRedeemer(0, RedeemerTag.SPEND, 10, 20),
            EvalRedeemer(1, RedeemerTag.WITHDRAW, 30, 40),
        ]

    def test_flat_report(self):
        assert map_eval_report({"redeemers": [redeemer(3, index=2)]}) == [
            EvalRedeemer(2, RedeemerTag.WITHDRAW, 1200, 340000),
        ]

    @pytest.mark.parametrize("report", [None, {}, {"report": []}, {"redeemers": None}])
    def test_empty_report(self, report):
        assert map_eval_report(report) == []

    def test_unknown_purpose_is_kept(self):
        result = map_eval_report({"redeemers": [redeemer(9)]})
        assert result[0].redeemer_tag is RedeemerTag.UNKNOWN


class TestMergeAdditionalUtxos:

    def test_appends_input_and_output(self):
        merged = Transaction.from_cbor(merge_additional_utxos(build_tx(), [extra_utxo()]))
        body = merged.transaction_body

        inputs = list(body.inputs)
        assert len(inputs) == 2
        assert inputs[-1].transaction_id.payload == tx_hash(0x0E)
        assert inputs[-1].index == 4
        assert len(body.outputs) == 2
        assert body.outputs[-1].lovelace == 3_000_000
        assert body.fee == 170_000

    def test_multi_asset_output(self):
        unit = POLICY_ID + b"Tok".hex()
        merged = Transaction.from_cbor(merge_additional_utxos(build_tx().hex(), [extra_utxo(**{unit: 5})]))
        amount = merged.transaction_body.outputs[-1].amount
        assert amount.coin == 3_000_000
        assert amount.multi_asset[ScriptHash(bytes.fromhex(POLICY_ID))][AssetName(b"Tok")] == 5


class TestEvaluator:

    def test_sends_tx_unchanged_without_extras(self, fake_client):
        fake_client.eval_report = {"redeemers": [redeemer(0)]}
        tx = build_tx()

        result = run(Evaluator(fake_client).evaluate_tx(tx))

        assert fake_client.evaluated == [tx]
        assert result == [EvalRedeemer(0, RedeemerTag.SPEND, 1200, 340000)]

    def test_merges_extras_before_sending(self, fake_client):
        run(Evaluator(fake_client).evaluate_tx(build_tx(), [extra_utxo()]))
        sent = Transaction.from_cbor(fake_client.evaluated[0])
        assert len(list(sent.transaction_body.inputs)) == 2
