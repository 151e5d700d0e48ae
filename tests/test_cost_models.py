"""
Tests for cost model normalization.

The V3 patch table is a frozen literal: when a protocol upgrade touches the
V3 cost model, revalidate PLUTUS_V3_PATCHES and bump PLUTUS_V3_PATCHES_REVISION.
"""

import logging

import pytest

from u5c.params import (
    COST_MODEL_SCHEMAS,
    PLUTUS_V1_NAMES,
    PLUTUS_V2_NAMES,
    PLUTUS_V3_NAMES,
    PLUTUS_V3_PATCHES,
    PLUTUS_V3_PATCHES_REVISION,
    expected_names,
    normalize_cost_model,
    normalize_cost_models,
)


class TestNameTables:

    def test_counts(self):
        assert len(PLUTUS_V1_NAMES) == 166
        assert len(PLUTUS_V2_NAMES) == 175
        assert len(PLUTUS_V3_NAMES) == 251
        assert len(PLUTUS_V3_PATCHES) == 46

    @pytest.mark.parametrize("names", [PLUTUS_V1_NAMES, PLUTUS_V2_NAMES, PLUTUS_V3_NAMES])
    def test_names_are_unique(self, names):
        assert len(set(names)) == len(names)

    def test_v1_v2_are_alphabetical(self):
        assert list(PLUTUS_V1_NAMES) == sorted(PLUTUS_V1_NAMES)
        assert list(PLUTUS_V2_NAMES) == sorted(PLUTUS_V2_NAMES)

    def test_v2_extends_v1(self):
        assert set(PLUTUS_V1_NAMES) < set(PLUTUS_V2_NAMES)
        added = set(PLUTUS_V2_NAMES) - set(PLUTUS_V1_NAMES)
        assert {n.split("-")[0] for n in added} == {
            "serialiseData", "verifyEcdsaSecp256k1Signature", "verifySchnorrSecp256k1Signature",
        }

    def test_known_positions(self):
        assert PLUTUS_V1_NAMES[0] == "addInteger-cpu-arguments-intercept"
        assert PLUTUS_V1_NAMES[17] == "cekApplyCost-exBudgetCPU"
        assert PLUTUS_V1_NAMES[-1] == "verifyEd25519Signature-memory-arguments"
        assert PLUTUS_V2_NAMES[-1] == "verifySchnorrSecp256k1Signature-memory-arguments"
        assert PLUTUS_V3_NAMES[50] == "divideInteger-cpu-arguments-model-arguments-c00"
        assert PLUTUS_V3_NAMES[-1] == "byteStringToInteger-memory-arguments-slope"

    def test_v3_uses_quadratic_division_names(self):
        assert "divideInteger-cpu-arguments-model-arguments-intercept" in PLUTUS_V2_NAMES
        assert "divideInteger-cpu-arguments-model-arguments-intercept" not in PLUTUS_V3_NAMES
        assert "modInteger-memory-arguments-minimum" not in PLUTUS_V3_NAMES
        assert "quotientInteger-memory-arguments-minimum" in PLUTUS_V3_NAMES

    def test_v3_includes_new_builtins(self):
        assert "bls12_381_G1_add-cpu-arguments" in PLUTUS_V3_NAMES
        assert "keccak_256-cpu-arguments-intercept" in PLUTUS_V3_NAMES
        assert "cekCaseCost-exBudgetMemory" in PLUTUS_V3_NAMES

    def test_patches_are_outside_positional_names(self):
        assert not set(PLUTUS_V3_PATCHES) & set(PLUTUS_V3_NAMES)
        assert {n.split("-")[0] for n in PLUTUS_V3_PATCHES} == {
            "andByteString", "orByteString", "xorByteString", "complementByteString",
            "readBit", "writeBits", "replicateByte", "shiftByteString", "rotateByteString",
            "countSetBits", "findFirstSetBit", "ripemd_160",
        }

    def test_patch_revision_is_pinned(self):
        # Revalidate the patch values whenever this changes
        assert PLUTUS_V3_PATCHES_REVISION == "plomin-pv10"
        assert PLUTUS_V3_PATCHES["ripemd_160-cpu-arguments-intercept"] == 1964219


class TestNormalize:

    @pytest.mark.parametrize("version", [1, 2, 3])
    def test_full_array_covers_every_name(self, version):
        schema = COST_MODEL_SCHEMAS[version]
        model = normalize_cost_model(list(range(len(schema.names))), version)
        assert set(model) == set(expected_names(version))

    def test_positional_mapping(self):
        values = list(range(1000, 1000 + len(PLUTUS_V2_NAMES)))
        model = normalize_cost_model(values, 2)
        assert model["addInteger-cpu-arguments-intercept"] == 1000
        assert model[PLUTUS_V2_NAMES[100]] == 1100

    def test_string_values(self):
        model = normalize_cost_model(["205665", "-900"], 1)
        assert model == {
            "addInteger-cpu-arguments-intercept": 205665,
            "addInteger-cpu-arguments-slope": -900,
        }

    @pytest.mark.parametrize("version", [1, 2])
    def test_short_array_maps_prefix_only(self, version):
        model = normalize_cost_model([7] * 10, version)
        assert len(model) == 10
        assert list(model) == list(COST_MODEL_SCHEMAS[version].names[:10])

    def test_short_v3_array_maps_prefix_plus_patches(self):
        model = normalize_cost_model([7] * 10, 3)
        assert len(model) == 10 + len(PLUTUS_V3_PATCHES)
        assert set(model) == set(PLUTUS_V3_NAMES[:10]) | set(PLUTUS_V3_PATCHES)

    def test_v3_patches_overlay(self):
        model = normalize_cost_model([0] * len(PLUTUS_V3_NAMES), 3)
        for name, value in PLUTUS_V3_PATCHES.items():
            assert model[name] == value

    def test_longer_array_is_reported(self, caplog):
        with caplog.at_level(logging.WARNING):
            model = normalize_cost_model([1] * (len(PLUTUS_V1_NAMES) + 5), 1)
        assert len(model) == len(PLUTUS_V1_NAMES)
        assert "trailing 5 values not mapped" in caplog.text

    @pytest.mark.parametrize("values", [None, "1,2,3", 42, {"values": [1]}])
    def test_non_sequence_gives_empty(self, values):
        assert normalize_cost_model(values, 3) == {}

    def test_unknown_version(self):
        with pytest.raises(ValueError):
            normalize_cost_model([1, 2], 4)


class TestNormalizeContainer:

    def test_each_version(self):
        models = normalize_cost_models({
            "plutusV1": {"values": [1, 2]},
            "plutusV2": [3],
            "plutusV3": {"values": []},
        })
        assert models[1] == {PLUTUS_V1_NAMES[0]: 1, PLUTUS_V1_NAMES[1]: 2}
        assert models[2] == {PLUTUS_V2_NAMES[0]: 3}
        assert models[3] == dict(PLUTUS_V3_PATCHES)

    def test_missing_container(self):
        assert normalize_cost_models(None) == {1: {}, 2: {}, 3: {}}

    def test_bad_version_does_not_block_others(self, caplog):
        with caplog.at_level(logging.WARNING):
            models = normalize_cost_models({
                "plutusV1": {"values": ["not-a-number"]},
                "plutusV2": {"values": [5]},
            })
        assert models[1] == {}
        assert models[2] == {PLUTUS_V2_NAMES[0]: 5}
        assert "Dropping PlutusV1 cost model" in caplog.text
