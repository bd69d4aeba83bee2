import json

import pytest

from starkvm.field import Fp
from starkvm.proof import ChipProof, Commitments, MachineProof, OpenedValues


def _proof():
    opened = OpenedValues(
        preprocessed_local=[Fp(1)],
        preprocessed_next=[Fp(2)],
        trace_local=[Fp(3), Fp(4)],
        trace_next=[Fp(5), Fp(6)],
        permutation_local=[Fp(7)],
        permutation_next=[Fp(8)],
        quotient_chunks=[Fp(9), Fp(10)],
    )
    return MachineProof(
        commitments=Commitments(main_trace="aa", perm_trace="bb", quotient_chunks="cc"),
        opening_proof={"layers": [1, 2, 3]},
        chip_proofs=[ChipProof(log_degree=3, opened_values=opened)],
    )


def test_round_trip():
    proof = _proof()
    assert MachineProof.from_dict(proof.to_dict()) == proof


def test_json_round_trip():
    proof = _proof()
    text = json.dumps(proof.to_dict())
    assert MachineProof.from_dict(json.loads(text)) == proof


def test_field_elements_written_as_integers():
    data = _proof().to_dict()
    opened = data["chip_proofs"][0]["opened_values"]
    assert opened["trace_local"] == [3, 4]
    assert opened["quotient_chunks"] == [9, 10]
    assert data["commitments"] == {"main_trace": "aa", "perm_trace": "bb", "quotient_chunks": "cc"}
    assert data["chip_proofs"][0]["log_degree"] == 3


def test_decoded_values_are_field_elements():
    restored = MachineProof.from_dict(_proof().to_dict())
    values = restored.chip_proofs[0].opened_values.trace_next
    assert values == [Fp(5), Fp(6)]
    assert all(isinstance(v, Fp) for v in values)


def test_empty_chip_proofs_round_trip():
    proof = MachineProof(Commitments(1, 2, 3), None)
    assert MachineProof.from_dict(proof.to_dict()) == proof


def test_missing_key_is_rejected():
    data = _proof().to_dict()
    del data["commitments"]["perm_trace"]
    with pytest.raises(ValueError, match="perm_trace"):
        MachineProof.from_dict(data)


def test_negative_log_degree_is_rejected():
    data = _proof().to_dict()
    data["chip_proofs"][0]["log_degree"] = -1
    with pytest.raises(ValueError):
        MachineProof.from_dict(data)


def test_non_integer_opened_value_is_rejected():
    data = _proof().to_dict()
    data["chip_proofs"][0]["opened_values"]["trace_local"] = ["x"]
    with pytest.raises(ValueError, match="trace_local"):
        MachineProof.from_dict(data)