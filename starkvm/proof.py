"""The proof a machine produces, and its plain-data form."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from starkvm.field import Fp


def _encode(value: Any) -> Any:
    if isinstance(value, Fp):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    if isinstance(value, Mapping):
        return {key: _encode(item) for key, item in value.items()}
    return value


def _require(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"malformed proof: expected a mapping holding {key!r}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"malformed proof: missing {key!r}") from None


def _decode_elements(values: Any, name: str) -> list[Fp]:
    if not isinstance(values, (list, tuple)):
        raise ValueError(f"malformed proof: {name!r} is not a list")
    decoded = []
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (int, Fp)):
            raise ValueError(f"malformed proof: {name!r} holds a non-integer value")
        decoded.append(Fp(value))
    return decoded


@dataclass
class OpenedValues:
    """Trace values opened at the challenge point and its successor."""

    preprocessed_local: list[Fp] = field(default_factory=list)
    preprocessed_next: list[Fp] = field(default_factory=list)
    trace_local: list[Fp] = field(default_factory=list)
    trace_next: list[Fp] = field(default_factory=list)
    permutation_local: list[Fp] = field(default_factory=list)
    permutation_next: list[Fp] = field(default_factory=list)
    quotient_chunks: list[Fp] = field(default_factory=list)


@dataclass
class ChipProof:
    log_degree: int
    opened_values: OpenedValues


@dataclass
class Commitments:
    main_trace: Any
    perm_trace: Any
    quotient_chunks: Any


@dataclass
class MachineProof:
    """Commitments to every trace, the opening proof and one proof per chip."""

    commitments: Commitments
    opening_proof: Any
    chip_proofs: list[ChipProof] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Plain data; field elements are written as integers."""
        return {
            "commitments": {
                f.name: _encode(getattr(self.commitments, f.name))
                for f in fields(Commitments)
            },
            "opening_proof": _encode(self.opening_proof),
            "chip_proofs": [
                {
                    "log_degree": proof.log_degree,
                    "opened_values": {
                        f.name: _encode(getattr(proof.opened_values, f.name))
                        for f in fields(OpenedValues)
                    },
                }
                for proof in self.chip_proofs
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MachineProof:
        """Rebuild a proof from to_dict's output; raise ValueError if it is malformed."""
        raw_commitments = _require(data, "commitments")
        commitments = Commitments(
            **{f.name: _require(raw_commitments, f.name) for f in fields(Commitments)}
        )
        raw_chip_proofs = _require(data, "chip_proofs")
        if not isinstance(raw_chip_proofs, (list, tuple)):
            raise ValueError("malformed proof: 'chip_proofs' is not a list")
        chip_proofs = []
        for raw in raw_chip_proofs:
            log_degree = _require(raw, "log_degree")
            if isinstance(log_degree, bool) or not isinstance(log_degree, int) or log_degree < 0:
                raise ValueError("malformed proof: 'log_degree' must be a non-negative integer")
            raw_opened = _require(raw, "opened_values")
            opened = OpenedValues(
                **{
                    f.name: _decode_elements(_require(raw_opened, f.name), f.name)
                    for f in fields(OpenedValues)
                }
            )
            chip_proofs.append(ChipProof(log_degree, opened))
        return cls(commitments, _require(data, "opening_proof"), chip_proofs)