"""Chips, their bus interactions and the permutation argument that links them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from itertools import islice
from typing import Any, ClassVar

from starkvm.air import AirBuilder
from starkvm.field import Fp, batch_multiplicative_inverse_allowing_zero
from starkvm.matrix import RowMajorMatrix


class _Source(Enum):
    PREPROCESSED = "preprocessed"
    MAIN = "main"


@dataclass(frozen=True)
class VirtualPairCol:
    """A linear combination of preprocessed and main columns plus a constant."""

    column_weights: tuple[tuple[_Source, int, Fp], ...] = ()
    constant_term: Fp = field(default_factory=lambda: Fp(0))

    @classmethod
    def single_main(cls, column: int) -> VirtualPairCol:
        return cls(((_Source.MAIN, column, Fp(1)),))

    @classmethod
    def single_preprocessed(cls, column: int) -> VirtualPairCol:
        return cls(((_Source.PREPROCESSED, column, Fp(1)),))

    @classmethod
    def sum_main(cls, columns: Iterable[int]) -> VirtualPairCol:
        return cls(tuple((_Source.MAIN, column, Fp(1)) for column in columns))

    @classmethod
    def new_main(cls, terms: Iterable[tuple[int, Any]], constant: Any) -> VirtualPairCol:
        return cls(
            tuple((_Source.MAIN, column, Fp(weight)) for column, weight in terms),
            Fp(constant),
        )

    @classmethod
    def constant(cls, value: Any) -> VirtualPairCol:
        return cls((), Fp(value))

    @classmethod
    def one(cls) -> VirtualPairCol:
        return cls.constant(1)

    def apply(self, preprocessed_row: Sequence[Any], main_row: Sequence[Any]) -> Any:
        """Evaluate the combination on one row of each trace."""
        result: Any = self.constant_term
        for source, column, weight in self.column_weights:
            row = preprocessed_row if source is _Source.PREPROCESSED else main_row
            result = result + row[column] * weight
        return result


@dataclass(frozen=True, order=True)
class BusArgument:
    """A bus, local to one chip or shared across the machine; local buses sort first."""

    is_global: bool
    index: int

    @classmethod
    def local(cls, index: int) -> BusArgument:
        return cls(False, index)

    @classmethod
    def global_(cls, index: int) -> BusArgument:
        return cls(True, index)


class InteractionType(Enum):
    LOCAL_SEND = "local_send"
    LOCAL_RECEIVE = "local_receive"
    GLOBAL_SEND = "global_send"
    GLOBAL_RECEIVE = "global_receive"


_SENDS = frozenset({InteractionType.LOCAL_SEND, InteractionType.GLOBAL_SEND})


@dataclass
class Interaction:
    """Values sent to or received from a bus, with a multiplicity."""

    fields: list[VirtualPairCol]
    count: VirtualPairCol
    argument: BusArgument

    def is_local(self) -> bool:
        return not self.argument.is_global

    def is_global(self) -> bool:
        return self.argument.is_global

    def argument_index(self) -> int:
        return self.argument.index


class Chip(ABC):
    """A table of the machine with its own trace, constraints and bus interactions.

    Subclasses set ``width`` to the number of main trace columns.
    """

    width: ClassVar[int] = 0

    @abstractmethod
    def generate_trace(self, machine: Any) -> RowMajorMatrix:
        """Generate the main trace for the chip from the machine's state."""

    def preprocessed_trace(self) -> RowMajorMatrix | None:
        return None

    @abstractmethod
    def eval(self, builder: AirBuilder) -> None:
        """Assert the chip's constraints on the builder."""

    def local_sends(self) -> list[Interaction]:
        return []

    def local_receives(self) -> list[Interaction]:
        return []

    def global_sends(self, machine: Any) -> list[Interaction]:
        return []

    def global_receives(self, machine: Any) -> list[Interaction]:
        return []

    def all_interactions(self, machine: Any) -> list[tuple[Interaction, InteractionType]]:
        return [
            *((i, InteractionType.LOCAL_SEND) for i in self.local_sends()),
            *((i, InteractionType.LOCAL_RECEIVE) for i in self.local_receives()),
            *((i, InteractionType.GLOBAL_SEND) for i in self.global_sends(machine)),
            *((i, InteractionType.GLOBAL_RECEIVE) for i in self.global_receives(machine)),
        ]


def _alpha_count(interactions: Iterable[Interaction]) -> int:
    return max((i.argument_index() for i in interactions), default=0) + 1


def _generate_rlc_elements(
    machine: Any, chip: Chip, random_elements: Sequence[Fp]
) -> tuple[list[Fp], list[Fp]]:
    local_count = _alpha_count([*chip.local_sends(), *chip.local_receives()])
    global_count = _alpha_count(
        [*chip.global_sends(machine), *chip.global_receives(machine)]
    )
    alphas_local = list(islice(random_elements[0].powers(), 1, local_count + 1))
    alphas_global = list(islice(random_elements[1].powers(), 1, global_count + 1))
    return alphas_local, alphas_global


def _alpha_for(
    interaction: Interaction, alphas_local: Sequence[Fp], alphas_global: Sequence[Fp]
) -> Fp:
    alphas = alphas_local if interaction.is_local() else alphas_global
    return alphas[interaction.argument_index()]


def _reduce_row(
    main_row: Sequence[Fp],
    preprocessed_row: Sequence[Fp],
    fields: Sequence[VirtualPairCol],
    alpha: Fp,
    beta: Fp,
) -> Fp:
    rlc = Fp(0)
    for column, power in zip(fields, beta.powers()):
        rlc = rlc + power * column.apply(preprocessed_row, main_row)
    return rlc + alpha


def _preprocessed_row(preprocessed: RowMajorMatrix | None, n: int) -> list[Any]:
    return preprocessed.row(n) if preprocessed is not None else []


def generate_permutation_trace(
    machine: Any,
    chip: Chip,
    main: RowMajorMatrix,
    random_elements: Sequence[Fp],
) -> RowMajorMatrix:
    """Build the permutation trace: one reciprocal column per interaction, then the running sum."""
    random_elements = list(random_elements)
    interactions = chip.all_interactions(machine)
    alphas_local, alphas_global = _generate_rlc_elements(machine, chip, random_elements)
    beta = random_elements[2]
    preprocessed = chip.preprocessed_trace()
    perm_width = len(interactions) + 1

    denominators: list[Fp] = []
    for n, main_row in enumerate(main.rows()):
        pre_row = _preprocessed_row(preprocessed, n)
        denominators.extend(
            _reduce_row(
                main_row,
                pre_row,
                interaction.fields,
                _alpha_for(interaction, alphas_local, alphas_global),
                beta,
            )
            for interaction, _ in interactions
        )
        denominators.append(Fp(0))
    perm = RowMajorMatrix(
        batch_multiplicative_inverse_allowing_zero(denominators), perm_width
    )

    phi = Fp(0)
    perm_rows = list(perm.rows())
    for n, (main_row, perm_row) in enumerate(zip(main.rows(), perm_rows)):
        pre_row = _preprocessed_row(preprocessed, n)
        for m, (interaction, kind) in enumerate(interactions):
            term = perm_row[m] * interaction.count.apply(pre_row, main_row)
            phi = phi + term if kind in _SENDS else phi - term
        perm.set(n, perm_width - 1, phi)
    return perm


def eval_permutation_constraints(chip: Chip, builder: AirBuilder, cumulative_sum: Any) -> None:
    """Assert the reciprocal and running-sum constraints of the permutation argument."""
    rand_elems = list(builder.permutation_randomness)

    main_local, main_next = builder.main.local, builder.main.next
    pre_local, pre_next = builder.preprocessed.local, builder.preprocessed.next
    perm_local, perm_next = builder.permutation.local, builder.permutation.next

    phi_local = perm_local[-1]
    phi_next = perm_next[-1]

    interactions = chip.all_interactions(builder.machine)
    alphas_local, alphas_global = _generate_rlc_elements(builder.machine, chip, rand_elems)
    beta = rand_elems[2]

    lhs = phi_next - phi_local
    rhs: Any = Fp(0)
    phi_0: Any = Fp(0)
    for m, (interaction, kind) in enumerate(interactions):
        rlc: Any = Fp(0)
        for column, power in zip(interaction.fields, beta.powers()):
            rlc = rlc + power * column.apply(pre_local, main_local)
        rlc = rlc + _alpha_for(interaction, alphas_local, alphas_global)
        builder.assert_one(rlc * perm_local[m])

        mult_local = interaction.count.apply(pre_local, main_local)
        mult_next = interaction.count.apply(pre_next, main_next)
        if kind in _SENDS:
            phi_0 = phi_0 + perm_local[m] * mult_local
            rhs = rhs + perm_next[m] * mult_next
        else:
            phi_0 = phi_0 - perm_local[m] * mult_local
            rhs = rhs - perm_next[m] * mult_next

    builder.when_transition().assert_eq(lhs, rhs)
    builder.when_first_row().assert_eq(perm_local[-1], phi_0)
    builder.when_last_row().assert_eq(perm_local[-1], cumulative_sum)