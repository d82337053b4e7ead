"""Cells, their mRNA molecules and the per-step cell simulation."""

from __future__ import annotations

import itertools
import logging
import math
import random
import threading
from collections import Counter
from collections.abc import MutableMapping
from dataclasses import dataclass, field

from vscell.celltypes import CellType, CellTypeConfig

log = logging.getLogger(__name__)

MATURE = "Mature"
ERASE = "erase"

# Largest rate drawn in one multiplication run; larger rates are split into
# chunks, which is exact because a sum of Poisson variables is Poisson.
_POISSON_CHUNK = 500.0


@dataclass(frozen=True)
class MRNA:
    """One mRNA molecule: its gene name and the day it was made."""

    name: str
    time: int
    cell_cycle: bool = False


@dataclass
class SimulationParameters:
    """Tunable constants of the mRNA and cell-cycle model."""

    half_life: float = 1.3
    amplification: float = 0.65
    degradation: float = 0.5
    cell_cycle_duration: int = 2


@dataclass
class SimulationContext:
    """Everything shared by the cells of one simulation."""

    config: CellTypeConfig
    expression: dict[str, dict[str, float]] = field(default_factory=dict)
    params: SimulationParameters = field(default_factory=SimulationParameters)
    rng: random.Random = field(default_factory=random.Random)
    _ids: itertools.count = field(default_factory=itertools.count, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def next_id(self) -> int:
        """Return a fresh cell id, counting up from 0."""
        with self._lock:
            return next(self._ids)


def mrna_survives(age_days: float, half_life_days: float, rng: random.Random) -> bool:
    """Draw whether a molecule of the given age is still present."""
    k = math.log(2.0) / half_life_days
    survival_prob = math.exp(-k * age_days)
    return rng.random() < survival_prob


def poisson_sample(rate: float, rng: random.Random) -> int:
    """Draw a Poisson-distributed count with mean ``rate``; 0 for a non-positive rate."""
    if not rate > 0:
        return 0
    total = 0
    remaining = rate
    while remaining > 0:
        chunk = min(remaining, _POISSON_CHUNK)
        remaining -= chunk
        limit = math.exp(-chunk)
        product = rng.random()
        while product > limit:
            total += 1
            product *= rng.random()
    return total


@dataclass
class Cell:
    """A simulated cell, possibly standing for several identical duplicates."""

    cell_id: int
    clone_id: int
    state: str
    cycle_state: int = 0
    mrna: list[MRNA] = field(default_factory=list)
    sim_mrna: bool = False
    rna_enabled_for_type: bool = False
    cycle_counter: int = 0
    duplicate_count: int = 1

    @classmethod
    def from_type(cls, clone_id: int, state: str, context: SimulationContext) -> Cell:
        """A new cell of ``state`` whose flags come from the cell type definition."""
        config = context.config
        return cls(
            cell_id=context.next_id(),
            clone_id=clone_id,
            state=state,
            rna_enabled_for_type=config.rna_enabled_for_type(state),
            duplicate_count=config.duplicate_count_for_type(state),
        )

    def set_state(self, new_state: str, config: CellTypeConfig) -> None:
        """Change state, dropping mRNA where the new state carries none."""
        self.state = new_state
        if MATURE in new_state or not config.rna_enabled_for_type(new_state):
            self.sim_mrna = False
            self.mrna.clear()
            self.rna_enabled_for_type = False

    def enable_mrna(self, enabled: bool) -> None:
        """Turn mRNA simulation on (only if the type allows it) or off."""
        self.sim_mrna = bool(enabled) and self.rna_enabled_for_type

    def copy(self, context: SimulationContext) -> Cell:
        """An identical cell with a fresh id and its own mRNA list."""
        return Cell(
            cell_id=context.next_id(),
            clone_id=self.clone_id,
            state=self.state,
            cycle_state=self.cycle_state,
            mrna=list(self.mrna),
            sim_mrna=self.sim_mrna,
            rna_enabled_for_type=self.rna_enabled_for_type,
            cycle_counter=self.cycle_counter,
            duplicate_count=self.duplicate_count,
        )

    def maybe_start_cycle(self, prob_cycle: float, rng: random.Random) -> bool:
        """Draw whether the cell enters a cell cycle."""
        return rng.random() < prob_cycle

    def _differentiate(
        self,
        definition: CellType,
        rng: random.Random,
        flux: MutableMapping[str, int],
    ) -> str | None:
        """Draw a differentiation target, recording it in ``flux``; None if none."""
        if not rng.random() < definition.prob_differentiate:
            return None
        draw = rng.random()
        cumulative = 0.0
        for target, prob in definition.transitions:
            cumulative += prob
            if draw < cumulative:
                flux[target] = flux.get(target, 0) + self.duplicate_count
                return target
        return None

    def simulate(
        self,
        context: SimulationContext,
        results: list[Cell],
        flux: MutableMapping[str, int],
        simulation_time: int,
    ) -> None:
        """Advance the cell one day.

        New cells (daughters, and the mother when she differentiates) are
        appended to ``results``; a differentiated mother is marked ``erase``.
        """
        definition = context.config.cell_types.get(self.state)
        if definition is None or not definition.state:
            log.error("cell type %r not found in cell types map", self.state)
            return

        self.degrade_mrna(context, simulation_time)
        self.simulate_mrna(context, simulation_time)
        self.simulate_cycle_mrna(context, simulation_time)

        if self.cycle_state == 0:
            if self.maybe_start_cycle(definition.prob_cycle, context.rng):
                self.cycle_state = 1
            return

        self.cycle_state += 1
        if self.cycle_state < context.params.cell_cycle_duration:
            return

        self.cycle_counter += 1
        self.cycle_state = 0
        rng = context.rng

        daughter_state = self._differentiate(definition, rng, flux) or self.state
        daughter = self._offspring(context)
        daughter.set_state(daughter_state, context.config)
        results.append(daughter)

        mother_state = self._differentiate(definition, rng, flux)
        if mother_state is not None:
            mother = self._offspring(context)
            mother.set_state(mother_state, context.config)
            results.append(mother)
            self.state = ERASE

    def _offspring(self, context: SimulationContext) -> Cell:
        return self.copy(context)

    def _make_mrna(
        self,
        context: SimulationContext,
        expression: dict[str, float],
        simulation_time: int,
        cell_cycle: bool,
    ) -> None:
        scale = context.params.amplification
        for name, level in expression.items():
            molecules = poisson_sample(level * scale, context.rng)
            self.mrna.extend(
                MRNA(name, simulation_time, cell_cycle) for _ in range(molecules)
            )

    def simulate_mrna(self, context: SimulationContext, simulation_time: int) -> None:
        """Make new mRNA molecules from the expression profile of the cell's state."""
        if not self.sim_mrna or self.state == MATURE:
            return
        expression = context.expression.get(self.state)
        if not expression:
            log.error("no mRNA expression data for state %r", self.state)
            return
        self._make_mrna(context, expression, simulation_time, cell_cycle=False)

    def simulate_cycle_mrna(self, context: SimulationContext, simulation_time: int) -> None:
        """Make cell-cycle mRNA: the S profile early in the cycle, G2M later."""
        if not self.sim_mrna or self.state == MATURE or self.cycle_state == 0:
            return
        phase = "S" if self.cycle_state < context.params.cell_cycle_duration // 2 else "G2M"
        expression = context.expression.get(phase)
        if not expression:
            log.error("no mRNA expression data for cell cycle state %s", phase)
            return
        self._make_mrna(context, expression, simulation_time, cell_cycle=True)

    def degrade_mrna(self, context: SimulationContext, simulation_time: int) -> None:
        """Remove molecules whose survival draw succeeds, as the model defines it."""
        if not self.sim_mrna:
            return
        half_life = context.params.half_life
        rng = context.rng
        self.mrna = [
            molecule
            for molecule in self.mrna
            if not mrna_survives(simulation_time - molecule.time, half_life, rng)
        ]

    def mrna_counts(self) -> dict[str, int]:
        """Number of molecules of each mRNA name in the cell."""
        return dict(Counter(molecule.name for molecule in self.mrna))