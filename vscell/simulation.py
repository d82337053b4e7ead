"""Running a population of cells over days, and reports on the population."""

from __future__ import annotations

import itertools
import os
from collections import Counter
from collections.abc import Iterable, Mapping

from vscell.cell import ERASE, MATURE, Cell, SimulationContext

Groups = list[list[Cell]]


def _chunk_bounds(total: int, group_count: int) -> Iterable[tuple[int, int]]:
    """Split ``total`` items into ``group_count`` runs; the last takes the remainder."""
    if group_count < 1:
        raise ValueError("group_count must be at least 1")
    chunk = total // group_count
    for index in range(group_count):
        start = index * chunk
        end = total if index == group_count - 1 else start + chunk
        yield start, end


def _all_cells(groups: Iterable[Iterable[Cell]]) -> Iterable[Cell]:
    return itertools.chain.from_iterable(groups)


def create_cells(
    count: int, state: str, group_count: int, context: SimulationContext
) -> Groups:
    """Make ``count`` cells of ``state``, each its own clone, split into groups."""
    return [
        [Cell.from_type(clone_id, state, context) for clone_id in range(start, end)]
        for start, end in _chunk_bounds(count, group_count)
    ]


def _absorb_results(
    cells: list[Cell], results: list[Cell], context: SimulationContext
) -> None:
    """Add the day's new cells to ``cells``, merging duplicates of one clone."""
    open_clones: dict[tuple[str, int], Cell] = {}
    cell_types = context.config.cell_types
    for result in results:
        state = result.state
        if MATURE in state:
            continue
        definition = cell_types.get(state)
        limit = definition.duplicate_count if definition is not None else 0
        if limit > 1 and result.duplicate_count < limit:
            key = (state, result.clone_id)
            existing = open_clones.get(key)
            if existing is None:
                fresh = result.copy(context)
                cells.append(fresh)
                open_clones[key] = fresh
            else:
                existing.duplicate_count += result.duplicate_count
                if existing.duplicate_count > limit:
                    del open_clones[key]
        else:
            cells.append(result.copy(context))


def simulate_group(
    cells: list[Cell], context: SimulationContext, start_day: int, stop_day: int
) -> dict[str, int]:
    """Simulate ``cells`` in place from ``start_day`` up to ``stop_day``.

    Returns the flux: how many cells differentiated into each state.
    """
    flux: dict[str, int] = dict.fromkeys(context.config.cell_types, 0)
    for day in range(start_day, stop_day):
        results: list[Cell] = []
        for cell in list(cells):
            cell.simulate(context, results, flux, day)
        _absorb_results(cells, results, context)
        cells[:] = [cell for cell in cells if ERASE not in cell.state]
    return flux


def simulate_cells(
    groups: Groups, context: SimulationContext, start_day: int, stop_day: int
) -> dict[str, int]:
    """Simulate every group over the days and return the summed flux by state."""
    total: Counter[str] = Counter()
    for cells in groups:
        total.update(simulate_group(cells, context, start_day, stop_day))
    return dict(sorted(total.items()))


def _column_names(expression: Mapping[str, Mapping[str, float]]) -> list[str]:
    first = next(iter(expression.values()), {})
    return [
        *first,
        *expression.get("S", {}),
        *expression.get("G2M", {}),
    ]


def write_mrna_table(
    groups: Iterable[Iterable[Cell]],
    expression: Mapping[str, Mapping[str, float]],
    path: str | os.PathLike[str],
) -> None:
    """Write one CSV row of mRNA counts per cell that simulates mRNA."""
    names = _column_names(expression)
    with open(path, "w", encoding="utf-8", newline="") as out:
        out.write(",".join(["Cell ID", *names]) + "\n")
        for cell in _all_cells(groups):
            if not cell.sim_mrna:
                continue
            label = f"{cell.state}_{cell.cell_id}_{cell.clone_id}_{cell.cycle_state}"
            counts = cell.mrna_counts()
            row = [label, *(str(counts.get(name, 0)) for name in names)]
            out.write(",".join(row) + "\n")


def rebalance(groups: Groups) -> int:
    """Spread all cells evenly over the existing groups, keeping their order.

    Returns the total number of cells.
    """
    cells = list(_all_cells(groups))
    bounds = list(_chunk_bounds(len(cells), len(groups)))
    for group, (start, end) in zip(groups, bounds):
        group[:] = cells[start:end]
    return len(cells)


def type_summary(groups: Iterable[Iterable[Cell]]) -> dict[str, tuple[int, int, int]]:
    """Per state: (cells counting duplicates, cell objects, cells in cycle)."""
    cells_by_state: Counter[str] = Counter()
    objects_by_state: Counter[str] = Counter()
    cycling_by_state: Counter[str] = Counter()
    for cell in _all_cells(groups):
        cells_by_state[cell.state] += cell.duplicate_count
        objects_by_state[cell.state] += 1
        if cell.cycle_state > 0:
            cycling_by_state[cell.state] += cell.duplicate_count
    return {
        state: (cells_by_state[state], objects_by_state[state], cycling_by_state[state])
        for state in sorted(cells_by_state)
    }


def clone_diversity(groups: Iterable[Iterable[Cell]]) -> list[tuple[int, int]]:
    """(clone id, cell objects) pairs, the largest clones first."""
    counts = Counter(cell.clone_id for cell in _all_cells(groups))
    return sorted(sorted(counts.items()), key=lambda item: item[1], reverse=True)