# vscell

A stochastic simulator of cell populations. Each cell belongs to a cell type
and, day by day, may enter a cell cycle, divide, and differentiate into other
types along the transitions you define. Cells can also carry individual mRNA
molecules that are produced from per-type expression profiles and removed by a
random draw based on their age and a configurable half-life, so the population
can be exported as a cell-by-gene count table.

## Installation

```
pip install .
```

## Running

```
vscell cell_types.csv --half-life 1.3 --amplification 0.65 --cell_cycle_duration 2
```

The first argument is the cell-type file (default `cell_types.csv`). The
options after it are:

| Option | Default | Meaning |
|---|---|---|
| `--half-life X` | 1.3 | mRNA half-life in days |
| `--amplification X` | 0.65 | scale applied to expression levels when making mRNA |
| `--cell_cycle_duration N` | 2 | days a cell cycle lasts |
| `--expression-dir DIR` | `.` | directory holding the expression files |
| `--output-dir DIR` | `.` | directory for the default output table |

Unknown options are reported and ignored; a malformed number ends the program
with status 2. If no cell types could be read the program exits with status 1.
Otherwise it creates the initial population, split into one group per CPU, and
reads commands from standard input, one per line, until `q` or end of input.

### Cell-type file

Comma-separated lines; lines whose first field starts with `#` are skipped:

```
InitialType,HSC
InitialNumber,1000
CellType,HSC,0.1,0.05,1,true
Transition,HSC,MY1,0.5
Transition,HSC,ER1,0.5
```

`CellType` fields are: name, probability of entering a cycle per day,
probability of differentiating at division, duplicate count (how many cells of
one clone and type may be pooled into a single object), and `true` if mRNA is
simulated for the type. `Transition` lines add a target type and its
probability to a type already defined. Cells whose type name contains `Mature`
leave the simulation.

### Expression files

Each expression file holds `name,expression` rows. The files read from the
expression directory are `bm6_bas_expression.csv` (BAS),
`bm6_cd14mono_expression.csv` (CD14MONO), `bm6_er1_expression.csv` (ER1),
`bm6_er2_expression.csv` (ER2), `bm6_my1_expression.csv` (MY1),
`bm6_my2_expression.csv` (MY2), `bm6_preB_expression.csv` (PREB),
`bm6_proB_expression.csv` (PROB), `bm6_stem_expression.csv` (HSC),
`bm6_s_expression.csv` (S) and `bm6_g2m_expression.csv` (G2M). Missing or empty
files are reported and left out. The S and G2M profiles are used for cells in
the first and second half of their cycle.

### Commands

| Command | Meaning |
|---|---|
| `s N` / `sim N` | simulate N days and print the differentiation flux per type |
| `r` | enable mRNA simulation for cells whose type allows it |
| `t` | counts per cell type, object counts, and the fraction in cycle |
| `c` | clone diversity, largest clones first |
| `e` | list all cells |
| `e TYPE` | list cells of one type |
| `e ID` | show one cell and its mRNA molecules |
| `m` | mRNA count per cell |
| `o [file]` | write the cell-by-mRNA count table as CSV (default `simOutput_<amplification>_<half-life>.csv` in the output directory) |
| `b` | spread cells evenly across the groups |
| `i [N]` | reinitialise with N HSC cells (default 1000) and reset the day to 0 |
| `h [x]`, `a [x]`, `l [n]` | show or set half-life, amplification, cycle duration |
| `z [file]` | run commands from a script (default `script.txt`) |
| `q` / `quit` | exit |

## Library use

```python
from vscell.celltypes import CellTypeConfig, build_expression_table
from vscell.cell import SimulationContext, SimulationParameters
from vscell.simulation import create_cells, simulate_cells, type_summary

config = CellTypeConfig()
config.read_csv("cell_types.csv")
context = SimulationContext(
    config=config,
    expression=build_expression_table("."),
    params=SimulationParameters(half_life=1.3),
)
groups = create_cells(config.initial_cell_number, config.initial_cell_type, 4, context)
flux = simulate_cells(groups, context, 0, 30)
print(flux)
print(type_summary(groups))
```

- `vscell.celltypes`: `CellType`, `CellTypeConfig` (`read_csv`, `parse_lines`,
  `rna_enabled_for_type`, `duplicate_count_for_type`), `read_expression_csv`,
  `build_expression_table`.
- `vscell.cell`: `MRNA`, `SimulationParameters`, `SimulationContext`, `Cell`,
  `mrna_survives`, `poisson_sample`.
- `vscell.simulation`: `create_cells`, `simulate_group`, `simulate_cells`,
  `write_mrna_table`, `rebalance`, `type_summary`, `clone_diversity`.
- `vscell.cli`: `Shell` (`execute`, `run`), `parse_args`, `main`.

Pass a seeded `random.Random` as `SimulationContext(rng=...)` for reproducible
runs.

## Limitations

The cell groups are simulated one after another in a single thread; splitting
cells into groups only affects the order in which they are processed. There is
no plotting and no persistent storage of a population: the only output is the
CSV count table written by `o`.

## Tests

```
pip install .[test]
pytest
```