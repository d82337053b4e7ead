"""Interactive command shell that drives a cell population simulation."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from vscell.cell import Cell, SimulationContext, SimulationParameters
from vscell.celltypes import CellTypeConfig, build_expression_table
from vscell.simulation import (
    Groups,
    clone_diversity,
    create_cells,
    rebalance,
    simulate_cells,
    type_summary,
    write_mrna_table,
)

log = logging.getLogger(__name__)

DEFAULT_CELL_TYPES_FILE = "cell_types.csv"
DEFAULT_SCRIPT = "script.txt"
DEFAULT_REINIT_CELLS = 1000
REINIT_STATE = "HSC"

_DEFAULTS = SimulationParameters()


@dataclass
class Options:
    """Settings taken from the command line."""

    cell_types_file: str = DEFAULT_CELL_TYPES_FILE
    half_life: float = _DEFAULTS.half_life
    amplification: float = _DEFAULTS.amplification
    cell_cycle_duration: int = _DEFAULTS.cell_cycle_duration
    expression_dir: str = "."
    output_dir: str = "."
    unknown: list[str] = field(default_factory=list)


def parse_args(argv: Iterable[str]) -> Options:
    """Read the cell types file and the optional model settings that follow it.

    Unrecognised arguments are logged and collected in ``Options.unknown``;
    a malformed number raises ValueError.
    """
    args = list(argv)
    options = Options()
    if not args:
        return options
    options.cell_types_file = args[0]
    converters: dict[str, tuple[str, Callable[[str], object]]] = {
        "--half-life": ("half_life", float),
        "--amplification": ("amplification", float),
        "--cell_cycle_duration": ("cell_cycle_duration", int),
        "--expression-dir": ("expression_dir", str),
        "--output-dir": ("output_dir", str),
    }
    rest = iter(args[1:])
    for arg in rest:
        target = converters.get(arg)
        value = next(rest, None) if target is not None else None
        if target is None or value is None:
            log.error("unknown argument: %s", arg)
            options.unknown.append(arg)
            continue
        name, convert = target
        setattr(options, name, convert(value))
    return options


class Shell:
    """Reads commands and applies them to a population of cell groups."""

    def __init__(
        self,
        context: SimulationContext,
        groups: Groups,
        *,
        day: int = 0,
        out: IO[str] | None = None,
        output_dir: str | os.PathLike[str] = ".",
    ) -> None:
        self.context = context
        self.groups = groups
        self.day = day
        self.out = out if out is not None else sys.stdout
        self.output_dir = Path(output_dir)
        self._commands: dict[str, Callable[[str], bool | None]] = {
            "q": self._quit,
            "quit": self._quit,
            "z": self._script,
            "s": self._simulate,
            "sim": self._simulate,
            "o": self._output,
            "r": self._enable_mrna,
            "t": self._types,
            "e": self._examine,
            "b": self._balance,
            "c": self._clones,
            "i": self._reinitialize,
            "m": self._mrna_counts,
            "h": self._half_life,
            "a": self._amplification,
            "l": self._cycle_duration,
        }

    def _say(self, *parts: object, end: str = "\n") -> None:
        print(*parts, sep="", end=end, file=self.out)

    def _cells(self) -> Iterable[Cell]:
        for group in self.groups:
            yield from group

    def execute(self, line: str) -> bool:
        """Run one command line; returns False when the shell should stop."""
        tokens = line.split()
        if not tokens:
            return True
        command = tokens[0]
        arg = tokens[1] if len(tokens) > 1 else ""
        self._say(f"Command: {command}, Argument: {arg}")
        handler = self._commands.get(command)
        if handler is None:
            self._say(
                "Unknown command. Please enter 's' to start simulation, "
                "'o' to output cell types and mRNA, 'q' to quit."
            )
            return True
        return handler(arg) is not False

    def run(self, stream: IO[str]) -> int:
        """Prompt for and execute commands from ``stream`` until quit or end of input."""
        while True:
            self._say("Enter command: ", end="")
            line = stream.readline()
            if not line:
                self._say()
                return 0
            line = line.rstrip("\r\n")
            if not line:
                self._say("No input provided. Please try again.")
                continue
            if not self.execute(line):
                return 0

    def _quit(self, arg: str) -> bool:
        self._say("Exiting.")
        return False

    def _script(self, arg: str) -> bool:
        path = arg or DEFAULT_SCRIPT
        try:
            handle = open(path, encoding="utf-8")
        except OSError:
            self._say(f"Error opening script file: {path}")
            return True
        with handle:
            for line in handle:
                if not self.execute(line.rstrip("\r\n")):
                    return False
        self._say("Script complete.")
        return True

    def _int_arg(self, arg: str, what: str) -> int | None:
        try:
            return int(arg)
        except ValueError:
            self._say(f"Invalid argument for {what}. Please provide a valid integer.")
            return None

    def _simulate(self, arg: str) -> None:
        if not arg:
            self._say("Please provide number of days to run.")
            return
        days = self._int_arg(arg, "number of days")
        if days is None:
            return
        start, stop = self.day, self.day + days
        flux = simulate_cells(self.groups, self.context, start, stop)
        for state, count in flux.items():
            self._say(f"Cell type: {state}, Flux: {count}")
        total = sum(len(group) for group in self.groups)
        self._say(f"Completed days {start} to {stop}. Total cells: {total}")
        self.day = stop
        self._say(f"Simulation complete for {days} days.")

    def default_output_path(self) -> Path:
        """Output file name built from the current mRNA parameters."""
        params = self.context.params
        name = f"simOutput_{params.amplification:g}_{params.half_life:g}.csv"
        return self.output_dir / name

    def _output(self, arg: str) -> None:
        path = Path(arg) if arg else self.default_output_path()
        self._say(f"Outputting cell types and mRNA to {path}")
        try:
            write_mrna_table(self.groups, self.context.expression, path)
        except OSError:
            self._say("Error: Cannot open output file.")

    def _enable_mrna(self, arg: str) -> None:
        for cell in self._cells():
            cell.enable_mrna(True)
        self._say("mRNA simulation enabled.")

    def _types(self, arg: str) -> None:
        self._say("Cell types:")
        for state, (count, objects, cycling) in type_summary(self.groups).items():
            ratio = cycling / count if count else float("nan")
            self._say(
                f"{state}\t\t {count}\tObject Count \t{objects}      cycR = {ratio:g}"
            )

    def _describe(self, cell: Cell) -> str:
        return (
            f"Cell ID: {cell.cell_id}, Clone ID: {cell.clone_id}, State: {cell.state}, "
            f"Cycle State: {cell.cycle_state}, mRNA Count: {len(cell.mrna)}, "
            f"Cycle Count: {cell.cycle_counter}, "
            f"Duplicate Count: {cell.duplicate_count}, "
            f"simMRNA: {str(bool(cell.sim_mrna)).lower()}, "
            f"RNA Enabled: {str(bool(cell.rna_enabled_for_type)).lower()}"
        )

    def _examine(self, arg: str) -> None:
        if not arg:
            for cell in self._cells():
                self._say(self._describe(cell))
            return
        if arg in self.context.config.cell_types:
            for cell in self._cells():
                if cell.state == arg:
                    self._say(self._describe(cell))
            return
        if not arg.isdigit() or int(arg) <= 0:
            self._say("Invalid cellID. Please provide a positive integer.")
            return
        cell_id = int(arg)
        self._say(f"Outputting cell information for Cell ID: {cell_id}")
        for cell in self._cells():
            if cell.cell_id != cell_id:
                continue
            self._say(
                f"Cell ID: {cell.cell_id}, Clone ID: {cell.clone_id}, "
                f"State: {cell.state}, Cycle State: {cell.cycle_state}, "
                f"Cycle Count: {cell.cycle_counter}, "
                f"Duplicate Count: {cell.duplicate_count}, "
                f"mRNA Count: {len(cell.mrna)}"
            )
            if cell.mrna:
                self._say("mRNA List:")
                for molecule in cell.mrna:
                    self._say(f"  - {molecule.name} (Time: {molecule.time})")
            else:
                self._say("No mRNA present.")
            break

    def _balance(self, arg: str) -> None:
        for group in self.groups:
            self._say(f"Cell Group size : {len(group)}")
        total = rebalance(self.groups)
        self._say(f"Total Cells: {total}")
        for group in self.groups:
            self._say(f"Cell Group size : {len(group)}")

    def _clones(self, arg: str) -> None:
        self._say("Clone diversity:")
        clones = clone_diversity(self.groups)
        for clone_id, count in clones:
            self._say(f"Clone ID: {clone_id}, Count: {count}")
        self._say(f"Total clones: {len(clones)}")

    def _reinitialize(self, arg: str) -> None:
        count = DEFAULT_REINIT_CELLS
        if arg:
            parsed = self._int_arg(arg, "cell number")
            if parsed is None:
                return
            count = parsed
        self._say(f"Reinitializing cells with {count} cells.")
        self.groups[:] = create_cells(
            count, REINIT_STATE, max(len(self.groups), 1), self.context
        )
        self._say(f"Initial number of cells: {count}")
        self.day = 0

    def _mrna_counts(self, arg: str) -> None:
        for cell in self._cells():
            self._say(f"Cell ID: {cell.cell_id}, mRNA Count: {len(cell.mrna)}")

    def _half_life(self, arg: str) -> None:
        params = self.context.params
        if not arg:
            self._say(f"Current mRNA half-life: {params.half_life:g} days.")
            return
        try:
            params.half_life = float(arg)
        except ValueError:
            self._say("Invalid argument for half-life. Please provide a valid number.")
            return
        self._say(f"Updated mRNA half-life to: {params.half_life:g} days.")

    def _amplification(self, arg: str) -> None:
        params = self.context.params
        if not arg:
            self._say(f"Current mRNA amplification factor: {params.amplification:g}.")
            return
        try:
            params.amplification = float(arg)
        except ValueError:
            self._say(
                "Invalid argument for amplification factor. "
                "Please provide a valid number."
            )
            return
        self._say(f"Updated mRNA amplification factor to: {params.amplification:g}.")

    def _cycle_duration(self, arg: str) -> None:
        params = self.context.params
        if not arg:
            self._say(f"Current cell cycle duration: {params.cell_cycle_duration} days.")
            return
        duration = self._int_arg(arg, "cell cycle duration")
        if duration is None:
            return
        params.cell_cycle_duration = duration
        self._say(f"Updated cell cycle duration to: {duration} days.")


def main(argv: list[str] | None = None) -> int:
    """Start the simulation shell; returns the process exit status."""
    if argv is None:
        argv = sys.argv[1:]
    print("Starting vsCell simulation")
    try:
        options = parse_args(argv)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    print(f"Using cell types file: {options.cell_types_file}")

    group_count = os.cpu_count() or 1
    print(f"Available hardware threads: {group_count}")

    config = CellTypeConfig()
    try:
        config.read_csv(options.cell_types_file)
    except OSError as exc:
        print(f"Error: Cannot open file {options.cell_types_file}: {exc}", file=sys.stderr)
    print(f"Number of cell types read: {len(config.cell_types)}")

    expression = build_expression_table(options.expression_dir)
    print(f"Number of mRNA types read: {len(expression)}")

    if not config.cell_types:
        print("Error: No cell types found in the CSV file.", file=sys.stderr)
        return 1

    params = SimulationParameters(
        half_life=options.half_life,
        amplification=options.amplification,
        cell_cycle_duration=options.cell_cycle_duration,
    )
    context = SimulationContext(config=config, expression=expression, params=params)
    print(f"Initial cell type: {config.initial_cell_type}")
    groups = create_cells(
        config.initial_cell_number, config.initial_cell_type, group_count, context
    )
    print(f"Initial number of cells: {config.initial_cell_number}")

    shell = Shell(context, groups, output_dir=options.output_dir)
    return shell.run(sys.stdin)


if __name__ == "__main__":
    raise SystemExit(main())