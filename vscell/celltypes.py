"""Cell type definitions and mRNA expression tables read from CSV files."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

DEFAULT_EXPRESSION_FILES: dict[str, str] = {
    "BAS": "bm6_bas_expression.csv",
    "CD14MONO": "bm6_cd14mono_expression.csv",
    "ER1": "bm6_er1_expression.csv",
    "ER2": "bm6_er2_expression.csv",
    "MY1": "bm6_my1_expression.csv",
    "MY2": "bm6_my2_expression.csv",
    "PREB": "bm6_preB_expression.csv",
    "PROB": "bm6_proB_expression.csv",
    "HSC": "bm6_stem_expression.csv",
    "S": "bm6_s_expression.csv",
    "G2M": "bm6_g2m_expression.csv",
}

_INT_PREFIX = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(
    r"[ \t\n\v\f\r]*([+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?"
    r"|inf(?:inity)?|nan))",
    re.IGNORECASE,
)


def _parse_int(text: str) -> int:
    """Parse the leading integer of ``text``, ignoring any trailing characters."""
    match = _INT_PREFIX.match(text)
    if match is None:
        raise ValueError(f"invalid integer: {text!r}")
    return int(match.group(1))


def _parse_float(text: str) -> float:
    """Parse the leading number of ``text``, ignoring any trailing characters."""
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        raise ValueError(f"invalid number: {text!r}")
    return float(match.group(1))


def _fields(line: str) -> list[str]:
    """Split a line on commas the way successive delimited reads see it."""
    parts = line.split(",")
    if parts[-1] == "":
        parts.pop()
    return parts


def _lines(handle: Iterable[str]) -> Iterable[str]:
    for line in handle:
        yield line.removesuffix("\n")


@dataclass
class CellType:
    """One cell type: its cycling and differentiation behaviour."""

    state: str
    prob_cycle: float = 0.0
    prob_differentiate: float = 0.0
    duplicate_count: int = 0
    rna_enabled: bool = False
    transitions: list[tuple[str, float]] = field(default_factory=list)


@dataclass
class CellTypeConfig:
    """The cell types of a simulation and its initial population."""

    initial_cell_type: str = ""
    initial_cell_number: int = 0
    cell_types: dict[str, CellType] = field(default_factory=dict)

    def read_csv(self, path: str | os.PathLike[str]) -> None:
        """Read cell type definitions from a CSV file."""
        with open(path, encoding="utf-8", newline="") as handle:
            self.parse_lines(_lines(handle))

    def parse_lines(self, lines: Iterable[str]) -> None:
        """Read cell type definitions from lines of CSV text."""
        for line in lines:
            fields = _fields(line)
            if len(fields) < 2:
                continue
            cmd, state = fields[0], fields[1]
            if cmd.startswith("#"):
                continue
            state = state.strip(" \t")
            rest = fields[2:]

            if cmd == "InitialType":
                self.initial_cell_type = state
            elif cmd == "InitialNumber":
                try:
                    self.initial_cell_number = _parse_int(state)
                except ValueError:
                    log.error("invalid initial cell number %r in line: %s", state, line)
            elif cmd == "CellType":
                self._add_cell_type(state, rest, line)
            elif cmd == "Transition":
                self._add_transition(state, rest, line)
            else:
                log.error("invalid cell type %r in line: %s", state, line)

        self.cell_types = dict(sorted(self.cell_types.items()))

    def _add_cell_type(self, state: str, rest: list[str], line: str) -> None:
        names = ("probCycle", "probDifferentiate", "duplicate count", "RNA enabled flag")
        if len(rest) < len(names):
            log.error("missing %s for state %r in line: %s", names[len(rest)], state, line)
            return
        prob_cycle, prob_diff, duplicate, rna_flag = rest[:4]
        self.cell_types[state] = CellType(
            state=state,
            prob_cycle=_parse_float(prob_cycle),
            prob_differentiate=_parse_float(prob_diff),
            duplicate_count=_parse_int(duplicate),
            rna_enabled=rna_flag == "true",
        )

    def _add_transition(self, state: str, rest: list[str], line: str) -> None:
        if len(rest) < 1:
            log.error("missing tranState for state %r in line: %s", state, line)
            return
        if len(rest) < 2:
            log.error("missing tranProb for state %r in line: %s", state, line)
            return
        target, prob_text = rest[0], rest[1]
        prob = _parse_float(prob_text)
        cell_type = self.cell_types.get(state)
        if cell_type is None or not cell_type.state:
            log.error("state %r not found in cell type map; line: %s", state, line)
            return
        cell_type.transitions.append((target, prob))

    def rna_enabled_for_type(self, cell_type: str) -> bool:
        """Whether mRNA is simulated for ``cell_type``; False if it is unknown."""
        definition = self.cell_types.get(cell_type)
        if definition is None:
            log.error("cell type %r not found in cell types map", cell_type)
            return False
        return definition.rna_enabled

    def duplicate_count_for_type(self, cell_type: str) -> int:
        """The duplicate limit of ``cell_type``; 0 if it is unknown."""
        definition = self.cell_types.get(cell_type)
        if definition is None:
            log.error("cell type %r not found in cell types map", cell_type)
            return 0
        return definition.duplicate_count


def read_expression_csv(path: str | os.PathLike[str]) -> dict[str, float]:
    """Read ``name,expression`` rows into a dict ordered by name."""
    expression: dict[str, float] = {}
    with open(path, encoding="utf-8", newline="") as handle:
        for line in _lines(handle):
            fields = _fields(line)
            if not fields:
                log.error("missing ID in line: %s", line)
                continue
            if len(fields) < 2:
                log.error("missing expression in line: %s", line)
                continue
            expression[fields[0]] = _parse_float(fields[1])
    return dict(sorted(expression.items()))


def build_expression_table(
    directory: str | os.PathLike[str],
    files: Mapping[str, str] | None = None,
) -> dict[str, dict[str, float]]:
    """Read one expression file per cell type; types with no data are left out."""
    if files is None:
        files = DEFAULT_EXPRESSION_FILES
    base = Path(directory)
    table: dict[str, dict[str, float]] = {}
    for cell_type, file_name in files.items():
        path = base / file_name
        try:
            expression = read_expression_csv(path)
        except OSError as exc:
            log.error("cannot open file %s: %s", path, exc)
            expression = {}
        if expression:
            table[cell_type] = expression
        else:
            log.warning("no mRNA data found for cell type %s in file %s", cell_type, path)
    return dict(sorted(table.items()))