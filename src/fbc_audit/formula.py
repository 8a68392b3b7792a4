from __future__ import annotations

import re
from typing import Iterable

_TOKEN = re.compile(r"([A-Z][a-z]*)(\d*)")

# Standard atomic weights (g/mol) for the elements that occur in metabolic models.
ELEMENT_WEIGHTS: dict[str, float] = {
    "H": 1.00794,
    "Li": 6.941,
    "B": 10.811,
    "C": 12.0107,
    "N": 14.0067,
    "O": 15.9994,
    "F": 18.9984032,
    "Na": 22.98976928,
    "Mg": 24.305,
    "Al": 26.9815386,
    "Si": 28.0855,
    "P": 30.973762,
    "S": 32.065,
    "Cl": 35.453,
    "K": 39.0983,
    "Ca": 40.078,
    "Cr": 51.9961,
    "Mn": 54.938045,
    "Fe": 55.845,
    "Co": 58.933195,
    "Ni": 58.6934,
    "Cu": 63.546,
    "Zn": 65.38,
    "As": 74.9216,
    "Se": 78.96,
    "Br": 79.904,
    "Mo": 95.96,
    "Cd": 112.411,
    "I": 126.90447,
    "W": 183.84,
    "Hg": 200.59,
}


def parse_formula(formula: str | None, known_elements: Iterable[str] | None = None) -> dict[str, int] | None:
    """
    Parse a chemical formula such as "C6H12O6" into element counts.

    Returns None for missing or empty formulas, for formulas with characters that
    are not element tokens, and for elements outside `known_elements` (by default
    the keys of ELEMENT_WEIGHTS). Placeholder groups like "R" or "X" are therefore
    rejected.
    """
    if formula is None:
        return None
    s = formula.strip()
    if not s:
        return None
    known = set(ELEMENT_WEIGHTS if known_elements is None else known_elements)

    counts: dict[str, int] = {}
    pos = 0
    for m in _TOKEN.finditer(s):
        if m.start() != pos:
            return None
        pos = m.end()
        element, n = m.group(1), m.group(2)
        if element not in known:
            return None
        counts[element] = counts.get(element, 0) + (int(n) if n else 1)
    if pos != len(s):
        return None
    return counts


def molar_mass(formula: str | None) -> float | None:
    """Molar mass in g/mol, or None if the formula cannot be parsed."""
    counts = parse_formula(formula)
    if counts is None:
        return None
    return sum(ELEMENT_WEIGHTS[e] * n for e, n in counts.items())
