"""
Tolerant comparison of two FROG reports (or two metadata records).

The comparison walks both nested mappings in parallel. Every key present on both
sides is compared and recorded as a passing or failing leaf; a key present on
only one side is a separate "missing" finding. The result can be asserted on
directly (`assert comparison.compatible, comparison.findings`).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from fbc_audit.config import ToleranceConfig
from fbc_audit.frog import FROGMetadata, FROGReportData, report_to_dict

logger = logging.getLogger(__name__)

KeyPath = tuple[str, ...]

METADATA_REQUIRED_KEYS: tuple[str, ...] = ("model.filename", "model.md5")
METADATA_MATCHING_KEYS: tuple[str, ...] = ("model.filename", "model.md5", "model.sha256")


@dataclass(frozen=True)
class Finding:
    path: KeyPath
    kind: str  # "mismatch" | "missing"
    left: Any = None
    right: Any = None
    missing_on: str | None = None  # "left" | "right" | "both" for missing keys

    def __str__(self) -> str:
        where = "/".join(self.path)
        if self.kind == "missing":
            return f"{where}: missing on the {self.missing_on} side"
        return f"{where}: {self.left!r} != {self.right!r}"


@dataclass
class Comparison:
    leaves: dict[KeyPath, bool] = field(default_factory=dict)
    findings: list[Finding] = field(default_factory=list)

    @property
    def compatible(self) -> bool:
        return not self.findings

    @property
    def mismatches(self) -> list[Finding]:
        return [f for f in self.findings if f.kind == "mismatch"]

    @property
    def missing(self) -> list[Finding]:
        return [f for f in self.findings if f.kind == "missing"]

    def record(self, path: KeyPath, passed: bool, left: Any, right: Any) -> None:
        self.leaves[path] = passed
        if not passed:
            self.findings.append(Finding(path, "mismatch", left, right))

    def summary(self) -> str:
        return (
            f"{sum(self.leaves.values())}/{len(self.leaves)} values match, "
            f"{len(self.mismatches)} mismatches, {len(self.missing)} missing keys"
        )


def intol(a: float | None, b: float | None, tolerance: ToleranceConfig | None = None) -> bool:
    """
    Tolerant equality of two optional values.

    Two absent values are equal, absent vs. present is unequal. Two numbers are
    equal when |a - b| <= absolute_tolerance and the relative clause holds:
    (a*b > 0 and |a*(1+rtol)| >= |b|) or |b*(1+rtol)| >= |a|.
    """
    tolerance = tolerance or ToleranceConfig()
    if a is None or b is None:
        return a is None and b is None
    rtol = tolerance.relative_tolerance
    return abs(a - b) <= tolerance.absolute_tolerance and (
        (a * b > 0 and abs(a * (1 + rtol)) >= abs(b)) or abs(b * (1 + rtol)) >= abs(a)
    )


def compare_mappings(
    a: Mapping[str, Any],
    b: Mapping[str, Any],
    leaf: Callable[[Any, Any], bool],
    comparison: Comparison | None = None,
    path: KeyPath = (),
) -> Comparison:
    """
    Walk two nested mappings. Values that are mappings on both sides are
    recursed into; anything else is compared with `leaf`.
    """
    comparison = comparison if comparison is not None else Comparison()
    for key in a:
        if key not in b:
            comparison.findings.append(Finding(path + (str(key),), "missing", left=a[key], missing_on="right"))
    for key in b:
        if key not in a:
            comparison.findings.append(Finding(path + (str(key),), "missing", right=b[key], missing_on="left"))
    for key in a:
        if key not in b:
            continue
        x, y = a[key], b[key]
        here = path + (str(key),)
        if isinstance(x, Mapping) and isinstance(y, Mapping):
            compare_mappings(x, y, leaf, comparison, here)
        elif isinstance(x, Mapping) or isinstance(y, Mapping):
            comparison.record(here, False, x, y)
        else:
            comparison.record(here, leaf(x, y), x, y)
    return comparison


def compare_reports(
    a: FROGReportData,
    b: FROGReportData,
    tolerance: ToleranceConfig | None = None,
) -> Comparison:
    """Compare two reports objective by objective, reaction by reaction, gene by gene."""
    tolerance = tolerance or ToleranceConfig()
    comparison = compare_mappings(
        report_to_dict(a),
        report_to_dict(b),
        lambda x, y: intol(x, y, tolerance),
    )
    logger.info("Report comparison: %s", comparison.summary())
    return comparison


def compare_metadata(a: FROGMetadata, b: FROGMetadata) -> Comparison:
    """
    Required keys must exist in both records; identifying keys must be equal
    where both records have them. Other keys (software, environment, solver)
    are allowed to differ.
    """
    comparison = Comparison()
    for key in METADATA_REQUIRED_KEYS:
        if key not in a or key not in b:
            side = "both" if key not in a and key not in b else ("left" if key not in a else "right")
            comparison.findings.append(Finding((key,), "missing", a.get(key), b.get(key), missing_on=side))
    for key in METADATA_MATCHING_KEYS:
        if key in a and key in b:
            comparison.record((key,), a[key] == b[key], a[key], b[key])
    logger.info("Metadata comparison: %s", comparison.summary())
    return comparison
