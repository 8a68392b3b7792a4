from __future__ import annotations

import dataclasses

import pytest

from fbc_audit.compare import Finding, compare_mappings, compare_metadata, compare_reports, intol
from fbc_audit.config import ToleranceConfig
from fbc_audit.frog import FROGObjectiveReport, FROGReactionReport


def _report(glc_flux: float | None = -10.0, **genes: float | None):
    return {
        "obj": FROGObjectiveReport(
            optimum=40.0,
            reactions={
                "EX_glc": FROGReactionReport(flux=glc_flux, variability_min=-10.0, variability_max=-10.0, deletion=0.0),
                "ATPS4r": FROGReactionReport(flux=30.0, variability_min=30.0, variability_max=30.0, deletion=None),
            },
            gene_deletions={"g1": 40.0, "g2": None, **genes},
        )
    }


@pytest.mark.parametrize("x", [0.0, 1.0, -1.0, 1e-9, -123.456, 1e6])
def test_intol_is_reflexive(x: float) -> None:
    assert intol(x, x)


def test_intol_absent_values() -> None:
    assert intol(None, None)
    assert not intol(None, 0.0)
    assert not intol(0.0, None)


def test_intol_tolerances() -> None:
    assert intol(1.0, 1.0 + 5e-7)
    assert not intol(1.0, 1.0 + 5e-6)
    loose = ToleranceConfig(absolute_tolerance=1.0)
    # same-sign values always satisfy the relative clause; atol decides
    assert intol(100.0, 100.5, loose)
    assert intol(100.5, 100.0, loose)
    assert not intol(100.0, 101.5, loose)


def test_intol_opposite_signs_near_zero() -> None:
    # the relative clause is not sign-guarded, so tiny values of opposite sign pass
    # as long as the right-hand side is not the smaller one
    assert intol(1e-8, -1e-8)
    assert intol(1e-8, -2e-8)
    assert not intol(-2e-8, 1e-8)


def test_identical_reports_are_compatible() -> None:
    comparison = compare_reports(_report(), _report())
    assert comparison.compatible
    assert len(comparison.leaves) == 1 + 2 * 4 + 2


def test_single_leaf_mismatch_is_flagged() -> None:
    comparison = compare_reports(_report(), _report(glc_flux=-9.0))
    assert not comparison.compatible
    assert comparison.findings == [Finding(("obj", "reactions", "EX_glc", "flux"), "mismatch", -10.0, -9.0)]
    failed = [path for path, ok in comparison.leaves.items() if not ok]
    assert failed == [("obj", "reactions", "EX_glc", "flux")]


def test_absent_versus_present_is_a_mismatch() -> None:
    comparison = compare_reports(_report(), _report(glc_flux=None))
    assert [f.path for f in comparison.mismatches] == [("obj", "reactions", "EX_glc", "flux")]


def test_missing_keys_are_separate_findings() -> None:
    comparison = compare_reports(_report(), _report(g3=1.0))
    assert comparison.mismatches == []
    (missing,) = comparison.missing
    assert missing.path == ("obj", "gene_deletions", "g3")
    assert missing.missing_on == "left"
    assert "missing on the left side" in str(missing)


def test_missing_objective() -> None:
    a = _report()
    b = {**_report(), "other": dataclasses.replace(_report()["obj"], optimum=None)}
    comparison = compare_reports(a, b)
    assert [f.path for f in comparison.missing] == [("other",)]


def test_mapping_against_value_is_a_mismatch() -> None:
    comparison = compare_mappings({"a": {"b": 1}}, {"a": 1}, lambda x, y: x == y)
    assert [f.path for f in comparison.mismatches] == [("a",)]


def test_metadata_comparison() -> None:
    a = {"model.filename": "m.xml", "model.md5": "abc", "model.sha256": "def", "software.name": "x"}
    b = {**a, "software.name": "y", "environment": "elsewhere"}
    assert compare_metadata(a, b).compatible

    c = compare_metadata(a, {**a, "model.md5": "abd"})
    assert [f.path for f in c.mismatches] == [("model.md5",)]

    d = compare_metadata(a, {"model.filename": "m.xml"})
    assert [(f.path, f.missing_on) for f in d.missing] == [(("model.md5",), "right")]
    assert d.mismatches == []


def test_metadata_sha256_is_optional() -> None:
    a = {"model.filename": "m.xml", "model.md5": "abc"}
    b = {**a, "model.sha256": "def"}
    assert compare_metadata(a, b).compatible


def test_summary_counts() -> None:
    comparison = compare_reports(_report(), _report(glc_flux=-9.0))
    assert comparison.summary().startswith("10/11 values match")
