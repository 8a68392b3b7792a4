"""
FROG reproducibility report data and its persisted forms.

Two persisted forms are supported:

- nested JSON (`save_report_json` / `load_report_json`), mirroring the in-memory
  structure objective -> {optimum, reactions, gene_deletions};
- the FROG directory layout (`save_report` / `load_report`), with per objective
  `01_objective_<obj>.json`, `02_fva_<obj>.tsv`, `03_gene_deletion_<obj>.tsv`
  and `04_reaction_deletion_<obj>.tsv`, plus `metadata.json`.

Infeasible results are stored as JSON null / an empty TSV cell with status
"infeasible"; they are read back as None, never as 0.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict

import pandas as pd

logger = logging.getLogger(__name__)


class ReportFormatError(ValueError):
    """Raised when a persisted report or metadata file has an unexpected structure."""


@dataclass(frozen=True)
class FROGReactionReport:
    flux: float | None = None
    variability_min: float | None = None
    variability_max: float | None = None
    deletion: float | None = None


@dataclass(frozen=True)
class FROGObjectiveReport:
    optimum: float | None
    reactions: dict[str, FROGReactionReport] = field(default_factory=dict)
    gene_deletions: dict[str, float | None] = field(default_factory=dict)


FROGReportData = Dict[str, FROGObjectiveReport]
FROGMetadata = Dict[str, str]

METADATA_KEYS: tuple[str, ...] = (
    "software.name",
    "software.version",
    "software.url",
    "environment",
    "model.filename",
    "model.md5",
    "model.sha256",
    "solver.name",
)

REACTION_FIELDS: tuple[str, ...] = ("flux", "variability_min", "variability_max", "deletion")


def _number(value: Any, where: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ReportFormatError(f"{where}: expected a number or null, got {value!r}")
    return float(value)


# -- nested dict form ---------------------------------------------------------


def report_to_dict(report: FROGReportData) -> dict[str, Any]:
    return {
        objective: {
            "optimum": r.optimum,
            "reactions": {rid: asdict(leaf) for rid, leaf in r.reactions.items()},
            "gene_deletions": dict(r.gene_deletions),
        }
        for objective, r in report.items()
    }


def report_from_dict(data: dict[str, Any]) -> FROGReportData:
    if not isinstance(data, dict):
        raise ReportFormatError(f"Report must be a mapping, got: {type(data).__name__}")
    out: FROGReportData = {}
    for objective, body in data.items():
        if not isinstance(body, dict):
            raise ReportFormatError(f"{objective}: objective report must be a mapping")
        reactions = {}
        for rid, leaf in (body.get("reactions") or {}).items():
            if not isinstance(leaf, dict):
                raise ReportFormatError(f"{objective}/{rid}: reaction report must be a mapping")
            unknown = set(leaf) - set(REACTION_FIELDS)
            if unknown:
                raise ReportFormatError(f"{objective}/{rid}: unknown fields {sorted(unknown)}")
            reactions[rid] = FROGReactionReport(
                **{k: _number(leaf.get(k), f"{objective}/{rid}/{k}") for k in REACTION_FIELDS}
            )
        genes = {
            gid: _number(v, f"{objective}/gene {gid}") for gid, v in (body.get("gene_deletions") or {}).items()
        }
        out[str(objective)] = FROGObjectiveReport(
            optimum=_number(body.get("optimum"), f"{objective}/optimum"),
            reactions=reactions,
            gene_deletions=genes,
        )
    return out


def save_report_json(report: FROGReportData, out_path: str | Path) -> Path:
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(report_to_dict(report), f, indent=2, sort_keys=True)
    logger.info("Saved report: %s (objectives=%d)", p, len(report))
    return p


def load_report_json(path: str | Path) -> FROGReportData:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Report file not found: {p}")
    with p.open("r", encoding="utf-8") as f:
        return report_from_dict(json.load(f))


# -- metadata -----------------------------------------------------------------


def save_metadata(metadata: FROGMetadata, out_path: str | Path) -> Path:
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(dict(metadata), f, indent=2, sort_keys=True)
    return p


def load_metadata(path: str | Path) -> FROGMetadata:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Metadata file not found: {p}")
    with p.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ReportFormatError(f"Metadata must be a mapping, got: {type(data).__name__}")
    return {str(k): str(v) for k, v in data.items()}


# -- FROG directory layout ----------------------------------------------------


def _status(*values: float | None) -> str:
    return "optimal" if all(v is not None for v in values) else "infeasible"


def _cell(value: Any) -> float | None:
    if value is None or pd.isna(value):
        return None
    return float(value)


def _objective_tables(objective: str, report: FROGObjectiveReport, model_filename: str) -> dict[str, pd.DataFrame]:
    fva = pd.DataFrame(
        [
            {
                "model": model_filename,
                "objective": objective,
                "reaction": rid,
                "flux": leaf.flux,
                "status": _status(leaf.variability_min, leaf.variability_max),
                "minimum": leaf.variability_min,
                "maximum": leaf.variability_max,
            }
            for rid, leaf in report.reactions.items()
        ],
        columns=["model", "objective", "reaction", "flux", "status", "minimum", "maximum"],
    )
    genes = pd.DataFrame(
        [
            {"model": model_filename, "objective": objective, "gene": gid, "status": _status(v), "value": v}
            for gid, v in report.gene_deletions.items()
        ],
        columns=["model", "objective", "gene", "status", "value"],
    )
    reactions = pd.DataFrame(
        [
            {
                "model": model_filename,
                "objective": objective,
                "reaction": rid,
                "status": _status(leaf.deletion),
                "value": leaf.deletion,
            }
            for rid, leaf in report.reactions.items()
        ],
        columns=["model", "objective", "reaction", "status", "value"],
    )
    return {"02_fva": fva, "03_gene_deletion": genes, "04_reaction_deletion": reactions}


def save_report(
    report: FROGReportData,
    directory: str | Path,
    model_filename: str,
    metadata: FROGMetadata | None = None,
) -> Path:
    """Write a report (and optionally its metadata) in the FROG directory layout."""
    d = Path(directory)
    d.mkdir(parents=True, exist_ok=True)
    for objective, r in report.items():
        with (d / f"01_objective_{objective}.json").open("w", encoding="utf-8") as f:
            json.dump(
                {
                    "objective": objective,
                    "status": _status(r.optimum),
                    "value": r.optimum,
                    "model": model_filename,
                },
                f,
                indent=2,
            )
        for prefix, table in _objective_tables(objective, r, model_filename).items():
            table.to_csv(d / f"{prefix}_{objective}.tsv", sep="\t", index=False)
    if metadata is not None:
        save_metadata(metadata, d / "metadata.json")
    logger.info("Saved FROG report: %s (objectives=%d)", d, len(report))
    return d


def _read_tsv(path: Path, required: set[str]) -> pd.DataFrame:
    if not path.exists():
        raise ReportFormatError(f"Missing FROG table: {path}")
    df = pd.read_csv(
        path,
        sep="\t",
        dtype={"reaction": str, "gene": str, "objective": str},
        keep_default_na=False,
        na_values=[""],
    )
    missing = required - set(df.columns)
    if missing:
        raise ReportFormatError(f"{path.name}: missing columns {sorted(missing)}")
    return df


def load_report(directory: str | Path) -> FROGReportData:
    """Read a report written in the FROG directory layout."""
    d = Path(directory)
    if not d.is_dir():
        raise FileNotFoundError(f"Report directory not found: {d}")

    out: FROGReportData = {}
    for objective_file in sorted(d.glob("01_objective_*.json")):
        with objective_file.open("r", encoding="utf-8") as f:
            head = json.load(f)
        objective = str(head.get("objective") or objective_file.stem[len("01_objective_") :])

        fva = _read_tsv(d / f"02_fva_{objective}.tsv", {"reaction", "flux", "minimum", "maximum"})
        gko = _read_tsv(d / f"03_gene_deletion_{objective}.tsv", {"gene", "value"})
        rko = _read_tsv(d / f"04_reaction_deletion_{objective}.tsv", {"reaction", "value"})

        deletions = {str(row.reaction): _cell(row.value) for row in rko.itertuples(index=False)}
        fva_ids = {str(rid) for rid in fva["reaction"]}
        if fva_ids != set(deletions):
            raise ReportFormatError(
                f"{objective}: reaction tables disagree "
                f"(only in 02_fva: {sorted(fva_ids - set(deletions))}, "
                f"only in 04_reaction_deletion: {sorted(set(deletions) - fva_ids)})"
            )
        reactions = {}
        for row in fva.itertuples(index=False):
            rid = str(row.reaction)
            reactions[rid] = FROGReactionReport(
                flux=_cell(row.flux),
                variability_min=_cell(row.minimum),
                variability_max=_cell(row.maximum),
                deletion=deletions[rid],
            )
        out[objective] = FROGObjectiveReport(
            optimum=_number(head.get("value"), f"{objective_file.name}/value"),
            reactions=reactions,
            gene_deletions={str(row.gene): _cell(row.value) for row in gko.itertuples(index=False)},
        )
    if not out:
        raise ReportFormatError(f"No 01_objective_*.json files found in {d}")
    return out
