from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal, Mapping

import pandas as pd

from fbc_audit.model import Gene, MetabolicModel, Metabolite, Objective, Reaction

logger = logging.getLogger(__name__)

DEFAULT_OBJECTIVE_ID = "obj"


def _annotation(raw: Mapping[str, Any] | None) -> dict[str, tuple[str, ...]]:
    """cobra stores single identifiers as str and several as list; normalise to tuples."""
    out: dict[str, tuple[str, ...]] = {}
    for db, value in (raw or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple, set)):
            out[str(db)] = tuple(str(v) for v in value)
        else:
            out[str(db)] = (str(value),)
    return out


def _charge(value: Any) -> int | None:
    if value is None or pd.isna(value):
        return None
    return int(round(float(value)))


def from_cobra(
    cobra_model,
    objectives: Mapping[str, Objective] | None = None,
    default_objective: str | None = None,
) -> MetabolicModel:
    """
    Convert a cobra.Model into a MetabolicModel.

    Without explicit `objectives`, the cobra model's (single) linear objective
    becomes the objective named "obj".
    """
    from cobra.util.solver import linear_reaction_coefficients

    if objectives is None:
        coefficients = {r.id: float(c) for r, c in linear_reaction_coefficients(cobra_model).items()}
        objectives = {DEFAULT_OBJECTIVE_ID: Objective(coefficients, cobra_model.objective_direction)}

    metabolites = [
        Metabolite(
            id=m.id,
            formula=m.formula or None,
            charge=_charge(m.charge),
            compartment=m.compartment or None,
            name=m.name or "",
            annotation=_annotation(m.annotation),
        )
        for m in cobra_model.metabolites
    ]
    reactions = [
        Reaction(
            id=r.id,
            metabolites={m.id: float(c) for m, c in r.metabolites.items()},
            lower_bound=float(r.lower_bound),
            upper_bound=float(r.upper_bound),
            gene_reaction_rule=r.gene_reaction_rule or "",
            name=r.name or "",
            annotation=_annotation(r.annotation),
        )
        for r in cobra_model.reactions
    ]
    genes = [Gene(id=g.id, name=g.name or "", annotation=_annotation(g.annotation)) for g in cobra_model.genes]
    return MetabolicModel(
        id=cobra_model.id or "model",
        name=cobra_model.name or "",
        reactions=reactions,
        metabolites=metabolites,
        genes=genes,
        objectives=objectives,
        default_objective=default_objective,
    )


def read_sbml_objectives(sbml_path: str | Path, reaction_ids: set[str]) -> tuple[dict[str, Objective], str | None]:
    """
    Read every FBC objective of an SBML file (cobra only keeps the active one).

    Returns (objective id -> Objective, active objective id). Flux objective
    references are mapped onto cobra's reaction ids by dropping the "R_" prefix.
    """
    import libsbml

    doc = libsbml.readSBMLFromFile(str(sbml_path))
    sbml_model = doc.getModel()
    fbc = sbml_model.getPlugin("fbc") if sbml_model is not None else None
    if fbc is None:
        return {}, None

    def _rid(ref: str) -> str:
        if ref not in reaction_ids and ref.startswith("R_") and ref[2:] in reaction_ids:
            return ref[2:]
        return ref

    objectives: dict[str, Objective] = {}
    for obj in fbc.getListOfObjectives():
        kind = obj.getType()
        if not isinstance(kind, str):
            kind = libsbml.ObjectiveType_toString(kind)
        coefficients = {_rid(fo.getReaction()): float(fo.getCoefficient()) for fo in obj.getListOfFluxObjectives()}
        unknown = [r for r in coefficients if r not in reaction_ids]
        if unknown:
            logger.warning("Objective %s references unknown reactions (skipped): %s", obj.getId(), unknown)
            coefficients = {r: c for r, c in coefficients.items() if r in reaction_ids}
        objectives[obj.getId()] = Objective(coefficients, "min" if str(kind).lower().startswith("min") else "max")
    active = fbc.getActiveObjectiveId() or None
    return objectives, active if active in objectives else None


def load_sbml_model(sbml_path: str | Path) -> MetabolicModel:
    """
    Load an SBML model using cobra, keeping all FBC objectives.

    Returns
    -------
    MetabolicModel
    """
    from cobra.io import read_sbml_model

    p = Path(sbml_path)
    if not p.exists():
        raise FileNotFoundError(f"SBML file not found: {p}")
    logger.info("Loading SBML model: %s", p)
    cobra_model = read_sbml_model(str(p))

    objectives, active = read_sbml_objectives(p, {r.id for r in cobra_model.reactions})
    model = from_cobra(cobra_model, objectives=objectives or None, default_objective=active)
    logger.info(
        "Loaded %s: reactions=%d, metabolites=%d, genes=%d, objectives=%s",
        model.id,
        len(model.reactions),
        len(model.metabolites),
        len(model.genes),
        ", ".join(model.objectives),
    )
    return model


def save_table(
    df: pd.DataFrame,
    out_path: str | Path,
    *,
    fmt: Literal["csv", "tsv"] | None = None,
) -> Path:
    """
    Save a table to CSV or TSV, inferred by extension unless fmt is provided.
    """
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if fmt is None:
        suffix = p.suffix.lower()
        if suffix == ".csv":
            fmt = "csv"
        elif suffix == ".tsv":
            fmt = "tsv"
        else:
            raise ValueError(f"Cannot infer format from extension: {p.suffix} (use .csv or .tsv)")

    if fmt == "csv":
        df.to_csv(p, index=False)
    elif fmt == "tsv":
        df.to_csv(p, sep="\t", index=False)
    else:
        raise ValueError(f"Unsupported fmt: {fmt}")

    logger.info("Saved table: %s (rows=%d, cols=%d)", p, len(df), len(df.columns))
    return p
