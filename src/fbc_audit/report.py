from __future__ import annotations

import hashlib
import logging
import platform
import sys
from pathlib import Path

from fbc_audit import __url__, __version__
from fbc_audit.frog import FROGMetadata, FROGObjectiveReport, FROGReactionReport, FROGReportData
from fbc_audit.model import ModelView
from fbc_audit.optimizer import Optimizer
from fbc_audit.screening import ScreeningPool, flux_variability, gene_knockouts, reaction_knockouts

logger = logging.getLogger(__name__)


def frog_objective_report(
    model: ModelView,
    objective: str,
    optimizer: Optimizer,
    pool: ScreeningPool | None = None,
) -> FROGObjectiveReport:
    """
    Reproducibility data for one named objective of the model: optimum, flux
    and variability of every reaction, and single gene / reaction knockouts.
    """
    logger.info("Creating report for objective %s ...", objective)
    # only this objective is active; the other named objectives are ignored
    variant = model.with_objective(objective)
    rids = variant.reaction_ids
    gids = variant.gene_ids

    logger.info("Finding model objective value ...")
    solution = optimizer.optimize(variant)
    if solution is None:
        logger.warning("Model does not have a feasible solution, skipping FVA.")
        optimum = None
        fluxes: list[float | None] = [None] * len(rids)
        fvas: list[tuple[float | None, float | None]] = [(None, None)] * len(rids)
    else:
        optimum = solution.objective_value
        logger.info("Optimal solution found: %.6g", optimum)
        fluxes = [solution.fluxes[rid] for rid in rids]
        logger.info("Calculating model variability ...")
        fvas = flux_variability(variant, optimizer, optimum, rids, fraction=1.0, pool=pool)

    logger.info("Calculating gene knockouts ...")
    gs = gene_knockouts(variant, optimizer, gids, pool=pool)

    logger.info("Calculating reaction knockouts ...")
    rs = reaction_knockouts(variant, optimizer, rids, pool=pool)

    logger.info("Objective %s done.", objective)
    return FROGObjectiveReport(
        optimum=optimum,
        reactions={
            rid: FROGReactionReport(flux=flx, variability_min=vmin, variability_max=vmax, deletion=ko)
            for rid, flx, (vmin, vmax), ko in zip(rids, fluxes, fvas, rs)
        },
        gene_deletions=dict(zip(gids, gs)),
    )


def build_report(
    model: ModelView,
    optimizer: Optimizer,
    pool: ScreeningPool | None = None,
) -> FROGReportData:
    """Generate FROG report data for every named objective of the model."""
    if not model.objectives:
        logger.warning("Model %s defines no objectives; the report is empty.", model.id)
    return {
        objective: frog_objective_report(model, objective, optimizer, pool)
        for objective in model.objectives
    }


def _file_digest(path: Path, algorithm: str) -> str:
    h = hashlib.new(algorithm)
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1 << 20), b""):
            h.update(chunk)
    return h.hexdigest()


def environment_description() -> str:
    """Single-line description of the interpreter and platform."""
    text = f"Python {sys.version} on {platform.platform()} ({platform.machine()})"
    return " ".join(text.split())


def generate_metadata(
    filename: str | Path,
    optimizer: Optimizer,
    basefilename: str | None = None,
) -> FROGMetadata:
    p = Path(filename)
    if not p.exists():
        raise FileNotFoundError(f"Model file not found: {p}")
    return {
        "software.name": "fbc_audit",
        "software.version": __version__,
        "software.url": __url__,
        "environment": environment_description(),
        "model.filename": basefilename if basefilename is not None else p.name,
        "model.md5": _file_digest(p, "md5"),
        "model.sha256": _file_digest(p, "sha256"),
        "solver.name": f"fbc_audit {__version__} ({optimizer.description})",
    }
