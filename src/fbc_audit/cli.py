from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.logging import RichHandler

from fbc_audit import __version__

app = typer.Typer(add_completion=False, help="fbc_audit: constraint-based model audits and FROG reports")

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_time=False, show_path=False)],
    )


def _load_report_any(path: Path):
    from fbc_audit.frog import load_report, load_report_json

    if path.is_dir():
        return load_report(path)
    return load_report_json(path)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
) -> None:
    """Entry point."""
    _setup_logging(verbose=verbose)


@app.command()
def version() -> None:
    """Print package version."""
    typer.echo(__version__)


@app.command()
def check(
    model_path: Path = typer.Argument(..., help="SBML model file."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Audit config YAML/JSON."),
    out: Path = typer.Option(Path("results/audit.csv"), "--out", "-o", help="Output CSV path."),
    solver: str = typer.Option("glpk", help="optlang solver interface."),
) -> None:
    """Run every model check and write the audit table."""
    from fbc_audit.audit import run_audit, write_audit_csv
    from fbc_audit.config import load_audit_config
    from fbc_audit.io import load_sbml_model
    from fbc_audit.optimizer import Optimizer

    cfg = load_audit_config(config)
    model = load_sbml_model(model_path)
    rows = run_audit(model, Optimizer(solver), cfg)
    failed = [r for r in rows if not r.passed]
    for r in failed:
        typer.echo(f"[FAIL] {r.category}/{r.check}: {r.n_items} item(s)")
    out_path = write_audit_csv(rows, out)
    typer.echo(f"[OK] {len(rows) - len(failed)}/{len(rows)} checks passed; wrote {out_path}")


@app.command()
def report(
    model_path: Path = typer.Argument(..., help="SBML model file."),
    outdir: Path = typer.Argument(..., help="Output directory (FROG layout)."),
    n_jobs: int = typer.Option(1, "--n-jobs", "-j", help="joblib workers (-1 = all cores)."),
    backend: str = typer.Option("loky", help="joblib backend."),
    solver: str = typer.Option("glpk", help="optlang solver interface."),
    timeout: Optional[float] = typer.Option(None, help="Per-LP solver timeout in seconds."),
    json_out: Optional[Path] = typer.Option(None, "--json", help="Also write the nested JSON form."),
) -> None:
    """Generate the FROG reproducibility report for every objective of a model."""
    from fbc_audit.frog import save_report, save_report_json
    from fbc_audit.io import load_sbml_model
    from fbc_audit.optimizer import Optimizer
    from fbc_audit.report import build_report, generate_metadata
    from fbc_audit.screening import ScreeningPool

    optimizer = Optimizer(solver, timeout=timeout)
    model = load_sbml_model(model_path)
    data = build_report(model, optimizer, ScreeningPool(n_jobs=n_jobs, backend=backend))
    metadata = generate_metadata(model_path, optimizer)
    save_report(data, outdir, model_path.name, metadata)
    if json_out is not None:
        save_report_json(data, json_out)
    typer.echo(f"[OK] Wrote FROG report: {outdir} (objectives={len(data)})")


@app.command()
def compare(
    a: Path = typer.Argument(..., help="Report directory or JSON file."),
    b: Path = typer.Argument(..., help="Report directory or JSON file."),
    abs_tol: float = typer.Option(1e-6, "--abs-tol", help="Absolute tolerance."),
    rel_tol: float = typer.Option(1e-4, "--rel-tol", help="Relative tolerance."),
) -> None:
    """Compare two reports; exits with code 1 if they are not compatible."""
    from fbc_audit.compare import compare_metadata, compare_reports
    from fbc_audit.config import ToleranceConfig
    from fbc_audit.frog import load_metadata

    comparison = compare_reports(
        _load_report_any(a),
        _load_report_any(b),
        ToleranceConfig(absolute_tolerance=abs_tol, relative_tolerance=rel_tol),
    )
    findings = list(comparison.findings)
    if a.is_dir() and b.is_dir() and (a / "metadata.json").exists() and (b / "metadata.json").exists():
        findings.extend(compare_metadata(load_metadata(a / "metadata.json"), load_metadata(b / "metadata.json")).findings)

    for f in findings:
        typer.echo(f"[DIFF] {f}")
    typer.echo(f"[REPORT] {comparison.summary()}")
    if findings:
        raise typer.Exit(code=1)
    typer.echo("[OK] Reports are compatible")


@app.command()
def metadata(
    model_path: Path = typer.Argument(..., help="SBML model file."),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write metadata JSON here."),
    solver: str = typer.Option("glpk", help="optlang solver interface."),
) -> None:
    """Print (or save) the metadata record for a model file."""
    from fbc_audit.frog import save_metadata
    from fbc_audit.optimizer import Optimizer
    from fbc_audit.report import generate_metadata

    md = generate_metadata(model_path, Optimizer(solver))
    if out is not None:
        save_metadata(md, out)
        typer.echo(f"[OK] Wrote metadata: {out}")
        return
    for key, value in md.items():
        typer.echo(f"{key}\t{value}")


if __name__ == "__main__":
    app()
