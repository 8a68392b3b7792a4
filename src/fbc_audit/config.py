from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


class ConfigError(ValueError):
    """Raised when a config file cannot be loaded or has invalid structure."""


def load_config(path: str | Path) -> dict[str, Any]:
    """
    Load a YAML or JSON config file into a dict.

    Parameters
    ----------
    path:
        Path to a .yaml/.yml or .json file.
    """
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")

    suffix = p.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    elif suffix == ".json":
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
    else:
        raise ConfigError(f"Unsupported config extension: {suffix} (expected .yaml/.yml/.json)")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping/dict, got: {type(data).__name__}")
    return data


def _dissipation(reactants: dict[str, float], products: dict[str, float]) -> dict[str, float]:
    out = {k: -float(v) for k, v in reactants.items()}
    out.update({k: float(v) for k, v in products.items()})
    return out


def _default_energy_dissipating_reactions() -> dict[str, dict[str, float]]:
    # BiGG identifiers; a reaction is only tested if all of its metabolites exist.
    triphosphates = {
        "ATP": ("atp_c", "adp_c"),
        "CTP": ("ctp_c", "cdp_c"),
        "GTP": ("gtp_c", "gdp_c"),
        "UTP": ("utp_c", "udp_c"),
        "ITP": ("itp_c", "idp_c"),
    }
    out = {
        name: _dissipation({ntp: 1, "h2o_c": 1}, {ndp: 1, "pi_c": 1, "h_c": 1})
        for name, (ntp, ndp) in triphosphates.items()
    }
    out.update(
        {
            "NADH": _dissipation({"nadh_c": 1}, {"nad_c": 1, "h_c": 1}),
            "NADPH": _dissipation({"nadph_c": 1}, {"nadp_c": 1, "h_c": 1}),
            "FADH2": _dissipation({"fadh2_c": 1}, {"fad_c": 1, "h_c": 2}),
            "FMNH2": _dissipation({"fmnh2_c": 1}, {"fmn_c": 1, "h_c": 2}),
            "Q8H2": _dissipation({"q8h2_c": 1}, {"q8_c": 1, "h_c": 2}),
            "MQL8": _dissipation({"mql8_c": 1}, {"mqn8_c": 1, "h_c": 2}),
            "DMMQL8": _dissipation({"2dmmql8_c": 1}, {"2dmmq8_c": 1, "h_c": 2}),
            "ACCOA": _dissipation({"accoa_c": 1, "h2o_c": 1}, {"ac_c": 1, "coa_c": 1, "h_c": 1}),
            "GLU": _dissipation({"glu__L_c": 1, "h2o_c": 1}, {"akg_c": 1, "nh4_c": 1, "h_c": 2}),
            "PROTON": _dissipation({"h_p": 1}, {"h_c": 1}),
        }
    )
    return out


@dataclass(frozen=True)
class ConsistencyConfig:
    ignored_energy_reactions: tuple[str, ...] = ()
    mass_unbalanced_reactions: tuple[str, ...] = ()
    energy_dissipating_reactions: dict[str, dict[str, float]] = field(
        default_factory=_default_energy_dissipating_reactions
    )
    egc_threshold: float = 1e-6


@dataclass(frozen=True)
class MetaboliteConfig:
    medium_only_imported: bool = True
    known_elements: tuple[str, ...] = (
        "H", "C", "N", "O", "P", "S", "Na", "Mg", "Cl", "K", "Ca", "Mn", "Fe",
        "Co", "Ni", "Cu", "Zn", "Se", "Mo", "W", "I", "F", "Br", "B", "Cd", "Hg",
        "As", "Al", "Cr", "Si", "Li",
    )


_METABOLITE_PATTERNS = {
    "pubchem.compound": r"^\d+$",
    "kegg.compound": r"^C\d+$",
    "seed.compound": r"^cpd\d+$",
    "inchi_key": r"^[A-Z]{14}\-[A-Z]{10}(\-[A-Z])?",
    "inchi": r"^InChI\=1S?\/[A-Za-z0-9\.]+(\+[0-9]+)?(\/[cnpqbtmsih][A-Za-z0-9\-\+\(\)\,\/\?\;\.]+)*$",
    "chebi": r"^CHEBI:\d+$",
    "hmdb": r"^HMDB\d+$",
    "reactome": r"(^(REACTOME:)?R-[A-Z]{3}-[0-9]+(-[0-9]+)?$)|(^REACT_\d+$)",
    "metanetx.chemical": r"^(MNXM\d+|BIOMASS|WATER)$",
    "bigg.metabolite": r"^[a-z_A-Z0-9]+$",
    "biocyc": r"^[A-Z-0-9]+(?<!CHEBI)(\:)?[A-Za-z0-9+_.%-]+$",
}

_EC_PATTERN = r"^\d+\.-\.-\.-|\d+\.\d+\.-\.-|\d+\.\d+\.\d+\.-|\d+\.\d+\.\d+\.(n)?\d+$"

_REACTION_PATTERNS = {
    "rhea": r"^\d{5}$",
    "kegg.reaction": r"^R\d+$",
    "seed.reaction": r"^rxn\d+$",
    "metanetx.reaction": r"^MNXR\d+$",
    "bigg.reaction": r"^[a-z_A-Z0-9]+$",
    "reactome": _METABOLITE_PATTERNS["reactome"],
    "ec-code": _EC_PATTERN,
    "brenda": _EC_PATTERN,
    "biocyc": _METABOLITE_PATTERNS["biocyc"],
}

_GENE_PATTERNS = {
    "refseq": r"^(((AC|AP|NC|NG|NM|NP|NR|NT|NW|XM|XP|XR|YP|ZP)_\d+)|(NZ\_[A-Z]{2,4}\d+))(\.\d+)?$",
    "uniprot": r"^([A-N,R-Z][0-9]([A-Z][A-Z, 0-9][A-Z, 0-9][0-9]){1,2})|([O,P,Q][0-9][A-Z, 0-9][A-Z, 0-9][A-Z, 0-9][0-9])(\.\d+)?$",
    "ecogene": r"^EG\d+$",
    "kegg.genes": r"^\w+:[\w\d\.-]*$",
    "ncbigi": r"^(GI|gi)\:\d+$",
    "ncbigene": r"^\d+$",
    "ncbiprotein": r"^(\w+\d+(\.\d+)?)|(NP_\d+)$",
    "ccds": r"^CCDS\d+\.\d+$",
    "hprd": r"^\d+$",
    "asap": r"^[A-Za-z0-9-]+$",
}


@dataclass(frozen=True)
class AnnotationConfig:
    metabolite_patterns: dict[str, str] = field(default_factory=lambda: dict(_METABOLITE_PATTERNS))
    reaction_patterns: dict[str, str] = field(default_factory=lambda: dict(_REACTION_PATTERNS))
    gene_patterns: dict[str, str] = field(default_factory=lambda: dict(_GENE_PATTERNS))


@dataclass(frozen=True)
class BiomassConfig:
    id_pattern: str = r"(?i)biomass"
    sbo_term: str = "SBO:0000629"
    atpm_reactions: tuple[str, ...] = ("ATPM",)
    growth_reactants: tuple[str, ...] = ("atp_c", "h2o_c")
    growth_products: tuple[str, ...] = ("adp_c", "pi_c", "h_c")
    essential_precursors: tuple[str, ...] = (
        "ala__L_c", "arg__L_c", "asn__L_c", "asp__L_c", "cys__L_c", "gln__L_c",
        "glu__L_c", "gly_c", "his__L_c", "ile__L_c", "leu__L_c", "lys__L_c",
        "met__L_c", "phe__L_c", "pro__L_c", "ser__L_c", "thr__L_c", "trp__L_c",
        "tyr__L_c", "val__L_c", "datp_c", "dctp_c", "dgtp_c", "dttp_c", "atp_c",
        "ctp_c", "gtp_c", "utp_c", "nad_c", "nadp_c", "amet_c", "fad_c",
        "pydx5p_c", "coa_c", "thmpp_c", "fmn_c",
    )
    molar_mass_tolerance: float = 1e-3
    growth_threshold: float = 1e-6


@dataclass(frozen=True)
class ToleranceConfig:
    absolute_tolerance: float = 1e-6
    relative_tolerance: float = 1e-4


@dataclass(frozen=True)
class AuditConfig:
    consistency: ConsistencyConfig = field(default_factory=ConsistencyConfig)
    metabolite: MetaboliteConfig = field(default_factory=MetaboliteConfig)
    annotation: AnnotationConfig = field(default_factory=AnnotationConfig)
    biomass: BiomassConfig = field(default_factory=BiomassConfig)
    tolerance: ToleranceConfig = field(default_factory=ToleranceConfig)


def _coerce(current: Any, value: Any, where: str) -> Any:
    if isinstance(current, tuple):
        if not isinstance(value, (list, tuple)):
            raise ConfigError(f"{where} must be a list, got: {type(value).__name__}")
        return tuple(str(v) for v in value)
    if isinstance(current, dict):
        if not isinstance(value, dict):
            raise ConfigError(f"{where} must be a mapping, got: {type(value).__name__}")
        return dict(value)
    if isinstance(current, bool):
        return bool(value)
    if isinstance(current, float):
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{where} must be a number, got: {value!r}") from e
    return value


def audit_config_from_dict(data: dict[str, Any]) -> AuditConfig:
    """Overlay a (possibly partial) mapping onto the default AuditConfig."""
    cfg = AuditConfig()
    sections: dict[str, Any] = {}
    for section_name, values in data.items():
        if section_name not in {f.name for f in dataclasses.fields(AuditConfig)}:
            raise ConfigError(f"Unknown config section: {section_name}")
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ConfigError(f"Config section {section_name} must be a mapping")
        section = getattr(cfg, section_name)
        known = {f.name for f in dataclasses.fields(section)}
        updates = {}
        for key, value in values.items():
            if key not in known:
                raise ConfigError(f"Unknown config key: {section_name}.{key}")
            updates[key] = _coerce(getattr(section, key), value, f"{section_name}.{key}")
        sections[section_name] = dataclasses.replace(section, **updates)
    return dataclasses.replace(cfg, **sections)


def load_audit_config(path: str | Path | None = None) -> AuditConfig:
    """
    Load an AuditConfig. Without a path, the built-in defaults are returned.
    """
    if path is None:
        return AuditConfig()
    return audit_config_from_dict(load_config(path))
