"""
Annotation coverage and conformity.

Databases are not fixed: each query covers the configured databases plus every
database name that appears on at least one entity of the model.
"""
from __future__ import annotations

import re
from typing import Iterable, Mapping

from fbc_audit.config import AuditConfig
from fbc_audit.model import ModelView


def _databases(entities: Iterable, configured: Iterable[str]) -> list[str]:
    names = list(configured)
    for e in entities:
        names.extend(db for db in e.annotation if db != "sbo")
    return list(dict.fromkeys(names))


def _unannotated(entities: Mapping, databases: list[str]) -> dict[str, list[str]]:
    return {db: [eid for eid, e in entities.items() if not e.annotation.get(db)] for db in databases}


def _conformity(entities: Mapping, patterns: Mapping[str, str]) -> dict[str, list[str]]:
    """Per database, ids whose annotation values do not all match that database's pattern."""
    out = {}
    for db, pattern in patterns.items():
        rx = re.compile(pattern)
        out[db] = [
            eid
            for eid, e in entities.items()
            if e.annotation.get(db) and not all(rx.match(str(v)) for v in e.annotation[db])
        ]
    return out


def all_unannotated_metabolites(model: ModelView) -> list[str]:
    return [mid for mid, m in model.metabolites.items() if not any(m.annotation.values())]


def all_unannotated_reactions(model: ModelView) -> list[str]:
    return [rid for rid, r in model.reactions.items() if not any(r.annotation.values())]


def all_unannotated_genes(model: ModelView) -> list[str]:
    return [gid for gid, g in model.genes.items() if not any(g.annotation.values())]


def unannotated_metabolites(model: ModelView, config: AuditConfig | None = None) -> dict[str, list[str]]:
    config = config or AuditConfig()
    dbs = _databases(model.metabolites.values(), config.annotation.metabolite_patterns)
    return _unannotated(model.metabolites, dbs)


def unannotated_reactions(model: ModelView, config: AuditConfig | None = None) -> dict[str, list[str]]:
    config = config or AuditConfig()
    dbs = _databases(model.reactions.values(), config.annotation.reaction_patterns)
    return _unannotated(model.reactions, dbs)


def unannotated_genes(model: ModelView, config: AuditConfig | None = None) -> dict[str, list[str]]:
    config = config or AuditConfig()
    dbs = _databases(model.genes.values(), config.annotation.gene_patterns)
    return _unannotated(model.genes, dbs)


def metabolite_annotation_conformity(model: ModelView, config: AuditConfig | None = None) -> dict[str, list[str]]:
    config = config or AuditConfig()
    return _conformity(model.metabolites, config.annotation.metabolite_patterns)


def reaction_annotation_conformity(model: ModelView, config: AuditConfig | None = None) -> dict[str, list[str]]:
    config = config or AuditConfig()
    return _conformity(model.reactions, config.annotation.reaction_patterns)


def gene_annotation_conformity(model: ModelView, config: AuditConfig | None = None) -> dict[str, list[str]]:
    config = config or AuditConfig()
    return _conformity(model.genes, config.annotation.gene_patterns)
