"""Pedigree modules - animal indices and parent/progeny/sibling resolution."""

from herdmetrics.pedigree.index import (
    AnimalIndices,
    ParentRole,
    build_indices,
    normalize_key,
)
from herdmetrics.pedigree.resolver import (
    ProgenyStats,
    ProgenySummary,
    calculate_progeny_stats,
    format_lineage_tree,
    get_lineage,
    get_progeny_summaries,
    get_siblings,
    get_unified_progeny,
    resolve_parent,
)

__all__ = [
    "AnimalIndices",
    "ParentRole",
    "build_indices",
    "normalize_key",
    "resolve_parent",
    "get_unified_progeny",
    "get_siblings",
    "get_progeny_summaries",
    "calculate_progeny_stats",
    "ProgenySummary",
    "ProgenyStats",
    "get_lineage",
    "format_lineage_tree",
]
