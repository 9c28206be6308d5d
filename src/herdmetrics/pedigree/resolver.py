"""Pedigree resolution over pre-built indices.

Parentage has been recorded three ways over the herd's history: manual
progeny summaries on the parent, free-text parent names on the child, and
resolved parent IDs on the child. Each is treated as an independent source of
(parent, child) edges and unioned; no source is assumed complete.
"""

from dataclasses import dataclass
from typing import TypedDict

import numpy as np

from herdmetrics.data.models import Animal, WeighingType
from herdmetrics.pedigree.index import AnimalIndices, ParentRole, normalize_key

# Default number of ancestor generations in a lineage tree
DEFAULT_GENERATIONS = 3


def _parent_ref(animal: Animal, role: ParentRole):
    return animal.sire if role == ParentRole.SIRE else animal.dam


def resolve_parent(animal: Animal, role: ParentRole, indices: AnimalIndices) -> Animal | None:
    """
    Resolve an animal's sire or dam.

    The resolved parent ID wins when it exists in the herd. Otherwise the
    free-text parent name is matched against every animal's display name or
    tag (linear scan, legacy records only).

    Args:
        animal: Child animal
        role: ParentRole.SIRE or ParentRole.DAM
        indices: Indices of the current snapshot

    Returns:
        The parent animal, or None if it is not in the herd
    """
    ref = _parent_ref(animal, role)

    if ref.id:
        parent = indices.get_by_id(ref.id)
        if parent is not None:
            return parent

    name = normalize_key(ref.name)
    if not name:
        return None

    for candidate in indices.animals:
        if normalize_key(candidate.name) == name or normalize_key(candidate.tag) == name:
            return candidate

    return None


def get_unified_progeny(animal: Animal, indices: AnimalIndices) -> list[Animal]:
    """
    All known offspring of an animal, deduplicated by normalized tag.

    Sources, in order:
    1. Manual progeny summaries on the animal, resolved through the tag index
    2. Animals naming this one as sire (males) or dam (females), matched
       against its tag or display name; both roles when the sex is unknown
    3. Animals linking this one by parent ID

    Summaries whose offspring is not in the herd are skipped. The animal is
    never listed as its own offspring.
    """
    if animal.is_male:
        roles = (ParentRole.SIRE,)
    elif animal.is_female:
        roles = (ParentRole.DAM,)
    else:
        roles = (ParentRole.SIRE, ParentRole.DAM)
    seen: set[str] = set()
    result: list[Animal] = []

    def add(child: Animal | None) -> None:
        if child is None or child is animal:
            return
        key = normalize_key(child.tag) or child.id
        if key in seen:
            return
        seen.add(key)
        result.append(child)

    for record in animal.progeny_records:
        add(indices.get_by_tag(record.offspring_tag))

    for role in roles:
        for own_key in dict.fromkeys((normalize_key(animal.name), normalize_key(animal.tag))):
            for child in indices.children_by_parent_name(own_key, role):
                add(child)

    for role in roles:
        for child in indices.children_by_parent_id(animal.id, role):
            add(child)

    return result


def get_siblings(animal: Animal, indices: AnimalIndices) -> list[Animal]:
    """
    Half and full siblings: animals sharing a sire or dam by name or by ID.

    Deduplicated by ID and never including the animal itself.
    """
    seen: set[str] = {animal.id}
    result: list[Animal] = []

    groups = (
        indices.children_by_parent_name(animal.sire.name, ParentRole.SIRE),
        indices.children_by_parent_name(animal.dam.name, ParentRole.DAM),
        indices.children_by_parent_id(animal.sire.id, ParentRole.SIRE),
        indices.children_by_parent_id(animal.dam.id, ParentRole.DAM),
    )
    for group in groups:
        for sibling in group:
            if sibling is animal or sibling.id in seen:
                continue
            seen.add(sibling.id)
            result.append(sibling)

    return result


# =============================================================================
# Progeny summaries
# =============================================================================


@dataclass
class ProgenySummary:
    tag: str
    name: str | None = None
    animal_id: str | None = None  # None when the offspring is not in the herd
    birth_weight_kg: float | None = None
    weaning_weight_kg: float | None = None
    yearling_weight_kg: float | None = None

    @property
    def in_herd(self) -> bool:
        return self.animal_id is not None


class ProgenyStats(TypedDict):
    total: int
    avg_birth_weight: float
    avg_weaning_weight: float
    avg_yearling_weight: float
    count_with_birth: int
    count_with_weaning: int
    count_with_yearling: int


def get_progeny_summaries(animal: Animal, indices: AnimalIndices) -> list[ProgenySummary]:
    """
    Offspring summaries, including offspring that never entered the herd.

    Offspring in the herd report their own tagged weighings. Manual progeny
    records whose tag matches no animal keep the weights entered on the
    record.
    """
    summaries = [
        ProgenySummary(
            tag=child.tag,
            name=child.name,
            animal_id=child.id,
            birth_weight_kg=child.weight_of(WeighingType.BIRTH),
            weaning_weight_kg=child.weight_of(WeighingType.WEANING),
            yearling_weight_kg=child.weight_of(WeighingType.YEARLING),
        )
        for child in get_unified_progeny(animal, indices)
    ]

    seen = {normalize_key(s.tag) for s in summaries}
    for record in animal.progeny_records:
        key = normalize_key(record.offspring_tag)
        if key in seen or indices.get_by_tag(key) is not None:
            continue
        seen.add(key)
        summaries.append(
            ProgenySummary(
                tag=record.offspring_tag,
                birth_weight_kg=record.birth_weight_kg,
                weaning_weight_kg=record.weaning_weight_kg,
                yearling_weight_kg=record.yearling_weight_kg,
            )
        )

    return summaries


def _mean_weight(values: list[float]) -> float:
    return round(float(np.mean(values)), 1) if values else 0.0


def calculate_progeny_stats(summaries: list[ProgenySummary]) -> ProgenyStats:
    """Offspring count and mean recorded weights (0.0 when no offspring has one)."""
    birth = [s.birth_weight_kg for s in summaries if s.birth_weight_kg]
    weaning = [s.weaning_weight_kg for s in summaries if s.weaning_weight_kg]
    yearling = [s.yearling_weight_kg for s in summaries if s.yearling_weight_kg]
    return {
        "total": len(summaries),
        "avg_birth_weight": _mean_weight(birth),
        "avg_weaning_weight": _mean_weight(weaning),
        "avg_yearling_weight": _mean_weight(yearling),
        "count_with_birth": len(birth),
        "count_with_weaning": len(weaning),
        "count_with_yearling": len(yearling),
    }


# =============================================================================
# Lineage
# =============================================================================


def _lineage_node(animal: Animal) -> dict:
    return {
        "id": animal.id,
        "tag": animal.tag,
        "name": animal.name,
        "breed": animal.breed.value,
        "sex": animal.sex.value,
        "birth_date": animal.birth_date,
        "sire": None,
        "dam": None,
    }


def get_lineage(animal: Animal, indices: AnimalIndices, generations: int = DEFAULT_GENERATIONS) -> dict:
    """
    Build an ancestor tree for an animal.

    Parents known only by an unmatched name appear as leaf nodes with
    `resolved: False`. An ancestor already on the current path is not
    expanded again, so looping pedigrees terminate.

    Args:
        animal: Root animal
        indices: Indices of the current snapshot
        generations: Number of ancestor generations to include

    Returns:
        Nested dict with `sire`/`dam` sub-trees (None when unknown)
    """

    def build(current: Animal, depth: int, path: frozenset[str]) -> dict:
        node = _lineage_node(current)
        node["resolved"] = True
        if depth <= 0:
            return node

        for role, key in ((ParentRole.SIRE, "sire"), (ParentRole.DAM, "dam")):
            parent = resolve_parent(current, role, indices)
            if parent is not None and parent.id not in path:
                node[key] = build(parent, depth - 1, path | {parent.id})
            elif parent is not None:
                node[key] = {**_lineage_node(parent), "resolved": True}
            else:
                ref = _parent_ref(current, role)
                if ref.name:
                    node[key] = {"id": ref.id, "tag": ref.name, "name": None, "resolved": False}

        return node

    return build(animal, generations, frozenset({animal.id}))


def format_lineage_tree(node: dict, indent: int = 0) -> str:
    """
    Format a lineage dict as a readable tree string.

    Args:
        node: Lineage dict with nested sire/dam
        indent: Current indentation level

    Returns:
        Formatted tree string
    """
    prefix = "  " * indent
    tag = node.get("tag") or node.get("name") or node.get("id") or "?"
    breed = node.get("breed") or ""
    birth = str(node["birth_date"])[:4] if node.get("birth_date") else ""

    line = f"{prefix}{tag}"
    if node.get("name") and node["name"] != tag:
        line += f" '{node['name']}'"
    if breed:
        line += f" ({breed})"
    if birth:
        line += f" [{birth}]"
    if node.get("resolved") is False:
        line += " (not in herd)"

    lines = [line]

    sire = node.get("sire")
    dam = node.get("dam")

    if sire:
        lines.append(f"{prefix}  ├─ Sire:")
        lines.append(format_lineage_tree(sire, indent + 2))
    if dam:
        lines.append(f"{prefix}  └─ Dam:")
        lines.append(format_lineage_tree(dam, indent + 2))

    return "\n".join(lines)
