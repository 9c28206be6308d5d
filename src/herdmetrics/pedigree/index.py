"""Pre-computed animal indices for O(1) lookups.

The indices are built once per herd snapshot in a single pass and shared by
every pedigree, DEP and KPI calculation of that snapshot. Rebuilding them (or
scanning the animal list) per animal turns whole-herd passes quadratic.

Parent links are indexed twice: by resolved parent ID and by the normalized
free-text parent name that legacy records carry. The two are kept as
separate maps and never merged.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from herdmetrics.data.models import Animal, AnimalStatus, Breed, Sex

logger = logging.getLogger(__name__)


class ParentRole(Enum):
    SIRE = "sire"
    DAM = "dam"


def normalize_key(text: str | None) -> str:
    """Normalize a tag or name for matching: trimmed and lowercased."""
    return (text or "").strip().lower()


@dataclass
class AnimalIndices:
    animals: list[Animal] = field(default_factory=list)
    by_id: dict[str, Animal] = field(default_factory=dict)
    by_tag: dict[str, Animal] = field(default_factory=dict)
    by_sire_name: dict[str, list[Animal]] = field(default_factory=dict)
    by_dam_name: dict[str, list[Animal]] = field(default_factory=dict)
    by_sire_id: dict[str, list[Animal]] = field(default_factory=dict)
    by_dam_id: dict[str, list[Animal]] = field(default_factory=dict)
    by_breed: dict[Breed, list[Animal]] = field(default_factory=dict)
    by_sex: dict[Sex, list[Animal]] = field(default_factory=dict)
    by_status: dict[AnimalStatus, list[Animal]] = field(default_factory=dict)

    def get_by_id(self, animal_id: str | None) -> Animal | None:
        if not animal_id:
            return None
        return self.by_id.get(animal_id)

    def get_by_tag(self, tag: str | None) -> Animal | None:
        key = normalize_key(tag)
        if not key:
            return None
        return self.by_tag.get(key)

    def children_by_parent_name(self, parent_name: str | None, role: ParentRole) -> list[Animal]:
        key = normalize_key(parent_name)
        if not key:
            return []
        index = self.by_sire_name if role == ParentRole.SIRE else self.by_dam_name
        return index.get(key, [])

    def children_by_parent_id(self, parent_id: str | None, role: ParentRole) -> list[Animal]:
        if not parent_id:
            return []
        index = self.by_sire_id if role == ParentRole.SIRE else self.by_dam_id
        return index.get(parent_id, [])


def build_indices(animals: list[Animal]) -> AnimalIndices:
    """Build all animal indices in one linear pass.

    Empty or missing fields are simply left out of the relevant index. Tags
    are not guaranteed unique; the first animal with a given tag wins.

    Args:
        animals: The full animal collection of one snapshot

    Returns:
        AnimalIndices over the collection

    Raises:
        TypeError: If `animals` is not a list or tuple
    """
    if not isinstance(animals, (list, tuple)):
        raise TypeError(f"animals must be a list of Animal, got {type(animals).__name__}")

    indices = AnimalIndices(animals=list(animals))

    # Enum-keyed indices always carry every member
    indices.by_breed = {b: [] for b in Breed}
    indices.by_sex = {s: [] for s in Sex}
    indices.by_status = {s: [] for s in AnimalStatus}

    duplicate_tags = 0

    for animal in animals:
        if animal.id:
            indices.by_id[animal.id] = animal

        tag_key = normalize_key(animal.tag)
        if tag_key:
            if tag_key in indices.by_tag:
                duplicate_tags += 1
            else:
                indices.by_tag[tag_key] = animal

        sire_name = normalize_key(animal.sire.name)
        if sire_name:
            indices.by_sire_name.setdefault(sire_name, []).append(animal)

        dam_name = normalize_key(animal.dam.name)
        if dam_name:
            indices.by_dam_name.setdefault(dam_name, []).append(animal)

        if animal.sire.id:
            indices.by_sire_id.setdefault(animal.sire.id, []).append(animal)

        if animal.dam.id:
            indices.by_dam_id.setdefault(animal.dam.id, []).append(animal)

        indices.by_breed[animal.breed].append(animal)
        indices.by_sex[animal.sex].append(animal)
        indices.by_status[animal.status].append(animal)

    if duplicate_tags:
        logger.warning("%d animals share a tag with an earlier animal; lookups use the first", duplicate_tags)
    logger.debug("Indexed %d animals", len(indices.animals))

    return indices
