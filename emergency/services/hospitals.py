"""
Static hospital directory for EMS routing suggestions.
"""

from collections.abc import Iterable, Mapping
from pathlib import Path

import structlog

from emergency.domain.catalog import load_hospital_table
from emergency.domain.models import EmergencyCategory, HospitalInfo

logger = structlog.get_logger(__name__)


class HospitalDirectory:
    """Distance-ordered hospital lookup with a category to specialty mapping."""

    def __init__(
        self,
        hospitals: Iterable[HospitalInfo],
        specialty_by_category: Mapping[EmergencyCategory, str],
    ) -> None:
        self.hospitals = sorted(hospitals, key=lambda h: h.distance_miles)
        self.specialty_by_category = dict(specialty_by_category)
        self.logger = logger.bind(component="hospital_directory")

    @classmethod
    def load(cls, path: str | Path | None = None) -> "HospitalDirectory":
        hospitals, specialties = load_hospital_table(path)
        return cls(hospitals, specialties)

    def nearest(self, specialty: str | None = None, max_results: int = 3) -> list[HospitalInfo]:
        """Closest hospitals, optionally those with a matching specialty (substring, any case)."""
        candidates = self.hospitals
        if specialty:
            needle = specialty.lower()
            candidates = [
                h for h in candidates if any(needle in s.lower() for s in h.specialties)
            ]
        return candidates[:max_results]

    def best_for(self, category: EmergencyCategory) -> HospitalInfo | None:
        specialty = self.specialty_by_category.get(category)
        if specialty is None:
            self.logger.warning("no_specialty_for_category", category=category.value)
            return None
        matches = self.nearest(specialty, max_results=1)
        return matches[0] if matches else None
