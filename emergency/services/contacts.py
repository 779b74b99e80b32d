"""
Emergency contact registry.

Contacts persist across evaluations and are always handed out sorted by
escalation rank (1 first).
"""

from __future__ import annotations

import structlog

from emergency.domain.models import EmergencyContact
from emergency.services.repository import InMemoryPatientRepository, PatientRepository

logger = structlog.get_logger(__name__)


class ContactRegistry:
    """Add/update by id, remove by id, and rank-sorted listing per patient."""

    def __init__(self, repository: PatientRepository[EmergencyContact] | None = None) -> None:
        self._repository: PatientRepository[EmergencyContact] = (
            repository or InMemoryPatientRepository[EmergencyContact]()
        )
        self.logger = logger.bind(component="contact_registry")

    def add(self, contact: EmergencyContact) -> None:
        """
        Insert the contact, or replace the existing one with the same id.

        An id registered under another patient is moved to ``contact.patient_id``.
        """
        for other_patient in self._repository.patient_ids():
            if other_patient != contact.patient_id and self._drop(other_patient, contact.id):
                self.logger.info(
                    "contact_moved",
                    contact_id=contact.id,
                    from_patient_id=other_patient,
                    patient_id=contact.patient_id,
                )

        def upsert(contacts: list[EmergencyContact]) -> bool:
            for index, existing in enumerate(contacts):
                if existing.id == contact.id:
                    contacts[index] = contact
                    return True
            contacts.append(contact)
            return False

        replaced = self._repository.update(contact.patient_id, upsert)
        self.logger.info(
            "contact_updated" if replaced else "contact_added",
            patient_id=contact.patient_id,
            contact_id=contact.id,
            rank=contact.priority,
        )

    def remove(self, patient_id: str, contact_id: str) -> bool:
        removed = self._drop(patient_id, contact_id)
        if removed:
            self.logger.info("contact_removed", patient_id=patient_id, contact_id=contact_id)
        return removed

    def _drop(self, patient_id: str, contact_id: str) -> bool:
        def drop(contacts: list[EmergencyContact]) -> bool:
            before = len(contacts)
            contacts[:] = [c for c in contacts if c.id != contact_id]
            return len(contacts) != before

        return self._repository.update(patient_id, drop)

    def list(self, patient_id: str) -> list[EmergencyContact]:
        """Contacts sorted ascending by rank; ties keep registration order."""
        return sorted(self._repository.list(patient_id), key=lambda c: c.priority)

    def escalation_chain(self, patient_id: str) -> list[EmergencyContact]:
        return self.list(patient_id)
