"""
Tests for the emergency contact registry.
"""

from collections.abc import Callable

from emergency.domain.models import EmergencyContact
from emergency.services.contacts import ContactRegistry

PATIENT_ID = "patient-001"

ContactFactory = Callable[..., EmergencyContact]


class TestContactRegistry:
    def test_list_sorted_by_rank(self, make_contact: ContactFactory) -> None:
        registry = ContactRegistry()
        registry.add(make_contact("Third", 3))
        registry.add(make_contact("First", 1, is_primary=True))
        registry.add(make_contact("Second", 2))

        assert [c.name for c in registry.list(PATIENT_ID)] == ["First", "Second", "Third"]
        assert registry.escalation_chain(PATIENT_ID) == registry.list(PATIENT_ID)

    def test_equal_ranks_keep_registration_order(self, make_contact: ContactFactory) -> None:
        registry = ContactRegistry()
        registry.add(make_contact("Early", 2))
        registry.add(make_contact("Late", 2))

        assert [c.name for c in registry.list(PATIENT_ID)] == ["Early", "Late"]

    def test_add_with_existing_id_replaces(self, make_contact: ContactFactory) -> None:
        registry = ContactRegistry()
        original = make_contact("Alex", 1)
        registry.add(original)

        registry.add(original.model_copy(update={"phone": "555-9999", "priority": 2}))

        contacts = registry.list(PATIENT_ID)
        assert len(contacts) == 1
        assert contacts[0].phone == "555-9999"
        assert contacts[0].priority == 2

    def test_remove(self, make_contact: ContactFactory) -> None:
        registry = ContactRegistry()
        contact = make_contact("Alex", 1)
        registry.add(contact)

        assert registry.remove(PATIENT_ID, contact.id) is True
        assert registry.remove(PATIENT_ID, contact.id) is False
        assert registry.list(PATIENT_ID) == []

    def test_contacts_are_patient_scoped(self, make_contact: ContactFactory) -> None:
        registry = ContactRegistry()
        registry.add(make_contact("Alex", 1))
        registry.add(make_contact("Blair", 1, patient_id="patient-002"))

        assert [c.name for c in registry.list(PATIENT_ID)] == ["Alex"]
        assert [c.name for c in registry.list("patient-002")] == ["Blair"]
        assert registry.list("patient-003") == []

    def test_readding_under_another_patient_moves_the_contact(
        self, make_contact: ContactFactory
    ) -> None:
        registry = ContactRegistry()
        registry.add(make_contact("Alex", 1, id="ec-1"))
        registry.add(make_contact("Blair", 2, patient_id="patient-002"))

        registry.add(make_contact("Alex", 1, id="ec-1", patient_id="patient-002"))

        assert registry.list(PATIENT_ID) == []
        assert [c.id for c in registry.list("patient-002")].count("ec-1") == 1
        assert [c.name for c in registry.list("patient-002")] == ["Alex", "Blair"]
