"""
Scenario walkthrough for the emergency detection pipeline.

This script exercises:
1. Configuration loading
2. Catalog loading and validation
3. Rule evaluation and assessment for representative snapshots
4. Notification fan-out per priority tier
5. Event recording, follow-ups and outcome statistics

Run with: uv run python run_scenarios.py
"""

import asyncio

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from emergency.config import configure_logging, get_config, print_config_summary
from emergency.domain.catalog import CatalogError, load_catalogs
from emergency.domain.models import (
    EmergencyAssessment,
    EmergencyContact,
    EventOutcome,
    Symptom,
    SymptomSeverity,
    VitalSigns,
)
from emergency.services.workflow import EmergencyWorkflow

console = Console()

PATIENT_ID = "patient-demo-001"

SCENARIOS: list[tuple[str, VitalSigns, list[Symptom]]] = [
    ("A: isolated tachycardia", VitalSigns(heart_rate=140), []),
    (
        "B: hypotension with active bleeding",
        VitalSigns(systolic_bp=70, heart_rate=115),
        [Symptom(name="active bleeding", severity=SymptomSeverity.SEVERE)],
    ),
    ("C: nothing recorded", VitalSigns(), []),
    (
        "D: suspected DVT",
        VitalSigns(),
        [
            Symptom(name="leg swelling", severity=SymptomSeverity.MODERATE),
            Symptom(name="calf pain", severity=SymptomSeverity.MODERATE),
        ],
    ),
]


def show_assessment(title: str, assessment: EmergencyAssessment) -> None:
    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Triggered Rules", ", ".join(r.id for r in assessment.triggered_rules) or "-")
    table.add_row("Highest Priority", assessment.highest_priority.value)
    table.add_row("Categories", ", ".join(c.value for c in assessment.categories) or "-")
    table.add_row("Protocols", ", ".join(p.id for p in assessment.recommended_protocols) or "-")
    table.add_row("Requires EMS", "YES" if assessment.requires_ems else "no")
    table.add_row("First Action", assessment.immediate_actions[0])

    console.print(table)


def check_configuration() -> bool:
    console.print(Panel("Configuration", style="blue"))
    try:
        get_config()
        print_config_summary()
        return True
    except Exception as e:
        console.print(f"Configuration failed: {e}", style="red")
        return False


def check_catalogs() -> bool:
    console.print(Panel("Catalogs", style="blue"))
    config = get_config()
    try:
        catalog = load_catalogs(config.catalog.rules_path, config.catalog.protocols_path)
    except CatalogError as e:
        console.print(f"Catalog load failed: {e}", style="red")
        return False

    console.print(
        f"Loaded {len(catalog)} rules and {len(catalog.protocols)} protocols", style="green"
    )
    return True


async def run_workflow() -> bool:
    console.print(Panel("Scenarios", style="blue"))

    workflow = EmergencyWorkflow.from_config()
    workflow.contacts.add(
        EmergencyContact(
            patient_id=PATIENT_ID,
            name="Jordan Lee",
            relationship="spouse",
            phone="555-0101",
            is_primary=True,
            priority=1,
        )
    )
    workflow.contacts.add(
        EmergencyContact(
            patient_id=PATIENT_ID,
            name="Sam Rivera",
            relationship="sibling",
            phone="555-0102",
            priority=2,
        )
    )
    workflow.contacts.add(
        EmergencyContact(
            patient_id=PATIENT_ID,
            name="Dr. Patel",
            relationship="surgeon",
            phone="555-0199",
            priority=3,
        )
    )

    for title, vitals, symptoms in SCENARIOS:
        show_assessment(title, workflow.evaluate(vitals, symptoms))

        event = await workflow.handle_emergency(PATIENT_ID, vitals, symptoms)
        if event is None:
            console.print("No emergency detected; nothing recorded", style="green")
            continue

        console.print(f"Event {event.id} notified: {', '.join(event.contacts_notified) or '-'}")
        console.print(
            f"Follow-ups pending: {len(workflow.follow_ups.for_event(PATIENT_ID, event.id))}",
            style="yellow",
        )

        if workflow.hospitals and event.assessment.requires_ems:
            hospital = workflow.hospitals.best_for(event.assessment.categories[0])
            if hospital:
                console.print(
                    f"Suggested hospital: {hospital.name} ({hospital.distance_miles} mi)",
                    style="magenta",
                )

        workflow.events.resolve(
            PATIENT_ID, event.id, "Stabilized by care team", EventOutcome.RESOLVED_CARE_TEAM
        )
        workflow.outcomes.record(
            workflow.events.get(PATIENT_ID, event.id) or event,
            detection_to_response_seconds=90.0,
        )

    stats = workflow.outcomes.statistics(PATIENT_ID)
    table = Table(title="Outcome Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Total Events", str(stats.total_events))
    table.add_row("By Priority", str(stats.events_by_priority))
    table.add_row("Average Response", f"{stats.average_response_time_seconds:.1f}s")
    table.add_row("EMS Dispatch Rate", f"{stats.ems_dispatch_rate:.0%}")
    table.add_row("Follow-up Completion", f"{stats.follow_up_completion_rate:.0%}")
    table.add_row("Top Rules", ", ".join(f"{r.rule_id}x{r.count}" for r in stats.most_common_rules))
    console.print(table)
    return True


async def main() -> None:
    configure_logging()
    console.print(Panel("Emergency Detection Walkthrough", style="bold magenta"))

    results = {
        "configuration": check_configuration(),
        "catalogs": check_catalogs(),
    }
    if all(results.values()):
        try:
            results["workflow"] = await run_workflow()
        except Exception as e:
            console.print(f"Workflow failed: {e}", style="red")
            results["workflow"] = False

    summary = Table(title="Summary")
    summary.add_column("Check", style="cyan")
    summary.add_column("Result", style="white")
    for name, passed in results.items():
        summary.add_row(name, "PASS" if passed else "FAIL")
    console.print(summary)


if __name__ == "__main__":
    asyncio.run(main())
