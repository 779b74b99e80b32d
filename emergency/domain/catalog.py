"""
Rule, protocol and hospital catalogs.

Catalogs are read once from JSON, validated, and held as immutable tuples of
frozen models. Anything wrong with a table (bad JSON, a schema violation, a
duplicate id, a rule pointing at a protocol that does not exist) raises
``CatalogError`` at load time; nothing is re-checked per request.
"""

import json
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from emergency.domain.models import EmergencyCategory, HospitalInfo, Protocol, Rule

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
DEFAULT_RULES_PATH = DATA_DIR / "rules.json"
DEFAULT_PROTOCOLS_PATH = DATA_DIR / "protocols.json"
DEFAULT_HOSPITALS_PATH = DATA_DIR / "hospitals.json"


class CatalogError(Exception):
    """A catalog table is missing, malformed or internally inconsistent."""


class _RuleTable(BaseModel):
    version: int
    rules: list[Rule]


class _ProtocolTable(BaseModel):
    version: int
    protocols: list[Protocol]


class _HospitalTable(BaseModel):
    version: int
    specialty_by_category: dict[EmergencyCategory, str]
    hospitals: list[HospitalInfo]


def _read_json(path: Path) -> dict[str, Any]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise CatalogError(f"Missing catalog table: {path}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Invalid JSON in {path}: {e}") from e


def _duplicates(ids: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    dupes: list[str] = []
    for item in ids:
        if item in seen and item not in dupes:
            dupes.append(item)
        seen.add(item)
    return dupes


class ProtocolCatalog:
    """Immutable, id-indexed set of response protocols."""

    def __init__(self, protocols: Sequence[Protocol]) -> None:
        dupes = _duplicates([p.id for p in protocols])
        if dupes:
            raise CatalogError(f"Duplicate protocol ids: {', '.join(dupes)}")
        self._protocols: tuple[Protocol, ...] = tuple(protocols)
        self._by_id = {p.id: p for p in self._protocols}

    def __len__(self) -> int:
        return len(self._protocols)

    def __iter__(self) -> Iterator[Protocol]:
        return iter(self._protocols)

    def __contains__(self, protocol_id: object) -> bool:
        return protocol_id in self._by_id

    def get(self, protocol_id: str) -> Protocol | None:
        return self._by_id.get(protocol_id)

    def find(self, query: str) -> Protocol | None:
        """
        Look a protocol up by id, name fragment, or category.

        The first protocol in catalog order matching any of the three wins.
        """
        needle = query.lower()
        for protocol in self._protocols:
            if (
                protocol.id == query
                or needle in protocol.name.lower()
                or protocol.category.value.lower() == needle
            ):
                return protocol
        return None

    def all(self) -> list[Protocol]:
        return list(self._protocols)


class RuleCatalog:
    """Immutable, ordered rule set whose protocol references all resolve."""

    def __init__(self, rules: Sequence[Rule], protocols: ProtocolCatalog) -> None:
        dupes = _duplicates([r.id for r in rules])
        if dupes:
            raise CatalogError(f"Duplicate rule ids: {', '.join(dupes)}")

        dangling = [f"{r.id} -> {r.protocol_id}" for r in rules if r.protocol_id not in protocols]
        if dangling:
            raise CatalogError(f"Rules reference unknown protocols: {', '.join(dangling)}")

        self._rules: tuple[Rule, ...] = tuple(rules)
        self.protocols = protocols

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def get(self, rule_id: str) -> Rule | None:
        return next((r for r in self._rules if r.id == rule_id), None)

    def all(self) -> list[Rule]:
        return list(self._rules)


def load_protocol_catalog(path: str | Path | None = None) -> ProtocolCatalog:
    source = Path(path) if path else DEFAULT_PROTOCOLS_PATH
    try:
        table = _ProtocolTable.model_validate(_read_json(source))
    except ValidationError as e:
        raise CatalogError(f"Invalid protocol table {source}: {e}") from e
    return ProtocolCatalog(table.protocols)


def load_rule_catalog(
    protocols: ProtocolCatalog, path: str | Path | None = None
) -> RuleCatalog:
    source = Path(path) if path else DEFAULT_RULES_PATH
    try:
        table = _RuleTable.model_validate(_read_json(source))
    except ValidationError as e:
        raise CatalogError(f"Invalid rule table {source}: {e}") from e
    return RuleCatalog(table.rules, protocols)


def load_catalogs(
    rules_path: str | Path | None = None, protocols_path: str | Path | None = None
) -> RuleCatalog:
    """Load protocols, then the rules that point at them."""
    protocols = load_protocol_catalog(protocols_path)
    return load_rule_catalog(protocols, rules_path)


def load_hospital_table(
    path: str | Path | None = None,
) -> tuple[list[HospitalInfo], dict[EmergencyCategory, str]]:
    """Hospitals plus the category to specialty mapping."""
    source = Path(path) if path else DEFAULT_HOSPITALS_PATH
    try:
        table = _HospitalTable.model_validate(_read_json(source))
    except ValidationError as e:
        raise CatalogError(f"Invalid hospital table {source}: {e}") from e
    return table.hospitals, table.specialty_by_category
