"""Foreign-key resolution: textual natural-key references to stable identifiers.

Lookups are exact and case-sensitive. A missing reference rejects the record
unless the collection of the referenced entity is configured to be created on
demand (only regions and climbers, the top of their hierarchies).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from gipfelsync.domain.model import (
    Climber,
    Collection,
    MissingReferencePolicy,
    Region,
    utcnow,
)
from gipfelsync.domain.reconciliation.contracts import (
    AscentRecord,
    ClimberName,
    ClimberRecord,
    RegionRecord,
    RouteRecord,
    SummitRecord,
)
from gipfelsync.domain.reconciliation.documents import (
    difficulty_document,
    position_document,
)

if TYPE_CHECKING:
    from datetime import datetime

    from gipfelsync.domain.model import Route, Summit
    from gipfelsync.domain.ports import ClimbingRepositories
    from gipfelsync.domain.reconciliation.contracts import SourceRecord
    from gipfelsync.domain.reconciliation.documents import Document

log = logging.getLogger(__name__)

CREATABLE_REFERENCES: Final[frozenset[Collection]] = frozenset(
    {Collection.REGIONS, Collection.CLIMBERS}
)


class ResolutionError(LookupError):
    """A referenced entity does not exist (or is not unique)."""

    def __init__(self, kind: Collection, reference: str, *, reason: str = "not found") -> None:
        super().__init__(f"{kind.value} reference {reference!r} {reason}")
        self.kind = kind
        self.reference = reference
        self.reason = reason


@dataclass(slots=True, kw_only=True)
class ResolvedRecord:
    """Candidate document with references replaced by identifiers."""

    collection: Collection
    identifier: str
    document: Document
    created: tuple[Collection, ...] = ()


class ForeignKeyResolver:
    def __init__(
        self,
        repositories: ClimbingRepositories,
        *,
        missing_references: Mapping[Collection, MissingReferencePolicy] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        policies = dict(missing_references or {})
        unsupported = set(policies).difference(CREATABLE_REFERENCES)
        if unsupported:
            names = ", ".join(sorted(kind.value for kind in unsupported))
            raise ValueError(f"Missing-reference policy not supported for: {names}")
        self._repositories = repositories
        self._policies = policies
        self._clock = clock

    def policy_for(self, kind: Collection) -> MissingReferencePolicy:
        return self._policies.get(kind, MissingReferencePolicy.REJECT)

    def resolve(self, record: SourceRecord) -> ResolvedRecord:
        """Return the candidate document for ``record`` or raise ``ResolutionError``."""

        created: list[Collection] = []
        match record:
            case RegionRecord():
                collection = Collection.REGIONS
                document: Document = {"name": record.name}
            case SummitRecord():
                collection = Collection.SUMMITS
                document = self._summit_document(record, created)
            case RouteRecord():
                collection = Collection.ROUTES
                document = self._route_document(record)
            case ClimberRecord():
                collection = Collection.CLIMBERS
                document = {"first_name": record.first_name, "last_name": record.last_name}
            case AscentRecord():
                collection = Collection.ASCENTS
                document = self._ascent_document(record, created)
        return ResolvedRecord(
            collection=collection,
            identifier=record.identifier,
            document=document,
            created=tuple(created),
        )

    # Reference lookups -------------------------------------------------------

    def resolve_region(self, name: str, *, created: list[Collection] | None = None) -> Region:
        region = self._repositories.regions.get_by_name(name)
        if region is not None:
            return region
        if self.policy_for(Collection.REGIONS) is MissingReferencePolicy.REJECT:
            raise ResolutionError(Collection.REGIONS, name)
        now = self._clock()
        region = Region(name=name, created_at=now, updated_at=now)
        self._repositories.regions.add(region)
        log.info("Created missing region %s", name)
        if created is not None:
            created.append(Collection.REGIONS)
        return region

    def resolve_summit(self, name: str, region: str | None = None) -> Summit:
        """Find a summit by name, narrowed to ``region`` when given."""

        region_id = None
        if region is not None:
            found_region = self._repositories.regions.get_by_name(region)
            if found_region is None:
                raise ResolutionError(Collection.REGIONS, region)
            region_id = found_region.id
        matches = self._repositories.summits.find_by_name(name, region_id=region_id)
        if not matches:
            raise ResolutionError(Collection.SUMMITS, name)
        if len(matches) > 1:
            raise ResolutionError(
                Collection.SUMMITS,
                name,
                reason=f"is ambiguous ({len(matches)} regions); name the region",
            )
        return matches[0]

    def resolve_route(self, name: str, summit: str, region: str | None = None) -> Route:
        found_summit = self.resolve_summit(summit, region)
        route = self._repositories.routes.get_by_natural_key(name, found_summit.id)
        if route is None:
            raise ResolutionError(Collection.ROUTES, f"{name} on {summit}")
        return route

    def resolve_climber(
        self,
        name: ClimberName,
        *,
        created: list[Collection] | None = None,
    ) -> Climber:
        climber = self._repositories.climbers.get_by_name(name.first_name, name.last_name)
        if climber is not None:
            return climber
        if self.policy_for(Collection.CLIMBERS) is MissingReferencePolicy.REJECT:
            raise ResolutionError(Collection.CLIMBERS, name.full_name)
        now = self._clock()
        climber = Climber(
            first_name=name.first_name,
            last_name=name.last_name,
            created_at=now,
            updated_at=now,
        )
        self._repositories.climbers.add(climber)
        log.info("Created missing climber %s", name.full_name)
        if created is not None:
            created.append(Collection.CLIMBERS)
        return climber

    # Candidate documents -----------------------------------------------------

    def _summit_document(self, record: SummitRecord, created: list[Collection]) -> Document:
        region = self.resolve_region(record.region, created=created)
        document: Document = {"name": record.name, "region_id": region.id}
        if "gps_position" in record.provided:
            document["gps_position"] = position_document(record.gps_position)
        if "teufelsturm_id" in record.provided:
            document["teufelsturm_id"] = record.teufelsturm_id
        return document

    def _route_document(self, record: RouteRecord) -> Document:
        summit = self.resolve_summit(record.summit, record.region)
        document: Document = {"name": record.name, "summit_id": summit.id}
        if "difficulty" in record.provided:
            document["difficulty"] = difficulty_document(record.difficulty)
        for name in ("unsecure", "stars", "teufelsturm_id", "teufelsturm_score"):
            if name in record.provided:
                document[name] = getattr(record, name)
        return document

    def _ascent_document(self, record: AscentRecord, created: list[Collection]) -> Document:
        route = self.resolve_route(record.route, record.summit, record.region)
        lead = (
            self.resolve_climber(record.lead_climber, created=created)
            if record.lead_climber is not None
            else None
        )
        document: Document = {
            "date": record.date,
            "route_id": route.id,
            "lead_climber_id": lead.id if lead is not None else None,
        }
        if "climbers" in record.provided:
            document["climbers"] = [
                {
                    "climber_id": self.resolve_climber(participant.climber, created=created).id,
                    "is_aborted": participant.is_aborted,
                }
                for participant in record.climbers
            ]
        for name in ("is_aborted", "is_top_rope", "is_solo", "is_without_support", "notes"):
            if name in record.provided:
                document[name] = getattr(record, name)
        return document
