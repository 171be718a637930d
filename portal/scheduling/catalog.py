"""Service catalog reads."""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from portal.models.service import Service, ServiceCategory
from portal.models.team import Team
from portal.scheduling.errors import NotFoundError
from portal.scheduling.repository import SchedulingRepository


@dataclass
class Catalog:
    team: Team
    categories: list[ServiceCategory]
    services: list[Service]


def list_catalog(db: Session, team_id: int) -> Catalog:
    team = SchedulingRepository.get_team(db, team_id)
    if team is None:
        raise NotFoundError('Team not found.')

    return Catalog(
        team=team,
        categories=SchedulingRepository.get_active_categories(db, team_id),
        services=SchedulingRepository.get_active_services(db, team_id),
    )
