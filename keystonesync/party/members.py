"""
Party member capture from host unit data.
"""

from typing import List, Optional

import structlog

from ..database.models import PartyMember
from ..host.api import GameHost

logger = structlog.get_logger(__name__)

PLAYER_UNIT = "player"
PARTY_UNITS = ("party1", "party2", "party3", "party4")


def build_party_member(host: GameHost, unit: str) -> Optional[PartyMember]:
    """Normalized information about ``unit``, or ``None`` when the slot is empty.

    Specialization and item level are only readable synchronously for the
    local player; other members are filled in later by inspection.
    """
    name, realm = host.unit_name(unit)
    guid = host.unit_guid(unit)
    if name is None or guid is None:
        logger.debug("No information found for unit", unit=unit)
        return None

    spec = None
    item_level = None
    if unit == PLAYER_UNIT:
        spec = host.player_specialization()
        item_level = host.player_item_level()

    return PartyMember(
        id=guid,
        unit=unit,
        name=name,
        realm=realm or host.get_realm_name(),
        faction=host.unit_faction(unit),
        race=host.unit_race(unit),
        class_name=host.unit_class(unit),
        role=host.unit_role(unit),
        guild=host.unit_guild(unit),
        is_leader=bool(host.unit_is_group_leader(unit)),
        spec=spec,
        item_level=item_level,
    )


def capture_party(host: GameHost) -> List[PartyMember]:
    """The local player followed by every occupied party slot."""
    members = []
    for unit in (PLAYER_UNIT,) + PARTY_UNITS:
        member = build_party_member(host, unit)
        if member is not None:
            members.append(member)
    return members
