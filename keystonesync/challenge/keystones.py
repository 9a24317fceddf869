"""
Keystone derivation from seasonal data.
"""

from typing import List, Optional, Sequence

from ..database.models import Affix, Keystone, Season
from ..errors import PreconditionViolation
from ..host.api import GameHost

# (highest level, number of affixes) bands; anything above the last band gets every affix
AFFIX_BANDS = ((3, 1), (6, 2), (9, 3))


def affixes_for_level(affixes: Optional[Sequence[Affix]], level: int) -> List[Affix]:
    """Affixes a keystone of ``level`` carries.

    There is no host query for the affixes on a specific keystone, so the
    count is derived from the level and taken as a prefix of the season's
    rotation.
    """
    if affixes is None:
        raise PreconditionViolation("Season affixes must be loaded before deriving keystone affixes")

    for max_level, count in AFFIX_BANDS:
        if level <= max_level:
            return list(affixes[:count])
    return list(affixes)


def build_keystone(season: Season, level: int, map_id: int) -> Keystone:
    """Combine a host reported level and map with season data."""
    if season.maps is None:
        raise PreconditionViolation("Season maps must be loaded before building a keystone")

    map_info = season.maps.get(map_id)
    if map_info is None:
        raise PreconditionViolation(f"No map information found for challenge map {map_id}")

    return Keystone(
        level=level,
        map_id=map_id,
        map_name=map_info.name,
        affixes=affixes_for_level(season.affixes, level),
        season_id=season.id,
        time_limit=map_info.time_limit,
    )


def owned_keystone(host: GameHost, season: Season) -> Optional[Keystone]:
    """The keystone in the player's bags, if any."""
    map_id = host.get_owned_keystone_map_id()
    if not map_id:
        return None

    level = host.get_owned_keystone_level()
    if level is None:
        return None
    return build_keystone(season, level, map_id)


def slotted_keystone(host: GameHost, season: Season) -> Optional[Keystone]:
    """The keystone placed in the challenge pedestal, if any."""
    if not host.has_slotted_keystone():
        return None

    map_id, level = host.get_slotted_keystone_info()
    return build_keystone(season, level, map_id)
