"""
Data models for KeystoneSync.
"""

from datetime import datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict, Field


class Affix(BaseModel):
    """A seasonal modifier."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Affix ID")
    season_id: int = Field(..., description="Season the affix belongs to")
    name: str = Field(..., description="Affix name")
    description: str = Field(default="", description="Affix description")
    icon: Optional[int] = Field(None, description="Icon file data ID")


class MapInfo(BaseModel):
    """A challenge map available in the season."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Challenge map ID")
    name: str = Field(..., description="Map name")
    time_limit: int = Field(..., description="Time limit in seconds")
    texture: Optional[int] = Field(None, description="Icon texture")
    background_texture: Optional[int] = Field(None, description="Background texture")


class Season(BaseModel):
    """Seasonal reference data; fields only ever go from unset to set."""

    id: Optional[int] = Field(None, description="Season ID")
    description: Optional[str] = Field(None, description="Human readable season name")
    affixes: Optional[List[Affix]] = Field(None, description="Affixes in rotation order")
    maps: Optional[Dict[int, MapInfo]] = Field(None, description="Maps keyed by challenge map ID")

    @property
    def is_loaded(self) -> bool:
        return self.id is not None and self.affixes is not None and self.maps is not None


class Keystone(BaseModel):
    """A keystone derived from season data, a level and a map."""

    level: int = Field(..., ge=2, description="Keystone level")
    map_id: int = Field(..., description="Challenge map ID")
    map_name: str = Field(..., description="Map name")
    affixes: List[Affix] = Field(default_factory=list, description="Affixes active at this level")
    season_id: Optional[int] = Field(None, description="Season ID")
    time_limit: int = Field(..., description="Time limit in seconds")


class PartyMember(BaseModel):
    """A member of the party running the keystone."""

    id: str = Field(..., description="Unit GUID")
    unit: str = Field(..., description="Host unit token, e.g. player or party1")
    name: str = Field(..., description="Character name")
    realm: str = Field(..., description="Character realm")
    faction: Optional[str] = None
    race: Optional[str] = None
    class_name: Optional[str] = None
    role: Optional[str] = None
    guild: Optional[str] = None
    is_leader: bool = False

    # Filled by inspection for everyone but the local player
    spec: Optional[int] = Field(None, description="Specialization ID")
    item_level: Optional[float] = Field(None, description="Average equipped item level")


class Session(BaseModel):
    """A single keystone run from start to its terminal outcome."""

    keystone: Keystone
    party: List[PartyMember] = Field(default_factory=list, max_length=5)

    # Timing
    started_at: datetime = Field(..., description="When the run started")
    finished_at: Optional[datetime] = Field(None, description="When the run ended")
    time_taken: Optional[int] = Field(None, description="Completion time in milliseconds")

    # Outcome
    result: Optional[int] = Field(None, description="Upgrade levels, or -1 when abandoned")
    reason: Optional[str] = Field(None, description="Why the run ended")
    is_completed: bool = False

    # Deaths
    deaths: int = 0
    time_lost_to_deaths: int = Field(default=0, description="Seconds lost to deaths")

    # Guild context
    is_guild_party: bool = False
    guild: Optional[str] = None

    # Rating
    old_score: Optional[int] = None
    new_score: Optional[int] = None
    is_eligible_for_score: Optional[bool] = None

    def find_member(self, member_id: str) -> Optional[PartyMember]:
        for member in self.party:
            if member.id == member_id:
                return member
        return None
