"""
Peer message types.

Every message on the wire is a JSON object of the form
``{"event": <tag>, "senderId": <guid>, "payload": {...}}``. Each tag has its
own payload schema; tags this version does not know are ignored so newer
peers can add messages without breaking older ones.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..database.models import Keystone, Session

INSTANCE_RESET = "KeystoneSync.InstanceReset"
KEYSTONE_SLOTTED = "KeystoneSync.KeystoneSlotted"
SESSION_STARTED = "KeystoneSync.SessionStarted"
SESSION_COMPLETED = "KeystoneSync.SessionCompleted"
SESSION_ABANDONED = "KeystoneSync.SessionAbandoned"

KNOWN_EVENTS = frozenset({
    INSTANCE_RESET,
    KEYSTONE_SLOTTED,
    SESSION_STARTED,
    SESSION_COMPLETED,
    SESSION_ABANDONED,
})


class EmptyPayload(BaseModel):
    pass


class KeystonePayload(BaseModel):
    keystone: Keystone


class SessionPayload(BaseModel):
    session: Session


class PeerMessage(BaseModel):
    """Common envelope fields."""

    model_config = ConfigDict(populate_by_name=True)

    sender_id: str = Field(..., alias="senderId", min_length=1)

    def serialize(self) -> str:
        return self.model_dump_json(by_alias=True)


class InstanceResetMessage(PeerMessage):
    event: Literal["KeystoneSync.InstanceReset"] = INSTANCE_RESET
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


class KeystoneSlottedMessage(PeerMessage):
    event: Literal["KeystoneSync.KeystoneSlotted"] = KEYSTONE_SLOTTED
    payload: KeystonePayload


class SessionStartedMessage(PeerMessage):
    event: Literal["KeystoneSync.SessionStarted"] = SESSION_STARTED
    payload: SessionPayload


class SessionCompletedMessage(PeerMessage):
    event: Literal["KeystoneSync.SessionCompleted"] = SESSION_COMPLETED
    payload: SessionPayload


class SessionAbandonedMessage(PeerMessage):
    event: Literal["KeystoneSync.SessionAbandoned"] = SESSION_ABANDONED
    payload: SessionPayload


AnyPeerMessage = Annotated[
    Union[
        InstanceResetMessage,
        KeystoneSlottedMessage,
        SessionStartedMessage,
        SessionCompletedMessage,
        SessionAbandonedMessage,
    ],
    Field(discriminator="event"),
]

PEER_MESSAGE_ADAPTER = TypeAdapter(AnyPeerMessage)
