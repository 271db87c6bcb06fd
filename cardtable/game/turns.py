"""Turn order and the active-participant cursor."""

import logging

from cardtable.game.events import EventChannel, EventType
from cardtable.participant import Participant, ParticipantStatus, PlayerAction

logger = logging.getLogger(__name__)


class TurnDirector:
    """
    Owns turn order and decides who acts next.

    Each participant moves waiting → active → finished within a round.
    Order is registration order and rotates circularly; the dealer is
    just another (automated) seat in the rotation.
    """

    def __init__(
        self,
        channel: EventChannel,
        participants: dict[str, Participant] | None = None,
    ) -> None:
        """
        Initialize the director.

        Args:
            channel: Event channel for turn-change and activity-log events
            participants: Shared id → participant registry (created if omitted)
        """
        self._channel = channel
        self._participants = participants if participants is not None else {}
        self._order: list[str] = list(self._participants)
        self._index = 0

    # Registry

    def register(self, participant: Participant, before: str | None = None) -> Participant:
        """
        Add a participant to the rotation.

        Args:
            participant: Participant to seat
            before: Seat the participant ahead of this id (appended if absent)
        """
        if participant.id in self._participants:
            raise ValueError(f"Duplicate participant id: {participant.id}")
        self._participants[participant.id] = participant
        if before is not None and before in self._order:
            self._order.insert(self._order.index(before), participant.id)
        else:
            self._order.append(participant.id)
        return participant

    def remove(self, participant_id: str) -> bool:
        """Drop a participant from the registry and the rotation."""
        if self._participants.pop(participant_id, None) is None:
            return False
        self._order.remove(participant_id)
        if self._index >= len(self._order):
            self._index = 0
        return True

    def clear(self) -> None:
        self._participants.clear()
        self._order.clear()
        self._index = 0

    def get(self, participant_id: str) -> Participant | None:
        return self._participants.get(participant_id)

    @property
    def participants(self) -> list[Participant]:
        """All participants in turn order."""
        return [self._participants[pid] for pid in self._order]

    @property
    def order(self) -> list[str]:
        return list(self._order)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current(self) -> Participant | None:
        if not self._order:
            return None
        return self._participants.get(self._order[self._index])

    @property
    def active(self) -> Participant | None:
        """The participant currently holding the turn, if any."""
        for participant in self._participants.values():
            if participant.turn_active:
                return participant
        return None

    def __len__(self) -> int:
        return len(self._order)

    # Turn flow

    def start_turn(self) -> Participant | None:
        """Give the turn to the participant under the cursor."""
        participant = self.current
        if participant is None:
            return None

        for other in self.participants:
            if other.turn_active and other is not participant:
                self._deactivate(other)

        participant.turn_active = True
        participant.last_action = PlayerAction.START_TURN
        self._channel.emit_new(
            EventType.TURN_CHANGE,
            participant=participant,
            index=self._index,
            action=PlayerAction.START_TURN,
        )
        self._channel.log(f"{participant.name}'s turn started", participant.id)
        return participant

    def end_turn(self) -> None:
        """Take the turn away from whoever holds it."""
        participant = self.active
        if participant is not None:
            self._deactivate(participant)

    def _deactivate(self, participant: Participant) -> None:
        participant.turn_active = False
        participant.last_action = PlayerAction.END_TURN
        self._channel.emit_new(
            EventType.TURN_CHANGE,
            participant=participant,
            index=self._order.index(participant.id),
            action=PlayerAction.END_TURN,
        )

    def is_eligible(self, participant: Participant) -> bool:
        """Check if a participant can still take a turn this round."""
        return not participant.finished and participant.status == ParticipantStatus.OK

    def advance_to_next_active(self) -> Participant | None:
        """
        Rotate the cursor to the next eligible participant and start its turn.

        Returns:
            The participant now holding the turn, or None after a full
            circuit without an eligible participant (round complete)
        """
        if not self._order:
            return None

        for _ in range(len(self._order)):
            self._index = (self._index + 1) % len(self._order)
            participant = self.current
            if participant is not None and self.is_eligible(participant):
                return self.start_turn()

        logger.debug("No eligible participant left after a full circuit")
        return None

    def all_finished(self) -> bool:
        """True when every participant is finished or busted."""
        return all(
            p.finished or p.status == ParticipantStatus.BUSTED
            for p in self.participants
        )

    def reset_for_round(self) -> None:
        """
        Clear turn, status and action flags; cursor back to the first seat.

        Seats sitting out start the round finished so rotation passes them by.
        """
        self._index = 0
        for participant in self.participants:
            participant.turn_active = False
            participant.finished = participant.sitting_out
            participant.status = (
                ParticipantStatus.SITTING_OUT if participant.sitting_out else ParticipantStatus.OK
            )
            participant.last_action = PlayerAction.NONE
