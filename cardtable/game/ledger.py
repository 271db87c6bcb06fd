"""Pot, antes and wagers for the active round."""

import logging
from typing import Iterable

from cardtable.game.events import EventChannel, EventType
from cardtable.participant import Participant

logger = logging.getLogger(__name__)

DEFAULT_ANTE = 10


class Ledger:
    """
    The betting ledger.

    Every amount that leaves a bank through an ante, bet or double is added
    to the pot. Settlement payouts are funded by the house and do not draw
    on the pot; the pot is only distributed through award_pot().
    """

    def __init__(
        self,
        channel: EventChannel,
        participants: dict[str, Participant],
        ante: int = DEFAULT_ANTE,
    ) -> None:
        """
        Initialize the ledger.

        Args:
            channel: Event channel for activity and participant updates
            participants: Shared id → participant registry
            ante: Per-round minimum wager
        """
        if ante < 0:
            raise ValueError("ante must not be negative")
        self._channel = channel
        self._participants = participants
        self._ante = ante
        self._pot = 0

    @property
    def pot(self) -> int:
        return self._pot

    @property
    def ante(self) -> int:
        return self._ante

    def set_ante(self, amount: int) -> None:
        """Set the ante (negative amounts clamp to 0)."""
        self._ante = max(0, amount)

    def reset(self) -> None:
        """Empty the pot and clear every participant's wagers."""
        self._pot = 0
        for participant in self._participants.values():
            participant.clear_bets()

    def _updated(self, participant: Participant, *changes: str) -> None:
        self._channel.emit_new(
            EventType.PARTICIPANT_UPDATE,
            participant=participant,
            changes=list(changes),
        )

    def collect_antes(self) -> int:
        """
        Collect the ante from every seated participant except the dealer.

        Participants who cannot afford it are skipped without being folded.

        Returns:
            Amount added to the pot
        """
        collected = 0
        for participant in self._participants.values():
            if participant.is_dealer or participant.sitting_out:
                continue
            if participant.place_ante(self._ante):
                collected += self._ante
                self._channel.log(
                    f"{participant.name} places ante of ${self._ante}",
                    participant.id,
                )
                self._updated(participant, "bank")
            else:
                logger.debug("%s cannot cover the ante of %d", participant.name, self._ante)
        self._pot += collected
        return collected

    def place_bet(self, participant_id: str, amount: int) -> bool:
        """Place a wager for a participant and add it to the pot."""
        participant = self._participants.get(participant_id)
        if participant is None:
            return False
        if not participant.place_bet(amount):
            return False
        self._pot += amount
        self._channel.log(f"{participant.name} bets ${amount}", participant.id)
        self._updated(participant, "bank")
        return True

    def double_bet(self, participant_id: str) -> int:
        """
        Double a participant's active wager.

        Returns:
            The extra amount moved into the pot (0 if the double failed)
        """
        participant = self._participants.get(participant_id)
        if participant is None:
            return 0
        extra = participant.current_bet
        if not participant.double_bet():
            return 0
        self._pot += extra
        self._updated(participant, "bank")
        return extra

    def award_pot(self, winner_ids: Iterable[str]) -> int:
        """
        Split the pot evenly between winners.

        The split is floor division: any remainder is dropped, not
        reimbursed. The pot is emptied either way.

        Returns:
            Share paid to each winner
        """
        winners = [self._participants[pid] for pid in winner_ids if pid in self._participants]
        if not winners:
            return 0

        share = self._pot // len(winners)
        for participant in winners:
            participant.receive_winnings(share)
            self._channel.log(f"{participant.name} wins ${share}", participant.id)
            self._updated(participant, "bank")
        self._pot = 0
        return share

    def return_bets(self, participant_ids: Iterable[str] | None = None) -> int:
        """
        Refund each participant's total wager directly, not via the pot.

        Args:
            participant_ids: Who to refund (everyone if None)

        Returns:
            Total refunded
        """
        if participant_ids is None:
            targets = list(self._participants.values())
        else:
            targets = [self._participants[pid] for pid in participant_ids if pid in self._participants]

        refunded = 0
        for participant in targets:
            if participant.total_bet <= 0:
                continue
            participant.receive_winnings(participant.total_bet)
            refunded += participant.total_bet
            self._channel.log(
                f"{participant.name}'s bet of ${participant.total_bet} returned",
                participant.id,
            )
            self._updated(participant, "bank")
        return refunded

    def pay_out(self, participant_id: str, amount: int) -> None:
        """Credit a settlement payout from the house."""
        participant = self._participants.get(participant_id)
        if participant is None or amount < 0:
            return
        participant.receive_winnings(amount)
        self._updated(participant, "bank", "status", "stats")
