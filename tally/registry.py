"""Append-only record of voters who have cast a ballot."""

import logging
from typing import Dict, Iterator

from .errors import AlreadyVoted

logger = logging.getLogger(__name__)


class VoterRegistry:
    """Set of voter identities; entries are added once and never removed"""

    def __init__(self):
        # dict keeps insertion order for audit listings
        self._voters: Dict[str, None] = {}

    def has_voted(self, voter: str) -> bool:
        return voter in self._voters

    def mark_voted(self, voter: str) -> None:
        """Insert voter, raising AlreadyVoted if present"""
        if voter in self._voters:
            raise AlreadyVoted(voter)
        self._voters[voter] = None
        logger.debug(f"Registered vote from {voter}")

    def __contains__(self, voter: str) -> bool:
        return self.has_voted(voter)

    def __len__(self) -> int:
        return len(self._voters)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._voters))
