"""Confidential-vote state machine: registry, ACL, encrypted tallies, validation."""

from .accumulator import Accumulator
from .acl import AccessControlList
from .errors import (
    VoteError,
    InvalidOption,
    AlreadyVoted,
    InvalidProof,
    ComputeError,
)
from .registry import VoterRegistry
from .store import TallyStore, is_valid_option
from .validator import BallotValidator

__all__ = [
    # Components
    'Accumulator',
    'AccessControlList',
    'BallotValidator',
    'TallyStore',
    'VoterRegistry',
    'is_valid_option',

    # Exceptions
    'VoteError',
    'InvalidOption',
    'AlreadyVoted',
    'InvalidProof',
    'ComputeError',
]
