"""Submission errors raised by the tally engine."""


class VoteError(Exception):
    """Base exception for rejected ballot submissions"""
    pass


class InvalidOption(VoteError):
    """Option index outside [0, N)"""

    def __init__(self, option=None, num_options=None):
        self.option = option
        self.num_options = num_options
        super().__init__("Invalid option")


class AlreadyVoted(VoteError):
    """Voter is already in the registry"""

    def __init__(self, voter=None):
        self.voter = voter
        super().__init__("Already voted")


class InvalidProof(VoteError):
    """Input proof does not bind the ciphertext to this engine and voter"""

    def __init__(self, voter=None):
        self.voter = voter
        super().__init__("Invalid proof")


class ComputeError(VoteError):
    """Homomorphic add failed or returned a malformed result"""
    pass
