#!/usr/bin/env python3
"""
Confidential Tally Engine
=========================
Encrypted ballots in, encrypted per-option totals out.

Voters submit a ciphertext handle for one option together with an input
proof binding it to this engine and to themselves. The engine checks the
option range, the one-ballot-per-voter rule and the proof, then folds the
ballot into that option's running encrypted total and re-grants decryption
rights on the new handle. Plaintext never passes through the engine.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from config.config import SystemConfig
from fhe import (
    CiphertextHandle,
    DecryptionService,
    EncryptedBallot,
    HomomorphicComputeService,
    MockComputeService,
    create_compute_service,
)
from tally import AccessControlList, BallotValidator, TallyStore, VoterRegistry
from utils.utils import PerformanceMonitor, compute_hash

logger = logging.getLogger(__name__)

# ============================================================================
# ENGINE
# ============================================================================


class ConfidentialTallyEngine:
    """
    Engine instance owning the registry, the ACL and the tally slots.

    All mutation goes through submit(); get_tally() and has_voted() are
    read-only and always available.
    """

    def __init__(
        self,
        num_options: int = 3,
        engine_id: str = "confidential_tally_engine",
        compute: Optional[HomomorphicComputeService] = None,
        readers: Iterable[str] = (),
        monitor: Optional[PerformanceMonitor] = None
    ):
        if isinstance(num_options, bool) or not isinstance(num_options, int) or num_options < 1:
            raise ValueError(f"num_options must be a positive integer, got {num_options!r}")
        if not engine_id:
            raise ValueError("engine_id must be non-empty")

        self.engine_id = engine_id
        self.compute = compute or MockComputeService()
        self.readers = tuple(dict.fromkeys(readers))
        self.monitor = monitor

        logger.info(
            f"Deploying engine {engine_id} with {num_options} options "
            f"on the {self.compute.backend_name} backend")

        self.acl = AccessControlList()
        self.registry = VoterRegistry()

        initial = []
        for option in range(num_options):
            handle = self.compute.trivial_encrypt(0)
            self.acl.grant(handle, engine_id)
            for reader in self.readers:
                self.acl.grant(handle, reader)
            initial.append(handle)
        self.store = TallyStore(initial)

        self.validator = BallotValidator(
            engine_id=engine_id,
            compute=self.compute,
            store=self.store,
            registry=self.registry,
            acl=self.acl,
            readers=self.readers,
            monitor=monitor
        )

        logger.info(f"Engine {engine_id} ready")

    @classmethod
    def from_config(cls, config: SystemConfig,
                    compute: Optional[HomomorphicComputeService] = None) -> 'ConfidentialTallyEngine':
        if compute is None:
            kwargs = {}
            if config.fhe_config.backend == "paillier":
                kwargs['key_length'] = config.fhe_config.paillier_key_length
            compute = create_compute_service(config.fhe_config.backend, **kwargs)

        monitor = PerformanceMonitor() if config.enable_benchmarking else None
        return cls(
            num_options=config.num_options,
            engine_id=config.engine_id,
            compute=compute,
            readers=config.tally_readers,
            monitor=monitor
        )

    # -- public surface ----------------------------------------------------

    @property
    def num_options(self) -> int:
        return self.store.num_options

    async def submit(self, voter: str, option: int, ballot: EncryptedBallot) -> None:
        """Accept one encrypted ballot or raise a VoteError with no state change"""
        await self.validator.submit(voter, option, ballot)

    def get_tally(self, option: int) -> CiphertextHandle:
        return self.store.get_tally(option)

    # Name used by the on-chain contract
    get_vote_count = get_tally

    def has_voted(self, voter: str) -> bool:
        return self.registry.has_voted(voter)

    # -- helpers -----------------------------------------------------------

    def encrypt_ballot(self, voter: str, value: int = 1) -> EncryptedBallot:
        """Client-side helper: encrypt value for voter against this engine"""
        encrypted = (
            self.compute.create_encrypted_input(self.engine_id, voter)
            .add32(value)
            .encrypt()
        )
        return encrypted.ballot(0)

    def decryption_service(self) -> DecryptionService:
        return DecryptionService(self.compute, self.acl)

    def get_system_metrics(self) -> Dict[str, Any]:
        snapshot = self.store.snapshot()
        metrics = {
            'engine_id': self.engine_id,
            'backend': self.compute.backend_name,
            'num_options': self.num_options,
            'voters': len(self.registry),
            'acl_handles': len(self.acl),
            'tally_digest': compute_hash([h.digest for h in snapshot]),
            'submissions': self.validator.get_metrics(),
            'compute': dict(self.compute.stats),
        }
        if self.monitor is not None:
            metrics['performance'] = self.monitor.get_summary()
        return metrics
