"""
Ballot validation and the atomic submit transition.

submit() runs every check and every external call first, then commits the
state changes (slot replace, grants, registry insert) with plain local
operations. One asyncio.Lock per engine serializes submissions, standing in
for the total order a ledger would otherwise provide.
"""

import asyncio
import logging
import time
from collections import Counter
from typing import Any, Dict, Iterable, Optional

from fhe import EncryptedBallot, HomomorphicComputeService

from .accumulator import Accumulator, resolve
from .acl import AccessControlList
from .errors import AlreadyVoted, InvalidOption, InvalidProof, VoteError
from .registry import VoterRegistry
from .store import TallyStore, is_valid_option

logger = logging.getLogger(__name__)


class BallotValidator:
    """Orchestrates checks and the all-or-nothing update for one engine"""

    def __init__(
        self,
        engine_id: str,
        compute: HomomorphicComputeService,
        store: TallyStore,
        registry: VoterRegistry,
        acl: AccessControlList,
        readers: Iterable[str] = (),
        monitor: Optional[Any] = None
    ):
        self.engine_id = engine_id
        self.compute = compute
        self.store = store
        self.registry = registry
        self.acl = acl
        self.accumulator = Accumulator(compute, store)
        self.readers = tuple(dict.fromkeys(readers))
        self.monitor = monitor

        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self.accepted = 0
        self.rejected: Counter = Counter()

    def _get_lock(self) -> asyncio.Lock:
        """Lock for the running loop; asyncio locks cannot cross event loops"""
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            if self._lock is not None and self._lock.locked():
                raise RuntimeError(
                    f"Engine {self.engine_id} is busy on another event loop")
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def submit(self, voter: str, option: int, ballot: EncryptedBallot) -> None:
        if self.monitor is not None:
            with self.monitor.start_operation("submit"):
                await self._submit(voter, option, ballot)
        else:
            await self._submit(voter, option, ballot)

    async def _submit(self, voter: str, option: int, ballot: EncryptedBallot) -> None:
        start_time = time.time()
        async with self._get_lock():
            try:
                new_handle = await self._check(voter, option, ballot)
            except VoteError as e:
                self.rejected[type(e).__name__] += 1
                logger.warning(f"Rejected ballot from {voter} for option {option!r}: {e}")
                raise

            self._commit(voter, option, new_handle)

        self.accepted += 1
        logger.info(
            f"Accepted ballot from {voter} for option {option} "
            f"(tally -> {new_handle}) in {time.time() - start_time:.3f}s")

    async def _check(self, voter: str, option: int, ballot: EncryptedBallot):
        """Ordered checks plus the homomorphic add; no state is touched here"""
        if not is_valid_option(option, self.store.num_options):
            raise InvalidOption(option, self.store.num_options)

        if self.registry.has_voted(voter):
            raise AlreadyVoted(voter)

        if not isinstance(ballot, EncryptedBallot):
            raise InvalidProof(voter)
        verified = await resolve(
            self.compute.verify_proof(self.engine_id, voter, ballot.ciphertext, ballot.proof))
        if not verified:
            raise InvalidProof(voter)

        return await self.accumulator.add(option, ballot.ciphertext)

    def _commit(self, voter: str, option: int, new_handle) -> None:
        """
        Install new_handle and grant it to the engine, the voter and the readers.

        The new handle does not inherit earlier grants, so a past voter loses
        access to the live total once someone else votes for that option;
        configured readers keep access to every live total.
        """
        self.store.replace(option, new_handle)
        self.acl.grant(new_handle, self.engine_id)
        self.acl.grant(new_handle, voter)
        for reader in self.readers:
            self.acl.grant(new_handle, reader)
        self.registry.mark_voted(voter)

    def get_metrics(self) -> Dict[str, Any]:
        return {
            'accepted': self.accepted,
            'rejected': dict(self.rejected),
            'rejected_total': sum(self.rejected.values()),
        }
