"""Homomorphic running sums over the tally store."""

import inspect
import logging

from fhe import CiphertextHandle, FHEError, HomomorphicComputeService

from .errors import ComputeError
from .store import TallyStore

logger = logging.getLogger(__name__)


async def resolve(result):
    """Await result if the collaborator returned an awaitable"""
    if inspect.isawaitable(result):
        return await result
    return result


class Accumulator:
    """
    Folds encrypted ballots into per-option totals.

    add() only computes the new handle; storing it is the caller's commit
    step, so a failed add leaves the store untouched. Sums wrap modulo 2^32,
    the ring of the encrypted type.
    """

    def __init__(self, compute: HomomorphicComputeService, store: TallyStore):
        self.compute = compute
        self.store = store

    async def add(self, option: int, ballot: CiphertextHandle) -> CiphertextHandle:
        current = self.store.get_tally(option)
        try:
            result = await resolve(self.compute.homomorphic_add(current, ballot))
        except FHEError as e:
            logger.error(f"Homomorphic add failed for option {option}: {e}")
            raise ComputeError(str(e)) from e

        if not isinstance(result, CiphertextHandle):
            logger.error(f"Compute service returned {type(result).__name__} for option {option}")
            raise ComputeError(f"Malformed add result: {result!r}")
        if result == current:
            raise ComputeError(f"Add returned the existing handle {current}")

        return result
