"""
Access control list for ciphertext handles.

Grants are additive. A handle produced by an add starts with no grants; the
engine grants the principals that must keep access explicitly. Superseded
handles keep their grants, which is harmless since they no longer back a
live tally.
"""

import logging
from collections import defaultdict
from typing import Dict, FrozenSet, Set

from fhe import CiphertextHandle

logger = logging.getLogger(__name__)


class AccessControlList:
    """Per-handle set of principals allowed to request decryption"""

    def __init__(self):
        self._grants: Dict[CiphertextHandle, Set[str]] = defaultdict(set)

    def grant(self, handle: CiphertextHandle, principal: str) -> None:
        """Allow principal to decrypt handle; granting twice is a no-op"""
        if not isinstance(handle, CiphertextHandle):
            raise TypeError(f"Cannot grant on non-handle {handle!r}")
        principals = self._grants[handle]
        if principal not in principals:
            principals.add(principal)
            logger.debug(f"Granted {handle} to {principal}")

    def is_granted(self, handle: CiphertextHandle, principal: str) -> bool:
        principals = self._grants.get(handle)
        return principals is not None and principal in principals

    def grants_for(self, handle: CiphertextHandle) -> FrozenSet[str]:
        return frozenset(self._grants.get(handle, ()))

    def __len__(self) -> int:
        return len(self._grants)
