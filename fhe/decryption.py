"""
User decryption for tally handles.

Reads the engine's access control list (never writes it) and reveals a
plaintext only when both the engine principal and the requesting principal
hold a grant on the handle.
"""

import logging
from typing import Any, Dict, List

from .compute import CiphertextHandle, DecryptionDeniedError, HomomorphicComputeService

logger = logging.getLogger(__name__)


class DecryptionService:
    """Off-engine decryption oracle gated by an ACL"""

    def __init__(self, compute: HomomorphicComputeService, acl: Any):
        self.compute = compute
        self.acl = acl
        self.requests: List[Dict[str, Any]] = []

    def user_decrypt(self, handle: CiphertextHandle, engine_id: str, principal: str) -> int:
        """Return the uint32 plaintext of handle for principal"""
        allowed = (
            self.acl.is_granted(handle, engine_id)
            and self.acl.is_granted(handle, principal)
        )
        self.requests.append({
            'handle': str(handle),
            'engine_id': engine_id,
            'principal': principal,
            'allowed': allowed,
        })

        if not allowed:
            logger.warning(f"Decryption of {handle} denied for {principal}")
            raise DecryptionDeniedError(
                f"{principal} is not allowed to decrypt {handle} for {engine_id}")

        value = self.compute._reveal(handle)
        logger.debug(f"Decrypted {handle} for {principal}")
        return value

    def decrypt_tallies(self, engine: Any, principal: str) -> List[int]:
        """Decrypt every option of engine as principal"""
        return [
            self.user_decrypt(engine.get_tally(option), engine.engine_id, principal)
            for option in range(engine.num_options)
        ]
