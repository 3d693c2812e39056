"""
Homomorphic Compute Service for the Confidential Tally Engine
=============================================================
Encrypted-uint32 handles, input proofs and add-under-encryption.

The engine never sees plaintext: it only passes CiphertextHandle tokens to a
compute service and stores whatever handle comes back. Two backends are
provided:

- MockComputeService: fhEVM-mock style, values sealed with AES-GCM
- PaillierComputeService: additive homomorphic encryption (python-paillier)

Both bind input proofs to (engine identity, voter identity, handles) with
HMAC-SHA256, so a ballot produced for one engine or voter is rejected
everywhere else.
"""

import hashlib
import logging
import os
import struct
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from cryptography.hazmat.primitives import constant_time, hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from phe import paillier

logger = logging.getLogger(__name__)

EUINT32 = "euint32"
UINT32_MODULUS = 2 ** 32

DIGEST_SIZE = 32
TAG_SIZE = 32
MAX_INPUT_HANDLES = 255

# ============================================================================
# EXCEPTIONS
# ============================================================================


class FHEError(Exception):
    """Base exception for compute-service operations"""
    pass


class UnknownHandleError(FHEError):
    """Handle was not produced by this compute service"""
    pass


class DecryptionDeniedError(FHEError):
    """Requesting principal is not allowed to decrypt the handle"""
    pass


# ============================================================================
# DATA TYPES
# ============================================================================


@dataclass(frozen=True)
class CiphertextHandle:
    """Opaque, content-addressed reference to an encrypted value"""
    digest: str
    fhe_type: str = EUINT32

    def __str__(self) -> str:
        return f"{self.fhe_type}:{self.digest[:16]}"


@dataclass(frozen=True)
class EncryptedBallot:
    """Encrypted vote value together with its input proof"""
    ciphertext: CiphertextHandle
    proof: bytes


@dataclass(frozen=True)
class EncryptedInput:
    """Result of client-side encryption: handles plus one shared proof"""
    handles: Tuple[CiphertextHandle, ...]
    input_proof: bytes

    def ballot(self, index: int = 0) -> EncryptedBallot:
        return EncryptedBallot(ciphertext=self.handles[index], proof=self.input_proof)


class EncryptedInputBuilder:
    """Collects plaintext values for one (context, voter) pair and encrypts them"""

    def __init__(self, service: 'HomomorphicComputeService', context: str, voter: str):
        self.service = service
        self.context = context
        self.voter = voter
        self._values: List[int] = []

    def add32(self, value: int) -> 'EncryptedInputBuilder':
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"euint32 input must be an int, got {type(value).__name__}")
        if not 0 <= value < UINT32_MODULUS:
            raise ValueError(f"euint32 input out of range: {value}")
        if len(self._values) >= MAX_INPUT_HANDLES:
            raise ValueError(f"At most {MAX_INPUT_HANDLES} values per input")
        self._values.append(value)
        return self

    def encrypt(self) -> EncryptedInput:
        if not self._values:
            raise ValueError("Encrypted input has no values")
        handles = tuple(self.service.encrypt_value(v) for v in self._values)
        proof = self.service.sign_input(self.context, self.voter, handles)
        return EncryptedInput(handles=handles, input_proof=proof)


# ============================================================================
# COMPUTE SERVICE BASE
# ============================================================================


class HomomorphicComputeService:
    """
    Base compute service.

    Subclasses provide the ciphertext representation through _seal, _add and
    _open; this class owns the handle table, input-proof signing and
    verification, and type checks.
    """

    backend_name = "base"

    def __init__(self, proof_key: Optional[bytes] = None):
        self._proof_key = proof_key or os.urandom(32)
        self._ciphertexts: Dict[str, Tuple[str, Any]] = {}
        self._lock = threading.Lock()
        self.stats = {'encryptions': 0, 'additions': 0, 'verifications': 0, 'rejected_proofs': 0}

    # -- backend hooks -----------------------------------------------------

    def _seal(self, value: int) -> Tuple[bytes, Any]:
        """Encrypt value; return (bytes to digest, stored ciphertext)"""
        raise NotImplementedError

    def _add(self, a: Any, b: Any) -> Tuple[bytes, Any]:
        raise NotImplementedError

    def _open(self, ciphertext: Any) -> int:
        raise NotImplementedError

    # -- handle table ------------------------------------------------------

    def _register(self, material: bytes, ciphertext: Any) -> CiphertextHandle:
        handle = CiphertextHandle(digest=hashlib.sha256(material).hexdigest())
        with self._lock:
            self._ciphertexts[handle.digest] = (handle.fhe_type, ciphertext)
        return handle

    def _lookup(self, handle: CiphertextHandle) -> Any:
        if not isinstance(handle, CiphertextHandle):
            raise UnknownHandleError(f"Not a ciphertext handle: {handle!r}")
        with self._lock:
            entry = self._ciphertexts.get(handle.digest)
        if entry is None:
            raise UnknownHandleError(f"Unknown handle {handle}")
        fhe_type, ciphertext = entry
        if fhe_type != handle.fhe_type:
            raise FHEError(f"Handle {handle} is {fhe_type}, not {handle.fhe_type}")
        return ciphertext

    def knows(self, handle: CiphertextHandle) -> bool:
        with self._lock:
            return isinstance(handle, CiphertextHandle) and handle.digest in self._ciphertexts

    # -- encryption --------------------------------------------------------

    def encrypt_value(self, value: int) -> CiphertextHandle:
        material, ciphertext = self._seal(value % UINT32_MODULUS)
        self.stats['encryptions'] += 1
        return self._register(material, ciphertext)

    def trivial_encrypt(self, value: int) -> CiphertextHandle:
        """Encrypt a public constant (used for the initial zero tallies)"""
        return self.encrypt_value(value)

    def create_encrypted_input(self, context: str, voter: str) -> EncryptedInputBuilder:
        return EncryptedInputBuilder(self, context, voter)

    # -- input proofs ------------------------------------------------------

    def _proof_tag(self, context: str, voter: str, digests: List[bytes]) -> bytes:
        h = crypto_hmac.HMAC(self._proof_key, hashes.SHA256())
        for part in (context.encode(), voter.encode()):
            h.update(struct.pack(">I", len(part)))
            h.update(part)
        for digest in digests:
            h.update(digest)
        return h.finalize()

    def sign_input(self, context: str, voter: str, handles: Tuple[CiphertextHandle, ...]) -> bytes:
        digests = [bytes.fromhex(handle.digest) for handle in handles]
        tag = self._proof_tag(context, voter, digests)
        return struct.pack(">B", len(digests)) + b"".join(digests) + tag

    def verify_proof(self, context: str, voter: str, ciphertext: CiphertextHandle, proof: bytes) -> bool:
        """Check that proof binds ciphertext to (context, voter)"""
        self.stats['verifications'] += 1
        try:
            if not isinstance(proof, (bytes, bytearray)) or len(proof) < 1 + DIGEST_SIZE + TAG_SIZE:
                raise ValueError("proof too short")
            (count,) = struct.unpack_from(">B", proof, 0)
            if len(proof) != 1 + count * DIGEST_SIZE + TAG_SIZE:
                raise ValueError("proof length does not match handle count")
            digests = [
                bytes(proof[1 + i * DIGEST_SIZE:1 + (i + 1) * DIGEST_SIZE])
                for i in range(count)
            ]
            if bytes.fromhex(ciphertext.digest) not in digests:
                raise ValueError("ciphertext not covered by proof")

            expected = self._proof_tag(context, voter, digests)
            if not constant_time.bytes_eq(expected, bytes(proof[-TAG_SIZE:])):
                raise ValueError("proof tag mismatch")
            return True
        except (ValueError, TypeError, AttributeError, struct.error) as e:
            self.stats['rejected_proofs'] += 1
            logger.warning(f"Input proof rejected for voter {voter}: {e}")
            return False

    # -- arithmetic --------------------------------------------------------

    def homomorphic_add(self, a: CiphertextHandle, b: CiphertextHandle) -> CiphertextHandle:
        """Return a new handle encoding (a + b) mod 2^32"""
        left = self._lookup(a)
        right = self._lookup(b)
        if a.fhe_type != b.fhe_type:
            raise FHEError(f"Type mismatch: {a.fhe_type} + {b.fhe_type}")
        material, ciphertext = self._add(left, right)
        self.stats['additions'] += 1
        return self._register(material, ciphertext)

    def _reveal(self, handle: CiphertextHandle) -> int:
        """Plaintext of handle; only the decryption service calls this"""
        return self._open(self._lookup(handle)) % UINT32_MODULUS


# ============================================================================
# BACKENDS
# ============================================================================


class MockComputeService(HomomorphicComputeService):
    """Values sealed with AES-GCM under a service-held key"""

    backend_name = "mock"

    def __init__(self, proof_key: Optional[bytes] = None, sealing_key: Optional[bytes] = None):
        super().__init__(proof_key)
        self._aead = AESGCM(sealing_key or AESGCM.generate_key(bit_length=256))

    def _seal(self, value: int) -> Tuple[bytes, bytes]:
        nonce = os.urandom(12)
        blob = nonce + self._aead.encrypt(nonce, struct.pack(">I", value), EUINT32.encode())
        return blob, blob

    def _open(self, ciphertext: bytes) -> int:
        plaintext = self._aead.decrypt(ciphertext[:12], ciphertext[12:], EUINT32.encode())
        return struct.unpack(">I", plaintext)[0]

    def _add(self, a: bytes, b: bytes) -> Tuple[bytes, bytes]:
        return self._seal((self._open(a) + self._open(b)) % UINT32_MODULUS)


class PaillierComputeService(HomomorphicComputeService):
    """Additive homomorphic encryption over Z_n, reduced mod 2^32 on decryption"""

    backend_name = "paillier"

    def __init__(self, proof_key: Optional[bytes] = None, key_length: int = 2048,
                 keypair: Optional[Tuple[Any, Any]] = None):
        super().__init__(proof_key)
        if keypair is None:
            logger.info(f"Generating {key_length}-bit Paillier keypair...")
            keypair = paillier.generate_paillier_keypair(n_length=key_length)
        self.public_key, self._private_key = keypair

    @staticmethod
    def _material(number: paillier.EncryptedNumber) -> bytes:
        raw = number.ciphertext(be_secure=False)
        return raw.to_bytes((raw.bit_length() + 7) // 8, 'big')

    def _seal(self, value: int) -> Tuple[bytes, paillier.EncryptedNumber]:
        number = self.public_key.encrypt(value)
        return self._material(number), number

    def _open(self, ciphertext: paillier.EncryptedNumber) -> int:
        return self._private_key.decrypt(ciphertext)

    def _add(self, a: paillier.EncryptedNumber, b: paillier.EncryptedNumber) -> Tuple[bytes, paillier.EncryptedNumber]:
        total = a + b
        return self._material(total), total


def create_compute_service(backend: str = "mock", **kwargs) -> HomomorphicComputeService:
    """Build a compute service by backend name"""
    backends = {
        MockComputeService.backend_name: MockComputeService,
        PaillierComputeService.backend_name: PaillierComputeService,
    }
    if backend not in backends:
        raise ValueError(f"Unknown compute backend: {backend}")
    return backends[backend](**kwargs)
