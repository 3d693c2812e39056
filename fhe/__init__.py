"""Homomorphic compute and decryption collaborators for the tally engine."""

from .compute import (
    # Data types
    CiphertextHandle,
    EncryptedBallot,
    EncryptedInput,
    EncryptedInputBuilder,

    # Compute services
    HomomorphicComputeService,
    MockComputeService,
    PaillierComputeService,
    create_compute_service,

    # Constants
    EUINT32,
    UINT32_MODULUS,

    # Exceptions
    FHEError,
    UnknownHandleError,
    DecryptionDeniedError,
)
from .decryption import DecryptionService

__all__ = [
    'CiphertextHandle',
    'EncryptedBallot',
    'EncryptedInput',
    'EncryptedInputBuilder',

    'HomomorphicComputeService',
    'MockComputeService',
    'PaillierComputeService',
    'create_compute_service',
    'DecryptionService',

    'EUINT32',
    'UINT32_MODULUS',

    'FHEError',
    'UnknownHandleError',
    'DecryptionDeniedError',
]
