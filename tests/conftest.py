import sys
from pathlib import Path

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from confidential_voting_engine import ConfidentialTallyEngine  # noqa: E402
from fhe import MockComputeService  # noqa: E402

ENGINE_ID = "0xEngine0000000000000000000000000000000001"
READER = "election_authority"

ALICE = "0xA11ce00000000000000000000000000000000001"
BOB = "0xB0b0000000000000000000000000000000000002"
CHARLIE = "0xC4a71e0000000000000000000000000000000003"


@pytest.fixture
def compute():
    return MockComputeService()


@pytest.fixture
def engine(compute):
    return ConfidentialTallyEngine(
        num_options=3,
        engine_id=ENGINE_ID,
        compute=compute,
        readers=[READER]
    )


@pytest.fixture
def decryptor(engine):
    return engine.decryption_service()
