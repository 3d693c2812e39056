import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("mock", "paillier")


@dataclass
class FHEConfig:
    backend: str = "mock"
    paillier_key_length: int = 2048

    def __post_init__(self):
        self.backend = str(self.backend).lower()
        if self.backend not in SUPPORTED_BACKENDS:
            raise ValueError(f"Unsupported compute backend: {self.backend}")
        if self.paillier_key_length < 256:
            raise ValueError("Paillier key length must be at least 256 bits")


@dataclass
class SystemConfig:
    num_options: int = 3
    engine_id: str = "confidential_tally_engine"
    tally_readers: List[str] = field(default_factory=list)

    fhe_config: FHEConfig = field(default_factory=FHEConfig)

    log_dir: Path = field(default_factory=lambda: Path("logs"))
    results_dir: Path = field(default_factory=lambda: Path("results"))
    enable_benchmarking: bool = True
    enable_debug_mode: bool = False

    def __post_init__(self):
        if isinstance(self.num_options, bool) or not isinstance(self.num_options, int) \
                or self.num_options < 1:
            raise ValueError(f"num_options must be a positive integer, got {self.num_options!r}")

        self.log_dir = Path(self.log_dir)
        self.results_dir = Path(self.results_dir)
        self.tally_readers = list(dict.fromkeys(self.tally_readers))

    def ensure_directories(self):
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.results_dir.mkdir(parents=True, exist_ok=True)


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """Load configuration from file or return default"""
    if config_path is None:
        config_path = Path("config.yaml")
    config_path = Path(config_path)

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}

            fhe_data = config_data.get('fhe', {})
            fhe_config = FHEConfig(
                backend=fhe_data.get('backend', 'mock'),
                paillier_key_length=fhe_data.get('paillier_key_length', 2048)
            )

            return SystemConfig(
                num_options=config_data.get('num_options', 3),
                engine_id=config_data.get('engine_id', 'confidential_tally_engine'),
                tally_readers=config_data.get('tally_readers', []),
                fhe_config=fhe_config,
                log_dir=Path(config_data.get('log_dir', 'logs')),
                results_dir=Path(config_data.get('results_dir', 'results')),
                enable_benchmarking=config_data.get('enable_benchmarking', True),
                enable_debug_mode=config_data.get('enable_debug_mode', False)
            )
        except (OSError, yaml.YAMLError, AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Could not load config file {config_path}: {e}")
            logger.warning("Using default configuration")

    return SystemConfig()


def save_config(config: SystemConfig, config_path: Optional[Path] = None):
    """Save configuration to YAML file"""
    if config_path is None:
        config_path = Path("config.yaml")
    config_path = Path(config_path)

    config_data = {
        'num_options': config.num_options,
        'engine_id': config.engine_id,
        'tally_readers': list(config.tally_readers),
        'fhe': {
            'backend': config.fhe_config.backend,
            'paillier_key_length': config.fhe_config.paillier_key_length
        },
        'log_dir': str(config.log_dir),
        'results_dir': str(config.results_dir),
        'enable_benchmarking': config.enable_benchmarking,
        'enable_debug_mode': config.enable_debug_mode
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w') as f:
        yaml.dump(config_data, f, default_flow_style=False)
    logger.info(f"Configuration saved to {config_path}")
