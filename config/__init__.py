"""Configuration management for the tally engine."""

from .config import SystemConfig, FHEConfig, load_config, save_config

__all__ = ['SystemConfig', 'FHEConfig', 'load_config', 'save_config']
