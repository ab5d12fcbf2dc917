"""
Pokedex — captured-roster management over the PokéAPI catalog.

Usage:
    from pokedex import Pokedex, create_default_config

    dex = Pokedex(create_default_config())
    dex.capture(25)
    print(dex.metrics().to_dict())
"""

from pokedex.app_config import AppConfig, create_default_config
from pokedex.facade import Pokedex

__all__ = [
    "AppConfig",
    "Pokedex",
    "create_default_config",
]
