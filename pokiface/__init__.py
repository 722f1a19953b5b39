"""PokiFace: match a face photo to a Pokémon with a vision model."""

__version__ = "0.1.0"
