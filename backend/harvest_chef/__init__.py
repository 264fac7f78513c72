"""harvest-chef: recipe suggestions from photos and pantry lists."""

__version__ = "0.1.0"
