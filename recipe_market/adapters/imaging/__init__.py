from recipe_market.adapters.imaging.base import AbstractImageCompactor
from recipe_market.adapters.imaging.pillow_compactor import PillowImageCompactor

__all__ = ["AbstractImageCompactor", "PillowImageCompactor"]
