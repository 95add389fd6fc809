"""
Domain models — Pydantic types for bottles, runtimes, and recipes.

All models are re-exported here for convenient access:

    from alloy.core.models import BottleRecord, WineRuntime, RecipeManifest
"""

from alloy.core.models.bottle import BottleRecord, WineRuntime
from alloy.core.models.recipe import (
    CopyStep,
    EnvStep,
    Recipe,
    RecipeManifest,
    RecipeStep,
    RunStep,
    WaitForExitStep,
    WineCfgStep,
)
from alloy.core.models.runtime import RuntimeDescriptor, RuntimeSelection

__all__ = [
    # bottle.py
    "BottleRecord",
    # recipe.py
    "CopyStep",
    "EnvStep",
    "Recipe",
    "RecipeManifest",
    "RecipeStep",
    # runtime.py
    "RuntimeDescriptor",
    "RuntimeSelection",
    "RunStep",
    "WaitForExitStep",
    "WineCfgStep",
    "WineRuntime",
]
