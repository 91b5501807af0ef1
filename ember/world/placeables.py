"""
Player-placed objects: signs, modular build pieces, crafting tables.
"""

from pydantic import Field

from ember.core.component import Component, register_component
from ember.save.placed import PlacedKind, WorldObjectRegistry


@register_component
class SignText(Component):
    """Text written on a placed sign."""
    text: str = Field(default="", max_length=120)


@register_component
class ModularPiece(Component):
    """A building piece (wall, floor, roof...) and its material."""
    variant: str = "wall"
    material: str = "wood"


SIGN = PlacedKind("sign", payload_types=(SignText,))
MODULAR_PIECE = PlacedKind("modularPiece", payload_types=(ModularPiece,))
CRAFTING_TABLE = PlacedKind("craftingTable")

PLACEABLE_KINDS = (SIGN, MODULAR_PIECE, CRAFTING_TABLE)


def register_placeables(registry: WorldObjectRegistry) -> None:
    for kind in PLACEABLE_KINDS:
        registry.register_kind(kind)
