from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4


class VegetableType(str, Enum):
    """Closed set of stock-keeping types. Catalog order drives pallet layout."""
    tomato = "Tomato"
    lettuce = "Lettuce"
    carrot = "Carrot"
    eggplant = "Eggplant"
    corn = "Corn"
    onion = "Onion"


VEGETABLES: List[VegetableType] = list(VegetableType)

VEGETABLE_COLORS: Dict[VegetableType, str] = {
    VegetableType.tomato: "#ff4d4d",
    VegetableType.lettuce: "#4caf50",
    VegetableType.carrot: "#ff9800",
    VegetableType.eggplant: "#9c27b0",
    VegetableType.corn: "#ffeb3b",
    VegetableType.onion: "#f5f5f5",
}

AGENT_COLORS = ["#2196f3", "#e91e63", "#00bcd4", "#8bc34a", "#ffc107", "#795548"]

DELIVERY_ZONE = [0, 0, 5]
BASE_LANE = 5
LANE_SPACING = 2
HOME_HEIGHT = 5

PALLET_SPACING = 6
UNITS_PER_LAYER = 4


def normalize_vegetable(value: Any) -> Optional[VegetableType]:
    """Map 'tomato', 'Tomato' or VegetableType.tomato to the enum member, else None."""
    if isinstance(value, VegetableType):
        return value
    v = str(value or "").strip().lower()
    for veg in VEGETABLES:
        if veg.value.lower() == v:
            return veg
    return None


def lane_for(index: int) -> int:
    return BASE_LANE + LANE_SPACING * index


def home_position(index: int) -> List[int]:
    """Home cell for the n-th agent (0-based); agent 0 sits at [0, 5, 5]."""
    return [0, HOME_HEIGHT, lane_for(index)]


def dropoff_position(index: int) -> List[int]:
    """Drop-off slot inside the delivery zone, one per lane so agents never share a target."""
    return [DELIVERY_ZONE[0], DELIVERY_ZONE[1], lane_for(index)]


def generate_inventory(units_per_type: int = 10) -> List[Dict[str, Any]]:
    """Lay out one pallet per type, stacked in 2x2 layers.

    Pallet bases sit on x = -15, -9, -3, 3, 9, 15 for the six types.
    """
    boxes: List[Dict[str, Any]] = []
    for index, veg in enumerate(VEGETABLES):
        base_x = int((index - 2.5) * PALLET_SPACING)
        for k in range(units_per_type):
            layer = k // UNITS_PER_LAYER
            remainder = k % UNITS_PER_LAYER
            dx = remainder % 2
            dz = remainder // 2
            boxes.append(
                {
                    "id": str(uuid4()),
                    "type": veg.value,
                    "position": [base_x + dx, layer, dz],
                }
            )
    return boxes


def count_inventory(inventory: List[Dict[str, Any]], veg: VegetableType) -> int:
    return sum(1 for b in inventory if b.get("type") == veg.value)
