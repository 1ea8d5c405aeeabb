"""Stock checks for parsed orders and the shortage confirmation workflow."""
from typing import Any, Dict, List, Tuple

from .catalog import VegetableType, count_inventory
from .robots import AgentStatus


PROCEED = "PROCEED"
SCRATCH = "SCRATCH"
DECISIONS = (PROCEED, SCRATCH)

UNPARSEABLE_REPLY = 'I didn\'t catch that. Try saying "I want 5 tomatoes".'
REPEAT_DECISION_REPLY = 'Please say "Proceed" or "Scratch".'
SCRATCHED_REPLY = "Okay, scratched those items."
NOTHING_TO_BRING_REPLY = "Actually, we have 0 of those. Scratched."


def aggregate_requests(pairs: List[Tuple[VegetableType, int]]) -> Dict[VegetableType, int]:
    """Sum counts per type ("2 corn and 3 corn" -> 5 corn), keeping first-seen order."""
    totals: Dict[VegetableType, int] = {}
    for veg, count in pairs:
        totals[veg] = totals.get(veg, 0) + count
    return totals


def free_stock(state: Dict[str, Any], veg: VegetableType) -> int:
    """
    Boxes of ``veg`` not yet promised to anyone.

    Boxes still on the pallets, minus units waiting in the queue, minus agents
    already on their way to pick one. Held and delivered boxes have left the
    inventory, so they need no correction.
    """
    in_stock = count_inventory(state["inventory"], veg)
    queued = sum(1 for t in state["task_queue"] if t == veg.value)
    bound = sum(
        1
        for a in state["agents"]
        if a.get("status") == AgentStatus.MOVING_TO_PICK.value and a.get("task_type") == veg.value
    )
    return max(in_stock - queued - bound, 0)


def reconcile(
    totals: Dict[VegetableType, int],
    state: Dict[str, Any],
) -> Tuple[List[str], List[Dict[str, Any]]]:
    """
    Split requested totals into unit queue entries for types with enough free
    stock and shortage records ({type, requested, available}) for the rest.
    """
    items: List[str] = []
    shortages: List[Dict[str, Any]] = []
    for veg, requested in totals.items():
        available = free_stock(state, veg)
        if requested <= available:
            items.extend([veg.value] * requested)
        else:
            shortages.append({"type": veg.value, "requested": requested, "available": available})
    return items, shortages


def items_for_proceed(shortages: List[Dict[str, Any]], state: Dict[str, Any]) -> List[str]:
    """
    What is still free of each short type, never the original request.

    Capped by the quoted ``available``; direct orders placed while the
    question was open may have taken some of it.
    """
    items: List[str] = []
    for s in shortages:
        veg = VegetableType(s["type"])
        items.extend([veg.value] * min(int(s["available"]), free_stock(state, veg)))
    return items


def normalize_decision(decision: str) -> str:
    d = (decision or "").strip().upper()
    if d not in DECISIONS:
        raise ValueError(f"decision must be one of: {', '.join(DECISIONS)}")
    return d


def shortage_reply(shortages: List[Dict[str, Any]]) -> str:
    detail = "; ".join(f"{s['type']}: wanted {s['requested']}, have {s['available']}" for s in shortages)
    return f"Stock shortage for: {detail}. Should we PROCEED with available items or SCRATCH these?"


def order_reply(count: int) -> str:
    return f"Ordering {count} items. On it!"


def partial_order_reply(count: int) -> str:
    return f"(Ordering {count} available items...)"


def proceed_reply(count: int) -> str:
    return f"Understood. Bringing {count} items we have."
