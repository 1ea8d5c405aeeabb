"""
Deterministic warehouse command execution. Used by the HTTP API and by tests.
Raises ValueError with a message on validation failure; returns
{reply, agents, inventory, delivered, queue_length} on success.
"""
from collections import Counter
from typing import Any, Dict, List, Optional

from . import config
from .catalog import VEGETABLES
from .robots import AgentStatus
from .state_store import WarehouseStore, get_store


ACTIONS = ("order", "chat", "confirm", "arrive", "home", "settle", "reset", "init")


def settle(store: WarehouseStore, max_steps: Optional[int] = None) -> int:
    """
    Stand in for the renderer: report arrivals for every agent that has a
    target until all agents are idle. Returns the number of arrivals reported.
    """
    budget = max_steps if max_steps is not None else config.SETTLE_MAX_STEPS
    steps = 0
    while steps < budget:
        moving = [a for a in store.get_state()["agents"] if a.get("target") is not None]
        if not moving:
            break
        for a in moving:
            if steps >= budget:
                break
            store.arrived_at_target(a["id"])
            steps += 1
    return steps


def execute_warehouse_command(
    action: str,
    agent_id: Optional[str] = None,
    items: Optional[List[str]] = None,
    text: Optional[str] = None,
    decision: Optional[str] = None,
    max_steps: Optional[int] = None,
    store: Optional[WarehouseStore] = None,
) -> Dict[str, Any]:
    """
    Execute a single warehouse command. Raises ValueError on validation error.
    Returns {"reply": str, "agents": list, "inventory": list, "delivered": list, "queue_length": int}.
    """
    store = store or get_store()
    action = (action or "").strip().lower()
    reply: str

    if action == "order":
        if not items:
            raise ValueError("items required for order.")
        order = store.place_order(items)
        reply = f"Queued {len(order['items'])} item(s): {', '.join(order['items'])}."

    elif action == "chat":
        if not text or not text.strip():
            raise ValueError("text required for chat.")
        reply = store.send_user_message(text.strip())

    elif action == "confirm":
        if not decision:
            raise ValueError("decision required for confirm.")
        result = store.resolve_pending_order(decision)
        reply = result if result is not None else "Nothing is awaiting confirmation."

    elif action == "arrive":
        agent = store.arrived_at_target(agent_id)
        reply = f"{agent['id']} is now {agent['status']}."

    elif action == "home":
        if not agent_id:
            raise ValueError("agent_id required for home.")
        agent = store.send_home(agent_id)
        reply = f"{agent['id']} is {agent['status']}."

    elif action == "settle":
        steps = settle(store, max_steps=max_steps)
        reply = f"Reported {steps} arrival(s)."

    elif action == "reset":
        store.reset_system()
        reply = "System reset."

    elif action == "init":
        store.init_inventory()
        reply = "Inventory initialized."

    else:
        raise ValueError(f"action must be one of: {', '.join(ACTIONS)}")

    new_state = store.get_state()
    return {
        "reply": reply,
        "agents": new_state.get("agents", []),
        "inventory": new_state.get("inventory", []),
        "delivered": new_state.get("delivered", []),
        "queue_length": new_state.get("queue_length", 0),
    }


def verify_warehouse_state(
    state: Dict[str, Any],
    *,
    expected_total: Optional[int] = None,
    log_limit: Optional[int] = None,
) -> tuple[bool, str]:
    """
    Verify that a state snapshot is internally consistent.
    Returns (True, "") if verified; (False, reason) otherwise.
    """
    inventory = state.get("inventory", [])
    agents = state.get("agents", [])
    delivered = state.get("delivered", [])
    held = [a["held_item"] for a in agents if a.get("held_item")]

    ids = [b.get("id") for b in inventory + held + delivered]
    dupes = [i for i, n in Counter(ids).items() if n > 1]
    if dupes:
        return False, f"box ids appear more than once: {dupes}"
    total = expected_total if expected_total is not None else state.get("total_boxes")
    if total is not None and len(ids) != total:
        return False, f"box count {len(ids)} != generated total {total}"

    positions = [tuple(b.get("position") or []) for b in inventory]
    if len(positions) != len(set(positions)):
        return False, "two inventory boxes share a position"

    targets = [tuple(a["target"]) for a in agents if a.get("target") is not None]
    if len(targets) != len(set(targets)):
        return False, f"agents share a target: {targets}"

    for a in agents:
        try:
            status = AgentStatus(a.get("status"))
        except ValueError:
            return False, f"{a.get('id')} has unknown status {a.get('status')!r}"
        if status is AgentStatus.DELIVERING and not a.get("held_item"):
            return False, f"{a['id']} is DELIVERING without an item"
        if status is not AgentStatus.DELIVERING and a.get("held_item"):
            return False, f"{a['id']} holds an item while {status.value}"
        if status is AgentStatus.IDLE and a.get("target") is not None:
            return False, f"{a['id']} is IDLE with a target"
        if status is AgentStatus.IDLE and a.get("task_type"):
            return False, f"{a['id']} is IDLE but still owes a {a['task_type']} pick"
        if status is not AgentStatus.IDLE and a.get("target") is None:
            return False, f"{a['id']} is {status.value} without a target"

    known = {v.value for v in VEGETABLES}
    bad = [t for t in state.get("task_queue", []) if t not in known]
    if bad:
        return False, f"task queue holds unknown types: {bad}"

    limit = log_limit if log_limit is not None else config.LOG_LIMIT
    if len(state.get("logs", [])) > limit:
        return False, f"log holds {len(state['logs'])} entries (limit {limit})"

    return True, ""
