"""Greedy auction: bind queued unit requests to in-stock boxes and the nearest idle agent."""
import logging
from typing import Any, Dict, List, Optional, Tuple

from .robots import AgentStatus, LogFn, assign_pick, is_idle, send_home


logger = logging.getLogger("warehouse_scheduler")


def manhattan_xz(a: List[int], b: List[int]) -> int:
    """Floor distance; the vertical level (y) is ignored."""
    return abs(a[0] - b[0]) + abs(a[2] - b[2])


def reserved_positions(agents: List[Dict[str, Any]]) -> set:
    return {
        tuple(a["target"])
        for a in agents
        if a.get("target") is not None and not is_idle(a)
    }


def select_candidate_box(state: Dict[str, Any], veg: str) -> Optional[Dict[str, Any]]:
    """Highest-level box of ``veg`` that no busy agent is already heading for."""
    reserved = reserved_positions(state["agents"])
    candidates = [
        b
        for b in state["inventory"]
        if b.get("type") == veg and tuple(b["position"]) not in reserved
    ]
    return max(candidates, key=lambda b: b["position"][1], default=None)


def select_idle_agent(state: Dict[str, Any], position: List[int]) -> Optional[Dict[str, Any]]:
    idle = [a for a in state["agents"] if is_idle(a)]
    return min(idle, key=lambda a: manhattan_xz(a["position"], position), default=None)


def has_idle_agent(state: Dict[str, Any]) -> bool:
    return any(is_idle(a) for a in state["agents"])


def replan_failed_picks(state: Dict[str, Any], log: LogFn) -> List[Tuple[str, str]]:
    """
    Rebind idle agents whose pick target vanished to another box of the same type.

    The unit already left the queue when it was first bound, so it is retried
    here instead of being queued again. No box left counts as stock exhaustion.
    """
    bindings: List[Tuple[str, str]] = []
    for agent in state["agents"]:
        veg = agent.get("task_type")
        if not veg or not is_idle(agent):
            continue
        box = select_candidate_box(state, veg)
        if box is None:
            agent["task_type"] = None
            log(f"Error: Out of stock for {veg}! Skipping.", logging.ERROR)
            continue
        assign_pick(agent, box["position"], veg)
        x, y, z = box["position"]
        log(f"{agent['id']} moving to pick {veg} at [{x}, {y}, {z}]")
        bindings.append((agent["id"], veg))
    return bindings


def run_scheduling_pass(state: Dict[str, Any], log: LogFn) -> List[Tuple[str, str]]:
    """
    Drain the task queue while an idle agent is available.

    Failed picks are re-planned first. Entries whose type has no free box left
    are dropped (logged); an entry with no idle agent stays at the front.
    Returns the (agent_id, type) bindings made.
    """
    queue: List[str] = state["task_queue"]
    bindings = replan_failed_picks(state, log)

    while queue and has_idle_agent(state):
        veg = queue[0]
        box = select_candidate_box(state, veg)
        if box is None:
            log(f"Error: Out of stock for {veg}! Skipping.", logging.ERROR)
            queue.pop(0)
            continue

        agent = select_idle_agent(state, box["position"])
        if agent is None:
            break

        assign_pick(agent, box["position"], veg)
        queue.pop(0)
        x, y, z = box["position"]
        log(f"{agent['id']} moving to pick {veg} at [{x}, {y}, {z}]")
        bindings.append((agent["id"], veg))

    agents = state["agents"]
    if not queue and len(agents) == 1:
        only = agents[0]
        if only["status"] == AgentStatus.IDLE.value and send_home(only):
            log("All tasks complete. Returning home.")

    logger.debug("Scheduling pass made %d binding(s); %d queued", len(bindings), len(queue))
    return bindings
