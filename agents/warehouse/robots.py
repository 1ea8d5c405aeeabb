"""
Per-agent task state machine.

Agents are plain dicts inside the store state so snapshots stay JSON friendly:

    {"id", "position", "target", "status", "held_item", "task_type",
     "lane", "color", "home", "dropoff"}

``task_type`` is the vegetable an agent was bound to pick. It survives a failed
pick so the scheduler can re-plan the same unit for the same agent.

Movement itself belongs to the renderer; this module only decides what happens
when an agent reports that it reached its target.
"""
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .catalog import AGENT_COLORS, dropoff_position, home_position, lane_for


logger = logging.getLogger("warehouse_robots")

LogFn = Callable[..., None]


class AgentStatus(str, Enum):
    IDLE = "IDLE"
    MOVING_TO_PICK = "MOVING_TO_PICK"
    DELIVERING = "DELIVERING"
    RETURNING = "RETURNING"


# Global status reported by single-agent installs.
SYSTEM_STATUS: Dict[AgentStatus, str] = {
    AgentStatus.IDLE: "IDLE",
    AgentStatus.MOVING_TO_PICK: "MOVING",
    AgentStatus.DELIVERING: "DELIVERING",
    AgentStatus.RETURNING: "RETURNING",
}


def create_roster(count: int) -> List[Dict[str, Any]]:
    if count < 1:
        raise ValueError("agent count must be at least 1")
    agents: List[Dict[str, Any]] = []
    for n in range(count):
        home = home_position(n)
        agents.append(
            {
                "id": f"agent-{n + 1}",
                "position": list(home),
                "target": None,
                "status": AgentStatus.IDLE.value,
                "held_item": None,
                "task_type": None,
                "lane": lane_for(n),
                "color": AGENT_COLORS[n % len(AGENT_COLORS)],
                "home": list(home),
                "dropoff": dropoff_position(n),
            }
        )
    return agents


def status_of(agent: Dict[str, Any]) -> AgentStatus:
    return AgentStatus(agent.get("status"))


def is_idle(agent: Dict[str, Any]) -> bool:
    return status_of(agent) is AgentStatus.IDLE


def find_agent(agents: List[Dict[str, Any]], agent_id: Optional[str]) -> Dict[str, Any]:
    """Look up an agent; the id may be omitted only when a single agent is active."""
    if agent_id is None or not str(agent_id).strip():
        if len(agents) != 1:
            raise ValueError("agent_id is required when more than one agent is active.")
        return agents[0]
    agent_id = str(agent_id).strip()
    agent = next((a for a in agents if a.get("id") == agent_id), None)
    if agent is None:
        raise ValueError(f"Agent '{agent_id}' not found.")
    return agent


def assign_pick(agent: Dict[str, Any], position: List[int], veg: str) -> None:
    agent["target"] = list(position)
    agent["task_type"] = veg
    agent["status"] = AgentStatus.MOVING_TO_PICK.value


def send_home(agent: Dict[str, Any]) -> bool:
    """Send an idle agent back to its home cell. Returns False if it is already there."""
    if not is_idle(agent):
        raise ValueError(f"{agent['id']} is busy ({agent['status']}); only idle agents can be sent home.")
    if list(agent["position"]) == list(agent["home"]):
        return False
    agent["target"] = list(agent["home"])
    agent["status"] = AgentStatus.RETURNING.value
    return True


def _box_index_at(inventory: List[Dict[str, Any]], position: List[int]) -> int:
    for idx, box in enumerate(inventory):
        if list(box.get("position") or []) == list(position):
            return idx
    return -1


def handle_arrival(state: Dict[str, Any], agent: Dict[str, Any], log: LogFn) -> bool:
    """
    Advance ``agent`` after it reached its target.

    Mutates inventory/delivered inside ``state``. Returns True when the caller
    should run another scheduling pass.
    """
    agent_id = agent["id"]
    status = status_of(agent)
    target = agent.get("target")

    if status is AgentStatus.IDLE or target is None:
        log(f"Ignoring arrival from {agent_id}: no active target.", logging.WARNING)
        return False

    agent["position"] = list(target)
    logger.debug("%s arrived at %s while %s", agent_id, target, status.value)

    if status is AgentStatus.MOVING_TO_PICK:
        inventory: List[Dict[str, Any]] = state["inventory"]
        idx = _box_index_at(inventory, target)
        if idx == -1:
            # task_type is kept: the next scheduling pass re-plans this unit.
            log(f"Error: Box gone when {agent_id} arrived to pick! Re-planning...", logging.ERROR)
            agent["status"] = AgentStatus.IDLE.value
            agent["target"] = None
            return True
        box = inventory.pop(idx)
        agent["held_item"] = box
        agent["status"] = AgentStatus.DELIVERING.value
        agent["target"] = list(agent["dropoff"])
        log(f"{agent_id} picked up {box['type']}. Delivering...")
        return False

    elif status is AgentStatus.DELIVERING:
        held = agent.get("held_item")
        if held:
            state["delivered"].append(held)
            log(f"{agent_id} delivered {held['type']}.")
        else:
            log(f"{agent_id} reached delivery without an item.", logging.WARNING)
        agent["held_item"] = None
        agent["task_type"] = None
        agent["status"] = AgentStatus.IDLE.value
        agent["target"] = None
        return True

    elif status is AgentStatus.RETURNING:
        agent["status"] = AgentStatus.IDLE.value
        agent["target"] = None
        log(f"{agent_id} is back home.")
        return True

    else:  # pragma: no cover - AgentStatus is closed
        raise ValueError(f"Unhandled agent status: {status}")
