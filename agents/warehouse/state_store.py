"""
Single owned orchestrator for the warehouse simulation.

Every inbound operation (orders, chat, confirmations, arrivals, resets) runs to
completion under one re-entrant lock, so the scheduler's box exclusivity holds
even when the HTTP service calls in from several worker threads.
"""
import logging
import threading
from copy import deepcopy
from typing import Any, Dict, List, Optional
from uuid import uuid4

from . import config
from .catalog import DELIVERY_ZONE, generate_inventory, normalize_vegetable
from .order_parser import parse_confirmation, parse_user_order
from .reconciler import (
    NOTHING_TO_BRING_REPLY,
    PROCEED,
    REPEAT_DECISION_REPLY,
    SCRATCHED_REPLY,
    UNPARSEABLE_REPLY,
    aggregate_requests,
    items_for_proceed,
    normalize_decision,
    order_reply,
    partial_order_reply,
    proceed_reply,
    reconcile,
    shortage_reply,
)
from .robots import SYSTEM_STATUS, create_roster, find_agent, handle_arrival, send_home, status_of
from .scheduler import has_idle_agent, run_scheduling_pass


logger = logging.getLogger("warehouse_store")

GREETING = 'Hello! Inventory is ready. Tell me what you need (e.g., "I want 3 tomatoes").'
RESET_GREETING = "System Reset. Ready for new orders."
INIT_LOG = "System Initialized. Inventory Scanned."
RESET_LOG = "System Reset Initiated."


class WarehouseStore:
    def __init__(
        self,
        agent_count: Optional[int] = None,
        units_per_type: Optional[int] = None,
        log_limit: Optional[int] = None,
        chat_max_history: Optional[int] = None,
    ) -> None:
        self.agent_count = agent_count if agent_count is not None else config.AGENT_COUNT
        self.units_per_type = units_per_type if units_per_type is not None else config.UNITS_PER_TYPE
        self.log_limit = log_limit if log_limit is not None else config.LOG_LIMIT
        self.chat_max_history = chat_max_history if chat_max_history is not None else config.CHAT_MAX_HISTORY
        self._lock = threading.RLock()
        self._state: Dict[str, Any] = {}
        self._new_epoch()
        self._state["orders"] = []
        self._state["chat_history"] = []
        self._state["logs"] = []
        self._add_chat("bot", GREETING)
        self._add_log(INIT_LOG)

    # -- internal helpers (caller holds the lock) --

    def _new_epoch(self) -> None:
        inventory = generate_inventory(self.units_per_type)
        self._state.update(
            {
                "warehouse": {
                    "delivery_zone": list(DELIVERY_ZONE),
                    "mode": "single" if self.agent_count == 1 else "multi",
                },
                "inventory": inventory,
                "total_boxes": len(inventory),
                "agents": create_roster(self.agent_count),
                "delivered": [],
                "task_queue": [],
                "pending_confirmation": None,
            }
        )

    def _add_log(self, message: str, level: int = logging.INFO) -> None:
        logger.log(level, message)
        logs: List[str] = self._state.setdefault("logs", [])
        logs.insert(0, message)
        del logs[self.log_limit:]

    def _add_chat(self, sender: str, text: str) -> Dict[str, Any]:
        history: List[Dict[str, Any]] = self._state.setdefault("chat_history", [])
        msg = {"id": str(uuid4()), "sender": sender, "text": text}
        history.append(msg)
        if len(history) > self.chat_max_history:
            del history[: len(history) - self.chat_max_history]
        return msg

    def _schedule(self) -> None:
        run_scheduling_pass(self._state, self._add_log)

    def _enqueue(self, items: List[str]) -> Dict[str, Any]:
        order = {"id": str(uuid4()), "items": list(items), "status": "pending"}
        self._state["orders"].append(order)
        self._state["task_queue"].extend(items)
        self._add_log(f"Order received: {', '.join(items)}")
        if has_idle_agent(self._state):
            self._schedule()
        return order

    def _resolve(self, decision: str) -> Optional[str]:
        pending = self._state.get("pending_confirmation")
        if not pending:
            return None
        if decision == PROCEED:
            items = items_for_proceed(pending, self._state)
            if items:
                self._enqueue(items)
                reply = proceed_reply(len(items))
            else:
                reply = NOTHING_TO_BRING_REPLY
        else:
            reply = SCRATCHED_REPLY
        self._state["pending_confirmation"] = None
        self._add_chat("bot", reply)
        self._add_log(f"Pending shortage resolved: {decision}")
        return reply

    # -- inbound operations --

    def init_inventory(self) -> Dict[str, Any]:
        """Start a fresh stock epoch: new inventory and roster, empty queue and delivered list."""
        with self._lock:
            self._new_epoch()
            self._state["logs"] = []
            self._add_log(INIT_LOG)
            return self.get_state()

    def reset_system(self) -> Dict[str, Any]:
        with self._lock:
            self._new_epoch()
            self._state["orders"] = []
            self._state["chat_history"] = []
            self._state["logs"] = []
            self._add_chat("bot", RESET_GREETING)
            self._add_log(RESET_LOG)
            return self.get_state()

    def place_order(self, items: List[Any]) -> Dict[str, Any]:
        """Queue one unit per entry of ``items``. Raises ValueError on unknown types."""
        if not items:
            raise ValueError("items must not be empty.")
        normalized: List[str] = []
        for it in items:
            veg = normalize_vegetable(it)
            if veg is None:
                raise ValueError(f"Unknown vegetable type '{it}'.")
            normalized.append(veg.value)
        with self._lock:
            return deepcopy(self._enqueue(normalized))

    def send_user_message(self, text: str) -> str:
        """Handle one chat utterance and return the bot's reply."""
        with self._lock:
            self._add_chat("user", text)

            if self._state.get("pending_confirmation"):
                decision = parse_confirmation(text)
                if decision is None:
                    self._add_chat("bot", REPEAT_DECISION_REPLY)
                    return REPEAT_DECISION_REPLY
                return self._resolve(decision) or ""

            pairs = parse_user_order(text)
            if not pairs:
                self._add_chat("bot", UNPARSEABLE_REPLY)
                return UNPARSEABLE_REPLY

            totals = aggregate_requests(pairs)
            items, shortages = reconcile(totals, self._state)

            if not shortages:
                self._enqueue(items)
                reply = order_reply(len(items))
                self._add_chat("bot", reply)
                return reply

            replies = [shortage_reply(shortages)]
            self._state["pending_confirmation"] = shortages
            self._add_chat("bot", replies[0])
            self._add_log(f"Awaiting confirmation for shortage: {', '.join(s['type'] for s in shortages)}")
            # Fully stocked types from the same message go out right away.
            if items:
                self._enqueue(items)
                replies.append(partial_order_reply(len(items)))
                self._add_chat("bot", replies[-1])
            return " ".join(replies)

    def resolve_pending_order(self, decision: str) -> Optional[str]:
        """Apply PROCEED or SCRATCH to the pending shortage. No-op (None) if nothing is pending."""
        decision = normalize_decision(decision)
        with self._lock:
            return self._resolve(decision)

    def arrived_at_target(self, agent_id: Optional[str] = None) -> Dict[str, Any]:
        with self._lock:
            agent = find_agent(self._state["agents"], agent_id)
            if handle_arrival(self._state, agent, self._add_log):
                self._schedule()
            return deepcopy(agent)

    def send_home(self, agent_id: str) -> Dict[str, Any]:
        with self._lock:
            agent = find_agent(self._state["agents"], agent_id)
            if send_home(agent):
                self._add_log(f"{agent['id']} returning home.")
            return deepcopy(agent)

    # -- outbound snapshot --

    def get_state(self) -> Dict[str, Any]:
        """Return a deep-copied snapshot for renderers and the HTTP API."""
        with self._lock:
            snapshot = deepcopy(self._state)
        agents = snapshot["agents"]
        snapshot["queue_length"] = len(snapshot["task_queue"])
        snapshot["held"] = [a["held_item"] for a in agents if a.get("held_item")]
        snapshot["system_status"] = SYSTEM_STATUS[status_of(agents[0])] if len(agents) == 1 else None
        return snapshot


_store = WarehouseStore()


def get_store() -> WarehouseStore:
    return _store


def get_state() -> Dict[str, Any]:
    """Return a snapshot of the shared warehouse state."""
    return _store.get_state()


def reset_state() -> Dict[str, Any]:
    """Reset the shared store to a fresh demo state."""
    return _store.reset_system()
