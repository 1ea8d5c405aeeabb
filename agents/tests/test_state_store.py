import os
import sys


AGENTS_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if AGENTS_DIR not in sys.path:
    sys.path.insert(0, AGENTS_DIR)

from warehouse import state_store
from warehouse.catalog import VegetableType, count_inventory, generate_inventory
from warehouse.commands import settle, verify_warehouse_state
from warehouse.state_store import WarehouseStore


def _busy_count(state, veg):
    return sum(1 for a in state["agents"] if a["status"] == "MOVING_TO_PICK" and a["target"] is not None
               and any(b["position"] == a["target"] and b["type"] == veg for b in state["inventory"]))


def _committed(state, veg):
    """Queued plus in-flight units of ``veg``."""
    return state["task_queue"].count(veg) + _busy_count(state, veg)


def test_generate_inventory_layout():
    boxes = generate_inventory(10)
    assert len(boxes) == 60
    assert len({b["id"] for b in boxes}) == 60
    assert len({tuple(b["position"]) for b in boxes}) == 60
    tomatoes = [b["position"] for b in boxes if b["type"] == "Tomato"]
    assert tomatoes[0] == [-15, 0, 0]
    assert tomatoes[3] == [-14, 0, 1]
    assert tomatoes[4] == [-15, 1, 0]
    assert max(p[1] for p in tomatoes) == 2
    onion_xs = {b["position"][0] for b in boxes if b["type"] == "Onion"}
    assert onion_xs == {15, 16}


def test_initial_state_snapshot():
    store = WarehouseStore(agent_count=3, units_per_type=10)
    state = store.get_state()
    assert state["total_boxes"] == 60
    assert state["queue_length"] == 0
    assert state["pending_confirmation"] is None
    assert state["chat_history"][0]["sender"] == "bot"
    assert state["logs"] == ["System Initialized. Inventory Scanned."]
    assert state["system_status"] is None
    assert state["warehouse"]["delivery_zone"] == [0, 0, 5]


def test_snapshot_is_a_copy():
    store = WarehouseStore(agent_count=1)
    snap = store.get_state()
    snap["inventory"].clear()
    assert len(store.get_state()["inventory"]) == 60


def test_chat_full_order():
    store = WarehouseStore(agent_count=3, units_per_type=10)
    reply = store.send_user_message("I want 2 tomatoes and 3 corn")
    state = store.get_state()
    assert reply == "Ordering 5 items. On it!"
    assert _committed(state, "Tomato") == 2
    assert _committed(state, "Corn") == 3
    assert state["orders"][0]["items"] == ["Tomato", "Tomato", "Corn", "Corn", "Corn"]
    assert state["orders"][0]["status"] == "pending"
    assert [m["sender"] for m in state["chat_history"][-2:]] == ["user", "bot"]


def test_chat_aggregates_duplicates_before_stock_check():
    store = WarehouseStore(agent_count=3, units_per_type=10)
    store.send_user_message("6 corn, 6 corn")
    state = store.get_state()
    assert state["pending_confirmation"] == [{"type": "Corn", "requested": 12, "available": 10}]
    assert _committed(state, "Corn") == 0


def test_chat_unparseable_prompts_to_rephrase():
    store = WarehouseStore(agent_count=1)
    reply = store.send_user_message("hello robot")
    assert "I didn't catch that" in reply
    assert store.get_state()["queue_length"] == 0


def test_shortage_then_proceed():
    store = WarehouseStore(agent_count=3, units_per_type=10)
    reply = store.send_user_message("I need 15 tomatoes")
    state = store.get_state()
    assert reply.startswith("Stock shortage for: Tomato: wanted 15, have 10.")
    assert state["pending_confirmation"] == [{"type": "Tomato", "requested": 15, "available": 10}]
    assert _committed(state, "Tomato") == 0
    assert all(a["status"] == "IDLE" for a in state["agents"])

    reply = store.send_user_message("yes, proceed")
    state = store.get_state()
    assert reply == "Understood. Bringing 10 items we have."
    assert state["pending_confirmation"] is None
    assert _committed(state, "Tomato") == 10
    ok, reason = verify_warehouse_state(state)
    assert ok, reason


def test_shortage_then_scratch_leaves_inventory_untouched():
    store = WarehouseStore(agent_count=3, units_per_type=10)
    store.send_user_message("15 tomatoes")
    before = store.get_state()["inventory"]

    reply = store.resolve_pending_order("SCRATCH")
    state = store.get_state()
    assert reply == "Okay, scratched those items."
    assert state["pending_confirmation"] is None
    assert state["queue_length"] == 0
    assert state["inventory"] == before
    assert all(a["status"] == "IDLE" for a in state["agents"])


def test_shortage_does_not_block_fully_stocked_types():
    store = WarehouseStore(agent_count=3, units_per_type=10)
    reply = store.send_user_message("15 tomatoes and 2 corn")
    state = store.get_state()
    assert "(Ordering 2 available items...)" in reply
    assert state["pending_confirmation"] == [{"type": "Tomato", "requested": 15, "available": 10}]
    assert _committed(state, "Corn") == 2
    assert _committed(state, "Tomato") == 0


def test_second_chat_order_sees_units_already_promised():
    store = WarehouseStore(agent_count=3, units_per_type=10, log_limit=1000)
    assert store.send_user_message("8 tomatoes") == "Ordering 8 items. On it!"

    reply = store.send_user_message("8 tomatoes")
    state = store.get_state()
    assert reply.startswith("Stock shortage for: Tomato: wanted 8, have 2.")
    assert state["pending_confirmation"] == [{"type": "Tomato", "requested": 8, "available": 2}]
    assert _committed(state, "Tomato") == 8

    assert store.send_user_message("proceed") == "Understood. Bringing 2 items we have."
    assert _committed(store.get_state(), "Tomato") == 10

    settle(store)
    state = store.get_state()
    assert [b["type"] for b in state["delivered"]] == ["Tomato"] * 10
    assert not any("Out of stock" in line for line in state["logs"])


def test_agents_bound_to_a_pick_reduce_free_stock():
    store = WarehouseStore(agent_count=3, units_per_type=10)
    store.place_order(["Corn", "Corn", "Corn"])
    assert store.get_state()["queue_length"] == 0

    store.send_user_message("8 corn")
    assert store.get_state()["pending_confirmation"] == [{"type": "Corn", "requested": 8, "available": 7}]


def test_proceed_brings_only_what_is_still_free():
    store = WarehouseStore(agent_count=3, units_per_type=10)
    store.send_user_message("15 tomatoes")
    store.place_order(["Tomato"] * 4)

    reply = store.resolve_pending_order("PROCEED")
    assert reply == "Understood. Bringing 6 items we have."
    assert _committed(store.get_state(), "Tomato") == 10


def test_latch_redirects_input_until_resolved():
    store = WarehouseStore(agent_count=3, units_per_type=10)
    store.send_user_message("20 onions")
    reply = store.send_user_message("3 carrots")
    state = store.get_state()
    assert reply == 'Please say "Proceed" or "Scratch".'
    assert state["pending_confirmation"] is not None
    assert _committed(state, "Carrot") == 0

    reply = store.send_user_message("no thanks")
    assert reply == "Okay, scratched those items."
    assert store.get_state()["pending_confirmation"] is None

    reply = store.send_user_message("3 carrots")
    assert reply == "Ordering 3 items. On it!"


def test_proceed_with_nothing_in_stock_scratches():
    store = WarehouseStore(agent_count=1, units_per_type=0)
    store.send_user_message("3 tomatoes")
    assert store.get_state()["pending_confirmation"] == [{"type": "Tomato", "requested": 3, "available": 0}]
    reply = store.resolve_pending_order("proceed")
    state = store.get_state()
    assert reply == "Actually, we have 0 of those. Scratched."
    assert state["pending_confirmation"] is None
    assert state["queue_length"] == 0
    assert state["orders"] == []


def test_resolve_without_pending_is_noop_and_bad_decision_rejected():
    store = WarehouseStore(agent_count=1)
    assert store.resolve_pending_order("PROCEED") is None
    try:
        store.resolve_pending_order("maybe")
    except ValueError as exc:
        assert "decision must be one of" in str(exc)
    else:
        raise AssertionError("Expected ValueError for invalid decision")


def test_place_order_validates_types():
    store = WarehouseStore(agent_count=1)
    order = store.place_order(["tomato", "Corn"])
    assert order["items"] == ["Tomato", "Corn"]
    for bad in (["Banana"], []):
        try:
            store.place_order(bad)
        except ValueError:
            pass
        else:
            raise AssertionError(f"Expected ValueError for {bad!r}")


def test_logs_capped_newest_first():
    store = WarehouseStore(agent_count=1, units_per_type=10, log_limit=50)
    for _ in range(60):
        store.place_order(["Eggplant"])
    logs = store.get_state()["logs"]
    assert len(logs) == 50
    assert logs[0] == "Order received: Eggplant"
    assert "System Initialized. Inventory Scanned." not in logs


def test_chat_history_bounded():
    store = WarehouseStore(agent_count=1, chat_max_history=5)
    for _ in range(10):
        store.send_user_message("hello")
    history = store.get_state()["chat_history"]
    assert len(history) == 5
    assert history[-1]["sender"] == "bot"


def test_reset_system_restores_fresh_epoch():
    store = WarehouseStore(agent_count=2, units_per_type=10)
    store.send_user_message("15 corn")
    store.place_order(["Tomato"])
    store.arrived_at_target("agent-1")

    state = store.reset_system()
    assert state["pending_confirmation"] is None
    assert state["orders"] == []
    assert state["delivered"] == []
    assert state["queue_length"] == 0
    assert len(state["inventory"]) == 60
    assert all(a["status"] == "IDLE" and a["held_item"] is None for a in state["agents"])
    assert [m["text"] for m in state["chat_history"]] == ["System Reset. Ready for new orders."]
    assert state["logs"] == ["System Reset Initiated."]


def test_init_inventory_keeps_chat_but_regenerates_stock():
    store = WarehouseStore(agent_count=2, units_per_type=10)
    store.send_user_message("2 corn")
    old_ids = {b["id"] for b in store.get_state()["inventory"]}

    state = store.init_inventory()
    assert {b["id"] for b in state["inventory"]}.isdisjoint(old_ids)
    assert state["queue_length"] == 0
    assert len(state["chat_history"]) == 3
    assert state["logs"] == ["System Initialized. Inventory Scanned."]
    ok, reason = verify_warehouse_state(state)
    assert ok, reason


def test_module_level_store_helpers():
    state = state_store.reset_state()
    assert state["queue_length"] == 0
    assert state_store.get_state()["total_boxes"] == len(state["inventory"])
    assert count_inventory(state["inventory"], VegetableType.onion) == state_store.get_store().units_per_type
