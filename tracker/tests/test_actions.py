"""Unit tests for the ActionManager invocation sites."""
from unittest.mock import MagicMock

import pytest

from tracker.actions import Action, ActionManager
from tracker.transport import Transport


@pytest.fixture
def transport():
    return MagicMock(spec=Transport)


@pytest.fixture
def manager(transport):
    state = {"zoom": 1, "selected": ["a"]}
    elements = ["a", "b"]
    return ActionManager(
        updater=MagicMock(),
        get_app_state=lambda: state,
        get_elements=lambda: elements,
        transport=transport,
    )


def _key(key):
    return lambda event, state, elements: event.key == key


def test_key_down_runs_highest_priority_match(manager, transport):
    low = Action(name="low", perform=MagicMock(return_value="low-result"), key_test=_key("d"))
    high = Action(
        name="high",
        perform=MagicMock(return_value="high-result"),
        key_test=_key("d"),
        key_priority=10,
        commit_to_history=lambda state, elements: True,
    )
    manager.register_all([low, high])
    event = MagicMock(key="d")

    assert manager.handle_key_down(event) is True

    event.prevent_default.assert_called_once()
    high.perform.assert_called_once_with(["a", "b"], {"zoom": 1, "selected": ["a"]}, None)
    low.perform.assert_not_called()
    manager.updater.assert_called_once_with("high-result", True)
    record, action_name = transport.send_event.call_args.args
    assert action_name == "high"
    assert record["appState_zoom"] == 1


def test_key_down_without_match(manager, transport):
    manager.register_action(Action(name="copy", perform=MagicMock(), key_test=_key("c")))
    assert manager.handle_key_down(MagicMock(key="z")) is False
    transport.send_event.assert_not_called()
    manager.updater.assert_not_called()


def test_context_menu_items_sorted_and_filtered(manager, transport):
    manager.register_all([
        Action(name="paste", perform=MagicMock(), context_item_label="Paste", context_menu_order=2),
        Action(name="unlabelled", perform=MagicMock()),
        Action(name="copy", perform=MagicMock(), context_item_label="Copy", context_menu_order=1),
        Action(name="delete", perform=MagicMock(return_value="deleted"), context_item_label="Delete"),
    ])

    items = manager.get_context_menu_items()
    assert [item.label for item in items] == ["Copy", "Paste", "Delete"]

    items[2].action()
    manager.updater.assert_called_once_with("deleted", None)
    assert transport.send_event.call_args.args[1] == "delete"

    only_copy = manager.get_context_menu_items(lambda action: action.name == "copy")
    assert [item.label for item in only_copy] == ["Copy"]


def test_render_action_update_data_passes_form_state(manager, transport):
    stroke = Action(name="changeStrokeColor", perform=MagicMock(return_value="updated"), panel="ColorPanel")
    manager.register_action(stroke)

    rendered = manager.render_action("changeStrokeColor")
    assert rendered.panel == "ColorPanel"
    assert rendered.elements == ["a", "b"]

    rendered.update_data("#ff0000")

    stroke.perform.assert_called_once_with(["a", "b"], {"zoom": 1, "selected": ["a"]}, "#ff0000")
    manager.updater.assert_called_once_with("updated", None)
    record, _ = transport.send_event.call_args.args
    assert record["action_formData"] == "#ff0000"


def test_render_action_without_panel(manager):
    manager.register_action(Action(name="selectAll", perform=MagicMock()))
    assert manager.render_action("selectAll") is None
    assert manager.render_action("missing") is None
