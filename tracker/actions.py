"""
Action manager for the drawing app, with every action call intercepted.

Three sites invoke actions: keyboard shortcuts, context-menu items and
form-panel updates. Each picks the action its own way, then calls it
through `intercept` and hands the result to the app's updater.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from tracker.interceptor import intercept
from tracker.transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_MENU_ORDER = 999

PerformFn = Callable[[Sequence[Any], Any, Any], Any]
Updater = Callable[[Any, Optional[bool]], None]
ActionFilter = Callable[["Action"], bool]


@dataclass
class Action:
    name: str
    perform: PerformFn
    key_test: Optional[Callable[[Any, Any, Sequence[Any]], bool]] = None
    key_priority: int = 0
    context_item_label: Optional[str] = None
    context_menu_order: Optional[int] = None
    commit_to_history: Optional[Callable[[Any, Sequence[Any]], bool]] = None
    panel: Optional[Any] = None


@dataclass(frozen=True)
class ContextMenuItem:
    label: str
    action: Callable[[], None]


@dataclass(frozen=True)
class RenderedPanel:
    """What a form panel needs: current elements and state plus its update callback."""
    panel: Any
    elements: Sequence[Any]
    app_state: Any
    update_data: Callable[[Any], None]


class ActionManager:
    def __init__(
        self,
        updater: Updater,
        get_app_state: Callable[[], Any],
        get_elements: Callable[[], Sequence[Any]],
        transport: Transport,
    ) -> None:
        self.actions: Dict[str, Action] = {}
        self.updater = updater
        self.get_app_state = get_app_state
        self.get_elements = get_elements
        self.transport = transport

    def register_action(self, action: Action) -> None:
        self.actions[action.name] = action

    def register_all(self, actions: Iterable[Action]) -> None:
        for action in actions:
            self.register_action(action)

    def _commit_to_history(self, action: Action) -> Optional[bool]:
        if action.commit_to_history is None:
            return None
        return action.commit_to_history(self.get_app_state(), self.get_elements())

    def _perform(self, action: Action, form_data: Any = None) -> None:
        commit = self._commit_to_history(action)
        perform = intercept(action.perform, self.transport, {"actionName": action.name})
        self.updater(perform(self.get_elements(), self.get_app_state(), form_data), commit)

    def handle_key_down(self, event: Any) -> bool:
        """Run the highest-priority action whose key test matches. False if none did."""
        candidates = sorted(self.actions.values(), key=lambda a: a.key_priority, reverse=True)
        matching = [
            action for action in candidates
            if action.key_test is not None
            and action.key_test(event, self.get_app_state(), self.get_elements())
        ]
        if not matching:
            return False

        prevent_default = getattr(event, "prevent_default", None)
        if callable(prevent_default):
            prevent_default()
        logger.debug(f"Key shortcut matched action {matching[0].name}")
        self._perform(matching[0])
        return True

    def get_context_menu_items(self, action_filter: Optional[ActionFilter] = None) -> List[ContextMenuItem]:
        actions = [
            action for action in self.actions.values()
            if (action_filter is None or action_filter(action))
            and action.context_item_label is not None
        ]
        actions.sort(key=lambda a: (
            a.context_menu_order if a.context_menu_order is not None else DEFAULT_CONTEXT_MENU_ORDER
        ))
        return [
            ContextMenuItem(
                label=action.context_item_label or "",
                action=lambda action=action: self._perform(action),
            )
            for action in actions
        ]

    def render_action(self, name: str) -> Optional[RenderedPanel]:
        """Panel for a form-driven action, or None if it has no panel."""
        action = self.actions.get(name)
        if action is None or action.panel is None:
            return None

        def update_data(form_state: Any) -> None:
            self._perform(action, form_state)

        return RenderedPanel(
            panel=action.panel,
            elements=self.get_elements(),
            app_state=self.get_app_state(),
            update_data=update_data,
        )
