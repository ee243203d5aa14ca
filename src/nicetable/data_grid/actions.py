"""Row and table actions with permission gating.

``authorize`` narrows a caller-declared action list to the actions the
current actor may invoke:

- no ``required_capability``: always kept
- a single capability: kept iff ``has_capability(cap)``
- a list of capabilities: kept iff ``has_any_capability(caps)``. The list is
  a set of alternative sufficient grants (OR), never all-required.

An unauthorized action is dropped from the menu entirely. ``disabled`` is a
separate concern: a disabled action stays in the menu and is rendered inert,
and ``invoke_action`` refuses to call it.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Literal, Optional, Protocol, TypeVar, Union, runtime_checkable

from nicetable.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
A = TypeVar("A", bound="_Gated")

ActionVariant = Literal["default", "destructive", "warning"]
Capability = str
RequiredCapability = Union[Capability, Sequence[Capability], None]


class _Gated(Protocol):
    required_capability: RequiredCapability


@runtime_checkable
class Authorizer(Protocol):
    """Permission collaborator supplied by the external authorization service.

    Both predicates must be pure; the engine never caches their results.
    """

    def has_permission(self, capability: Capability) -> bool: ...

    def has_any_permission(self, capabilities: Sequence[Capability]) -> bool: ...


class StaticAuthorizer:
    """Authorizer over a fixed set of granted capabilities (exact match)."""

    def __init__(self, granted: Sequence[Capability] = ()) -> None:
        self._granted: frozenset[str] = frozenset(granted)

    def has_permission(self, capability: Capability) -> bool:
        return capability in self._granted

    def has_any_permission(self, capabilities: Sequence[Capability]) -> bool:
        return any(self.has_permission(c) for c in capabilities)

    def __repr__(self) -> str:
        return f"StaticAuthorizer({sorted(self._granted)!r})"


@dataclass
class RowAction(Generic[T]):
    """One entry of the per-row action menu.

    Attributes:
        label: Menu text, or a function of the row returning it.
        on_invoke: Called with the original row object (never a RenderedRow).
        icon: Icon name, or a function of the row returning it.
        variant: Visual emphasis: "default", "destructive" or "warning".
        required_capability: None, one capability, or a list of alternative
            capabilities (OR semantics).
        disabled: Static flag or predicate on the row. Disabled actions stay
            visible but are never invoked.
        separator: Cosmetic grouping hint rendered after this item.
    """

    label: Union[str, Callable[[T], str]]
    on_invoke: Callable[[T], None]
    icon: Union[str, Callable[[T], str], None] = None
    variant: ActionVariant = "default"
    required_capability: RequiredCapability = None
    disabled: Union[bool, Callable[[T], bool]] = False
    separator: bool = False


@dataclass
class TableAction:
    """Header-level action (e.g. "Nuevo", "Exportar") gated like a RowAction."""

    label: str
    on_invoke: Optional[Callable[[], None]] = None
    icon: Optional[str] = None
    variant: ActionVariant = "default"
    required_capability: RequiredCapability = None
    disabled: bool = False


@dataclass(frozen=True)
class ActionMenuItem(Generic[T]):
    """A RowAction resolved against one row, ready for rendering."""

    action: RowAction[T]
    label: str
    icon: Optional[str]
    variant: ActionVariant
    disabled: bool
    separator_after: bool


def _is_authorized(
    required: RequiredCapability,
    has_capability: Callable[[Capability], bool],
    has_any_capability: Callable[[Sequence[Capability]], bool],
) -> bool:
    if required is None:
        return True
    if isinstance(required, str):
        return bool(has_capability(required))
    return bool(has_any_capability(list(required)))


def authorize(
    actions: Sequence[A],
    has_capability: Callable[[Capability], bool],
    has_any_capability: Callable[[Sequence[Capability]], bool],
) -> list[A]:
    """Return the subset of ``actions`` the current actor may invoke, in order."""
    allowed = [a for a in actions if _is_authorized(a.required_capability, has_capability, has_any_capability)]
    if len(allowed) != len(actions):
        logger.debug("authorize: %d of %d actions hidden by permissions", len(actions) - len(allowed), len(actions))
    return allowed


def authorize_for(actions: Sequence[A], authorizer: Authorizer) -> list[A]:
    return authorize(actions, authorizer.has_permission, authorizer.has_any_permission)


def is_action_disabled(action: RowAction[T], row: T) -> bool:
    if callable(action.disabled):
        return bool(action.disabled(row))
    return bool(action.disabled)


def resolve_label(action: RowAction[T], row: T) -> str:
    return action.label(row) if callable(action.label) else action.label


def resolve_icon(action: RowAction[T], row: T) -> Optional[str]:
    return action.icon(row) if callable(action.icon) else action.icon


def invoke_action(action: RowAction[T], row: T) -> bool:
    """Call ``action.on_invoke(row)`` unless the action is disabled for ``row``.

    Returns:
        True if the action ran, False if it was disabled.
    """
    if is_action_disabled(action, row):
        logger.debug("invoke_action: %r is disabled for this row", resolve_label(action, row))
        return False
    action.on_invoke(row)
    return True


def build_action_menu(actions: Sequence[RowAction[T]], row: T) -> list[ActionMenuItem[T]]:
    """Resolve already-authorized actions against ``row``.

    A separator requested on the last item is dropped.
    """
    items: list[ActionMenuItem[T]] = []
    last = len(actions) - 1
    for i, action in enumerate(actions):
        items.append(
            ActionMenuItem(
                action=action,
                label=resolve_label(action, row),
                icon=resolve_icon(action, row),
                variant=action.variant,
                disabled=is_action_disabled(action, row),
                separator_after=action.separator and i < last,
            )
        )
    return items
