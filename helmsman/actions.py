"""
Action adapter: the callable shapes accepted for Command/App actions.

Shapes (resolved once, when the owning command is built)
- CONTEXTUAL: action(context). The current shape.
- NULLARY:    action(). Legacy shape for actions that never look at the context.

Either shape may raise to signal failure. Legacy callbacks that *return* an exception
instance instead of raising it are honoured: the returned exception is raised. The same
rule applies to every hook (before, after, on_usage_error) through run_hook().
"""
import inspect
from enum import IntEnum
from inspect import Parameter
from typing import NamedTuple


class ActionKind(IntEnum):
    NULLARY = 0
    CONTEXTUAL = 1


_POSITIONAL = (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)


def _classify(callback):
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        # Builtins without an inspectable signature are assumed to take the context.
        return ActionKind.CONTEXTUAL

    required = 0
    accepts = 0
    for parameter in signature.parameters.values():
        if parameter.kind is Parameter.VAR_POSITIONAL:
            return ActionKind.CONTEXTUAL
        if parameter.kind in _POSITIONAL:
            accepts += 1
            required += parameter.default is Parameter.empty
        elif parameter.kind is Parameter.KEYWORD_ONLY and parameter.default is Parameter.empty:
            return None

    if required > 1:
        return None
    if required == 1 or accepts:
        return ActionKind.CONTEXTUAL
    return ActionKind.NULLARY


def run_hook(callback, /, *args):
    """Call `callback(*args)`; an exception it returns instead of raising is raised."""
    result = callback(*args)
    if isinstance(result, BaseException):
        raise result


class Action(NamedTuple):
    kind: ActionKind
    callback: object

    def __call__(self, context):
        match self.kind:
            case ActionKind.CONTEXTUAL:
                run_hook(self.callback, context)
            case ActionKind.NULLARY:
                run_hook(self.callback)
            case _:
                raise RuntimeError("unreachable")


def resolve_action(callback, /, *, subject="action"):
    """
    Classify `callback` into an Action.

    Raises
    - TypeError: when `callback` is not callable, or its signature fits none of the
      supported shapes (more than one required positional, required keyword-only).
    """
    if isinstance(callback, Action):
        return callback
    if not callable(callback):
        raise TypeError(f"{subject} must be callable")
    if (kind := _classify(callback)) is None:
        raise TypeError(f"{subject} must accept a context or nothing at all")
    return Action(kind, callback)


__all__ = (
    "ActionKind",
    "Action",
    "resolve_action",
    "run_hook",
)
