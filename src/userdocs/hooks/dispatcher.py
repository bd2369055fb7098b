"""
Hook dispatcher coordinating document lifecycle events.
"""

from __future__ import annotations

import inspect
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union

from ..core.document import BaseDocument


HookHandler = Callable[..., Union[None, Awaitable[None]]]

EVENTS = (
    "before_validate",
    "after_validate",
    "before_save",
    "after_save",
    "before_delete",
    "after_delete",
)


class HookDispatcher:
    """
    Maintains global and per-model hook handlers.

    Handlers may be plain functions or coroutine functions; ``fire`` awaits
    each one in registration order, global handlers first, and lets the
    first failure propagate.
    """

    def __init__(self) -> None:
        self._global_handlers: Dict[str, List[HookHandler]] = defaultdict(list)
        self._model_handlers: Dict[Type[BaseDocument], Dict[str, List[HookHandler]]] = defaultdict(
            lambda: defaultdict(list)
        )

    def register(
        self, event: str, handler: HookHandler, *, model: Optional[Type[BaseDocument]] = None
    ) -> None:
        if event not in EVENTS:
            raise ValueError(f"Unknown hook event '{event}'; expected one of {EVENTS}")
        if model:
            self._model_handlers[model][event].append(handler)
        else:
            self._global_handlers[event].append(handler)

    def unregister(
        self, event: str, handler: HookHandler, *, model: Optional[Type[BaseDocument]] = None
    ) -> None:
        handlers = self._model_handlers[model][event] if model else self._global_handlers[event]
        if handler in handlers:
            handlers.remove(handler)

    async def fire(self, event: str, instance: Optional[BaseDocument], **context: Any) -> None:
        handlers = list(self._global_handlers.get(event, []))
        model = instance.__class__ if instance is not None else None
        if model:
            handlers.extend(self._model_handlers.get(model, {}).get(event, []))
        for handler in handlers:
            result = handler(instance, **context)
            if inspect.isawaitable(result):
                await result

    def clear(self, *, model: Optional[Type[BaseDocument]] = None) -> None:
        if model is not None:
            self._model_handlers.pop(model, None)
            return
        self._global_handlers.clear()
        self._model_handlers.clear()


hooks = HookDispatcher()
