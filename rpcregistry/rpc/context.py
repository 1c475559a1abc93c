import inspect
import logging
from typing import Any, Callable, Mapping, MutableMapping, Protocol

logger = logging.getLogger(__name__)


class Executor(Protocol):
    "Run a resolved handler with named arguments."

    async def promise(self, handler: Callable, arguments: dict[str, Any]) -> Any: ...


class Context(MutableMapping[str, Any]):
    """Execution context.
    Context values are handed to handlers by name, like the request arguments.
    Request arguments win over context values with the same name."""

    _values: dict[str, Any]

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._values = dict[str, Any](values or {})

    def __iter__(self):
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, key: str, /) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def bind(
        self, handler: Callable, arguments: Mapping[str, Any]
    ) -> dict[str, Any]:
        "Keyword arguments for the handler, picked by parameter name."
        candidates = dict[str, Any](self._values)
        candidates.update(arguments)
        kwargs = dict[str, Any]()
        variadic = False
        for name, parameter in inspect.signature(handler).parameters.items():
            if parameter.kind is inspect.Parameter.VAR_KEYWORD:
                variadic = True
            elif parameter.kind in (
                inspect.Parameter.POSITIONAL_ONLY,
                inspect.Parameter.VAR_POSITIONAL,
            ):
                continue
            elif name in candidates:
                kwargs[name] = candidates[name]
            elif name == "context":
                kwargs[name] = self
        if variadic:
            for name, value in candidates.items():
                kwargs.setdefault(name, value)
        return kwargs

    async def promise(self, handler: Callable, arguments: dict[str, Any]) -> Any:
        """Call the handler, await its result when it is awaitable.
        Unbound mandatory parameters raise TypeError, like any handler error."""
        kwargs = self.bind(handler, arguments)
        logger.debug(
            f"calling {getattr(handler, '__qualname__', handler)!r}",
            extra=dict(arguments=list(kwargs)),
        )
        result = handler(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
