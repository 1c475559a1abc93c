import asyncio
import logging
from typing import Any, Callable, Mapping, MutableMapping, TypeAlias

from .context import Executor

logger = logging.getLogger(__name__)

Handler: TypeAlias = Callable[..., Any]
Methods: TypeAlias = dict[str, "Handler | Methods"]


class RPCError(Exception):
    "Error with a numeric code."

    code: int

    def __init__(self, message: str, code: int) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class NotFound(RPCError):
    "The method path does not resolve to a handler."

    def __init__(self, message: str = "Not Found") -> None:
        super().__init__(message, 404)


class Registry:
    """Methods, by name.
    Names are dotted paths, each segment but the last one is a namespace:
    a nested mapping of methods.
    """

    methods: Methods

    def __init__(self, methods: Mapping[str, Any] | None = None) -> None:
        self.methods = dict()
        self.set(methods or {})

    def set(self, key: Mapping[str, Any] | str, value: Any = None) -> "Registry":
        """Merge a mapping of methods, or set a single one.
        The merge is shallow: a namespace replaces the previous one wholesale."""
        methods = dict[str, Any]()
        if isinstance(key, Mapping):
            methods.update(key)
        else:
            methods[key] = value
        self.methods.update(methods)
        return self

    def clear(self) -> "Registry":
        self.methods = dict()
        return self

    def get(self, path: str = "") -> Any:
        def method(methods: Mapping[str, Any], path: str) -> Any:
            head, dot, tail = path.partition(".")
            result = methods.get(head)
            if isinstance(result, Mapping):
                return method(result, tail) if dot else result
            return None if dot else result

        return method(self.methods, path or "")

    def __getitem__(self, path: str) -> Handler:
        handler = self.get(path)
        if not callable(handler):
            raise NotFound()
        return handler

    def handler(self, path: str):
        "Decorator registering a function at a dotted path, namespaces are created on the way."

        def decorator(function: Handler) -> Handler:
            *namespaces, name = path.split(".")
            methods: MutableMapping[str, Any] = self.methods
            for ns in namespaces:
                # copied on the way down, seeded namespaces belong to the caller
                node = methods.get(ns)
                node = dict(node) if isinstance(node, Mapping) else dict()
                methods[ns] = node
                methods = node
            methods[name] = function
            return function

        return decorator

    async def call(self, context: Executor, body: Any) -> Any:
        """Dispatch a request, or a batch of requests.
        A batch never raises, each failure is returned at the index of its request."""
        if isinstance(body, (list, tuple)):
            logger.debug(f"batch of {len(body)} requests")
            return await asyncio.gather(
                *(self._isolated(context, request) for request in body)
            )

        if not isinstance(body, Mapping):
            body = {}
        method = body.get("method") or ""
        params: Mapping[str, Any] = body.get("params") or {}
        handler = self.get(method) if isinstance(method, str) else None
        if not callable(handler):
            logger.debug(f"method not found: {method!r}")
            raise NotFound()

        logger.debug(f"method call: {method}", extra=dict(params=params))
        # a "params" key inside params wins over the raw params entry
        return await context.promise(handler, {"params": params, **params})

    async def _isolated(self, context: Executor, request: Any) -> Any:
        try:
            return await self.call(context, request)
        except Exception as e:
            logger.debug(f"batch item failed: {e!r}")
            return e


def create(methods: Mapping[str, Any] | None = None) -> Registry:
    return Registry(methods)
