from .rpc.context import Context, Executor
from .rpc.registry import NotFound, Registry, RPCError, create

__all__ = ["Context", "Executor", "NotFound", "Registry", "RPCError", "create"]
