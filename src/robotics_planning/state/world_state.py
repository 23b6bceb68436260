"""Define world states: the predicates and function values that expressions query and mutate."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from types import TracebackType
from typing import TYPE_CHECKING, Callable, Protocol, TypeVar

from typing_extensions import Self

from robotics_planning.errors import KnowledgeBaseError

if TYPE_CHECKING:
    from robotics_planning.state.knowledge_base import KnowledgeBaseClient

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


class WorldState(Protocol):
    """The narrow interface through which expressions read and mutate the state of the world.

    Atoms are given in canonical textual form, e.g., `(robot_at r2d2 kitchen)`.
    """

    def contains(self, atom: str) -> bool:
        """Check whether the given predicate atom is satisfied."""
        ...

    def insert(self, atom: str) -> None:
        """Mark the given predicate atom as satisfied."""
        ...

    def remove(self, atom: str) -> None:
        """Mark the given predicate atom as unsatisfied."""
        ...

    def get_function(self, atom: str) -> float | None:
        """Retrieve the value of the given function atom (None if undefined)."""
        ...

    def set_function(self, atom: str, value: float) -> None:
        """Assign a value to the given function atom."""
        ...


@dataclass
class LocalWorldState:
    """A world state stored in local memory, owned by a single evaluation context."""

    predicates: set[str] = field(default_factory=set)
    """Canonical strings of all satisfied predicate atoms."""

    functions: dict[str, float] = field(default_factory=dict)
    """Map from canonical function atoms to their numeric values."""

    @classmethod
    def from_client(cls, client: KnowledgeBaseClient) -> LocalWorldState:
        """Take a snapshot of all predicates and functions stored by a knowledge base.

        :raises KnowledgeBaseError: If the knowledge base cannot be read
        """
        return cls(set(client.get_predicates()), dict(client.get_functions()))

    def __str__(self) -> str:
        """Return a readable listing of the satisfied predicates and function values."""
        preds = " ".join(sorted(self.predicates))
        funcs = " ".join(f"(= {f} {v:g})" for f, v in sorted(self.functions.items()))
        return f"WorldState[{preds}][{funcs}]"

    def contains(self, atom: str) -> bool:
        """Check whether the given predicate atom is satisfied."""
        return atom in self.predicates

    def insert(self, atom: str) -> None:
        """Mark the given predicate atom as satisfied."""
        self.predicates.add(atom)

    def remove(self, atom: str) -> None:
        """Mark the given predicate atom as unsatisfied."""
        self.predicates.discard(atom)

    def get_function(self, atom: str) -> float | None:
        """Retrieve the value of the given function atom (None if undefined)."""
        return self.functions.get(atom)

    def set_function(self, atom: str, value: float) -> None:
        """Assign a value to the given function atom."""
        self.functions[atom] = value

    def copy(self) -> LocalWorldState:
        """Create an independent copy of the world state."""
        return LocalWorldState(set(self.predicates), dict(self.functions))


class KnowledgeBaseWorldState:
    """A world state that caches a remote knowledge base, forwarding unresolved lookups to it.

    Every remote call is bounded by a timeout. Failed or timed-out calls raise a
    `KnowledgeBaseError`, which the evaluator reports as an unsuccessful evaluation.

    A timed-out call cannot be interrupted, so its worker thread is abandoned and later calls
    run on a fresh worker. The abandoned thread still finishes its call before the interpreter
    exits. Use the world state as a context manager (or call `close`) to release its worker.
    """

    def __init__(self, client: KnowledgeBaseClient, timeout_s: float = 1.0) -> None:
        """Initialize the cache-through world state.

        :param client: Knowledge-base client that answers unresolved lookups
        :param timeout_s: Maximum duration (seconds) to wait for each remote call
        """
        self.client = client
        self.timeout_s = timeout_s

        self._predicates: dict[str, bool] = {}
        """Cached truth values of predicate atoms that have already been resolved."""

        self._functions: dict[str, float | None] = {}
        """Cached values of function atoms that have already been resolved."""

        self._executor = self._new_executor()

    def __enter__(self) -> Self:
        """Enter a managed context in which remote calls may be made."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Exit the managed context, releasing the worker used for remote calls."""
        self.close()

    @staticmethod
    def _new_executor() -> ThreadPoolExecutor:
        """Create the single-worker executor on which remote calls are made."""
        return ThreadPoolExecutor(max_workers=1, thread_name_prefix="knowledge_base")

    def _call(self, description: str, method: Callable[..., ResultT], *args: object) -> ResultT:
        """Invoke a client method, bounding the call by the configured timeout.

        :param description: Readable description of the call, used in error messages
        :param method: Client method to be called
        :return: Result of the client method
        :raises KnowledgeBaseError: If the call fails or doesn't finish within the timeout
        """
        future = self._executor.submit(method, *args)
        try:
            return future.result(timeout=self.timeout_s)
        except FutureTimeoutError as error:
            # The call may still be running, so leave it to the old worker
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = self._new_executor()
            message = f"Timed out after {self.timeout_s} s: {description}"
            raise KnowledgeBaseError(message) from error
        except KnowledgeBaseError:
            raise
        except OSError as error:
            raise KnowledgeBaseError(f"Knowledge base unreachable: {description}") from error

    def contains(self, atom: str) -> bool:
        """Check whether the given predicate atom is satisfied, asking the client if needed."""
        if atom not in self._predicates:
            result = self._call(f"get predicate {atom}", self.client.get_predicate, atom)
            self._predicates[atom] = bool(result)  # Unresolved atoms are treated as absent
        return self._predicates[atom]

    def insert(self, atom: str) -> None:
        """Mark the given predicate atom as satisfied, both remotely and in the cache."""
        if not self._call(f"add predicate {atom}", self.client.add_predicate, atom):
            raise KnowledgeBaseError(f"Knowledge base rejected adding predicate {atom}")
        self._predicates[atom] = True

    def remove(self, atom: str) -> None:
        """Mark the given predicate atom as unsatisfied, both remotely and in the cache."""
        if not self._call(f"remove predicate {atom}", self.client.remove_predicate, atom):
            raise KnowledgeBaseError(f"Knowledge base rejected removing predicate {atom}")
        self._predicates[atom] = False

    def get_function(self, atom: str) -> float | None:
        """Retrieve the value of the given function atom, asking the client if needed."""
        if atom not in self._functions:
            value = self._call(f"get function {atom}", self.client.get_function, atom)
            self._functions[atom] = None if value is None else float(value)
        return self._functions[atom]

    def set_function(self, atom: str, value: float) -> None:
        """Assign a value to the given function atom, both remotely and in the cache."""
        if not self._call(f"set function {atom}", self.client.set_function, atom, value):
            raise KnowledgeBaseError(f"Knowledge base rejected setting function {atom}")
        self._functions[atom] = value

    def invalidate(self) -> None:
        """Forget all cached values so that later lookups are answered by the client."""
        self._predicates.clear()
        self._functions.clear()

    def snapshot(self) -> LocalWorldState:
        """Take a local snapshot of the complete contents of the knowledge base."""
        predicates = self._call("get all predicates", self.client.get_predicates)
        functions = self._call("get all functions", self.client.get_functions)
        return LocalWorldState(set(predicates), dict(functions))

    def close(self) -> None:
        """Release the worker thread used for remote calls."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.debug("Closed knowledge-base world state.")
