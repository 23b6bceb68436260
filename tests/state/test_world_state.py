"""Unit tests for local and knowledge-base-backed world states."""

from __future__ import annotations

import threading
from collections import Counter

import pytest

from robotics_planning.errors import KnowledgeBaseError
from robotics_planning.evaluation import evaluate
from robotics_planning.pddl import Atom, parse_expression
from robotics_planning.state import KnowledgeBaseWorldState, LocalWorldState, Problem


class CountingClient(Problem):
    """An in-memory knowledge base that counts the calls made to it."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        super().__init__(*args, **kwargs)
        self.calls: Counter[str] = Counter()

    def get_predicate(self, atom: str) -> bool | None:
        self.calls["get_predicate"] += 1
        return super().get_predicate(atom)

    def get_function(self, atom: str) -> float | None:
        self.calls["get_function"] += 1
        return super().get_function(atom)


class BlockingClient(Problem):
    """A knowledge base whose predicate lookups block until released."""

    def __init__(self) -> None:
        super().__init__()
        self.released = threading.Event()

    def get_predicate(self, atom: str) -> bool | None:
        self.released.wait(timeout=5.0)
        return super().get_predicate(atom)


class DisconnectedClient(Problem):
    """A knowledge base whose connection has been lost."""

    def get_predicate(self, atom: str) -> bool | None:
        raise ConnectionError(f"Connection lost while looking up {atom}")


class ReadOnlyClient(Problem):
    """A knowledge base that rejects every update."""

    def add_predicate(self, atom: str) -> bool:
        return False


@pytest.fixture
def counting_client() -> CountingClient:
    """Create a counting knowledge base in which r2d2 is in the kitchen."""
    return CountingClient(
        predicates=["(robot_at r2d2 kitchen)"],
        functions={"(battery r2d2)": 40.0},
    )


def test_local_world_state_insert_and_remove() -> None:
    """Verify that a local world state tracks inserted and removed predicates."""
    # Arrange - Create an empty world state
    state = LocalWorldState()

    # Act - Insert two atoms, then remove one of them (and one that never held)
    state.insert("(robot_at r2d2 kitchen)")
    state.insert("(door_open d1)")
    state.remove("(robot_at r2d2 kitchen)")
    state.remove("(robot_at c3po lab)")

    # Assert - Expect only the remaining atom to hold
    assert state.contains("(door_open d1)")
    assert not state.contains("(robot_at r2d2 kitchen)")
    assert state.predicates == {"(door_open d1)"}


def test_local_world_state_copy_is_independent() -> None:
    """Verify that modifying a copy of a world state leaves the original unchanged."""
    # Arrange - Create a world state and copy it
    state = LocalWorldState({"(robot_at r2d2 kitchen)"}, {"(battery r2d2)": 40.0})
    copied = state.copy()

    # Act - Modify the copy
    copied.remove("(robot_at r2d2 kitchen)")
    copied.set_function("(battery r2d2)", 10.0)

    # Assert - Expect the original to be unchanged
    assert state.contains("(robot_at r2d2 kitchen)")
    assert state.get_function("(battery r2d2)") == 40.0


def test_local_world_state_from_client(robot_problem: Problem) -> None:
    """Verify that a snapshot of a knowledge base contains all of its predicates and functions."""
    # Arrange - The problem is provided by the test fixture

    # Act - Take a snapshot of the problem
    state = LocalWorldState.from_client(robot_problem)

    # Assert - Expect the problem's initial state, independent of later changes to the problem
    assert state.contains("(robot_at r2d2 kitchen)")
    assert state.get_function("(battery c3po)") == 80.0

    robot_problem.remove_predicate("(robot_at r2d2 kitchen)")
    assert state.contains("(robot_at r2d2 kitchen)")


def test_local_world_state_str() -> None:
    """Verify that a world state is displayed as sorted predicates and function values."""
    # Arrange - Create a small world state
    state = LocalWorldState({"(b)", "(a)"}, {"(battery r2d2)": 40.0})

    # Act/Assert - Expect a deterministic string
    assert str(state) == "WorldState[(a) (b)][(= (battery r2d2) 40)]"


def test_knowledge_base_state_caches_lookups(counting_client: CountingClient) -> None:
    """Verify that resolved lookups are cached rather than repeated."""
    # Arrange - Wrap the counting client in a cache-through world state
    state = KnowledgeBaseWorldState(counting_client)

    # Act - Look up the same predicate and function several times
    for _ in range(3):
        assert state.contains("(robot_at r2d2 kitchen)")
        assert state.get_function("(battery r2d2)") == 40.0

    # Assert - Expect a single remote call for each atom
    assert counting_client.calls == Counter({"get_predicate": 1, "get_function": 1})
    state.close()


def test_knowledge_base_state_invalidate(counting_client: CountingClient) -> None:
    """Verify that invalidating the cache forces the next lookup to reach the knowledge base."""
    # Arrange - Resolve a predicate once, then change it remotely
    state = KnowledgeBaseWorldState(counting_client)
    assert state.contains("(robot_at r2d2 kitchen)")
    counting_client.remove_predicate("(robot_at r2d2 kitchen)")

    # Act - Invalidate the cache and look up the predicate again
    state.invalidate()
    result = state.contains("(robot_at r2d2 kitchen)")

    # Assert - Expect the updated remote value
    assert not result
    assert counting_client.calls["get_predicate"] == 2
    state.close()


def test_knowledge_base_state_writes_through(counting_client: CountingClient) -> None:
    """Verify that applying effects updates both the knowledge base and the cache."""
    # Arrange - Wrap the client and parse an effect that moves r2d2
    state = KnowledgeBaseWorldState(counting_client)
    effect = parse_expression("(and (not (robot_at r2d2 kitchen))(robot_at r2d2 bedroom))")

    # Act - Apply the effect to the world state
    result = evaluate(effect, state, apply=True)

    # Assert - Expect both the remote and the cached state to reflect the effect
    assert result.success
    assert counting_client.get_predicates() == {"(robot_at r2d2 bedroom)"}
    assert state.contains("(robot_at r2d2 bedroom)")
    assert not state.contains("(robot_at r2d2 kitchen)")
    state.close()


def test_knowledge_base_state_timeout() -> None:
    """Verify that a lookup that doesn't finish in time raises a KnowledgeBaseError."""
    # Arrange - Wrap a blocking client using a short timeout
    client = BlockingClient()
    state = KnowledgeBaseWorldState(client, timeout_s=0.05)

    # Act/Assert - Expect the lookup to time out
    with pytest.raises(KnowledgeBaseError, match="Timed out"):
        state.contains("(robot_at r2d2 kitchen)")

    client.released.set()
    state.close()


def test_timeout_is_reported_as_failed_evaluation() -> None:
    """Verify that the evaluator reports a timed-out lookup as an unsuccessful evaluation."""
    # Arrange - Wrap a blocking client using a short timeout
    client = BlockingClient()
    state = KnowledgeBaseWorldState(client, timeout_s=0.05)

    # Act - Query a predicate through the world state
    result = evaluate(Atom("(robot_at r2d2 kitchen)"), state)

    # Assert - Expect failure rather than an exception or an indefinite wait
    assert result == (False, False, 0.0)
    client.released.set()
    state.close()


def test_unreachable_knowledge_base_raises_error() -> None:
    """Verify that connection failures are raised as KnowledgeBaseErrors."""
    # Arrange - Wrap a client whose connection has been lost
    state = KnowledgeBaseWorldState(DisconnectedClient())

    # Act/Assert - Expect a KnowledgeBaseError chained from the connection error
    with pytest.raises(KnowledgeBaseError, match="unreachable") as exc_info:
        state.contains("(robot_at r2d2 kitchen)")

    assert isinstance(exc_info.value.__cause__, ConnectionError)
    state.close()


def test_rejected_update_raises_error() -> None:
    """Verify that an update rejected by the knowledge base raises a KnowledgeBaseError."""
    # Arrange - Wrap a knowledge base that rejects all updates
    state = KnowledgeBaseWorldState(ReadOnlyClient())

    # Act/Assert - Expect that inserting a predicate raises an error
    with pytest.raises(KnowledgeBaseError, match="rejected"):
        state.insert("(door_open d1)")

    assert not state.contains("(door_open d1)")
    state.close()


def test_knowledge_base_state_snapshot(robot_problem: Problem) -> None:
    """Verify that a snapshot copies the complete contents of the knowledge base."""
    # Arrange - Wrap the example problem
    state = KnowledgeBaseWorldState(robot_problem)

    # Act - Take a snapshot of the knowledge base
    snapshot = state.snapshot()

    # Assert - Expect a local world state equal to the problem's current state
    expected = LocalWorldState(robot_problem.get_predicates(), robot_problem.get_functions())
    assert snapshot == expected
    state.close()


def test_lookup_after_timeout_uses_fresh_worker() -> None:
    """Verify that a timed-out lookup doesn't block the lookups that follow it."""
    # Arrange - Wrap a client whose predicate lookups block, but whose function lookups don't
    client = BlockingClient()
    client.set_function("(battery r2d2)", 40.0)

    # Act - Let a predicate lookup time out, then look up a function
    with KnowledgeBaseWorldState(client, timeout_s=0.05) as state:
        with pytest.raises(KnowledgeBaseError, match="Timed out"):
            state.contains("(robot_at r2d2 kitchen)")
        battery = state.get_function("(battery r2d2)")

    # Assert - Expect the function lookup to be answered despite the stuck predicate lookup
    client.released.set()
    assert battery == 40.0
