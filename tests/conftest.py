"""Register the fixtures shared by all test modules."""

pytest_plugins = ["tests.fixtures.planning_fixtures"]
