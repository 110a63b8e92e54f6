"""
Unit tests for the service container.
"""

import threading

from coffeeworld.api.dependencies import ServiceContainer, Settings


def make_settings(**overrides) -> Settings:
    values = dict(
        database_url="sqlite:///:memory:",
        checkin_store="memory",
        seed_demo_data=False,
        verifier_mode="simulated",
        session_secret="test-secret",
        environment="test",
    )
    values.update(overrides)
    return Settings(**values)


class TestServiceContainer:
    """Tests for lazy service construction."""

    def test_services_are_singletons(self):
        container = ServiceContainer(make_settings())

        assert container.checkin_service is container.checkin_service
        assert container.checkin_service.store is container.checkin_store
        assert container.review_repository.engine is container.engine

    def test_concurrent_first_use_builds_one_store(self):
        container = ServiceContainer(make_settings())
        barrier = threading.Barrier(16)
        seen = []

        def resolve():
            barrier.wait()
            seen.append(container.checkin_service.store)

        threads = [threading.Thread(target=resolve) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(seen) == 16
        assert all(store is container.checkin_store for store in seen)

    def test_store_selection(self):
        memory = ServiceContainer(make_settings())
        sql = ServiceContainer(make_settings(checkin_store="database"))

        assert type(memory.checkin_store).__name__ == "InMemoryCheckInStore"
        assert type(sql.checkin_store).__name__ == "SqlCheckInStore"
        sql.engine.dispose()
