"""
Thread Safety Tests

Tests for concurrent access to a ServiceBuilder.
Verifies that shared instances are constructed exactly once and that
throwaway instances and registration do not interfere with them.
"""

import concurrent.futures
import threading
import unittest
from typing import List

from fixtures import Client, CountingClient, MockClient
from servicebuilder import InstanceRegistry, ServiceBuilder, UnknownServiceError


def counting_builder(delay: float = 0.05) -> ServiceBuilder:
    return ServiceBuilder({
        "counting": {"class": "fixtures.CountingClient", "params": {"delay": delay}},
        "other": {"class": "fixtures.CountingClient", "params": {"delay": delay}},
    })


class TestConstructOnce(unittest.TestCase):
    """Concurrent get() for one unbuilt name constructs once."""

    def setUp(self):
        CountingClient.reset()

    def test_same_instance_across_threads(self):
        builder = counting_builder()
        results: List[CountingClient] = []
        lock = threading.Lock()
        barrier = threading.Barrier(10)

        def resolve_in_thread():
            barrier.wait()
            client = builder.get("counting")
            with lock:
                results.append(client)

        threads = [threading.Thread(target=resolve_in_thread) for _ in range(10)]

        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(results), 10)
        self.assertEqual(CountingClient.created, 1)
        first = results[0]
        for client in results[1:]:
            self.assertIs(client, first, "Shared instance should be constructed once")

    def test_different_names_construct_independently(self):
        builder = counting_builder()

        with concurrent.futures.ThreadPoolExecutor(max_workers=8) as executor:
            futures = [
                executor.submit(builder.get, name)
                for name in ["counting", "other"] * 10
            ]
            results = [f.result() for f in futures]

        self.assertEqual(CountingClient.created, 2)
        self.assertEqual(len({id(r) for r in results}), 2)

    def test_throwaway_calls_are_independent(self):
        builder = counting_builder(delay=0.01)

        with concurrent.futures.ThreadPoolExecutor(max_workers=5) as executor:
            futures = [executor.submit(builder.get, "counting", True) for _ in range(20)]
            results = [f.result() for f in futures]

        self.assertEqual(CountingClient.created, 20)
        self.assertEqual(len({id(r) for r in results}), 20)
        shared = builder.get("counting")
        self.assertNotIn(id(shared), {id(r) for r in results})


class TestConcurrentRegistration(unittest.TestCase):
    """Registration racing with construction."""

    def setUp(self):
        CountingClient.reset()

    def test_unregister_waits_for_construction(self):
        builder = counting_builder(delay=0.1)
        errors: List[Exception] = []

        def resolve():
            try:
                builder.get("counting")
            except UnknownServiceError as e:
                errors.append(e)

        thread = threading.Thread(target=resolve)
        thread.start()
        builder.unregister("counting")
        thread.join()

        # Whatever the interleaving, no instance survives the removal
        self.assertFalse(builder.contains("counting"))
        with self.assertRaises(UnknownServiceError):
            builder.get("counting")

    def test_concurrent_set_keeps_definition_and_instance_together(self):
        builder = ServiceBuilder()
        barrier = threading.Barrier(8)

        def set_in_thread(i):
            barrier.wait()
            for _ in range(50):
                if i % 2:
                    builder.set("client", Client(f"http://{i}.test/"))
                else:
                    builder.set("client", MockClient({"subdomain": str(i)}))

        threads = [threading.Thread(target=set_in_thread, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        instance = builder.get("client")
        cls = type(instance)
        self.assertEqual(
            builder.get_definition("client").type,
            f"{cls.__module__}.{cls.__qualname__}",
        )


class TestInstanceRegistry(unittest.TestCase):
    """Direct InstanceRegistry tests."""

    def test_failed_create_stores_nothing(self):
        registry = InstanceRegistry()

        def fail():
            raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            registry.get_or_create("x", fail)

        self.assertFalse(registry.contains("x"))
        self.assertEqual(registry.get_or_create("x", lambda: 42), 42)

    def test_put_and_discard(self):
        registry = InstanceRegistry()
        instance = object()

        registry.put("x", instance)
        self.assertIs(registry.get_or_create("x", object), instance)
        self.assertEqual(registry.names(), {"x"})

        registry.discard("x")
        registry.discard("x")
        self.assertEqual(registry.names(), set())

    def test_name_locks_are_released_when_unused(self):
        registry = InstanceRegistry()

        registry.get_or_create("x", object)
        registry.put("y", object())
        registry.discard("y")
        registry.discard("never-created")

        self.assertEqual(registry.pending(), set())

    def test_name_lock_kept_while_construction_is_waited_on(self):
        registry = InstanceRegistry()
        started = threading.Event()
        release = threading.Event()

        def slow_create():
            started.set()
            release.wait(5)
            return object()

        with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
            first = executor.submit(registry.get_or_create, "x", slow_create)
            started.wait(5)
            self.assertEqual(registry.pending(), {"x"})
            second = executor.submit(registry.get_or_create, "x", object)
            release.set()
            self.assertIs(first.result(), second.result())

        self.assertEqual(registry.pending(), set())


if __name__ == '__main__':
    unittest.main()
