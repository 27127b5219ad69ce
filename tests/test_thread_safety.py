"""Tests for thread safety of Registry."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from wirekit.exceptions import WirekitCircularDependencyError, WirekitDuplicateNameError
from wirekit.fetch import Fetcher
from wirekit.registry import Registry


class ServiceA:
    pass


class ServiceB:
    def __init__(self, a: ServiceA) -> None:
        self.a = a


class TestConcurrentFetch:
    def test_concurrent_singleton_first_fetch_produces_once(self) -> None:
        """Concurrent first fetches of a singleton call the producer once."""
        registry = Registry()
        calls = 0
        calls_lock = threading.Lock()
        barrier = threading.Barrier(20)

        def producer() -> ServiceA:
            nonlocal calls
            with calls_lock:
                calls += 1
            time.sleep(0.01)
            return ServiceA()

        registry.register_singleton("a", producer)
        results: list[ServiceA] = []
        errors: list[Exception] = []

        def fetch_service() -> None:
            try:
                barrier.wait()
                results.append(registry["a"])
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=fetch_service) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert calls == 1
        assert len(results) == 20
        assert all(r is results[0] for r in results)

    def test_concurrent_factory_fetch_different_instances(self) -> None:
        """Concurrent factory fetches create different instances."""
        registry = Registry()
        registry.register_factory("a", ServiceA)
        results: list[ServiceA] = []
        errors: list[Exception] = []

        def fetch_service() -> None:
            try:
                results.append(registry["a"])
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=fetch_service) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(results) == 10
        assert len({id(r) for r in results}) == 10

    def test_singleton_producer_fetching_dependencies_does_not_deadlock(self) -> None:
        registry = Registry()
        registry.register_singleton("a", ServiceA)
        registry.register_singleton("b", lambda wired: ServiceB(wired["a"]))
        registry.register_factory("c", lambda wired: (wired["b"], wired["a"]))

        with ThreadPoolExecutor(max_workers=20) as executor:
            futures = [executor.submit(registry.fetch, "c") for _ in range(50)]
            results = [f.result(timeout=10) for f in as_completed(futures)]

        b, a = results[0]
        assert all(result[0] is b and result[1] is a for result in results)
        assert b.a is a


class TestConcurrentRegistration:
    def test_concurrent_registration_of_distinct_names(self) -> None:
        """Concurrent registration doesn't corrupt the registry."""
        registry = Registry()
        errors: list[Exception] = []

        def register_service(i: int) -> None:
            try:
                registry.register_factory(f"service_{i}", lambda: i)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=register_service, args=(i,)) for i in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(registry) == 50

    def test_concurrent_registration_of_same_name_succeeds_once(self) -> None:
        registry = Registry()
        barrier = threading.Barrier(10)
        duplicates: list[WirekitDuplicateNameError] = []

        def register_service(i: int) -> None:
            barrier.wait()
            try:
                registry.register_singleton("service", lambda: i)
            except WirekitDuplicateNameError as e:
                duplicates.append(e)

        threads = [threading.Thread(target=register_service, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(duplicates) == 9
        assert registry["service"] in range(10)

    def test_concurrent_registration_and_fetch(self) -> None:
        """Concurrent registration and fetching don't deadlock."""
        registry = Registry()
        results: list[object] = []
        errors: list[Exception] = []

        def register_and_fetch(i: int) -> None:
            try:
                registry.register_singleton(f"service_{i}", ServiceA)
                results.append(registry[f"service_{i}"])
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=register_and_fetch, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(results) == 10


class TestCycleDetectionThreadSafety:
    def test_production_chains_are_isolated_between_threads(self) -> None:
        """Each fetch owns its chain; parallel fetches of the same name are not cycles."""
        registry = Registry()
        barrier = threading.Barrier(8)
        chains: list[tuple[str, ...]] = []

        def leaf(wired: Fetcher) -> None:
            chains.append(wired.production_chain)
            barrier.wait(timeout=10)

        registry.register_factory("leaf", leaf)
        registry.register_factory("root", lambda wired: wired["leaf"])

        with ThreadPoolExecutor(max_workers=8) as executor:
            futures = [executor.submit(registry.fetch, "root") for _ in range(8)]
            for f in as_completed(futures):
                f.result()

        assert chains == [("root", "leaf")] * 8

    def test_cycle_detection_is_thread_isolated(self) -> None:
        registry = Registry()
        registry.register_factory("x", lambda wired: wired["y"])
        registry.register_factory("y", lambda wired: wired["x"])
        circular_errors: list[WirekitCircularDependencyError] = []
        unexpected_errors: list[Exception] = []

        def fetch_circular(name: str) -> None:
            try:
                registry[name]
            except WirekitCircularDependencyError as e:
                circular_errors.append(e)
            except Exception as e:
                unexpected_errors.append(e)

        threads = [
            threading.Thread(target=fetch_circular, args=("x" if i % 2 else "y",))
            for i in range(10)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not unexpected_errors
        assert len(circular_errors) == 10
        assert {e.chain for e in circular_errors} == {("x", "y", "x"), ("y", "x", "y")}

    def test_mutual_singletons_first_fetched_from_two_threads_raise_cycle(self) -> None:
        """Each thread holds one singleton and needs the other: both fail instead of hanging."""
        registry = Registry()
        barrier = threading.Barrier(2)
        first_calls = {"a", "b"}
        first_calls_lock = threading.Lock()

        def needs(name: str, dependency: str):
            def producer(wired: Fetcher) -> object:
                with first_calls_lock:
                    first = name in first_calls
                    first_calls.discard(name)
                if first:
                    barrier.wait(timeout=5)
                return wired[dependency]

            return producer

        registry.register_singleton("a", needs("a", "b"))
        registry.register_singleton("b", needs("b", "a"))
        circular_errors: dict[str, WirekitCircularDependencyError] = {}
        unexpected_errors: list[Exception] = []

        def fetch(name: str) -> None:
            try:
                registry[name]
            except WirekitCircularDependencyError as e:
                circular_errors[name] = e
            except Exception as e:
                unexpected_errors.append(e)

        threads = [threading.Thread(target=fetch, args=(name,)) for name in ("a", "b")]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert not any(t.is_alive() for t in threads)
        assert not unexpected_errors
        assert circular_errors["a"].chain == ("a", "b", "a")
        assert circular_errors["b"].chain == ("b", "a", "b")
