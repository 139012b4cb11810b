"""Integration tests for QuickClient."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

import pytest

from quickkv import (
    CodecError,
    HashValue,
    KeyValue,
    QuickClient,
    QuickConfiguration,
    StorageIOError,
    StringValue,
    TypeMismatchError,
    Value,
)
from quickkv.adapters.outbound import DirectWritePath
from quickkv.adapters.outbound.file_record_log import FILE_HEADER_SIZE, frame_record
from quickkv.domain.entities import Record
from quickkv.infrastructure.metrics import MetricsRegistry
from quickkv.ports.outbound.record_log import RecordLog


@dataclass
class Book:
    title: str
    author: str

    def to_value(self) -> Value:
        return HashValue({"title": self.title, "author": self.author})

    @classmethod
    def from_value(cls, value: Value) -> Book:
        data = value.as_hash()
        return cls(title=data["title"], author=data["author"])


@pytest.mark.integration
class TestScenarios:
    """End-to-end usage scenarios."""

    def test_set_and_get_string(self, client: QuickClient) -> None:
        client.set("hello", StringValue("hello world!"))
        assert client.get("hello", str) == "hello world!"

    def test_batch_of_storables(self, client: QuickClient) -> None:
        books = [
            Book("Dune", "Frank Herbert"),
            Book("Emma", "Jane Austen"),
            Book("Ulysses", "James Joyce"),
        ]
        client.set_many([KeyValue(str(i), book) for i, book in enumerate(books)])

        result = client.get_many(["0", "1", "2"], Book)

        assert [item.key for item in result] == ["0", "1", "2"]
        assert [item.value.title for item in result] == ["Dune", "Emma", "Ulysses"]

    def test_large_hash(self, client: QuickClient) -> None:
        data = {str(i): str(i) for i in range(49)}
        client.set("test-hash", HashValue(data))

        result = client.get("test-hash", dict)

        assert len(result) == 49
        assert result == data

    def test_value_survives_reopen(
        self, test_config: QuickConfiguration, metrics_registry: MetricsRegistry
    ) -> None:
        with QuickClient(test_config, metrics=metrics_registry) as first:
            first.set("k", "v")

        with QuickClient(test_config, metrics=metrics_registry) as second:
            assert second.get("k", str) == "v"


@pytest.mark.integration
class TestClientSemantics:
    """Tests for the client contract."""

    def test_missing_key_is_none(self, client: QuickClient) -> None:
        assert client.get("missing") is None
        assert client.get("missing", int) is None

    def test_default_shape_is_value(self, client: QuickClient) -> None:
        client.set("n", 42)
        assert client.get("n").as_int() == 42

    def test_last_write_wins_and_file_keeps_both(
        self, client: QuickClient, db_path: Path
    ) -> None:
        client.set("k", "first")
        size_after_first = db_path.stat().st_size
        client.set("k", "second")

        assert client.get("k", str) == "second"
        assert len(client) == 1
        # Both records remain on disk
        assert db_path.stat().st_size > size_after_first > FILE_HEADER_SIZE

    def test_replay_reconstructs_state(
        self, test_config: QuickConfiguration, metrics_registry: MetricsRegistry
    ) -> None:
        expected = {}
        with QuickClient(test_config, metrics=metrics_registry) as c:
            for i in range(50):
                key = f"key:{i % 10}"
                c.set(key, i)
                expected[key] = i

        with QuickClient(test_config, metrics=metrics_registry) as c:
            assert {item.key: item.value for item in c.get_many(expected, int)} == expected
            assert c.keys() == [f"key:{i}" for i in range(10)]

    def test_get_many_omits_missing_and_keeps_order(self, client: QuickClient) -> None:
        client.set_many([("a", 1), ("b", 2), ("c", 3)])

        result = client.get_many(["c", "nope", "a", "b"], int)

        assert result == [KeyValue("c", 3), KeyValue("a", 1), KeyValue("b", 2)]

    def test_hash_read_of_string_raises(self, client: QuickClient) -> None:
        client.set("s", "text")
        with pytest.raises(TypeMismatchError):
            client.get("s", dict)
        with pytest.raises(TypeMismatchError):
            client.get("s").as_hash()

    def test_unsupported_value_type(self, client: QuickClient) -> None:
        with pytest.raises(TypeMismatchError):
            client.set("k", object())
        assert client.get("k") is None

    def test_set_many_validates_before_writing(self, client: QuickClient) -> None:
        with pytest.raises(TypeMismatchError):
            client.set_many([("a", 1), ("b", object())])
        assert client.keys() == []

    def test_set_many_rejects_bad_items(self, client: QuickClient) -> None:
        with pytest.raises(TypeMismatchError):
            client.set_many(["not a pair"])  # type: ignore[list-item]

    def test_round_trip_of_natives(self, client: QuickClient) -> None:
        samples = {
            "str": "héllo",
            "int": -(2**70),
            "float": 3.25,
            "bool": False,
            "bytes": b"\x00\x01",
            "dict": {"a": "b"},
            "list": [[1, 2], [3]],
            "tuple": (1, 2),
        }
        client.set_many(samples.items())
        for key, value in samples.items():
            assert client.get(key, type(value)) == value

    def test_exists(self, client: QuickClient) -> None:
        client.set("k", 1)
        assert client.exists("k")
        assert not client.exists("other")

    def test_undecodable_value_fails_open(
        self, test_config: QuickConfiguration, metrics_registry: MetricsRegistry, db_path: Path
    ) -> None:
        with QuickClient(test_config, metrics=metrics_registry) as c:
            c.set("good", 1)
        with open(db_path, "ab") as f:
            f.write(frame_record(Record("bad", b"\xff")))

        with pytest.raises(CodecError):
            QuickClient(test_config, metrics=metrics_registry)

    def test_closed_client_raises(self, test_config: QuickConfiguration, metrics_registry) -> None:
        c = QuickClient(test_config, metrics=metrics_registry)
        c.close()

        assert c.closed
        with pytest.raises(StorageIOError):
            c.get("k")
        with pytest.raises(StorageIOError):
            c.set("k", 1)

    def test_operation_metrics(self, client: QuickClient, metrics_registry: MetricsRegistry) -> None:
        client.set("k", 1)
        client.get("k")
        with pytest.raises(TypeMismatchError):
            client.get("k", str)

        registry = metrics_registry.registry
        assert registry.get_sample_value(
            "quickkv_operations_total", {"operation": "set", "status": "ok"}
        ) == 1.0
        assert registry.get_sample_value(
            "quickkv_operations_total", {"operation": "get", "status": "ok"}
        ) == 1.0
        assert registry.get_sample_value(
            "quickkv_operations_total", {"operation": "get", "status": "error"}
        ) == 1.0


@pytest.mark.integration
class TestExpiry:
    """Tests for per-record expiry."""

    def test_ttl_expires(self, test_config: QuickConfiguration, metrics_registry, clock) -> None:
        with QuickClient(test_config, metrics=metrics_registry, clock=clock) as c:
            c.set("session", "abc", ttl=timedelta(minutes=5))
            c.set("forever", "x")

            clock.advance(timedelta(minutes=4))
            assert c.get("session", str) == "abc"

            clock.advance(timedelta(minutes=1))
            assert c.get("session") is None
            assert not c.exists("session")
            assert c.keys() == ["forever"]

    def test_expiry_survives_reopen(
        self, test_config: QuickConfiguration, metrics_registry, clock
    ) -> None:
        with QuickClient(test_config, metrics=metrics_registry, clock=clock) as c:
            c.set("session", "abc", ttl=timedelta(seconds=10))

        clock.advance(timedelta(seconds=11))
        with QuickClient(test_config, metrics=metrics_registry, clock=clock) as c:
            assert c.get("session") is None

    def test_default_ttl(self, db_path: Path, metrics_registry, clock) -> None:
        config = QuickConfiguration(path=db_path, sync_mode="none", default_ttl=timedelta(seconds=1))
        with QuickClient(config, metrics=metrics_registry, clock=clock) as c:
            c.set_many([("a", 1), ("b", 2)])
            clock.advance(timedelta(seconds=1))
            assert c.get_many(["a", "b"]) == []

    def test_rewrite_without_ttl_clears_expiry(
        self, client: QuickClient
    ) -> None:
        client.set("k", 1, ttl=timedelta(seconds=1))
        client.set("k", 2)
        assert client.get("k", int) == 2

    def test_non_positive_ttl_rejected(self, client: QuickClient) -> None:
        with pytest.raises(ValueError):
            client.set("k", 1, ttl=timedelta(0))


@pytest.mark.integration
class TestTypedClient:
    """Tests for typed views."""

    def test_typed_view(self, client: QuickClient) -> None:
        books = client.typed(Book)
        books.set("dune", Book("Dune", "Frank Herbert"))
        books.set_many([("emma", Book("Emma", "Jane Austen"))])

        assert books.get("dune") == Book("Dune", "Frank Herbert")
        assert [item.key for item in books.get_many(["emma", "dune"])] == ["emma", "dune"]

    def test_typed_view_rejects_other_shapes(self, client: QuickClient) -> None:
        strings = client.typed(str)
        with pytest.raises(TypeMismatchError):
            strings.set("k", 5)  # type: ignore[arg-type]

        client.set("n", 5)
        with pytest.raises(TypeMismatchError):
            strings.get("n")

    def test_unregistered_shape(self, client: QuickClient) -> None:
        with pytest.raises(TypeMismatchError):
            client.typed(set)


@pytest.mark.integration
class TestRuntimes:
    """Tests for the memory runtime."""

    def test_memory_runtime_writes_no_file(self, temp_dir: Path, metrics_registry) -> None:
        path = temp_dir / "mem.qkv"
        config = QuickConfiguration(path=path, runtime="memory")

        with QuickClient(config, metrics=metrics_registry) as c:
            c.set("k", "v")
            assert c.get("k", str) == "v"

        assert not path.exists()
        with QuickClient(config, metrics=metrics_registry) as c:
            assert c.get("k") is None

    def test_injected_write_path(self, test_config: QuickConfiguration, metrics_registry) -> None:
        created: list[DirectWritePath] = []

        def factory(log: RecordLog) -> DirectWritePath:
            path = DirectWritePath(log)
            created.append(path)
            return path

        with QuickClient(test_config, metrics=metrics_registry, write_path_factory=factory) as c:
            c.set_many([("a", 1), ("b", 2)])
            assert len(created) == 1
            assert created[0].pending == 0
            assert created[0].log.record_count == 2

    def test_directory_path_uses_default_name(self, temp_dir: Path, metrics_registry) -> None:
        config = QuickConfiguration(path=temp_dir, sync_mode="none")
        with QuickClient(config, metrics=metrics_registry) as c:
            c.set("k", 1)
        assert (temp_dir / "db.qkv").exists()


@pytest.mark.integration
@pytest.mark.slow
class TestConcurrency:
    """Tests for concurrent access through one client."""

    def test_concurrent_writers_lose_nothing(self, client: QuickClient) -> None:
        threads_count = 8
        per_thread = 50
        errors: list[BaseException] = []

        def writer(thread_id: int) -> None:
            try:
                for i in range(per_thread):
                    client.set(f"t{thread_id}:{i}", i)
            except BaseException as exc:  # pragma: no cover - surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=writer, args=(t,)) for t in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(client) == threads_count * per_thread
        for t in range(threads_count):
            keys = [f"t{t}:{i}" for i in range(per_thread)]
            assert [item.value for item in client.get_many(keys, int)] == list(range(per_thread))

    def test_readers_see_whole_batches(self, client: QuickClient) -> None:
        """A reader never observes half of a set_many."""
        keys = [f"k{i}" for i in range(20)]
        client.set_many([(k, 0) for k in keys])
        torn: list[list[int]] = []
        stop = threading.Event()

        def reader() -> None:
            while not stop.is_set():
                values = {item.value for item in client.get_many(keys, int)}
                if len(values) != 1:
                    torn.append(sorted(values))

        thread = threading.Thread(target=reader)
        thread.start()
        for round_number in range(1, 30):
            client.set_many([(k, round_number) for k in keys])
        stop.set()
        thread.join()

        assert torn == []
