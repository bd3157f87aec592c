import asyncio
import threading

from conftest import span_md

from microjson.spans import SpanRegistry


def _names(registry):
    return [record.name for record in registry.current()]


def test_depth_tracks_nesting_and_returns_to_zero():
    registry = SpanRegistry()
    for name in ("a", "b", "c"):
        registry.create(name, span_md(name))

    assert registry.depth() == 0
    registry.enter("a")
    assert registry.depth() == 1
    registry.enter("b")
    registry.enter("c")
    assert _names(registry) == ["a", "b", "c"]
    registry.exit("c")
    assert registry.depth() == 2
    registry.exit("b")
    registry.enter("b")
    assert registry.depth() == 2
    registry.exit("b")
    registry.exit("a")
    assert registry.depth() == 0


def test_out_of_order_exit_unwinds_inner_spans():
    registry = SpanRegistry()
    for name in ("outer", "middle", "inner"):
        registry.create(name, span_md(name))
        registry.enter(name)

    registry.exit("middle")
    assert _names(registry) == ["outer"]
    assert registry.get("inner").entered == 0


def test_unknown_ids_are_ignored():
    registry = SpanRegistry()
    registry.record("nope", {"a": 1})
    registry.enter("nope")
    registry.exit("nope")
    registry.close("nope")
    assert registry.depth() == 0
    assert len(registry) == 0


def test_exit_of_span_not_entered_here_keeps_stack():
    registry = SpanRegistry()
    registry.create("a", span_md("a"))
    registry.create("b", span_md("b"))
    registry.enter("a")
    registry.exit("b")
    assert _names(registry) == ["a"]


def test_record_extends_fields():
    registry = SpanRegistry()
    registry.create(1, span_md("req"), {"initial": "yes"})
    registry.record(1, {"extra": "value"})
    assert registry.get(1).fields.fragment == '"initial":"yes","extra":"value"'


def test_close_releases_unentered_span():
    registry = SpanRegistry()
    registry.create(1, span_md("req"))
    registry.close(1)
    assert registry.get(1) is None


def test_close_while_entered_is_deferred_to_last_exit():
    registry = SpanRegistry()
    registry.create(1, span_md("req"), {"id": 42})
    registry.enter(1)
    registry.close(1)

    record = registry.get(1)
    assert record is not None and record.closed
    assert registry.current()[0].fields.fragment == '"id":42'

    registry.exit(1)
    assert registry.get(1) is None
    assert registry.depth() == 0


def test_reused_id_replaces_stale_record():
    registry = SpanRegistry()
    registry.create(7, span_md("old"))
    registry.enter(7)
    registry.create(7, span_md("new"))
    registry.exit(7)
    registry.close(7)
    assert registry.get(7) is None


def test_threads_keep_separate_stacks():
    registry = SpanRegistry()
    registry.create("main", span_md("main"))
    registry.create("worker", span_md("worker"))
    registry.enter("main")
    seen = {}

    def run():
        registry.enter("worker")
        seen["inside"] = _names(registry)[-1]
        registry.exit("worker")
        seen["after"] = registry.depth()

    t = threading.Thread(target=run)
    t.start()
    t.join()

    assert seen["inside"] == "worker"
    assert _names(registry) == ["main"]
    registry.exit("main")


def test_asyncio_tasks_keep_separate_stacks():
    registry = SpanRegistry()

    async def work(name):
        registry.create(name, span_md(name))
        registry.enter(name)
        await asyncio.sleep(0)
        names = _names(registry)
        registry.exit(name)
        return names

    async def main():
        return await asyncio.gather(work("one"), work("two"))

    assert asyncio.run(main()) == [["one"], ["two"]]


def test_concurrent_records_are_all_kept():
    registry = SpanRegistry()
    registry.create("shared", span_md("shared"))

    def run(i):
        for j in range(50):
            registry.record("shared", {f"t{i}_{j}": j})

    threads = [threading.Thread(target=run, args=(i,)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(registry.get("shared").fields) == 200
