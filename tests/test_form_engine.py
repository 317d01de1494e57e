"""End-to-end tests: schema -> watchers -> evaluation -> renderer."""
import pytest

from formstate import (
    ArrayLayout,
    FieldDescriptor,
    FieldKind,
    FormEngine,
    GlobalContext,
    LogicEvaluator,
    SectionLayout,
    SubscriptionError,
    ValueStore,
)


class RenderLog:
    """Renderer double recording every (path, result) it receives."""

    def __init__(self):
        self.calls = []

    def __call__(self, descriptor, result):
        self.calls.append((descriptor.name, result))

    def paths(self):
        return [path for path, _ in self.calls]

    def clear(self):
        self.calls.clear()


def counting(fn, counter, key):
    def wrapped(scope, root):
        counter[key] = counter.get(key, 0) + 1
        return fn(scope, root)
    return wrapped


@pytest.fixture
def order_schema():
    return [
        SectionLayout("Order", [
            FieldDescriptor(FieldKind.SELECT, "mode"),
            FieldDescriptor(
                FieldKind.SWITCH, "customer.vip",
                dependencies=["name"],
                visibility=lambda scope, root: bool(scope["name"]),
            ),
        ]),
        ArrayLayout("items", [
            FieldDescriptor(
                FieldKind.TEXT, "name",
                dependencies=["active", "!mode"],
                visibility=lambda scope, root: scope["active"] and root["mode"] == "erp",
            ),
            FieldDescriptor(
                FieldKind.NUMBER, "qty",
                dependencies=["active"],
                props_logic=lambda scope, root: {"disabled": not scope["active"]},
            ),
        ]),
    ]


class TestMount:

    def test_mount_emits_initial_results(self, store, order_schema):
        render = RenderLog()
        with FormEngine(order_schema, store, render) as engine:
            assert set(render.paths()) == {
                "mode", "customer.vip",
                "items.0.name", "items.0.qty",
                "items.1.name", "items.1.qty",
                "items.2.name", "items.2.qty",
            }
            assert engine.result_for("items.0.name").visible
            assert not engine.result_for("items.1.name").visible
            assert engine.result_for("items.1.qty").props["disabled"] is True

    def test_one_subscription_per_dependent_field(self, store, order_schema):
        with FormEngine(order_schema, store):
            # customer.vip + 3x(name, qty) + the items array watcher; "mode" has no dependencies
            assert store.subscriber_count == 8
        assert store.subscriber_count == 0

    def test_visible_fields(self, store, order_schema):
        with FormEngine(order_schema, store) as engine:
            names = [d.name for d in engine.visible_fields()]
        assert "items.1.name" not in names
        assert "items.0.name" in names

    def test_subscription_failure_unwinds(self, order_schema):
        class FlakyStore(ValueStore):
            def subscribe(self, paths, callback):
                if any(str(p) == "items.1.active" for p in paths or ()):
                    raise ConnectionError("quota exceeded")
                return super().subscribe(paths, callback)

        store = FlakyStore({"mode": "erp", "customer": {"name": "Ada"},
                            "items": [{"active": True}, {"active": True}]})
        engine = FormEngine(order_schema, store)
        with pytest.raises(SubscriptionError):
            engine.mount()
        assert not engine.is_mounted
        assert store.subscriber_count == 0


class TestTargetedRecompute:
    """Only fields whose watch set overlaps a change are re-evaluated."""

    def test_item_change_only_recomputes_that_item(self, store, order_schema):
        render = RenderLog()
        with FormEngine(order_schema, store, render) as engine:
            render.clear()
            store.set_value("items.1.active", True)

            assert sorted(render.paths()) == ["items.1.name", "items.1.qty"]
            assert engine.result_for("items.1.name").visible
            assert engine.result_for("items.1.qty").props["disabled"] is False

    def test_absolute_dependency_recomputes_every_item(self, store, order_schema):
        render = RenderLog()
        with FormEngine(order_schema, store, render) as engine:
            render.clear()
            store.set_value("mode", "crm")

            # items.1.name was already hidden, so its result did not change
            assert sorted(render.paths()) == ["items.0.name", "items.2.name"]
            assert not engine.result_for("items.0.name").visible

    def test_unrelated_change_recomputes_nothing(self, store, order_schema):
        counter = {}
        schema = [
            FieldDescriptor(
                FieldKind.TEXT, "items.0.name",
                dependencies=["active"],
                visibility=counting(lambda s, r: s["active"], counter, "name"),
            ),
        ]
        with FormEngine(schema, store):
            assert counter["name"] == 1
            store.set_value("items.1.active", True)
            store.set_value("customer.name", "Grace")
            assert counter["name"] == 1

    def test_batch_recomputes_once_on_settled_tree(self, store):
        seen = []

        def visibility(scope, root):
            seen.append((scope["active"], root["mode"]))
            return True

        schema = [FieldDescriptor(FieldKind.TEXT, "items.0.name",
                                  dependencies=["active", "!mode"], visibility=visibility)]
        with FormEngine(schema, store):
            seen.clear()
            with store.batch():
                store.set_value("items.0.active", False)
                store.set_value("mode", "crm")
        assert seen == [(False, "crm")]

    def test_unchanged_result_not_rerendered(self, store, order_schema):
        render = RenderLog()
        with FormEngine(order_schema, store, render):
            render.clear()
            store.set_value("items.0.active", True)
        assert render.calls == []


class TestArrays:
    """Bindings follow the array's length."""

    def test_appended_item_gets_bindings(self, store, order_schema):
        render = RenderLog()
        with FormEngine(order_schema, store, render) as engine:
            render.clear()
            items = store.get_values("items") + [{"name": "pin", "active": True, "qty": 2}]
            store.set_value("items", items)

            assert engine.result_for("items.3.name").visible
            assert "items.3.qty" in render.paths()

    def test_removed_item_releases_subscriptions(self, store, order_schema):
        with FormEngine(order_schema, store) as engine:
            before = store.subscriber_count
            store.set_value("items", store.get_values("items")[:1])

            assert engine.result_for("items.2.name") is None
            assert store.subscriber_count == before - 4

    def test_removed_item_is_not_evaluated(self, store, order_schema):
        failures = []
        evaluator = LogicEvaluator(on_error=lambda d, e: failures.append(d.name))
        with FormEngine(order_schema, store, evaluator=evaluator):
            store.set_value("items", store.get_values("items")[:1])
        assert failures == []


class TestGlobalContext:

    def test_submitting_disables_every_field(self, store, order_schema):
        with FormEngine(order_schema, store) as engine:
            engine.set_global_context(GlobalContext(submitting=True))
            assert all(r.props["disabled"] for r in engine.results.values())
            assert not any(r.props["read_only"] for r in engine.results.values())

            engine.set_global_context(GlobalContext())
            assert engine.result_for("items.0.qty").props["disabled"] is False

    def test_read_only_sets_both_flags(self, store, order_schema):
        with FormEngine(order_schema, store, global_context=GlobalContext(read_only=True)) as engine:
            result = engine.result_for("mode")
            assert result.props["disabled"] and result.props["read_only"]


def test_failing_field_stays_visible(store):
    schema = [FieldDescriptor(FieldKind.TEXT, "customer.name",
                              dependencies=["!missing"],
                              visibility=lambda scope, root: root["missing"]["flag"])]
    with FormEngine(schema, store) as engine:
        result = engine.result_for("customer.name")
    assert result.visible
    assert result.failed


class TestStoreWithoutToken:
    """Stores that follow the bare get/subscribe/set contract."""

    def test_visibility_follows_changes(self, contract_store):
        assert not hasattr(contract_store, "token")
        schema = [FieldDescriptor(FieldKind.TEXT, "name", dependencies=["mode"],
                                  visibility=lambda scope, root: root["mode"] == "a")]
        with FormEngine(schema, contract_store) as engine:
            assert engine.result_for("name").visible

            contract_store.set_value("mode", "b")
            assert engine.result_for("name").visible is False

            contract_store.set_value("mode", "a")
            assert engine.result_for("name").visible is True

    def test_array_growth_is_bound(self, contract_store):
        schema = [ArrayLayout("items", [
            FieldDescriptor(FieldKind.TEXT, "label", dependencies=["active"],
                            visibility=lambda scope, root: scope["active"]),
        ])]
        with FormEngine(schema, contract_store) as engine:
            contract_store.set_value("items", [{"active": True}, {"active": False}])

            assert [d.name for d in engine.fields()] == ["items.0.label", "items.1.label"]
            assert engine.result_for("items.1.label").visible is False
