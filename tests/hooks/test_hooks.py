import pytest

from userdocs.core import Document, IntegerField, StringField
from userdocs.hooks import hooks


class Sample(Document):
    name = StringField(required=True)
    age = IntegerField(default=0)


@pytest.fixture(autouse=True)
def clear_sample_hooks():
    hooks.clear(model=Sample)
    yield
    hooks.clear(model=Sample)


async def test_hooks_fire_in_order(session):
    events = []

    for event_name in ["before_validate", "after_validate", "before_save", "after_save"]:

        def handler(inst, event=event_name, **ctx):
            events.append((event, inst.name, ctx.get("created")))

        Sample.register_hook(event_name, handler)

    sample = Sample(name="Alice", age=21)
    await sample.save(session)
    sample.age = 22
    await sample.save(session)

    assert events == [
        ("before_validate", "Alice", None),
        ("after_validate", "Alice", None),
        ("before_save", "Alice", True),
        ("after_save", "Alice", True),
        ("before_validate", "Alice", None),
        ("after_validate", "Alice", None),
        ("before_save", "Alice", False),
        ("after_save", "Alice", False),
    ]


async def test_coroutine_hooks_are_awaited(session):
    fired = []

    async def before_delete(instance, **context):
        assert context["session"] is session
        fired.append(("before", instance.name))

    async def after_delete(instance, **context):
        fired.append(("after", instance.name))

    Sample.register_hook("before_delete", before_delete)
    Sample.register_hook("after_delete", after_delete)

    sample = Sample(name="Bob", age=30)
    await sample.save(session)
    await sample.remove(session)

    assert fired == [("before", "Bob"), ("after", "Bob")]


async def test_filter_remove_does_not_fire_delete_hooks(session):
    fired = []
    Sample.register_hook("before_delete", lambda instance, **ctx: fired.append(instance))

    await Sample(name="Bob").save(session)
    assert await Sample.remove(session, {"name": "Bob"}) == 1
    assert fired == []


async def test_failing_before_save_hook_prevents_write(session):
    def refuse(instance, **context):
        raise RuntimeError("refused")

    Sample.register_hook("before_save", refuse)
    with pytest.raises(RuntimeError):
        await Sample(name="Carl").save(session)
    assert await Sample.count(session) == 0


async def test_global_handlers_run_before_model_handlers(session):
    order = []

    def global_handler(instance, **context):
        order.append("global")

    hooks.register("after_save", global_handler)
    Sample.register_hook("after_save", lambda instance, **ctx: order.append("model"))
    try:
        await Sample(name="Dana").save(session)
    finally:
        hooks.unregister("after_save", global_handler)

    assert order == ["global", "model"]


def test_unknown_event_rejected():
    with pytest.raises(ValueError):
        Sample.register_hook("after_commit", lambda instance, **ctx: None)
