import asyncio
import random

import pytest

from app.core.events import EventBus
from app.core.message_templates import TEMPLATES_BY_CATEGORY, MessageContext, RandomTemplateProvider
from app.models.enums import NotificationCategory

CONTEXT = MessageContext(
    school="Colégio Horizonte",
    name="Maria",
    description="Mensalidade Março",
    amount="450,00",
    due_date="10/03/2024",
)


def test_sync_and_async_handlers_receive_the_payload():
    bus = EventBus()
    received = []

    async def async_handler(payload):
        received.append(("async", payload["id"]))

    bus.subscribe("notification:updated", lambda payload: received.append(("sync", payload["id"])))
    bus.subscribe("notification:updated", async_handler)

    async def run():
        bus.emit("notification:updated", {"id": 1})
        await asyncio.sleep(0)

    asyncio.run(run())

    assert received == [("sync", 1), ("async", 1)]


def test_failing_handler_does_not_break_emit_or_other_handlers():
    bus = EventBus()
    received = []

    def broken(payload):
        raise RuntimeError("socket gone")

    async def broken_async(payload):
        raise RuntimeError("socket gone")

    bus.subscribe("notification:created", broken)
    bus.subscribe("notification:created", broken_async)
    bus.subscribe("notification:created", received.append)

    async def run():
        bus.emit("notification:created", {"id": 2})
        await asyncio.sleep(0)

    asyncio.run(run())

    assert received == [{"id": 2}]


def test_unsubscribe_and_unknown_events():
    bus = EventBus()
    received = []
    bus.subscribe("notification:created", received.append)
    bus.unsubscribe("notification:created", received.append)
    bus.unsubscribe("notification:updated", received.append)

    bus.emit("notification:created", {"id": 3})
    bus.emit("nobody:listens", {"id": 4})

    assert received == []


@pytest.mark.parametrize("category", list(NotificationCategory))
def test_every_category_renders_every_variant(category):
    for template in TEMPLATES_BY_CATEGORY[category]:
        provider = RandomTemplateProvider(templates={category: (template,)})
        text = provider.render(category, CONTEXT)
        assert "Colégio Horizonte" in text
        assert "{" not in text


def test_variants_rotate():
    provider = RandomTemplateProvider(rng=random.Random(42))
    texts = {provider.render(NotificationCategory.overdue, CONTEXT) for _ in range(50)}
    assert len(texts) == len(TEMPLATES_BY_CATEGORY[NotificationCategory.overdue])


def test_category_strings_are_accepted():
    text = RandomTemplateProvider(rng=random.Random(0)).render("due_today", CONTEXT)
    assert text in {t.format(**CONTEXT.__dict__) for t in TEMPLATES_BY_CATEGORY[NotificationCategory.due_today]}
