from __future__ import annotations

import pytest

from skillbot.enums import MessageKind
from skillbot.models import (CatalogItem, Conversation, ErrorMessage, ItemRef, RecommendationMessage,
                             SystemNotice, UserMessage, WelcomeMessage, conversation_key,
                             message_from_dict)


def test_conversation_id_joins_user_and_agent():
    assert conversation_key("u1", "skillbot") == "u1_skillbot"
    assert Conversation(user_id="u1", agent_id="skillbot").conversation_id == "u1_skillbot"


def test_recommendation_message_requires_items():
    with pytest.raises(ValueError):
        RecommendationMessage(id="bot-1", sender_id="skillbot", content="Try this", recommended_items=[])


def test_recommendation_message_survives_storage():
    ref = ItemRef(id="gig-logo", title="Minimalist Logo Design", category="design", price=350000.0,
                  delivery_days=3, rating=4.8)
    msg = RecommendationMessage(id="bot-1", sender_id="skillbot", content="Try this", recommended_items=[ref])

    restored = message_from_dict(msg.to_dict())

    assert isinstance(restored, RecommendationMessage)
    assert restored.kind is MessageKind.RECOMMENDATION
    assert restored.recommended_items == [ref]


def test_system_notice_is_synthetic_and_keeps_dropped_count():
    notice = SystemNotice(id="notice-1", sender_id="system", content="12 archived", dropped_count=12)
    data = notice.to_dict()

    assert data["kind"] == "system-notice"
    assert data["is_synthetic"] is True
    restored = message_from_dict(data)
    assert restored.is_synthetic and restored.dropped_count == 12
    assert not UserMessage(id="u-1", sender_id="u1", content="hi").is_synthetic


def test_error_message_keeps_failure_reason():
    msg = ErrorMessage(id="bot-2", sender_id="skillbot", content="Sorry", failure="quota-exceeded")
    assert message_from_dict(msg.to_dict()).failure == "quota-exceeded"


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        message_from_dict({"id": "x", "kind": "banner", "content": ""})


def test_append_rejects_duplicate_ids_and_tracks_last_time():
    conv = Conversation(user_id="u1", agent_id="skillbot")
    first = WelcomeMessage(id="welcome-1", sender_id="skillbot", content="Hi", created_at="2024-01-01T10:00:00")
    conv.append(first)
    assert conv.last_message_time == "2024-01-01T10:00:00"

    with pytest.raises(ValueError):
        conv.append(UserMessage(id="welcome-1", sender_id="u1", content="dup"))
    assert len(conv.messages) == 1


def test_conversation_round_trip_keeps_order_and_bookkeeping():
    conv = Conversation(user_id="u1", agent_id="skillbot", trimmed_count=7,
                        last_trim_size_before=400, last_trim_size_after=100)
    conv.append(WelcomeMessage(id="w", sender_id="skillbot", content="Hi"))
    conv.append(UserMessage(id="u", sender_id="u1", content="logo please"))

    restored = Conversation.from_dict(conv.to_dict())

    assert [m.id for m in restored.messages] == ["w", "u"]
    assert restored.trimmed_count == 7
    assert (restored.last_trim_size_before, restored.last_trim_size_after) == (400, 100)


def test_catalog_item_reads_marketplace_shape():
    item = CatalogItem.from_dict({
        "id": "g1",
        "title": "Landing Page",
        "category": "web",
        "tags": ["WordPress", " ", "SEO"],
        "packages": {"basic": {"price": 750000, "deliveryTime": 5}},
        "rating": 7,
        "reviewCount": 3,
        "totalOrders": 41,
        "isActive": False,
    })

    assert item.basic_price == 750000.0
    assert item.basic_delivery_days == 5
    assert item.tags == frozenset({"wordpress", "seo"})
    assert item.rating == 5.0
    assert (item.review_count, item.total_orders, item.is_active) == (3, 41, False)
    assert item.to_ref().price == 750000.0
