"""
Dataclass models for the assistant.

Messages are a tagged union: one dataclass per MessageKind, each carrying
only the fields that kind needs. Stored documents are plain JSON built from
``to_dict`` and read back with ``message_from_dict`` / ``Conversation.from_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Type, Union

from .enums import MessageKind
from .utils.helpers import iso_now


def conversation_key(user_id: str, agent_id: str) -> str:
    return f"{user_id}_{agent_id}"


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# ────────────────────────────────────────────────────────
# Catalog
# ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ItemRef:
    """Compact card payload stored on recommendation messages"""
    id: str
    title: str
    category: str = ""
    price: Optional[float] = None
    delivery_days: Optional[int] = None
    rating: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "price": self.price,
            "delivery_days": self.delivery_days,
            "rating": self.rating,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ItemRef":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            category=str(data.get("category", "") or ""),
            price=data.get("price"),
            delivery_days=data.get("delivery_days"),
            rating=data.get("rating"),
        )


@dataclass(frozen=True)
class CatalogItem:
    """Read-only listing snapshot used for ranking."""
    id: str
    title: str
    category: str
    subcategory: str = ""
    tags: FrozenSet[str] = frozenset()
    basic_price: float = 0.0
    basic_delivery_days: int = 0
    rating: float = 0.0
    review_count: int = 0
    total_orders: int = 0
    is_active: bool = True
    description: str = ""
    freelancer_name: str = ""

    def to_ref(self) -> ItemRef:
        return ItemRef(
            id=self.id,
            title=self.title,
            category=self.category,
            price=self.basic_price,
            delivery_days=self.basic_delivery_days,
            rating=self.rating,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogItem":
        """Accepts flat records and marketplace records with ``packages.basic``."""
        basic = ((data.get("packages") or {}).get("basic") or {})
        price = data.get("basic_price", data.get("basicPrice", basic.get("price")))
        delivery = data.get("basic_delivery_days", data.get("basicDeliveryDays", basic.get("deliveryTime")))
        tags = data.get("tags") or []
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            title=str(data.get("title") or ""),
            category=str(data.get("category") or ""),
            subcategory=str(data.get("subcategory") or ""),
            tags=frozenset(str(t).lower() for t in tags if str(t).strip()),
            basic_price=_to_float(price),
            basic_delivery_days=_to_int(delivery),
            rating=max(0.0, min(5.0, _to_float(data.get("rating")))),
            review_count=_to_int(data.get("review_count", data.get("reviewCount"))),
            total_orders=_to_int(data.get("total_orders", data.get("totalOrders"))),
            is_active=bool(data.get("is_active", data.get("isActive", True))),
            description=str(data.get("description") or ""),
            freelancer_name=str(data.get("freelancer_name") or data.get("freelancerName") or ""),
        )


# ────────────────────────────────────────────────────────
# Messages (tagged union)
# ────────────────────────────────────────────────────────

@dataclass
class _BaseMessage:
    id: str
    sender_id: str
    content: str
    created_at: str = field(default_factory=iso_now)

    kind: ClassVar[MessageKind]
    is_synthetic: ClassVar[bool] = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "content": self.content,
            "kind": self.kind.value,
            "created_at": self.created_at,
        }


@dataclass
class WelcomeMessage(_BaseMessage):
    kind: ClassVar[MessageKind] = MessageKind.WELCOME


@dataclass
class UserMessage(_BaseMessage):
    kind: ClassVar[MessageKind] = MessageKind.USER


@dataclass
class ResponseMessage(_BaseMessage):
    kind: ClassVar[MessageKind] = MessageKind.RESPONSE


@dataclass
class RecommendationMessage(_BaseMessage):
    recommended_items: List[ItemRef] = field(default_factory=list)

    kind: ClassVar[MessageKind] = MessageKind.RECOMMENDATION

    def __post_init__(self) -> None:
        if not self.recommended_items:
            raise ValueError("recommendation message needs at least one recommended item")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["recommended_items"] = [ref.to_dict() for ref in self.recommended_items]
        return data


@dataclass
class SystemNotice(_BaseMessage):
    """Inserted by the conversation manager when older messages are dropped."""
    dropped_count: int = 0

    kind: ClassVar[MessageKind] = MessageKind.SYSTEM_NOTICE
    is_synthetic: ClassVar[bool] = True

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["dropped_count"] = self.dropped_count
        data["is_synthetic"] = True
        return data


@dataclass
class ErrorMessage(_BaseMessage):
    failure: str = ""

    kind: ClassVar[MessageKind] = MessageKind.ERROR

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["failure"] = self.failure
        return data


Message = Union[WelcomeMessage, UserMessage, ResponseMessage, RecommendationMessage, SystemNotice, ErrorMessage]

_MESSAGE_TYPES: Dict[MessageKind, Type[_BaseMessage]] = {
    cls.kind: cls
    for cls in (WelcomeMessage, UserMessage, ResponseMessage, RecommendationMessage, SystemNotice, ErrorMessage)
}


def message_from_dict(data: Dict[str, Any]) -> Message:
    kind = MessageKind(data.get("kind"))
    cls = _MESSAGE_TYPES[kind]
    common = {
        "id": str(data["id"]),
        "sender_id": str(data.get("sender_id", "")),
        "content": str(data.get("content", "")),
        "created_at": str(data.get("created_at") or iso_now()),
    }
    if cls is RecommendationMessage:
        items = [ItemRef.from_dict(d) for d in data.get("recommended_items") or []]
        return RecommendationMessage(**common, recommended_items=items)
    if cls is SystemNotice:
        return SystemNotice(**common, dropped_count=int(data.get("dropped_count", 0)))
    if cls is ErrorMessage:
        return ErrorMessage(**common, failure=str(data.get("failure", "")))
    return cls(**common)  # type: ignore[return-value]


# ────────────────────────────────────────────────────────
# Conversation
# ────────────────────────────────────────────────────────

@dataclass
class Conversation:
    user_id: str
    agent_id: str
    messages: List[Message] = field(default_factory=list)
    last_message_time: Optional[str] = None
    is_active: bool = True
    trimmed_count: int = 0
    last_trim_size_before: Optional[int] = None
    last_trim_size_after: Optional[int] = None
    created_at: str = field(default_factory=iso_now)
    updated_at: Optional[str] = None

    @property
    def conversation_id(self) -> str:
        return conversation_key(self.user_id, self.agent_id)

    def append(self, message: Message) -> None:
        if any(m.id == message.id for m in self.messages):
            raise ValueError(f"duplicate message id {message.id} in {self.conversation_id}")
        self.messages.append(message)
        self.last_message_time = message.created_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.conversation_id,
            "user_id": self.user_id,
            "agent_id": self.agent_id,
            "messages": [m.to_dict() for m in self.messages],
            "last_message_time": self.last_message_time,
            "is_active": self.is_active,
            "trimmed_count": self.trimmed_count,
            "last_trim_size_before": self.last_trim_size_before,
            "last_trim_size_after": self.last_trim_size_after,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conversation":
        return cls(
            user_id=str(data["user_id"]),
            agent_id=str(data["agent_id"]),
            messages=[message_from_dict(m) for m in data.get("messages") or []],
            last_message_time=data.get("last_message_time"),
            is_active=bool(data.get("is_active", True)),
            trimmed_count=int(data.get("trimmed_count", 0) or 0),
            last_trim_size_before=data.get("last_trim_size_before"),
            last_trim_size_after=data.get("last_trim_size_after"),
            created_at=str(data.get("created_at") or iso_now()),
            updated_at=data.get("updated_at"),
        )


# ────────────────────────────────────────────────────────
# Turn results
# ────────────────────────────────────────────────────────

@dataclass
class Composition:
    narrative: str
    recommended_items: List[CatalogItem] = field(default_factory=list)
    used_fallback: bool = False


@dataclass
class TurnReply:
    """What the assistant decided to say for one user turn."""
    kind: MessageKind
    content: str
    recommended_items: List[ItemRef] = field(default_factory=list)
    failure: str = ""


@dataclass
class SendResult:
    user_message: Message
    agent_message: Message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_message": self.user_message.to_dict(),
            "agent_message": self.agent_message.to_dict(),
        }
