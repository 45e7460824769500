"""
Redis persistence for SkillBot
==============================

• RedisConversationStore: one JSON document per conversation, written with
  WATCH/MULTI so the whole ``messages`` field is replaced atomically; every
  write publishes a change event for live subscribers
• RedisNotificationCounter: per-chat unread badges + last message preview

Documents larger than the configured ceiling are rejected with
StorageLimitExceeded before they reach Redis.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

import redis
from redis.exceptions import ConnectionError, RedisError, ResponseError, TimeoutError

from .config import get_config
from .errors import ConversationUnreadable, StorageLimitExceeded, StoreUnavailable
from .models import Conversation
from .utils.helpers import canonical_json, iso_now

log = logging.getLogger(__name__)
Cfg = get_config()

_TOO_LARGE_HINTS = ("too large", "exceeds", "proto-max-bulk-len")


def build_redis_client() -> redis.Redis:
    return redis.Redis(
        host=Cfg.REDIS_HOST,
        port=Cfg.REDIS_PORT,
        db=Cfg.REDIS_DB,
        decode_responses=Cfg.REDIS_DECODE_RESPONSES,
        socket_timeout=10,
        socket_connect_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
    )


# ────────────────────────────────────────────────────────
# Subscriptions
# ────────────────────────────────────────────────────────

class Subscription:
    """
    Live view of one conversation. The caller owns it and must ``close()`` it;
    nothing else keeps a reference.
    """

    def __init__(self, conversation_id: str, pubsub, worker) -> None:
        self.conversation_id = conversation_id
        self._pubsub = pubsub
        self._worker = worker
        self._lock = threading.Lock()
        self.closed = False

    def close(self) -> None:
        with self._lock:
            if self.closed:
                return
            self.closed = True
        try:
            if self._worker is not None:
                self._worker.stop()
        finally:
            self._pubsub.close()
        log.info(f"SUBSCRIPTION_CLOSED | conversation={self.conversation_id}")

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


# ────────────────────────────────────────────────────────
# Conversation documents
# ────────────────────────────────────────────────────────

class RedisConversationStore:
    """Conversation Store Adapter backed by Redis strings + pub/sub."""

    def __init__(
        self,
        client: redis.Redis | None = None,
        *,
        max_document_bytes: Optional[int] = None,
        key_prefix: Optional[str] = None,
        max_watch_retries: int = 5,
    ):
        self.redis: redis.Redis = client or build_redis_client()
        self.max_document_bytes = max_document_bytes or Cfg.STORE_MAX_DOCUMENT_BYTES
        self.prefix = key_prefix or Cfg.REDIS_KEY_PREFIX
        self.max_watch_retries = max_watch_retries

    def _key(self, conversation_id: str) -> str:
        return f"{self.prefix}:conversation:{conversation_id}"

    def _channel(self, conversation_id: str) -> str:
        return f"{self.prefix}:conversation:{conversation_id}:changes"

    # ── read ────────────────────────────────────────────────
    def get(self, conversation_id: str) -> Optional[Conversation]:
        raw = self._get_raw_with_retry(self._key(conversation_id))
        if raw is None:
            return None
        try:
            return Conversation.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            # Never drop it: only an explicit reset may remove a conversation
            log.error(f"CONVERSATION_UNREADABLE | conversation={conversation_id} | error={exc}")
            raise ConversationUnreadable(conversation_id, str(exc)) from exc

    def _get_raw_with_retry(self, key: str, *, max_retries: int = 3) -> Optional[str]:
        for attempt in range(max_retries):
            try:
                raw = self.redis.get(key)
                log.debug(f"REDIS_GET | key={key} | found={raw is not None} | attempt={attempt + 1}")
                return raw
            except (ConnectionError, TimeoutError) as ce:
                log.warning(f"REDIS_GET_CONNECTION_ERROR | key={key} | attempt={attempt + 1} | error={ce}")
                if attempt == max_retries - 1:
                    raise StoreUnavailable(f"redis unreachable reading {key}") from ce
                time.sleep(0.1 * (attempt + 1))
            except RedisError as re:
                log.error(f"REDIS_GET_ERROR | key={key} | error={re}")
                raise StoreUnavailable(f"redis error reading {key}") from re
        return None

    # ── write ───────────────────────────────────────────────
    def encode(self, conversation_id: str, document: Dict[str, Any]) -> str:
        encoded = canonical_json(document)
        size = len(encoded.encode("utf-8"))
        if size > self.max_document_bytes:
            raise StorageLimitExceeded(conversation_id, size, self.max_document_bytes)
        return encoded

    def set(self, conversation_id: str, conversation: Conversation, *, merge: bool = True) -> None:
        """
        Persist the conversation. With ``merge`` the stored document's other
        top-level fields survive; ``messages`` is always replaced as a whole.
        """
        conversation.updated_at = iso_now()
        document = conversation.to_dict()
        key = self._key(conversation_id)
        event = json.dumps({"event": "updated", "conversation_id": conversation_id})

        try:
            if not merge:
                encoded = self.encode(conversation_id, document)
                with self.redis.pipeline() as pipe:
                    pipe.set(key, encoded)
                    pipe.publish(self._channel(conversation_id), event)
                    pipe.execute()
            else:
                self._merge_write(conversation_id, key, document, event)
        except ResponseError as exc:
            if any(h in str(exc).lower() for h in _TOO_LARGE_HINTS):
                size = len(canonical_json(document).encode("utf-8"))
                raise StorageLimitExceeded(conversation_id, size, self.max_document_bytes) from exc
            log.error(f"CONVERSATION_SAVE_ERROR | conversation={conversation_id} | error={exc}")
            raise StoreUnavailable(f"redis rejected write for {conversation_id}") from exc
        except RedisError as exc:
            log.error(f"CONVERSATION_SAVE_ERROR | conversation={conversation_id} | error={exc}")
            raise StoreUnavailable(f"redis error writing {conversation_id}") from exc

        log.info(
            f"CONVERSATION_SAVED | conversation={conversation_id} | messages={len(conversation.messages)} | merge={merge}"
        )

    def _merge_write(self, conversation_id: str, key: str, document: Dict[str, Any], event: str) -> None:
        with self.redis.pipeline() as pipe:
            for attempt in range(1, self.max_watch_retries + 1):
                try:
                    pipe.watch(key)
                    current_raw = pipe.get(key)
                    merged: Dict[str, Any] = {}
                    if current_raw:
                        try:
                            merged = dict(json.loads(current_raw))
                        except ValueError:
                            merged = {}
                    merged.update(document)
                    encoded = self.encode(conversation_id, merged)

                    pipe.multi()
                    pipe.set(key, encoded)
                    pipe.publish(self._channel(conversation_id), event)
                    pipe.execute()
                    return
                except redis.WatchError:
                    log.debug(f"CONVERSATION_MERGE_RETRY | conversation={conversation_id} | attempt={attempt}")
                    continue
        raise StoreUnavailable(
            f"conversation {conversation_id} kept changing during {self.max_watch_retries} merge attempts"
        )

    def delete(self, conversation_id: str) -> bool:
        event = json.dumps({"event": "deleted", "conversation_id": conversation_id})
        try:
            with self.redis.pipeline() as pipe:
                pipe.delete(self._key(conversation_id))
                pipe.publish(self._channel(conversation_id), event)
                results = pipe.execute()
        except RedisError as exc:
            log.error(f"CONVERSATION_DELETE_ERROR | conversation={conversation_id} | error={exc}")
            raise StoreUnavailable(f"redis error deleting {conversation_id}") from exc

        deleted = bool(results and results[0])
        log.info(f"CONVERSATION_DELETED | conversation={conversation_id} | existed={deleted}")
        return deleted

    # ── live updates ────────────────────────────────────────
    def subscribe(
        self,
        conversation_id: str,
        on_change: Callable[[Optional[Conversation]], None],
        *,
        run_in_thread: bool = True,
    ) -> Subscription:
        """
        Call ``on_change`` with the current snapshot, then with a fresh
        snapshot after every write (``None`` once the conversation is deleted).
        Each snapshot is read whole, so listeners never see a partial log.
        """
        def _handler(message: Dict[str, Any]) -> None:
            try:
                payload = json.loads(message.get("data") or "{}")
            except (TypeError, ValueError):
                payload = {}
            if payload.get("event") == "deleted":
                on_change(None)
                return
            try:
                snapshot = self.get(conversation_id)
            except StoreUnavailable as exc:
                log.warning(f"SUBSCRIPTION_SNAPSHOT_SKIPPED | conversation={conversation_id} | error={exc}")
                return
            on_change(snapshot)

        pubsub = self.redis.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(**{self._channel(conversation_id): _handler})
        worker = pubsub.run_in_thread(sleep_time=0.1, daemon=True) if run_in_thread else None
        log.info(f"SUBSCRIPTION_OPENED | conversation={conversation_id}")

        on_change(self.get(conversation_id))
        return Subscription(conversation_id, pubsub, worker)

    def health_check(self) -> Dict[str, Any]:
        health_data: Dict[str, Any] = {"connection_healthy": False, "ping_success": False, "error": None}
        try:
            health_data["ping_success"] = bool(self.redis.ping())
            health_data["connection_healthy"] = health_data["ping_success"]
            info = self.redis.info("memory")
            health_data["memory_info"] = {
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "maxmemory_human": info.get("maxmemory_human", "unknown"),
            }
        except RedisError as e:
            health_data["error"] = str(e)
        return health_data


# ────────────────────────────────────────────────────────
# Notification counters
# ────────────────────────────────────────────────────────

class RedisNotificationCounter:
    """
    One hash per (user, agent) chat: ``unread:<participant>`` counters plus the
    last message preview. Badge data only.
    """

    def __init__(self, client: redis.Redis | None = None, *, key_prefix: Optional[str] = None):
        self.redis: redis.Redis = client or build_redis_client()
        self.prefix = key_prefix or Cfg.REDIS_KEY_PREFIX

    def _key(self, a: str, b: str) -> str:
        first, second = sorted((a, b))
        return f"{self.prefix}:chat:{first}_{second}"

    def increment_unread(self, reader_id: str, counterpart_id: str, last_message: Optional[str] = None) -> int:
        key = self._key(reader_id, counterpart_id)
        mapping = {"participants": json.dumps(sorted((reader_id, counterpart_id))), "updated_at": iso_now()}
        if last_message is not None:
            mapping["last_message"] = last_message[:200]
            mapping["last_message_time"] = mapping["updated_at"]
        try:
            with self.redis.pipeline() as pipe:
                pipe.hincrby(key, f"unread:{reader_id}", 1)
                pipe.hset(key, mapping=mapping)
                count = pipe.execute()[0]
        except RedisError as exc:
            raise StoreUnavailable(f"redis error updating {key}") from exc
        log.debug(f"UNREAD_INCREMENT | key={key} | reader={reader_id} | count={count}")
        return int(count)

    def reset_unread(self, reader_id: str, counterpart_id: str) -> None:
        key = self._key(reader_id, counterpart_id)
        try:
            self.redis.hset(key, mapping={f"unread:{reader_id}": 0, "updated_at": iso_now()})
        except RedisError as exc:
            raise StoreUnavailable(f"redis error updating {key}") from exc
        log.debug(f"UNREAD_RESET | key={key} | reader={reader_id}")

    def unread(self, reader_id: str, counterpart_id: str) -> int:
        try:
            raw = self.redis.hget(self._key(reader_id, counterpart_id), f"unread:{reader_id}")
        except RedisError as exc:
            raise StoreUnavailable("redis error reading unread counter") from exc
        return int(raw or 0)

    def delete(self, user_id: str, agent_id: str) -> bool:
        try:
            return bool(self.redis.delete(self._key(user_id, agent_id)))
        except RedisError as exc:
            raise StoreUnavailable("redis error deleting chat record") from exc
