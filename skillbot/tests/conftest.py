from __future__ import annotations

import os

os.environ.setdefault("APP_ENV", "testing")

import pytest  # noqa: E402

from skillbot.bot_core import SkillBotCore  # noqa: E402
from skillbot.conversation_manager import CompactionPolicy, ConversationManager  # noqa: E402
from skillbot.data_fetchers import StaticCatalog  # noqa: E402

from .fakes import (BACKEND_GIG, BANNER_GIG, LOGO_GIG, MOBILE_GIG, FakeLLM, FakeRedis,  # noqa: E402
                    InMemoryCounter, InMemoryStore, StubCore)


@pytest.fixture
def catalog():
    return StaticCatalog([LOGO_GIG, BACKEND_GIG, MOBILE_GIG, BANNER_GIG])


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def counter():
    return InMemoryCounter()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def stub_core():
    return StubCore()


@pytest.fixture
def policy():
    return CompactionPolicy()


@pytest.fixture
def manager(store, counter, stub_core, policy):
    return ConversationManager(store, stub_core, counter=counter, policy=policy, agent_id="skillbot")


@pytest.fixture
def scenario_llm():
    return FakeLLM(
        rules=[
            ("welcome message", "Hi! I'm SkillBot. What kind of project are you planning?"),
            ("Classify the customer's request", "none"),
            ("Available gigs", "For your bakery I recommend Minimalist Logo Design, a clean start for your brand."),
        ],
        default="Tell me a bit more about your project.",
    )


@pytest.fixture
def live_manager(store, counter, catalog, scenario_llm, policy):
    core = SkillBotCore(scenario_llm, catalog, agent_id="skillbot")
    return ConversationManager(store, core, counter=counter, policy=policy, agent_id="skillbot")
