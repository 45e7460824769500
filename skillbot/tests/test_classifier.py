from __future__ import annotations

import pytest

from skillbot.classifier import CategoryClassifier
from skillbot.enums import CatalogIntent
from skillbot.errors import QuotaExceededError
from skillbot.models import ResponseMessage, WelcomeMessage
from skillbot.prompts import FALLBACK_WELCOME

from .fakes import FakeLLM


def test_bakery_logo_request_is_design():
    assert CategoryClassifier().classify_keywords("I need a logo for my bakery") == "design"


def test_largest_count_wins():
    # mobile: aplikasi, android, flutter; web: web
    text = "aplikasi android pakai flutter dan web"
    assert CategoryClassifier().classify_keywords(text) == "mobile"


def test_tie_goes_to_first_category_in_table():
    scores = CategoryClassifier().score("web design")
    assert scores["web"] == scores["design"] == 1
    assert CategoryClassifier().classify_keywords("web design") == "web"


def test_keyword_pass_is_repeatable():
    clf = CategoryClassifier()
    text = "Butuh video animasi untuk youtube"
    assert {clf.classify_keywords(text) for _ in range(5)} == {"video"}


def test_no_keywords_gives_none():
    assert CategoryClassifier().classify_keywords("something special for my wedding") is None


@pytest.mark.asyncio
async def test_keyword_hit_skips_model():
    llm = FakeLLM(default="marketing")
    assert await CategoryClassifier(llm).classify("new logo please") == "design"
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_model_fallback_picks_listed_category():
    llm = FakeLLM(default="Design.")
    assert await CategoryClassifier(llm).classify("something special for my wedding") == "design"
    assert len(llm.prompts) == 1
    assert "photography" in llm.prompts[0]


@pytest.mark.asyncio
@pytest.mark.parametrize("answer", ["none", "gardening", ""])
async def test_model_answer_outside_table_is_none(answer):
    llm = FakeLLM(default=answer)
    assert await CategoryClassifier(llm).classify("something special for my wedding") is None


@pytest.mark.asyncio
async def test_model_failure_is_no_category():
    llm = FakeLLM(default=QuotaExceededError("quota"))
    assert await CategoryClassifier(llm).classify("something special for my wedding") is None


def test_project_keywords():
    assert CategoryClassifier().detect_intent("I need someone to help") is CatalogIntent.PROJECT


def test_follow_up_to_what_do_you_need():
    history = [
        WelcomeMessage(id="w", sender_id="skillbot", content="Hi! What kind of project are you planning?"),
    ]
    assert CategoryClassifier().detect_intent("for my cafe", history) is CatalogIntent.FOLLOW_UP


def test_only_latest_agent_message_counts_for_follow_up():
    history = [
        WelcomeMessage(id="w", sender_id="skillbot", content="What kind of project are you planning?"),
        ResponseMessage(id="r", sender_id="skillbot", content="Glad I could help."),
    ]
    assert CategoryClassifier().detect_intent("for my cafe", history) is CatalogIntent.NONE


def test_small_talk_after_welcome_question_is_not_follow_up():
    welcome = FALLBACK_WELCOME.format(user_name="Dewi", agent_name="SkillBot", platform="SkillNusa")
    history = [WelcomeMessage(id="w", sender_id="skillbot", content=welcome)]
    clf = CategoryClassifier()

    assert clf.detect_intent("thanks!", history) is CatalogIntent.CHITCHAT
    assert clf.detect_intent("hello", history) is CatalogIntent.CHITCHAT
    assert clf.detect_intent("for my bakery", history) is CatalogIntent.FOLLOW_UP


def test_chitchat_and_nothing():
    clf = CategoryClassifier()
    assert clf.detect_intent("hello there") is CatalogIntent.CHITCHAT
    assert clf.detect_intent("ok") is CatalogIntent.NONE
