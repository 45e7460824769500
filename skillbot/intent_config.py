# skillbot/intent_config.py
"""
Static keyword tables for the classifier and the composer.
Edits here ship with a deploy; nothing reads them at runtime from storage.
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

# ─────────────────────────────────────────────────────────────
# Category → keywords (declaration order breaks ties)
# ─────────────────────────────────────────────────────────────
CATEGORY_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "web": ("website", "web", "landing page", "situs", "wordpress", "toko online", "e-commerce", "frontend"),
    "mobile": ("aplikasi", "app", "mobile", "android", "ios", "flutter"),
    "design": ("desain", "design", "logo", "grafis", "ui", "ux", "banner", "poster", "branding", "ilustrasi"),
    "programming": ("api", "backend", "database", "python", "script", "software", "bot"),
    "marketing": ("marketing", "seo", "social media", "iklan", "ads", "instagram"),
    "content": ("konten", "content", "artikel", "blog", "copywriting", "writing", "terjemah", "translate"),
    "video": ("video", "editing", "animasi", "motion", "youtube"),
    "photography": ("foto", "photography", "product photo", "photo"),
}

CATEGORY_LABELS: Dict[str, str] = {
    "web": "Web development",
    "mobile": "Mobile apps",
    "design": "Graphic & UI design",
    "programming": "Programming & APIs",
    "marketing": "Digital marketing",
    "content": "Writing & content",
    "video": "Video & animation",
    "photography": "Photography",
}

# ─────────────────────────────────────────────────────────────
# Catalog-intent signals
# ─────────────────────────────────────────────────────────────
PROJECT_KEYWORDS: Tuple[str, ...] = (
    "project", "proyek", "butuh", "ingin", "bikin", "buat",
    "develop", "design", "website", "aplikasi", "app", "sistem",
    "platform", "landing page", "e-commerce", "toko online",
    "need", "looking for", "hire", "build", "create",
)

# The agent's previous turn asked what the user needs
FOLLOW_UP_MARKERS: Tuple[str, ...] = (
    "what do you need", "what kind of project", "what are you looking for",
    "tell me more about your project", "what project", "ada project apa",
    "what are you planning", "project apa", "butuh apa", "cari apa",
)

CHITCHAT_PATTERNS: List[re.Pattern] = [
    re.compile(r"\b(hi|hello|hey|halo|hai|hiya|pagi|siang|sore|malam)\b", re.I),
    re.compile(r"\b(thanks|thank you|terima kasih|makasih)\b", re.I),
    re.compile(r"\b(who are you|what can you do|how (can|do) you help|siapa kamu)\b", re.I),
]

# ─────────────────────────────────────────────────────────────
# Composer: phrases that promise a recommendation
# ─────────────────────────────────────────────────────────────
POSITIVE_RECOMMENDATION_PHRASES: Tuple[str, ...] = (
    "recommended", "i recommend", "suitable", "a good fit", "great fit",
    "great choice", "perfect for", "direkomendasikan", "rekomendasi",
    "cocok", "sesuai", "pilihan tepat",
)
