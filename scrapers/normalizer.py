"""Field normalisation for raw provider records.

Every provider (and every revision of a provider's actor) names the same
facts differently.  Rather than branching per schema, each platform declares
a ``FieldMapping``: ordered candidate field paths for every output field plus
a ``VideoRule`` that decides whether a record is an actual short-form video.
Supporting a new schema revision is an edit to these tables.
"""

from __future__ import annotations

import math
import re
import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from core.models import NormalizedPost, Platform, RawItem

_PREFIX_RE = re.compile(r"^(cat_|sub_)", re.IGNORECASE)
_PLACEHOLDER_RE = re.compile(r"{(\w+)}")


# ── value helpers ────────────────────────────────────────────────────


def lookup(raw: RawItem, path: str) -> Any:
    """Resolve a dotted path such as ``stats.playCount``; missing -> None."""
    current: Any = raw
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.replace(",", "").strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def extract_number(raw: RawItem, candidates: Iterable[str]) -> int:
    """First candidate that parses to a finite, positive number wins."""
    for path in candidates:
        number = to_number(lookup(raw, path))
        if number is not None and number > 0:
            return int(number)
    return 0


def first_text(raw: RawItem, candidates: Iterable[str]) -> str:
    for path in candidates:
        value = lookup(raw, path)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


# ── rules and mappings ───────────────────────────────────────────────


@dataclass(frozen=True)
class VideoRule:
    """Heuristic "is this an actual short-form video" test."""

    name: str
    flag_fields: tuple[str, ...] = ()
    url_fields: tuple[str, ...] = ()
    type_fields: tuple[str, ...] = ()
    count_fields: tuple[str, ...] = ()
    accept_all: bool = False

    def matches(self, raw: RawItem) -> bool:
        if self.accept_all:
            return True
        if any(lookup(raw, f) is True for f in self.flag_fields):
            return True
        for f in self.url_fields:
            value = lookup(raw, f)
            if isinstance(value, str) and value.strip():
                return True
        for f in self.type_fields:
            value = lookup(raw, f)
            if isinstance(value, str) and value.strip().lower() == "video":
                return True
        for f in self.count_fields:
            number = to_number(lookup(raw, f))
            if number is not None and number > 0:
                return True
        return False


INSTAGRAM_REEL = VideoRule(
    name="instagram_reel",
    flag_fields=("isVideo",),
    url_fields=("videoUrl",),
    count_fields=("videoViewCount", "videoPlayCount", "playCount"),
)

TIKTOK_VIDEO = VideoRule(
    name="tiktok_video",
    flag_fields=("isVideo",),
    url_fields=("videoUrl", "video_url"),
    type_fields=("type",),
    count_fields=("playCount", "viewCount"),
)

YOUTUBE_VIDEO = VideoRule(name="youtube_video", accept_all=True)


@dataclass(frozen=True)
class FieldMapping:
    platform: Platform
    video_rule: VideoRule
    views: tuple[str, ...]
    likes: tuple[str, ...]
    comments: tuple[str, ...]
    ids: tuple[str, ...]
    urls: tuple[str, ...]
    captions: tuple[str, ...]
    thumbnails: tuple[str, ...]
    authors: tuple[str, ...] = ()
    url_template: str | None = None


INSTAGRAM_FIELDS = FieldMapping(
    platform=Platform.INSTAGRAM,
    video_rule=INSTAGRAM_REEL,
    views=(
        "videoPlayCount",
        "videoViewCount",
        "playCount",
        "plays",
        "video_views",
        "storyViewCount",
        "likesCount",
    ),
    likes=("likesCount",),
    comments=("commentsCount",),
    ids=("id", "shortCode", "shortcode"),
    urls=("url", "link"),
    captions=("caption",),
    thumbnails=("displayUrl", "thumbnailUrl"),
)

TIKTOK_FIELDS = FieldMapping(
    platform=Platform.TIKTOK,
    video_rule=TIKTOK_VIDEO,
    views=(
        "videoPlayCount",
        "playCount",
        "play_count",
        "viewCount",
        "view_count",
        "views",
        "stats.playCount",
        "stats.viewCount",
        "statistics.playCount",
        "statistics.viewCount",
    ),
    likes=("diggCount", "likesCount", "likeCount", "digg_count", "like_count"),
    comments=("commentCount", "commentsCount", "comment_count", "comments_count"),
    ids=("id", "awemeId", "aweme_id", "shortCode", "shortcode"),
    urls=("webVideoUrl", "url", "link"),
    captions=("text", "desc", "description", "caption"),
    thumbnails=("cover", "thumbnailUrl", "thumbnail", "displayUrl", "imageUrl"),
    authors=(
        "authorMeta.uniqueId",
        "authorMeta.unique_id",
        "authorMeta.name",
        "authorMeta.nickname",
        "authorMeta.username",
        "author.uniqueId",
        "author.unique_id",
        "author.name",
        "author.nickname",
        "author.username",
        "authorName",
    ),
    url_template="https://www.tiktok.com/@{author}/video/{id}",
)

YOUTUBE_FIELDS = FieldMapping(
    platform=Platform.YOUTUBE,
    video_rule=YOUTUBE_VIDEO,
    views=("viewCount", "view_count", "views", "viewCountText"),
    likes=("likeCount", "likes", "like_count"),
    comments=("commentCount", "comments", "comment_count"),
    ids=("id", "videoId", "video_id"),
    urls=("url", "link"),
    captions=("title", "description", "caption"),
    thumbnails=("thumbnailUrl", "thumbnail", "thumbnail_url", "imageUrl"),
    url_template="https://www.youtube.com/watch?v={id}",
)

FIELD_MAPPINGS: dict[Platform, FieldMapping] = {
    m.platform: m for m in (INSTAGRAM_FIELDS, TIKTOK_FIELDS, YOUTUBE_FIELDS)
}


# ── normalisation ────────────────────────────────────────────────────


def build_url(raw: RawItem, mapping: FieldMapping, post_id: str) -> str:
    explicit = first_text(raw, mapping.urls)
    if explicit or not mapping.url_template:
        return explicit

    values = {"id": post_id, "author": first_text(raw, mapping.authors)}
    placeholders = _PLACEHOLDER_RE.findall(mapping.url_template)
    if not all(values.get(name) for name in placeholders):
        return ""
    return mapping.url_template.format(**values)


def normalize(raw: RawItem, mapping: FieldMapping) -> NormalizedPost | None:
    """Turn a raw record into a ``NormalizedPost`` or reject it (``None``)."""
    if not isinstance(raw, dict) or not mapping.video_rule.matches(raw):
        return None

    post_id = first_text(raw, mapping.ids)
    url = build_url(raw, mapping, post_id)
    if not url:
        return None

    return NormalizedPost(
        id=post_id,
        url=url,
        caption=first_text(raw, mapping.captions),
        thumbnail_url=first_text(raw, mapping.thumbnails),
        likes=extract_number(raw, mapping.likes),
        comments=extract_number(raw, mapping.comments),
        views=extract_number(raw, mapping.views),
    )


# ── search keywords ──────────────────────────────────────────────────


# Catalogue category ids offered to requesters, and the provider search term
# each one stands for.
CATEGORY_KEYWORDS: dict[str, str] = {
    "cat_condom": "کاندوم",
    "cat_cream": "کرم",
    "sub_cream_hand": "کرم دست",
    "sub_cream_foot": "کرم پا",
    "sub_cream_body": "کرم بدن",
    "cat_cleanser": "پاک کننده آرایشی",
    "sub_cleanser_wetwipe": "دستمال مرطوب",
    "sub_cleanser_micellar": "میسلار",
    "sub_cleanser_facewash": "فیس واش",
    "cat_serum": "سرم صورت",
    "cat_toothpaste": "خمیر دندان",
    "cat_cosmetic": "لوازم آرایشی",
    "cat_handbalm": "بالم دست",
}


def normalize_keyword(value: str) -> str:
    """``cat_hand_cream`` -> ``hand cream`` (NFC)."""
    keyword = _PREFIX_RE.sub("", value).replace("_", " ").strip()
    return unicodedata.normalize("NFC", keyword or value)


def resolve_keyword(value: str) -> str:
    """Search term for a category id; free text falls back to ``normalize_keyword``."""
    known = CATEGORY_KEYWORDS.get(value.strip())
    if known:
        return unicodedata.normalize("NFC", known)
    return normalize_keyword(value)


def hashtag_keyword(value: str) -> str:
    keyword = resolve_keyword(value)
    return re.sub(r"[\s_\-]+", "", keyword)
