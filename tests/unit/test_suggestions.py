"""
Tests for the suggestion engine and style analysis.
"""

from datetime import timedelta

import numpy as np
import pytest
from PIL import Image

from mediavault_filters.core.errors import DecodeFailure, StorageFailure
from mediavault_filters.core.media import InMemoryMediaStore, MediaFile
from mediavault_filters.core.models import (
    ArtisticStyle,
    FilterApplication,
    MoodType,
    Suggestion,
    SuggestionReason,
    utcnow,
)
from mediavault_filters.core.settings import SuggestionSettings
from mediavault_filters.usage.ledger import UsageLedger
from mediavault_filters.usage.palette import extract_palette, image_colors
from mediavault_filters.usage.store import InMemoryUsageStore
from mediavault_filters.usage.suggestions import SuggestionEngine, rank_suggestions


@pytest.fixture
def ledger():
    return UsageLedger(InMemoryUsageStore())


@pytest.fixture
def engine(ledger):
    return SuggestionEngine(ledger.store)


def _record(ledger, filter_id, times=1, user_id="u1", media_id="m1"):
    for _ in range(times):
        ledger.record(media_id, user_id, filter_id)


def _s(filter_id, confidence, reason):
    return Suggestion(filter_id, confidence, reason, "m1", "u1")


class TestRankSuggestions:
    """Ordering, de-duplication and truncation."""

    def test_sorted_by_confidence(self):
        ranked = rank_suggestions([
            _s("a", 0.6, SuggestionReason.TRENDING),
            _s("b", 0.8, SuggestionReason.FREQUENTLY_USED),
            _s("c", 0.7, SuggestionReason.MOOD_MATCH),
        ], limit=6)
        assert [s.filter_id for s in ranked] == ["b", "c", "a"]

    def test_ties_broken_by_source_priority(self):
        ranked = rank_suggestions([
            _s("trend", 0.7, SuggestionReason.TRENDING),
            _s("mood", 0.7, SuggestionReason.MOOD_MATCH),
            _s("style", 0.7, SuggestionReason.STYLE_MATCH),
        ], limit=6)
        assert [s.filter_id for s in ranked] == ["style", "mood", "trend"]

    def test_duplicates_keep_highest(self):
        ranked = rank_suggestions([
            _s("noir", 0.75, SuggestionReason.STYLE_MATCH),
            _s("noir", 0.8, SuggestionReason.FREQUENTLY_USED),
        ], limit=6)
        assert len(ranked) == 1
        assert ranked[0].reason is SuggestionReason.FREQUENTLY_USED

    def test_truncated(self):
        candidates = [_s(f"f{i}", 0.6, SuggestionReason.TRENDING) for i in range(10)]
        assert len(rank_suggestions(candidates, limit=6)) == 6


class TestSuggest:
    """End-to-end suggestions from a usage store."""

    def test_new_user_gets_nothing(self, engine):
        assert engine.suggest("u1", "m1") == []

    def test_frequent_filters_first(self, ledger, engine):
        _record(ledger, "noir", 3)
        _record(ledger, "happy", 2)
        suggestions = engine.suggest("u1", "m1")
        assert [s.filter_id for s in suggestions] == ["noir", "happy"]
        assert all(s.reason is SuggestionReason.FREQUENTLY_USED for s in suggestions)
        assert all(s.confidence == 0.8 for s in suggestions)
        assert all(s.media_id == "m1" and s.user_id == "u1" for s in suggestions)

    def test_style_and_mood_matches(self, ledger, engine):
        # Five filters used, only the top three count as frequently used
        _record(ledger, "watercolor", 5)
        _record(ledger, "noir", 4)
        _record(ledger, "happy", 3)
        _record(ledger, "anime", 2)
        _record(ledger, "calm", 1)

        by_id = {s.filter_id: s for s in engine.suggest("u1", "m1")}
        assert by_id["watercolor"].reason is SuggestionReason.FREQUENTLY_USED
        assert by_id["anime"].reason is SuggestionReason.STYLE_MATCH
        assert by_id["anime"].confidence == 0.75
        assert by_id["calm"].reason is SuggestionReason.MOOD_MATCH
        assert by_id["calm"].confidence == 0.7

    def test_trending_excludes_self(self, ledger, engine):
        _record(ledger, "cyberpunk", 4, user_id="u2")
        _record(ledger, "vintage", 1, user_id="u2")
        _record(ledger, "noir", 2, user_id="u1")

        suggestions = engine.suggest("u1", "m1")
        trending = [s.filter_id for s in suggestions if s.reason is SuggestionReason.TRENDING]
        assert trending == ["cyberpunk", "vintage"]
        assert all(s.confidence == 0.6 for s in suggestions if s.reason is SuggestionReason.TRENDING)

        own = engine.suggest("u2", "m1")
        assert "noir" in [s.filter_id for s in own if s.reason is SuggestionReason.TRENDING]
        assert "cyberpunk" not in [s.filter_id for s in own if s.reason is SuggestionReason.TRENDING]

    def test_trending_window(self, ledger, engine):
        old = utcnow() - timedelta(days=8)
        ledger.store.add_application(FilterApplication("m9", "u2", "sketch", applied_at=old))
        assert engine.suggest("u1", "m1") == []

    def test_bounded_and_ordered(self, ledger, engine):
        for filter_id in ["watercolor", "oil-painting", "cyberpunk", "anime", "sketch", "happy", "calm", "romantic"]:
            _record(ledger, filter_id)
        for filter_id in ["noir", "vintage", "cozy"]:
            _record(ledger, filter_id, user_id="u2")

        suggestions = engine.suggest("u1", "m1")
        assert len(suggestions) == 6
        confidences = [s.confidence for s in suggestions]
        assert confidences == sorted(confidences, reverse=True)
        assert len({s.filter_id for s in suggestions}) == 6
        assert [s.reason for s in suggestions[:3]] == [SuggestionReason.FREQUENTLY_USED] * 3

    def test_max_suggestions_setting(self, ledger):
        for filter_id in ["watercolor", "anime", "calm", "happy"]:
            _record(ledger, filter_id)
        engine = SuggestionEngine(ledger.store, settings=SuggestionSettings(max_suggestions=2))
        assert len(engine.suggest("u1", "m1")) == 2

    def test_max_suggestions_never_exceeds_six(self, ledger):
        for filter_id in ["watercolor", "oil-painting", "cyberpunk", "anime", "sketch", "happy", "calm", "romantic"]:
            _record(ledger, filter_id)
        for filter_id in ["noir", "vintage", "cozy"]:
            _record(ledger, filter_id, user_id="u2")
        engine = SuggestionEngine(ledger.store, settings=SuggestionSettings(max_suggestions=10))
        assert len(engine.suggest("u1", "m1")) == 6

    def test_suggest_does_not_store_profile(self, ledger):
        class ReadOnlyStore(InMemoryUsageStore):
            def save_style_profile(self, user_id, profile):
                raise StorageFailure("read-only")

        store = ReadOnlyStore()
        UsageLedger(store).record("m1", "u1", "watercolor")
        suggestions = SuggestionEngine(store).suggest("u1", "m1")
        assert [s.filter_id for s in suggestions] == ["watercolor"]
        assert store.get_preference("u1").style_profile.is_empty

    def test_errors_yield_empty_list(self, ledger, caplog):
        class BrokenStore(InMemoryUsageStore):
            def get_preference(self, user_id):
                raise RuntimeError("database is on fire")

        engine = SuggestionEngine(BrokenStore())
        assert engine.suggest("u1", "m1") == []
        assert "Failed to build suggestions" in caplog.text


class TestAnalyzeStyle:
    """Style profile learning."""

    def test_watercolor_and_cozy(self, ledger, engine):
        _record(ledger, "watercolor", 5)
        _record(ledger, "cozy", 3)
        profile = engine.analyze_style("u1")
        assert ArtisticStyle.WATERCOLOR in profile.preferred_styles
        assert MoodType.COZY in profile.preferred_moods
        assert profile.color_palette == []

    def test_profile_is_stored(self, ledger, engine):
        _record(ledger, "noir", 2)
        engine.analyze_style("u1")
        assert ledger.store.get_preference("u1").style_profile.preferred_styles == [ArtisticStyle.NOIR]

    def test_styles_ordered_by_usage(self, ledger, engine):
        _record(ledger, "anime", 1)
        _record(ledger, "sketch", 3)
        assert engine.analyze_style("u1").preferred_styles == [ArtisticStyle.SKETCH, ArtisticStyle.ANIME]

    def test_unknown_filters_ignored(self, ledger, engine):
        _record(ledger, "deleted-custom-preset", 4)
        assert engine.analyze_style("u1").is_empty

    def test_palette_from_recent_media(self, ledger, make_image):
        pixels = np.zeros((100, 100, 3), dtype=np.uint8)
        pixels[:, :] = (255, 0, 0)
        pixels[:5, :] = (0, 0, 255)  # 5% blue

        media = InMemoryMediaStore()
        media.add(MediaFile("m1", "m1.png", "image/png", owner="u1"), make_image(pixels))
        media.add(MediaFile("m2", "m2.mp4", "video/mp4", owner="u1"), b"not an image")
        _record(ledger, "vintage", media_id="m1")
        _record(ledger, "vintage", media_id="m2")
        _record(ledger, "vintage", media_id="missing")

        engine = SuggestionEngine(ledger.store, media_store=media)
        profile = engine.analyze_style("u1")

        frequencies = sorted((e.frequency for e in profile.color_palette), reverse=True)
        assert frequencies[0] == pytest.approx(0.95, abs=0.01)
        assert frequencies[1] == pytest.approx(0.05, abs=0.01)
        assert profile.preferred_colors == [profile.color_palette[0].color]
        assert profile.color_palette[0].saturation == pytest.approx(1.0, abs=0.05)


class TestPalette:
    """Palette extraction."""

    def test_solid_image(self, make_image):
        palette = extract_palette([make_image(size=(20, 20), color=(0, 128, 0))])
        assert len(palette) == 1
        assert palette[0].frequency == pytest.approx(1.0)

    def test_undecodable_images_skipped(self, make_image):
        palette = extract_palette([b"junk", make_image(size=(10, 10))])
        assert palette[0].frequency == pytest.approx(1.0)

    def test_nothing_to_sample(self):
        assert extract_palette([]) == []

    def test_oversized_image_is_a_decode_failure(self, make_image, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
        with pytest.raises(DecodeFailure):
            image_colors(make_image(size=(20, 20)))
