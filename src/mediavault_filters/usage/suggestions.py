"""
Suggestion Engine - Ranked filter recommendations from usage history.

Candidate sources and their base confidence:

    frequently used   0.80   the user's top filters by count
    style match       0.75   artistic preset for each preferred style
    mood match        0.70   mood preset for each preferred mood
    trending          0.60   most applied filters by other users, trailing window

Candidates are ranked by confidence, ties broken by source in the order
above, de-duplicated by filter id (the first occurrence wins) and truncated.
Suggestion failures never propagate: the caller gets an empty list.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from mediavault_filters.core.errors import FilterError
from mediavault_filters.core.media import MediaStore
from mediavault_filters.core.models import (
    FilterCategory,
    StyleProfile,
    Suggestion,
    SuggestionReason,
    utcnow,
)
from mediavault_filters.core.settings import SuggestionSettings
from mediavault_filters.filters.presets import PresetResolver
from mediavault_filters.usage.palette import extract_palette
from mediavault_filters.usage.store import UsageStore

logger = logging.getLogger(__name__)


BASE_CONFIDENCE: dict[SuggestionReason, float] = {
    SuggestionReason.FREQUENTLY_USED: 0.8,
    SuggestionReason.STYLE_MATCH: 0.75,
    SuggestionReason.MOOD_MATCH: 0.7,
    SuggestionReason.TRENDING: 0.6,
}

# Hard ceiling on suggestions per call, whatever max_suggestions says
MAX_SUGGESTIONS = 6

# Lower value wins a confidence tie
REASON_PRIORITY: dict[SuggestionReason, int] = {reason: i for i, reason in enumerate(SuggestionReason)}


def rank_suggestions(candidates: list[Suggestion], limit: int) -> list[Suggestion]:
    """Sort, de-duplicate by filter id and truncate."""
    ordered = sorted(candidates, key=lambda s: (-s.confidence, REASON_PRIORITY[s.reason]))
    seen: set[str] = set()
    ranked = []
    for suggestion in ordered:
        if suggestion.filter_id in seen:
            continue
        seen.add(suggestion.filter_id)
        ranked.append(suggestion)
        if len(ranked) >= limit:
            break
    return ranked


class SuggestionEngine:
    """
    Builds suggestions and style profiles for a user.

    Usage:
        engine = SuggestionEngine(store, PresetResolver(), media_store=media)
        for s in engine.suggest(user_id, media_id):
            print(s.filter_id, s.confidence, s.reason.value)
    """

    def __init__(
        self,
        store: UsageStore,
        presets: PresetResolver | None = None,
        settings: SuggestionSettings | None = None,
        media_store: MediaStore | None = None,
    ):
        self.store = store
        self.presets = presets or PresetResolver()
        self.settings = settings or SuggestionSettings()
        self.media_store = media_store

    def suggest(self, user_id: str, media_id: str) -> list[Suggestion]:
        """
        Ranked recommendations for applying a filter to media, at most
        ``max_suggestions`` and never more than six.

        Returns an empty list if anything goes wrong.
        """
        try:
            return self._suggest(user_id, media_id)
        except Exception:
            logger.exception("Failed to build suggestions for user %s", user_id)
            return []

    def _suggest(self, user_id: str, media_id: str) -> list[Suggestion]:
        def make(filter_id: str, reason: SuggestionReason) -> Suggestion:
            return Suggestion(
                filter_id=filter_id,
                confidence=BASE_CONFIDENCE[reason],
                reason=reason,
                media_id=media_id,
                user_id=user_id,
            )

        candidates: list[Suggestion] = []

        preference = self.store.get_preference(user_id)
        if preference is not None:
            for filter_id in preference.frequently_used(self.settings.frequent_limit):
                candidates.append(make(filter_id, SuggestionReason.FREQUENTLY_USED))

        profile = self.style_profile(user_id, with_palette=False)
        for style in profile.preferred_styles:
            preset = self.presets.find_by_type(style.value, FilterCategory.ARTISTIC)
            if preset is not None:
                candidates.append(make(preset.id, SuggestionReason.STYLE_MATCH))
        for mood in profile.preferred_moods:
            preset = self.presets.find_by_type(mood.value, FilterCategory.MOOD)
            if preset is not None:
                candidates.append(make(preset.id, SuggestionReason.MOOD_MATCH))

        for filter_id in self.trending(exclude_user=user_id):
            candidates.append(make(filter_id, SuggestionReason.TRENDING))

        limit = min(self.settings.max_suggestions, MAX_SUGGESTIONS)
        ranked = rank_suggestions(candidates, limit)
        logger.debug("%d suggestion(s) from %d candidate(s) for %s", len(ranked), len(candidates), user_id)
        return ranked

    def trending(self, exclude_user: str | None = None) -> list[str]:
        """Most applied filters over the trailing window."""
        since = utcnow() - timedelta(days=self.settings.trending_window_days)
        counts = self.store.filter_counts(
            since=since,
            exclude_user=exclude_user,
            limit=self.settings.trending_limit,
        )
        return [c.filter_id for c in counts]

    def analyze_style(self, user_id: str) -> StyleProfile:
        """Derive the user's style profile and store it on their preferences."""
        profile = self.style_profile(user_id)
        self.store.save_style_profile(user_id, profile)
        return profile

    def style_profile(self, user_id: str, with_palette: bool = True) -> StyleProfile:
        """
        Derive the user's style profile without storing it.

        Styles and moods come from the presets behind the user's most used
        filters. Colors come from the user's recently filtered media when a
        media store is configured and ``with_palette`` is set.
        """
        profile = StyleProfile()

        counts = self.store.filter_counts(user_id=user_id, limit=self.settings.style_history_limit)
        for count in counts:
            preset = self.presets.get(count.filter_id)
            if preset is None:
                continue
            style = preset.artistic_style
            if style is not None and style not in profile.preferred_styles:
                profile.preferred_styles.append(style)
            mood = preset.mood_type
            if mood is not None and mood not in profile.preferred_moods:
                profile.preferred_moods.append(mood)

        if with_palette and self.media_store is not None:
            profile.color_palette = extract_palette(
                self._recent_images(user_id),
                colors=self.settings.palette_colors,
            )
            profile.preferred_colors = [
                entry.color
                for entry in profile.color_palette
                if entry.frequency >= self.settings.palette_min_frequency
            ]

        return profile

    def _recent_images(self, user_id: str):
        """Encoded bytes of the user's recently filtered images."""
        for media_id in self.store.recent_media_ids(user_id, self.settings.palette_media_limit):
            try:
                media = self.media_store.get_media(media_id)
                if not media.is_image:
                    continue
                yield self.media_store.get_bytes(media.file_name)
            except FilterError as e:
                logger.warning("Skipping media %s in palette: %s", media_id, e)
