"""
Prompts - Text prompts sent to generative providers for each style and mood.
"""

from __future__ import annotations

from mediavault_filters.core.models import ArtisticStyle, MoodType

STYLE_PROMPTS: dict[str, str] = {
    ArtisticStyle.WATERCOLOR.value: "watercolor painting, soft brush strokes, flowing colors, artistic",
    ArtisticStyle.OIL_PAINTING.value: "oil painting, thick brush strokes, rich textures, classical art style",
    ArtisticStyle.CYBERPUNK.value: "cyberpunk style, neon lights, futuristic, high contrast, digital art",
    ArtisticStyle.ANIME.value: "anime style, cel shading, vibrant colors, Japanese animation",
    ArtisticStyle.SKETCH.value: "pencil sketch, line art, hand drawn, artistic drawing",
    ArtisticStyle.VINTAGE.value: "vintage style, aged, retro, classic photography",
    ArtisticStyle.NOIR.value: "film noir, black and white, dramatic shadows, cinematic",
}

MOOD_PROMPTS: dict[str, str] = {
    MoodType.HAPPY.value: "bright, cheerful, vibrant, joyful atmosphere",
    MoodType.DRAMATIC.value: "dramatic lighting, high contrast, cinematic, intense",
    MoodType.COZY.value: "warm, cozy, comfortable, homely feeling",
    MoodType.ENERGETIC.value: "energetic, dynamic, vibrant, active",
    MoodType.CALM.value: "calm, peaceful, serene, tranquil",
    MoodType.MYSTERIOUS.value: "mysterious, dark, enigmatic, shadowy",
    MoodType.ROMANTIC.value: "romantic, soft lighting, dreamy, intimate",
}


def style_prompt(style: str) -> str:
    """Prompt for an artistic style; unknown styles get a generic phrasing."""
    return STYLE_PROMPTS.get(style, f"{style} artistic style")


def mood_prompt(mood: str, color_tone: str | None = None) -> str:
    """Prompt for a mood, optionally steering the color tones."""
    prompt = MOOD_PROMPTS.get(mood, f"{mood} mood")
    if color_tone:
        prompt += f", {color_tone} color tones"
    return prompt
