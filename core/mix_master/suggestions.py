"""
core/mix_master/suggestions.py — Advisory suggestions attached to results.

Suggestions are never applied automatically. Confidence and estimated
impact are fixed constants per rule, chosen by hand; they rank advice for
display and are not learned probabilities.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from core.mix_master.catalog import Genre, GenrePreset


class SuggestionCategory(str, Enum):
    EQ = "eq"
    COMPRESSION = "compression"
    EFFECTS = "effects"
    STEREO = "stereo"
    LOUDNESS = "loudness"
    GENERAL = "general"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class AISuggestion:
    """One piece of advice.

    Invariants:
        - 0.0 <= confidence <= 1.0
        - 0.0 <= estimated_impact <= 10.0
    """

    category: SuggestionCategory
    suggestion: str
    reasoning: str
    confidence: float
    priority: Priority
    estimated_impact: float
    parameters: Mapping[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        """Validate score ranges."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")
        if not 0.0 <= self.estimated_impact <= 10.0:
            raise ValueError(f"estimated_impact must be in [0, 10], got {self.estimated_impact}")

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-safe dict."""
        return {
            "id": self.id,
            "category": self.category.value,
            "suggestion": self.suggestion,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "priority": self.priority.value,
            "parameters": dict(self.parameters),
            "estimated_impact": self.estimated_impact,
        }


def preset_suggestions(preset: GenrePreset, intensity: float) -> list[AISuggestion]:
    """Advice emitted when a genre preset is applied.

    Args:
        preset:    The applied preset.
        intensity: Applied intensity in [0, 1].
    """
    suggestions: list[AISuggestion] = []

    match preset.genre:
        case Genre.HIP_HOP | Genre.TRAP:
            suggestions.append(
                AISuggestion(
                    category=SuggestionCategory.EQ,
                    suggestion="Boost low-end at 60-80Hz for punchy bass",
                    reasoning=(
                        f"{preset.display_name} relies on a strong low end; "
                        "a broad boost around 80Hz adds weight to kick and 808."
                    ),
                    confidence=0.92,
                    priority=Priority.HIGH,
                    estimated_impact=8.5,
                    parameters={"frequency": 80, "gain": 3, "q": 0.7},
                )
            )
            suggestions.append(
                AISuggestion(
                    category=SuggestionCategory.COMPRESSION,
                    suggestion="Apply heavy compression to vocals for consistency",
                    reasoning="Rap vocals need a steady level to sit on top of dense drums.",
                    confidence=0.89,
                    priority=Priority.HIGH,
                    estimated_impact=7.8,
                    parameters={"ratio": 4, "threshold": -18, "attack": 5, "release": 50},
                )
            )
        case Genre.EDM | Genre.HOUSE | Genre.TECHNO:
            suggestions.append(
                AISuggestion(
                    category=SuggestionCategory.STEREO,
                    suggestion="Widen stereo image for an immersive sound",
                    reasoning="Electronic music benefits from a wide image outside the low end.",
                    confidence=0.87,
                    priority=Priority.MEDIUM,
                    estimated_impact=7.5,
                    parameters={"width": 1.25},
                )
            )
            suggestions.append(
                AISuggestion(
                    category=SuggestionCategory.COMPRESSION,
                    suggestion="Sidechain compress pads and bass to the kick",
                    reasoning="Ducking sustained parts on every kick creates the pumping groove.",
                    confidence=0.91,
                    priority=Priority.HIGH,
                    estimated_impact=8.2,
                    parameters={"ratio": 4, "threshold": -20, "attack": 1, "release": 100},
                )
            )
        case _:
            pass

    suggestions.append(
        AISuggestion(
            category=SuggestionCategory.GENERAL,
            suggestion=f"Applied {preset.display_name} preset at {intensity * 100:.0f}% intensity",
            reasoning=(
                f"Genre-optimized settings for {preset.display_name}: {preset.description}."
            ),
            confidence=0.94,
            priority=Priority.HIGH,
            estimated_impact=9.0,
            parameters={"genre": preset.genre.value, "intensity": intensity},
        )
    )
    return suggestions
