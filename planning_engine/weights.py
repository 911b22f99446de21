"""Scoring weights, contextual weight profiles and online weight adaptation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping

import numpy as np

logger = logging.getLogger(__name__)

ADJUSTMENT_RATE = 0.02
POSITIVE_RESPONSES = {"completed", "started"}
NEGATIVE_RESPONSES = {"ignored", "snoozed"}
VALID_RESPONSES = POSITIVE_RESPONSES | NEGATIVE_RESPONSES | {"viewed"}


class WeightComponent(str, Enum):
    URGENCY = "urgency"
    VALUE = "value"
    FRICTION = "friction"
    SUCCESS_PROBABILITY = "success_probability"
    RECENCY = "recency"
    ENERGY_MATCH = "energy_match"


class ContextProfile(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    WEEKDAY = "weekday"
    WEEKEND = "weekend"


# Vector layout used everywhere a weight set becomes an array.
COMPONENT_ORDER = tuple(WeightComponent)

# Components eligible for adaptation, in tie-break order.
DOMINANCE_ORDER = (
    WeightComponent.URGENCY,
    WeightComponent.VALUE,
    WeightComponent.SUCCESS_PROBABILITY,
    WeightComponent.ENERGY_MATCH,
)

DEFAULT_BASE_WEIGHTS = {
    WeightComponent.URGENCY: 0.25,
    WeightComponent.VALUE: 0.20,
    WeightComponent.FRICTION: 0.15,
    WeightComponent.SUCCESS_PROBABILITY: 0.20,
    WeightComponent.RECENCY: 0.10,
    WeightComponent.ENERGY_MATCH: 0.10,
}


@dataclass
class HeuristicWeights:
    """Base weight vector plus optional partial overrides per context."""

    base: dict[WeightComponent, float] = field(default_factory=lambda: dict(DEFAULT_BASE_WEIGHTS))
    contextual: dict[ContextProfile, dict[WeightComponent, float]] = field(default_factory=dict)

    def as_array(self) -> np.ndarray:
        return np.array([self.base[component] for component in COMPONENT_ORDER], dtype=float)

    def total(self) -> float:
        return float(self.as_array().sum())

    def normalized(self) -> "HeuristicWeights":
        return HeuristicWeights(base=_normalize(self.base), contextual=_copy_profiles(self.contextual))

    def to_dict(self) -> dict:
        return {
            "base": {component.value: weight for component, weight in self.base.items()},
            "contextual": {
                profile.value: {component.value: weight for component, weight in overrides.items()}
                for profile, overrides in self.contextual.items()
            },
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "HeuristicWeights":
        base = dict(DEFAULT_BASE_WEIGHTS)
        for name, weight in payload.get("base", {}).items():
            base[WeightComponent(name)] = max(0.0, float(weight))
        contextual = {
            ContextProfile(profile): {
                WeightComponent(name): max(0.0, float(weight)) for name, weight in overrides.items()
            }
            for profile, overrides in payload.get("contextual", {}).items()
        }
        weights = cls(base=base, contextual=contextual)
        if weights.total() <= 0:
            logger.warning("Stored weights sum to zero, using defaults")
            return cls(contextual=contextual)
        return weights.normalized()


def _copy_profiles(profiles: Mapping[ContextProfile, Mapping[WeightComponent, float]]) -> dict:
    return {profile: dict(overrides) for profile, overrides in profiles.items()}


def _normalize(base: Mapping[WeightComponent, float]) -> dict[WeightComponent, float]:
    vector = np.array([base[component] for component in COMPONENT_ORDER], dtype=float)
    total = vector.sum()
    if total <= 0:
        return dict(base)
    vector = vector / total
    return {component: float(value) for component, value in zip(COMPONENT_ORDER, vector)}


def time_of_day_profile(now: datetime) -> ContextProfile:
    if 6 <= now.hour < 12:
        return ContextProfile.MORNING
    if 12 <= now.hour < 18:
        return ContextProfile.AFTERNOON
    return ContextProfile.EVENING


def day_profile(now: datetime) -> ContextProfile:
    return ContextProfile.WEEKEND if now.weekday() >= 5 else ContextProfile.WEEKDAY


def contextual_weights(weights: HeuristicWeights, now: datetime) -> dict[WeightComponent, float]:
    """Merge time-of-day then weekday/weekend overrides over the base weights.

    The merged vector is renormalized so a weighted sum of [0, 1] scores
    stays in [0, 1].
    """

    merged = dict(weights.base)
    for profile in (time_of_day_profile(now), day_profile(now)):
        merged.update(weights.contextual.get(profile, {}))
    return _normalize(merged)


def dominant_component(components: Mapping[WeightComponent, float]) -> WeightComponent:
    """Highest-valued adaptable component; ties go to the earlier DOMINANCE_ORDER entry."""

    best = DOMINANCE_ORDER[0]
    for component in DOMINANCE_ORDER[1:]:
        if components[component] > components[best]:
            best = component
    return best


def adapt_weights(
    weights: HeuristicWeights,
    components: Mapping[WeightComponent, float],
    response: str,
) -> HeuristicWeights:
    """Nudge the dominant component's weight after a user response, then renormalize."""

    if response not in VALID_RESPONSES:
        raise ValueError(f"Unknown response '{response}'")

    base = dict(weights.base)
    if response in POSITIVE_RESPONSES or response in NEGATIVE_RESPONSES:
        multiplier = 1 + ADJUSTMENT_RATE if response in POSITIVE_RESPONSES else 1 - ADJUSTMENT_RATE
        dominant = dominant_component(components)
        base[dominant] *= multiplier
        logger.debug("Adjusted %s weight by x%.2f after '%s'", dominant.value, multiplier, response)

    return HeuristicWeights(base=_normalize(base), contextual=_copy_profiles(weights.contextual))
