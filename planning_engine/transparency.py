"""Learning transparency helpers."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import numpy as np

from planning_engine.scorer import TaskScore
from planning_engine.weights import COMPONENT_ORDER, HeuristicWeights, WeightComponent, contextual_weights


def explain_weights(weights: HeuristicWeights, baseline: Optional[HeuristicWeights] = None) -> dict:
    """Return learned weights ordered by how far adaptation moved them from the baseline."""

    current = weights.as_array()
    reference = (baseline or HeuristicWeights()).as_array()
    drift = current - reference

    order = np.argsort(-np.abs(drift), kind="stable")
    return {
        "type": "weight_drift",
        "total_drift": float(np.abs(drift).sum()),
        "components": [
            {
                "component": COMPONENT_ORDER[index].value,
                "weight": float(current[index]),
                "drift": float(drift[index]),
            }
            for index in order
        ],
    }


def explain_score(score: TaskScore, weights: HeuristicWeights, now: datetime) -> dict:
    """Break an overall score into per-component contributions, largest first."""

    active = contextual_weights(weights, now)
    values = score.components()
    values[WeightComponent.FRICTION] = 1.0 - values[WeightComponent.FRICTION]
    contributions = {component: values[component] * active[component] for component in COMPONENT_ORDER}

    ranked = sorted(contributions.items(), key=lambda item: item[1], reverse=True)
    return {
        "overall": score.overall,
        "contributions": [{"component": component.value, "contribution": float(value)} for component, value in ranked],
        "reasoning": list(score.reasoning),
    }
