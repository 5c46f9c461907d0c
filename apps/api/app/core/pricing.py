"""Credit pricing for paid generation steps.

One credit is roughly one US cent. Costs are provider list prices times 100
with a 1.5 margin, rounded.
"""

from __future__ import annotations

import math
from typing import Mapping

from app.schemas.storyboard import ImageModel, PlanTier, VideoModel
from app.schemas.wallet import SpendRecord

VIDEO_MODEL_COSTS: dict[VideoModel, int] = {
    VideoModel.WAN_2_5: 38,
    VideoModel.HAILUO_02: 75,
    VideoModel.VEO_3_1: 180,
    VideoModel.PIXVERSE_V5: 45,
    VideoModel.SEEDANCE_1_5_PRO: 30,
    VideoModel.SORA_2_PRO: 75,
}
DEFAULT_VIDEO_COST = 75

VIDEO_MODEL_MULTIPLIERS: dict[VideoModel, float] = {model: 1.0 for model in VideoModel}

IMAGE_MODEL_COSTS: dict[ImageModel, int] = {
    ImageModel.FLUX: 6,
    ImageModel.FLUX_SCHNELL: 1,
    ImageModel.NANO_BANANA: 0,
}
DEFAULT_IMAGE_COST = 6

PLAN_GRANTS: dict[PlanTier, int] = {
    PlanTier.CREATOR: 1000,
    PlanTier.DIRECTOR: 3500,
}


def image_cost(model: ImageModel) -> int:
    return IMAGE_MODEL_COSTS.get(model, DEFAULT_IMAGE_COST)


def image_spend(model: ImageModel) -> SpendRecord:
    cost = image_cost(model)
    return SpendRecord(amount=cost, model=model.value, base_cost=cost, multiplier=1.0)


def video_quote(
    model: VideoModel,
    *,
    multipliers: Mapping[VideoModel, float] | None = None,
) -> SpendRecord:
    """Price one video submission as ``ceil(base_cost * multiplier)``."""
    base_cost = VIDEO_MODEL_COSTS.get(model, DEFAULT_VIDEO_COST)
    table = VIDEO_MODEL_MULTIPLIERS if multipliers is None else multipliers
    multiplier = table.get(model, 1.0)
    return SpendRecord(
        amount=math.ceil(base_cost * multiplier),
        model=model.value,
        base_cost=base_cost,
        multiplier=multiplier,
    )


def plan_grant(tier: PlanTier) -> int:
    return PLAN_GRANTS[tier]
