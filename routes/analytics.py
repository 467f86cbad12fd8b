"""Panelist analytics blueprint."""

from __future__ import annotations

from datetime import datetime

from flask import Blueprint

from models import utcnow
from models.reward import RewardRedemption
from models.survey_response import SurveyResponse
from utils.auth import PANELISTS, current_identity, user_required
from utils.responses import success

analytics_bp = Blueprint("analytics", __name__)


def _month_starts(now: datetime, count: int) -> list[datetime]:
    year, month = now.year, now.month
    starts = []
    for _ in range(count):
        starts.append(datetime(year, month, 1))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return list(reversed(starts))


def build_monthly_analytics(user_id: int, months: int = 6) -> dict:
    """Aggregate a user's survey and reward activity per calendar month."""

    starts = _month_starts(utcnow(), months)
    buckets = {
        start.strftime("%Y-%m"): {
            "month": start.strftime("%b %Y"),
            "key": start.strftime("%Y-%m"),
            "pointsEarned": 0,
            "surveysCompleted": 0,
            "rewardsRedeemed": 0,
            "pointsSpent": 0,
        }
        for start in starts
    }

    responses = SurveyResponse.query.filter(
        SurveyResponse.respondent_id == user_id,
        SurveyResponse.status == "completed",
        SurveyResponse.completed_at >= starts[0],
    ).all()
    for response in responses:
        bucket = buckets.get(response.completed_at.strftime("%Y-%m"))
        if bucket is not None:
            bucket["surveysCompleted"] += 1
            bucket["pointsEarned"] += response.points_earned or 0

    redemptions = RewardRedemption.query.filter(
        RewardRedemption.user_id == user_id,
        RewardRedemption.status != "rejected",
        RewardRedemption.created_at >= starts[0],
    ).all()
    for redemption in redemptions:
        bucket = buckets.get(redemption.created_at.strftime("%Y-%m"))
        if bucket is not None:
            bucket["rewardsRedeemed"] += 1
            bucket["pointsSpent"] += redemption.points_spent

    series = list(buckets.values())
    return {
        "monthlyData": series,
        "totals": {
            "pointsEarned": sum(item["pointsEarned"] for item in series),
            "surveysCompleted": sum(item["surveysCompleted"] for item in series),
            "rewardsRedeemed": sum(item["rewardsRedeemed"] for item in series),
            "pointsSpent": sum(item["pointsSpent"] for item in series),
        },
    }


@analytics_bp.route("/panelist/monthly", methods=["GET"])
@user_required(PANELISTS)
def panelist_monthly():
    return success(build_monthly_analytics(current_identity().id))
