"""Reward catalog and redemption blueprint."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, request
from sqlalchemy import func
from werkzeug.exceptions import BadRequest, Conflict, NotFound

from models import db
from models.reward import REDEMPTION_STATUSES, REWARD_TYPES, Reward, RewardRedemption
from models.user import User
from models.user_activity import UserActivity
from utils.auth import ADMIN, PANELIST_ONLY, PANELISTS, current_identity, current_user, user_required
from utils.request_validation import PayloadValidator, page_args, parse_json_request
from utils.responses import paginate, success

rewards_bp = Blueprint("rewards", __name__)


def _get_reward_or_404(reward_id: int) -> Reward:
    reward = db.session.get(Reward, reward_id)
    if reward is None:
        raise NotFound("Reward not found")
    return reward


def _validate_reward_payload(data: dict, partial: bool = False) -> dict:
    validator = PayloadValidator(data)
    required = not partial
    values = {
        "name": validator.string("name", required=required, max_length=255),
        "description": validator.string("description", max_length=1000),
        "points": validator.integer("points", required=required, minimum=1),
        "reward_type": validator.string("type", required=required, choices=REWARD_TYPES),
        "value": validator.number("value", minimum=0),
        "is_active": validator.boolean("isActive"),
    }
    validator.raise_for_errors()
    return values


@rewards_bp.route("", methods=["GET"])
@user_required(ADMIN)
def list_rewards():
    page, limit = page_args(request.args, default_limit=20, max_limit=100)
    query = Reward.query
    active = request.args.get("isActive")
    if active in ("true", "false"):
        query = query.filter(Reward.is_active.is_(active == "true"))
    rewards, pagination = paginate(query.order_by(Reward.created_at.desc()), page, limit)
    return success({"rewards": [reward.to_dict() for reward in rewards], "pagination": pagination})


@rewards_bp.route("/panelist", methods=["GET"])
@user_required(PANELISTS)
def panelist_catalog():
    """Active rewards, cheapest first, alongside the caller's balance."""
    rewards = (
        Reward.query.filter(Reward.is_active.is_(True))
        .order_by(Reward.points.asc(), Reward.id.asc())
        .all()
    )
    user = current_user()
    return success(
        {
            "rewards": [
                dict(reward.to_dict(), canAfford=user.points >= reward.points)
                for reward in rewards
            ],
            "userPoints": user.points,
        }
    )


@rewards_bp.route("", methods=["POST"])
@user_required(ADMIN)
def create_reward():
    data = parse_json_request(request)
    values = _validate_reward_payload(data)
    reward = Reward(**{column: value for column, value in values.items() if value is not None})
    db.session.add(reward)
    db.session.commit()
    return success({"reward": reward.to_dict()}, "Reward created successfully", HTTPStatus.CREATED)


@rewards_bp.route("/<int:reward_id>", methods=["PUT"])
@user_required(ADMIN)
def update_reward(reward_id: int):
    reward = _get_reward_or_404(reward_id)
    data = parse_json_request(request)
    values = _validate_reward_payload(data, partial=True)
    for column, value in values.items():
        if value is not None:
            setattr(reward, column, value)
    db.session.commit()
    return success({"reward": reward.to_dict()}, "Reward updated successfully")


@rewards_bp.route("/<int:reward_id>", methods=["DELETE"])
@user_required(ADMIN)
def delete_reward(reward_id: int):
    reward = _get_reward_or_404(reward_id)
    if RewardRedemption.query.filter_by(reward_id=reward.id).first() is not None:
        raise Conflict("Reward has redemptions. Deactivate it instead.")
    db.session.delete(reward)
    db.session.commit()
    return success(message="Reward deleted successfully")


@rewards_bp.route("/redeem/<int:reward_id>", methods=["POST"])
@user_required(PANELISTS)
def redeem_reward(reward_id: int):
    """Spend points on a reward.

    The balance check and the debit are one conditional UPDATE, and the
    pending redemption row is written in the same transaction.
    """
    reward = _get_reward_or_404(reward_id)
    if not reward.is_active:
        raise BadRequest("Reward is not available")

    user_id = current_identity().id
    if not User.debit_points(user_id, reward.points):
        db.session.rollback()
        raise BadRequest("Insufficient points")

    redemption = RewardRedemption(
        user_id=user_id, reward_id=reward.id, points_spent=reward.points, status="pending"
    )
    db.session.add(redemption)
    UserActivity.record(
        user_id,
        "reward_redeemed",
        f"Redeemed reward: {reward.name}",
        f"Spent {reward.points} points",
        -reward.points,
    )
    db.session.commit()

    current_app.logger.info(
        "User %s redeemed reward %s for %s points", user_id, reward.id, reward.points
    )
    remaining = db.session.get(User, user_id).points
    return success(
        {"redemption": redemption.to_dict(), "remainingPoints": remaining},
        "Reward redeemed successfully",
        HTTPStatus.CREATED,
    )


@rewards_bp.route("/redemptions", methods=["GET"])
@user_required(PANELISTS)
def my_redemptions():
    page, limit = page_args(request.args)
    query = RewardRedemption.query.filter_by(user_id=current_identity().id).order_by(
        RewardRedemption.created_at.desc(), RewardRedemption.id.desc()
    )
    redemptions, pagination = paginate(query, page, limit)
    return success(
        {
            "redemptions": [redemption.to_dict() for redemption in redemptions],
            "pagination": pagination,
        }
    )


@rewards_bp.route("/redemptions/<int:redemption_id>/status", methods=["PUT"])
@user_required(ADMIN)
def update_redemption_status(redemption_id: int):
    data = parse_json_request(request, required_keys=("status",))
    validator = PayloadValidator(data)
    status = validator.string("status", required=True, choices=REDEMPTION_STATUSES)
    validator.raise_for_errors()

    redemption = db.session.get(RewardRedemption, redemption_id)
    if redemption is None:
        raise NotFound("Redemption not found")
    if not redemption.can_transition(status):
        raise Conflict(f"Cannot change redemption from {redemption.status} to {status}")

    previous = redemption.status
    updated = RewardRedemption.query.filter(
        RewardRedemption.id == redemption.id, RewardRedemption.status == previous
    ).update({RewardRedemption.status: status}, synchronize_session=False)
    if updated != 1:
        db.session.rollback()
        raise Conflict("Redemption was updated concurrently")

    if status == "rejected":
        User.credit_points(redemption.user_id, redemption.points_spent, lifetime=False)
        UserActivity.record(
            redemption.user_id,
            "points_refunded",
            "Redemption rejected",
            f"Refunded {redemption.points_spent} points",
            redemption.points_spent,
        )
    db.session.commit()
    db.session.refresh(redemption)
    return success({"redemption": redemption.to_dict(include_user=True)}, "Redemption status updated")


@rewards_bp.route("/analytics/overview", methods=["GET"])
@user_required(ADMIN)
def analytics_overview():
    by_status = dict(
        db.session.query(RewardRedemption.status, func.count(RewardRedemption.id))
        .group_by(RewardRedemption.status)
        .all()
    )
    points_redeemed = (
        db.session.query(func.coalesce(func.sum(RewardRedemption.points_spent), 0))
        .filter(RewardRedemption.status != "rejected")
        .scalar()
    )
    popular = (
        db.session.query(Reward, func.count(RewardRedemption.id).label("redemptions"))
        .join(RewardRedemption, RewardRedemption.reward_id == Reward.id)
        .group_by(Reward.id)
        .order_by(func.count(RewardRedemption.id).desc())
        .limit(5)
        .all()
    )
    recent = (
        RewardRedemption.query.order_by(RewardRedemption.created_at.desc(), RewardRedemption.id.desc())
        .limit(10)
        .all()
    )
    return success(
        {
            "totalRewards": Reward.query.count(),
            "activeRewards": Reward.query.filter(Reward.is_active.is_(True)).count(),
            "totalRedemptions": sum(by_status.values()),
            "redemptionsByStatus": {status: by_status.get(status, 0) for status in REDEMPTION_STATUSES},
            "totalPointsRedeemed": int(points_redeemed),
            "popularRewards": [
                dict(reward.to_dict(), redemptions=count) for reward, count in popular
            ],
            "recentRedemptions": [redemption.to_dict(include_user=True) for redemption in recent],
        }
    )


@rewards_bp.route("/analytics/panelist", methods=["GET"])
@user_required(PANELIST_ONLY)
def analytics_panelist():
    user = current_user()
    redemptions = RewardRedemption.query.filter_by(user_id=user.id).all()
    spent = sum(r.points_spent for r in redemptions if r.status != "rejected")
    return success(
        {
            "currentPoints": user.points,
            "totalPointsEarned": user.total_points,
            "totalPointsSpent": spent,
            "totalRedemptions": len(redemptions),
            "pendingRedemptions": sum(1 for r in redemptions if r.status == "pending"),
            "completedRedemptions": sum(1 for r in redemptions if r.status == "completed"),
        }
    )
