from __future__ import annotations

from sqlalchemy import String, cast, func, literal, null, select, union_all
from sqlalchemy.orm import Session

from asset_tracker.models.asset_models import Asset, AssetRequest, Assignment


def _stats_statement():
    # One compound statement so every figure comes from the same read.
    no_status = cast(null(), String(20))
    return union_all(
        select(literal("total").label("kind"), no_status.label("status"), func.count(Asset.id).label("count")),
        select(literal("pending"), no_status, func.count(AssetRequest.id)).where(AssetRequest.status == "Pending"),
        select(literal("active"), no_status, func.count(Assignment.id)).where(Assignment.status == "Active"),
        select(literal("status"), Asset.status, func.count(Asset.id)).group_by(Asset.status),
    )


def get_dashboard_stats(db: Session) -> dict:
    rows = db.execute(_stats_statement()).all()

    stats = {
        "totalAssets": 0,
        "pendingRequests": 0,
        "activeAssignments": 0,
        "assetsByStatus": [],
    }
    by_status = []
    for kind, status, count in rows:
        if kind == "total":
            stats["totalAssets"] = int(count or 0)
        elif kind == "pending":
            stats["pendingRequests"] = int(count or 0)
        elif kind == "active":
            stats["activeAssignments"] = int(count or 0)
        else:
            by_status.append({"status": status, "count": int(count or 0)})
    stats["assetsByStatus"] = sorted(by_status, key=lambda item: item["status"] or "")
    return stats
