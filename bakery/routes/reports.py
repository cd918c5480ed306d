# bakery/routes/reports.py
from flask import Blueprint, request, g

from ..decorators import require_auth, require_permission
from ..services import reporting_service
from ..validation import request_json

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("")
@require_auth
@require_permission("VIEW_REPORTS")
def get_report():
    """
    Query params:
    - type: overview | sales | inventory | customers | production | delivery | financial
    - period: 1d | 7d | 30d | 90d | 1y | today | this_week | this_month | this_quarter | all_time
    """
    return {
        "report": reporting_service.build_report(request.args.get("type"), request.args.get("period"))
    }


@reports_bp.post("")
@require_auth
@require_permission("VIEW_REPORTS")
def generate_report():
    """
    Body: { "reportType", "period", "format" }. Adds a metadata block.
    """
    payload = request_json()
    report = reporting_service.generate_report(
        payload.get("reportType"),
        payload.get("period"),
        fmt=payload.get("format"),
        generated_by=g.current_user.email,
    )
    return {"message": "Report generated successfully", "report": report}
