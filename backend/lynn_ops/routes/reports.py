from flask import Blueprint, request, g

from ..decorators import require_auth, require_location_access
from ..permissions import VIEW_REPORTS
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/locations/<int:location_id>/reports")


@reports_bp.get("/summary")
@require_auth
@require_location_access(VIEW_REPORTS)
def location_summary(location_id: int):
    """Stock value, ledger totals, orders and expenses. Optional ?start=&end= (ISO-8601)."""
    report = reporting_service.location_summary(
        g.actor,
        location_id,
        start=request.args.get("start"),
        end=request.args.get("end"),
    )
    return report, 200
