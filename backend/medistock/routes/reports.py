from flask import Blueprint, Response, jsonify, request

from medistock.decorators import handle_stock_errors
from medistock.models import MAIN_STORE
from medistock.services import ledger_service, metrics_service, reporting_service, stock_status
from medistock.time_utils import today


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _csv_response(body: str, name: str) -> Response:
    filename = f"{name}_Report_{today().isoformat()}.csv"
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@reports_bp.get("/metrics")
@handle_stock_errors("compute metrics")
def metrics_report():
    report = metrics_service.compute_metrics(
        start=request.args.get("start"),
        end=request.args.get("end"),
    )
    return jsonify(report), 200


@reports_bp.get("/sales-by-period")
@handle_stock_errors("compute sales by period")
def sales_by_period_report():
    report = metrics_service.sales_by_period(
        group_by=request.args.get("group_by", "day"),
        start=request.args.get("start"),
        end=request.args.get("end"),
    )
    return jsonify(report), 200


@reports_bp.get("/low-stock")
@handle_stock_errors("build low stock report")
def low_stock_report():
    report = stock_status.low_stock_report(
        location=request.args.get("location", MAIN_STORE),
        min_packs=request.args.get("min_packs", type=int),
        status=request.args.get("status"),
    )
    return jsonify(report), 200


@reports_bp.get("/valuation/<location>")
@handle_stock_errors("value stock")
def valuation_report(location: str):
    return jsonify(ledger_service.location_valuation(location)), 200


@reports_bp.get("/intake")
@handle_stock_errors("build intake register")
def intake_register():
    rows = reporting_service.intake_register_rows(request.args.get("limit", type=int))
    if request.args.get("format") == "csv":
        return _csv_response(reporting_service.rows_to_csv(rows, reporting_service.INTAKE_COLUMNS), "Inventory")
    return jsonify({"rows": rows}), 200


@reports_bp.get("/sales")
@handle_stock_errors("build sales register")
def sales_register():
    rows = reporting_service.sales_register_rows(request.args.get("limit", type=int))
    if request.args.get("format") == "csv":
        return _csv_response(reporting_service.rows_to_csv(rows, reporting_service.SALES_COLUMNS), "Sales")
    return jsonify({"rows": rows}), 200


@reports_bp.get("/dashboard")
@handle_stock_errors("build dashboard")
def dashboard():
    return jsonify(reporting_service.dashboard_summary()), 200
