from __future__ import annotations

import os
from typing import Any, Optional

from flask import Flask, Response, jsonify, request

from app.solat import db
from app.solat.config_validation import validate_runtime_config
from app.solat.errors import StateNotFoundError
from app.solat.healthcheck import run_health_checks
from app.solat.logging_utils import _scraper_event
from app.solat.service import SOURCE_UNAVAILABLE_MESSAGE, PrayerTimeService, build_service
from app.solat.utils import ensure_dirs

app = Flask(__name__)

# Missing configuration must stop the process before it serves anything.
validate_runtime_config("ui")
ensure_dirs()
db.initialize_schema()

SERVICE_KEY = "SOLAT_SERVICE"


def _service() -> PrayerTimeService:
    service = app.config.get(SERVICE_KEY)
    if service is None:
        service = build_service()
        app.config[SERVICE_KEY] = service
    return service


def _parse_bool(raw: Optional[str], default: bool) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _parse_int(raw: Optional[str], default: Optional[int], name: str, errors: list[str]) -> Optional[int]:
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        errors.append(f"{name} must be an integer")
        return default


def _batch_params() -> tuple[dict[str, Any], list[str]]:
    payload: dict[str, Any] = {}
    payload.update(request.args or {})
    errors: list[str] = []
    if request.is_json:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            payload.update(body)
        elif body is not None:
            errors.append("request body must be a JSON object")

    raw_concurrency = payload.get("concurrency", payload.get("maxDegree"))
    params = {
        "parallel": _parse_bool(_as_text(payload.get("parallel")), True),
        "concurrency": _parse_int(_as_text(raw_concurrency), None, "concurrency", errors),
        "retry_failed": _parse_bool(
            _as_text(payload.get("retry_failed", payload.get("retryFailed"))), True
        ),
    }
    if params["concurrency"] is not None and params["concurrency"] < 1:
        errors.append("concurrency must be at least 1")
    return params, errors


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@app.get("/api/zones")
def api_zones() -> Response:
    """Return the zone catalogue grouped by state, loading it when empty."""

    groups = _service().get_zones()
    return jsonify([group.to_dict() for group in groups])


@app.post("/api/zones/refresh")
def api_zones_refresh() -> Response:
    groups = _service().refresh_zones()
    return jsonify(
        {
            "ok": True,
            "count": sum(len(group.zones) for group in groups),
            "zones": [group.to_dict() for group in groups],
        }
    )


@app.get("/api/prayer-times")
def api_prayer_times() -> Response:
    """Return today's record for ``?zone=``, scraping it on a cache miss."""

    zone = (request.args.get("zone") or "").strip() or None
    record = _service().get_or_fetch(zone)
    if record is None:
        return jsonify({"ok": False, "error": SOURCE_UNAVAILABLE_MESSAGE}), 503
    return jsonify({"ok": True, "data": record.to_dict()})


@app.get("/api/prayer-times/history")
def api_prayer_times_history() -> Response:
    zone = (request.args.get("zone") or "").strip()
    if not zone:
        return jsonify({"ok": False, "error": "zone is required"}), 400
    errors: list[str] = []
    limit = _parse_int(request.args.get("limit"), None, "limit", errors)
    if errors:
        return jsonify({"ok": False, "error": "invalid_params", "details": errors}), 400
    records = _service().history(zone, limit)
    return jsonify({"ok": True, "count": len(records), "data": [r.to_dict() for r in records]})


@app.post("/api/scrape/zone/<zone_code>")
def api_scrape_zone(zone_code: str) -> Response:
    code = zone_code.strip().upper()
    record = _service().force_refresh(code)
    if record is None:
        return jsonify({"ok": False, "error": f"Failed to scrape data for zone {code}"}), 502
    return jsonify(
        {
            "ok": True,
            "message": f"Successfully scraped and saved data for zone {code}",
            "data": record.to_dict(),
        }
    )


@app.post("/api/scrape/all")
def api_scrape_all() -> Response:
    params, errors = _batch_params()
    if errors:
        return jsonify({"ok": False, "error": "invalid_params", "details": errors}), 400
    _scraper_event("state", phase="api", context="scrape_all", **params)
    summary = _service().scrape_all(**params)
    return jsonify({"ok": True, **summary.to_dict()})


@app.post("/api/scrape/state/<state_name>")
def api_scrape_state(state_name: str) -> Response:
    params, errors = _batch_params()
    if errors:
        return jsonify({"ok": False, "error": "invalid_params", "details": errors}), 400
    try:
        summary = _service().scrape_state(state_name, **params)
    except StateNotFoundError as exc:
        return jsonify({"ok": False, "error": str(exc)}), 404
    return jsonify({"ok": True, "state": state_name, **summary.to_dict()})


@app.get("/api/health")
def api_health() -> Response:
    """Return a JSON health summary for configuration and the database."""

    result = run_health_checks(entrypoint="ui")
    status = 200 if result.ok else 503
    return jsonify({"ok": result.ok, "checks": result.checks}), status


if __name__ == "__main__":
    app.run(
        host=os.environ.get("WAKTUSOLAT_HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8080)),
    )
