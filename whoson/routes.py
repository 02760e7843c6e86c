# whoson/routes.py
import logging

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException, NotFound

from .errors import ApiError, RemoteFetchFailed
from .utils import parse_bool, timing_metadata, tz_now

log = logging.getLogger(__name__)


def _query_int(name, default, low, high=None):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        val = int(raw)
    except ValueError:
        raise ApiError.bad_request(f"Query validation failed: {name} must be an integer")
    if val < low or (high is not None and val > high):
        bounds = f"between {low} and {high}" if high is not None else f"at least {low}"
        raise ApiError.bad_request(f"Query validation failed: {name} must be {bounds}")
    return val


def _query_workgroup():
    raw = request.args.get("workgroup")
    if raw is None:
        return None
    if not raw.strip():
        raise ApiError.bad_request("Query validation failed: workgroup must not be blank")
    return raw.strip()


def register_api(app):
    def shift_service():
        return current_app.extensions["whoson.shift_service"]

    def now():
        return tz_now(current_app.config["TIMEZONE"])

    @app.get("/health")
    def health():
        return jsonify({
            "status": "ok",
            "timestamp": now().isoformat(),
            "version": current_app.config["APP_VERSION"],
        })

    @app.get("/api/shifts/whos-on")
    def api_whos_on():
        started = now()
        workgroup = _query_workgroup()
        batch = _query_int("batch", current_app.config["DEFAULT_BATCH_SIZE"], 1, current_app.config["MAX_BATCH_SIZE"])

        result = shift_service().whos_on(workgroup, batch)
        timing = timing_metadata(started, current_app.config["TIMEZONE"])
        log.info(
            "GET /api/shifts/whos-on -> %d grouped shifts (%d original) in %dms",
            len(result.groups), result.metrics["original_shift_count"], timing["duration_ms"],
        )
        return jsonify({"result": result.to_dict(), "timing": timing})

    @app.get("/api/shifts/list")
    def api_list_shifts():
        started = now()
        workgroup = _query_workgroup()
        batch = _query_int("batch", None, 1, current_app.config["MAX_BATCH_SIZE"])
        start = _query_int("start", 0, 0)

        fetched = shift_service().list_shifts(workgroup, batch, start)
        return jsonify({
            "result": {
                "shifts": [r.to_dict() for r in fetched.records],
                "referenced_objects": {
                    "account": [p.to_dict() for p in fetched.people],
                    "workgroup": [w.to_dict() for w in fetched.workgroups],
                },
                "page": fetched.page,
            },
            "timing": timing_metadata(started, current_app.config["TIMEZONE"]),
        })

    @app.get("/api/shifts/cached")
    def api_cached_shifts():
        started = now()
        workgroup = _query_workgroup()
        force = parse_bool(request.args.get("force"))
        grouped = not parse_bool(request.args.get("raw"))

        result = current_app.extensions["whoson.sync_policy"].sync(workgroup, force_sync=force, grouped=grouped)
        return jsonify({
            "result": result.to_dict(),
            "timing": timing_metadata(started, current_app.config["TIMEZONE"]),
        })

    @app.errorhandler(ApiError)
    def handle_api_error(e):
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(RemoteFetchFailed)
    def handle_upstream_error(e):
        log.error("Upstream failure on %s %s: %s", request.method, request.path, e)
        err = ApiError.upstream(e)
        return jsonify({"error": err.message}), err.status_code

    @app.errorhandler(NotFound)
    def handle_not_found(e):
        return jsonify({"error": f"Route not found: {request.method} {request.path}"}), 404

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        log.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": str(e) or "An unexpected error occurred"}), 500
