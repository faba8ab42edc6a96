## routes.py
from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from strategy_web.adapters.file_exchange import DirectoryFilePicker, ExchangeResult
from strategy_web.adapters.sqlserver_store import RemoteResult
from strategy_web.domain.errors import EntityNotFoundError, UnknownCollectionError
from strategy_web.services import scoring
from strategy_web.services.analysis_service import StrategicSession


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _exchange_response(result: ExchangeResult):
    if result.cancelled:
        # Dismissed picker: not an error, nothing to show
        return jsonify(success=False, cancelled=True), 200
    if not result.success:
        return jsonify(success=False, error=result.error or "File operation failed."), 500
    return None


def _remote_response(result: RemoteResult):
    if not result.success:
        return jsonify(success=False, error=result.error), 500
    data = result.data.to_dict() if result.data is not None else None
    return jsonify(success=True, found=result.data is not None, data=data), 200


def create_blueprint(session: StrategicSession, exchange_dir: Path) -> Blueprint:
    bp = Blueprint("web", __name__)

    @bp.errorhandler(UnknownCollectionError)
    def unknown_collection(e: UnknownCollectionError):
        return jsonify(error=str(e)), 404

    @bp.errorhandler(EntityNotFoundError)
    def entity_not_found(e: EntityNotFoundError):
        return jsonify(error=str(e)), 404

    @bp.errorhandler(ValueError)
    def bad_value(e: ValueError):
        return jsonify(error=str(e)), 400

    # -----------------------------
    # Reads
    # -----------------------------
    @bp.get("/api/data")
    def get_data():
        return jsonify(session.snapshot().to_dict())

    @bp.get("/api/scores")
    def get_scores():
        return jsonify(asdict(scoring.score_summary(session.snapshot())))

    @bp.get("/api/charts")
    def get_charts():
        data = session.snapshot()
        selected_raw = (request.args.get("competitors") or "").strip()
        selected = [s for s in selected_raw.split(",") if s] if selected_raw else None
        return jsonify(
            ife=asdict(scoring.radar_series(data.ife)),
            efe=asdict(scoring.radar_series(data.efe)),
            ksf=asdict(scoring.ksf_radar_series(data.ksf)),
            swot=asdict(scoring.swot_counts(data.strengths, data.weaknesses, data.opportunities, data.threats)),
            cpm=asdict(scoring.cpm_radar_series(data.competitors, data.ksf, selected)),
        )

    # -----------------------------
    # Collection edits
    # -----------------------------
    @bp.post("/api/<collection>")
    def add_item(collection: str):
        item = session.add(collection, _json_body())
        current_app.logger.info("Added %s entry %s", collection, item.id)
        return jsonify(item.to_dict()), 201

    @bp.patch("/api/<collection>/<entity_id>")
    def update_item(collection: str, entity_id: str):
        item = session.update(collection, entity_id, _json_body())
        return jsonify(item.to_dict())

    @bp.delete("/api/<collection>/<entity_id>")
    def delete_item(collection: str, entity_id: str):
        session.remove(collection, entity_id)
        current_app.logger.info("Removed %s entry %s", collection, entity_id)
        return "", 204

    @bp.put("/api/competitors/<competitor_id>/ratings/<ksf_id>")
    def set_rating(competitor_id: str, ksf_id: str):
        body = _json_body()
        if "rating" not in body:
            return jsonify(error="rating is required"), 400
        competitor = session.set_competitor_rating(competitor_id, ksf_id, body["rating"])
        return jsonify(competitor.to_dict())

    # -----------------------------
    # File exchange
    # -----------------------------
    @bp.post("/api/file/export")
    def export_file():
        picker = DirectoryFilePicker(exchange_dir, (_json_body().get("filename") or "").strip())
        result = session.files.export_to_file(session.snapshot(), picker=picker)
        failed = _exchange_response(result)
        if failed:
            return failed
        return jsonify(success=True, file=result.path.name), 200

    @bp.post("/api/file/import")
    def import_file():
        picker = DirectoryFilePicker(exchange_dir, (_json_body().get("filename") or "").strip())
        result = session.files.import_from_file(picker=picker)
        failed = _exchange_response(result)
        if failed:
            return failed
        session.replace_all(result.data)
        return jsonify(success=True, file=result.path.name, data=result.data.to_dict()), 200

    @bp.get("/api/file/status")
    def file_status():
        active = session.files.active_path
        return jsonify(active=active is not None, file=active.name if active else None)

    # -----------------------------
    # Remote store
    # -----------------------------
    @bp.post("/api/remote/save")
    def remote_save():
        result = session.save_remote()
        current_app.logger.info("Remote save success=%s", result.success)
        if not result.success:
            return jsonify(success=False, error=result.error), 500
        return jsonify(success=True), 200

    @bp.post("/api/remote/load")
    def remote_load():
        result = session.load_remote()
        current_app.logger.info("Remote load success=%s found=%s", result.success, result.data is not None)
        return _remote_response(result)

    return bp
