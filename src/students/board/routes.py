"""
Flask routes for student records.

Responsibilities:
- Accept CSV uploads (multipart file, raw text/csv body, or JSON {csv})
  and run the bulk insert/upsert pipeline.
- Preview the last/next student id in numeric and string styles.
- Basic list/get/update/delete for single students.
"""

import logging
from datetime import datetime, timezone

import psycopg
from flask import current_app, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from config import STUID_PAD, STUID_PREFIX
from db.db_config import get_connection
from students import repository, sequences
from students.columns import COLUMNS
from students.courses import CourseResolver
from students.errors import CsvMissingError, ImportInputError
from students.institutes import InstituteResolver
from students.normalize import RowNormalizer
from students.pipeline import import_rows, load_csv
from students.writer import INSERT, UPSERT

from . import bp

logger = logging.getLogger(__name__)

CSV_MIMETYPES = ("text/csv", "text/plain")


def _cfg(name, default):
    """Return app config override if set."""
    try:
        app = current_app._get_current_object()
    except RuntimeError:
        return default
    return app.config.get(name, default)


def _connect():
    connect = _cfg("DB_CONNECT", get_connection)
    return connect()


def _server_error(message, exc):
    payload = {"error": message}
    if current_app.debug:
        payload["detail"] = str(exc)
    return jsonify(payload), 500


def _read_csv_payload():
    """Return the uploaded CSV as bytes/str, or raise CsvMissingError."""
    upload = request.files.get("file")
    if upload is not None:
        return upload.read()
    if request.mimetype in CSV_MIMETYPES:
        body = request.get_data()
        if body:
            return body
    if request.is_json:
        payload = request.get_json(silent=True)
        if isinstance(payload, dict) and isinstance(payload.get("csv"), str):
            return payload["csv"]
    raise CsvMissingError()


@bp.errorhandler(ImportInputError)
def _input_error(exc):
    return jsonify({"error": str(exc)}), exc.status_code


@bp.app_errorhandler(RequestEntityTooLarge)
def _upload_too_large(exc):
    limit = current_app.config.get("MAX_CONTENT_LENGTH")
    logger.warning("Rejected upload over %s bytes", limit)
    return jsonify({"error": f"Upload exceeds the maximum size of {limit} bytes."}), 413


def _bulk(mode):
    # Input problems raise before a connection is opened.
    rows, warnings = load_csv(_read_csv_payload())
    try:
        with _connect() as conn:
            result = import_rows(conn, rows, warnings, mode)
    except (psycopg.Error, RuntimeError) as exc:
        logger.exception("bulk %s error", mode)
        return _server_error(f"Internal server error during bulk {mode}.", exc)
    return jsonify(result.to_dict())


@bp.route("/bulk", methods=["POST"])
def bulk_insert():
    """Insert every CSV row; rows whose id already exists are skipped."""
    return _bulk(INSERT)


@bp.route("/bulk-upsert", methods=["POST"])
def bulk_upsert():
    """Insert every CSV row, overwriting rows whose id already exists."""
    return _bulk(UPSERT)


@bp.route("/health")
def health():
    return jsonify({"ok": True, "ts": datetime.now(timezone.utc).isoformat()})


@bp.route("/last-id")
def last_id():
    try:
        with _connect() as conn:
            last = sequences.last_numeric_id(conn)
    except (psycopg.Error, RuntimeError) as exc:
        logger.exception("last-id error")
        return _server_error("Failed to fetch last ID", exc)
    return jsonify({"last": last})


@bp.route("/next-id")
def next_id():
    try:
        with _connect() as conn:
            value = sequences.next_numeric_id(conn)
    except (psycopg.Error, RuntimeError) as exc:
        logger.exception("next-id error")
        return _server_error("Failed to fetch next ID", exc)
    return jsonify({"next": value})


@bp.route("/last-stuid-string")
def last_stuid_string():
    try:
        with _connect() as conn:
            last = sequences.last_string_id(conn)
    except (psycopg.Error, RuntimeError) as exc:
        logger.exception("last-stuid-string error")
        return _server_error("Failed to fetch last STU string ID", exc)
    return jsonify({"last": last or None})


@bp.route("/next-stuid-string")
def next_stuid_string():
    """Next string id, e.g. ``?prefix=STU_ID_&pad=3``."""
    prefix = request.args.get("prefix", STUID_PREFIX)
    try:
        pad = max(1, int(request.args.get("pad", STUID_PAD)))
    except (TypeError, ValueError):
        pad = STUID_PAD
    try:
        with _connect() as conn:
            value = sequences.next_string_id(conn, prefix=prefix, pad=pad)
    except (psycopg.Error, RuntimeError) as exc:
        logger.exception("next-stuid-string error")
        return _server_error("Failed to compute next STU string ID", exc)
    return jsonify({"next": value})


@bp.route("/", methods=["GET"])
def list_students():
    try:
        with _connect() as conn:
            page = repository.list_students(
                conn,
                q=request.args.get("q"),
                limit=request.args.get("limit"),
                offset=request.args.get("offset"),
            )
    except (psycopg.Error, RuntimeError) as exc:
        logger.exception("list error")
        return _server_error("Internal server error", exc)
    return jsonify(page)


@bp.route("/<stuid>", methods=["GET"])
def get_student(stuid):
    try:
        with _connect() as conn:
            row = repository.get_student(conn, stuid)
    except (psycopg.Error, RuntimeError) as exc:
        logger.exception("get error")
        return _server_error("Internal server error", exc)
    if row is None:
        return jsonify({"error": "Student not found"}), 404
    return jsonify(row)


@bp.route("/<stuid>", methods=["PUT"])
def update_student(stuid):
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    try:
        with _connect() as conn:
            normalizer = RowNormalizer(InstituteResolver(conn), CourseResolver(conn))
            values = normalizer.normalize(body, columns=[col for col in COLUMNS if col in body])
            try:
                row = repository.update_student(conn, stuid, values)
            except ValueError as exc:
                return jsonify({"error": str(exc)}), 400
    except (psycopg.Error, RuntimeError) as exc:
        logger.exception("update error")
        return _server_error("Internal server error", exc)
    if row is None:
        return jsonify({"error": "Student not found"}), 404
    return jsonify(row)


@bp.route("/<stuid>", methods=["DELETE"])
def delete_student(stuid):
    try:
        with _connect() as conn:
            deleted = repository.delete_student(conn, stuid)
    except (psycopg.Error, RuntimeError) as exc:
        logger.exception("delete error")
        return _server_error("Internal server error", exc)
    if not deleted:
        return jsonify({"error": "Student not found"}), 404
    return jsonify({"message": "Deleted"})
