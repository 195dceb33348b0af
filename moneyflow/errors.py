# moneyflow/errors.py
from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from moneyflow.extensions import db


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None, **extra):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def to_dict(self):
        return {"error": self.message, **self.extra}


class ValidationError(ApiError):
    status_code = 400


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


class NothingToArchive(Conflict):
    def __init__(self, message: str = "nothing to archive"):
        super().__init__(message)


class UpstreamError(ApiError):
    status_code = 502


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def _api_error(err: ApiError):
        db.session.rollback()
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(SQLAlchemyError)
    def _storage_error(err: SQLAlchemyError):
        db.session.rollback()
        current_app.logger.exception("storage error: %s", err)
        return jsonify({"error": str(getattr(err, "orig", None) or err)}), 500

    @app.errorhandler(404)
    def _not_found(_err):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(405)
    def _method_not_allowed(_err):
        return jsonify({"error": "method not allowed"}), 405
