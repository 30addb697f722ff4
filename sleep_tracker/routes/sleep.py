# sleep.py
"""
Sleep record CRUD, derived statistics and streamed AI advice.

The blueprint is built per app with its repository and advice relay passed
in, so tests can hand it throwaway databases and fake generators.
"""
from flask import Blueprint, Response, jsonify, request, stream_with_context

from sleep_tracker.models.sleep_payloads import SleepRecordPayload
from sleep_tracker.services.advice_relay import AdviceError
from sleep_tracker.services.sleep_statistics import compute_statistics
from sleep_tracker.utils.logging_config import get_logger

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "Sleep record not found."


def _error(message, status):
    return jsonify({"error": message}), status


def create_sleep_blueprint(repository, advice_relay):
    sleep_bp = Blueprint('sleep', __name__, url_prefix='/api/sleep')

    @sleep_bp.route('', methods=['POST'], strict_slashes=False)
    def create_sleep_record():
        """Create a record; duration is derived from sleepTime/wakeTime"""
        try:
            payload = SleepRecordPayload.model_validate(request.get_json(silent=True))
            record = repository.create(payload)
            return jsonify(record.to_dict())
        except Exception as e:
            logger.error(f"Create sleep record failed: {e}", exc_info=True)
            return _error("Failed to create sleep record.", 500)

    @sleep_bp.route('', methods=['GET'], strict_slashes=False)
    def list_sleep_records():
        """All records, most recently created first"""
        try:
            return jsonify([record.to_dict() for record in repository.list_all()])
        except Exception as e:
            logger.error(f"List sleep records failed: {e}", exc_info=True)
            return _error("Failed to fetch sleep records.", 500)

    @sleep_bp.route('/statistics', methods=['GET'])
    def get_sleep_statistics():
        try:
            statistics = compute_statistics(repository.list_all())
            return jsonify(statistics.model_dump(mode='json'))
        except Exception as e:
            logger.error(f"Sleep statistics failed: {e}", exc_info=True)
            return _error("Failed to compute sleep statistics.", 500)

    @sleep_bp.route('/advice', methods=['GET'])
    def get_sleep_advice():
        """
        text/plain chunked stream of Gemini output, or a JSON string when
        there is too little data to analyze.
        """
        try:
            result = advice_relay.request_advice()
        except AdviceError as e:
            return _error(e.user_message, 500)
        except Exception as e:
            logger.error(f"Sleep advice failed: {e}", exc_info=True)
            return _error(AdviceError.user_message, 500)

        if not result.is_stream:
            return jsonify(result.message)

        response = Response(
            stream_with_context(result.chunks),
            mimetype='text/plain',
            headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
        )
        # stream_with_context does not close an unstarted body
        response.call_on_close(result.chunks.close)
        return response

    @sleep_bp.route('/<int:record_id>', methods=['GET'])
    def get_sleep_record(record_id):
        try:
            record = repository.get(record_id)
            if record is None:
                return _error(NOT_FOUND_MESSAGE, 404)
            return jsonify(record.to_dict())
        except Exception as e:
            logger.error(f"Get sleep record {record_id} failed: {e}", exc_info=True)
            return _error("Failed to fetch sleep record.", 500)

    @sleep_bp.route('/<int:record_id>', methods=['PUT'])
    def update_sleep_record(record_id):
        """Replace all fields of a record and recompute its duration"""
        try:
            payload = SleepRecordPayload.model_validate(request.get_json(silent=True))
            record = repository.update(record_id, payload)
            if record is None:
                return _error(NOT_FOUND_MESSAGE, 404)
            return jsonify(record.to_dict())
        except Exception as e:
            logger.error(f"Update sleep record {record_id} failed: {e}", exc_info=True)
            return _error("Failed to update sleep record.", 500)

    @sleep_bp.route('/<int:record_id>', methods=['DELETE'])
    def delete_sleep_record(record_id):
        try:
            if not repository.delete(record_id):
                return _error(NOT_FOUND_MESSAGE, 404)
            return jsonify({"message": "Sleep record deleted."})
        except Exception as e:
            logger.error(f"Delete sleep record {record_id} failed: {e}", exc_info=True)
            return _error("Failed to delete sleep record.", 500)

    return sleep_bp
