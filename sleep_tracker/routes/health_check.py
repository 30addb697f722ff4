# health_check.py
"""
Health check endpoint: process and database status.
"""
from flask import Blueprint, jsonify, current_app
from datetime import datetime, timezone
import sys
import os

import psutil

from sleep_tracker.utils.logging_config import get_logger

logger = get_logger(__name__)

health_check_bp = Blueprint('health_check', __name__)


@health_check_bp.route('/health', methods=['GET'])
def health_check():
    """
    Quick health check - returns basic app status.
    """
    db_healthy = True
    db_error = None
    record_count = None
    try:
        record_count = current_app.DI.sleep_repository.count()
    except Exception as e:
        db_healthy = False
        db_error = str(e)
        logger.error(f"Health check database probe failed: {e}")

    process = psutil.Process(os.getpid())
    memory_mb = process.memory_info().rss / 1024 / 1024

    start_time = datetime.fromtimestamp(process.create_time(), tz=timezone.utc)
    uptime_seconds = (datetime.now(timezone.utc) - start_time).total_seconds()

    return jsonify({
        "status": "healthy" if db_healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime_hours": round(uptime_seconds / 3600, 2),
        "memory_mb": round(memory_mb, 2),
        "database": {
            "healthy": db_healthy,
            "error": db_error,
            "sleep_records": record_count,
        },
        "advice_configured": bool(current_app.config.get('GEMINI_API_KEY')),
        "python_version": sys.version
    }), 200 if db_healthy else 500
