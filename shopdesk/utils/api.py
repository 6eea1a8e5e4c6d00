# --- shopdesk/utils/api.py ---
from datetime import datetime, timezone

from flask import jsonify

def _api_time():
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

def api_ok(message, data=None):
    return {
        "status": True,
        "message": message,
        "data": data,
        "api_time": _api_time(),
    }

def api_error(message, data=None):
    return {
        "status": False,
        "message": message,
        "data": data,
        "api_time": _api_time(),
    }

# ---- standard API response format ------------------------------------------
def ok(msg, data=None, status=200):
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r
