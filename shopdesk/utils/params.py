# --- shopdesk/utils/params.py ---
import math

def to_int(v, default=None):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default

def parse_bool(v, default=None):
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return default

def clean_str(v):
    if v is None:
        return None
    s = str(v).strip()
    return s or None

def paginate(query, page, per_page, max_per_page=100):
    page = max(to_int(page, 1), 1)
    per_page = min(max(to_int(per_page, 10), 1), max_per_page)
    items = query.paginate(page=page, per_page=per_page, error_out=False)
    return {
        "meta": {
            "page": items.page,
            "pages": items.pages or 1,
            "per_page": per_page,
            "total": items.total,
        },
        "items": items.items,
    }

def page_count(total, per_page):
    return math.ceil(total / per_page) if per_page else 0
