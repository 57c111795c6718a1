"""Request parsing shared by the API blueprints."""

from typing import Any, Dict

from flask import request


def request_fields() -> Dict[str, Any]:
    """
    Read the request fields.

    The frontend posts JSON, but plain and multipart forms are accepted too,
    so a JSON object wins and form fields are the fallback. JSON arrays and
    scalars carry no named fields and fall through to the (empty) form.
    """
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()
