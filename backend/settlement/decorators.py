# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .identity import IdentityRef
from .validation import ValidationError


def require_identity(f):
    """
    Require an identity-provider subject on the request.

    The upstream auth layer authenticates the user and forwards the subject
    in IDENTITY_HEADER. Only its format is checked here.

    Sets g.identity (IdentityRef). Returns 401 when the header is missing or
    malformed.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = current_app.config.get("IDENTITY_HEADER", "X-Identity-Subject")
        raw = request.headers.get(header)

        if not raw:
            return jsonify({"error": "Authentication required"}), 401

        try:
            g.identity = IdentityRef.parse(raw)
        except ValidationError:
            return jsonify({"error": "Authentication required"}), 401

        return f(*args, **kwargs)

    return decorated_function
