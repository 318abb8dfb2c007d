"""Flask app for the one-click / web unsubscribe endpoint."""

from __future__ import annotations

import logging
import os
import time
from typing import Callable

from flask import Flask, Response, jsonify, redirect, render_template, request
from werkzeug.exceptions import MethodNotAllowed

from optout.config import Settings
from optout.db import SuppressionStore
from optout.errors import TokenError
from optout.pages import mask_email, redirect_url
from optout.tokens import verify_token

logger = logging.getLogger(__name__)

TEMPLATE_FOLDER = os.path.join(os.path.dirname(__file__), "..", "..", "templates")

ALLOWED_METHODS = ["GET", "POST"]

SOURCE_ONE_CLICK = "one-click"
SOURCE_WEB = "web"


def _text(body: str, status: int) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def _method_not_allowed(allowed) -> Response:
    response = _text("Method Not Allowed", 405)
    response.headers["Allow"] = ", ".join(allowed)
    return response


def _token_from_request(token: str | None) -> str | None:
    """Path segment first, then the first ``token`` query value, then the form body."""
    if token:
        return token
    values = request.args.getlist("token")
    if values:
        return values[0]
    if request.method == "POST":
        return request.form.get("token")
    return None


def create_app(
    settings: Settings,
    store: SuppressionStore,
    clock: Callable[[], float] | None = None,
) -> Flask:
    """Build the app around an already-configured store.

    The store (and the storage client inside it) is created and owned by the
    caller; see ``api/index.py``.
    """
    clock = clock or time.time
    app = Flask(__name__, template_folder=TEMPLATE_FOLDER)
    app.config["OPTOUT_SETTINGS"] = settings

    @app.after_request
    def no_store(response: Response) -> Response:
        response.headers["Cache-Control"] = "no-store, max-age=0"
        return response

    @app.errorhandler(MethodNotAllowed)
    def method_not_allowed(exc: MethodNotAllowed) -> Response:
        # Werkzeug adds HEAD to every GET rule; only advertise what we serve.
        allowed = sorted(m for m in (exc.valid_methods or ()) if m not in ("HEAD", "OPTIONS"))
        return _method_not_allowed(allowed)

    @app.route("/healthz")
    def healthz():
        return jsonify(status="ok", storage=store.enabled)

    @app.route("/unsubscribe", methods=ALLOWED_METHODS, provide_automatic_options=False)
    @app.route("/unsubscribe/<token>", methods=ALLOWED_METHODS, provide_automatic_options=False)
    def unsubscribe(token: str | None = None):
        if request.method == "HEAD":
            return _method_not_allowed(ALLOWED_METHODS)

        try:
            claim = verify_token(_token_from_request(token), settings.unsub_secret, now=clock())
        except TokenError as exc:
            logger.warning("Rejected unsubscribe token (%s)", exc.reason)
            return _text(exc.reason, 400)

        one_click = request.method == "POST"
        # Storage failures are logged inside the store and never change the response.
        store.record(claim.email, SOURCE_ONE_CLICK if one_click else SOURCE_WEB)

        if one_click:
            return Response(status=204)

        masked = mask_email(claim.email)
        if settings.visible_unsub_redirect:
            return redirect(redirect_url(settings.visible_unsub_redirect, masked), code=302)

        return render_template(
            "unsubscribed.html",
            masked_email=masked,
            brand_name=settings.brand_name,
            home_url=settings.brand_home_url,
            support_email=settings.support_email,
        )

    return app
