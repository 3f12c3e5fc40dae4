from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from flask import Flask, Response, request

try:
    from . import config  # package import
    from .agents.sdk import AgentSDK, GenerativeClient
    from .pipeline import SummaryDone, SummaryEmpty, SummaryFailed, SummaryPipeline, GENERATION_ERROR
    from .storage.feedback_store import FeedbackStore, SQLiteFeedbackStore, now_iso, seed_samples
except Exception:
    import config  # top-level
    from agents.sdk import AgentSDK, GenerativeClient
    from pipeline import SummaryDone, SummaryEmpty, SummaryFailed, SummaryPipeline, GENERATION_ERROR
    from storage.feedback_store import FeedbackStore, SQLiteFeedbackStore, now_iso, seed_samples

USAGE_TEXT = (
    "Feedback Pulse is running.\n\n"
    "Routes:\n"
    "GET /seed\n"
    "POST /feedback\n"
    "GET /summary\n"
    "First, insert the sample feedback with GET /seed\n"
    "Then, check the summary with GET /summary"
)
NO_FEEDBACK_TEXT = "No feedback yet."


class ValidationError(ValueError):
    """Request body is malformed or missing required fields."""


def _append_progress_line(log_path: Optional[str], message: str) -> None:
    if not log_path:
        return
    ts = datetime.utcnow().strftime("%H:%M:%S")
    try:
        with open(log_path, "a", encoding="utf-8") as log:
            log.write(f"[{ts}] {message}\n")
    except OSError:
        pass


def _text(body: str, status: int = 200) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def parse_feedback_body(raw: str) -> Tuple[str, str]:
    try:
        payload = json.loads(raw)
    except ValueError:
        raise ValidationError("Invalid JSON body")
    if not isinstance(payload, dict):
        payload = {}
    source = payload.get("source")
    content = payload.get("content")
    if not source or not content:
        raise ValidationError("Missing 'source' or 'content'")
    return str(source), str(content)


def unparsed_output_text(failure: SummaryFailed) -> str:
    return (
        "AI output couldn't be parsed as JSON (even after repair).\n\n"
        f"--- RAW ---\n{failure.raw_text}\n\n"
        f"--- ERROR ---\n{failure.parse_error or failure.message}"
    )


def create_app(
    store: Optional[FeedbackStore] = None,
    client: Optional[GenerativeClient] = None,
    *,
    log_path: Optional[str] = config.LOG_PATH,
    pipeline_options: Optional[Dict[str, Any]] = None,
) -> Flask:
    app = Flask(__name__)
    services: Dict[str, Any] = {"store": store, "client": client}

    def get_store() -> FeedbackStore:
        if services["store"] is None:
            services["store"] = SQLiteFeedbackStore(config.DB_PATH)
        return services["store"]

    def get_client() -> GenerativeClient:
        if services["client"] is None:
            services["client"] = AgentSDK(
                model=config.DEFAULT_MODEL,
                temperature=config.GENERATION_TEMPERATURE,
                timeout_s=config.GENERATION_TIMEOUT_S,
                json_mode=config.USE_JSON_RESPONSE_FORMAT,
            )
        return services["client"]

    @app.route("/", methods=["GET"])
    def index() -> Response:
        return _text(USAGE_TEXT)

    @app.route("/seed", methods=["GET"])
    def seed() -> Response:
        inserted = seed_samples(get_store())
        _append_progress_line(log_path, f"Seeded {inserted} sample feedback record(s).")
        return _text("Seed data inserted.")

    @app.route("/feedback", methods=["POST"])
    def feedback() -> Response:
        try:
            source, content = parse_feedback_body(request.get_data(as_text=True))
        except ValidationError as e:
            _append_progress_line(log_path, f"Rejected feedback: {e}")
            return _text(str(e), 400)
        get_store().insert(source, content, now_iso())
        _append_progress_line(log_path, f"Stored feedback from '{source}'.")
        return _text("Feedback stored.", 201)

    @app.route("/summary", methods=["GET"])
    def summary() -> Response:
        pipeline = SummaryPipeline(get_store(), get_client(), log_path=log_path, **(pipeline_options or {}))
        outcome = pipeline.run()
        if isinstance(outcome, SummaryEmpty):
            return _text(NO_FEEDBACK_TEXT)
        if isinstance(outcome, SummaryDone):
            return Response(
                json.dumps(outcome.data, ensure_ascii=False, indent=2),
                status=200,
                mimetype="application/json",
            )
        if outcome.kind == GENERATION_ERROR:
            return _text(f"Model error: {outcome.message}", 500)
        return _text(unparsed_output_text(outcome))

    @app.errorhandler(404)
    @app.errorhandler(405)
    def not_found(_err) -> Response:
        return _text("Not found", 404)

    return app


app = create_app()


if __name__ == "__main__":
    print(f"[Feedback Pulse] Listening on http://{config.HOST}:{config.PORT}")
    app.run(host=config.HOST, port=config.PORT, debug=True)
