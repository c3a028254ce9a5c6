"""HTTP surface: Flask app exposing GET /search.

Every request must carry a non-empty Authorization header (presence only,
the value is not checked). Responses follow the custom metadata provider
match format; empty optional fields are left out of the JSON.
"""

from typing import Any

from flask import Flask, jsonify, request
from loguru import logger

from .config import ProviderConfig
from .errors import AuthError, InputError
from .models import EnrichedRecord, RankedCandidate
from .provider import LubimyCzytacProvider

log = logger.bind(stage="server")


def format_match(book: RankedCandidate) -> dict[str, Any]:
    """Convert a (possibly unenriched) record into the response shape."""
    enriched = book if isinstance(book, EnrichedRecord) else None

    match: dict[str, Any] = {
        "title": book.title,
        "author": ", ".join(book.authors),
    }
    if enriched is not None:
        published = enriched.published_date
        optional = {
            "narrator": enriched.narrator,
            "publisher": enriched.publisher,
            "publishedYear": f"{published.year:04d}" if published else None,
            "description": enriched.description,
            "cover": enriched.cover,
            "isbn": enriched.identifiers.isbn,
            "genres": list(enriched.genres),
            "tags": list(enriched.tags),
            "series": _format_series(enriched),
            "language": enriched.languages[0] if enriched.languages else None,
            "duration": enriched.duration,
        }
        match.update({k: v for k, v in optional.items() if v})

    match["type"] = str(book.type)
    match["similarity"] = book.similarity
    return match


def _format_series(record: EnrichedRecord) -> list[dict[str, str]] | None:
    if not record.series:
        return None
    entry = {"series": record.series}
    if record.series_index:
        entry["sequence"] = str(record.series_index)
    return [entry]


def create_app(
    config: ProviderConfig | None = None,
    provider: LubimyCzytacProvider | None = None,
) -> Flask:
    """Create and configure the Flask application."""
    config = config or ProviderConfig()
    provider = provider or LubimyCzytacProvider(config)

    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions["provider"] = provider

    @app.errorhandler(AuthError)
    def unauthorized(e):
        return jsonify({"error": "Unauthorized"}), 401

    @app.errorhandler(InputError)
    def bad_request(e):
        return jsonify({"error": str(e)}), 400

    @app.before_request
    def require_authorization():
        if request.method == "OPTIONS":
            return None
        if not request.headers.get("Authorization"):
            raise AuthError("Missing Authorization header")

    @app.after_request
    def allow_cors(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "Authorization"
        return response

    @app.get("/search")
    def search():
        query = request.args.get("query", "")
        author = request.args.get("author", "")
        log.info(f"Received search request: query={query!r} author={author!r}")

        if not query:
            raise InputError("Query parameter is required")

        try:
            results = provider.search_books(query, author)
            payload = {"matches": [format_match(book) for book in results.matches]}
        except Exception as e:
            log.exception(f"Search error: {e}")
            return jsonify({"error": "Internal server error"}), 500

        log.debug(f"Sending {len(payload['matches'])} matches")
        return jsonify(payload)

    return app
