#!/usr/bin/env python3
"""
VOLT Legal REST API Server
Provides HTTP endpoints for the web app and browser extension
"""

import logging
import time

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from voltlegal.core.analysis import (
    AnalysisError,
    ContentFetchError,
    LegalAnalyzer,
    ValidationError,
    validate_analysis_request,
    validate_chat_request,
    validate_followup_request,
)
from voltlegal.core.config import VoltConfig, default_config
from voltlegal.core.glossary import GlossaryManager
from voltlegal.core.highlighter import Segment, render_html
from voltlegal.core.speech import SpeechSynthesisError, synthesize_speech

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)  # Enable CORS for the frontend and extension

# Global components (initialized once)
config = default_config
glossary_mgr = None
analyzer = None


def initialize_components(app_config: VoltConfig = None):
    """Initialize VOLT Legal components"""
    global config, glossary_mgr, analyzer

    config = app_config or default_config

    try:
        logger.info("Initializing VOLT Legal components...")
        glossary_mgr = GlossaryManager.from_config(config)
        logger.info("GlossaryManager loaded")

        analyzer = LegalAnalyzer(config)
        logger.info("LegalAnalyzer loaded")

        logger.info("VOLT Legal API server ready!")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize VOLT Legal: {e}")
        return False


def _error(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def _json_body():
    body = request.get_json(silent=True)
    if body is None:
        raise ValidationError("Invalid JSON in request body")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


@app.errorhandler(ValidationError)
def handle_validation_error(e):
    logger.info(f"Validation failed: {e}")
    return _error(str(e), 400)


@app.errorhandler(ContentFetchError)
def handle_fetch_error(e):
    logger.warning(f"Content fetch failed: {e}")
    return _error(f"Failed to fetch content from URL: {e}", 400)


@app.errorhandler(AnalysisError)
def handle_analysis_error(e):
    return _error(str(e), 500)


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    logger.exception(f"Unexpected error: {e}")
    return _error(f"Server Error: {e}", 500)


@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({"status": "healthy", "message": "VOLT Legal API is running"})


@app.route('/api/analyze', methods=['POST'])
def analyze():
    """Analyze legal terms or the text at a URL"""
    analysis_request = validate_analysis_request(_json_body(), config)
    logger.info(
        f"Analysis request: tone={analysis_request.tone}, "
        f"document_type={analysis_request.document_type}, "
        f"url={'yes' if analysis_request.input_url else 'no'}"
    )

    if analyzer is None:
        return _error("Analyzer is not initialized", 503)

    result = analyzer.analyze(analysis_request)
    return jsonify({"success": True, "data": result})


@app.route('/api/chat', methods=['POST'])
def chat():
    """Answer a question about an analysed document"""
    chat_request = validate_chat_request(_json_body(), config)

    if analyzer is None:
        return _error("Analyzer is not initialized", 503)

    result = analyzer.chat(chat_request)
    return jsonify({"success": True, "data": result})


@app.route('/api/chat/followup', methods=['POST'])
def chat_followup():
    """Continue a multi-turn conversation about a document"""
    followup_request = validate_followup_request(_json_body(), config)

    if analyzer is None:
        return _error("Analyzer is not initialized", 503)

    answer = analyzer.follow_up(followup_request)
    return jsonify({"success": True, "response": answer})


@app.route('/api/highlight', methods=['POST'])
def highlight():
    """Split text into plain and glossary-term segments"""
    body = _json_body()
    text = body.get("text")
    if not isinstance(text, str):
        raise ValidationError("text is required and must be a string")

    # A glossary that has not loaded yet means no highlights
    if glossary_mgr is None:
        segments = [Segment(text)] if text else []
        return jsonify({
            "success": True,
            "segments": [s.to_dict() for s in segments],
            "html": render_html(segments),
        })

    start_time = time.time()
    segments = glossary_mgr.highlight(text)
    logger.debug(
        f"Highlighted {sum(s.is_highlighted for s in segments)} terms "
        f"in {(time.time() - start_time) * 1000:.1f} ms"
    )

    return jsonify({
        "success": True,
        "segments": [s.to_dict() for s in segments],
        "html": render_html(segments),
    })


@app.route('/api/glossary', methods=['GET'])
def glossary():
    """List or search glossary terms"""
    if glossary_mgr is None:
        return jsonify({"success": True, "terms": []})

    query = request.args.get("q", "")
    category = request.args.get("category")

    if query:
        terms = glossary_mgr.search_terms(query)
    elif category:
        terms = glossary_mgr.get_terms_for_category(category)
    else:
        terms = sorted(glossary_mgr.terms, key=lambda t: t.term.lower())

    return jsonify({"success": True, "terms": [t.to_dict() for t in terms]})


@app.route('/api/glossary/<path:term>', methods=['GET'])
def glossary_term(term):
    """Look up one glossary term"""
    found = glossary_mgr.get_definition(term) if glossary_mgr else None
    if found is None:
        return _error(f"Term not found: {term}", 404)
    return jsonify({"success": True, "term": found.to_dict()})


@app.route('/api/speech', methods=['POST'])
def speech():
    """Synthesize speech for text"""
    body = _json_body()
    try:
        audio = synthesize_speech(body.get("text"), body.get("voice_id"), config)
    except SpeechSynthesisError as e:
        status = 400 if "Missing text" in str(e) else 500
        return _error(str(e), status)
    return jsonify({"success": True, "audio": audio})


@app.route('/api/stats', methods=['GET'])
def get_stats():
    """Get system statistics"""
    stats = glossary_mgr.get_stats() if glossary_mgr else {"total_terms": 0}
    return jsonify({
        "glossary": stats,
        "model_info": config.llm.model if config.llm.api_key else config.llm.ollama_model
    })


def main():
    default_config.configure_logging()
    logger.info("Starting VOLT Legal API server...")

    if initialize_components():
        logger.info(f"Starting Flask server on http://{config.api.host}:{config.api.port}")
        app.run(host=config.api.host, port=config.api.port, debug=config.log_level == "DEBUG")
    else:
        logger.error("Failed to start VOLT Legal API server")


if __name__ == '__main__':
    main()
