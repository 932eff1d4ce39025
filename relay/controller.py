import logging
import secrets

from flask import Flask, request

from .config import RelayConfig
from .enrichment import DescriptionEnricher
from .formatters import build_card
from .interpreter import InvalidPayload, interpret, parse_notification
from .services import DeliveryError, MissingBotIdentifier, resolve_destination_url, send_card

logger = logging.getLogger(__name__)

PUBLIC_PATHS = {"/health"}


def _credentials_match(expected):
    auth = request.authorization
    if auth is None or auth.username is None or auth.password is None:
        return False
    username, password = expected
    user_ok = secrets.compare_digest(auth.username.encode("utf-8"), username.encode("utf-8"))
    password_ok = secrets.compare_digest(auth.password.encode("utf-8"), password.encode("utf-8"))
    return user_ok and password_ok


def create_app(config=None, enricher=None, session=None):
    """Build the relay app. ``session`` replaces the module-level requests calls, mainly for tests."""
    config = config or RelayConfig.from_env()
    enricher = enricher or DescriptionEnricher.from_config(config)

    app = Flask(__name__)
    app.config["RELAY"] = config

    if config.basic_auth:
        @app.before_request
        def require_basic_auth():
            if request.path in PUBLIC_PATHS:
                return None
            if _credentials_match(config.basic_auth):
                return None
            logger.warning(f"Rejected unauthenticated request from {request.remote_addr}")
            return 'Unauthorized', 401, {'WWW-Authenticate': 'Basic realm="Restricted"'}

    @app.errorhandler(InvalidPayload)
    def invalid_payload(exc):
        return f'Error: {exc}', 400

    @app.errorhandler(MissingBotIdentifier)
    def missing_bot(exc):
        logger.error(f"Cannot build destination URL: {exc}")
        return f'Error: {exc}', 400

    @app.errorhandler(DeliveryError)
    def delivery_failed(exc):
        return f'Error: {exc}', 502

    @app.route('/health', methods=['GET'])
    def health():
        return {'status': 'ok', 'service': 'feishu-relay'}, 200

    @app.route('/', methods=['POST'], defaults={'bot_id': None})
    @app.route('/<bot_id>', methods=['POST'])
    def alert(bot_id):
        # force: Grafana does not always send a JSON content type
        data = request.get_json(force=True)
        notification = parse_notification(data)
        summaries = interpret(notification, config.processing_mode)
        logger.debug(
            f"Notification receiver={notification.receiver} status={notification.status} "
            f"alerts={len(notification.alerts)} cards={len(summaries)} source={notification.external_url}"
        )
        if not summaries:
            return '', 204

        url = resolve_destination_url(config.webhook_base, bot_id, config.default_bot_id)

        for summary in summaries:
            description = enricher.enrich(summary.description)
            card = build_card(summary.title, description, summary.color)
            send_card(url, card, timeout=config.feishu_timeout, session=session)

        return '', 204

    return app
