#!/usr/bin/env python3
import base64
import json
import os
import sys
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock, patch

import requests
from openai import OpenAIError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from relay.config import RelayConfig
from relay.constants import MODE_PER_ALERT
from relay.controller import create_app
from relay.enrichment import DescriptionEnricher


def _notification(status='firing', alerts=None):
    return {
        'status': status,
        'commonAnnotations': {'summary': 'CPU high', 'description': 'load avg 8.2'},
        'alerts': alerts or [],
    }


def _basic(user, password):
    token = base64.b64encode(f'{user}:{password}'.encode('utf-8')).decode('ascii')
    return {'Authorization': f'Basic {token}'}


class RelayTestCase(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.session.post.return_value = MagicMock(status_code=200, text='{"code":0}')
        self.ai = Mock()

    def make_client(self, api_key='', **overrides):
        config = RelayConfig(webhook_base='https://x/hook', openai_api_key=api_key, **overrides)
        enricher = DescriptionEnricher.from_config(config, client=self.ai)
        app = create_app(config, enricher=enricher, session=self.session)
        return app.test_client()

    def posted_cards(self):
        return [
            (call.args[0], call.kwargs['data'].decode('utf-8'))
            for call in self.session.post.call_args_list
        ]


class TestAlertEndpoint(RelayTestCase):
    def test_firing_notification_becomes_red_card(self):
        client = self.make_client()

        resp = client.post('/abc', json=_notification('firing'))

        self.assertEqual(resp.status_code, 204)
        self.assertEqual(resp.data, b'')
        cards = self.posted_cards()
        self.assertEqual(len(cards), 1)
        url, body = cards[0]
        self.assertEqual(url, 'https://x/hook/abc')
        self.assertIn('"content":"CPU high"', body)
        self.assertIn('"content":"load avg 8.2"', body)
        self.assertIn('"template":"red"', body)
        self.ai.chat.completions.create.assert_not_called()

    def test_resolved_notification_becomes_green_card(self):
        client = self.make_client()
        resp = client.post('/abc', json=_notification('resolved'))
        self.assertEqual(resp.status_code, 204)
        self.assertIn('"template":"green"', self.posted_cards()[0][1])

    def test_default_bot_id_used_without_path(self):
        client = self.make_client(default_bot_id='default-bot')
        client.post('/', json=_notification())
        self.assertEqual(self.posted_cards()[0][0], 'https://x/hook/default-bot')

    def test_missing_bot_id_fails_before_sending(self):
        client = self.make_client()
        resp = client.post('/', json=_notification())
        self.assertEqual(resp.status_code, 400)
        self.session.post.assert_not_called()

    def test_invalid_json_is_client_error(self):
        client = self.make_client()
        resp = client.post('/abc', data='{"status": ', content_type='application/json')
        self.assertEqual(resp.status_code, 400)
        self.session.post.assert_not_called()

    def test_non_object_json_is_client_error(self):
        client = self.make_client()
        resp = client.post('/abc', json=['firing'])
        self.assertEqual(resp.status_code, 400)
        self.session.post.assert_not_called()

    def test_transport_failure_fails_request(self):
        self.session.post.side_effect = requests.ConnectionError('connection reset')
        client = self.make_client()
        resp = client.post('/abc', json=_notification())
        self.assertEqual(resp.status_code, 502)
        self.assertIn(b'connection reset', resp.data)

    def test_destination_error_status_still_succeeds(self):
        self.session.post.return_value = MagicMock(status_code=400, text='{"code":9499,"msg":"Bad Request"}')
        client = self.make_client()
        resp = client.post('/abc', json=_notification())
        self.assertEqual(resp.status_code, 204)

    def test_debug_log_names_receiver_and_source(self):
        client = self.make_client()
        payload = dict(_notification(), receiver='feishu-oncall', externalURL='http://alertmanager:9093')
        with self.assertLogs('relay.controller', level='DEBUG') as logs:
            client.post('/abc', json=payload)
        self.assertIn('receiver=feishu-oncall', logs.output[0])
        self.assertIn('source=http://alertmanager:9093', logs.output[0])


class TestDefaultDelivery(unittest.TestCase):
    @patch('relay.services.requests.post')
    def test_module_level_post_without_session(self, post):
        post.return_value = MagicMock(status_code=200, text='{"code":0}')
        config = RelayConfig(webhook_base='https://x/hook')
        client = create_app(config, enricher=DescriptionEnricher.from_config(config)).test_client()

        resp = client.post('/abc', json=_notification())

        self.assertEqual(resp.status_code, 204)
        post.assert_called_once()
        self.assertEqual(post.call_args.args[0], 'https://x/hook/abc')


class TestPerAlertMode(RelayTestCase):
    def test_zero_alerts_sends_nothing(self):
        client = self.make_client(processing_mode=MODE_PER_ALERT)
        resp = client.post('/abc', json=_notification(alerts=[]))
        self.assertEqual(resp.status_code, 204)
        self.session.post.assert_not_called()

    def test_zero_alerts_without_bot_id_answers_no_content(self):
        client = self.make_client(processing_mode=MODE_PER_ALERT)
        resp = client.post('/', json={'status': 'firing', 'alerts': []})
        self.assertEqual(resp.status_code, 204)
        self.session.post.assert_not_called()
        self.ai.chat.completions.create.assert_not_called()

    def test_one_card_per_alert(self):
        client = self.make_client(processing_mode=MODE_PER_ALERT)
        payload = {
            'status': 'firing',
            'alerts': [
                {'status': 'firing', 'labels': {'alertname': 'HighCPU'}, 'annotations': {'description': 'cpu 95%'}},
                {'status': 'resolved', 'labels': {'alertname': 'DiskFull'}, 'annotations': {}},
            ],
        }
        resp = client.post('/abc', json=payload)

        self.assertEqual(resp.status_code, 204)
        bodies = [json.loads(body) for _, body in self.posted_cards()]
        self.assertEqual([b['card']['header']['title']['content'] for b in bodies], ['HighCPU', 'DiskFull'])
        self.assertEqual([b['card']['header']['template'] for b in bodies], ['red', 'green'])
        self.assertEqual(bodies[1]['card']['elements'][0]['text']['content'], '[No description]')


class TestEnrichmentFlow(RelayTestCase):
    def test_description_replaced_by_model_reply(self):
        self.ai.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='```markdown\n### Fault analysis\n```'))]
        )
        client = self.make_client(api_key='sk-test')

        resp = client.post('/abc', json=_notification())

        self.assertEqual(resp.status_code, 204)
        body = json.loads(self.posted_cards()[0][1])
        self.assertEqual(body['card']['elements'][0]['text']['content'], '### Fault analysis')
        self.assertEqual(self.ai.chat.completions.create.call_args.kwargs['messages'][1]['content'], 'load avg 8.2')

    def test_enrichment_failure_still_sends_card(self):
        self.ai.chat.completions.create.side_effect = OpenAIError('model overloaded')
        client = self.make_client(api_key='sk-test')

        resp = client.post('/abc', json=_notification())

        self.assertEqual(resp.status_code, 204)
        body = json.loads(self.posted_cards()[0][1])
        self.assertEqual(body['card']['elements'][0]['text']['content'], 'OpenAI API call failed: model overloaded')


class TestBasicAuth(RelayTestCase):
    def test_rejects_missing_or_wrong_credentials(self):
        client = self.make_client(basic_auth=('grafana', 'secret'))
        for headers in ({}, _basic('grafana', 'wrong'), _basic('other', 'secret')):
            resp = client.post('/abc', json=_notification(), headers=headers)
            self.assertEqual(resp.status_code, 401)
            self.assertIn('Basic', resp.headers['WWW-Authenticate'])
        self.session.post.assert_not_called()

    def test_accepts_valid_credentials(self):
        client = self.make_client(basic_auth=('grafana', 'secret'))
        resp = client.post('/abc', json=_notification(), headers=_basic('grafana', 'secret'))
        self.assertEqual(resp.status_code, 204)

    def test_health_is_public(self):
        client = self.make_client(basic_auth=('grafana', 'secret'))
        resp = client.get('/health')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['status'], 'ok')


if __name__ == '__main__':
    unittest.main()
