"""Relay that turns Grafana/Alertmanager webhooks into Feishu/Lark cards.

This package contains:
- constants: defaults, fallback literals and the analysis prompt
- config: immutable configuration loaded from the environment
- utils: ordered lookup chains, status colour, Markdown fence stripping
- interpreter: notification parsing and grouped/per-alert summaries
- enrichment: optional OpenAI rewrite of the alert description
- formatters: Feishu interactive card payload
- services: destination URL resolution and card delivery
- controller: Flask app factory and endpoints
"""
