from typing import Any, Dict


def _text(tag: str, content: str) -> Dict[str, str]:
    return {"tag": tag, "content": content}


def build_card(title: str, description: str, color: str) -> Dict[str, Any]:
    """Feishu custom-bot interactive card: plain-text header, one lark_md block."""
    return {
        "msg_type": "interactive",
        "card": {
            "header": {
                "title": _text("plain_text", title),
                "template": color,
            },
            "elements": [
                {
                    "tag": "div",
                    "text": _text("lark_md", description),
                },
            ],
        },
    }
