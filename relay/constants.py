# Server
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 2387

# Feishu/Lark destination
DEFAULT_WEBHOOK_BASE = "https://open.feishu.cn/open-apis/bot/v2/hook"
DEFAULT_FEISHU_TIMEOUT_SECONDS = 10.0
CONTENT_TYPE = "application/json; charset=UTF-8"
BOT_UUID_LENGTH = 36

# OpenAI enrichment
DEFAULT_MODEL_NAME = "gpt-3.5-turbo"
DEFAULT_OPENAI_TIMEOUT_SECONDS = 30.0
DEFAULT_ANALYSIS_LANGUAGE = "Chinese"

# Processing modes
MODE_GROUPED = "grouped"
MODE_PER_ALERT = "per_alert"
PROCESSING_MODES = (MODE_GROUPED, MODE_PER_ALERT)

# What replaces the description when enrichment fails
POLICY_DIAGNOSTIC = "diagnostic"
POLICY_KEEP = "keep"
FAILURE_POLICIES = (POLICY_DIAGNOSTIC, POLICY_KEEP)

NO_TITLE = "[No Title]"
NO_DESCRIPTION = "[No description]"
STATUS_RESOLVED = "resolved"
COLOR_RESOLVED = "green"
COLOR_FIRING = "red"

ENRICHMENT_FAILURE_PREFIX = "OpenAI API call failed: "

SYSTEM_PROMPT_TEMPLATE = """As an experienced SRE, analyse the alert below. Reply in concise, clean Markdown that renders inside a Feishu card, with exactly these sections:

### Fault analysis
- **Alert summary**: [one sentence describing the problem]
- **Probable causes**: [the 1-3 most likely causes]
- **Impact**: [what this problem may affect]

### Remediation
- **Troubleshooting steps**:
  - [command or check that can be run directly, step 1]
  - [command or check that can be run directly, step 2]
- **Recovery**:
  - [command that restores the service]
- **Root cause analysis**:
  - [suggestion or command to locate the root cause]

Wrap every command in a Markdown code block so it can be copied and run. Reply in {language}."""
