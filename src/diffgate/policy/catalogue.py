"""Built-in rule catalogue.

One rule per kind, tuned for typical application repositories. The specs
below are plain persisted-form documents; ``default_rules()`` builds fresh
rule objects from them on every call, so callers may modify what they get.
"""

from __future__ import annotations

from typing import Any

from diffgate.policy.models import Rule, rule_from_dict

DEFAULT_RULE_SPECS: tuple[dict[str, Any], ...] = (
    {
        "id": "sensitive-file-default",
        "name": "Sensitive File Detection",
        "description": "Blocks modification of sensitive files like .env, .key, secrets files",
        "enabled": True,
        "severity": "block",
        "kind": "sensitive-file",
        "patterns": [
            r"\.env$",
            r"\.env\.",
            r"secrets?\.(json|yaml|yml|toml)$",
            r"config/secrets?",
            r"\.pem$",
            r"\.key$",
            r"\.p12$",
            r"\.pfx$",
            r"id_rsa$",
            r"id_dsa$",
            r"id_ed25519$",
            r"\.credentials$",
            r"\.aws$",
            r"\.gcp$",
            r"\.azure$",
            r"\.npmrc$",
            r"\.pypirc$",
        ],
    },
    {
        "id": "large-change-default",
        "name": "Large Change Warning",
        "description": "Warns on changes larger than 1000 lines of code",
        "enabled": True,
        "severity": "warn",
        "kind": "large-change",
        "threshold": 1000,
    },
    {
        "id": "suspicious-keywords-default",
        "name": "Suspicious Keywords Detection",
        "description": "Warns on potentially dangerous code patterns",
        "enabled": True,
        "severity": "warn",
        "kind": "suspicious-keywords",
        "keywords": [
            "eval(",
            "exec(",
            "dangerouslySetInnerHTML",
            "innerHTML",
            "document.write",
            "Function(",
            "setTimeout(",
            "setInterval(",
            "XMLHttpRequest",
            "fetch(",
            "localStorage",
            "sessionStorage",
            "cookie",
            "document.cookie",
            "pickle.loads",
            "os.system(",
            "shell=True",
        ],
    },
    {
        "id": "potential-secret-default",
        "name": "Potential Secret Detection",
        "description": "Blocks potential secrets like API keys, passwords, tokens",
        "enabled": True,
        "severity": "block",
        "kind": "potential-secret",
        "patterns": [
            r"""(?:api[_-]?key|apikey)\s*[=:]\s*['"]?[a-zA-Z0-9_-]{20,}['"]?""",
            r"""(?:secret|password|passwd|pwd)\s*[=:]\s*['"]?[a-zA-Z0-9_-]{12,}['"]?""",
            r"(?:token|bearer)\s+[a-zA-Z0-9_-]{20,}",
            r"""(?:aws[_-]?access[_-]?key[_-]?id|aws[_-]?secret[_-]?access[_-]?key)\s*[=:]\s*['"]?[a-zA-Z0-9_+/=]{20,}['"]?""",
            r"""(?:private[_-]?key|privatekey)\s*[=:]\s*['"]?-----BEGIN""",
            r"-----BEGIN\s+(?:RSA\s+|EC\s+|OPENSSH\s+)?PRIVATE\s+KEY-----",
            r"(?:mongodb|postgres|mysql|redis)://[^:]+:[^@]+@",
            r"(?:ghp_|gho_|ghu_|ghs_|ghr_)[a-zA-Z0-9]{36}",
            r"(?:xox[baprs]-)[a-zA-Z0-9-]{10,}",
            r"AKIA[0-9A-Z]{16}",
            # Stripe / OpenAI style secret and publishable keys
            r"sk_[a-zA-Z0-9]{32,}",
            r"pk_[a-zA-Z0-9]{32,}",
        ],
    },
    {
        "id": "large-migration-default",
        "name": "Large Migration Warning",
        "description": "Warns on database migrations larger than 100 lines",
        "enabled": True,
        "severity": "warn",
        "kind": "large-migration",
        "threshold": 100,
        "migrationPatterns": [
            r"migrations?/.*\.(sql|ts|js|py)$",
            r".*migration.*\.(sql|ts|js|py)$",
            r"schema\.(sql|ts|js)$",
        ],
    },
    {
        "id": "path-pattern-default",
        "name": "CI Pipeline Change",
        "description": "Warns when CI/CD pipeline definitions are modified",
        "enabled": True,
        "severity": "warn",
        "kind": "path-pattern",
        "pattern": r"^\.github/workflows/|(^|/)\.gitlab-ci\.yml$|(^|/)Jenkinsfile$",
        "matchType": "include",
    },
    {
        "id": "line-pattern-default",
        "name": "Merge Conflict Markers",
        "description": "Blocks unresolved merge conflict markers",
        "enabled": True,
        "severity": "block",
        "kind": "line-pattern",
        "pattern": r"^(<{7}|={7}|>{7})(\s|$)",
        "matchType": "added",
    },
    {
        "id": "file-size-default",
        "name": "Large File Addition",
        "description": "Warns when more than 1 MiB of content is added to a single file",
        "enabled": True,
        "severity": "warn",
        "kind": "file-size",
        "maxSize": 1024 * 1024,
    },
)


def default_rules() -> list[Rule]:
    """Build a fresh copy of the default rule catalogue."""
    return [rule_from_dict(spec) for spec in DEFAULT_RULE_SPECS]
