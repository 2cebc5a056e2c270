# Prompt construction: system instructions, output contract, and the JSON user message.

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from auditai.findings.models import MODEL_GUESS_ID, AuditFile
from auditai.registry import FindingItem

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n// ... [truncated]"

OUTPUT_CONTRACT = " ".join(
    [
        "The JSON MUST match this exact TypeScript type:",
        "{",
        '  "findings": {',
        '    "id": string,',
        '    "severity": "Low" | "Medium" | "High" | "Critical",',
        '    "confidence": number,',
        '    "cwe"?: string,',
        '    "owasp"?: string,',
        '    "evidence": { "lines": number[]; "snippet": string },',
        '    "explanation": string,',
        '    "fix": {',
        '      "patch": { "line"?: number; "insert_before"?: string; "replace_with"?: string }[],',
        '      "notes"?: string',
        "    }",
        "  }[],",
        '  "summary": {',
        '    "file": string,',
        '    "counts": { "total": number, "high": number, "medium": number, "low": number }',
        "  }",
        "}",
    ]
)

BASE_RULES = [
    "You are a security code auditor.",
    "Only report findings whose 'id' exists in allowed_findings.",
    "If nothing matches, return an empty 'findings' array.",
    "Always include exact line numbers and a verbatim snippet.",
    "Prefer high precision over recall. If unsure, lower confidence or skip.",
    "Return ONLY a single JSON object.",
]

ANALYSIS_GUIDANCE = " ".join(
    [
        "Treat string interpolation or concatenation in SQL/ORM queries as SQL Injection unless inputs are parameterized.",
        "Dynamic code execution helpers such as eval/Function/exec on user input map to INSECURE_DESERIALIZATION.",
        "Redirects that forward user-controlled URLs without validation map to UNVALIDATED_REDIRECT.",
        f"Always include explanation + remediation. If no allowed finding matches, use {MODEL_GUESS_ID} with full details.",
    ]
)

FIELD_REQUIREMENTS = " ".join(
    [
        "Do not leave explanation blank; describe why the code is vulnerable and the risk.",
        "Provide at least one patch entry per finding or add actionable fix notes.",
    ]
)

GPT_SYSTEM_PROMPT = " ".join(BASE_RULES + [OUTPUT_CONTRACT])

CLAUDE_SYSTEM_PROMPT = " ".join(
    [
        "You are a security code auditor.",
        "Only report findings whose 'id' exists in allowed_findings.",
        f"If nothing matches the allowed list, emit a {MODEL_GUESS_ID} finding with complete details.",
        "Always include exact line numbers and a verbatim snippet.",
        "Prefer high precision over recall. If unsure, lower confidence or skip.",
        "Return ONLY a single JSON object matching the ModelResponse contract.",
        "Every finding needs an explanation referencing the snippet and remediation guidance.",
    ]
)

CODEBERT_SYSTEM_PROMPT = " ".join(BASE_RULES + [OUTPUT_CONTRACT, ANALYSIS_GUIDANCE, FIELD_REQUIREMENTS])

EXAMPLE_FINDING: dict[str, Any] = {
    "id": "DEMO_ID",
    "severity": "Medium",
    "confidence": 0.9,
    "evidence": {
        "lines": [42],
        "snippet": "db.query(`SELECT * FROM users WHERE name = '${user}'`);",
    },
    "explanation": (
        "User input is concatenated into a SQL query, allowing attackers to inject "
        "arbitrary clauses and read or modify data."
    ),
    "fix": {
        "patch": [{"line": 42, "replace_with": "db.query('SELECT * FROM users WHERE name = $1', [user]);"}],
        "notes": "Always use parameterized queries / placeholders so the database driver can safely escape values.",
    },
}

# Catalogue entry appended to every prompt so the model has a sanctioned escape hatch.
FALLBACK_ITEM: dict[str, Any] = {
    "id": MODEL_GUESS_ID,
    "title": "Model proposed finding (fallback)",
    "cwe": None,
    "owasp": None,
    "severity": "Medium",
    "description": (
        "Use when the vulnerability does not match any allowed finding. "
        "Clearly state the issue in explanation/fix."
    ),
    "hints": ["Only use when absolutely necessary."],
}

SYSTEM_PROMPTS = {
    "OpenAI": GPT_SYSTEM_PROMPT,
    "Claude": CLAUDE_SYSTEM_PROMPT,
    "CodeBert": CODEBERT_SYSTEM_PROMPT,
}


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str


def truncate_content(content: str, max_chars: Optional[int]) -> str:
    if max_chars is None or len(content) <= max_chars:
        return content
    logger.warning("Code truncated to %d chars for the prompt", max_chars)
    return content[:max_chars] + TRUNCATION_MARKER


def catalogue_for_prompt(allowed: Sequence[FindingItem], include_hints: bool = True) -> list[dict[str, Any]]:
    fields = {"id", "title", "cwe", "owasp", "severity", "description"}
    if include_hints:
        fields.add("hints")
    entries = [item.model_dump(mode="json", include=fields) for item in allowed]
    fallback = {k: v for k, v in FALLBACK_ITEM.items() if k in fields}
    return entries + [fallback]


def build_user_payload(
    file: AuditFile,
    allowed: Sequence[FindingItem],
    model: str = "OpenAI",
    max_content_chars: Optional[int] = None,
) -> dict[str, Any]:
    """The structured user message: task, file, allowed catalogue, contract and example."""
    payload: dict[str, Any] = {
        "task": "Analyze the following code file for ONLY the allowed findings.",
        "file": {
            "path": file.path,
            "language": file.language,
            "content": truncate_content(file.content, max_content_chars),
        },
        "allowed_findings": catalogue_for_prompt(allowed, include_hints=model != "Claude"),
        "output_contract": "ModelResponse JSON with { findings:[], summary:{...} }",
    }
    if model == "CodeBert":
        payload["task"] = (
            "Analyze this code for security vulnerabilities and return findings in the specified JSON format."
        )
    else:
        payload["analysis_guidance"] = ANALYSIS_GUIDANCE
        payload["field_requirements"] = FIELD_REQUIREMENTS
    payload["example_finding"] = EXAMPLE_FINDING
    return payload


def build_prompt(
    model: str,
    file: AuditFile,
    allowed: Sequence[FindingItem],
    max_content_chars: Optional[int] = None,
) -> Prompt:
    payload = build_user_payload(file, allowed, model=model, max_content_chars=max_content_chars)
    indent = 2 if model == "CodeBert" else None
    return Prompt(system=SYSTEM_PROMPTS.get(model, GPT_SYSTEM_PROMPT), user=json.dumps(payload, indent=indent))
