# backend/app/services/function_validator.py
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from app.core.errors import SqlSandboxError
from app.services.sql_sandbox import (
    RESERVED_TABLE_PREFIXES,
    Reason,
    SandboxResult,
    evaluate,
    normalize_sql,
)

DANGEROUS_LANGUAGES = ("c", "plpythonu", "plpython3u", "plperlu")
SENSITIVE_TABLES = ("appuserauth", "apprefreshtoken")
ADMIN_FUNCTIONS = ("pg_terminate_backend", "pg_cancel_backend", "pg_reload_conf")

_CREATE_FUNCTION_RE = re.compile(r"^create(\s+or\s+replace)?\s+function\b", re.I)
_FUNCTION_NAME_RE = re.compile(r"create(?:\s+or\s+replace)?\s+function\s+([\w\"]+(?:\.[\w\"]+)?)\s*\(", re.I)
_PARAMS_RE = re.compile(r"function\s+[\w\".]+\s*\((.*?)\)\s*returns", re.I | re.S)
_RETURNS_RE = re.compile(
    r"returns\s+(.*?)(?:\s+as\b|\s+language\b|\s+stable\b|\s+immutable\b|\s+volatile\b|\s*\$)",
    re.I | re.S,
)
_TABLE_RETURN_RE = re.compile(r"table\s*\((.*?)\)", re.I | re.S)


@dataclass
class FunctionMetadata:
    name: str
    schema: str
    full_name: str
    parameters: Optional[str]
    return_type: Optional[str]


def _language_reasons(sql: str):
    for lang in DANGEROUS_LANGUAGES:
        if re.search(rf"\blanguage\s+[\"']?{lang}[\"']?(?![\w])", sql, re.I):
            yield Reason(
                "dangerous_language",
                f"Functions using {lang} language are not allowed for security reasons",
            )


def _table_reference_re(names: Sequence[str], prefix: bool) -> re.Pattern:
    alternatives = "|".join(re.escape(n) for n in names)
    tail = r"\w*" if prefix else r"\b"
    quoted_tail = r"\w*" if prefix else ""
    return re.compile(
        rf"\b(?:from|join|into|update|delete\s+from|insert\s+into)\s+[\"`]?(?:{alternatives}){tail}"
        rf"|[\"'`](?:{alternatives}){quoted_tail}[\"'`]",
        re.I,
    )


def evaluate_function_definition(sql: Optional[str],
                                 reserved_prefixes: Sequence[str] = RESERVED_TABLE_PREFIXES) -> SandboxResult:
    """Stricter ruleset applied to CREATE FUNCTION statements."""
    result = evaluate(sql, reserved_prefixes)
    if not isinstance(sql, str) or not sql.strip():
        return result

    normalized = normalize_sql(sql)
    lower = normalized.lower()

    if not _CREATE_FUNCTION_RE.search(normalized):
        result.errors.append(Reason(
            "not_a_function",
            "Only CREATE FUNCTION or CREATE OR REPLACE FUNCTION statements are allowed",
        ))

    result.errors.extend(_language_reasons(normalized))

    if re.search(r"(?:\bcopy\s|\\copy\b)", lower):
        result.errors.append(Reason("copy", "COPY commands are not allowed in functions"))

    if reserved_prefixes and _table_reference_re(reserved_prefixes, prefix=True).search(normalized):
        result.errors.append(Reason(
            "reserved_table",
            "Functions cannot query, modify, or reference system metadata tables",
        ))

    if _table_reference_re(SENSITIVE_TABLES, prefix=False).search(normalized):
        result.errors.append(Reason(
            "sensitive_table",
            "Access to authentication tables (AppUserAuth, AppRefreshToken) is not allowed for security reasons",
        ))

    if re.search(r"\b(?:create|drop|alter)\s+schema\b", lower):
        result.errors.append(Reason("schema_manipulation", "Schema manipulation commands are not allowed in functions"))

    if re.search(r"\b(?:create\s+user|create\s+role|grant|revoke)\b", lower):
        result.errors.append(Reason(
            "permission_management",
            "User and permission management commands are not allowed in functions",
        ))

    for fn in ADMIN_FUNCTIONS:
        if re.search(rf"\b{fn}\b", lower):
            result.errors.append(Reason("admin_function", f"Administrative function {fn} is not allowed"))

    match = _FUNCTION_NAME_RE.search(normalized)
    if match:
        parts = [p.strip() for p in match.group(1).replace('"', "").split(".")]
        name = parts[-1]
        if len(parts) == 2 and parts[0].lower() != "public":
            result.errors.append(Reason("schema", "Only functions in the public schema are allowed"))
        if re.match(r"^(pg_|sys)", name, re.I):
            result.errors.append(Reason(
                "reserved_name",
                'Function names starting with "pg_" or "sys" are reserved for system use',
            ))
    elif _CREATE_FUNCTION_RE.search(normalized):
        result.errors.append(Reason("unparsable", "Unable to parse function name from SQL statement"))

    return result


def parse_function_definition(sql: str,
                              reserved_prefixes: Sequence[str] = RESERVED_TABLE_PREFIXES) -> FunctionMetadata:
    result = evaluate_function_definition(sql, reserved_prefixes)
    if not result.valid:
        raise SqlSandboxError("; ".join(result.error_messages))

    trimmed = sql.strip()
    identifier = _FUNCTION_NAME_RE.search(trimmed).group(1).replace('"', "")
    parts = [p.strip() for p in identifier.split(".")]
    name = parts[-1]
    schema = parts[0] if len(parts) == 2 else "public"

    parameters = None
    params_match = _PARAMS_RE.search(trimmed)
    if params_match and params_match.group(1):
        parameters = re.sub(r"\s+", " ", params_match.group(1).strip()) or None

    return_type = None
    returns_match = _RETURNS_RE.search(trimmed)
    if returns_match and returns_match.group(1):
        return_type = re.sub(r"\s+", " ", returns_match.group(1).strip())
        if return_type.lower().startswith("table"):
            table_match = _TABLE_RETURN_RE.search(return_type)
            if table_match:
                columns = re.sub(r"\s+", " ", table_match.group(1))
                return_type = f"TABLE({columns})"

    return FunctionMetadata(
        name=name,
        schema=schema,
        full_name=f"{schema}.{name}",
        parameters=parameters,
        return_type=return_type,
    )
