# backend/app/services/sql_sandbox.py
"""
SQL sandbox: classifies SQL text as allowed or forbidden.

Checks run on normalized text (comments stripped, whitespace collapsed) and are
case-insensitive. Errors block; warnings are informational only. Nothing here
touches a database.
"""
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

RESERVED_TABLE_PREFIXES: Tuple[str, ...] = ("sys",)

_FLAGS = re.IGNORECASE


@dataclass(frozen=True)
class Reason:
    code: str
    message: str


@dataclass
class SandboxResult:
    errors: List[Reason] = field(default_factory=list)
    warnings: List[Reason] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def error_messages(self) -> List[str]:
        return [r.message for r in self.errors]

    @property
    def warning_messages(self) -> List[str]:
        return [r.message for r in self.warnings]


# keywords a (comma separated) list of table references can follow
_OBJECT_POSITION_RE = re.compile(
    r"\b(?:from|join|into|update|truncate(?:\s+table)?"
    r"|(?:alter|drop|create)\s+table(?:\s+if(?:\s+not)?\s+exists)?)\b",
    _FLAGS,
)
# where the reference list after an object keyword stops
_CLAUSE_END_RE = re.compile(
    r"[;()]|\b(?:where|join|inner|left|right|full|cross|natural|on|using|set|values|select"
    r"|returning|group|order|having|limit|offset|union|intersect|except|window)\b",
    _FLAGS,
)
_NAME_RE = re.compile(r"\"[^\"]*\"|`[^`]*`|[\w$]+")
_REFERENCE_RE = re.compile(
    rf"\s*(?:only\b\s*)?((?:{_NAME_RE.pattern})(?:\s*\.\s*(?:{_NAME_RE.pattern}))*)",
    _FLAGS,
)

_CATALOG_FUNCTION_RE = re.compile(r"\bpg_(?:read_file|ls_dir|stat_file|get_\w+)\s*\(", _FLAGS)

# (pattern, name); every hit is its own violation
DANGEROUS_COMMANDS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"\bcreate\s+extension\b", _FLAGS), "CREATE EXTENSION"),
    (re.compile(r"\bdrop\s+extension\b", _FLAGS), "DROP EXTENSION"),
    (re.compile(r"\balter\s+extension\b", _FLAGS), "ALTER EXTENSION"),
    (re.compile(r"\balter\s+system\b", _FLAGS), "ALTER SYSTEM"),
    (re.compile(r"\bset\s+role\b", _FLAGS), "SET ROLE"),
    (re.compile(r"\bcreate\s+role\b", _FLAGS), "CREATE ROLE"),
    (re.compile(r"\bdrop\s+role\b", _FLAGS), "DROP ROLE"),
    (re.compile(r"\balter\s+role\b", _FLAGS), "ALTER ROLE"),
    (re.compile(r"\bcreate\s+user\b", _FLAGS), "CREATE USER"),
    (re.compile(r"\bdrop\s+user\b", _FLAGS), "DROP USER"),
    (re.compile(r"\balter\s+user\b", _FLAGS), "ALTER USER"),
    (re.compile(r"\bgrant\b.*?\bto\s+public\b", _FLAGS), "GRANT TO PUBLIC"),
    (re.compile(r"\bcreate\s+database\b", _FLAGS), "CREATE DATABASE"),
    (re.compile(r"\bdrop\s+database\b", _FLAGS), "DROP DATABASE"),
    (re.compile(r"\bcreate\s+schema\s+(?:if\s+not\s+exists\s+)?[\"`]?(?:pg_|information_schema)", _FLAGS),
     "CREATE SYSTEM SCHEMA"),
    (re.compile(r"\bdrop\s+schema\s+(?:if\s+exists\s+)?[\"`]?(?:pg_|information_schema|public\b)", _FLAGS),
     "DROP CRITICAL SCHEMA"),
]

_FILE_PATTERNS = [
    re.compile(r"\bcopy\s+[\w.\"`]+(?:\s*\([^)]*\))?\s+(?:from|to)\b", _FLAGS),
    re.compile(r"\bcopy\s*\(.*\)\s*to\b", _FLAGS),
    re.compile(r"\bpg_read_file\s*\(", _FLAGS),
    re.compile(r"\bpg_read_binary_file\s*\(", _FLAGS),
    re.compile(r"\bpg_ls_dir\s*\(", _FLAGS),
    re.compile(r"\bpg_stat_file\s*\(", _FLAGS),
    re.compile(r"\blo_import\s*\(", _FLAGS),
    re.compile(r"\blo_export\s*\(", _FLAGS),
]

_ROLE_PATTERNS = [
    re.compile(r"\b(?:create|drop|alter)\s+(?:role|user)\b", _FLAGS),
    re.compile(r"\bgrant\b.*\bto\b", _FLAGS),
    re.compile(r"\brevoke\b.*\bfrom\b", _FLAGS),
    re.compile(r"\bset\s+role\b", _FLAGS),
    re.compile(r"\breset\s+role\b", _FLAGS),
]

_DROP_RE = re.compile(r"\bdrop\s+(?:table|index|view|sequence|function|procedure|trigger)\b", _FLAGS)
_TRUNCATE_RE = re.compile(r"\btruncate\b", _FLAGS)
_ALTER_RE = re.compile(r"\balter\s+(?:table|index|view|sequence|function|procedure)\b", _FLAGS)


def normalize_sql(sql: str) -> str:
    """Strip -- and /* */ comments and collapse whitespace."""
    normalized = re.sub(r"--[^\n]*", " ", sql)
    normalized = re.sub(r"/\*.*?\*/", " ", normalized, flags=re.S)
    return re.sub(r"\s+", " ", normalized).strip()


def object_references(sql: str) -> List[Tuple[str, ...]]:
    """Every table reference in an object position, as unquoted name parts.

    ``FROM a, ONLY "b" x`` yields ``[("a",), ("b",)]``.
    """
    references = []
    for keyword in _OBJECT_POSITION_RE.finditer(sql):
        tail = sql[keyword.end():]
        end = _CLAUSE_END_RE.search(tail)
        segment = tail[:end.start()] if end else tail
        for item in segment.split(","):
            m = _REFERENCE_RE.match(item)
            if m:
                references.append(tuple(part.strip("\"`") for part in _NAME_RE.findall(m.group(1))))
    return references


def _is_catalog(parts: Tuple[str, ...]) -> bool:
    return any(p.lower().startswith("pg_") or p.lower() == "information_schema" for p in parts)


def _is_reserved(parts: Tuple[str, ...], prefixes: Tuple[str, ...]) -> bool:
    if len(parts) > 2 or (len(parts) == 2 and parts[0].lower() != "public"):
        return False
    return parts[-1].lower().startswith(prefixes)


def has_system_catalog_access(sql: str) -> bool:
    if _CATALOG_FUNCTION_RE.search(sql):
        return True
    return any(_is_catalog(parts) for parts in object_references(sql))


def has_reserved_table_access(sql: str, prefixes: Sequence[str] = RESERVED_TABLE_PREFIXES) -> bool:
    if not prefixes:
        return False
    lowered = tuple(p.lower() for p in prefixes)
    return any(_is_reserved(parts, lowered) for parts in object_references(sql))


def find_dangerous_commands(sql: str) -> List[str]:
    return [name for pattern, name in DANGEROUS_COMMANDS if pattern.search(sql)]


def has_file_operations(sql: str) -> bool:
    return any(p.search(sql) for p in _FILE_PATTERNS)


def has_role_management(sql: str) -> bool:
    return any(p.search(sql) for p in _ROLE_PATTERNS)


def _warnings(sql: str) -> Iterable[Reason]:
    if _DROP_RE.search(sql):
        yield Reason("drop_object", "DROP command detected - use with caution")
    if _TRUNCATE_RE.search(sql):
        yield Reason("truncate", "TRUNCATE command detected - this will delete all data")
    if _ALTER_RE.search(sql):
        yield Reason("alter_object", "ALTER command detected - schema changes can affect application")


def evaluate(sql: Optional[str], reserved_prefixes: Sequence[str] = RESERVED_TABLE_PREFIXES) -> SandboxResult:
    result = SandboxResult()

    if not isinstance(sql, str):
        result.errors.append(Reason("sql_required", "SQL query is required"))
        return result
    if not sql.strip():
        result.errors.append(Reason("sql_empty", "SQL query cannot be empty"))
        return result

    normalized = normalize_sql(sql)

    if has_system_catalog_access(normalized):
        result.errors.append(Reason(
            "system_catalog",
            "Access to system catalogs (pg_*, pg_catalog, information_schema) is not allowed",
        ))

    if has_reserved_table_access(normalized, reserved_prefixes):
        label = ", ".join(f"{p.capitalize()}*" for p in reserved_prefixes)
        result.errors.append(Reason(
            "reserved_table",
            f"Direct access to system tables ({label}) is not allowed",
        ))

    for name in find_dangerous_commands(normalized):
        result.errors.append(Reason("dangerous_command", f"Dangerous command detected: {name}"))

    if has_file_operations(normalized):
        result.errors.append(Reason(
            "file_access",
            "File operations (COPY, pg_read_file, pg_ls_dir, etc.) are not allowed",
        ))

    if has_role_management(normalized):
        result.errors.append(Reason(
            "role_management",
            "Role and user management operations are not allowed",
        ))

    result.warnings.extend(_warnings(normalized))
    return result
