"""
Target selection for SQL statements.

determine_target() decides, per statement, whether it runs on the embedded
(local) engine or the remote relational engine. It is pure: no I/O, no
state, case-insensitive on the SQL text.

Decision order (first match wins):
    1. Inline directive: ``aerostack:target=remote`` / ``aerostack:target=local``
       (legacy ``=postgres`` / ``=d1`` accepted at the same precedence)
    2. Routing rules: first configured table name contained in the SQL
    3. Complexity keywords: join, group by, having, union, intersect, except
    4. The caller-supplied default

Invariants:
    - Matching is plain substring containment, not SQL parsing. A table
      name inside another identifier or a string literal still matches.
    - Remote directives are checked before local ones.
"""

from __future__ import annotations

from .types import RoutingRules, Target

REMOTE_DIRECTIVES = ("aerostack:target=remote", "aerostack:target=postgres")
LOCAL_DIRECTIVES = ("aerostack:target=local", "aerostack:target=d1")

COMPLEX_TRIGGERS = ("join", "group by", "having", "union", "intersect", "except")


def directive_target(normalized_sql: str) -> Target | None:
    """Return the target forced by an inline directive, if any."""
    if any(d in normalized_sql for d in REMOTE_DIRECTIVES):
        return Target.REMOTE
    if any(d in normalized_sql for d in LOCAL_DIRECTIVES):
        return Target.LOCAL
    return None


def rule_target(normalized_sql: str, rules: RoutingRules) -> Target | None:
    """Return the target of the first rule whose table name appears in the SQL."""
    for table, target in rules:
        if table.lower() in normalized_sql:
            return target
    return None


def is_complex(normalized_sql: str) -> bool:
    """Whether the SQL uses operations the embedded engine handles poorly."""
    return any(trigger in normalized_sql for trigger in COMPLEX_TRIGGERS)


def determine_target(sql: str, rules: RoutingRules, default: Target) -> Target:
    """Select the execution engine for a statement.

    Args:
        sql: SQL text
        rules: Routing rules, checked in insertion order
        default: Target used when nothing else matches

    Returns:
        Target.LOCAL or Target.REMOTE
    """
    normalized = sql.lower()

    target = directive_target(normalized)
    if target is not None:
        return target

    target = rule_target(normalized, rules)
    if target is not None:
        return target

    if is_complex(normalized):
        return Target.REMOTE

    return default
